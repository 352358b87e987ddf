from pathlib import Path
from speech_orchestrator.utils.file_ops import (
    get_project_root,
    is_existing_file,
    read_text_source,
)


def test_project_root_contains_pyproject():
    """Project root lookup finds the directory holding pyproject.toml."""
    root = get_project_root()

    assert (root / "pyproject.toml").exists()


def test_existing_file_detection(tmp_path):
    """Only regular files on disk count as file sources."""
    path = tmp_path / "grammar.gbnf"
    path.write_text('root ::= "a"', encoding="utf-8")

    assert is_existing_file(str(path)) is True
    assert is_existing_file(str(tmp_path)) is False  # directory
    assert is_existing_file(str(tmp_path / "missing.gbnf")) is False
    assert is_existing_file("") is False


def test_inline_text_is_never_a_file():
    """Multi-line inline text and over-long strings are not paths."""
    assert is_existing_file('root ::= "a"\nitem ::= "b"') is False
    assert is_existing_file("x" * 10000) is False


def test_read_text_source_prefers_file(tmp_path):
    """The file contents win when the string names an existing file."""
    path = tmp_path / "colors.gbnf"
    path.write_text('root ::= "red"\n', encoding="utf-8")

    assert read_text_source(str(path)) == 'root ::= "red"\n'


def test_read_text_source_returns_inline_text():
    """Anything that is not an existing file is returned unchanged."""
    assert read_text_source('root ::= "yes"') == 'root ::= "yes"'
    assert read_text_source(str(Path("does/not/exist.gbnf"))) == str(Path("does/not/exist.gbnf"))
