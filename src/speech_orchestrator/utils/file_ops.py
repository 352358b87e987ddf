from pathlib import Path


def get_project_root() -> Path:
    """
    Find the project root directory by searching for pyproject.toml.

    Searches upwards from the current file's directory until pyproject.toml is found.

    Returns:
        Path to the project root directory

    Raises:
        FileNotFoundError: If pyproject.toml is not found in any parent directory
    """
    current_dir = Path(__file__).resolve().parent

    # Check current dir and all parents
    for directory in [current_dir, *current_dir.parents]:
        if (directory / "pyproject.toml").exists():
            return directory

    raise FileNotFoundError(
        "Could not find project root (pyproject.toml not found)."
    )


def is_existing_file(source: str) -> bool:
    """
    Check whether a string names a readable file on disk.

    Inline grammar text routinely contains characters that are invalid in
    paths (or is far longer than the OS limit), so OS errors mean "not a file".

    Args:
        source: Candidate path

    Returns:
        True if the path exists and is a regular file
    """
    if not source or "\n" in source:
        return False
    try:
        return Path(source).is_file()
    except (OSError, ValueError):
        return False


def read_text_source(source: str) -> str:
    """
    Resolve a "path or inline text" argument to its text.

    The file wins when the string names an existing file; otherwise the
    string itself is the content.

    Args:
        source: Filesystem path or inline text

    Returns:
        File contents or the inline text unchanged
    """
    if is_existing_file(source):
        return Path(source).read_text(encoding="utf-8")
    return source
