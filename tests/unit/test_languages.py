import pytest

from speech_orchestrator.engine import languages


@pytest.mark.parametrize("language, code", [("en", "en"), ("english", "en"), ("cantonese", "yue")])
def test_codes_and_names_resolve_to_codes(language, code):
    assert languages.lang_code(languages.lang_id(language)) == code


def test_whisper_ordering():
    assert languages.lang_id("en") == 0
    assert languages.lang_id("yue") == len(languages.LANGUAGES) - 1


def test_unknown_language():
    assert languages.lang_id("klingon") == -1
    assert languages.lang_code(-1) is None
    assert languages.lang_code(len(languages.LANGUAGES)) is None
