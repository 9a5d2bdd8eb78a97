"""Tests for query language detection."""

from vaultmind.common.language import detect_language


def test_empty_defaults_to_english():
    info = detect_language("   ")
    assert info.code == "en"
    assert info.is_english


def test_latin_text_defaults_to_english():
    info = detect_language("Qu'est-ce que j'ai écrit sur les vacances?")
    assert info.code == "en"
    assert info.script == "Latin"


def test_short_hangul_uses_script():
    info = detect_language("안녕하세요")
    assert info.code == "ko"
    assert info.script == "Hangul"
    assert not info.is_english


def test_long_korean_text():
    text = "내 메모에서 여행 계획을 요약해줘"
    info = detect_language(text)
    assert info.code == "ko"


def test_short_cyrillic_uses_script():
    info = detect_language("привет")
    assert info.code == "ru"
