"""
Query Language Detection

Detects the language a question was asked in, so the remote synthesizer
can ask the model to answer in the same language.
Uses langdetect with a Unicode script fallback.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from langdetect import DetectorFactory, detect_langs
from langdetect.lang_detect_exception import LangDetectException

# Seed langdetect for deterministic results
DetectorFactory.seed = 0

# Matches any Greek, Cyrillic, Hebrew, Arabic, Devanagari, Hangul, Kana or CJK character
_NON_LATIN_RE = re.compile(
    r'[\u0370-\u03FF\u0400-\u04FF\u0590-\u05FF\u0600-\u06FF\u0900-\u097F'
    r'\u1100-\u11FF\u3040-\u30FF\u3130-\u318F\u3400-\u4DBF\u4E00-\u9FFF\uAC00-\uD7AF]'
)


@dataclass(frozen=True)
class LanguageInfo:
    """Detected language information"""
    code: str           # ISO 639-1: "en", "ko", "ru"
    confidence: float   # 0.0~1.0
    script: str         # "Latin", "Hangul", "Kana", "CJK", "Cyrillic", ...

    @property
    def is_english(self) -> bool:
        return self.code == "en"


# (start, end, script, language) for scripts that imply a language
_SCRIPT_RANGES = [
    (0xAC00, 0xD7AF, "Hangul", "ko"),
    (0x1100, 0x11FF, "Hangul", "ko"),
    (0x3130, 0x318F, "Hangul", "ko"),
    (0x3040, 0x30FF, "Kana", "ja"),
    (0x4E00, 0x9FFF, "CJK", "zh"),
    (0x3400, 0x4DBF, "CJK", "zh"),
    (0x0400, 0x04FF, "Cyrillic", "ru"),
    (0x0600, 0x06FF, "Arabic", "ar"),
    (0x0590, 0x05FF, "Hebrew", "he"),
    (0x0370, 0x03FF, "Greek", "el"),
    (0x0900, 0x097F, "Devanagari", "hi"),
]


def _detect_script(text: str) -> Tuple[str, Optional[str]]:
    """Return (dominant script, implied language) for the text.

    Latin-dominant text returns ("Latin", None).
    """
    counts: dict = {}
    total = 0

    for ch in text:
        if not ch.isalpha():
            continue
        total += 1
        cp = ord(ch)
        for start, end, script, lang in _SCRIPT_RANGES:
            if start <= cp <= end:
                counts[(script, lang)] = counts.get((script, lang), 0) + 1
                break

    if total == 0 or not counts:
        return "Latin", None

    # Japanese mixes Kanji with Kana
    if ("Kana", "ja") in counts:
        return "Kana", "ja"

    (script, lang), count = max(counts.items(), key=lambda item: item[1])
    if count > total * 0.15:
        return script, lang
    return "Latin", None


def detect_language(text: str) -> LanguageInfo:
    """Detect language of a query.

    Short texts (<10 chars) and pure Latin-script texts default to English,
    since langdetect often misclassifies short English questions.
    """
    if not text or not text.strip():
        return LanguageInfo(code="en", confidence=1.0, script="Latin")

    cleaned = text.strip()
    script, script_lang = _detect_script(cleaned)

    if len(cleaned) < 10:
        if script_lang:
            return LanguageInfo(code=script_lang, confidence=0.6, script=script)
        return LanguageInfo(code="en", confidence=0.5, script="Latin")

    if not _NON_LATIN_RE.search(cleaned):
        return LanguageInfo(code="en", confidence=0.5, script="Latin")

    try:
        results = detect_langs(cleaned)
    except LangDetectException:
        results = []

    if results:
        top = results[0]
        return LanguageInfo(code=top.lang, confidence=round(top.prob, 4), script=script)

    if script_lang:
        return LanguageInfo(code=script_lang, confidence=0.7, script=script)

    return LanguageInfo(code="en", confidence=0.5, script="Latin")
