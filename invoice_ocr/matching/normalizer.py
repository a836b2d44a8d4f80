import re
import unicodedata
from functools import lru_cache
from typing import Dict, Optional

from invoice_ocr.config import TYPO_CORRECTIONS

_CONNECTORS_RE = re.compile(r"\s+y\s+|\s*&\s*")
# ASCII word characters only; \s keeps matching Unicode spaces such as U+00A0
_NON_WORD_RE = re.compile(r"[^A-Za-z0-9_\s]")
_SPACES_RE = re.compile(r"\s+")
_PARENTHESES_RE = re.compile(r"\s*\([^)]*\)\s*")
_SL_RE = re.compile(r"\bs\.?\s*l\.?\b")
_SA_RE = re.compile(r"\bs\.?\s*a\.?\b")
_SLU_RE = re.compile(r"\bs\.?\s*l\.?\s*u\.?\b")
_COMPANY_SUFFIX_RE = re.compile(r"\b(sl|sa|slu|srl|cb|sc|scp|scoop|aie|ute)\b", re.IGNORECASE)
_NON_ALNUM_LOWER_RE = re.compile(r"[^a-z0-9]")
_NON_ALNUM_UPPER_RE = re.compile(r"[^A-Z0-9]")


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def normalize_text(text: Optional[str]) -> str:
    """Case-folds, strips accents and punctuation and collapses whitespace."""
    if not text:
        return ""
    text = _CONNECTORS_RE.sub(" ", text.lower())
    text = strip_accents(text)
    text = _NON_WORD_RE.sub("", text)
    return _SPACES_RE.sub(" ", text).strip()


@lru_cache(maxsize=32)
def _compile_corrections(items: tuple) -> tuple:
    return tuple(
        (re.compile(rf"\b{re.escape(wrong)}\b", re.IGNORECASE), right)
        for wrong, right in items
    )


def correct_typos(text: Optional[str], corrections: Optional[Dict[str, str]] = None) -> str:
    """Replaces known OCR/typing mistakes, whole words only."""
    if not text:
        return ""
    table = TYPO_CORRECTIONS if corrections is None else corrections
    for pattern, replacement in _compile_corrections(tuple(table.items())):
        text = pattern.sub(replacement, text)
    return text


def normalize_legal_suffixes(text: Optional[str]) -> str:
    """Collapses dotted forms such as 'S. L.' or 'S.A.' into 'sl' / 'sa'."""
    if not text:
        return ""
    text = text.lower()
    text = _SL_RE.sub("sl", text)
    text = _SA_RE.sub("sa", text)
    return _SLU_RE.sub("slu", text)


def strip_company_suffixes(name: Optional[str]) -> str:
    if not name:
        return ""
    name = _COMPANY_SUFFIX_RE.sub("", name)
    return _SPACES_RE.sub(" ", name).strip()


def strip_parentheses(text: Optional[str]) -> str:
    if not text:
        return ""
    return _PARENTHESES_RE.sub(" ", text).strip()


def normalize_company_name(name: Optional[str], corrections: Optional[Dict[str, str]] = None) -> str:
    """Full pipeline for supplier and client names."""
    if not name:
        return ""
    corrected = correct_typos(name, corrections)
    with_suffixes = normalize_legal_suffixes(corrected)
    return normalize_text(strip_company_suffixes(with_suffixes))


def normalize_article_key(text: Optional[str], corrections: Optional[Dict[str, str]] = None) -> str:
    """Aggressive key for article descriptions: only [a-z0-9] survive."""
    if not text:
        return ""
    corrected = strip_accents(correct_typos(text, corrections)).lower()
    return _NON_ALNUM_LOWER_RE.sub("", corrected)


def normalize_code(code: Optional[str]) -> str:
    """Converts to uppercase and removes all non-alphanumeric characters."""
    if not code:
        return ""
    return _NON_ALNUM_UPPER_RE.sub("", str(code).upper())


def normalize_description(description: Optional[str]) -> str:
    # Extracted descriptions are stored upper-cased and without dots
    if not description:
        return ""
    return description.upper().replace(".", "").strip()
