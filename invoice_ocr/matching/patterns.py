"""
Token extraction from article descriptions.

Supplier descriptions and master descriptions rarely share wording, but
they usually share the numbers that identify a product: net weight, pack
format ("6x(2kg)"), caliber ("31/35") and a few processing words ("iqf",
"blq"). Those tokens are extracted here and compared category by category
to nudge the text similarity score up or down.
"""

import re
from dataclasses import dataclass, field, fields
from typing import Dict, Optional

from invoice_ocr.matching.normalizer import correct_typos, strip_accents
from invoice_ocr.matching.similarity import code_similarity

# raw unit -> (canonical unit, factor)
UNITS = {
    "kg": ("kg", 1), "kgs": ("kg", 1), "k": ("kg", 1),
    "g": ("g", 1), "gr": ("g", 1), "grs": ("g", 1),
    "ml": ("ml", 1), "cl": ("ml", 10),
    "l": ("l", 1), "lt": ("l", 1),
    "u": ("u", 1), "ud": ("u", 1), "uds": ("u", 1),
}
_UNIT_RE = r"(kgs|kg|k|grs|gr|g|ml|cl|lt|l|uds|ud|u)"
_NUMBER_RE = r"(\d+(?:[.,]\d+)?)"

FORMAT_RE = re.compile(rf"(\d+)\s*x\s*\(?\s*{_NUMBER_RE}\s*{_UNIT_RE}(?![a-z])")
UNITS_PER_BOX_RE = re.compile(r"c\s*/\s*(\d+)\s*(?:uds|ud|u)(?![a-z])")
MEASUREMENT_RE = re.compile(rf"(?<![\d.,/x]){_NUMBER_RE}\s*{_UNIT_RE}(?![a-z])")
SIZE_RE = re.compile(r"(?<![\d/])(\d{1,4})\s*/\s*(\d{1,4})(?![\d/])")
SLASHED_WORD_RE = re.compile(r"(?<![a-z0-9])([a-z])\s*/\s*([a-z]+)(?![a-z])")
WORD_RE = re.compile(r"[a-z]+")
CODE_RE = re.compile(r"\b(?=[a-z0-9]*\d)(?=[a-z0-9]*[a-z])[a-z0-9]{3,}\b")
# "1.000" with a Spanish thousands separator
_THOUSANDS_RE = re.compile(r"[1-9]\d{0,2}(?:\.\d{3})+")

QUALITY_WORDS = frozenset({
    "iqf", "prems", "extra", "blq", "s/blq", "bdo", "bdja", "limpio", "fr",
    "fresco", "cong", "congelado", "env", "ap", "lln", "llin", "arg", "ecu", "sud",
})

CODE_MATCH_THRESHOLD = 85


@dataclass(frozen=True)
class ArticlePatterns:
    measurements: frozenset = field(default_factory=frozenset)
    formats: frozenset = field(default_factory=frozenset)
    sizes: frozenset = field(default_factory=frozenset)
    qualities: frozenset = field(default_factory=frozenset)
    codes: frozenset = field(default_factory=frozenset)

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


def _quantity(raw: str, unit: str) -> str:
    if _THOUSANDS_RE.fullmatch(raw):
        raw = raw.replace(".", "")
    canonical, factor = UNITS[unit]
    value = float(raw.replace(",", ".")) * factor
    return f"{value:g}{canonical}"


def _blank(text: str, match: re.Match) -> str:
    start, end = match.span()
    return text[:start] + " " * (end - start) + text[end:]


def extract_patterns(description: Optional[str], corrections: Optional[Dict[str, str]] = None) -> ArticlePatterns:
    if not description:
        return ArticlePatterns()
    text = strip_accents(correct_typos(description, corrections)).lower()

    formats = set()
    for match in list(FORMAT_RE.finditer(text)):
        count, quantity, unit = match.groups()
        formats.add(f"{int(count)}x{_quantity(quantity, unit)}")
        text = _blank(text, match)
    for match in list(UNITS_PER_BOX_RE.finditer(text)):
        formats.add(f"c{int(match.group(1))}u")
        text = _blank(text, match)

    measurements = set()
    for match in list(MEASUREMENT_RE.finditer(text)):
        quantity, unit = match.groups()
        measurements.add(_quantity(quantity, unit))
        text = _blank(text, match)

    sizes = set()
    for match in list(SIZE_RE.finditer(text)):
        sizes.add(f"{int(match.group(1))}/{int(match.group(2))}")
        text = _blank(text, match)

    # slashed forms such as "s/blq" are tokens of their own
    qualities = set()
    for match in list(SLASHED_WORD_RE.finditer(text)):
        token = f"{match.group(1)}/{match.group(2)}"
        if token in QUALITY_WORDS:
            qualities.add(token)
            text = _blank(text, match)
    qualities.update(w for w in WORD_RE.findall(text) if w in QUALITY_WORDS)
    codes = set(CODE_RE.findall(text))

    return ArticlePatterns(
        measurements=frozenset(measurements),
        formats=frozenset(formats),
        sizes=frozenset(sizes),
        qualities=frozenset(qualities),
        codes=frozenset(codes),
    )


def _jaccard(tokens1: frozenset, tokens2: frozenset) -> float:
    return len(tokens1 & tokens2) / len(tokens1 | tokens2)


def _code_agreement(codes1: frozenset, codes2: frozenset) -> float:
    matched = sum(
        1 for c1 in codes1
        if any(code_similarity(c1, c2) >= CODE_MATCH_THRESHOLD for c2 in codes2)
    )
    return matched / max(len(codes1), len(codes2))


def pattern_score(query: ArticlePatterns, candidate: ArticlePatterns) -> Optional[float]:
    """Mean agreement (0-100) over the categories both sides have, or None."""
    agreements = []
    for f in fields(ArticlePatterns):
        tokens1 = getattr(query, f.name)
        tokens2 = getattr(candidate, f.name)
        if not tokens1 or not tokens2:
            continue
        if f.name == "codes":
            agreements.append(_code_agreement(tokens1, tokens2))
        else:
            agreements.append(_jaccard(tokens1, tokens2))
    if not agreements:
        return None
    return sum(agreements) / len(agreements) * 100


def adjust_score(text_score: float, patterns_score: Optional[float], weight: float) -> float:
    if patterns_score is None:
        return text_score
    adjusted = text_score + (patterns_score - 50) / 50 * weight
    return max(0.0, min(100.0, adjusted))
