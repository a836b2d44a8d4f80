from thefuzz import fuzz

from invoice_ocr.matching.normalizer import normalize_code

EXACT_SCORE = 100.0
CONTAINMENT_BASE = 85.0
WORD_OVERLAP_MAX = 70.0


def similarity(text1: str, text2: str) -> float:
    """
    Scores two normalized strings from 0 to 100.

    Exact match scores 100. If one string contains the other the score is
    between 85 and 100 depending on how much of the longer one is covered.
    Otherwise the share of overlapping words is scaled to at most 70.
    """
    if text1 == text2:
        return EXACT_SCORE
    if not text1 or not text2:
        return 0.0

    if text1 in text2 or text2 in text1:
        shorter, longer = sorted((len(text1), len(text2)))
        return CONTAINMENT_BASE + (EXACT_SCORE - CONTAINMENT_BASE) * shorter / longer

    words1 = text1.split()
    words2 = text2.split()
    common = [w1 for w1 in words1 if any(w1 in w2 or w2 in w1 for w2 in words2)]
    if common:
        return len(common) / max(len(words1), len(words2)) * WORD_OVERLAP_MAX
    return 0.0


def tie_break(text1: str, text2: str) -> int:
    return fuzz.token_set_ratio(text1, text2)


def code_similarity(code1: str, code2: str) -> int:
    norm1 = normalize_code(code1)
    norm2 = normalize_code(code2)
    if not norm1 or not norm2:
        return 0
    if norm1 == norm2:
        return 100
    return fuzz.ratio(norm1, norm2)
