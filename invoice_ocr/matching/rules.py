import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, Optional

from invoice_ocr.config import (
    ARTICLE_OVERRIDES,
    DELEGATION_TRADE_NAME_WEIGHT,
    MATCH_THRESHOLDS,
    PATTERN_WEIGHT,
    SUPPLIER_OVERRIDES,
    TYPO_CORRECTIONS,
)


@dataclass(frozen=True)
class MatchingRules:
    """Thresholds and hand-maintained special cases for the resolvers."""
    supplier_threshold: float = MATCH_THRESHOLDS["supplier"]
    delegation_threshold: float = MATCH_THRESHOLDS["delegation"]
    article_threshold: float = MATCH_THRESHOLDS["article"]
    delegation_trade_name_weight: float = DELEGATION_TRADE_NAME_WEIGHT
    pattern_weight: float = PATTERN_WEIGHT
    typo_corrections: Dict[str, str] = field(default_factory=lambda: dict(TYPO_CORRECTIONS))
    supplier_overrides: Dict[str, str] = field(default_factory=lambda: dict(SUPPLIER_OVERRIDES))
    article_overrides: Dict[str, str] = field(default_factory=lambda: dict(ARTICLE_OVERRIDES))


def load_matching_rules(path: Optional[str] = None) -> MatchingRules:
    """
    Returns the default rules, with the keys of the JSON file at `path`
    merged over them. Dict-valued keys extend the defaults; scalar keys
    replace them.
    """
    rules = MatchingRules()
    if not path:
        return rules

    try:
        overrides = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Matching rules file '{path}' is not valid JSON: {e}") from e
    if not isinstance(overrides, dict):
        raise ValueError(f"Matching rules file '{path}' must contain a JSON object")

    known = {f.name for f in fields(MatchingRules)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown matching rule keys: {', '.join(sorted(unknown))}")

    changes = {}
    for key, value in overrides.items():
        current = getattr(rules, key)
        if isinstance(current, dict):
            if not isinstance(value, dict):
                raise ValueError(f"Matching rule '{key}' must be an object")
            changes[key] = {**current, **value}
        else:
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValueError(f"Matching rule '{key}' must be a number")
            changes[key] = float(value)
    return replace(rules, **changes)
