import json

import pytest

from invoice_ocr.config import ARTICLE_OVERRIDES, MATCH_THRESHOLDS
from invoice_ocr.matching.rules import MatchingRules, load_matching_rules


def test_defaults_without_file():
    rules = load_matching_rules(None)
    assert rules == MatchingRules()
    assert rules.article_threshold == MATCH_THRESHOLDS["article"]
    assert rules.article_overrides == ARTICLE_OVERRIDES


def test_file_values_merge_over_defaults(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "article_threshold": 80,
        "supplier_overrides": {"acme": "ACME DISTRIBUCION SL"},
    }))

    rules = load_matching_rules(str(path))

    assert rules.article_threshold == 80.0
    assert rules.supplier_threshold == MATCH_THRESHOLDS["supplier"]
    assert rules.supplier_overrides == {
        "jopiad": "JOSE PEDROSA - JOPIAD",
        "acme": "ACME DISTRIBUCION SL",
    }


@pytest.mark.parametrize("content, message", [
    ("{not json", "not valid JSON"),
    ("[1, 2]", "JSON object"),
    ('{"unknown_key": 1}', "Unknown matching rule keys"),
    ('{"pattern_weight": "high"}', "must be a number"),
    ('{"pattern_weight": true}', "must be a number"),
    ('{"typo_corrections": ["a"]}', "must be an object"),
])
def test_invalid_files_are_rejected(tmp_path, content, message):
    path = tmp_path / "rules.json"
    path.write_text(content)
    with pytest.raises(ValueError, match=message):
        load_matching_rules(str(path))


def test_rules_are_immutable():
    rules = MatchingRules()
    with pytest.raises(AttributeError):
        rules.article_threshold = 10
