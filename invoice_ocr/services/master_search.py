from typing import Any, Dict, List
from thefuzz import fuzz


def search_masters(rows: List[Dict[str, Any]], search_fields: List[str], query: str) -> List[Dict[str, Any]]:
    """
    Case-insensitive substring filter over `search_fields`, best matches
    first (closest overall ratio). An empty query returns the rows unchanged.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return rows

    hits = []
    for row in rows:
        values = [str(row.get(f) or "").lower() for f in search_fields]
        if not any(needle in value for value in values):
            continue
        score = max(fuzz.ratio(needle, value) for value in values if value)
        hits.append((score, row))

    # sorted() is stable, so equal scores keep the table order
    hits = sorted(hits, key=lambda hit: hit[0], reverse=True)
    return [row for _, row in hits]
