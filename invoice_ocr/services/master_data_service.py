import time

from invoice_ocr.config import MATCHING_RULES_PATH
from invoice_ocr.matching.resolvers import MasterData
from invoice_ocr.matching.rules import MatchingRules, load_matching_rules
from invoice_ocr.services import supabase_service


def load_rules() -> MatchingRules:
    rules = load_matching_rules(MATCHING_RULES_PATH)
    if MATCHING_RULES_PATH:
        print(f"Loaded matching rules from '{MATCHING_RULES_PATH}'.")
    return rules


def load_master_data(rules: MatchingRules) -> MasterData:
    """Fetches suppliers, articles and delegations and builds the resolvers."""
    if not supabase_service.is_configured():
        print("Supabase env vars (URL or Service Key) not configured. Master data will be empty.")
        return MasterData(rules=rules)

    start_time = time.time()
    rows = supabase_service.fetch_master_data()
    master_data = MasterData.from_rows(
        rows.get("proveedores", []),
        rows.get("articulos", []),
        rows.get("delegaciones", []),
        rules=rules,
    )
    print(f"Master data loaded in {time.time() - start_time:.3f} seconds: {master_data.counts()}")
    return master_data
