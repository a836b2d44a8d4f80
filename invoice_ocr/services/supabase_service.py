from typing import Any, Dict, List, Optional
from supabase import create_client, Client

from invoice_ocr.config import SUPABASE_URL, SUPABASE_KEY, PROCESSED_INVOICES_TABLE, MASTER_TABLES

# The library is synchronous: callers run these helpers with asyncio.to_thread.

# Initialise the Supabase client once so we can re-use the HTTP keep-alive pool
_supabase: Client | None = None


def is_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_KEY)


def _get_supabase_client() -> Client:
    """Return a singleton Supabase client."""
    global _supabase
    if _supabase is None:
        if not is_configured():
            raise RuntimeError("SUPABASE_URL / SUPABASE_SERVICE_KEY environment variables not set")
        _supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
    return _supabase


def fetch_table(table_name: str) -> List[Dict[str, Any]]:
    supabase = _get_supabase_client()
    response = supabase.table(table_name).select("*").execute()
    return response.data or []


def fetch_master_data() -> Dict[str, List[Dict[str, Any]]]:
    """Fetches every master table wholesale, keyed by table name."""
    master_rows = {}
    for table_name in MASTER_TABLES:
        master_rows[table_name] = fetch_table(table_name)
        print(f"<-- Fetched {len(master_rows[table_name])} rows from '{table_name}'.")
    return master_rows


def insert_processed_invoice(invoice_data: Dict[str, Any]) -> Dict[str, Any]:
    supabase = _get_supabase_client()
    response = supabase.table(PROCESSED_INVOICES_TABLE).insert({
        "numero_factura": invoice_data.get("numeroFactura"),
        "fecha_factura": invoice_data.get("fecha"),
        "proveedor": invoice_data.get("proveedor"),
        "cliente": invoice_data.get("cliente"),
        "items": invoice_data.get("items") or [],
    }).execute()
    rows = response.data or []
    return rows[0] if rows else {}


def list_processed_invoices() -> List[Dict[str, Any]]:
    supabase = _get_supabase_client()
    response = (
        supabase.table(PROCESSED_INVOICES_TABLE)
        .select("*")
        .order("created_at", desc=True)
        .execute()
    )
    return response.data or []


def get_processed_invoice(invoice_id: int) -> Optional[Dict[str, Any]]:
    supabase = _get_supabase_client()
    response = (
        supabase.table(PROCESSED_INVOICES_TABLE)
        .select("*")
        .eq("id", invoice_id)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    return rows[0] if rows else None


def delete_processed_invoices(invoice_ids: List[int]) -> int:
    supabase = _get_supabase_client()
    response = (
        supabase.table(PROCESSED_INVOICES_TABLE)
        .delete()
        .in_("id", invoice_ids)
        .execute()
    )
    return len(response.data or [])
