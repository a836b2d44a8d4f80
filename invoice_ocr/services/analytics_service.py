from collections import defaultdict
from typing import Any, Dict, List

from pydantic import ValidationError

from invoice_ocr.schemas import Invoice
from invoice_ocr.services.reconciliation_service import line_net

TOP_N = 10


def _ranked(totals: Dict[str, float], limit: int | None = None) -> List[Dict[str, Any]]:
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return [{"name": name, "gasto": round(value, 2)} for name, value in ranked]


def compute_analytics(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Spend summaries over stored invoices. Rows that do not fit the schema are skipped."""
    invoices = []
    for record in records:
        try:
            invoices.append(Invoice.from_record(record))
        except ValidationError as e:
            print(f"Skipping stored invoice {record.get('id')} in analytics: {e}")

    total_gasto = 0.0
    by_supplier = defaultdict(float)
    by_client = defaultdict(float)
    by_article = defaultdict(float)
    unique_items = {}

    for invoice in invoices:
        invoice_total = 0.0
        for item in invoice.items:
            neto = line_net(item)
            invoice_total += neto
            by_article[item.descripcion or ""] += neto
            # Later occurrences replace earlier ones
            unique_items[item.descripcion or ""] = item
        total_gasto += invoice_total
        by_supplier[invoice.proveedor or ""] += invoice_total
        by_client[invoice.cliente or ""] += invoice_total

    items = list(unique_items.values())
    most_expensive = sorted(items, key=lambda i: i.precio_ud or 0.0, reverse=True)[:TOP_N]
    highest_vat = sorted(items, key=lambda i: i.iva or 0.0, reverse=True)[:TOP_N]

    return {
        "total_gasto": round(total_gasto, 2),
        "facturas": len(invoices),
        "proveedores_activos": len({invoice.proveedor for invoice in invoices}),
        "articulos_comprados": len(unique_items),
        "gasto_por_proveedor": _ranked(by_supplier),
        "gasto_por_cliente": _ranked(by_client),
        "top_articulos": _ranked(by_article, TOP_N),
        "top_mas_caros": [i.model_dump(by_alias=True) for i in most_expensive],
        "top_mayor_iva": [i.model_dump(by_alias=True) for i in highest_vat],
    }
