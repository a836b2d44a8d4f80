import asyncio
import time
from typing import Optional
from fastapi import APIRouter, Request, HTTPException

from invoice_ocr.config import MASTER_TABLES
from invoice_ocr.matching.resolvers import MasterData
from invoice_ocr.services.master_data_service import load_master_data
from invoice_ocr.services.master_search import search_masters

router = APIRouter()


def get_master_data(request: Request) -> MasterData:
    master_data = getattr(request.app.state, "master_data", None)
    if master_data is None:
        raise HTTPException(status_code=503, detail="Master data not loaded. Matching is unavailable.")
    return master_data


@router.get("/api/masters/{table_name}")
async def search_master_table(request: Request, table_name: str, q: Optional[str] = None):
    if table_name not in MASTER_TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown master table '{table_name}'")

    master_data = get_master_data(request)
    rows = {
        "proveedores": master_data.suppliers,
        "articulos": master_data.articles,
        "delegaciones": master_data.delegations,
    }[table_name]
    results = search_masters([row.model_dump() for row in rows], MASTER_TABLES[table_name], q or "")
    return {"table": table_name, "total": len(results), "items": results}


@router.post("/api/masters/refresh")
async def refresh_master_data(request: Request):
    start_time = time.time()
    rules = getattr(request.app.state, "matching_rules", None) or get_master_data(request).rules
    try:
        master_data = await asyncio.to_thread(load_master_data, rules)
    except Exception as e:
        print(f"Error refreshing master data: {e}")
        raise HTTPException(status_code=502, detail=f"Could not refresh master data: {str(e)}")

    request.app.state.master_data = master_data
    print(f"Master data refreshed in {time.time() - start_time:.3f} seconds.")
    return {"status": "ok", "counts": master_data.counts()}
