import asyncio
from fastapi import APIRouter, HTTPException

from invoice_ocr.services import supabase_service
from invoice_ocr.services.analytics_service import compute_analytics

router = APIRouter()


@router.get("/api/analytics")
async def invoice_analytics():
    try:
        records = await asyncio.to_thread(supabase_service.list_processed_invoices)
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        print(f"Error fetching invoices for analytics: {e}")
        raise HTTPException(status_code=500, detail=f"An internal error occurred: {str(e)}")
    return compute_analytics(records)
