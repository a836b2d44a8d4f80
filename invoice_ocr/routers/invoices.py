import asyncio
import time
import traceback
from fastapi import APIRouter, Request, HTTPException
from pydantic import ValidationError

from invoice_ocr.routers.masters import get_master_data
from invoice_ocr.schemas import DeleteInvoicesRequest, Invoice, ProcessInvoiceRequest, ReconciledInvoice
from invoice_ocr.services import supabase_service
from invoice_ocr.services.extraction_service import (
    DocumentTooLargeError,
    UnsupportedDocumentError,
    process_invoice_image,
)
from invoice_ocr.services.reconciliation_service import reconcile_invoice

router = APIRouter()


async def _run_supabase(func, *args):
    """Runs a synchronous Supabase helper off the event loop, mapping errors to HTTP codes."""
    try:
        return await asyncio.to_thread(func, *args)
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        print(f"Supabase error in {func.__name__}: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.post("/api/process-invoice")
async def process_invoice(request: Request, body: ProcessInvoiceRequest):
    if not body.image_base64:
        raise HTTPException(status_code=400, detail="Missing imageBase64")

    start_time = time.time()
    print(f"Recibido archivo con mimeType: {body.mime_type}")
    try:
        invoice_data = await process_invoice_image(body.image_base64, body.mime_type)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=415, detail={
            "error": "PDF no soportado directamente",
            "details": str(e),
        })
    except DocumentTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except Exception as e:
        print(f"Error al procesar la imagen: {str(e)}\nTraceback: {traceback.format_exc()}")
        raise HTTPException(status_code=500, detail={
            "error": "Error processing image",
            "details": str(e),
        })

    all_invoices = []
    if invoice_data.get("numeroFactura") or invoice_data.get("raw"):
        all_invoices.append(invoice_data)
    else:
        print("No se pudieron extraer datos de la factura")

    master_data = get_master_data(request)
    reconciled = []
    for data in all_invoices:
        if "raw" in data:
            continue
        try:
            invoice = Invoice.model_validate(data)
        except ValidationError as e:
            print(f"Extracted invoice does not fit the invoice schema, not storing it: {e}")
            continue

        stored = {}
        if supabase_service.is_configured():
            try:
                # validated form only
                stored = await asyncio.to_thread(
                    supabase_service.insert_processed_invoice,
                    invoice.model_dump(by_alias=True, exclude={"id"}),
                )
            except Exception as e:
                # The extraction is still returned to the caller
                print(f"Error saving to Supabase: {e}")
        else:
            print("Supabase env vars (URL or Service Key) not configured. Skipping DB save.")
        invoice.id = stored.get("id")
        reconciled.append(reconcile_invoice(invoice, master_data))

    print(f"Total process-invoice time: {time.time() - start_time:.3f} seconds")
    return {"success": True, "data": all_invoices, "reconciled": reconciled}


@router.get("/api/invoices")
async def list_invoices():
    records = await _run_supabase(supabase_service.list_processed_invoices)
    return {"total": len(records), "items": records}


@router.get("/api/invoices/{invoice_id}")
async def get_invoice(invoice_id: int):
    record = await _run_supabase(supabase_service.get_processed_invoice, invoice_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Invoice {invoice_id} not found")
    return record


@router.get("/api/invoices/{invoice_id}/reconciled", response_model=ReconciledInvoice)
async def get_reconciled_invoice(request: Request, invoice_id: int):
    record = await _run_supabase(supabase_service.get_processed_invoice, invoice_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Invoice {invoice_id} not found")
    try:
        invoice = Invoice.from_record(record)
    except ValidationError as e:
        print(f"Stored invoice {invoice_id} does not fit the invoice schema: {e}")
        raise HTTPException(status_code=422, detail=f"Stored invoice {invoice_id} cannot be reconciled")
    return reconcile_invoice(invoice, get_master_data(request))


@router.delete("/api/invoices/{invoice_id}")
async def delete_invoice(invoice_id: int):
    deleted = await _run_supabase(supabase_service.delete_processed_invoices, [invoice_id])
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Invoice {invoice_id} not found")
    return {"deleted": deleted}


@router.post("/api/invoices/delete")
async def delete_invoices(body: DeleteInvoicesRequest):
    deleted = await _run_supabase(supabase_service.delete_processed_invoices, body.ids)
    return {"deleted": deleted}


@router.post("/api/reconcile", response_model=ReconciledInvoice)
async def reconcile(request: Request, invoice: Invoice):
    """Reconciles an invoice payload (camelCase or snake_case keys) against the master data."""
    return reconcile_invoice(invoice, get_master_data(request))
