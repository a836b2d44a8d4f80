from fastapi import APIRouter, Request

from invoice_ocr.routers.masters import get_master_data
from invoice_ocr.schemas import ArticleMatch, DelegationMatch, MatchRequest, SupplierMatch

router = APIRouter()


@router.post("/api/match/supplier", response_model=SupplierMatch)
async def match_supplier(request: Request, match_request: MatchRequest):
    """Resolves a supplier name to its master code and tax id (CIF)."""
    return get_master_data(request).supplier_resolver.resolve(match_request.query)


@router.post("/api/match/article", response_model=ArticleMatch)
async def match_article(request: Request, match_request: MatchRequest):
    """Resolves a line-item description to a master article, subfamily and VAT rate."""
    return get_master_data(request).article_resolver.resolve(match_request.query)


@router.post("/api/match/delegation", response_model=DelegationMatch)
async def match_delegation(request: Request, match_request: MatchRequest):
    """Resolves the invoiced client name to a delegation code."""
    return get_master_data(request).delegation_resolver.resolve(match_request.query)
