"""Health check router."""

from fastapi import APIRouter, Depends

from ..services.quote_service import QuoteService, get_quote_service

router = APIRouter()


@router.get("/health")
async def health_check(service: QuoteService = Depends(get_quote_service)):
    """Health check endpoint with upstream token status."""
    return {
        "status": "ok",
        "service": "quotedash",
        "version": "1.0.0",
        "upstream": service.get_status(),
    }
