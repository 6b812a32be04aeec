"""Quote, batch and history API router.

Failures are always returned as JSON `{"error": message}` with a non-2xx status.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..services.batch import EMPTY_SYMBOLS_MESSAGE, EmptySymbolSetError
from ..services.history import HistoryRange
from ..services.quote_service import QuoteService, get_quote_service

logger = logging.getLogger(__name__)

router = APIRouter()


class QuoteResponse(BaseModel):
    """Normalized quote."""
    price: float
    change: float
    changePercent: float
    high: float
    low: float
    open: float
    previousClose: float
    isUp: bool
    timestamp: str


class HistoryPointResponse(BaseModel):
    """One point of a price history."""
    time: int
    price: float


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/quote/{symbol}", response_model=QuoteResponse)
async def get_quote(symbol: str, service: QuoteService = Depends(get_quote_service)):
    """Get the latest quote for one symbol."""
    try:
        record = await service.get_quote(symbol)
    except Exception as e:
        logger.error(f"Quote error [{symbol}]: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    return record.to_dict()


@router.post("/batch")
async def get_batch(request: Request, service: QuoteService = Depends(get_quote_service)):
    """Get quotes for many symbols; failed symbols carry an error entry."""
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    symbols = payload.get("symbols") if isinstance(payload, dict) else None

    try:
        results = await service.get_batch(symbols)
    except EmptySymbolSetError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e) or EMPTY_SYMBOLS_MESSAGE)
    except Exception as e:
        logger.error(f"Batch error: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

    return {symbol: item.to_dict() for symbol, item in results.items()}


@router.get("/history/{symbol}", response_model=List[HistoryPointResponse])
async def get_history(
    symbol: str,
    range_: str = Query(HistoryRange.ONE_DAY.value, alias="range"),
    service: QuoteService = Depends(get_quote_service),
):
    """Get closing-price history for one symbol over the requested range."""
    try:
        history_range = HistoryRange(range_)
    except ValueError:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            f"range must be one of {[r.value for r in HistoryRange]}",
        )

    try:
        points = await service.get_history(symbol, history_range)
    except Exception as e:
        logger.error(f"History error [{symbol}]: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    return [point.to_dict() for point in points]
