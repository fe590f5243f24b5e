from typing import List, Union

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from upbank_proxy.cache import CacheEntry, TransactionCache
from upbank_proxy.errors import TransformError, UpBankProxyError
from upbank_proxy.logging_config import get_logger
from upbank_proxy.schemas import ErrorOut, FlatTransaction, TransactionsOut
from .deps import get_transaction_cache

logger = get_logger("upbank_proxy.api.transactions")

router = APIRouter(prefix="/transactions", tags=["transactions"])

CSV_FILENAME = "transactions.csv"


async def _cached_entry(cache: TransactionCache) -> Union[CacheEntry, JSONResponse]:
    try:
        return await cache.get_or_refresh()
    except TransformError as e:
        logger.error("Failed to flatten transactions (transaction_id=%s): %s", e.transaction_id, e)
        return JSONResponse(status_code=500, content={"error": "Failed to process transactions"})
    except UpBankProxyError as e:
        logger.error("Failed to fetch transactions: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch transactions"})


@router.get("", response_model=TransactionsOut, responses={500: {"model": ErrorOut}})
async def get_transactions(cache: TransactionCache = Depends(get_transaction_cache)):
    """
    Flattened transactions with the time they were fetched from Up.
    """
    entry = await _cached_entry(cache)
    if isinstance(entry, JSONResponse):
        return entry
    return TransactionsOut(fetched_at=entry.fetched_at, count=len(entry.rows), data=list(entry.rows))


@router.get("/tableau", response_model=List[FlatTransaction], responses={500: {"model": ErrorOut}})
async def get_transactions_tableau(cache: TransactionCache = Depends(get_transaction_cache)):
    """
    Bare JSON array of flattened rows for Tableau's web data connector.
    """
    entry = await _cached_entry(cache)
    if isinstance(entry, JSONResponse):
        return entry
    return list(entry.rows)


@router.get(
    "/csv",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}, 500: {"model": ErrorOut}},
)
async def get_transactions_csv(cache: TransactionCache = Depends(get_transaction_cache)):
    entry = await _cached_entry(cache)
    if isinstance(entry, JSONResponse):
        return entry
    return Response(
        content=entry.csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={CSV_FILENAME}"},
    )
