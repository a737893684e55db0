"""
Transaction parameters endpoint.

The browser wallet flow builds the payment transaction itself; it fetches
fresh suggested params here instead of talking to algod directly.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends

from config import settings
from deps import get_chain_client
from domain.errors import BlockchainError
from domain.responses import StandardErrorResponse
from models import TransactionParamsResponse
from services.async_executor import run_blocking
from utils.errors import error_details

logger = logging.getLogger(__name__)

router = APIRouter(tags=["params"])

_cache = {"data": None, "timestamp": None}


def clear_params_cache() -> None:
    _cache["data"] = None
    _cache["timestamp"] = None


@router.get(
    "/params",
    response_model=TransactionParamsResponse,
    responses={502: {"model": StandardErrorResponse}},
)
async def get_transaction_params(chain=Depends(get_chain_client)):
    """
    Fetch suggested transaction parameters from Algorand TestNet.
    Results are cached for PARAMS_CACHE_SECONDS.
    """
    now = datetime.now(timezone.utc)
    if (
        _cache["data"] is not None
        and _cache["timestamp"] is not None
        and (now - _cache["timestamp"]).total_seconds() < settings.params_cache_seconds
    ):
        return _cache["data"]

    try:
        params = await run_blocking(chain.get_suggested_params)
    except Exception as e:
        logger.error(f"Error fetching transaction parameters: {e}")
        raise BlockchainError("Unable to fetch transaction parameters", details=error_details(e))

    response_data = TransactionParamsResponse(
        fee=max(params.fee or 0, getattr(params, "min_fee", 0) or 0),
        firstValidRound=params.first,
        lastValidRound=params.last,
        genesisId=params.gen,
        genesisHash=params.gh,
    )

    _cache["data"] = response_data
    _cache["timestamp"] = now
    return response_data
