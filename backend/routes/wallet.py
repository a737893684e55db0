"""
Wallet endpoints.

    GET  /wallet/{wallet}/balance  - ALGO balance of an address
"""
import logging

from fastapi import APIRouter, Depends

from deps import get_chain_client
from domain.responses import StandardErrorResponse, StandardSuccessResponse
from models import WalletBalance
from services import wallet_service
from utils.validators import validated_wallet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get(
    "/{wallet}/balance",
    response_model=StandardSuccessResponse[WalletBalance],
    response_model_exclude_none=True,
    responses={400: {"model": StandardErrorResponse}, 502: {"model": StandardErrorResponse}},
)
async def get_wallet_balance(
    wallet: str = Depends(validated_wallet),
    chain=Depends(get_chain_client),
):
    """Balance in ALGO, so the payer can check funds before signing."""
    balance = await wallet_service.check_balance(chain, wallet)
    return StandardSuccessResponse(data=WalletBalance(wallet=wallet, balanceAlgo=balance))
