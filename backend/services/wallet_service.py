"""
Wallet helpers - balance lookups for the browser payment flow.
"""
import logging

from algosdk.error import AlgodHTTPError

from domain.errors import BlockchainError
from services.async_executor import run_blocking
from services.payment_service import micro_to_algo
from utils.errors import error_details
from utils.validators import validate_algorand_address

logger = logging.getLogger(__name__)


async def check_balance(chain, address: str) -> str:
    """
    Balance of an address in ALGO, formatted to 6 decimals.

    An account the node has never seen (404) is unfunded, not an error.
    """
    address = validate_algorand_address(address, field="wallet")
    try:
        info = await run_blocking(chain.account_info, address)
    except AlgodHTTPError as e:
        if getattr(e, "code", None) == 404:
            return "0.000000"
        logger.error(f"Error fetching balance for {address}: {e}")
        raise BlockchainError("Failed to fetch balance", details=error_details(e))
    except OSError as e:
        logger.error(f"Error fetching balance for {address}: {e}")
        raise BlockchainError("Failed to fetch balance", details=error_details(e))

    micro = info.get("amount") or 0
    return f"{micro_to_algo(int(micro)):.6f}"
