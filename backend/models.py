"""
Pydantic models for request/response validation.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ApiBase(BaseModel):
    """Shared base - allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Params ──────────────────────────────────────────────────────────

class TransactionParamsResponse(ApiBase):
    """Suggested parameters the browser needs to build a payment transaction."""
    fee: int = Field(..., description="Minimum transaction fee in microAlgos")
    first_valid_round: int = Field(..., alias="firstValidRound")
    last_valid_round: int = Field(..., alias="lastValidRound")
    genesis_id: str = Field(..., alias="genesisId")
    genesis_hash: str = Field(..., alias="genesisHash")


# ── Payments ────────────────────────────────────────────────────────

class VerifyPaymentRequest(ApiBase):
    """Client-asserted payment. Nothing here is trusted until checked on chain."""
    transaction_id: Optional[str] = Field(
        default=None,
        alias="transactionId",
        max_length=64,
        description="Algorand transaction ID returned after submission",
    )
    wallet_address: Optional[str] = Field(
        default=None,
        alias="walletAddress",
        max_length=100,
        description="Wallet the payment was sent from",
    )


class VerifiedPayment(ApiBase):
    transaction_id: str = Field(..., alias="transactionId")
    amount: float = Field(..., description="Amount received in ALGO")
    verified: bool = True


class VerifyPaymentResult(ApiBase):
    """``data`` of a successful verification."""
    message: str = "Payment verified! You now have access to the event."
    payment: VerifiedPayment


class JoinFreeResult(ApiBase):
    """``data`` of a successful free join."""
    message: str = "Successfully joined the event!"
    event_id: str = Field(..., alias="eventId")
    role: str


# ── Wallet ──────────────────────────────────────────────────────────

class WalletBalance(ApiBase):
    wallet: str
    balance_algo: str = Field(..., alias="balanceAlgo", description="Balance in ALGO, 6 decimals")
