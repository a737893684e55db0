"""
Normalization of algod pending-transaction responses.

Node and SDK versions disagree on where the payment fields live and how
addresses are encoded. Each accepted shape is one small rule below;
normalize_payment_txn() chains them into a NormalizedPaymentTxn.

Accepted shapes:
    body location     response.txn.txn | response.transaction.txn | response.txn
    field aliases     amt/amount, rcv/receiver, snd/sender
    nested payment    body.payment.{amount, receiver} override the flat fields
    key wrapper       {"publicKey": x} or {"public_key": x} unwrap to x
    address encoding  58-char address | 32 raw bytes | base64 of 32 bytes
"""
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any

from algosdk import encoding

from domain.constants import (
    ALGORAND_ADDRESS_LENGTH,
    ALGORAND_PUBLIC_KEY_BYTES,
    PAYMENT_TXN_TYPE,
)
from domain.errors import MalformedTransactionError, WrongTransactionTypeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedPaymentTxn:
    """Payment fields extracted from an algod response."""

    amount_micro: int
    receiver_address: str
    sender_address: str | None = None  # best effort, logging only
    kind: str | None = None
    confirmed_round: int | None = None


# ── Parse rules ─────────────────────────────────────────────────────

def find_txn_body(response: Any) -> dict | None:
    """Locate the transaction body: txn.txn, then transaction.txn, then flat txn."""
    if not isinstance(response, dict):
        return None

    outer = response.get("txn")
    if isinstance(outer, dict) and isinstance(outer.get("txn"), dict):
        return outer["txn"]

    alt = response.get("transaction")
    if isinstance(alt, dict) and isinstance(alt.get("txn"), dict):
        return alt["txn"]

    if isinstance(outer, dict):
        return outer
    return None


def _first_present(mapping: dict, *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def extract_raw_fields(body: dict) -> tuple[Any, Any, Any]:
    """Return (amount, receiver, sender) as found, short names first."""
    raw_amount = _first_present(body, "amt", "amount")
    raw_receiver = _first_present(body, "rcv", "receiver")
    raw_sender = _first_present(body, "snd", "sender")

    payment = body.get("payment")
    if isinstance(payment, dict):
        nested_amount = _first_present(payment, "amount", "amt")
        nested_receiver = _first_present(payment, "receiver", "rcv")
        if nested_amount is not None:
            raw_amount = nested_amount
        if nested_receiver is not None:
            raw_receiver = nested_receiver

    return raw_amount, raw_receiver, raw_sender


def unwrap_public_key(value: Any) -> Any:
    """{"publicKey": x} → x. Anything else is returned untouched."""
    if isinstance(value, dict):
        for key in ("publicKey", "public_key"):
            if value.get(key) is not None:
                return value[key]
    return value


def decode_address(value: Any, field: str = "receiver") -> str:
    """
    Resolve an address value to its canonical 58-char string.

    A 58-char string is taken as already encoded and is not checksummed here:
    the caller compares it against a configured address anyway.
    """
    if isinstance(value, str) and len(value) == ALGORAND_ADDRESS_LENGTH:
        return value

    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
    elif isinstance(value, str):
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise MalformedTransactionError(
                f"Transaction {field} is neither an address nor base64",
                details={"field": field},
            )
    else:
        raise MalformedTransactionError(
            f"Unsupported {field} encoding: {type(value).__name__}",
            details={"field": field},
        )

    if len(raw) != ALGORAND_PUBLIC_KEY_BYTES:
        raise MalformedTransactionError(
            f"Transaction {field} must be {ALGORAND_PUBLIC_KEY_BYTES} bytes, got {len(raw)}",
            details={"field": field},
        )
    return encoding.encode_address(raw)


def decode_sender(value: Any) -> str | None:
    if value is None:
        return None
    try:
        return decode_address(unwrap_public_key(value), field="sender")
    except MalformedTransactionError:
        return None


def parse_amount(value: Any) -> int:
    """Amount in microAlgos as a non-negative int."""
    if isinstance(value, bool):
        amount = None
    elif isinstance(value, int):
        amount = value
    elif isinstance(value, float) and value.is_integer():
        amount = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        amount = int(value.strip())
    else:
        amount = None

    if amount is None or amount < 0:
        raise MalformedTransactionError(
            "Transaction amount is not a valid microAlgo value",
            details={"field": "amount"},
        )
    return amount


def parse_kind(body: dict) -> str | None:
    kind = body.get("type")
    return kind if isinstance(kind, str) and kind else None


def parse_confirmed_round(response: dict) -> int | None:
    value = response.get("confirmed-round")
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None


def pool_error(response: Any) -> str | None:
    """Non-empty "pool-error" means the node rejected the transaction."""
    if isinstance(response, dict):
        err = response.get("pool-error")
        if isinstance(err, str) and err.strip():
            return err.strip()
    return None


# ── Entry point ─────────────────────────────────────────────────────

def normalize_payment_txn(response: Any) -> NormalizedPaymentTxn:
    """
    Extract the payment fields from a pending-transaction response.

    Raises:
        WrongTransactionTypeError: explicit type other than "pay"
        MalformedTransactionError: body, receiver or amount not extractable
    """
    body = find_txn_body(response)
    if body is None:
        raise MalformedTransactionError("Could not find transaction body in response")

    kind = parse_kind(body)
    if kind is not None and kind != PAYMENT_TXN_TYPE:
        raise WrongTransactionTypeError(kind)

    raw_amount, raw_receiver, raw_sender = extract_raw_fields(body)
    if raw_receiver is None:
        raise MalformedTransactionError("Transaction receiver (rcv) is missing")
    if raw_amount is None:
        raise MalformedTransactionError("Transaction amount (amt) is missing")

    txn = NormalizedPaymentTxn(
        amount_micro=parse_amount(raw_amount),
        receiver_address=decode_address(unwrap_public_key(raw_receiver)),
        sender_address=decode_sender(raw_sender),
        kind=kind,
        confirmed_round=parse_confirmed_round(response),
    )
    logger.debug(
        f"Normalized txn: amount={txn.amount_micro} "
        f"receiver={txn.receiver_address[:8]}... sender={(txn.sender_address or 'unknown')[:8]}"
    )
    return txn
