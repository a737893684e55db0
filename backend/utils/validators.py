"""
Input validation utilities for the UniLedger payments service.

Provides reusable validators for Algorand addresses, transaction IDs and
other inputs.
"""
import re

from fastapi import Path
from algosdk import encoding

from domain.constants import ALGORAND_ADDRESS_LENGTH, ALGORAND_TXID_LENGTH
from domain.errors import ValidationError

_TXID_RE = re.compile(rf"[A-Z2-7]{{{ALGORAND_TXID_LENGTH}}}")


def validate_algorand_address(address: str | None, field: str = "walletAddress") -> str:
    """
    Validate an Algorand address format and checksum.

    Args:
        address: Algorand wallet address string
        field: Name reported in the error message

    Returns:
        The validated address, stripped of surrounding whitespace

    Raises:
        ValidationError (400) if the address is invalid
    """
    address = (address or "").strip()
    if not address:
        raise ValidationError("Wallet address is required", field=field)

    if len(address) != ALGORAND_ADDRESS_LENGTH:
        raise ValidationError(
            f"Invalid Algorand address: expected {ALGORAND_ADDRESS_LENGTH} characters, got {len(address)}",
            field=field,
        )

    if not encoding.is_valid_address(address):
        raise ValidationError(
            f"Invalid Algorand address checksum: {address[:12]}...",
            field=field,
        )

    return address


def validated_wallet(wallet: str = Path(..., description="Algorand wallet address")) -> str:
    """FastAPI dependency for validating wallet path parameters."""
    return validate_algorand_address(wallet, field="wallet")


def validate_transaction_id(transaction_id: str | None, field: str = "transactionId") -> str:
    """
    Validate an Algorand transaction ID (52 base32 characters, uppercase).

    The ID ends up in the algod request path, so anything else is rejected
    before a lookup is attempted.

    Raises:
        ValidationError (400) if the ID is malformed
    """
    transaction_id = (transaction_id or "").strip()
    if not transaction_id:
        raise ValidationError("Transaction ID is required", field=field)

    if not _TXID_RE.fullmatch(transaction_id):
        raise ValidationError(
            f"Invalid Algorand transaction ID: expected {ALGORAND_TXID_LENGTH} base32 characters",
            field=field,
        )

    return transaction_id
