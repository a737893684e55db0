"""
Domain enums (minimal set used for clarity in services).
"""

from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class MemberRole(str, Enum):
    OWNER = "owner"
    VOLUNTEER = "volunteer"
    MEMBER = "member"


class FailureReason(str, Enum):
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    WRONG_TRANSACTION_TYPE = "wrong_transaction_type"
    MALFORMED_TRANSACTION = "malformed_transaction"
    RECEIVER_MISMATCH = "receiver_mismatch"
    INSUFFICIENT_AMOUNT = "insufficient_amount"
