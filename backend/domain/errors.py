"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the exception handlers
in main.py. Each class carries a stable snake_case ``code`` that clients
can switch on.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    code = "not_found"

    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnauthorizedError(DomainError):
    """Unauthorized access (401)."""
    code = "unauthorized"

    def __init__(self, message: str = "Authentication required", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class ConflictError(DomainError):
    """Resource conflict (409)."""
    code = "conflict"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class RateLimitedError(DomainError):
    """Too many requests from one client (429)."""
    code = "rate_limited"

    def __init__(self, message: str, headers: dict[str, str] | None = None, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_429_TOO_MANY_REQUESTS, details=details)
        self.headers = headers


class BlockchainError(DomainError):
    """Algorand node unreachable or returned an unusable answer (502)."""
    code = "blockchain_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)


class PersistenceError(DomainError):
    """Database write failed (500)."""
    code = "persistence_error"

    def __init__(self, message: str = "Failed to save changes", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


# ── Event / membership ──────────────────────────────────────────────


class InvalidEventConfigurationError(ValidationError):
    """Event cannot take payments (no wallet or no positive price)."""
    code = "invalid_event_configuration"


class NotFreeError(ValidationError):
    """Free-join attempted on a ticketed event."""
    code = "not_free"

    def __init__(self, details: dict | None = None):
        super().__init__("This event requires payment", details=details)


class AlreadyMemberError(ConflictError):
    code = "already_member"

    def __init__(self, details: dict | None = None):
        super().__init__("You are already a member of this event", details=details)


class DuplicateTransactionError(ConflictError):
    code = "duplicate_transaction"

    def __init__(self, transaction_id: str):
        super().__init__(
            "This transaction has already been used",
            details={"transactionId": transaction_id},
        )


# ── Chain lookup ────────────────────────────────────────────────────


class TransactionNotFoundError(BlockchainError):
    """Transaction not visible on the node (unknown, still pending, or rejected)."""
    code = "transaction_not_found"

    def __init__(self, transaction_id: str, details: dict | None = None):
        super().__init__(
            "Transaction not found on blockchain. Please ensure the transaction is confirmed.",
            details={"transactionId": transaction_id, **(details or {})},
        )
        self.status_code = status.HTTP_404_NOT_FOUND


# ── Verification ────────────────────────────────────────────────────


class VerificationError(DomainError):
    """On-chain transaction does not satisfy the event's payment policy (400)."""
    code = "verification_failed"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class WrongTransactionTypeError(VerificationError):
    code = "wrong_transaction_type"

    def __init__(self, kind: str):
        super().__init__(
            "Transaction is not a payment transaction",
            details={"type": kind},
        )


class MalformedTransactionError(VerificationError):
    code = "malformed_transaction"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details=details)
        self.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ReceiverMismatchError(VerificationError):
    code = "receiver_mismatch"

    def __init__(self, details: dict | None = None):
        super().__init__(
            "Transaction receiver does not match event wallet address",
            details=details,
        )


class InsufficientAmountError(VerificationError):
    code = "insufficient_amount"

    def __init__(self, expected_algo: float, received_algo: float):
        super().__init__(
            f"Insufficient payment amount. Expected: {expected_algo} ALGO, Received: {received_algo} ALGO",
            details={"expectedAlgo": expected_algo, "receivedAlgo": received_algo},
        )


# ── Partial failure ─────────────────────────────────────────────────


class PartialFailureError(DomainError):
    """
    Payment verified and recorded, but the membership grant failed.

    Distinct from a generic 500 so the client can tell the user their
    payment went through and support can grant access by hand.
    """
    code = "partial_failure"

    def __init__(self, transaction_id: str, details: dict | None = None):
        super().__init__(
            "Payment verified but failed to add you to event",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"transactionId": transaction_id, "paymentRecorded": True, **(details or {})},
        )
