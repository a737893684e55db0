"""
Event payment service - intent resolution, on-chain verification, access grants.

Flow for a ticketed event:
    1. GET details   -> resolve_payment_intent(): price + destination wallet
    2. browser wallet builds, signs and submits the payment to algod itself
    3. POST verify   -> verify_payment(): re-check the transaction on chain,
                        record the attempt, grant membership

Every verification failure past the duplicate check leaves a "failed"
event_payments row so support can trace what the user submitted.
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_CEILING

from algosdk.error import AlgodHTTPError, AlgodResponseError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from domain.constants import MICROALGOS_PER_ALGO
from domain.enums import FailureReason, MemberRole, PaymentStatus
from domain.errors import (
    AlreadyMemberError,
    DuplicateTransactionError,
    InsufficientAmountError,
    InvalidEventConfigurationError,
    MalformedTransactionError,
    NotFoundError,
    NotFreeError,
    PartialFailureError,
    PersistenceError,
    ReceiverMismatchError,
    TransactionNotFoundError,
    ValidationError,
    WrongTransactionTypeError,
)
from repository import PaymentRepository
from services.async_executor import run_blocking
from services.txn_parser import normalize_payment_txn, pool_error
from utils.errors import error_details, exposed_details
from utils.validators import validate_algorand_address, validate_transaction_id

logger = logging.getLogger(__name__)


def algo_to_micro(algo: float) -> int:
    """ALGO → microAlgos, rounded up so a fractional microAlgo is never forgiven."""
    return int((Decimal(str(algo)) * MICROALGOS_PER_ALGO).to_integral_value(rounding=ROUND_CEILING))


def micro_to_algo(micro: int) -> float:
    return micro / MICROALGOS_PER_ALGO


def _short(address: str | None) -> str:
    return f"{address[:8]}..." if address else "unknown"


def payment_to_dict(payment) -> dict:
    return {
        "id": payment.id,
        "eventId": payment.event_id,
        "transactionId": payment.transaction_id,
        "amount": payment.amount,
        "status": payment.status,
        "verifiedAt": payment.verified_at.isoformat() if payment.verified_at else None,
        "createdAt": payment.created_at.isoformat() if payment.created_at else None,
    }


async def _get_event(repo: PaymentRepository, event_id: str):
    event = await repo.get_event(event_id)
    if event is None:
        raise NotFoundError("Event", event_id)
    return event


# ════════════════════════════════════════════════════════════════════
# Payment intent
# ════════════════════════════════════════════════════════════════════

async def resolve_payment_intent(repo: PaymentRepository, event_id: str, user_id: str) -> dict:
    """
    What does this user need to do to get into this event?

    Returns one of:
        {"alreadyPaid": True, "payment": {...}}
        {"alreadyMember": True, "role": "..."}
        {"event": {id, title, ticketPrice, walletAddress}, "alreadyPaid": False, "alreadyMember": False}
    """
    event = await _get_event(repo, event_id)

    payment = await repo.get_verified_payment(event_id, user_id)
    if payment is not None:
        return {"alreadyPaid": True, "payment": payment_to_dict(payment)}

    membership = await repo.get_membership(event_id, user_id)
    if membership is not None:
        return {"alreadyMember": True, "role": membership.role}

    return {
        "event": {
            "id": event.id,
            "title": event.title,
            "ticketPrice": event.ticket_price,
            "walletAddress": event.wallet_address,
        },
        "alreadyPaid": False,
        "alreadyMember": False,
    }


# ════════════════════════════════════════════════════════════════════
# Free join
# ════════════════════════════════════════════════════════════════════

async def join_free_event(repo: PaymentRepository, event_id: str, user_id: str) -> dict:
    """Grant membership on a free event. Never creates a second row for the same user."""
    event = await _get_event(repo, event_id)

    if event.ticket_price and event.ticket_price > 0:
        raise NotFreeError(details={"ticketPrice": event.ticket_price})

    if await repo.get_membership(event_id, user_id) is not None:
        raise AlreadyMemberError()

    try:
        await repo.add_membership(event_id=event_id, user_id=user_id, role=MemberRole.MEMBER)
        await repo.commit()
    except IntegrityError:
        # Concurrent join won the race on uq_event_member
        await repo.rollback()
        raise AlreadyMemberError()
    except SQLAlchemyError as e:
        await repo.rollback()
        logger.error(f"Error adding event member: {e}", exc_info=True)
        raise PersistenceError("Failed to join event", details=error_details(e))

    logger.info(f"Free join: user={user_id} event={event_id}")
    return {"eventId": event_id, "role": MemberRole.MEMBER.value}


# ════════════════════════════════════════════════════════════════════
# Verification
# ════════════════════════════════════════════════════════════════════

async def _record_failure(
    repo: PaymentRepository,
    *,
    event_id: str,
    user_id: str,
    transaction_id: str,
    wallet_address: str,
    reason: FailureReason,
    amount: float,
    amount_micro: int | None = None,
) -> None:
    """
    Persist a failed attempt.

    A failing audit write is logged and does not replace the verification
    error the caller is about to raise.
    """
    try:
        await repo.add_payment(
            event_id=event_id,
            user_id=user_id,
            transaction_id=transaction_id,
            wallet_address=wallet_address,
            amount=amount,
            amount_micro=amount_micro,
            status=PaymentStatus.FAILED,
            failure_reason=reason.value,
        )
        await repo.commit()
    except IntegrityError:
        await repo.rollback()
        logger.warning(f"Failed attempt for tx {transaction_id} already recorded by a concurrent request")
    except SQLAlchemyError as e:
        await repo.rollback()
        logger.error(f"Could not record failed payment for tx {transaction_id}: {e}", exc_info=True)


async def verify_payment(
    repo: PaymentRepository,
    chain,
    *,
    event_id: str,
    user_id: str,
    transaction_id: str | None,
    wallet_address: str | None,
) -> dict:
    """
    Verify a client-asserted Algorand payment and grant event access.

    Args:
        repo: Payment repository bound to the request's session
        chain: Object exposing pending_transaction_info(tx_id) -> dict (sync)
        event_id: Event being paid for
        user_id: Authenticated payer
        transaction_id: Algorand transaction ID claimed by the client
        wallet_address: Wallet the client says it paid from

    Returns:
        dict: {transactionId, amount (ALGO), verified: True}

    Raises:
        ValidationError, NotFoundError, InvalidEventConfigurationError,
        DuplicateTransactionError, TransactionNotFoundError,
        WrongTransactionTypeError, MalformedTransactionError,
        ReceiverMismatchError, InsufficientAmountError,
        PersistenceError, PartialFailureError
    """
    transaction_id = (transaction_id or "").strip()
    wallet_address = (wallet_address or "").strip()
    if not transaction_id or not wallet_address:
        raise ValidationError("Transaction ID and wallet address are required")
    transaction_id = validate_transaction_id(transaction_id)
    wallet_address = validate_algorand_address(wallet_address)

    event = await _get_event(repo, event_id)
    # Plain values: ORM instances are expired by any rollback below
    destination = (event.wallet_address or "").strip()
    ticket_price = event.ticket_price

    if not destination:
        raise InvalidEventConfigurationError("Event does not have a payment wallet configured")
    if not ticket_price or ticket_price <= 0:
        raise InvalidEventConfigurationError("Event does not require payment")

    if await repo.transaction_exists(transaction_id):
        logger.warning(f"Duplicate transaction submitted: {transaction_id} (user={user_id})")
        raise DuplicateTransactionError(transaction_id)

    attempt = dict(
        event_id=event_id,
        user_id=user_id,
        transaction_id=transaction_id,
        wallet_address=wallet_address,
    )

    # ── 1. Chain lookup ──
    try:
        response = await run_blocking(chain.pending_transaction_info, transaction_id)
    except (AlgodHTTPError, AlgodResponseError, OSError) as e:
        logger.warning(f"Transaction lookup error for {transaction_id}: {e}")
        await _record_failure(
            repo, **attempt, reason=FailureReason.TRANSACTION_NOT_FOUND, amount=ticket_price
        )
        raise TransactionNotFoundError(transaction_id, details=error_details(e))

    rejection = pool_error(response)
    if rejection:
        logger.warning(f"Transaction {transaction_id} rejected by node pool: {rejection}")
        await _record_failure(
            repo, **attempt, reason=FailureReason.TRANSACTION_NOT_FOUND, amount=ticket_price
        )
        raise TransactionNotFoundError(transaction_id, details=exposed_details(poolError=rejection))

    # ── 2. Normalize ──
    try:
        txn = normalize_payment_txn(response)
    except WrongTransactionTypeError:
        await _record_failure(
            repo, **attempt, reason=FailureReason.WRONG_TRANSACTION_TYPE, amount=ticket_price
        )
        raise
    except MalformedTransactionError as e:
        logger.error(f"Malformed transaction {transaction_id}: {e.message}")
        await _record_failure(
            repo, **attempt, reason=FailureReason.MALFORMED_TRANSACTION, amount=ticket_price
        )
        raise

    # ── 3. Policy ──
    expected_micro = algo_to_micro(ticket_price)
    received_algo = micro_to_algo(txn.amount_micro)

    if txn.receiver_address != destination:
        logger.info(
            f"Mismatch: Expected {destination}, Got {txn.receiver_address}. "
            f"Sender: {txn.sender_address or 'unknown'}"
        )
        await _record_failure(
            repo, **attempt, reason=FailureReason.RECEIVER_MISMATCH,
            amount=ticket_price, amount_micro=txn.amount_micro,
        )
        raise ReceiverMismatchError(
            details={"expected": destination, "received": txn.receiver_address}
        )

    if txn.amount_micro < expected_micro:
        await _record_failure(
            repo, **attempt, reason=FailureReason.INSUFFICIENT_AMOUNT,
            amount=received_algo, amount_micro=txn.amount_micro,
        )
        raise InsufficientAmountError(expected_algo=float(ticket_price), received_algo=received_algo)

    # ── 4. Record + grant, one transaction ──
    verified = dict(
        attempt,
        amount=received_algo,
        amount_micro=txn.amount_micro,
        status=PaymentStatus.VERIFIED,
        verified_at=datetime.utcnow(),
    )
    try:
        await repo.add_payment(**verified)
    except IntegrityError:
        await repo.rollback()
        logger.warning(f"Duplicate transaction lost insert race: {transaction_id}")
        raise DuplicateTransactionError(transaction_id)
    except SQLAlchemyError as e:
        await repo.rollback()
        logger.error(f"Error creating payment record: {e}", exc_info=True)
        raise PersistenceError("Failed to record payment", details=error_details(e))

    try:
        await repo.add_membership(event_id=event_id, user_id=user_id, role=MemberRole.MEMBER)
        await repo.commit()
    except SQLAlchemyError as e:
        await repo.rollback()
        logger.error(
            f"Payment {transaction_id} verified but membership grant failed "
            f"(user={user_id} event={event_id}): {e}"
        )
        await _record_verified_payment(repo, verified)
        raise PartialFailureError(transaction_id, details=error_details(e))

    confirmation = f"round {txn.confirmed_round}" if txn.confirmed_round else "not yet confirmed"
    logger.info(
        f"Payment verified: tx={transaction_id} event={event_id} user={user_id} "
        f"amount={received_algo} ALGO from {_short(txn.sender_address)} "
        f"({confirmation})"
    )
    return {"transactionId": transaction_id, "amount": received_algo, "verified": True}


async def _record_verified_payment(repo: PaymentRepository, fields: dict) -> None:
    """
    Persist a verified payment on its own after the membership grant failed.

    The ALGO has moved on chain, so the row must exist to block reuse of the
    transaction ID even though access was not granted.
    """
    try:
        await repo.add_payment(**fields)
        await repo.commit()
    except IntegrityError:
        await repo.rollback()
        raise DuplicateTransactionError(fields["transaction_id"])
    except SQLAlchemyError as e:
        await repo.rollback()
        logger.error(f"Error creating payment record: {e}", exc_info=True)
        raise PersistenceError("Failed to record payment", details=error_details(e))


# ════════════════════════════════════════════════════════════════════
# History
# ════════════════════════════════════════════════════════════════════

async def list_user_payments(
    repo: PaymentRepository, user_id: str, limit: int = 50, offset: int = 0
) -> tuple[list[dict], int]:
    """User's payment history, newest first, with an event summary per row."""
    rows, total = await repo.list_user_payments(user_id, limit=limit, offset=offset)
    items = []
    for payment, event in rows:
        item = payment_to_dict(payment)
        item["event"] = (
            {
                "id": event.id,
                "title": event.title,
                "bannerUrl": event.banner_url,
                "eventDate": event.event_date.isoformat() if event.event_date else None,
            }
            if event is not None
            else None
        )
        items.append(item)
    return items, total
