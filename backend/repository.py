"""
Payment repository - typed CRUD over events, payments and memberships.

Services take a PaymentRepository instead of a session so tests can hand in
a repository over an in-memory database (or any object with the same
methods). Writes are flushed, not committed; the service decides where the
transaction boundary sits.
"""
import logging
from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Event, EventMember, EventPayment
from domain.enums import MemberRole, PaymentStatus

logger = logging.getLogger(__name__)


class PaymentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Reads ───────────────────────────────────────────────────────

    async def get_event(self, event_id: str) -> Event | None:
        return await self.session.get(Event, event_id)

    async def get_verified_payment(self, event_id: str, user_id: str) -> EventPayment | None:
        result = await self.session.execute(
            select(EventPayment)
            .where(
                EventPayment.event_id == event_id,
                EventPayment.user_id == user_id,
                EventPayment.status == PaymentStatus.VERIFIED.value,
            )
            .order_by(EventPayment.verified_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_membership(self, event_id: str, user_id: str) -> EventMember | None:
        result = await self.session.execute(
            select(EventMember).where(
                EventMember.event_id == event_id,
                EventMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def transaction_exists(self, transaction_id: str) -> bool:
        result = await self.session.execute(
            select(EventPayment.id).where(EventPayment.transaction_id == transaction_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_user_payments(
        self, user_id: str, limit: int, offset: int
    ) -> tuple[list[tuple[EventPayment, Event | None]], int]:
        """Payments newest first, each paired with its event, plus the total count."""
        total_q = await self.session.execute(
            select(func.count(EventPayment.id)).where(EventPayment.user_id == user_id)
        )
        total = total_q.scalar() or 0

        rows_q = await self.session.execute(
            select(EventPayment, Event)
            .outerjoin(Event, Event.id == EventPayment.event_id)
            .where(EventPayment.user_id == user_id)
            .order_by(EventPayment.created_at.desc(), EventPayment.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [(payment, event) for payment, event in rows_q.all()], total

    # ── Writes ──────────────────────────────────────────────────────

    async def add_payment(
        self,
        *,
        event_id: str,
        user_id: str,
        transaction_id: str,
        wallet_address: str,
        amount: float,
        status: PaymentStatus,
        amount_micro: int | None = None,
        failure_reason: str | None = None,
        verified_at: datetime | None = None,
    ) -> EventPayment:
        """Insert a payment row and flush. Raises IntegrityError on a reused transaction_id."""
        payment = EventPayment(
            event_id=event_id,
            user_id=user_id,
            transaction_id=transaction_id,
            wallet_address=wallet_address,
            amount=amount,
            amount_micro=amount_micro,
            status=status.value,
            failure_reason=failure_reason,
            verified_at=verified_at,
        )
        self.session.add(payment)
        await self.session.flush()
        return payment

    async def add_membership(
        self, *, event_id: str, user_id: str, role: MemberRole = MemberRole.MEMBER
    ) -> EventMember:
        """Insert a membership row and flush. Raises IntegrityError if (event, user) exists."""
        member = EventMember(event_id=event_id, user_id=user_id, role=role.value)
        self.session.add(member)
        await self.session.flush()
        return member

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
