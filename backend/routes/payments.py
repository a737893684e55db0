"""
Event payment endpoints - free join, payment intent, on-chain verification, history.

Endpoints:
    POST  /payments/event/{event_id}/join-free  - Join a free event
    GET   /payments/event/{event_id}/details    - What the user must pay, if anything
    POST  /payments/event/{event_id}/verify     - Verify an Algorand payment, grant access
    GET   /payments/my-payments                 - Caller's payment history

All endpoints require a session token (Authorization: Bearer <jwt>).
"""
import logging

from fastapi import APIRouter, Depends, Path

from deps import (
    Pagination,
    get_chain_client,
    get_repository,
    pagination_params,
    require_user,
)
from domain.responses import (
    StandardErrorResponse,
    StandardSuccessResponse,
    paginated_response,
    success_response,
)
from middleware.rate_limit import verify_rate_limit
from models import (
    JoinFreeResult,
    VerifiedPayment,
    VerifyPaymentRequest,
    VerifyPaymentResult,
)
from repository import PaymentRepository
from services import payment_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    responses={401: {"model": StandardErrorResponse}},
)


@router.post(
    "/event/{event_id}/join-free",
    response_model=StandardSuccessResponse[JoinFreeResult],
    response_model_exclude_none=True,
    responses={
        400: {"model": StandardErrorResponse},
        404: {"model": StandardErrorResponse},
        409: {"model": StandardErrorResponse},
    },
)
async def join_free_event(
    event_id: str = Path(..., min_length=1, max_length=36),
    user_id: str = Depends(require_user),
    repo: PaymentRepository = Depends(get_repository),
):
    """Join a free event (no payment required)."""
    result = await payment_service.join_free_event(repo, event_id, user_id)
    return StandardSuccessResponse(data=JoinFreeResult(eventId=result["eventId"], role=result["role"]))


@router.get(
    "/event/{event_id}/details",
    responses={404: {"model": StandardErrorResponse}},
)
async def get_payment_details(
    event_id: str = Path(..., min_length=1, max_length=36),
    user_id: str = Depends(require_user),
    repo: PaymentRepository = Depends(get_repository),
):
    """
    Payment intent for an event.

    Short-circuits with alreadyPaid or alreadyMember; otherwise returns the
    ticket price and destination wallet so the browser can build the payment.
    """
    intent = await payment_service.resolve_payment_intent(repo, event_id, user_id)
    return success_response(intent)


@router.post(
    "/event/{event_id}/verify",
    response_model=StandardSuccessResponse[VerifyPaymentResult],
    response_model_exclude_none=True,
    dependencies=[Depends(verify_rate_limit)],
    responses={
        400: {"model": StandardErrorResponse},
        404: {"model": StandardErrorResponse},
        409: {"model": StandardErrorResponse},
        422: {"model": StandardErrorResponse},
        429: {"model": StandardErrorResponse},
        500: {"model": StandardErrorResponse},
    },
)
async def verify_payment(
    request: VerifyPaymentRequest,
    event_id: str = Path(..., min_length=1, max_length=36),
    user_id: str = Depends(require_user),
    repo: PaymentRepository = Depends(get_repository),
    chain=Depends(get_chain_client),
):
    """Verify an Algorand payment transaction and grant event access."""
    logger.info(f"Verify request: event={event_id} user={user_id} tx={request.transaction_id}")
    result = await payment_service.verify_payment(
        repo,
        chain,
        event_id=event_id,
        user_id=user_id,
        transaction_id=request.transaction_id,
        wallet_address=request.wallet_address,
    )
    return StandardSuccessResponse(
        data=VerifyPaymentResult(
            payment=VerifiedPayment(
                transactionId=result["transactionId"],
                amount=result["amount"],
                verified=result["verified"],
            )
        )
    )


@router.get("/my-payments")
async def get_my_payments(
    user_id: str = Depends(require_user),
    page: Pagination = Depends(pagination_params),
    repo: PaymentRepository = Depends(get_repository),
):
    """Current user's payment history, newest first."""
    items, total = await payment_service.list_user_payments(
        repo, user_id, limit=page["limit"], offset=page["offset"]
    )
    return paginated_response(items, limit=page["limit"], offset=page["offset"], total=total)
