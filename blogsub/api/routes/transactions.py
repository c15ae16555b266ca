"""Transaction-related API routes."""
from __future__ import annotations

import hmac
import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from blogsub.api.deps import PageParams, get_transaction_workflow
from blogsub.api.errors import unwrap_or_raise
from blogsub.api.routes.auth import AuthenticatedUser, get_current_user, require_role
from blogsub.core.config import get_settings
from blogsub.models import TransactionStatus
from blogsub.schemas import (
    BkashInfo,
    Pagination,
    PaymentInfoResponse,
    PaymentInstructions,
    PlanCatalogResponse,
    PlanInfo,
    RejectRequest,
    SmsWebhookRequest,
    TransactionCreateRequest,
    TransactionDecisionResponse,
    TransactionPage,
    TransactionRead,
    TransactionSubmitResponse,
)
from blogsub.services.pricing import PLAN_CATALOG, plan_prices
from blogsub.services.transactions import TransactionWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions")

PAYMENT_INSTRUCTIONS = [
    "1. Open your bKash app",
    "2. Go to 'Send Money' or scan the QR code",
    "3. Enter the merchant number",
    "4. Enter the exact amount for your selected plan",
    "5. Complete the payment and note the transaction ID",
    "6. Submit the transaction ID on this website",
]


def _bkash_info() -> BkashInfo:
    settings = get_settings()
    return BkashInfo(merchant_number=settings.bkash_merchant_number, qr_code_url=settings.bkash_qr_code_url)


def _page(transactions: list, params: PageParams) -> TransactionPage:
    return TransactionPage(
        transactions=[TransactionRead.model_validate(item) for item in transactions],
        pagination=Pagination(page=params.page, limit=params.limit, has_more=len(transactions) == params.limit),
    )


@router.get("/plans", response_model=PlanCatalogResponse, summary="Subscription plans and prices")
def list_plans() -> PlanCatalogResponse:
    return PlanCatalogResponse(
        plans={
            offer.plan_type.value: PlanInfo(price=offer.price, duration=offer.duration, description=offer.description)
            for offer in PLAN_CATALOG.values()
        },
        bkash=_bkash_info(),
    )


@router.get("/payment-info", response_model=PaymentInfoResponse, summary="bKash payment instructions")
def payment_info() -> PaymentInfoResponse:
    info = _bkash_info()
    return PaymentInfoResponse(
        bkash=PaymentInstructions(**info.model_dump(), instructions=PAYMENT_INSTRUCTIONS),
        plans=plan_prices(),
    )


@router.post("/sms-webhook", response_model=TransactionDecisionResponse)
def sms_webhook(
    payload: SmsWebhookRequest,
    x_webhook_secret: str | None = Header(default=None),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> TransactionDecisionResponse:
    secret = get_settings().sms_webhook_secret
    if secret and not hmac.compare_digest((x_webhook_secret or "").encode(), secret.encode()):
        logger.warning("rejected SMS webhook call for %s: bad secret", payload.trx_id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")

    transaction = unwrap_or_raise(
        workflow.approve_from_sms(
            trx_id=payload.trx_id, amount=payload.amount, sender=payload.sender, message=payload.message
        )
    )
    return TransactionDecisionResponse(
        message="Transaction auto-approved",
        trx_id=transaction.trx_id,
        status=transaction.status,
    )


@router.post("", response_model=TransactionSubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_transaction(
    payload: TransactionCreateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> TransactionSubmitResponse:
    transaction = unwrap_or_raise(
        workflow.create(
            user_id=user.user_id,
            trx_id=payload.trx_id,
            amount=Decimal(payload.amount),
            plan_type=payload.plan_type,
        )
    )
    return TransactionSubmitResponse(
        message="Transaction submitted successfully. Awaiting verification.",
        transaction_id=transaction.id,
        trx_id=transaction.trx_id,
        status=transaction.status,
    )


@router.get("/my-transactions", response_model=TransactionPage)
def my_transactions(
    params: PageParams = Depends(),
    user: AuthenticatedUser = Depends(get_current_user),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> TransactionPage:
    transactions = workflow.list_transactions(user_id=user.user_id, limit=params.limit, offset=params.offset)
    return _page(transactions, params)


@router.get("", response_model=TransactionPage, summary="All transactions (admin)")
def list_transactions(
    status_filter: TransactionStatus | None = Query(default=None, alias="status"),
    params: PageParams = Depends(),
    _: AuthenticatedUser = Depends(require_role("admin")),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> TransactionPage:
    transactions = workflow.list_transactions(status=status_filter, limit=params.limit, offset=params.offset)
    return _page(transactions, params)


@router.post("/{trx_id}/approve", response_model=TransactionDecisionResponse)
def approve_transaction(
    trx_id: str,
    user: AuthenticatedUser = Depends(require_role("admin")),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> TransactionDecisionResponse:
    transaction = unwrap_or_raise(workflow.approve(trx_id, actor_id=user.user_id))
    return TransactionDecisionResponse(
        message="Transaction approved and subscription activated",
        trx_id=transaction.trx_id,
        status=transaction.status,
    )


@router.post("/{trx_id}/reject", response_model=TransactionDecisionResponse)
def reject_transaction(
    trx_id: str,
    payload: RejectRequest | None = None,
    user: AuthenticatedUser = Depends(require_role("admin")),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> TransactionDecisionResponse:
    reason = payload.reason if payload else None
    transaction = unwrap_or_raise(workflow.reject(trx_id, actor_id=user.user_id, reason=reason))
    return TransactionDecisionResponse(
        message="Transaction rejected",
        trx_id=transaction.trx_id,
        status=transaction.status,
    )


__all__ = ["PAYMENT_INSTRUCTIONS", "router"]
