"""Pydantic schemas for transaction resources."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from blogsub.models import PlanType, Transaction, TransactionKind, TransactionStatus

TrxId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=8, max_length=50)]


class TransactionCreateRequest(BaseModel):
    """Payment reference submitted by a reader after paying through bKash."""

    trx_id: TrxId = Field(..., description="Transaction id from the bKash confirmation SMS")
    plan_type: PlanType
    amount: Decimal = Field(..., ge=Decimal("0"))


class TransactionSubmitResponse(BaseModel):
    message: str
    transaction_id: int
    trx_id: str
    status: TransactionStatus


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trx_id: str
    user_id: int
    amount: Decimal
    plan_type: PlanType | None
    status: TransactionStatus
    kind: TransactionKind
    payment_method: str
    created_at: datetime | None
    approved_at: datetime | None
    details: dict[str, Any] | None = None


class TransactionActivityRead(TransactionRead):
    """Transaction joined with its owner's name and email."""

    user_name: str
    user_email: str

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionActivityRead":
        base = TransactionRead.model_validate(transaction).model_dump()
        return cls(**base, user_name=transaction.user.name, user_email=transaction.user.email)


class Pagination(BaseModel):
    page: int
    limit: int
    has_more: bool


class TransactionPage(BaseModel):
    transactions: list[TransactionRead]
    pagination: Pagination


class TransactionDecisionResponse(BaseModel):
    message: str
    trx_id: str
    status: TransactionStatus


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=255)


class SmsWebhookRequest(BaseModel):
    """Payment notification forwarded from the merchant phone."""

    trx_id: TrxId
    amount: Decimal = Field(..., ge=Decimal("0"))
    sender: Annotated[str, StringConstraints(strip_whitespace=True, min_length=5, max_length=20)] | None = None
    message: str | None = Field(default=None, max_length=1000)


class PlanInfo(BaseModel):
    price: Decimal
    duration: str
    description: str


class BkashInfo(BaseModel):
    merchant_number: str | None
    qr_code_url: str | None


class PlanCatalogResponse(BaseModel):
    plans: dict[str, PlanInfo]
    bkash: BkashInfo


class PaymentInstructions(BkashInfo):
    instructions: list[str]


class PaymentInfoResponse(BaseModel):
    bkash: PaymentInstructions
    plans: dict[str, Decimal]


__all__ = [
    "BkashInfo",
    "Pagination",
    "PaymentInfoResponse",
    "PaymentInstructions",
    "PlanCatalogResponse",
    "PlanInfo",
    "RejectRequest",
    "SmsWebhookRequest",
    "TransactionCreateRequest",
    "TransactionActivityRead",
    "TransactionDecisionResponse",
    "TransactionPage",
    "TransactionRead",
    "TransactionSubmitResponse",
]
