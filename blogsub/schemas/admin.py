"""Schemas for the admin dashboard and management endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from blogsub.models import PlanType, SubscriptionStatus
from blogsub.schemas.transaction import Pagination, TransactionActivityRead
from blogsub.schemas.user import UserRead


class BulkApproveRequest(BaseModel):
    transaction_ids: list[str] = Field(..., min_length=1, max_length=500)


class BulkApproveResponse(BaseModel):
    message: str
    approved: int
    total: int


class SubscriptionOverrideRequest(BaseModel):
    subscription_status: SubscriptionStatus
    subscription_expiry: datetime | None = None


class SubscriptionOverrideResponse(BaseModel):
    message: str
    user: UserRead
    ledger_trx_id: str


class UserPage(BaseModel):
    users: list[UserRead]
    pagination: Pagination


class UserStatsRead(BaseModel):
    total_users: int
    active_subscribers: int
    expired_subscribers: int
    free_users: int


class TransactionStatsRead(BaseModel):
    total_transactions: int
    pending_transactions: int
    approved_transactions: int
    rejected_transactions: int
    total_revenue: Decimal


class DashboardStatsResponse(BaseModel):
    users: UserStatsRead
    transactions: TransactionStatsRead


class RevenueBucketRead(BaseModel):
    period: str
    plan_type: PlanType
    transaction_count: int
    total_revenue: Decimal


class RevenueAnalyticsResponse(BaseModel):
    period: str
    revenue_data: list[RevenueBucketRead]


class RecentActivityResponse(BaseModel):
    recent_transactions: list[TransactionActivityRead]


__all__ = [
    "BulkApproveRequest",
    "BulkApproveResponse",
    "DashboardStatsResponse",
    "RecentActivityResponse",
    "RevenueAnalyticsResponse",
    "RevenueBucketRead",
    "SubscriptionOverrideRequest",
    "SubscriptionOverrideResponse",
    "TransactionStatsRead",
    "UserPage",
    "UserStatsRead",
]
