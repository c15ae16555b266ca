"""Pydantic schemas package."""

from .admin import (
    BulkApproveRequest,
    BulkApproveResponse,
    DashboardStatsResponse,
    RecentActivityResponse,
    RevenueAnalyticsResponse,
    RevenueBucketRead,
    SubscriptionOverrideRequest,
    SubscriptionOverrideResponse,
    TransactionStatsRead,
    UserPage,
    UserStatsRead,
)
from .transaction import (
    BkashInfo,
    Pagination,
    PaymentInfoResponse,
    PaymentInstructions,
    PlanCatalogResponse,
    PlanInfo,
    RejectRequest,
    SmsWebhookRequest,
    TransactionActivityRead,
    TransactionCreateRequest,
    TransactionDecisionResponse,
    TransactionPage,
    TransactionRead,
    TransactionSubmitResponse,
)
from .user import UserRead

__all__ = [
    "BkashInfo",
    "BulkApproveRequest",
    "BulkApproveResponse",
    "DashboardStatsResponse",
    "Pagination",
    "PaymentInfoResponse",
    "PaymentInstructions",
    "PlanCatalogResponse",
    "PlanInfo",
    "RecentActivityResponse",
    "RejectRequest",
    "RevenueAnalyticsResponse",
    "RevenueBucketRead",
    "SmsWebhookRequest",
    "SubscriptionOverrideRequest",
    "SubscriptionOverrideResponse",
    "TransactionActivityRead",
    "TransactionCreateRequest",
    "TransactionDecisionResponse",
    "TransactionPage",
    "TransactionRead",
    "TransactionStatsRead",
    "TransactionSubmitResponse",
    "UserPage",
    "UserRead",
    "UserStatsRead",
]
