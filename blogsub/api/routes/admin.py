"""Admin dashboard, analytics and subscription management routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from blogsub.api.deps import PageParams, get_db_session, get_transaction_workflow
from blogsub.api.errors import http_error_for, unwrap_or_raise
from blogsub.api.routes.auth import AuthenticatedUser, require_role
from blogsub.models import SubscriptionStatus
from blogsub.schemas import (
    BulkApproveRequest,
    BulkApproveResponse,
    DashboardStatsResponse,
    Pagination,
    RecentActivityResponse,
    RevenueAnalyticsResponse,
    RevenueBucketRead,
    SubscriptionOverrideRequest,
    SubscriptionOverrideResponse,
    TransactionActivityRead,
    TransactionStatsRead,
    UserPage,
    UserRead,
    UserStatsRead,
)
from blogsub.services.errors import BillingError
from blogsub.services.subscriptions import SQLAlchemyUserSubscriptionStore
from blogsub.services.transaction_store import SQLAlchemyTransactionStore
from blogsub.services.transactions import TransactionWorkflow

RECENT_ACTIVITY_LIMIT = 10
EXPORT_TYPES = ("users", "transactions")

router = APIRouter(prefix="/admin", dependencies=[Depends(require_role("admin"))])


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
def dashboard_stats(session: Session = Depends(get_db_session)) -> DashboardStatsResponse:
    try:
        user_stats = SQLAlchemyUserSubscriptionStore(session).stats()
        transaction_stats = SQLAlchemyTransactionStore(session).stats()
    except BillingError as exc:
        raise http_error_for(exc) from exc
    return DashboardStatsResponse(
        users=UserStatsRead(
            total_users=user_stats.total_users,
            active_subscribers=user_stats.active_subscribers,
            expired_subscribers=user_stats.expired_subscribers,
            free_users=user_stats.free_users,
        ),
        transactions=TransactionStatsRead(
            total_transactions=transaction_stats.total_transactions,
            pending_transactions=transaction_stats.pending_transactions,
            approved_transactions=transaction_stats.approved_transactions,
            rejected_transactions=transaction_stats.rejected_transactions,
            total_revenue=transaction_stats.total_revenue,
        ),
    )


@router.get("/analytics/revenue", response_model=RevenueAnalyticsResponse)
def revenue_analytics(
    period: str = Query(default="month", pattern="^(day|month|year)$"),
    session: Session = Depends(get_db_session),
) -> RevenueAnalyticsResponse:
    try:
        buckets = SQLAlchemyTransactionStore(session).revenue_by_period(period)  # type: ignore[arg-type]
    except BillingError as exc:
        raise http_error_for(exc) from exc
    return RevenueAnalyticsResponse(
        period=period,
        revenue_data=[
            RevenueBucketRead(
                period=bucket.period,
                plan_type=bucket.plan_type,
                transaction_count=bucket.transaction_count,
                total_revenue=bucket.total_revenue,
            )
            for bucket in buckets
        ],
    )


@router.get("/activity/recent", response_model=RecentActivityResponse)
def recent_activity(session: Session = Depends(get_db_session)) -> RecentActivityResponse:
    try:
        transactions = SQLAlchemyTransactionStore(session).list_with_owners(limit=RECENT_ACTIVITY_LIMIT)
    except BillingError as exc:
        raise http_error_for(exc) from exc
    return RecentActivityResponse(
        recent_transactions=[TransactionActivityRead.from_transaction(row) for row in transactions]
    )


@router.get("/export")
def export_data(
    export_type: str | None = Query(default=None, alias="type"),
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Download users or transactions (with owner name and email) as a JSON attachment."""

    if export_type not in EXPORT_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid export type")
    try:
        if export_type == "users":
            users = SQLAlchemyUserSubscriptionStore(session).list_users(limit=None)
            rows = [UserRead.from_user(user).model_dump(mode="json") for user in users]
        else:
            transactions = SQLAlchemyTransactionStore(session).list_with_owners()
            rows = [
                TransactionActivityRead.from_transaction(row).model_dump(mode="json") for row in transactions
            ]
    except BillingError as exc:
        raise http_error_for(exc) from exc
    return JSONResponse(
        content=rows,
        headers={"Content-Disposition": f'attachment; filename="{export_type}_export.json"'},
    )


@router.get("/users", response_model=UserPage)
def list_users(
    subscription_status: SubscriptionStatus | None = Query(default=None),
    params: PageParams = Depends(),
    session: Session = Depends(get_db_session),
) -> UserPage:
    try:
        users = SQLAlchemyUserSubscriptionStore(session).list_users(
            subscription_status=subscription_status, limit=params.limit, offset=params.offset
        )
    except BillingError as exc:
        raise http_error_for(exc) from exc
    return UserPage(
        users=[UserRead.from_user(user) for user in users],
        pagination=Pagination(page=params.page, limit=params.limit, has_more=len(users) == params.limit),
    )


@router.put("/users/{user_id}/subscription", response_model=SubscriptionOverrideResponse)
def override_subscription(
    user_id: int,
    payload: SubscriptionOverrideRequest,
    user: AuthenticatedUser = Depends(require_role("admin")),
    session: Session = Depends(get_db_session),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> SubscriptionOverrideResponse:
    ledger_entry = unwrap_or_raise(
        workflow.override_subscription(
            user_id=user_id,
            status=payload.subscription_status,
            expiry=payload.subscription_expiry,
            actor_id=user.user_id,
        )
    )
    account = SQLAlchemyUserSubscriptionStore(session).get(user_id)
    if account is None:  # pragma: no cover - the override already checked the row
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User '{user_id}' was not found")
    return SubscriptionOverrideResponse(
        message="User subscription updated",
        user=UserRead.from_user(account),
        ledger_trx_id=ledger_entry.trx_id,
    )


@router.post("/transactions/bulk-approve", response_model=BulkApproveResponse)
def bulk_approve(
    payload: BulkApproveRequest,
    user: AuthenticatedUser = Depends(require_role("admin")),
    workflow: TransactionWorkflow = Depends(get_transaction_workflow),
) -> BulkApproveResponse:
    result = workflow.bulk_approve(payload.transaction_ids, actor_id=user.user_id)
    return BulkApproveResponse(
        message=f"Approved {result.approved} of {result.total} transactions",
        approved=result.approved,
        total=result.total,
    )


__all__ = ["router"]
