"""Persistence interface for subscription transactions."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from blogsub.db.guard import storage_guard
from blogsub.models import AuditLog, PlanType, Transaction, TransactionKind, TransactionStatus
from blogsub.services.analytics import (
    MAX_REVENUE_BUCKETS,
    RevenueBucket,
    RevenuePeriod,
    TransactionStats,
    period_label,
)
from blogsub.services.errors import DuplicateTransactionError


class TransactionStore(Protocol):
    """Storage capability injected into ``TransactionWorkflow``.

    Implementations share a unit of work with the ``UserSubscriptionStore`` they
    are paired with: ``commit``/``rollback`` settle writes made through either.
    """

    def get(self, trx_id: str, *, pending_only: bool = False) -> Transaction | None:
        """Return the transaction with ``trx_id`` (optionally only while pending)."""

    def add(self, transaction: Transaction) -> Transaction:
        """Insert ``transaction``; raise ``DuplicateTransactionError`` on a reused id."""

    def transition(
        self, trx_id: str, status: TransactionStatus, *, approved_at: datetime | None = None
    ) -> Transaction | None:
        """Move a *pending* transaction to ``status``; ``None`` when nothing matched."""

    def list_transactions(
        self,
        *,
        status: TransactionStatus | None = None,
        user_id: int | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Transaction]:
        """Return transactions newest first."""

    def list_with_owners(self, *, limit: int | None = None) -> list[Transaction]:
        """Return transactions newest first with ``Transaction.user`` loaded."""

    def revenue_by_period(
        self, period: RevenuePeriod, *, limit: int = MAX_REVENUE_BUCKETS
    ) -> list[RevenueBucket]:
        """Return approved payment revenue per period and plan, newest period first."""

    def stats(self) -> TransactionStats:
        """Return counts by status and approved revenue."""

    def record_audit(
        self,
        *,
        action: str,
        transaction: Transaction,
        actor_id: int | None,
        payload: dict[str, Any],
    ) -> None:
        """Append an audit entry for ``transaction``."""

    def commit(self) -> None:
        """Make pending writes durable."""

    def rollback(self) -> None:
        """Discard pending writes."""


class SQLAlchemyTransactionStore:
    """``TransactionStore`` backed by the ``transactions`` and ``audit_logs`` tables."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @storage_guard
    def get(self, trx_id: str, *, pending_only: bool = False) -> Transaction | None:
        statement = select(Transaction).where(Transaction.trx_id == trx_id)
        if pending_only:
            statement = statement.where(Transaction.status == TransactionStatus.PENDING)
        return self._session.scalars(statement).one_or_none()

    @storage_guard
    def add(self, transaction: Transaction) -> Transaction:
        self._session.add(transaction)
        try:
            self._session.flush()
        except IntegrityError as exc:
            # The unique index on trx_id is what stops concurrent duplicate submissions.
            self._session.rollback()
            if self.get(transaction.trx_id) is not None:
                raise DuplicateTransactionError(
                    f"Transaction id '{transaction.trx_id}' already exists"
                ) from exc
            raise
        return transaction

    @storage_guard
    def transition(
        self, trx_id: str, status: TransactionStatus, *, approved_at: datetime | None = None
    ) -> Transaction | None:
        values: dict[str, Any] = {"status": status}
        if approved_at is not None:
            values["approved_at"] = approved_at
        result = self._session.execute(
            update(Transaction)
            .where(Transaction.trx_id == trx_id, Transaction.status == TransactionStatus.PENDING)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if not result.rowcount:
            return None
        return self.get(trx_id)

    @storage_guard
    def list_transactions(
        self,
        *,
        status: TransactionStatus | None = None,
        user_id: int | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Transaction]:
        statement = select(Transaction)
        if status is not None:
            statement = statement.where(Transaction.status == status)
        if user_id is not None:
            statement = statement.where(Transaction.user_id == user_id)
        statement = statement.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        return list(self._session.scalars(statement.limit(limit).offset(offset)))

    @storage_guard
    def list_with_owners(self, *, limit: int | None = None) -> list[Transaction]:
        statement = (
            select(Transaction)
            .options(joinedload(Transaction.user))
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return list(self._session.scalars(statement))

    @storage_guard
    def revenue_by_period(
        self, period: RevenuePeriod, *, limit: int = MAX_REVENUE_BUCKETS
    ) -> list[RevenueBucket]:
        label = period_label(Transaction.approved_at, period, self._session.get_bind().dialect.name)
        rows = self._session.execute(
            select(label, Transaction.plan_type, func.count(Transaction.id), func.sum(Transaction.amount))
            .where(
                Transaction.status == TransactionStatus.APPROVED,
                Transaction.kind == TransactionKind.PAYMENT,
                Transaction.approved_at.is_not(None),
                Transaction.plan_type.is_not(None),
            )
            .group_by(label, Transaction.plan_type)
            .order_by(label.desc(), Transaction.plan_type.desc())
            .limit(limit)
        ).all()
        return [
            RevenueBucket(
                period=str(bucket),
                plan_type=PlanType(plan_type),
                transaction_count=int(count),
                total_revenue=Decimal(str(total)).quantize(Decimal("0.01")),
            )
            for bucket, plan_type, count, total in rows
        ]

    @storage_guard
    def stats(self) -> TransactionStats:
        def _count(status: TransactionStatus):
            return func.coalesce(func.sum(case((Transaction.status == status, 1), else_=0)), 0)

        revenue = func.coalesce(
            func.sum(case((Transaction.status == TransactionStatus.APPROVED, Transaction.amount), else_=0)),
            0,
        )
        row = self._session.execute(
            select(
                func.count(Transaction.id),
                _count(TransactionStatus.PENDING),
                _count(TransactionStatus.APPROVED),
                _count(TransactionStatus.REJECTED),
                revenue,
            ).where(Transaction.kind == TransactionKind.PAYMENT)
        ).one()
        return TransactionStats(
            total_transactions=int(row[0]),
            pending_transactions=int(row[1]),
            approved_transactions=int(row[2]),
            rejected_transactions=int(row[3]),
            total_revenue=Decimal(str(row[4])).quantize(Decimal("0.01")),
        )

    @storage_guard
    def record_audit(
        self,
        *,
        action: str,
        transaction: Transaction,
        actor_id: int | None,
        payload: dict[str, Any],
    ) -> None:
        self._session.add(
            AuditLog(
                actor_id=actor_id,
                action=action,
                resource_type="Transaction",
                resource_id=transaction.trx_id,
                payload=payload,
            )
        )
        self._session.flush()

    @storage_guard
    def commit(self) -> None:
        self._session.commit()

    @storage_guard
    def rollback(self) -> None:
        self._session.rollback()


__all__ = ["SQLAlchemyTransactionStore", "TransactionStore"]
