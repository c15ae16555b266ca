"""Subscription transaction workflow: submit, approve, reject, override."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from blogsub.models import PlanType, SubscriptionStatus, Transaction, TransactionKind, TransactionStatus
from blogsub.obs.metrics import TRANSACTION_DECISIONS, TRANSACTION_SUBMISSIONS
from blogsub.services.errors import (
    BillingError,
    BillingStorageError,
    BillingValidationError,
    DuplicateTransactionError,
    RecordNotFoundError,
    TransactionNotFoundError,
    UserNotFoundError,
)
from blogsub.services.expiry import calculate_expiry
from blogsub.services.pricing import amounts_match, canonical_price, to_decimal
from blogsub.services.subscriptions import SQLAlchemyUserSubscriptionStore, UserSubscriptionStore
from blogsub.services.transaction_store import SQLAlchemyTransactionStore, TransactionStore

logger = logging.getLogger(__name__)

TRX_ID_MIN_LENGTH = 8
TRX_ID_MAX_LENGTH = 50
OVERRIDE_PREFIX = "OVERRIDE-"


@dataclass(slots=True, frozen=True)
class WorkflowResult:
    """Outcome of a workflow operation: a transaction on success, a typed error otherwise."""

    transaction: Transaction | None = None
    error: BillingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> Transaction:
        if self.error is not None:
            raise self.error
        if self.transaction is None:
            raise BillingError("Workflow result carries neither a transaction nor an error")
        return self.transaction


@dataclass(slots=True, frozen=True)
class BulkApprovalResult:
    approved: int
    total: int


class TransactionWorkflow:
    """Coordinates the transaction lifecycle and the owning user's subscription.

    ``pending -> approved`` and ``pending -> rejected`` are the only transitions;
    both are conditional on the row still being pending, so concurrent or
    repeated decisions on the same id settle exactly once.
    """

    def __init__(
        self,
        transactions: TransactionStore,
        subscriptions: UserSubscriptionStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._transactions = transactions
        self._subscriptions = subscriptions
        self._clock = clock or (lambda: datetime.now(UTC))

    def create(
        self,
        *,
        user_id: int,
        trx_id: str,
        amount: Decimal | int | float | str,
        plan_type: PlanType | str,
        payment_method: str = "bkash",
    ) -> WorkflowResult:
        """Record a submitted payment as ``pending`` after uniqueness and price checks."""

        try:
            reference = self._normalise_trx_id(trx_id)
            plan = self._parse_plan(plan_type)
            claimed = self._parse_amount(amount)
            if self._subscriptions.get(user_id) is None:
                raise UserNotFoundError(f"User '{user_id}' was not found")
            if self._transactions.get(reference) is not None:
                raise DuplicateTransactionError(f"Transaction id '{reference}' already exists")
            expected = canonical_price(plan)
            if not amounts_match(expected, claimed):
                raise BillingValidationError(
                    f"Invalid amount for selected plan: expected {expected}", expected_amount=expected
                )

            transaction = self._transactions.add(
                Transaction(
                    trx_id=reference,
                    user_id=user_id,
                    amount=claimed.quantize(Decimal("0.01")),
                    plan_type=plan,
                    status=TransactionStatus.PENDING,
                    kind=TransactionKind.PAYMENT,
                    payment_method=payment_method,
                    approved_at=None,
                )
            )
            self._transactions.commit()
        except BillingError as exc:
            return self._fail(exc, action="create", trx_id=str(trx_id))

        TRANSACTION_SUBMISSIONS.labels(plan_type=plan.value).inc()
        logger.info("transaction %s submitted by user %s for %s plan", reference, user_id, plan.value)
        return WorkflowResult(transaction=transaction)

    def approve(
        self,
        trx_id: str,
        *,
        actor_id: int | None = None,
        source: str = "admin",
        details: dict[str, Any] | None = None,
    ) -> WorkflowResult:
        """Approve a pending transaction and activate the owner's subscription atomically.

        ``details`` is decision metadata (e.g. the SMS sender) merged into the
        row's ``details`` and the audit payload next to ``source``.
        """

        now = self._clock()
        metadata = {**(details or {}), "source": source}
        try:
            transaction = self._transactions.transition(
                trx_id, TransactionStatus.APPROVED, approved_at=now
            )
            if transaction is None:
                raise TransactionNotFoundError(f"Pending transaction '{trx_id}' not found")
            if transaction.plan_type is None:
                raise BillingValidationError(f"Transaction '{trx_id}' has no plan type")

            expiry = calculate_expiry(transaction.plan_type, now)
            self._subscriptions.update_subscription(
                transaction.user_id, SubscriptionStatus.ACTIVE, expiry
            )
            transaction.details = {**(transaction.details or {}), **metadata}
            self._transactions.record_audit(
                action="transaction.approve",
                transaction=transaction,
                actor_id=actor_id,
                payload={
                    **metadata,
                    "user_id": transaction.user_id,
                    "plan_type": transaction.plan_type.value,
                    "amount": f"{Decimal(transaction.amount):.2f}",
                    "subscription_expiry": expiry.isoformat(),
                },
            )
            self._transactions.commit()
        except BillingError as exc:
            return self._fail(exc, action="approve", trx_id=trx_id)

        TRANSACTION_DECISIONS.labels(decision="approved", source=source).inc()
        logger.info(
            "transaction %s approved via %s; user %s active until %s",
            trx_id,
            source,
            transaction.user_id,
            expiry.isoformat(),
        )
        return WorkflowResult(transaction=transaction)

    def reject(
        self,
        trx_id: str,
        *,
        actor_id: int | None = None,
        reason: str | None = None,
    ) -> WorkflowResult:
        try:
            transaction = self._transactions.transition(trx_id, TransactionStatus.REJECTED)
            if transaction is None:
                raise TransactionNotFoundError(f"Pending transaction '{trx_id}' not found")
            if reason:
                transaction.details = {**(transaction.details or {}), "rejection_reason": reason}
            self._transactions.record_audit(
                action="transaction.reject",
                transaction=transaction,
                actor_id=actor_id,
                payload={"user_id": transaction.user_id, "reason": reason},
            )
            self._transactions.commit()
        except BillingError as exc:
            return self._fail(exc, action="reject", trx_id=trx_id)

        TRANSACTION_DECISIONS.labels(decision="rejected", source="admin").inc()
        logger.info("transaction %s rejected", trx_id)
        return WorkflowResult(transaction=transaction)

    def approve_from_sms(
        self,
        *,
        trx_id: str,
        amount: Decimal | int | float | str,
        sender: str | None = None,
        message: str | None = None,
    ) -> WorkflowResult:
        """Auto-approve from a payment SMS once the claimed amount matches the stored one."""

        try:
            transaction = self._transactions.get(trx_id.strip(), pending_only=True)
            if transaction is None:
                raise TransactionNotFoundError(f"Pending transaction '{trx_id}' not found")
            if not amounts_match(transaction.amount, self._parse_amount(amount)):
                logger.warning(
                    "amount mismatch for %s: expected %s, got %s",
                    transaction.trx_id,
                    transaction.amount,
                    amount,
                )
                raise BillingValidationError("Amount mismatch")
        except BillingError as exc:
            return self._fail(exc, action="sms-approve", trx_id=trx_id)

        logger.info("payment SMS for %s received from %s", transaction.trx_id, sender or "unknown sender")
        sms_details = {
            key: value for key, value in (("sender", sender), ("sms_message", message)) if value is not None
        }
        return self.approve(transaction.trx_id, source="sms", details=sms_details)

    def bulk_approve(self, trx_ids: Iterable[str], *, actor_id: int | None = None) -> BulkApprovalResult:
        """Approve each id independently; only the success count is reported."""

        ids = list(trx_ids)
        approved = sum(1 for trx_id in ids if self.approve(trx_id, actor_id=actor_id, source="bulk"))
        return BulkApprovalResult(approved=approved, total=len(ids))

    def override_subscription(
        self,
        *,
        user_id: int,
        status: SubscriptionStatus | str,
        expiry: datetime | None,
        actor_id: int | None = None,
    ) -> WorkflowResult:
        """Set a user's subscription directly, leaving a zero-amount ledger entry behind."""

        try:
            try:
                target = SubscriptionStatus(status)
            except ValueError as exc:
                raise BillingValidationError("Invalid subscription status") from exc
            if target == SubscriptionStatus.ACTIVE and expiry is None:
                raise BillingValidationError("Expiry date required for active subscription")
            if self._subscriptions.get(user_id) is None:
                raise UserNotFoundError(f"User '{user_id}' was not found")

            now = self._clock()
            details: dict[str, Any] = {
                "subscription_status": target.value,
                "subscription_expiry": expiry.isoformat() if expiry else None,
                "actor_id": actor_id,
            }
            transaction = self._transactions.add(
                Transaction(
                    trx_id=f"{OVERRIDE_PREFIX}{uuid4().hex[:12].upper()}",
                    user_id=user_id,
                    amount=Decimal("0.00"),
                    plan_type=None,
                    status=TransactionStatus.APPROVED,
                    kind=TransactionKind.OVERRIDE,
                    payment_method="admin",
                    details=details,
                    approved_at=now,
                )
            )
            self._subscriptions.update_subscription(user_id, target, expiry)
            self._transactions.record_audit(
                action="subscription.override",
                transaction=transaction,
                actor_id=actor_id,
                payload={"user_id": user_id, **details},
            )
            self._transactions.commit()
        except BillingError as exc:
            return self._fail(exc, action="override", trx_id=f"user:{user_id}")

        TRANSACTION_DECISIONS.labels(decision="override", source="admin").inc()
        logger.info("subscription for user %s overridden to %s by %s", user_id, target.value, actor_id)
        return WorkflowResult(transaction=transaction)

    def find_by_trx_id(self, trx_id: str) -> Transaction | None:
        return self._transactions.get(trx_id)

    def find_pending_by_trx_id(self, trx_id: str) -> Transaction | None:
        return self._transactions.get(trx_id, pending_only=True)

    def list_transactions(
        self,
        *,
        status: TransactionStatus | None = None,
        user_id: int | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Transaction]:
        return self._transactions.list_transactions(
            status=status, user_id=user_id, limit=limit, offset=offset
        )

    def _fail(self, error: BillingError, *, action: str, trx_id: str) -> WorkflowResult:
        self._transactions.rollback()
        if isinstance(error, BillingStorageError):
            logger.error("%s failed for %s", action, trx_id, exc_info=error)
        elif isinstance(error, RecordNotFoundError):
            logger.debug("%s skipped for %s: %s", action, trx_id, error)
        else:
            logger.info("%s refused for %s: %s", action, trx_id, error)
        return WorkflowResult(error=error)

    @staticmethod
    def _normalise_trx_id(trx_id: str) -> str:
        reference = (trx_id or "").strip()
        if not TRX_ID_MIN_LENGTH <= len(reference) <= TRX_ID_MAX_LENGTH:
            raise BillingValidationError(
                f"Transaction ID must be {TRX_ID_MIN_LENGTH}-{TRX_ID_MAX_LENGTH} characters"
            )
        return reference

    @staticmethod
    def _parse_amount(amount: Decimal | int | float | str) -> Decimal:
        try:
            value = to_decimal(amount)
        except (InvalidOperation, ValueError) as exc:
            raise BillingValidationError("Amount must be a positive number") from exc
        if not value.is_finite() or value < 0:
            raise BillingValidationError("Amount must be a positive number")
        return value

    @staticmethod
    def _parse_plan(plan_type: PlanType | str) -> PlanType:
        try:
            return PlanType(plan_type)
        except ValueError as exc:
            raise BillingValidationError("Invalid plan type") from exc


def build_transaction_workflow(
    session: Session, *, clock: Callable[[], datetime] | None = None
) -> TransactionWorkflow:
    """Wire the workflow to SQLAlchemy stores sharing ``session``."""

    return TransactionWorkflow(
        SQLAlchemyTransactionStore(session),
        SQLAlchemyUserSubscriptionStore(session),
        clock=clock,
    )


__all__ = [
    "BulkApprovalResult",
    "OVERRIDE_PREFIX",
    "TRX_ID_MAX_LENGTH",
    "TRX_ID_MIN_LENGTH",
    "TransactionWorkflow",
    "WorkflowResult",
    "build_transaction_workflow",
]
