from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from blogsub.api.deps import get_db_session
from blogsub.api.routes.auth import refresh_token_store
from blogsub.main import app
from blogsub.models import (
    Base,
    SubscriptionStatus,
    Transaction,
    TransactionKind,
    TransactionStatus,
    User,
    UserRole,
)
from blogsub.services.analytics import RevenueBucket, TransactionStats
from blogsub.services.errors import DuplicateTransactionError, UserNotFoundError
from blogsub.services.subscriptions import UserStats
from blogsub.services.transactions import TransactionWorkflow

DATABASE_URL = "sqlite+pysqlite:///:memory:"
TEST_PASSWORD = "changeme"


engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(autouse=True)
def _reset_refresh_tokens() -> Iterator[None]:
    refresh_token_store.reset()
    yield
    refresh_token_store.reset()


@pytest.fixture()
def db_session() -> Iterator[Session]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db_session: Session) -> Iterator[TestClient]:
    def override_get_db() -> Iterator[Session]:
        try:
            yield db_session
        finally:
            db_session.rollback()

    app.dependency_overrides[get_db_session] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db_session, None)


def make_user(
    session: Session,
    *,
    email: str,
    role: UserRole = UserRole.USER,
    name: str = "Test User",
) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=bcrypt.hashpw(TEST_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode(),
        role=role,
        subscription_status=SubscriptionStatus.FREE,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def member(db_session: Session) -> User:
    return make_user(db_session, email="reader@example.com", name="Reader")


@pytest.fixture()
def admin(db_session: Session) -> User:
    return make_user(db_session, email="admin@example.com", role=UserRole.ADMIN, name="Admin")


def _login(client: TestClient, email: str) -> dict[str, str]:
    response = client.post("/api/auth/login", json={"email": email, "password": TEST_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def member_headers(client: TestClient, member: User) -> dict[str, str]:
    return _login(client, member.email)


@pytest.fixture()
def admin_headers(client: TestClient, admin: User) -> dict[str, str]:
    return _login(client, admin.email)


class InMemoryTransactionStore:
    """Dict-backed ``TransactionStore`` that mimics commit/rollback with snapshots."""

    def __init__(self) -> None:
        self.rows: dict[str, Transaction] = {}
        self.audits: list[dict[str, object]] = []
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 1
        self._snapshot: dict[str, tuple[Transaction, dict[str, object]]] = {}
        self._audit_mark = 0

    def _remember(self, transaction: Transaction) -> None:
        if transaction.trx_id not in self._snapshot:
            self._snapshot[transaction.trx_id] = (
                transaction,
                {
                    "status": transaction.status,
                    "approved_at": transaction.approved_at,
                    "details": transaction.details,
                },
            )

    def get(self, trx_id: str, *, pending_only: bool = False) -> Transaction | None:
        transaction = self.rows.get(trx_id)
        if transaction is None:
            return None
        if pending_only and transaction.status != TransactionStatus.PENDING:
            return None
        return transaction

    def add(self, transaction: Transaction) -> Transaction:
        if transaction.trx_id in self.rows:
            raise DuplicateTransactionError(f"Transaction id '{transaction.trx_id}' already exists")
        transaction.id = self._next_id
        self._next_id += 1
        if transaction.kind is None:
            transaction.kind = TransactionKind.PAYMENT
        transaction.created_at = datetime.now(UTC)
        self.rows[transaction.trx_id] = transaction
        self._snapshot.setdefault(transaction.trx_id, (transaction, {}))
        return transaction

    def transition(
        self, trx_id: str, status: TransactionStatus, *, approved_at: datetime | None = None
    ) -> Transaction | None:
        transaction = self.get(trx_id, pending_only=True)
        if transaction is None:
            return None
        self._remember(transaction)
        transaction.status = status
        if approved_at is not None:
            transaction.approved_at = approved_at
        return transaction

    def list_transactions(
        self,
        *,
        status: TransactionStatus | None = None,
        user_id: int | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Transaction]:
        rows = [
            row
            for row in sorted(self.rows.values(), key=lambda item: item.id, reverse=True)
            if (status is None or row.status == status) and (user_id is None or row.user_id == user_id)
        ]
        return rows[offset : offset + limit]

    def list_with_owners(self, *, limit: int | None = None) -> list[Transaction]:
        rows = sorted(self.rows.values(), key=lambda item: item.id, reverse=True)
        return rows if limit is None else rows[:limit]

    def revenue_by_period(self, period: str, *, limit: int = 12) -> list[RevenueBucket]:  # pragma: no cover
        raise NotImplementedError

    def stats(self) -> TransactionStats:  # pragma: no cover - not used by the workflow
        raise NotImplementedError

    def record_audit(
        self,
        *,
        action: str,
        transaction: Transaction,
        actor_id: int | None,
        payload: dict[str, object] | None = None,
    ) -> None:
        self.audits.append(
            {"action": action, "trx_id": transaction.trx_id, "actor_id": actor_id, "payload": payload}
        )

    def commit(self) -> None:
        self.commits += 1
        self._snapshot.clear()
        self._audit_mark = len(self.audits)

    def rollback(self) -> None:
        self.rollbacks += 1
        for trx_id, (transaction, previous) in self._snapshot.items():
            if not previous:
                self.rows.pop(trx_id, None)
                continue
            transaction.status = previous["status"]  # type: ignore[assignment]
            transaction.approved_at = previous["approved_at"]  # type: ignore[assignment]
            transaction.details = previous["details"]  # type: ignore[assignment]
        self._snapshot.clear()
        del self.audits[self._audit_mark :]


class InMemoryUserStore:
    """``UserSubscriptionStore`` double; ``fail_updates`` simulates a broken user table."""

    def __init__(self, users: list[User] | None = None) -> None:
        self.users: dict[int, User] = {user.id: user for user in users or []}
        self.updates: list[tuple[int, SubscriptionStatus, datetime | None]] = []
        self.fail_updates: Exception | None = None

    def get(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    def update_subscription(
        self, user_id: int, status: SubscriptionStatus, expiry: datetime | None
    ) -> None:
        if self.fail_updates is not None:
            raise self.fail_updates
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User '{user_id}' was not found")
        user.subscription_status = status
        user.subscription_expiry = expiry
        self.updates.append((user_id, status, expiry))

    def list_users(
        self, *, subscription_status: SubscriptionStatus | None = None, limit: int | None = 20, offset: int = 0
    ) -> list[User]:
        rows = [
            user
            for user in self.users.values()
            if subscription_status is None or user.subscription_status == subscription_status
        ]
        return rows[offset:] if limit is None else rows[offset : offset + limit]

    def stats(self) -> UserStats:  # pragma: no cover - not used by the workflow
        raise NotImplementedError


FIXED_NOW = datetime(2024, 1, 31, 12, 0, tzinfo=UTC)


def _detached_user(user_id: int) -> User:
    return User(
        id=user_id,
        name=f"User {user_id}",
        email=f"user{user_id}@example.com",
        password_hash="x",
        role=UserRole.USER,
        subscription_status=SubscriptionStatus.FREE,
        subscription_expiry=None,
    )


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def transaction_store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


@pytest.fixture()
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore([_detached_user(1), _detached_user(2)])


@pytest.fixture()
def workflow(
    transaction_store: InMemoryTransactionStore, user_store: InMemoryUserStore, fixed_now: datetime
) -> TransactionWorkflow:
    return TransactionWorkflow(transaction_store, user_store, clock=lambda: fixed_now)


@pytest.fixture()
def user_factory(db_session: Session):
    def _create(email: str, *, role: UserRole = UserRole.USER, name: str = "Test User") -> User:
        return make_user(db_session, email=email, role=role, name=name)

    return _create
