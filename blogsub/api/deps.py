"""Common dependencies for API routes."""
from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from blogsub.db.session import SessionLocal
from blogsub.services.transactions import TransactionWorkflow, build_transaction_workflow


def get_db_session() -> Iterator[Session]:
    """Yield a database session for FastAPI dependencies."""

    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_transaction_workflow(session: Session = Depends(get_db_session)) -> TransactionWorkflow:
    return build_transaction_workflow(session)


class PageParams:
    """``page``/``limit`` query parameters translated to an offset."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=20, ge=1, le=100),
    ) -> None:
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


__all__ = ["PageParams", "get_db_session", "get_transaction_workflow"]
