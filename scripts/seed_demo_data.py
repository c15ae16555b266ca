"""Seed script for a demo admin and reader account."""
from __future__ import annotations

import logging
import os

from sqlalchemy import select
from sqlalchemy.orm import Session

from blogsub.core.security import hash_password
from blogsub.db.session import engine, get_session
from blogsub.models import Base, SubscriptionStatus, User, UserRole

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_PASSWORD = os.environ.get("SEED_DEMO_PASSWORD", "changeme")


def seed(session: Session) -> None:
    """Seed demo admin and reader users."""

    existing_users = set(session.scalars(select(User.email)))

    seed_users = [
        ("Demo Admin", "admin@demo.local", UserRole.ADMIN),
        ("Demo Reader", "reader@demo.local", UserRole.USER),
    ]

    for name, email, role in seed_users:
        if email in existing_users:
            logger.info("User %s already exists", email)
            continue
        session.add(
            User(
                name=name,
                email=email,
                role=role,
                subscription_status=SubscriptionStatus.FREE,
                password_hash=hash_password(DEMO_PASSWORD),
            )
        )
        logger.info("Added user %s", email)


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with get_session() as session:
        seed(session)


if __name__ == "__main__":
    main()
