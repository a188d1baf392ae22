"""
Credential store — look up and create ``User`` rows.

Email uniqueness is enforced by the unique index on ``users.email``; callers
may pre-check with ``find_user_by_email`` but only the insert is authoritative.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from api.errors import DuplicateCredentialError, NotFoundError, RequestValidationFailed
from auth.password import DEFAULT_ROUNDS, hash_password
from database.models import User
from utils.validators import check_date_of_birth

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError) as exc:
        raise NotFoundError() from exc


_UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == _UNIQUE_VIOLATION
    # SQLite reports no SQLSTATE, only the message
    text = str(exc.orig).lower()
    return "unique" in text or "duplicate" in text


async def find_user_by_email(
    session: AsyncSession,
    email: str,
    *,
    include_hash: bool = False,
) -> Optional[User]:
    """Return the user for ``email`` (case-insensitive), or None."""
    stmt = select(User).where(User.email == normalize_email(email))
    if include_hash:
        stmt = stmt.options(undefer(User.password_hash))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_user_by_id(session: AsyncSession, user_id: str | uuid.UUID) -> Optional[User]:
    """
    Return the user with primary key ``user_id``, or None.

    Raises ``NotFoundError`` if ``user_id`` is not a UUID at all.
    """
    result = await session.execute(select(User).where(User.id == _to_uuid(user_id)))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    date_of_birth: date,
    bcrypt_rounds: int = DEFAULT_ROUNDS,
) -> User:
    """
    Insert a new user, hashing ``password`` on the way in.

    Raises ``DuplicateCredentialError`` when the email is already taken.
    """
    try:
        check_date_of_birth(date_of_birth)
    except ValueError as exc:
        raise RequestValidationFailed(errors=[f"dateOfBirth: {exc}"]) from exc

    user = User(
        id=uuid.uuid4(),
        email=normalize_email(email),
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        date_of_birth=date_of_birth,
        is_verified=False,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        if _is_unique_violation(exc):
            logger.info("Duplicate registration rejected for %s", user.email)
            raise DuplicateCredentialError() from exc
        raise

    logger.debug("Created user %s (%s)", user.email, user.id)
    return user


async def check_store(session: AsyncSession) -> None:
    """Run a trivial read; raises if the database is unreachable."""
    await session.execute(select(User.id).limit(1))
