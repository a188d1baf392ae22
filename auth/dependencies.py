"""
FastAPI dependencies for authentication.

``get_current_identity`` is the request gate: it reads the bearer header,
verifies the access token, loads the user and returns an ``Identity``.
Every failure is an ``AuthenticationError`` (401).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import AuthenticationError, AuthReason, NotFoundError
from auth.jwt import TokenService, TokenVerificationError
from config.settings import Settings
from database.helpers import find_user_by_id
from database.session import get_db_session
from utils.schemas import UserView

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, handed explicitly to protected handlers."""

    user_id: uuid.UUID
    email: str
    user: UserView


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` value."""
    if authorization is None:
        raise AuthenticationError(AuthReason.MISSING_HEADER)
    if not authorization.startswith(_BEARER_PREFIX):
        raise AuthenticationError(AuthReason.BAD_FORMAT)
    token = authorization[len(_BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError(AuthReason.MISSING_TOKEN)
    if " " in token:
        raise AuthenticationError(AuthReason.BAD_FORMAT)
    return token


async def get_current_identity(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    token = extract_bearer_token(request.headers.get("Authorization"))

    try:
        claims = tokens.verify_access(token)
    except TokenVerificationError as exc:
        raise AuthenticationError(AuthReason(exc.reason.value)) from exc

    try:
        user = await find_user_by_id(session, claims.user_id)
    except NotFoundError:
        user = None
    if user is None:
        raise AuthenticationError(AuthReason.USER_MISSING)

    logger.debug("Authenticated user %s", user.email)
    return Identity(user_id=user.id, email=user.email, user=UserView.from_user(user))
