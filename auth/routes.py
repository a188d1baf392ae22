"""
Auth API routes — register, login, refresh-token, profile, logout.

Route prefix: ``Settings.api_prefix`` (default /api/auth)
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import (
    AuthenticationError,
    AuthReason,
    DuplicateCredentialError,
    InvalidCredentialsError,
    NotFoundError,
    RequestValidationFailed,
)
from auth.dependencies import Identity, get_current_identity, get_settings_dep, get_token_service
from auth.jwt import TokenErrorReason, TokenService, TokenVerificationError
from auth.password import verify_password
from config.settings import Settings
from database.helpers import create_user, find_user_by_email, find_user_by_id
from database.session import get_db_session
from utils.responses import success_response
from utils.schemas import AuthPayload, LoginRequest, RefreshRequest, RegisterRequest, UserView

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings_dep),
) -> JSONResponse:
    """Register a new user."""
    if await find_user_by_email(session, req.email) is not None:
        raise DuplicateCredentialError()

    user = await create_user(
        session,
        email=req.email,
        password=req.password,
        first_name=req.first_name,
        last_name=req.last_name,
        date_of_birth=req.date_of_birth,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    # Commit before answering so the account is visible to the next request.
    await session.commit()

    payload = AuthPayload(
        user=UserView.from_user(user),
        tokens=tokens.issue_tokens(str(user.id), user.email),
    )
    logger.info("Registered user %s (%s)", user.email, user.id)
    return success_response("User registered successfully", payload, status.HTTP_201_CREATED)


@router.post("/login")
async def login(
    req: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> JSONResponse:
    """Login with email + password."""
    user = await find_user_by_email(session, req.email, include_hash=True)

    if user is None:
        logger.info("Login failed, unknown email: %s", req.email)
        raise InvalidCredentialsError()
    if not user.password_hash:
        logger.warning("Login failed, no password hash stored for %s", req.email)
        raise InvalidCredentialsError()
    if not verify_password(req.password, user.password_hash):
        logger.info("Login failed, wrong password for %s", req.email)
        raise InvalidCredentialsError()

    payload = AuthPayload(
        user=UserView.from_user(user),
        tokens=tokens.issue_tokens(str(user.id), user.email),
    )
    logger.info("Login: %s (%s)", user.email, user.id)
    return success_response("Login successful", payload)


@router.post("/refresh-token")
async def refresh_token(
    req: Optional[RefreshRequest] = None,
    session: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> JSONResponse:
    """Exchange a refresh token for a new token pair.  The old one stays valid."""
    if req is None or not req.refresh_token or not req.refresh_token.strip():
        raise RequestValidationFailed("Refresh token required")

    try:
        claims = tokens.verify_refresh(req.refresh_token.strip())
    except TokenVerificationError as exc:
        logger.info("Refresh rejected: %s", exc.reason.value)
        if exc.reason is TokenErrorReason.NOT_YET_VALID:
            message = "Refresh token not active yet"
        else:
            message = "Invalid refresh token"
        raise AuthenticationError(AuthReason(exc.reason.value), message) from exc

    try:
        user = await find_user_by_id(session, claims.user_id)
    except NotFoundError:
        user = None
    if user is None:
        raise AuthenticationError(AuthReason.USER_MISSING)

    logger.info("Tokens refreshed for %s", user.email)
    return success_response(
        "Tokens refreshed successfully",
        {"tokens": tokens.issue_tokens(str(user.id), user.email)},
    )


@router.get("/profile")
async def profile(identity: Identity = Depends(get_current_identity)) -> JSONResponse:
    return success_response("Profile retrieved successfully", {"user": identity.user})


@router.post("/logout")
async def logout(identity: Identity = Depends(get_current_identity)) -> JSONResponse:
    """
    Acknowledge a logout.

    Tokens cannot be revoked server-side; the client is told to drop them.
    """
    logger.info("User logged out: %s", identity.email)
    return success_response(
        "Logout successful",
        {"message": "Please remove tokens from client storage"},
    )
