"""
JWT creation and verification.

Two HS256 tokens are minted from the same claims: an access token signed with
``JWT_SECRET`` and a refresh token signed with ``JWT_REFRESH_SECRET``.  Both
carry fixed ``iss`` / ``aud`` claims.  No ``exp`` claim is added unless a TTL
is configured, so by default tokens stay valid until a secret is rotated.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import jwt

from api.errors import ConfigurationError
from config.settings import Settings
from utils.schemas import TokenPair

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenErrorReason(str, Enum):
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED = "malformed"
    NOT_YET_VALID = "not_yet_valid"
    INVALID_CLAIMS = "invalid_claims"
    EXPIRED = "expired"


class TokenVerificationError(Exception):
    def __init__(self, kind: TokenKind, reason: TokenErrorReason, detail: str = ""):
        self.kind = kind
        self.reason = reason
        self.detail = detail
        super().__init__(f"{kind.value} token rejected: {reason.value}" + (f" ({detail})" if detail else ""))


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    issued_at: Optional[int] = None
    expires_at: Optional[int] = None


class TokenService:
    """Issues and verifies access / refresh token pairs."""

    def __init__(self, settings: Settings):
        missing = [
            name for name, value in (
                ("JWT_SECRET", settings.jwt_secret),
                ("JWT_REFRESH_SECRET", settings.jwt_refresh_secret),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise ConfigurationError(f"Missing required signing secret(s): {', '.join(missing)}")

        self._secrets = {
            TokenKind.ACCESS: settings.jwt_secret,
            TokenKind.REFRESH: settings.jwt_refresh_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: settings.jwt_access_ttl_seconds,
            TokenKind.REFRESH: settings.jwt_refresh_ttl_seconds,
        }
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self._algorithm = settings.jwt_algorithm

    # ── Issuing ────────────────────────────────────────────────────────

    def _encode(self, kind: TokenKind, payload: Dict[str, Any]) -> str:
        claims = dict(payload)
        ttl = self._ttls[kind]
        if ttl:
            claims["exp"] = claims["iat"] + ttl
        return jwt.encode(claims, self._secrets[kind], algorithm=self._algorithm)

    def issue_tokens(self, user_id: str, email: str) -> TokenPair:
        """Sign an access and a refresh token for the same identity."""
        payload = {
            "userId": str(user_id),
            "email": email,
            "iat": int(time.time()),
            "iss": self._issuer,
            "aud": self._audience,
        }
        tokens = TokenPair(
            access_token=self._encode(TokenKind.ACCESS, payload),
            refresh_token=self._encode(TokenKind.REFRESH, payload),
        )
        logger.debug("Issued token pair for %s", email)
        return tokens

    # ── Verification ───────────────────────────────────────────────────

    def _verify(self, kind: TokenKind, token: str) -> TokenClaims:
        try:
            decoded = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["iat", "iss", "aud"]},
            )
        # InvalidSignatureError subclasses DecodeError, so it goes first.
        except jwt.InvalidSignatureError as exc:
            raise TokenVerificationError(kind, TokenErrorReason.INVALID_SIGNATURE, str(exc)) from exc
        except jwt.ExpiredSignatureError as exc:
            raise TokenVerificationError(kind, TokenErrorReason.EXPIRED, str(exc)) from exc
        except jwt.ImmatureSignatureError as exc:
            raise TokenVerificationError(kind, TokenErrorReason.NOT_YET_VALID, str(exc)) from exc
        except jwt.DecodeError as exc:
            raise TokenVerificationError(kind, TokenErrorReason.MALFORMED, str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise TokenVerificationError(kind, TokenErrorReason.INVALID_CLAIMS, str(exc)) from exc

        user_id = decoded.get("userId")
        email = decoded.get("email")
        if not isinstance(user_id, str) or not isinstance(email, str):
            raise TokenVerificationError(kind, TokenErrorReason.INVALID_CLAIMS, "missing identity claims")

        return TokenClaims(
            user_id=user_id,
            email=email,
            issued_at=decoded.get("iat"),
            expires_at=decoded.get("exp"),
        )

    def verify_access(self, token: str) -> TokenClaims:
        return self._verify(TokenKind.ACCESS, token)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._verify(TokenKind.REFRESH, token)


# ── Diagnostics ────────────────────────────────────────────────────────


def decode_unverified(token: str) -> Optional[Dict[str, Any]]:
    """Decode a token's claims without checking anything.  Debugging only."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        logger.debug("Token decode failed: %s", exc)
        return None


def _timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


def token_info(token: str) -> Optional[Dict[str, Any]]:
    """Human-readable summary of a token's claims, or None if undecodable."""
    decoded = decode_unverified(token)
    if decoded is None:
        return None
    expires_at = _timestamp(decoded.get("exp"))
    return {
        "user_id": decoded.get("userId"),
        "email": decoded.get("email"),
        "issuer": decoded.get("iss"),
        "audience": decoded.get("aud"),
        "issued_at": _timestamp(decoded.get("iat")),
        "expires_at": expires_at if expires_at is not None else "never",
    }
