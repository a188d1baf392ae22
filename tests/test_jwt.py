"""Tests for the access / refresh token service."""

import time

import jwt as pyjwt
import pytest

from api.errors import ConfigurationError
from auth.jwt import (
    TokenErrorReason,
    TokenService,
    TokenVerificationError,
    decode_unverified,
    token_info,
)
from config.settings import Settings
from conftest import ACCESS_SECRET, REFRESH_SECRET


def _settings(**overrides) -> Settings:
    values = dict(jwt_secret=ACCESS_SECRET, jwt_refresh_secret=REFRESH_SECRET)
    values.update(overrides)
    return Settings(**values)


def _tamper(token: str) -> str:
    header, payload, signature = token.split(".")
    i = len(signature) // 2
    swapped = "A" if signature[i] != "A" else "B"
    return ".".join([header, payload, signature[:i] + swapped + signature[i + 1:]])


@pytest.fixture
def service() -> TokenService:
    return TokenService(_settings())


class TestConstruction:
    def test_missing_access_secret(self):
        with pytest.raises(ConfigurationError, match="JWT_SECRET"):
            TokenService(_settings(jwt_secret=""))

    def test_missing_refresh_secret(self):
        with pytest.raises(ConfigurationError, match="JWT_REFRESH_SECRET"):
            TokenService(_settings(jwt_refresh_secret="   "))


class TestIssueAndVerify:
    def test_round_trip(self, service):
        pair = service.issue_tokens("user-1", "a@b.com")
        access = service.verify_access(pair.access_token)
        refresh = service.verify_refresh(pair.refresh_token)
        assert access.user_id == refresh.user_id == "user-1"
        assert access.email == refresh.email == "a@b.com"
        assert access.issued_at is not None

    def test_tokens_are_signed_with_different_secrets(self, service):
        pair = service.issue_tokens("user-1", "a@b.com")
        assert pair.access_token != pair.refresh_token

    def test_claims_carry_issuer_and_audience(self, service):
        claims = decode_unverified(service.issue_tokens("user-1", "a@b.com").access_token)
        assert claims["iss"] == "spacemate-app"
        assert claims["aud"] == "spacemate-users"
        assert claims["userId"] == "user-1"

    def test_tokens_do_not_expire_by_default(self, service):
        # Non-expiring sessions are the current product behavior; set
        # JWT_ACCESS_TTL_SECONDS / JWT_REFRESH_TTL_SECONDS to change it.
        pair = service.issue_tokens("user-1", "a@b.com")
        assert "exp" not in decode_unverified(pair.access_token)
        assert "exp" not in decode_unverified(pair.refresh_token)
        assert token_info(pair.access_token)["expires_at"] == "never"


class TestRejection:
    def test_access_token_fails_refresh_verification(self, service):
        pair = service.issue_tokens("user-1", "a@b.com")
        with pytest.raises(TokenVerificationError) as info:
            service.verify_refresh(pair.access_token)
        assert info.value.reason is TokenErrorReason.INVALID_SIGNATURE

    def test_refresh_token_fails_access_verification(self, service):
        pair = service.issue_tokens("user-1", "a@b.com")
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(pair.refresh_token)
        assert info.value.reason is TokenErrorReason.INVALID_SIGNATURE

    def test_tampered_signature(self, service):
        token = service.issue_tokens("user-1", "a@b.com").access_token
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(_tamper(token))
        assert info.value.reason is TokenErrorReason.INVALID_SIGNATURE

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "not.a.token.at.all"])
    def test_malformed(self, service, garbage):
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(garbage)
        assert info.value.reason is TokenErrorReason.MALFORMED

    def test_not_yet_valid(self, service):
        now = int(time.time())
        token = pyjwt.encode(
            {
                "userId": "user-1",
                "email": "a@b.com",
                "iat": now,
                "nbf": now + 3600,
                "iss": "spacemate-app",
                "aud": "spacemate-users",
            },
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(token)
        assert info.value.reason is TokenErrorReason.NOT_YET_VALID

    def test_wrong_audience(self, service):
        other = TokenService(_settings(jwt_audience="someone-else"))
        token = other.issue_tokens("user-1", "a@b.com").access_token
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(token)
        assert info.value.reason is TokenErrorReason.INVALID_CLAIMS

    def test_other_algorithm_rejected(self, service):
        token = pyjwt.encode(
            {"userId": "user-1", "email": "a@b.com", "iat": int(time.time()),
             "iss": "spacemate-app", "aud": "spacemate-users"},
            ACCESS_SECRET,
            algorithm="HS512",
        )
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(token)
        assert info.value.reason is TokenErrorReason.INVALID_CLAIMS

    def test_missing_identity_claims(self, service):
        token = pyjwt.encode(
            {"iat": int(time.time()), "iss": "spacemate-app", "aud": "spacemate-users"},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(token)
        assert info.value.reason is TokenErrorReason.INVALID_CLAIMS


class TestConfiguredExpiry:
    def test_ttl_adds_exp_claim(self):
        service = TokenService(_settings(jwt_access_ttl_seconds=900))
        pair = service.issue_tokens("user-1", "a@b.com")
        claims = decode_unverified(pair.access_token)
        assert claims["exp"] == claims["iat"] + 900
        assert "exp" not in decode_unverified(pair.refresh_token)

    def test_expired_token(self):
        service = TokenService(_settings(jwt_access_ttl_seconds=900))
        past = int(time.time()) - 7200
        token = pyjwt.encode(
            {"userId": "user-1", "email": "a@b.com", "iat": past, "exp": past + 900,
             "iss": "spacemate-app", "aud": "spacemate-users"},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenVerificationError) as info:
            service.verify_access(token)
        assert info.value.reason is TokenErrorReason.EXPIRED


def test_token_info_on_garbage():
    assert token_info("garbage") is None
