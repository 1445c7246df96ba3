"""Unit tests for Supabase access-token verification."""

import time

import jwt
import pytest

from app.core.jwt import JWTVerifier

SUPABASE_URL = "https://test-project.supabase.co"
SECRET = "unit-test-secret-with-at-least-32-bytes"


def make_token(**overrides) -> str:
    now = int(time.time())
    claims = {
        "sub": "6f1c3e0a-5d2b-4c8e-9f7a-2b3c4d5e6f70",
        "email": "agent@example.com",
        "role": "authenticated",
        "aud": "authenticated",
        "iss": f"{SUPABASE_URL}/auth/v1",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, SECRET, algorithm="HS256")


@pytest.fixture
def verifier() -> JWTVerifier:
    return JWTVerifier(supabase_url=SUPABASE_URL, jwt_secret=SECRET)


class TestVerifyToken:
    @pytest.mark.asyncio
    async def test_valid_hs256_token(self, verifier):
        claims = await verifier.verify_token(make_token())

        assert claims.sub == "6f1c3e0a-5d2b-4c8e-9f7a-2b3c4d5e6f70"
        assert claims.email == "agent@example.com"
        assert verifier.is_token_expired(claims) is False

    @pytest.mark.asyncio
    async def test_expired_token(self, verifier):
        now = int(time.time())
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            await verifier.verify_token(make_token(iat=now - 7200, exp=now - 3600))

    @pytest.mark.asyncio
    async def test_token_from_another_project(self, verifier):
        with pytest.raises(jwt.InvalidTokenError, match="issuer"):
            await verifier.verify_token(make_token(iss="https://other.supabase.co/auth/v1"))

    @pytest.mark.asyncio
    async def test_wrong_audience(self, verifier):
        with pytest.raises(jwt.InvalidTokenError):
            await verifier.verify_token(make_token(aud="anon"))

    @pytest.mark.asyncio
    async def test_wrong_signature(self, verifier):
        forged = jwt.encode(
            {"sub": "x", "aud": "authenticated", "iss": f"{SUPABASE_URL}/auth/v1", "iat": 1, "exp": 2**31},
            "a-completely-different-secret-value!!",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            await verifier.verify_token(forged)

    @pytest.mark.asyncio
    async def test_hs256_without_secret(self):
        with pytest.raises(jwt.InvalidTokenError, match="SUPABASE_JWT_SECRET"):
            await JWTVerifier(supabase_url=SUPABASE_URL).verify_token(make_token())

    @pytest.mark.asyncio
    async def test_unsupported_algorithm(self, verifier):
        token = jwt.encode({"sub": "x"}, "secret-secret-secret-secret-secret!", algorithm="HS512")
        with pytest.raises(jwt.InvalidTokenError, match="Unsupported algorithm"):
            await verifier.verify_token(token)
