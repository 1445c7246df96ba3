"""Supabase access-token verification with PyJWT.

HS256 tokens are checked against the project's JWT secret. RS256 and ES256
tokens are checked against the public key published in the project JWKS.
"""

import base64
import time
from typing import Any, Dict, Optional

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pydantic import BaseModel

from app.core.config import settings
from app.core.jwks import JWKKey, jwks_service
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

AUDIENCE = "authenticated"
REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss"]

_EC_CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
}


class JWTClaims(BaseModel):
    """Decoded Supabase access-token claims."""

    sub: str  # auth user id
    email: str = ""
    role: str = "authenticated"
    exp: int
    iat: int
    iss: str
    aud: str = ""
    app_metadata: Optional[Dict[str, Any]] = None
    user_metadata: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = None


def _b64url_to_int(value: str) -> int:
    padded = value + "=" * (-len(value) % 4)
    return int.from_bytes(base64.urlsafe_b64decode(padded), byteorder="big")


def jwk_to_pem(jwk_key: JWKKey) -> str:
    """Build a PEM public key from an RSA or EC JWK."""
    if jwk_key.kty == "RSA":
        if not (jwk_key.n and jwk_key.e):
            raise ValueError("RSA key is missing modulus or exponent")
        public_key = rsa.RSAPublicNumbers(_b64url_to_int(jwk_key.e), _b64url_to_int(jwk_key.n)).public_key()
    elif jwk_key.kty == "EC":
        curve_cls = _EC_CURVES.get(jwk_key.crv or "")
        if curve_cls is None:
            raise ValueError(f"Unsupported curve: {jwk_key.crv}")
        if not (jwk_key.x and jwk_key.y):
            raise ValueError("EC key is missing coordinates")
        public_key = ec.EllipticCurvePublicNumbers(
            x=_b64url_to_int(jwk_key.x),
            y=_b64url_to_int(jwk_key.y),
            curve=curve_cls(),
        ).public_key()
    else:
        raise ValueError(f"Unsupported key type: {jwk_key.kty}")

    pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return pem.decode("utf-8")


class JWTVerifier:
    """Verifies bearer tokens issued by the project's Supabase Auth."""

    def __init__(self, supabase_url: str, jwt_secret: str = ""):
        self.expected_issuer = f"{supabase_url.rstrip('/')}/auth/v1"
        self.jwt_secret = jwt_secret

    async def verify_token(self, token: str) -> JWTClaims:
        """Verify the signature and standard claims of a token.

        Raises:
            jwt.InvalidTokenError: If the token is malformed, expired, signed
                with an unknown key or issued by another project.
        """
        try:
            header = jwt.get_unverified_header(token)
            alg = header.get("alg")

            if alg == "HS256":
                if not self.jwt_secret:
                    raise jwt.InvalidTokenError("HS256 token received but SUPABASE_JWT_SECRET is not configured")
                key = self.jwt_secret
            elif alg in ("RS256", "ES256"):
                kid = header.get("kid")
                if not kid:
                    raise jwt.InvalidTokenError("JWT header missing 'kid'")
                jwk_key = await jwks_service.get_key(kid)
                if jwk_key is None:
                    raise jwt.InvalidTokenError(f"No matching key found for kid: {kid}")
                key = jwk_to_pem(jwk_key)
            else:
                raise jwt.InvalidTokenError(f"Unsupported algorithm: {alg}")

            payload = jwt.decode(
                token,
                key,
                algorithms=[alg],
                audience=AUDIENCE,
                issuer=self.expected_issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            LOGGER.warning("Token expired")
            raise jwt.InvalidTokenError("Token has expired") from e
        except jwt.InvalidIssuerError as e:
            LOGGER.warning(f"Invalid issuer: {e}")
            raise jwt.InvalidTokenError("Invalid token issuer") from e
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token: {e}")
            raise
        except (ValueError, RuntimeError) as e:
            LOGGER.error(f"Token verification failed: {e}", exc_info=True)
            raise jwt.InvalidTokenError("Token verification failed") from e

        return JWTClaims(**payload)

    @staticmethod
    def is_token_expired(claims: JWTClaims) -> bool:
        return claims.exp < int(time.time())


jwt_verifier = JWTVerifier(
    supabase_url=settings.supabase_url,
    jwt_secret=settings.supabase_jwt_secret,
)
