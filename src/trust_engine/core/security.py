# core/security.py

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from trust_engine.core.config import settings


class SecretHasher:
    """
    Generates and hashes every bearer secret the service hands out:
    API keys, OAuth client secrets, authorization codes, access and refresh tokens.

    Hashes are unsalted SHA-256 so that a presented secret can be looked up
    by its hash. Secrets carry 256 bits of entropy, which makes salting moot.
    """

    SECRET_BYTES = 32

    @staticmethod
    def generate(prefix: str = "", nbytes: int = SECRET_BYTES) -> str:
        return f"{prefix}{secrets.token_hex(nbytes)}"

    @staticmethod
    def hash(secret: str) -> str:
        return hashlib.sha256(secret.encode()).hexdigest()

    @staticmethod
    def verify(secret: str, secret_hash: str) -> bool:
        return hmac.compare_digest(SecretHasher.hash(secret), secret_hash)

    @staticmethod
    def generate_with_hash(prefix: str = "", nbytes: int = SECRET_BYTES) -> tuple[str, str]:
        secret = SecretHasher.generate(prefix, nbytes)
        return secret, SecretHasher.hash(secret)


class TokenManager:
    """Platform session tokens. Login lives elsewhere; this service only needs to read them."""

    @staticmethod
    def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
        to_encode = data.copy()
        now = datetime.now(UTC)
        expire = now + (expires_delta or timedelta(minutes=30))

        to_encode.update(
            {
                "exp": expire,
                "iat": now,
                "iss": settings.JWT_ISSUER,
                "aud": settings.JWT_AUDIENCE,
            }
        )
        if "type" not in to_encode:
            to_encode["type"] = "access"

        return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                audience=settings.JWT_AUDIENCE,
                issuer=settings.JWT_ISSUER,
            )
            return payload
        except JWTError as e:
            raise ValueError(f"Invalid token: {str(e)}") from e

    @staticmethod
    def verify_access_token(token: str) -> dict[str, Any]:
        payload = TokenManager.decode_token(token)

        if payload.get("type") != "access":
            raise ValueError("Invalid token type")

        return payload


# Export instances
secret_hasher = SecretHasher()
token_manager = TokenManager()
