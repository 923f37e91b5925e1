"""Signing and verification of the access and refresh JWTs issued by the auth core."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from app.core.errors import TokenError, TokenErrorKind

DEFAULT_ALGORITHM = "HS256"

_RESERVED_CLAIMS = ("iat", "exp", "iss")


def _sign(
    claims: dict[str, Any],
    secret: str,
    expires_in: timedelta,
    issuer: str | None,
    algorithm: str,
) -> str:
    if not secret:
        raise TokenError(TokenErrorKind.INVALID, "Signing secret is not configured")

    payload = {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}
    now = datetime.now(timezone.utc)
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + expires_in).timestamp())
    if issuer:
        payload["iss"] = issuer
    return jwt.encode(payload, secret, algorithm=algorithm)


def _verify(token: str, secret: str, issuer: str | None, algorithm: str) -> dict[str, Any]:
    if not secret:
        raise TokenError(TokenErrorKind.INVALID, "Verification secret is not configured")

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=issuer,
            options={"verify_aud": False, "require_exp": True},
        )
    except ExpiredSignatureError as e:
        raise TokenError(TokenErrorKind.EXPIRED, str(e)) from e
    except JWTClaimsError as e:
        if "not yet valid" in str(e).lower():
            raise TokenError(TokenErrorKind.NOT_YET_VALID, str(e)) from e
        raise TokenError(TokenErrorKind.INVALID, str(e)) from e
    except JWTError as e:
        raise TokenError(TokenErrorKind.MALFORMED, str(e)) from e
    except Exception as e:
        raise TokenError(TokenErrorKind.INVALID, str(e)) from e


def sign_access_token(
    claims: dict[str, Any],
    secret: str,
    *,
    expires_in: timedelta,
    issuer: str,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    return _sign(claims, secret, expires_in, issuer, algorithm)


def verify_access_token(
    token: str,
    secret: str,
    *,
    issuer: str | None = None,
    algorithm: str = DEFAULT_ALGORITHM,
) -> dict[str, Any]:
    """Decode an access token.

    Raises ``TokenError`` whose ``kind`` is EXPIRED, NOT_YET_VALID, MALFORMED
    (bad structure or signature) or INVALID (any other claim failure, such as
    a foreign issuer).
    """
    return _verify(token, secret, issuer, algorithm)


def sign_refresh_token(
    claims: dict[str, Any],
    secret: str,
    *,
    expires_in: timedelta,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    return _sign(claims, secret, expires_in, None, algorithm)


def verify_refresh_token(
    token: str,
    secret: str,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
) -> dict[str, Any]:
    return _verify(token, secret, None, algorithm)
