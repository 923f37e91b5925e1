from __future__ import annotations

import json
import logging
import secrets
from dataclasses import dataclass

from fastapi import Depends, Header, Request
from pydantic import ValidationError

from app.core.config import RuntimeMode, settings
from app.core.errors import (
    RateLimitError,
    TokenError,
    TokenErrorKind,
    bad_request,
    forbidden,
    server_error,
    unauthorized,
)
from app.core.rate_limit import RouteLimit
from app.core.tokens import DEFAULT_ALGORITHM, verify_access_token, verify_refresh_token
from app.models.auth import AccessClaims, RefreshClaims, RefreshRequest, UserContext, UserRoleRecord
from app.services.auth_service import AuthService
from app.services.employee_service import employee_service
from app.services.identity_provider import identity_provider
from app.services.interfaces import EmployeeDirectory, IdentityProvider, UserRoleStore
from app.services.user_role_service import user_role_service

logger = logging.getLogger(__name__)

# Accepted outside production only, see Authenticator.authenticate.
SENTINEL_TEST_TOKEN = "test-token-123"

_TOKEN_ERROR_MESSAGES: dict[TokenErrorKind, str] = {
    TokenErrorKind.EXPIRED: "Token has expired. Please log in again.",
    TokenErrorKind.MALFORMED: "Invalid token format",
    TokenErrorKind.NOT_YET_VALID: "Token not yet valid",
    TokenErrorKind.INVALID: "Invalid token",
}


def _tokens_match(presented: str | None, stored: str | None) -> bool:
    if presented is None or stored is None:
        return False
    return secrets.compare_digest(presented.encode(), stored.encode())


def request_meta(request: Request) -> dict[str, str]:
    return {
        "ip": request.client.host if request.client else "unknown",
        "path": request.url.path,
    }


class Authenticator:
    """Turns an ``Authorization`` header into a verified ``UserContext``.

    Holds no per-request state, so the same rejected token always yields the
    same error. Every outcome is logged with the caller's ip and path; the
    token itself is never logged.
    """

    def __init__(
        self,
        store: UserRoleStore,
        secret: str | None,
        mode: RuntimeMode,
        *,
        issuer: str | None = None,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        self.store = store
        self.secret = secret
        self.mode = mode
        self.issuer = issuer
        self.algorithm = algorithm

    async def authenticate(self, authorization: str | None, *, ip: str, path: str) -> UserContext:
        meta = {"ip": ip, "path": path}

        if not authorization or not authorization.startswith("Bearer "):
            logger.warning("Authentication failed: No valid authorization header", extra=meta)
            raise unauthorized("Access denied. No token provided.")

        token = authorization[len("Bearer ") :].strip()
        if not token:
            logger.warning("Authentication failed: No valid authorization header", extra=meta)
            raise unauthorized("Access denied. No token provided.")

        if not self.secret:
            logger.error("JWT_SECRET environment variable is not set", extra=meta)
            raise server_error("Authentication service configuration error")

        if token == SENTINEL_TEST_TOKEN:
            if self.mode == RuntimeMode.PRODUCTION:
                logger.error("Security violation: Test token used in production", extra=meta)
                raise unauthorized("Invalid token")
            logger.warning("Development mode: Using test token", extra={**meta, "mode": self.mode.value})
            return UserContext(id=1, role="admin", employee=1)

        try:
            payload = verify_access_token(token, self.secret, issuer=self.issuer, algorithm=self.algorithm)
        except TokenError as e:
            logger.warning(
                "Authentication failed: %s token",
                e.kind.value,
                extra={**meta, "reason": e.kind.value, "error": e.detail},
            )
            raise unauthorized(_TOKEN_ERROR_MESSAGES[e.kind]) from e

        try:
            claims = AccessClaims.model_validate(payload)
        except ValidationError:
            claims = None
        if claims is None or not claims.id or not claims.role:
            logger.warning(
                "Authentication failed: Invalid token payload",
                extra={**meta, "has_id": bool(payload.get("id")), "has_role": bool(payload.get("role"))},
            )
            raise unauthorized("Invalid or incomplete token payload")

        try:
            user = await self.store.find_by_id(claims.id)
        except Exception as e:
            logger.exception("Authentication failed: user lookup error", extra={**meta, "user_id": claims.id})
            raise server_error("Authentication service error") from e

        if user is None or not user.is_active:
            logger.warning("Authentication failed: User not found", extra={**meta, "user_id": claims.id})
            raise unauthorized("User account not found")

        if claims.refreshToken is not None and not _tokens_match(claims.refreshToken, user.refresh_token):
            logger.warning("Authentication failed: Token blacklisted", extra={**meta, "user_id": claims.id})
            raise unauthorized("Token has been invalidated")

        logger.info("Authentication successful", extra={**meta, "user_id": claims.id, "role": claims.role})
        return UserContext(
            id=claims.id,
            role=claims.role,
            employee=claims.employee,
            msGraphUserId=claims.msGraphUserId,
            email=claims.email,
        )


def get_user_store() -> UserRoleStore:
    return user_role_service


def get_employee_directory() -> EmployeeDirectory:
    return employee_service


def get_identity_provider() -> IdentityProvider:
    return identity_provider


def get_authenticator(store: UserRoleStore = Depends(get_user_store)) -> Authenticator:  # noqa: B008
    return Authenticator(
        store,
        settings.JWT_SECRET,
        settings.ENVIRONMENT,
        issuer=settings.JWT_ISSUER,
        algorithm=settings.JWT_ALGORITHM,
    )


def get_auth_service(
    store: UserRoleStore = Depends(get_user_store),  # noqa: B008
    directory: EmployeeDirectory = Depends(get_employee_directory),  # noqa: B008
    provider: IdentityProvider = Depends(get_identity_provider),  # noqa: B008
) -> AuthService:
    return AuthService(store, directory, provider, settings)


async def get_current_user(
    request: Request,
    authorization: str | None = Header(None),
    authenticator: Authenticator = Depends(get_authenticator),  # noqa: B008
) -> UserContext:
    meta = request_meta(request)
    user = await authenticator.authenticate(authorization, ip=meta["ip"], path=meta["path"])
    request.state.user = user
    return user


def require_role(*roles: str):
    async def _check_role(
        request: Request,
        user: UserContext | None = Depends(get_current_user),  # noqa: B008
    ) -> UserContext:
        meta = request_meta(request)
        if user is None:
            logger.warning("Authorization failed: User not authenticated", extra=meta)
            raise unauthorized("User not authenticated")

        if user.role not in roles:
            logger.warning(
                "Authorization failed: Insufficient privileges",
                extra={**meta, "user_id": user.id, "user_role": user.role, "required_roles": list(roles)},
            )
            raise forbidden("Access denied. Insufficient privileges.")

        logger.debug("Authorization successful", extra={**meta, "user_id": user.id, "role": user.role})
        return user

    return _check_role


async def _resource_owner_id(request: Request, key: str) -> object:
    if key in request.path_params:
        return request.path_params[key]
    if key in request.query_params:
        return request.query_params[key]
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body.get(key) if isinstance(body, dict) else None


def _as_user_id(owner: object) -> int | None:
    # Whole numbers only: 2.9 or "2.9" must not compare equal to 2.
    if isinstance(owner, bool):
        return None
    if isinstance(owner, int):
        return owner
    if isinstance(owner, float):
        return int(owner) if owner.is_integer() else None
    if isinstance(owner, str) and owner.strip().isdigit():
        return int(owner.strip())
    return None


def require_ownership_or_admin(resource_key: str):
    async def _check_ownership(
        request: Request,
        user: UserContext | None = Depends(get_current_user),  # noqa: B008
    ) -> UserContext:
        meta = request_meta(request)
        if user is None:
            logger.warning("Authorization failed: User not authenticated", extra=meta)
            raise unauthorized("User not authenticated")

        if user.role == "admin":
            return user

        owner = await _resource_owner_id(request, resource_key)
        if _as_user_id(owner) != user.id:
            logger.warning(
                "Authorization failed: Resource ownership denied",
                extra={**meta, "user_id": user.id, "resource_user_id": str(owner)},
            )
            raise forbidden("Access denied. You can only access your own resources.")

        return user

    return _check_ownership


def rate_limit(limit: RouteLimit):
    async def _enforce(request: Request) -> None:
        meta = request_meta(request)
        try:
            limit.check(meta["ip"])
        except RateLimitError:
            logger.warning("Rate limit exceeded", extra={**meta, "limit": limit.name})
            raise

    return _enforce


@dataclass
class RefreshContext:
    token: str
    claims: RefreshClaims
    user: UserRoleRecord


async def validate_refresh_token(
    request: Request,
    payload: RefreshRequest | None = None,
    store: UserRoleStore = Depends(get_user_store),  # noqa: B008
) -> RefreshContext:
    meta = request_meta(request)
    token = (payload.refreshToken or "").strip() if payload else ""
    if not token:
        logger.warning("Refresh token missing from request", extra=meta)
        raise bad_request("Refresh token required")

    if not settings.JWT_REFRESH_SECRET:
        logger.error("JWT_REFRESH_SECRET environment variable is not set", extra=meta)
        raise server_error("Authentication service configuration error")

    try:
        claims = RefreshClaims.model_validate(
            verify_refresh_token(token, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALGORITHM)
        )
    except (TokenError, ValidationError) as e:
        logger.warning("Refresh token validation failed", extra={**meta, "error": str(e)})
        raise unauthorized("Invalid or expired refresh token") from e

    try:
        user = await store.find_by_id(claims.id)
    except Exception as e:
        logger.exception("Refresh token validation failed: user lookup error", extra={**meta, "user_id": claims.id})
        raise server_error("Authentication service error") from e

    if user is None or not user.is_active or not _tokens_match(token, user.refresh_token):
        logger.warning("Refresh token rejected", extra={**meta, "user_id": claims.id, "user_found": user is not None})
        raise unauthorized("Invalid refresh token")

    return RefreshContext(token=token, claims=claims, user=user)
