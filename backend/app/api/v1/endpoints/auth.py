from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import StringConstraints

from app.core.dependencies import (
    RefreshContext,
    get_auth_service,
    get_current_user,
    rate_limit,
    request_meta,
    validate_refresh_token,
)
from app.core.errors import LoginConfigurationError, TokenError, server_error
from app.core.rate_limit import LOGOUT_LIMIT, REFRESH_LIMIT
from app.models.auth import MessageResponse, TokenResponse, UserContext
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

IDENTIFIER_PATTERN = r"^[A-Za-z0-9._%+@-]+$"


@router.get("/login", response_class=RedirectResponse)
async def login(
    request: Request,
    identifier: Annotated[
        str,
        StringConstraints(strip_whitespace=True),
        Query(min_length=3, max_length=255, pattern=IDENTIFIER_PATTERN),
    ],
    service: AuthService = Depends(get_auth_service),  # noqa: B008
):
    try:
        email = await service.resolve_email(identifier)
        if not email:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"success": False, "message": "Unknown employee code or email"},
            )

        authorization_url = service.build_authorization_url(email)
    except LoginConfigurationError:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Authentication configuration error"},
        )
    except Exception:
        logger.exception("Auth code URL generation failed", extra=request_meta(request))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Authentication service unavailable"},
        )

    logger.info("Redirecting to identity provider", extra={**request_meta(request), "email": email})
    return RedirectResponse(url=authorization_url, status_code=status.HTTP_302_FOUND)


@router.get("/redirect", response_class=RedirectResponse)
async def redirect(
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    service: AuthService = Depends(get_auth_service),  # noqa: B008
):
    if error and error_description:
        logger.warning("Provider error description: %s", error_description)
    result = await service.complete_login(code, error=error)
    return RedirectResponse(url=service.frontend_redirect_url(result), status_code=status.HTTP_302_FOUND)


@router.post("/logout", response_model=MessageResponse, dependencies=[Depends(rate_limit(LOGOUT_LIMIT))])
async def logout(
    user: UserContext = Depends(get_current_user),  # noqa: B008
    service: AuthService = Depends(get_auth_service),  # noqa: B008
):
    try:
        await service.logout(user.id)
    except Exception:
        logger.exception("Logout error", extra={"user_id": user.id})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Logout failed"},
        )
    return MessageResponse(success=True, message="Logged out successfully")


@router.post("/refresh", response_model=TokenResponse, dependencies=[Depends(rate_limit(REFRESH_LIMIT))])
async def refresh(
    context: RefreshContext = Depends(validate_refresh_token),  # noqa: B008
    service: AuthService = Depends(get_auth_service),  # noqa: B008
):
    try:
        access_token = service.issue_access_token(context.user)
    except TokenError as e:
        logger.error("JWT_SECRET environment variable is not set")
        raise server_error("Authentication service configuration error") from e
    logger.info("Access token refreshed", extra={"user_id": context.user.id})
    return TokenResponse(accessToken=access_token)


@router.get("/me", response_model=UserContext)
async def me(user: UserContext = Depends(get_current_user)):  # noqa: B008
    return user
