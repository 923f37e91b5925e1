"""Login flow: identifier resolution, provider redirect, callback and token issuance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from urllib.parse import urlencode

from app.core.config import Settings, is_resolved_redirect_uri
from app.core.errors import IdentityProviderError, LoginConfigurationError
from app.core.tokens import sign_access_token, sign_refresh_token
from app.models.auth import UserRoleRecord
from app.services.interfaces import EmployeeDirectory, IdentityProvider, UserRoleStore

logger = logging.getLogger(__name__)

LOGIN_SCOPES = ["User.Read"]


class LoginFailure(str, Enum):
    INVALID_REQUEST = "invalid_request"
    AUTH_FAILED = "auth_failed"
    NOT_FOUND = "not_found"


@dataclass
class LoginResult:
    access_token: str | None = None
    refresh_token: str | None = None
    failure: LoginFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class AuthService:
    def __init__(
        self,
        store: UserRoleStore,
        directory: EmployeeDirectory,
        provider: IdentityProvider,
        settings: Settings,
    ) -> None:
        self.store = store
        self.directory = directory
        self.provider = provider
        self.settings = settings

    async def resolve_email(self, identifier: str) -> str | None:
        """Map an email address or employee code to a lowercase email.

        Anything containing ``@`` is taken as an email and returned without a
        directory lookup. Otherwise the identifier is an employee code and the
        employee's contact email is returned, or None when there is none.
        """
        candidate = identifier.strip()
        if "@" in candidate:
            return candidate.lower()

        employee = await self.directory.get_employee_by_code(candidate.upper())
        if employee is None or not employee.contact_email:
            return None
        return employee.contact_email.lower()

    def build_authorization_url(self, email: str) -> str:
        redirect_uri = self.settings.redirect_uri
        if not is_resolved_redirect_uri(redirect_uri):
            logger.error("Invalid redirect URI detected", extra={"redirect_uri": redirect_uri})
            raise LoginConfigurationError(f"Redirect URI is not a resolved absolute URL: {redirect_uri!r}")

        return self.provider.get_authorization_url(
            scopes=LOGIN_SCOPES,
            redirect_uri=redirect_uri,
            login_hint=email,
        )

    def issue_access_token(self, user: UserRoleRecord) -> str:
        claims: dict[str, object] = {
            "id": user.id,
            "role": user.role,
            "employee": user.employee_id,
            "msGraphUserId": user.ms_graph_user_id,
            "email": user.email,
        }
        if self.settings.JWT_BIND_REFRESH_TOKEN and user.refresh_token:
            claims["refreshToken"] = user.refresh_token
        return sign_access_token(
            claims,
            self.settings.JWT_SECRET,
            expires_in=timedelta(minutes=self.settings.JWT_EXPIRES_MINUTES),
            issuer=self.settings.JWT_ISSUER,
            algorithm=self.settings.JWT_ALGORITHM,
        )

    def issue_refresh_token(self, user: UserRoleRecord) -> str:
        return sign_refresh_token(
            {"id": user.id},
            self.settings.JWT_REFRESH_SECRET,
            expires_in=timedelta(days=self.settings.JWT_REFRESH_EXPIRES_DAYS),
            algorithm=self.settings.JWT_ALGORITHM,
        )

    async def complete_login(self, code: str | None, error: str | None = None) -> LoginResult:
        if error:
            logger.warning("Identity provider returned an error", extra={"provider_error": error})
            return LoginResult(failure=LoginFailure.AUTH_FAILED)

        if not code:
            logger.warning("Missing auth code in redirect")
            return LoginResult(failure=LoginFailure.INVALID_REQUEST)

        redirect_uri = self.settings.redirect_uri
        try:
            provider_token = await self.provider.exchange_code(code, redirect_uri=redirect_uri, scopes=LOGIN_SCOPES)
            profile = await self.provider.fetch_profile(provider_token)
            ms_graph_user_id = profile.id
            email = profile.email

            user = await self.store.find_active_by_identity(ms_graph_user_id, email or None)
            if user is None:
                logger.error(
                    "User not found in database",
                    extra={"ms_graph_user_id": ms_graph_user_id, "email": email},
                )
                return LoginResult(failure=LoginFailure.NOT_FOUND)

            if user.ms_graph_user_id != ms_graph_user_id:
                logger.warning(
                    "Rebinding provider user id for user matched by email",
                    extra={
                        "user_id": user.id,
                        "previous_ms_graph_user_id": user.ms_graph_user_id,
                        "ms_graph_user_id": ms_graph_user_id,
                    },
                )
                user = user.model_copy(update={"ms_graph_user_id": ms_graph_user_id})

            refresh_token = self.issue_refresh_token(user)
            user = user.model_copy(update={"refresh_token": refresh_token})
            access_token = self.issue_access_token(user)

            # Overwrites any earlier refresh token: the latest login wins.
            await self.store.record_login(user.id, refresh_token, ms_graph_user_id)
        except IdentityProviderError as e:
            logger.exception(
                "Authentication with identity provider failed",
                extra={"operation": e.operation, "status": e.status_code, "body": e.body},
            )
            return LoginResult(failure=LoginFailure.AUTH_FAILED)
        except Exception:
            logger.exception("Authentication with identity provider failed")
            return LoginResult(failure=LoginFailure.AUTH_FAILED)

        logger.info(
            "User authenticated",
            extra={"user_id": user.id, "role": user.role, "employee_id": user.employee_id},
        )
        return LoginResult(access_token=access_token, refresh_token=refresh_token)

    def frontend_redirect_url(self, result: LoginResult) -> str:
        base = self.settings.frontend_url
        if not result.ok:
            return f"{base}/login?{urlencode({'error': result.failure.value})}"
        query = urlencode({"token": result.access_token, "refreshToken": result.refresh_token})
        return f"{base}/auth/redirect?{query}"

    async def logout(self, user_id: int) -> None:
        await self.store.update_refresh_token(user_id, None)
        logger.info("User logged out successfully", extra={"user_id": user_id})
