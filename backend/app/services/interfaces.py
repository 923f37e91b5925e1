"""Interfaces of the collaborators the auth core depends on."""

from __future__ import annotations

from typing import Protocol

from app.models.auth import GraphProfile, UserRoleRecord
from app.models.employee import EmployeeDetail


class UserRoleStore(Protocol):
    async def find_by_id(self, user_id: int) -> UserRoleRecord | None: ...

    async def find_active_by_identity(
        self, ms_graph_user_id: str | None, email: str | None
    ) -> UserRoleRecord | None: ...

    async def update_refresh_token(self, user_id: int, refresh_token: str | None) -> None: ...

    async def record_login(self, user_id: int, refresh_token: str, ms_graph_user_id: str | None) -> None: ...


class EmployeeDirectory(Protocol):
    async def get_employee_by_code(self, code: str) -> EmployeeDetail | None: ...


class IdentityProvider(Protocol):
    def get_authorization_url(self, *, scopes: list[str], redirect_uri: str, login_hint: str) -> str: ...

    async def exchange_code(self, code: str, *, redirect_uri: str, scopes: list[str]) -> str:
        """Return the provider access token for an authorization code."""
        ...

    async def fetch_profile(self, access_token: str) -> GraphProfile: ...
