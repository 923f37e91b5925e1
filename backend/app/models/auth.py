"""Authentication models: token claim sets, request identity and the user-role record."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AccessClaims(BaseModel):
    model_config = {"extra": "ignore"}

    id: int
    role: str
    employee: int | None = None
    msGraphUserId: str | None = None
    email: str | None = None
    refreshToken: str | None = None
    iat: int | None = None
    exp: int | None = None
    iss: str | None = None


class RefreshClaims(BaseModel):
    model_config = {"extra": "ignore"}

    id: int
    iat: int | None = None
    exp: int | None = None


class UserContext(BaseModel):
    id: int
    role: str
    employee: int | None = None
    msGraphUserId: str | None = None
    email: str | None = None


class UserRoleRecord(BaseModel):
    id: int
    role: str = "employee"
    employee_id: int | None = None
    email: str | None = None
    ms_graph_user_id: str | None = None
    refresh_token: str | None = None
    is_active: bool = True
    last_login: datetime | None = None


class UserRoleView(BaseModel):
    id: int
    role: str
    employee_id: int | None = None
    email: str | None = None
    is_active: bool = True
    last_login: datetime | None = None


class GraphProfile(BaseModel):
    model_config = {"extra": "ignore"}

    id: str
    mail: str | None = None
    userPrincipalName: str | None = None
    displayName: str | None = None

    @property
    def email(self) -> str:
        return (self.mail or self.userPrincipalName or "").lower()


class RefreshRequest(BaseModel):
    refreshToken: str | None = Field(None, max_length=2000)


class TokenResponse(BaseModel):
    accessToken: str


class MessageResponse(BaseModel):
    success: bool
    message: str
