from __future__ import annotations

from datetime import timedelta
from urllib.parse import urlencode

import pytest
from starlette.testclient import TestClient

from app.core.config import RuntimeMode, settings
from app.core.dependencies import get_employee_directory, get_identity_provider, get_user_store
from app.core.rate_limit import storage as rate_limit_storage
from app.core.tokens import sign_access_token, sign_refresh_token
from app.main import app
from app.models.auth import GraphProfile, UserContext, UserRoleRecord
from app.models.employee import EmployeeDetail

TEST_ACCESS_SECRET = "test-access-secret-0123456789abcdef"
TEST_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"
TEST_ISSUER = "ems-auth"
TEST_FRONTEND_URL = "http://frontend.test"
TEST_REDIRECT_URI = "http://api.test/api/v1/auth/redirect"


class FakeUserRoleStore:
    def __init__(self, users: list[UserRoleRecord] | None = None) -> None:
        self.users: dict[int, UserRoleRecord] = {u.id: u for u in users or []}
        self.lookups: list[int] = []
        self.fail_lookups = False

    async def find_by_id(self, user_id: int) -> UserRoleRecord | None:
        self.lookups.append(user_id)
        if self.fail_lookups:
            raise ConnectionError("store unavailable")
        return self.users.get(user_id)

    async def find_active_by_identity(self, ms_graph_user_id, email):
        active = [u for u in self.users.values() if u.is_active]
        for user in active:
            if ms_graph_user_id and user.ms_graph_user_id == ms_graph_user_id:
                return user
        for user in active:
            if email and user.email == email:
                return user
        return None

    async def update_refresh_token(self, user_id: int, refresh_token: str | None) -> None:
        self.users[user_id] = self.users[user_id].model_copy(update={"refresh_token": refresh_token})

    async def record_login(self, user_id: int, refresh_token: str, ms_graph_user_id: str | None) -> None:
        changes: dict[str, object] = {"refresh_token": refresh_token}
        if ms_graph_user_id:
            changes["ms_graph_user_id"] = ms_graph_user_id
        self.users[user_id] = self.users[user_id].model_copy(update=changes)


class FakeEmployeeDirectory:
    def __init__(self, employees: list[EmployeeDetail] | None = None) -> None:
        self.employees = {e.employee_id: e for e in employees or []}
        self.lookups: list[str] = []

    async def get_employee_by_code(self, code: str) -> EmployeeDetail | None:
        self.lookups.append(code)
        return self.employees.get(code)


class FakeIdentityProvider:
    def __init__(self, profile: GraphProfile | None = None) -> None:
        self.profile = profile or GraphProfile(id="graph-admin", mail="admin@ems.test")
        self.exchange_error: Exception | None = None
        self.profile_error: Exception | None = None
        self.exchanged_codes: list[str] = []

    def get_authorization_url(self, *, scopes: list[str], redirect_uri: str, login_hint: str) -> str:
        query = urlencode({"scope": " ".join(scopes), "redirect_uri": redirect_uri, "login_hint": login_hint})
        return f"https://login.test/authorize?{query}"

    async def exchange_code(self, code: str, *, redirect_uri: str, scopes: list[str]) -> str:
        self.exchanged_codes.append(code)
        if self.exchange_error:
            raise self.exchange_error
        return "provider-access-token"

    async def fetch_profile(self, access_token: str) -> GraphProfile:
        if self.profile_error:
            raise self.profile_error
        return self.profile


@pytest.fixture(autouse=True)
def _auth_settings(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", TEST_ACCESS_SECRET)
    monkeypatch.setattr(settings, "JWT_REFRESH_SECRET", TEST_REFRESH_SECRET)
    monkeypatch.setattr(settings, "JWT_ISSUER", TEST_ISSUER)
    monkeypatch.setattr(settings, "JWT_BIND_REFRESH_TOKEN", False)
    monkeypatch.setattr(settings, "ENVIRONMENT", RuntimeMode.TEST)
    monkeypatch.setattr(settings, "FRONTEND_URL", TEST_FRONTEND_URL)
    monkeypatch.setattr(settings, "REDIRECT_URI", TEST_REDIRECT_URI)
    rate_limit_storage.reset()
    yield


@pytest.fixture
def admin_record() -> UserRoleRecord:
    return UserRoleRecord(
        id=1,
        role="admin",
        employee_id=1,
        email="admin@ems.test",
        ms_graph_user_id="graph-admin",
    )


@pytest.fixture
def employee_record() -> UserRoleRecord:
    return UserRoleRecord(id=2, role="employee", employee_id=2, email="jane@x.com")


@pytest.fixture
def manager_record() -> UserRoleRecord:
    return UserRoleRecord(id=3, role="manager", employee_id=3, email="max@ems.test", ms_graph_user_id="graph-max")


@pytest.fixture
def user_store(admin_record, employee_record, manager_record) -> FakeUserRoleStore:
    return FakeUserRoleStore([admin_record, employee_record, manager_record])


@pytest.fixture
def directory() -> FakeEmployeeDirectory:
    return FakeEmployeeDirectory(
        [
            EmployeeDetail(id="42", employee_id="EMP042", first_name="Jane", contact_email="Jane@X.com"),
            EmployeeDetail(id="43", employee_id="EMP043", first_name="No", last_name="Mail"),
        ]
    )


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def make_access_token():
    def _make(
        *,
        secret: str = TEST_ACCESS_SECRET,
        expires_in: timedelta = timedelta(hours=1),
        issuer: str = TEST_ISSUER,
        **claims,
    ) -> str:
        payload = {"id": 1, "role": "admin", "employee": 1}
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        return sign_access_token(payload, secret, expires_in=expires_in, issuer=issuer)

    return _make


@pytest.fixture
def make_refresh_token():
    def _make(
        user_id: int = 1,
        *,
        secret: str = TEST_REFRESH_SECRET,
        expires_in: timedelta = timedelta(days=7),
    ) -> str:
        return sign_refresh_token({"id": user_id}, secret, expires_in=expires_in)

    return _make


@pytest.fixture
def client(user_store, directory, provider):
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_employee_directory] = lambda: directory
    app.dependency_overrides[get_identity_provider] = lambda: provider
    with TestClient(app, follow_redirects=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def mock_user_admin() -> UserContext:
    return UserContext(id=1, role="admin", employee=1, email="admin@ems.test")


@pytest.fixture
def mock_user_employee() -> UserContext:
    return UserContext(id=2, role="employee", employee=2, email="jane@x.com")
