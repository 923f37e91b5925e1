"""Microsoft Entra ID authorization-code flow and Microsoft Graph profile lookup."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import aiohttp

from app.core.config import Settings
from app.core.errors import IdentityProviderError
from app.models.auth import GraphProfile

logger = logging.getLogger(__name__)


class MicrosoftIdentityProvider:
    def __init__(self) -> None:
        self.initialized = False
        self.authority = ""
        self.client_id = ""
        self.client_secret = ""
        self.graph_url = ""
        self.timeout_seconds = 10

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        if not settings.AZURE_AD_TENANT_ID or not settings.AZURE_AD_CLIENT_ID:
            logger.warning("Azure AD app registration missing, identity provider not initialized")
            return

        self.authority = settings.azure_authority
        self.client_id = settings.AZURE_AD_CLIENT_ID
        self.client_secret = settings.AZURE_AD_CLIENT_SECRET
        self.graph_url = settings.GRAPH_API_URL.rstrip("/")
        self.timeout_seconds = settings.PROVIDER_TIMEOUT_SECONDS
        self.initialized = True

    async def close(self) -> None:
        self.initialized = False
        self.authority = ""
        self.client_id = ""
        self.client_secret = ""
        self.graph_url = ""

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise RuntimeError("Identity provider not initialized")

    def get_authorization_url(self, *, scopes: list[str], redirect_uri: str, login_hint: str) -> str:
        self._require_initialized()
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "response_mode": "query",
            "scope": " ".join(scopes),
            "login_hint": login_hint,
        }
        return f"{self.authority}/oauth2/v2.0/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str, *, redirect_uri: str, scopes: list[str]) -> str:
        self._require_initialized()
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
            "scope": " ".join(scopes),
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded", "Accept": "application/json"}
        url = f"{self.authority}/oauth2/v2.0/token"

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, data=payload, headers=headers) as response:
                if response.status // 100 != 2:
                    raise IdentityProviderError("Token exchange", response.status, await response.text())
                data = await response.json()

        access_token = data.get("access_token")
        if not access_token:
            raise IdentityProviderError("Token exchange", response.status, "response has no access_token")

        logger.info(
            "Token exchange successful",
            extra={"token_type": data.get("token_type"), "expires_in": data.get("expires_in")},
        )
        return access_token

    async def fetch_profile(self, access_token: str) -> GraphProfile:
        self._require_initialized()
        headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(f"{self.graph_url}/me", headers=headers) as response:
                if response.status != 200:
                    raise IdentityProviderError("Profile fetch", response.status, await response.text())
                data = await response.json()

        return GraphProfile.model_validate(data)


identity_provider = MicrosoftIdentityProvider()
