import sys
from enum import Enum
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings

_ENV_FILE = None if "pytest" in sys.modules else ".env"

_ALLOWED_ALGORITHMS = ("HS256", "HS384", "HS512")


class RuntimeMode(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class Settings(BaseSettings):
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: RuntimeMode = RuntimeMode.PRODUCTION

    JWT_SECRET: str = ""
    JWT_REFRESH_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60
    JWT_REFRESH_EXPIRES_DAYS: int = 7
    JWT_ISSUER: str = "ems-auth"
    JWT_BIND_REFRESH_TOKEN: bool = False

    # "<count>/<window>" per client IP, in the syntax of the ``limits`` package
    RATE_LIMIT_REFRESH: str = "100/15 minutes"
    RATE_LIMIT_LOGOUT: str = "20/15 minutes"

    AZURE_AD_TENANT_ID: str = ""
    AZURE_AD_CLIENT_ID: str = ""
    AZURE_AD_CLIENT_SECRET: str = ""
    GRAPH_API_URL: str = "https://graph.microsoft.com/v1.0"
    PROVIDER_TIMEOUT_SECONDS: int = 10

    REDIRECT_URI: str = ""
    BACKEND_URL: str = ""
    FRONTEND_URL: str = "http://localhost:5173"
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    COSMOS_DB_ENDPOINT: str = ""
    COSMOS_DB_KEY: str = ""
    COSMOS_DB_DATABASE: str = "ems-db"
    COSMOS_DB_EMPLOYEES_CONTAINER: str = "employees"
    COSMOS_DB_USER_ROLES_CONTAINER: str = "user_roles"

    model_config = {
        "env_file": _ENV_FILE,
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if v not in _ALLOWED_ALGORITHMS:
            raise ValueError(f"JWT algorithm must be one of {list(_ALLOWED_ALGORITHMS)}, got: {v}")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == RuntimeMode.PRODUCTION

    @property
    def azure_authority(self) -> str:
        return f"https://login.microsoftonline.com/{self.AZURE_AD_TENANT_ID}"

    @property
    def redirect_uri(self) -> str:
        if self.REDIRECT_URI:
            return self.REDIRECT_URI
        return f"{self.BACKEND_URL.rstrip('/')}/api/v1/auth/redirect"

    @property
    def frontend_url(self) -> str:
        return self.FRONTEND_URL.rstrip("/")

    @property
    def allowed_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


_PLACEHOLDER_MARKERS = ("undefined", "None", "{", "}")


def is_resolved_redirect_uri(uri: str | None) -> bool:
    """Return True when ``uri`` is an absolute http(s) URL with no unresolved placeholder."""
    if not uri or any(marker in uri for marker in _PLACEHOLDER_MARKERS):
        return False
    parsed = urlparse(uri)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


settings = Settings()
