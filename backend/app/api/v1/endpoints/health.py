from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.dependencies import get_current_user
from app.models.auth import UserContext
from app.services.employee_service import employee_service
from app.services.identity_provider import identity_provider
from app.services.user_role_service import user_role_service

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    services: dict[str, str] = {}

    for name, service in (("employees_db", employee_service), ("user_roles_db", user_role_service)):
        try:
            if service.initialized:
                ok = await service.check_connection()
                services[name] = "ok" if ok else "error"
            else:
                services[name] = "not_configured"
        except Exception:
            services[name] = "error"

    services["identity_provider"] = "ok" if identity_provider.initialized else "not_configured"
    services["token_signing"] = "ok" if settings.JWT_SECRET and settings.JWT_REFRESH_SECRET else "not_configured"

    all_ok = all(v in ("ok", "not_configured") for v in services.values())

    return {
        "status": "healthy" if all_ok else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT.value,
        "services": services,
    }


@router.get("/protected")
async def health_protected(user: UserContext = Depends(get_current_user)):  # noqa: B008
    return {"status": "ok", "user": user.model_dump()}


@router.get("/ready")
async def readiness_check():
    return {"ready": True}
