from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import ApiError
from app.core.logging_config import setup_logging
from app.services.employee_service import employee_service
from app.services.identity_provider import identity_provider
from app.services.user_role_service import user_role_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    setup_logging(settings.LOG_LEVEL)
    try:
        await user_role_service.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize UserRoleService, continuing without user store")
    try:
        await employee_service.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize EmployeeService, continuing without employee directory")
    await identity_provider.initialize(settings)
    if not settings.JWT_SECRET or not settings.JWT_REFRESH_SECRET:
        logger.error("JWT signing secrets are not configured, protected routes will answer 500")
    logger.info("EMS API started", extra={"environment": settings.ENVIRONMENT.value})
    yield
    await user_role_service.close()
    await employee_service.close()
    await identity_provider.close()


app = FastAPI(
    title="EMS API",
    description="Employee Management System: authentication, sessions and access control",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in error.get("loc", ())[1:]), "message": error.get("msg")}
        for error in exc.errors()
    ]
    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "method": request.method, "error_count": len(details)},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Validation Failed",
            "message": "Request validation failed. Please check your input data.",
            "details": details,
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method, "exception_type": type(exc).__name__},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
        },
    )


@app.get("/")
async def root():
    return {"message": "EMS API"}
