from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_current_user, require_role
from app.core.errors import not_found, server_error
from app.models.auth import UserContext
from app.models.employee import EmployeeDetail, EmployeeSummary
from app.services.employee_service import employee_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])

# Roles allowed to browse the whole directory.
DIRECTORY_ROLES = ("admin", "manager", "hr")


@router.get("", response_model=list[EmployeeSummary])
async def list_employees(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    user: UserContext = Depends(require_role(*DIRECTORY_ROLES)),  # noqa: B008
):
    try:
        return await employee_service.get_employees(skip=skip, limit=limit)
    except Exception as err:
        logger.exception("Failed to list employees", extra={"user_id": user.id})
        raise server_error("Failed to retrieve employees") from err


@router.get("/{code}", response_model=EmployeeDetail)
async def get_employee(
    code: str,
    user: UserContext = Depends(get_current_user),  # noqa: B008
):
    employee_code = code.strip().upper()
    try:
        employee = await employee_service.get_employee_by_code(employee_code)
    except Exception as err:
        logger.exception("Failed to get employee", extra={"employee_code": employee_code, "user_id": user.id})
        raise server_error("Failed to retrieve employee") from err

    if employee is None:
        raise not_found(f"Employee with code '{employee_code}' not found")

    return employee
