"""Employee models for the Cosmos DB employee directory."""

from __future__ import annotations

from pydantic import BaseModel


class EmployeeSummary(BaseModel):
    """Minimal employee info for lists."""

    id: str
    employee_id: str | None = None
    name: str | None = None
    department: str | None = None
    designation: str | None = None
    contact_email: str | None = None


class EmployeeDetail(EmployeeSummary):
    first_name: str | None = None
    last_name: str | None = None
    status: str | None = None
    location: str | None = None
    joining_date: str | None = None
