from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from app.models.employee import EmployeeDetail, EmployeeSummary
from app.services.employee_service import EmployeeService

SAMPLE_COSMOS_DOC = {
    "id": "42",
    "employeeId": "EMP042",
    "firstName": "Jane",
    "lastName": "Doe",
    "contactEmail": "Jane.Doe@EMS.test",
    "department": "Engineering",
    "position": "Senior Developer",
    "status": "active",
    "workLocation": "Berlin",
    "joinDate": "2020-01-15",
}


def _service_with_items(*items, captured: list | None = None) -> EmployeeService:
    service = EmployeeService()
    service.initialized = True

    mock_container = MagicMock()

    async def mock_query_items(**kwargs):
        if captured is not None:
            captured.append(kwargs)
        for item in items:
            yield item

    mock_container.query_items = mock_query_items
    service.container = mock_container
    return service


def test_transform_employee_maps_fields():
    service = EmployeeService()
    result = service._transform_employee(SAMPLE_COSMOS_DOC)

    assert isinstance(result, EmployeeDetail)
    assert result.id == "42"
    assert result.employee_id == "EMP042"
    assert result.name == "Jane Doe"
    assert result.first_name == "Jane"
    assert result.last_name == "Doe"
    assert result.contact_email == "jane.doe@ems.test"
    assert result.department == "Engineering"
    assert result.designation == "Senior Developer"
    assert result.status == "active"
    assert result.location == "Berlin"
    assert result.joining_date == "2020-01-15"


def test_transform_employee_handles_empty_doc():
    result = EmployeeService()._transform_employee({})

    assert result.id == "unknown"
    assert result.name is None
    assert result.contact_email is None


@pytest.mark.anyio
async def test_get_employee_by_code_found():
    captured: list = []
    service = _service_with_items(SAMPLE_COSMOS_DOC, captured=captured)

    result = await service.get_employee_by_code("EMP042")

    assert result is not None
    assert result.employee_id == "EMP042"
    assert captured[0]["parameters"] == [{"name": "@code", "value": "EMP042"}]


@pytest.mark.anyio
async def test_get_employee_by_code_not_found():
    service = _service_with_items()
    assert await service.get_employee_by_code("NONEXISTENT") is None


@pytest.mark.anyio
async def test_get_employee_by_code_not_initialized():
    assert await EmployeeService().get_employee_by_code("EMP042") is None


@pytest.mark.anyio
async def test_get_employees_returns_list():
    service = _service_with_items(SAMPLE_COSMOS_DOC)

    results = await service.get_employees(skip=0, limit=10)

    assert len(results) == 1
    assert isinstance(results[0], EmployeeSummary)
    assert results[0].name == "Jane Doe"
    assert results[0].contact_email == "jane.doe@ems.test"


@pytest.mark.anyio
async def test_get_employees_not_initialized():
    assert await EmployeeService().get_employees() == []


@pytest.mark.anyio
async def test_check_connection_success():
    service = _service_with_items(42)
    assert await service.check_connection() is True


@pytest.mark.anyio
async def test_check_connection_failure():
    service = EmployeeService()
    mock_container = MagicMock()

    async def mock_query_items(**kwargs):
        raise ConnectionError("cosmos down")
        yield  # noqa: unreachable, makes this an async generator

    mock_container.query_items = mock_query_items
    service.container = mock_container

    assert await service.check_connection() is False


@pytest.mark.anyio
async def test_check_connection_not_initialized():
    assert await EmployeeService().check_connection() is False
