"""Cosmos DB employee directory (read-only)."""

from __future__ import annotations

import logging
from typing import Any

from azure.cosmos.aio import CosmosClient

from app.core.config import Settings
from app.models.employee import EmployeeDetail, EmployeeSummary

logger = logging.getLogger(__name__)

# Python attribute name -> Cosmos DB document field
_FIELD_MAP: list[tuple[str, str]] = [
    ("employee_id", "employeeId"),
    ("first_name", "firstName"),
    ("last_name", "lastName"),
    ("contact_email", "contactEmail"),
    ("department", "department"),
    ("designation", "position"),
    ("status", "status"),
    ("location", "workLocation"),
    ("joining_date", "joinDate"),
]


class EmployeeService:
    def __init__(self) -> None:
        self.client: CosmosClient | None = None
        self.container: Any = None
        self.initialized: bool = False

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        endpoint = settings.COSMOS_DB_ENDPOINT
        key = settings.COSMOS_DB_KEY

        if not endpoint or not key:
            logger.warning("Cosmos DB credentials missing, EmployeeService not initialized")
            return

        self.client = CosmosClient(endpoint, key)
        db = self.client.get_database_client(settings.COSMOS_DB_DATABASE)
        self.container = db.get_container_client(settings.COSMOS_DB_EMPLOYEES_CONTAINER)
        self.initialized = True
        logger.info("EmployeeService initialized (container=%s)", settings.COSMOS_DB_EMPLOYEES_CONTAINER)

    async def close(self) -> None:
        if self.client:
            await self.client.close()
            self.client = None
            self.container = None
            self.initialized = False

    async def get_employee_by_code(self, code: str) -> EmployeeDetail | None:
        if not self.container:
            return None

        query = "SELECT * FROM c WHERE c.employeeId = @code"
        params: list[dict[str, str]] = [{"name": "@code", "value": code}]

        async for item in self.container.query_items(
            query=query,
            parameters=params,
            enable_cross_partition_query=True,
        ):
            return self._transform_employee(item)

        return None

    async def get_employees(self, skip: int = 0, limit: int = 50) -> list[EmployeeSummary]:
        if not self.container:
            return []

        query = "SELECT * FROM c OFFSET @skip LIMIT @limit"
        params: list[dict[str, Any]] = [
            {"name": "@skip", "value": skip},
            {"name": "@limit", "value": limit},
        ]

        results: list[EmployeeSummary] = []
        async for item in self.container.query_items(
            query=query,
            parameters=params,
            enable_cross_partition_query=True,
        ):
            detail = self._transform_employee(item)
            results.append(EmployeeSummary(**detail.model_dump(include=set(EmployeeSummary.model_fields))))

        return results

    async def check_connection(self) -> bool:
        if not self.container:
            return False
        try:
            async for _ in self.container.query_items(
                query="SELECT VALUE COUNT(1) FROM c",
                enable_cross_partition_query=True,
            ):
                return True
            return True
        except Exception:
            logger.exception("Cosmos DB connection check failed")
            return False

    def _transform_employee(self, raw: dict[str, Any]) -> EmployeeDetail:
        data: dict[str, Any] = {"id": str(raw.get("id") or raw.get("employeeId") or "unknown")}

        for python_key, cosmos_key in _FIELD_MAP:
            data[python_key] = raw.get(cosmos_key)

        if data.get("contact_email"):
            data["contact_email"] = data["contact_email"].lower()

        full_name = " ".join(part for part in (data.get("first_name"), data.get("last_name")) if part)
        data["name"] = full_name or None

        return EmployeeDetail(**data)


employee_service = EmployeeService()
