"""Cosmos DB store for user role mappings (the ``user_roles`` container)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from azure.cosmos.aio import CosmosClient

from app.core.config import Settings
from app.models.auth import UserRoleRecord

logger = logging.getLogger(__name__)


class UserRoleService:
    def __init__(self) -> None:
        self.client: CosmosClient | None = None
        self.container: Any = None
        self.initialized: bool = False

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        if not settings.COSMOS_DB_ENDPOINT or not settings.COSMOS_DB_KEY:
            logger.warning("Cosmos DB credentials missing, UserRoleService not initialized")
            return

        self.client = CosmosClient(settings.COSMOS_DB_ENDPOINT, settings.COSMOS_DB_KEY)
        db = self.client.get_database_client(settings.COSMOS_DB_DATABASE)
        self.container = db.get_container_client(settings.COSMOS_DB_USER_ROLES_CONTAINER)
        self.initialized = True
        logger.info("UserRoleService initialized (container=%s)", settings.COSMOS_DB_USER_ROLES_CONTAINER)

    async def close(self) -> None:
        if self.client:
            await self.client.close()
            self.client = None
            self.container = None
            self.initialized = False

    def _require_container(self) -> Any:
        if not self.container:
            raise RuntimeError("UserRoleService not initialized")
        return self.container

    async def _query(self, query: str, params: list[dict[str, Any]]) -> list[dict[str, Any]]:
        container = self._require_container()
        items: list[dict[str, Any]] = []
        async for item in container.query_items(
            query=query,
            parameters=params,
            enable_cross_partition_query=True,
        ):
            items.append(item)
        return items

    async def _get_raw(self, user_id: int) -> dict[str, Any] | None:
        items = await self._query("SELECT * FROM c WHERE c.id = @id", [{"name": "@id", "value": str(user_id)}])
        return items[0] if items else None

    async def find_by_id(self, user_id: int) -> UserRoleRecord | None:
        raw = await self._get_raw(user_id)
        return self._transform(raw) if raw else None

    async def find_active_by_identity(
        self, ms_graph_user_id: str | None, email: str | None
    ) -> UserRoleRecord | None:
        conditions: list[str] = []
        params: list[dict[str, Any]] = []
        if ms_graph_user_id:
            conditions.append("c.ms_graph_user_id = @graph_id")
            params.append({"name": "@graph_id", "value": ms_graph_user_id})
        if email:
            conditions.append("c.email = @email")
            params.append({"name": "@email", "value": email})
        if not conditions:
            return None

        query = f"SELECT * FROM c WHERE ({' OR '.join(conditions)}) AND c.is_active = true"
        items = await self._query(query, params)
        if not items:
            return None

        # A provider-id match outranks an email match on a different record.
        items.sort(key=lambda item: item.get("ms_graph_user_id") != ms_graph_user_id)
        return self._transform(items[0])

    async def update_refresh_token(self, user_id: int, refresh_token: str | None) -> None:
        await self._patch(user_id, {"refresh_token": refresh_token})

    async def record_login(self, user_id: int, refresh_token: str, ms_graph_user_id: str | None) -> None:
        changes: dict[str, Any] = {
            "refresh_token": refresh_token,
            "last_login": datetime.now(timezone.utc).isoformat(),
        }
        if ms_graph_user_id:
            changes["ms_graph_user_id"] = ms_graph_user_id
        await self._patch(user_id, changes)

    async def _patch(self, user_id: int, changes: dict[str, Any]) -> None:
        raw = await self._get_raw(user_id)
        if raw is None:
            raise LookupError(f"User role mapping {user_id} not found")
        raw.update(changes)
        await self._require_container().replace_item(item=raw["id"], body=raw)

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

    def _transform(self, raw: dict[str, Any]) -> UserRoleRecord:
        return UserRoleRecord(
            id=int(raw["id"]),
            role=raw.get("role") or "employee",
            employee_id=raw.get("employee_id"),
            email=raw.get("email"),
            ms_graph_user_id=raw.get("ms_graph_user_id"),
            refresh_token=raw.get("refresh_token"),
            is_active=raw.get("is_active", True),
            last_login=raw.get("last_login"),
        )


user_role_service = UserRoleService()
