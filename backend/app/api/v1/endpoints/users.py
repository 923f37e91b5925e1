from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_user_store, require_ownership_or_admin
from app.core.errors import not_found, server_error
from app.models.auth import UserContext, UserRoleView
from app.services.interfaces import UserRoleStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserRoleView)
async def get_user(
    user_id: int,
    user: UserContext = Depends(require_ownership_or_admin("user_id")),  # noqa: B008
    store: UserRoleStore = Depends(get_user_store),  # noqa: B008
):
    """Role mapping of one user; the stored refresh token is never returned."""
    try:
        record = await store.find_by_id(user_id)
    except Exception as err:
        logger.exception("Failed to get user role mapping", extra={"user_id": user_id, "caller_id": user.id})
        raise server_error("Failed to retrieve user") from err

    if record is None:
        raise not_found(f"User {user_id} not found")

    return UserRoleView(**record.model_dump(include=set(UserRoleView.model_fields)))
