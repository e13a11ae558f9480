from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from dispatch_service.auth import AuthContext, require_auth
from dispatch_service.dependencies import get_store
from dispatch_service.errors import not_found
from dispatch_service.response import success_response
from dispatch_service.store import DispatchStore

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    user_type: str | None = Query(default=None),
    auth: AuthContext = Depends(require_auth),
    store: DispatchStore = Depends(get_store),
) -> dict[str, object]:
    items = await store.list_notifications(auth.user_id, limit=limit, user_type=user_type)
    unread = await store.unread_count(auth.user_id)
    return success_response([asdict(item) for item in items], meta={"unread": unread})


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    auth: AuthContext = Depends(require_auth),
    store: DispatchStore = Depends(get_store),
) -> dict[str, object]:
    if not await store.mark_notification_read(notification_id, auth.user_id):
        raise not_found("notification")
    return success_response({"notification_id": notification_id, "read": True}, meta={})
