"""
Notification routes — scoped to the authenticated user.
GET  /api/translator/notifications            — newest first, ?unreadOnly=true
POST /api/translator/notifications/{id}/read  — mark one read
POST /api/translator/notifications/read-all   — mark all read
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from reviewdesk.auth import Actor, require_translator
from reviewdesk.database import get_db
from reviewdesk.serializers import serialize_notification
from reviewdesk.services import notification_service

router = APIRouter(prefix="/api/translator/notifications", tags=["Notifications"])


@router.get("")
def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    notifications = notification_service.list_for_user(db, actor.uid, unread_only=unread_only, limit=limit)
    return {
        "notifications": [serialize_notification(n) for n in notifications],
        "count": len(notifications),
    }


# registered before /{notification_id}/read so "read-all" is never taken for an id
@router.post("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    updated = notification_service.mark_all_read(db, actor.uid)
    return {"success": True, "message": f"{updated} notifications marked as read"}


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    notification_service.mark_read(db, notification_id, actor.uid)
    return {"success": True}
