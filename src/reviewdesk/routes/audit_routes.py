"""
Audit trail routes (superadmin only).
GET /api/translator/audit-logs — transition history, newest first
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from reviewdesk.auth import Actor, require_superadmin
from reviewdesk.dao.audit_dao import get_audit_logs
from reviewdesk.database import get_db

router = APIRouter(tags=["Audit"])


@router.get("/api/translator/audit-logs")
def list_audit_logs(
    entity_id: str | None = Query(None, alias="documentId"),
    event_type: str | None = Query(None, alias="eventType"),
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_superadmin),
):
    logs = get_audit_logs(db, entity_id=entity_id, event_type=event_type, limit=limit)
    return [
        {
            "id": l.id,
            "event_type": l.event_type,
            "entity_type": l.entity_type,
            "entity_id": l.entity_id,
            "actor": l.actor,
            "detail": l.detail,
            "created_at": l.created_at.isoformat() if l.created_at else None,
        }
        for l in logs
    ]
