from sqlalchemy import desc
from sqlalchemy.orm import Session
from reviewdesk.models.audit_log import AuditLog


def get_audit_logs(
    db: Session,
    entity_id: str | None = None,
    event_type: str | None = None,
    limit: int = 200,
) -> list[AuditLog]:
    q = db.query(AuditLog)
    if entity_id:
        q = q.filter_by(entity_id = entity_id)
    if event_type:
        q = q.filter_by(event_type = event_type)
    return q.order_by(desc(AuditLog.created_at), desc(AuditLog.id)).limit(limit).all()
