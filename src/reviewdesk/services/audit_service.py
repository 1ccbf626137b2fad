import logging
from sqlalchemy.orm import Session
from reviewdesk.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_event(
        db: Session,
        event_type: str,
        entity_type: str | None = None,
        entity_id: str | None = None,
        actor: str = "system",
        detail: dict | None = None,
        commit: bool = True,
) -> AuditLog:
    """
    Central audit logging utility.
    Call this everywhere instead of inline AuditLog() inserts.
    With commit=False the entry joins the caller's transaction.

    Usage:
        log_event(db, "DOCUMENT_CLAIMED", "document", doc_id, actor=uid,
                  detail={"from_status": "ai_completed"})
    """
    entry = AuditLog(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor=actor,
        detail=detail,
    )
    db.add(entry)
    if commit:
        db.commit()
    logger.info("AUDIT [%s] entity=%s/%s actor=%s", event_type, entity_type, entity_id, actor)
    return entry


def log_rejected_transition(
        db: Session,
        action: str,
        document_id: str,
        actor: str,
        error: Exception,
) -> None:
    """Record a refused transition. Runs in its own transaction after the caller rolled back."""
    logger.warning(
        "Transition refused: action=%s document=%s actor=%s reason=%s",
        action, document_id, actor, getattr(error, "code", type(error).__name__),
    )
    log_event(
        db, "TRANSITION_REJECTED", "document", document_id, actor=actor,
        detail={"action": action, "error": getattr(error, "code", type(error).__name__), "message": str(error)},
    )
