"""
Notification emitter.

Fire-and-forget: a notification failure is logged and rolled back on its own,
it never fails or undoes the transition that triggered it. Callers emit only
after their transition is committed.
"""
import logging
from sqlalchemy.orm import Session
from reviewdesk.dao import notification_dao
from reviewdesk.errors import NotFound
from reviewdesk.models.document import Document
from reviewdesk.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


def emit(
    db: Session,
    user_id: str | None,
    type: NotificationType,
    title: str,
    message: str,
    document_id: str | None = None,
) -> Notification | None:
    if not user_id:
        return None
    try:
        return notification_dao.insert_notification(
            db, user_id, type.value, title, message, document_id=document_id
        )
    except Exception:
        db.rollback()
        logger.exception("Notification %s for user %s dropped", type.value, user_id)
        return None


def _label(doc: Document) -> str:
    return doc.student_name or doc.form_type or doc.id


def notify_assigned(db: Session, doc: Document) -> Notification | None:
    return emit(
        db, doc.assigned_to, NotificationType.DOCUMENT_ASSIGNED,
        "Document assigned",
        f"You are now reviewing {_label(doc)} ({doc.form_type}).",
        document_id=doc.id,
    )


def notify_approved(db: Session, doc: Document) -> Notification | None:
    return emit(
        db, doc.user_id, NotificationType.DOCUMENT_APPROVED,
        "Translation approved",
        f"Your {doc.form_type} translation for {_label(doc)} has been approved.",
        document_id=doc.id,
    )


def notify_rejected(db: Session, doc: Document) -> Notification | None:
    reason = f" Reason: {doc.rejection_reason}" if doc.rejection_reason else ""
    return emit(
        db, doc.user_id, NotificationType.DOCUMENT_REJECTED,
        "Translation rejected",
        f"Your {doc.form_type} document for {_label(doc)} was rejected.{reason}",
        document_id=doc.id,
    )


def notify_claim_expired(db: Session, doc: Document, former_assignee: str) -> Notification | None:
    return emit(
        db, former_assignee, NotificationType.CLAIM_EXPIRED,
        "Claim released",
        f"{_label(doc)} was returned to the queue after inactivity.",
        document_id=doc.id,
    )


def list_for_user(db: Session, user_id: str, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    return notification_dao.list_notifications(db, user_id, unread_only=unread_only, limit=limit)


def mark_read(db: Session, notification_id: str, user_id: str) -> Notification:
    n = notification_dao.get_notification(db, notification_id)
    # someone else's notification is indistinguishable from a missing one
    if not n or n.user_id != user_id:
        raise NotFound("Notification not found")
    return notification_dao.mark_read(db, n)


def mark_all_read(db: Session, user_id: str) -> int:
    return notification_dao.mark_all_read(db, user_id)
