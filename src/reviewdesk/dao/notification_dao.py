from sqlalchemy import desc, update
from sqlalchemy.orm import Session
from reviewdesk.models.notification import Notification


def insert_notification(
    db: Session,
    user_id: str,
    type: str,
    title: str,
    message: str,
    document_id: str | None = None,
) -> Notification:
    n = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        document_id=document_id,
    )
    db.add(n)
    db.commit()
    db.refresh(n)
    return n


def list_notifications(
    db: Session, user_id: str, unread_only: bool = False, limit: int = 50
) -> list[Notification]:
    q = db.query(Notification).filter_by(user_id = user_id)
    if unread_only:
        q = q.filter_by(read = False)
    return q.order_by(desc(Notification.created_at), desc(Notification.id)).limit(limit).all()


def get_notification(db: Session, notification_id: str) -> Notification | None:
    return db.query(Notification).filter_by(id = notification_id).first()


def mark_read(db: Session, notification: Notification) -> Notification:
    notification.read = True
    db.commit()
    return notification


def mark_all_read(db: Session, user_id: str) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0
