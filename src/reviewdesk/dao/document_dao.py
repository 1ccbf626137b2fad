from datetime import datetime
from sqlalchemy import and_, case, desc, func, or_
from sqlalchemy.orm import Session
from reviewdesk.errors import ValidationError
from reviewdesk.models.document import (
    Document, DocumentStatus, Priority, PRIORITY_RANK, OPEN_STATUSES,
)
from reviewdesk.models.revision import Revision


def priority_rank():
    """SQL expression ranking priority: urgent > high > normal > low."""
    return case(
        *[(Document.priority == p, rank) for p, rank in PRIORITY_RANK.items()],
        else_=0,
    )


def get_document(db: Session, document_id: str) -> Document | None:
    return db.query(Document).filter_by(id = document_id).first()


def get_revisions(db: Session, document_id: str) -> list[Revision]:
    """Full edit history, oldest first."""
    return (
        db.query(Revision)
        .filter_by(document_id = document_id)
        .order_by(Revision.created_at, Revision.id)
        .all()
    )


def list_queue(
    db: Session,
    status: DocumentStatus | None = None,
    priority: Priority | None = None,
    limit: int = 50,
    start_after: str | None = None,
) -> list[Document]:
    """
    Queue listing: priority descending, then oldest first, then id.
    Without a status filter every non-terminal document is listed.
    start_after is the id of the last document of the previous page.
    """
    rank = priority_rank()
    q = db.query(Document)
    if status:
        q = q.filter(Document.status == status)
    else:
        q = q.filter(Document.status.in_(OPEN_STATUSES))
    if priority:
        q = q.filter(Document.priority == priority)

    if start_after:
        cursor = get_document(db, start_after)
        if not cursor:
            raise ValidationError(f"Unknown startAfter cursor: {start_after}")
        r = PRIORITY_RANK[cursor.priority]
        q = q.filter(or_(
            rank < r,
            and_(rank == r, Document.created_at > cursor.created_at),
            and_(rank == r, Document.created_at == cursor.created_at, Document.id > cursor.id),
        ))

    return q.order_by(desc(rank), Document.created_at, Document.id).limit(limit).all()


def list_assigned(
    db: Session,
    translator_id: str,
    status: DocumentStatus | None = None,
    limit: int = 50,
) -> list[Document]:
    """
    A translator's own work. In-flight claims by default; approved/rejected
    return the documents they closed.
    """
    if status in (None, DocumentStatus.IN_REVIEW):
        q = (
            db.query(Document)
            .filter_by(assigned_to = translator_id, status = DocumentStatus.IN_REVIEW)
            .order_by(desc(Document.assigned_at))
        )
    elif status == DocumentStatus.APPROVED:
        q = (
            db.query(Document)
            .filter_by(approved_by = translator_id, status = DocumentStatus.APPROVED)
            .order_by(desc(Document.approved_at))
        )
    elif status == DocumentStatus.REJECTED:
        q = (
            db.query(Document)
            .filter_by(rejected_by = translator_id, status = DocumentStatus.REJECTED)
            .order_by(desc(Document.rejected_at))
        )
    else:
        # unclaimed statuses never carry an assignee
        return []
    return q.limit(limit).all()


def count_by_status(db: Session) -> dict[DocumentStatus, int]:
    counts = {s: 0 for s in DocumentStatus}
    rows = db.query(Document.status, func.count(Document.id)).group_by(Document.status).all()
    for status, n in rows:
        counts[DocumentStatus(status)] = n
    return counts


def count_approved_since(db: Session, since: datetime) -> int:
    return (
        db.query(func.count(Document.id))
        .filter(Document.status == DocumentStatus.APPROVED, Document.approved_at >= since)
        .scalar()
    ) or 0


def list_stale_claims(db: Session, idle_before: datetime, limit: int = 100) -> list[Document]:
    """in_review documents with no activity since idle_before."""
    return (
        db.query(Document)
        .filter(
            Document.status == DocumentStatus.IN_REVIEW,
            Document.updated_at < idle_before,
        )
        .order_by(Document.updated_at)
        .limit(limit)
        .all()
    )
