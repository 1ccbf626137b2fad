"""
Queue counts, per-translator performance and the leaderboard.

Everything is computed on demand from current document state, so the numbers
always agree with what the queue listing shows at the time of the query.
Windows are calendar-aligned in UTC (see clock.period_start).
"""
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from reviewdesk.clock import Period, period_start, start_of_day, utcnow
from reviewdesk.dao import document_dao
from reviewdesk.errors import ValidationError
from reviewdesk.models.document import Document, DocumentStatus
from reviewdesk.models.translator_profile import TranslatorProfile


@dataclass
class QueueStats:
    pending_review: int
    in_review: int
    ai_completed: int
    approved: int
    rejected: int
    total_in_queue: int
    approved_today: int

    def to_dict(self) -> dict:
        return {
            "pendingReview": self.pending_review,
            "inReview": self.in_review,
            "aiCompleted": self.ai_completed,
            "approved": self.approved,
            "rejected": self.rejected,
            "totalInQueue": self.total_in_queue,
            "approvedToday": self.approved_today,
        }


@dataclass
class TranslatorStats:
    translator_id: str
    period: Period
    approved: int
    rejected: int
    in_progress: int
    approval_rate: float
    avg_review_time_minutes: float | None
    all_time_approved: int = 0
    all_time_rejected: int = 0

    @property
    def total_reviewed(self) -> int:
        return self.approved + self.rejected

    def to_dict(self) -> dict:
        return {
            "period": self.period.value,
            "approved": self.approved,
            "rejected": self.rejected,
            "inProgress": self.in_progress,
            "totalReviewed": self.total_reviewed,
            "approvalRate": self.approval_rate,
            "avgReviewTimeMinutes": self.avg_review_time_minutes,
            "allTimeStats": {
                "documentsApproved": self.all_time_approved,
                "documentsRejected": self.all_time_rejected,
            },
        }


@dataclass
class LeaderboardEntry:
    uid: str
    display_name: str | None
    documents_approved: int
    reached_at: datetime
    photo_url: str | None = None
    stats: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "displayName": self.display_name or self.uid,
            "photoURL": self.photo_url,
            "documentsApproved": self.documents_approved,
            "stats": self.stats,
        }


def parse_period(value: str | Period | None) -> Period:
    if value is None:
        return Period.ALL
    try:
        return Period(value)
    except ValueError:
        allowed = ", ".join(p.value for p in Period)
        raise ValidationError(f"period must be one of: {allowed}")


def approval_rate(approved: int, rejected: int) -> float:
    total = approved + rejected
    if total == 0:
        return 0.0
    return round(approved / total, 4)


def get_queue_stats(db: Session, now: datetime | None = None) -> QueueStats:
    now = now or utcnow()
    counts = document_dao.count_by_status(db)
    pending = counts[DocumentStatus.PENDING_REVIEW]
    in_review = counts[DocumentStatus.IN_REVIEW]
    ai_completed = counts[DocumentStatus.AI_COMPLETED]
    return QueueStats(
        pending_review=pending,
        in_review=in_review,
        ai_completed=ai_completed,
        approved=counts[DocumentStatus.APPROVED],
        rejected=counts[DocumentStatus.REJECTED],
        total_in_queue=pending + in_review + ai_completed,
        approved_today=document_dao.count_approved_since(db, start_of_day(now)),
    )


def _average_review_minutes(rows: list[tuple[datetime, datetime]]) -> float | None:
    durations = [
        (approved_at - assigned_at).total_seconds() / 60.0
        for approved_at, assigned_at in rows
        if approved_at and assigned_at and approved_at >= assigned_at
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 1)


def get_translator_stats(
    db: Session,
    translator_id: str,
    period: Period | str | None = Period.ALL,
    now: datetime | None = None,
) -> TranslatorStats:
    """
    Completed work is windowed on approved_at / rejected_at, in-progress work
    on assigned_at. Review time uses the assigned_at of the claim episode that
    ended in approval, so earlier released claims do not count.
    """
    period = parse_period(period)
    since = period_start(period, now)

    approved_q = db.query(Document.approved_at, Document.assigned_at).filter(
        Document.status == DocumentStatus.APPROVED,
        Document.approved_by == translator_id,
    )
    rejected_q = db.query(func.count(Document.id)).filter(
        Document.status == DocumentStatus.REJECTED,
        Document.rejected_by == translator_id,
    )
    in_progress_q = db.query(func.count(Document.id)).filter(
        Document.status == DocumentStatus.IN_REVIEW,
        Document.assigned_to == translator_id,
    )
    if since is not None:
        approved_q = approved_q.filter(Document.approved_at >= since)
        rejected_q = rejected_q.filter(Document.rejected_at >= since)
        in_progress_q = in_progress_q.filter(Document.assigned_at >= since)

    approved_rows = approved_q.all()
    approved = len(approved_rows)
    rejected = rejected_q.scalar() or 0

    profile = db.query(TranslatorProfile).filter_by(uid = translator_id).first()

    return TranslatorStats(
        translator_id=translator_id,
        period=period,
        approved=approved,
        rejected=rejected,
        in_progress=in_progress_q.scalar() or 0,
        approval_rate=approval_rate(approved, rejected),
        avg_review_time_minutes=_average_review_minutes(approved_rows),
        all_time_approved=profile.documents_approved if profile else 0,
        all_time_rejected=profile.documents_rejected if profile else 0,
    )


def get_leaderboard(
    db: Session,
    period: Period | str | None = Period.ALL,
    limit: int = 10,
    now: datetime | None = None,
) -> list[LeaderboardEntry]:
    """
    Translators ranked by approvals in the window. Ties go to whoever reached
    the count first, i.e. the earlier latest approval.
    """
    if limit < 1:
        raise ValidationError("limit must be positive")
    period = parse_period(period)
    since = period_start(period, now)

    approved_count = func.count(Document.id).label("approved_count")
    reached_at = func.max(Document.approved_at).label("reached_at")
    q = (
        db.query(Document.approved_by, approved_count, reached_at, func.max(Document.approved_by_name))
        .filter(Document.status == DocumentStatus.APPROVED, Document.approved_by.isnot(None))
    )
    if since is not None:
        q = q.filter(Document.approved_at >= since)
    rows = (
        q.group_by(Document.approved_by)
        .order_by(desc(approved_count), reached_at, Document.approved_by)
        .limit(limit)
        .all()
    )

    uids = [r[0] for r in rows]
    profiles = {
        p.uid: p
        for p in db.query(TranslatorProfile).filter(TranslatorProfile.uid.in_(uids)).all()
    } if uids else {}

    entries = []
    for uid, count, reached, name in rows:
        profile = profiles.get(uid)
        entries.append(LeaderboardEntry(
            uid=uid,
            display_name=(profile.display_name if profile and profile.display_name else name),
            documents_approved=count,
            reached_at=reached,
            photo_url=profile.photo_url if profile else None,
            stats={
                "documentsApproved": profile.documents_approved if profile else count,
                "documentsRejected": profile.documents_rejected if profile else 0,
            },
        ))
    return entries
