"""
Review workflow engine.

State machine:
    pending_review ──(AI pipeline)──> ai_completed
    pending_review | ai_completed ──claim──> in_review
    in_review ──release──> ai_completed | pending_review
    in_review ──approve──> approved   (terminal)
    in_review ──reject───> rejected   (terminal)

Mutual exclusion comes from the store, not from engine-side locks:
  - claim is one conditional UPDATE (unassigned + claimable, or nothing)
  - every other transition is an optimistic write guarded by documents.version;
    a version miss rolls back, re-reads and re-checks the preconditions.

assigned_to is non-null iff status == in_review, after every operation.
"""
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from reviewdesk.auth import Actor
from reviewdesk.clock import utcnow
from reviewdesk.dao.document_dao import list_stale_claims
from reviewdesk.errors import Conflict, InvalidState, NotFound, Unauthorized, ValidationError, WorkflowError
from reviewdesk.models.document import (
    Document, DocumentStatus, RejectionType, CLAIMABLE_STATUSES,
)
from reviewdesk.models.revision import Revision
from reviewdesk.models.translator_profile import TranslatorProfile
from reviewdesk.services import notification_service
from reviewdesk.services.audit_service import log_event, log_rejected_transition

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

SYSTEM_ACTOR = Actor(uid="system", display_name="System", role="superadmin")

# (event_type, audit detail) for a write, or None for a no-op
Outcome = tuple[str, dict] | None


# ── Helpers ───────────────────────────────────────────────────────────────────

def load_fresh(db: Session, document_id: str) -> Document:
    doc = (
        db.query(Document)
        .filter_by(id = document_id)
        .populate_existing()
        .first()
    )
    if not doc:
        raise NotFound(document_id=document_id)
    return doc


def _refuse(db: Session, action: str, document_id: str, actor: Actor, error: WorkflowError):
    db.rollback()
    if error.document_id is None:
        error.document_id = document_id
    log_rejected_transition(db, action, document_id, actor.uid, error)


def _require_assignee(doc: Document, actor: Actor, action: str):
    # terminal documents are closed to everyone; otherwise only the assignee may act
    if doc.is_terminal:
        raise InvalidState(
            f"Cannot {action} a document in status '{doc.status.value}'. Please refresh.",
            document_id=doc.id,
        )
    if doc.assigned_to != actor.uid:
        raise Unauthorized(document_id=doc.id)


def _release_target(doc: Document) -> DocumentStatus:
    # any AI or translator output means the document re-enters as ai_completed
    if doc.translated_data or doc.extracted_data:
        return DocumentStatus.AI_COMPLETED
    return DocumentStatus.PENDING_REVIEW


def _clear_claim(doc: Document, keep_assigned_at: bool = False):
    doc.assigned_to = None
    doc.assigned_to_name = None
    if not keep_assigned_at:
        doc.assigned_at = None


def _run_transition(
    db: Session,
    action: str,
    document_id: str,
    actor: Actor,
    mutate: Callable[[Document], Outcome],
) -> Document:
    """
    Read, check, write under the version guard. mutate() raises a WorkflowError
    when the transition is not allowed from the state it sees.
    """
    for attempt in range(1, MAX_ATTEMPTS + 1):
        doc = load_fresh(db, document_id)
        try:
            outcome = mutate(doc)
            if outcome is None:
                return doc
            event_type, detail = outcome
            log_event(db, event_type, "document", document_id, actor=actor.uid, detail=detail, commit=False)
            db.commit()
            return doc
        except (StaleDataError, IntegrityError):
            # version miss, or a translator profile created concurrently
            db.rollback()
            logger.info(
                "Write conflict on %s for document %s (attempt %d/%d) — re-evaluating",
                action, document_id, attempt, MAX_ATTEMPTS,
            )

    raise Conflict("This document changed while you were working on it. Please refresh.", document_id)


def _guarded(db: Session, action: str, document_id: str, actor: Actor, fn: Callable):
    try:
        return fn()
    except WorkflowError as e:
        _refuse(db, action, document_id, actor, e)
        raise


def _credit_translator(db: Session, actor: Actor, column):
    """
    Bump an all-time counter inside the caller's transaction, creating the
    profile on first contact. Runs only once the transition is accepted.
    """
    values = {column: column + 1}
    if actor.display_name:
        values[TranslatorProfile.display_name] = actor.display_name
    updated = db.query(TranslatorProfile).filter_by(uid = actor.uid).update(
        values, synchronize_session=False
    )
    if not updated:
        profile = TranslatorProfile(
            uid=actor.uid,
            display_name=actor.display_name,
            email=actor.email,
            documents_approved=0,
            documents_rejected=0,
        )
        setattr(profile, column.key, 1)
        db.add(profile)


def _describe_changes(before: dict | None, after: dict) -> str:
    before = before or {}
    changed = sorted(k for k in set(before) | set(after) if before.get(k) != after.get(k))
    if not changed:
        return "No field changes"
    return "Updated fields: " + ", ".join(changed)


# ── Claim ─────────────────────────────────────────────────────────────────────

def claim_document(db: Session, document_id: str, actor: Actor) -> Document:
    """
    Take the exclusive claim. One conditional UPDATE: it matches only an
    unassigned document in a claimable status. Of two racing claims exactly
    one matches; the other gets Conflict and must re-fetch.
    """
    now = utcnow()
    result = db.execute(
        update(Document)
        .where(
            Document.id == document_id,
            Document.status.in_(CLAIMABLE_STATUSES),
            Document.assigned_to.is_(None),
        )
        .values(
            status=DocumentStatus.IN_REVIEW,
            assigned_to=actor.uid,
            assigned_to_name=actor.display_name,
            assigned_at=now,
            updated_at=now,
            version=Document.version + 1,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        db.rollback()
        try:
            doc = load_fresh(db, document_id)
            if doc.is_terminal:
                raise InvalidState(
                    f"Cannot claim a document in status '{doc.status.value}'. Please refresh.",
                    document_id=document_id,
                )
            raise Conflict(document_id=document_id)
        except WorkflowError as e:
            _refuse(db, "claim", document_id, actor, e)
            raise

    log_event(db, "DOCUMENT_CLAIMED", "document", document_id, actor=actor.uid,
              detail={"assigned_to_name": actor.display_name}, commit=False)
    db.commit()

    doc = load_fresh(db, document_id)
    logger.info("Document %s claimed by %s", document_id, actor.uid)
    notification_service.notify_assigned(db, doc)
    return doc


# ── Release ───────────────────────────────────────────────────────────────────

def release_document(db: Session, document_id: str, actor: Actor, reason: str | None = None) -> Document:
    """
    Give the claim back. The assignee or a superadmin may release; releasing a
    document that is already unclaimed is a successful no-op.
    """
    def mutate(doc: Document) -> Outcome:
        if doc.is_terminal:
            raise InvalidState(
                f"Cannot release a document in status '{doc.status.value}'. Please refresh.",
                document_id=doc.id,
            )
        if doc.status != DocumentStatus.IN_REVIEW:
            logger.info("Release of unclaimed document %s by %s — no-op", doc.id, actor.uid)
            return None
        if doc.assigned_to != actor.uid and not actor.is_elevated:
            raise Unauthorized(document_id=doc.id)

        former = doc.assigned_to
        target = _release_target(doc)
        doc.status = target
        _clear_claim(doc)
        return "DOCUMENT_RELEASED", {
            "reason": reason,
            "former_assignee": former,
            "to_status": target.value,
            "forced": former != actor.uid,
        }

    doc = _guarded(db, "release", document_id, actor,
                   lambda: _run_transition(db, "release", document_id, actor, mutate))
    logger.info("Document %s released by %s -> %s", document_id, actor.uid, doc.status.value)
    return doc


# ── Save draft ────────────────────────────────────────────────────────────────

def save_document(
    db: Session,
    document_id: str,
    actor: Actor,
    translated_data: dict,
    review_notes: str | None = None,
    changes_summary: str | None = None,
) -> Document:
    """Store the assignee's draft and append one revision. Status is unchanged."""
    def mutate(doc: Document) -> Outcome:
        _require_assignee(doc, actor, "save")
        if not isinstance(translated_data, dict):
            raise ValidationError("translatedData must be an object", document_id=doc.id)

        changes = changes_summary or _describe_changes(doc.translated_data or doc.extracted_data, translated_data)
        doc.translated_data = dict(translated_data)
        if review_notes is not None:
            doc.review_notes = review_notes
        doc.updated_at = utcnow()
        db.add(Revision(
            document_id=doc.id,
            translator_id=actor.uid,
            translator_name=actor.display_name,
            changes=changes,
            comment=review_notes,
        ))
        return "DOCUMENT_SAVED", {"changes": changes}

    doc = _guarded(db, "save", document_id, actor,
                   lambda: _run_transition(db, "save", document_id, actor, mutate))
    logger.info("Document %s saved by %s", document_id, actor.uid)
    return doc


# ── Approve / Reject ──────────────────────────────────────────────────────────

def approve_document(
    db: Session,
    document_id: str,
    actor: Actor,
    final_notes: str | None = None,
) -> Document:
    def mutate(doc: Document) -> Outcome:
        _require_assignee(doc, actor, "approve")
        now = utcnow()
        doc.status = DocumentStatus.APPROVED
        doc.approved_by = actor.uid
        doc.approved_by_name = actor.display_name
        doc.approved_at = now
        if final_notes:
            doc.review_notes = f"{doc.review_notes}\n\n{final_notes}" if doc.review_notes else final_notes
        # assigned_at stays: it opens the claim episode used for review time
        _clear_claim(doc, keep_assigned_at=True)
        _credit_translator(db, actor, TranslatorProfile.documents_approved)
        return "DOCUMENT_APPROVED", {"final_notes": final_notes}

    doc = _guarded(db, "approve", document_id, actor,
                   lambda: _run_transition(db, "approve", document_id, actor, mutate))
    logger.info("Document %s approved by %s", document_id, actor.uid)
    notification_service.notify_approved(db, doc)
    return doc


def reject_document(
    db: Session,
    document_id: str,
    actor: Actor,
    reason: str | None,
    rejection_type: RejectionType | str | None,
) -> Document:
    def validate() -> RejectionType:
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required", document_id=document_id)
        if rejection_type is None:
            raise ValidationError("rejectionType is required", document_id=document_id)
        try:
            return RejectionType(rejection_type)
        except ValueError:
            allowed = ", ".join(t.value for t in RejectionType)
            raise ValidationError(f"rejectionType must be one of: {allowed}", document_id=document_id)

    rtype = _guarded(db, "reject", document_id, actor, validate)

    def mutate(doc: Document) -> Outcome:
        _require_assignee(doc, actor, "reject")
        doc.status = DocumentStatus.REJECTED
        doc.rejected_by = actor.uid
        doc.rejected_by_name = actor.display_name
        doc.rejected_at = utcnow()
        doc.rejection_reason = reason.strip()
        doc.rejection_type = rtype
        _clear_claim(doc, keep_assigned_at=True)
        _credit_translator(db, actor, TranslatorProfile.documents_rejected)
        return "DOCUMENT_REJECTED", {"reason": doc.rejection_reason, "rejection_type": rtype.value}

    doc = _guarded(db, "reject", document_id, actor,
                   lambda: _run_transition(db, "reject", document_id, actor, mutate))
    logger.info("Document %s rejected by %s (%s)", document_id, actor.uid, rtype.value)
    notification_service.notify_rejected(db, doc)
    return doc


# ── Stale claim reclaim ───────────────────────────────────────────────────────

def release_stale_claims(db: Session, idle_minutes: int, now: datetime | None = None) -> list[str]:
    """
    Return in_review documents idle for longer than idle_minutes to the queue.
    Each one is re-checked under the version guard, so a claim that saw
    activity in the meantime is left alone.
    """
    now = now or utcnow()
    idle_before = now - timedelta(minutes=idle_minutes)
    released: list[str] = []

    for stale in list_stale_claims(db, idle_before):
        document_id = stale.id
        former = stale.assigned_to

        def mutate(doc: Document) -> Outcome:
            if doc.status != DocumentStatus.IN_REVIEW or doc.updated_at >= idle_before:
                return None
            target = _release_target(doc)
            doc.status = target
            _clear_claim(doc)
            return "CLAIM_EXPIRED", {
                "former_assignee": former,
                "idle_minutes": idle_minutes,
                "to_status": target.value,
            }

        try:
            doc = _run_transition(db, "expire_claim", document_id, SYSTEM_ACTOR, mutate)
        except WorkflowError as e:
            # a concurrent transition won; it is logged and the sweep moves on
            _refuse(db, "expire_claim", document_id, SYSTEM_ACTOR, e)
            continue
        if doc.status != DocumentStatus.IN_REVIEW:
            released.append(document_id)
            notification_service.notify_claim_expired(db, doc, former)

    if released:
        logger.info("Released %d stale claims idle > %d min", len(released), idle_minutes)
    return released
