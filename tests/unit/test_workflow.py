import pytest

from reviewdesk.dao import audit_dao, document_dao
from reviewdesk.errors import Conflict, InvalidState, NotFound, Unauthorized, ValidationError
from reviewdesk.models.document import DocumentStatus, RejectionType
from reviewdesk.models.translator_profile import TranslatorProfile
from reviewdesk.services import workflow_service
from factories import ADMIN, ALICE, BOB


def assert_claim_invariant(doc):
    assert (doc.assigned_to is not None) == (doc.status == DocumentStatus.IN_REVIEW)


# ── Claim ─────────────────────────────────────────────────────────────────────

def test_claim_takes_exclusive_hold(db, make_document, reload):
    doc = make_document()

    workflow_service.claim_document(db, doc.id, ALICE)

    doc = reload(doc.id)
    assert doc.status == DocumentStatus.IN_REVIEW
    assert doc.assigned_to == ALICE.uid
    assert doc.assigned_to_name == "Alice"
    assert doc.assigned_at is not None
    assert_claim_invariant(doc)


def test_claim_from_pending_review(db, make_document, reload):
    doc = make_document(status=DocumentStatus.PENDING_REVIEW)
    workflow_service.claim_document(db, doc.id, ALICE)
    assert reload(doc.id).status == DocumentStatus.IN_REVIEW


def test_second_claim_conflicts_and_keeps_first_holder(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    with pytest.raises(Conflict) as exc:
        workflow_service.claim_document(db, doc.id, BOB)

    assert exc.value.document_id == doc.id
    assert "just claimed" in exc.value.message
    assert reload(doc.id).assigned_to == ALICE.uid


def test_reclaim_by_current_holder_conflicts(db, make_document):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    with pytest.raises(Conflict):
        workflow_service.claim_document(db, doc.id, ALICE)


@pytest.mark.parametrize("status", [DocumentStatus.APPROVED, DocumentStatus.REJECTED])
def test_claim_terminal_document_is_invalid_state(db, make_document, status):
    doc = make_document(status=status)
    with pytest.raises(InvalidState):
        workflow_service.claim_document(db, doc.id, ALICE)


def test_claim_unknown_document(db):
    with pytest.raises(NotFound):
        workflow_service.claim_document(db, "missing", ALICE)


def test_refused_claim_is_audited(db, make_document):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    with pytest.raises(Conflict):
        workflow_service.claim_document(db, doc.id, BOB)

    refused = audit_dao.get_audit_logs(db, entity_id=doc.id, event_type="TRANSITION_REJECTED")
    assert len(refused) == 1
    assert refused[0].actor == BOB.uid
    assert refused[0].detail["action"] == "claim"
    assert refused[0].detail["error"] == "conflict"


# ── Release ───────────────────────────────────────────────────────────────────

def test_release_returns_document_to_queue(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    workflow_service.release_document(db, doc.id, ALICE, reason="lunch")

    doc = reload(doc.id)
    assert doc.status == DocumentStatus.AI_COMPLETED
    assert doc.assigned_to is None
    assert doc.assigned_to_name is None
    assert doc.assigned_at is None
    assert_claim_invariant(doc)


def test_release_without_ai_data_goes_back_to_pending(db, make_document, reload):
    doc = make_document(status=DocumentStatus.PENDING_REVIEW)
    workflow_service.claim_document(db, doc.id, ALICE)
    workflow_service.release_document(db, doc.id, ALICE)
    assert reload(doc.id).status == DocumentStatus.PENDING_REVIEW


def test_release_is_idempotent(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    workflow_service.release_document(db, doc.id, ALICE)

    workflow_service.release_document(db, doc.id, ALICE)

    doc = reload(doc.id)
    assert doc.status == DocumentStatus.AI_COMPLETED
    assert doc.assigned_to is None
    released = audit_dao.get_audit_logs(db, entity_id=doc.id, event_type="DOCUMENT_RELEASED")
    assert len(released) == 1


def test_release_by_non_holder_is_unauthorized(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    with pytest.raises(Unauthorized):
        workflow_service.release_document(db, doc.id, BOB)
    assert reload(doc.id).assigned_to == ALICE.uid


def test_supervisor_can_release_someone_elses_claim(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    workflow_service.release_document(db, doc.id, ADMIN, reason="translator on leave")

    assert reload(doc.id).assigned_to is None
    event = audit_dao.get_audit_logs(db, entity_id=doc.id, event_type="DOCUMENT_RELEASED")[0]
    assert event.detail["forced"] is True
    assert event.detail["former_assignee"] == ALICE.uid


def test_release_terminal_document_is_invalid_state(db, make_document):
    doc = make_document(status=DocumentStatus.APPROVED, approved_by=ALICE.uid)
    with pytest.raises(InvalidState):
        workflow_service.release_document(db, doc.id, ALICE)


# ── Save ──────────────────────────────────────────────────────────────────────

def test_save_appends_revision_and_keeps_status(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    workflow_service.save_document(
        db, doc.id, ALICE,
        translated_data={"studentName": "Jane Doe"},
        review_notes="name casing",
        changes_summary="Fixed name",
    )

    doc = reload(doc.id)
    assert doc.status == DocumentStatus.IN_REVIEW
    assert doc.translated_data == {"studentName": "Jane Doe"}
    assert doc.review_notes == "name casing"
    revisions = document_dao.get_revisions(db, doc.id)
    assert len(revisions) == 1
    assert revisions[0].translator_id == ALICE.uid
    assert revisions[0].changes == "Fixed name"
    assert revisions[0].comment == "name casing"


def test_save_describes_changed_fields_when_no_summary(db, make_document):
    doc = make_document(extracted_data={"studentName": "JANE DOE", "grade": "A"})
    workflow_service.claim_document(db, doc.id, ALICE)

    workflow_service.save_document(db, doc.id, ALICE, translated_data={"studentName": "Jane Doe", "grade": "A"})

    assert document_dao.get_revisions(db, doc.id)[0].changes == "Updated fields: studentName"


def test_save_by_non_holder_is_unauthorized_and_writes_nothing(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    with pytest.raises(Unauthorized):
        workflow_service.save_document(db, doc.id, BOB, translated_data={"studentName": "Bob's guess"})

    doc = reload(doc.id)
    assert doc.translated_data is None
    assert document_dao.get_revisions(db, doc.id) == []


def test_save_unclaimed_document_is_unauthorized(db, make_document):
    doc = make_document()
    with pytest.raises(Unauthorized):
        workflow_service.save_document(db, doc.id, BOB, translated_data={})
    assert document_dao.get_revisions(db, doc.id) == []


@pytest.mark.parametrize("action", ["save", "approve", "reject"])
def test_former_holder_is_unauthorized_after_supervisor_release(db, make_document, reload, action):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    workflow_service.release_document(db, doc.id, ADMIN, reason="reassigning")

    with pytest.raises(Unauthorized) as exc:
        if action == "save":
            workflow_service.save_document(db, doc.id, ALICE, translated_data={"studentName": "Jane Doe"})
        elif action == "approve":
            workflow_service.approve_document(db, doc.id, ALICE)
        else:
            workflow_service.reject_document(db, doc.id, ALICE, reason="blurry", rejection_type="illegible")

    assert exc.value.message == "You no longer hold this document."
    doc = reload(doc.id)
    assert doc.status == DocumentStatus.AI_COMPLETED
    assert doc.assigned_to is None
    assert doc.translated_data is None
    assert document_dao.get_revisions(db, doc.id) == []


def test_save_rejects_non_object_payload(db, make_document):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    with pytest.raises(ValidationError):
        workflow_service.save_document(db, doc.id, ALICE, translated_data=["not", "an", "object"])


# ── Approve / Reject ──────────────────────────────────────────────────────────

def test_approve_closes_document(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    workflow_service.approve_document(db, doc.id, ALICE, final_notes="looks good")

    doc = reload(doc.id)
    assert doc.status == DocumentStatus.APPROVED
    assert doc.approved_by == ALICE.uid
    assert doc.approved_by_name == "Alice"
    assert doc.approved_at is not None
    assert doc.assigned_to is None
    assert doc.assigned_at is not None
    assert doc.review_notes == "looks good"
    assert doc.rejected_by is None
    assert_claim_invariant(doc)


def test_approve_appends_final_notes(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    workflow_service.save_document(db, doc.id, ALICE, translated_data={"a": 1}, review_notes="draft note")

    workflow_service.approve_document(db, doc.id, ALICE, final_notes="final note")

    assert reload(doc.id).review_notes == "draft note\n\nfinal note"


def test_approve_by_non_holder_is_unauthorized(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    with pytest.raises(Unauthorized):
        workflow_service.approve_document(db, doc.id, BOB)
    assert reload(doc.id).status == DocumentStatus.IN_REVIEW


def test_approve_twice_is_invalid_state(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    workflow_service.approve_document(db, doc.id, ALICE)
    first_approved_at = reload(doc.id).approved_at

    with pytest.raises(InvalidState):
        workflow_service.approve_document(db, doc.id, ALICE)

    assert reload(doc.id).approved_at == first_approved_at


def test_reject_records_reason_and_type(db, make_document, reload):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    workflow_service.reject_document(db, doc.id, ALICE, reason="  page 2 missing ", rejection_type="incomplete")

    doc = reload(doc.id)
    assert doc.status == DocumentStatus.REJECTED
    assert doc.rejected_by == ALICE.uid
    assert doc.rejection_reason == "page 2 missing"
    assert doc.rejection_type == RejectionType.INCOMPLETE
    assert doc.approved_by is None
    assert doc.assigned_to is None


@pytest.mark.parametrize("reason, rtype", [
    ("", "quality"),
    ("   ", "quality"),
    (None, "quality"),
    ("blurry", None),
    ("blurry", "blurry"),
])
def test_reject_validates_reason_and_type(db, make_document, reload, reason, rtype):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    with pytest.raises(ValidationError):
        workflow_service.reject_document(db, doc.id, ALICE, reason=reason, rejection_type=rtype)

    assert reload(doc.id).status == DocumentStatus.IN_REVIEW


def test_reject_after_approve_is_invalid_state(db, make_document):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    workflow_service.approve_document(db, doc.id, ALICE)
    with pytest.raises(InvalidState):
        workflow_service.reject_document(db, doc.id, ALICE, reason="late", rejection_type="quality")


@pytest.mark.parametrize("decision", ["approve", "reject"])
@pytest.mark.parametrize("action", ["claim", "save", "release", "approve", "reject"])
def test_closed_document_refuses_every_action(db, make_document, reload, decision, action):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)
    if decision == "approve":
        workflow_service.approve_document(db, doc.id, ALICE)
    else:
        workflow_service.reject_document(db, doc.id, ALICE, reason="unreadable", rejection_type="illegible")
    closed_status = reload(doc.id).status

    attempts = {
        "claim": lambda: workflow_service.claim_document(db, doc.id, ALICE),
        "save": lambda: workflow_service.save_document(db, doc.id, ALICE, translated_data={"a": 1}),
        "release": lambda: workflow_service.release_document(db, doc.id, ALICE),
        "approve": lambda: workflow_service.approve_document(db, doc.id, ALICE),
        "reject": lambda: workflow_service.reject_document(db, doc.id, ALICE, reason="late", rejection_type="quality"),
    }
    with pytest.raises(InvalidState):
        attempts[action]()

    doc = reload(doc.id)
    assert doc.status == closed_status
    assert doc.assigned_to is None


def test_refused_decision_leaves_no_profile(db, make_document):
    doc = make_document()
    workflow_service.claim_document(db, doc.id, ALICE)

    with pytest.raises(Unauthorized):
        workflow_service.approve_document(db, doc.id, BOB)
    with pytest.raises(Unauthorized):
        workflow_service.reject_document(db, doc.id, BOB, reason="blurry", rejection_type="illegible")

    db.expire_all()
    assert db.query(TranslatorProfile).filter_by(uid = BOB.uid).first() is None


def test_terminal_decisions_bump_all_time_counters(db, make_document):
    first, second, third = make_document(), make_document(), make_document()
    for doc in (first, second, third):
        workflow_service.claim_document(db, doc.id, ALICE)
    workflow_service.approve_document(db, first.id, ALICE)
    workflow_service.approve_document(db, second.id, ALICE)
    workflow_service.reject_document(db, third.id, ALICE, reason="unreadable", rejection_type="illegible")

    db.expire_all()
    profile = db.query(TranslatorProfile).filter_by(uid = ALICE.uid).one()
    assert profile.documents_approved == 2
    assert profile.documents_rejected == 1
    assert profile.display_name == "Alice"


# ── End to end ────────────────────────────────────────────────────────────────

def test_bulletin_review_from_claim_to_approval(db, make_document, reload):
    doc = make_document(student_name="Jane Doe", extracted_data={"studentName": "JANE DOE"})

    workflow_service.claim_document(db, doc.id, ALICE)
    with pytest.raises(Conflict):
        workflow_service.claim_document(db, doc.id, BOB)
    workflow_service.save_document(
        db, doc.id, ALICE, translated_data={"studentName": "Jane Doe"}, changes_summary="Fixed name"
    )
    workflow_service.approve_document(db, doc.id, ALICE, final_notes="looks correct")
    with pytest.raises(InvalidState):
        workflow_service.save_document(db, doc.id, BOB, translated_data={"studentName": "Bob"})

    doc = reload(doc.id)
    assert doc.status == DocumentStatus.APPROVED
    assert doc.approved_by == ALICE.uid
    assert doc.translated_data == {"studentName": "Jane Doe"}
    assert [r.changes for r in document_dao.get_revisions(db, doc.id)] == ["Fixed name"]
    events = [e.event_type for e in sorted(audit_dao.get_audit_logs(db, entity_id=doc.id), key=lambda e: e.id)]
    assert events == [
        "DOCUMENT_CLAIMED",
        "TRANSITION_REJECTED",
        "DOCUMENT_SAVED",
        "DOCUMENT_APPROVED",
        "TRANSITION_REJECTED",
    ]
