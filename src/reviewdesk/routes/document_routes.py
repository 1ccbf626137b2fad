"""
Document review routes. The acting translator always comes from the bearer token.
GET  /api/translator/document/{id}          — document + revision history
POST /api/translator/document/{id}/claim    — take the exclusive claim
POST /api/translator/document/{id}/release  — give the claim back
PUT  /api/translator/document/{id}/update   — save a draft (appends a revision)
POST /api/translator/document/{id}/approve  — terminal approve
POST /api/translator/document/{id}/reject   — terminal reject
"""
from typing import Any
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from reviewdesk.auth import Actor, require_translator
from reviewdesk.dao import document_dao
from reviewdesk.database import get_db
from reviewdesk.errors import NotFound
from reviewdesk.serializers import serialize_document, serialize_revision
from reviewdesk.services import workflow_service

router = APIRouter(prefix="/api/translator/document", tags=["Review"])


# ── Pydantic schemas ──────────────────────────────────────────────────────────

class ReleaseRequest(BaseModel):
    reason: str | None = None

class UpdateRequest(BaseModel):
    translated_data: dict[str, Any] = Field(..., alias="translatedData")
    review_notes: str | None = Field(None, alias="reviewNotes")
    changes: str | None = None

class ApproveRequest(BaseModel):
    final_notes: str | None = Field(None, alias="finalNotes")

class RejectRequest(BaseModel):
    reason: str | None = None
    rejection_type: str | None = Field(None, alias="rejectionType")


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("/{document_id}")
def get_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    doc = document_dao.get_document(db, document_id)
    if not doc:
        raise NotFound(document_id=document_id)
    revisions = document_dao.get_revisions(db, document_id)
    return {
        "document": serialize_document(doc, detail=True),
        "revisions": [serialize_revision(r) for r in revisions],
    }


@router.post("/{document_id}/claim")
def claim_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    doc = workflow_service.claim_document(db, document_id, actor)
    return {
        "success": True,
        "message": "Document claimed",
        "document": serialize_document(doc, detail=True),
    }


@router.post("/{document_id}/release")
def release_document(
    document_id: str,
    body: ReleaseRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    reason = body.reason if body else None
    doc = workflow_service.release_document(db, document_id, actor, reason=reason)
    return {"success": True, "message": "Document released", "status": doc.status.value}


@router.put("/{document_id}/update")
def update_document(
    document_id: str,
    body: UpdateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    workflow_service.save_document(
        db, document_id, actor,
        translated_data=body.translated_data,
        review_notes=body.review_notes,
        changes_summary=body.changes,
    )
    return {"success": True, "message": "Draft saved"}


@router.post("/{document_id}/approve")
def approve_document(
    document_id: str,
    body: ApproveRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    workflow_service.approve_document(db, document_id, actor, final_notes=body.final_notes if body else None)
    return {"success": True, "message": "Document approved"}


@router.post("/{document_id}/reject")
def reject_document(
    document_id: str,
    body: RejectRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    workflow_service.reject_document(
        db, document_id, actor, reason=body.reason, rejection_type=body.rejection_type
    )
    return {"success": True, "message": "Document rejected"}
