"""
Entry points for the AI extraction pipeline.

The pipeline creates documents and attaches its first-pass result exactly
once. It never writes translatedData or terminal fields, and a pipeline
failure simply leaves the document in pending_review for the pipeline to retry.
"""
import logging
from sqlalchemy.orm import Session
from reviewdesk.errors import InvalidState, ValidationError
from reviewdesk.models.document import Document, DocumentStatus, Priority
from reviewdesk.services.audit_service import log_event
from reviewdesk.services.workflow_service import load_fresh

logger = logging.getLogger(__name__)

PIPELINE_ACTOR = "ai-pipeline"


def ingest_document(
    db: Session,
    form_type: str,
    user_id: str | None = None,
    user_email: str | None = None,
    priority: Priority | str = Priority.NORMAL,
    student_name: str | None = None,
    school_name: str | None = None,
    original_file_url: str | None = None,
) -> Document:
    if not form_type:
        raise ValidationError("formType is required")
    try:
        priority = Priority(priority)
    except ValueError:
        raise ValidationError(f"Unknown priority: {priority}")

    doc = Document(
        form_type=form_type,
        user_id=user_id,
        user_email=user_email,
        priority=priority,
        student_name=student_name,
        school_name=school_name,
        original_file_url=original_file_url,
        status=DocumentStatus.PENDING_REVIEW,
    )
    db.add(doc)
    db.flush()
    log_event(db, "DOCUMENT_INGESTED", "document", doc.id, actor=PIPELINE_ACTOR,
              detail={"form_type": form_type, "priority": priority.value}, commit=False)
    db.commit()
    logger.info("Ingested document %s (%s, %s)", doc.id, form_type, priority.value)
    return doc


def record_ai_result(
    db: Session,
    document_id: str,
    extracted_data: dict,
    ai_confidence_score: float,
    ai_notes: str | None = None,
) -> Document:
    """
    Attach the pipeline's extraction and move pending_review -> ai_completed.
    If a translator claimed the document first, the data is attached and the
    claim is left untouched.
    """
    if not isinstance(extracted_data, dict):
        raise ValidationError("extractedData must be an object", document_id=document_id)
    if not 0.0 <= float(ai_confidence_score) <= 1.0:
        raise ValidationError("aiConfidenceScore must be within [0, 1]", document_id=document_id)

    doc = load_fresh(db, document_id)
    if doc.extracted_data is not None or doc.status not in (DocumentStatus.PENDING_REVIEW, DocumentStatus.IN_REVIEW):
        raise InvalidState("AI result already recorded for this document", document_id=document_id)

    doc.extracted_data = dict(extracted_data)
    doc.ai_confidence_score = float(ai_confidence_score)
    doc.ai_notes = ai_notes
    if doc.status == DocumentStatus.PENDING_REVIEW:
        doc.status = DocumentStatus.AI_COMPLETED
    log_event(db, "AI_RESULT_RECORDED", "document", document_id, actor=PIPELINE_ACTOR,
              detail={"ai_confidence_score": doc.ai_confidence_score, "status": doc.status.value}, commit=False)
    # StaleDataError here means a concurrent transition; the pipeline retries
    db.commit()
    logger.info("AI result recorded for %s (confidence=%.2f)", document_id, doc.ai_confidence_score)
    return doc
