"""camelCase wire shapes for documents, revisions and notifications."""
from datetime import datetime
from reviewdesk.models.document import Document
from reviewdesk.models.notification import Notification
from reviewdesk.models.revision import Revision


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_document(d: Document, detail: bool = False) -> dict:
    body = {
        "id"               : d.id,
        "userId"           : d.user_id,
        "userEmail"        : d.user_email,
        "formType"         : d.form_type,
        "status"           : d.status.value,
        "priority"         : d.priority.value,
        "studentName"      : d.student_name,
        "schoolName"       : d.school_name,
        "assignedTo"       : d.assigned_to,
        "assignedToName"   : d.assigned_to_name,
        "aiConfidenceScore": d.ai_confidence_score,
        "createdAt"        : _ts(d.created_at),
        "updatedAt"        : _ts(d.updated_at),
    }
    if not detail:
        return body
    body.update({
        "originalFileUrl" : d.original_file_url,
        "extractedData"   : d.extracted_data,
        "translatedData"  : d.translated_data,
        "aiNotes"         : d.ai_notes,
        "reviewNotes"     : d.review_notes,
        "assignedAt"      : _ts(d.assigned_at),
        "approvedBy"      : d.approved_by,
        "approvedByName"  : d.approved_by_name,
        "approvedAt"      : _ts(d.approved_at),
        "rejectedBy"      : d.rejected_by,
        "rejectedByName"  : d.rejected_by_name,
        "rejectedAt"      : _ts(d.rejected_at),
        "rejectionReason" : d.rejection_reason,
        "rejectionType"   : d.rejection_type.value if d.rejection_type else None,
        "version"         : d.version,
    })
    return body


def serialize_revision(r: Revision) -> dict:
    return {
        "id"            : str(r.id),
        "translatorId"  : r.translator_id,
        "translatorName": r.translator_name,
        "changes"       : r.changes,
        "comment"       : r.comment,
        "createdAt"     : _ts(r.created_at),
    }


def serialize_notification(n: Notification) -> dict:
    return {
        "id"        : n.id,
        "type"      : n.type,
        "title"     : n.title,
        "message"   : n.message,
        "documentId": n.document_id,
        "read"      : bool(n.read),
        "createdAt" : _ts(n.created_at),
    }
