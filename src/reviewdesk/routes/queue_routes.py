"""
Queue routes.
GET /api/translator/queue         — open documents, priority first then oldest
GET /api/translator/queue/stats   — counts by status + approvedToday
GET /api/translator/assigned      — the caller's own documents
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from reviewdesk.auth import Actor, require_translator
from reviewdesk.dao import document_dao
from reviewdesk.database import get_db
from reviewdesk.errors import ValidationError
from reviewdesk.models.document import DocumentStatus, Priority
from reviewdesk.serializers import serialize_document
from reviewdesk.services import stats_service

router = APIRouter(prefix="/api/translator", tags=["Queue"])


def parse_status(value: str | None) -> DocumentStatus | None:
    if not value:
        return None
    try:
        return DocumentStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value}")


def parse_priority(value: str | None) -> Priority | None:
    if not value:
        return None
    try:
        return Priority(value)
    except ValueError:
        raise ValidationError(f"Unknown priority: {value}")


def clamp_limit(request: Request, limit: int | None) -> int:
    cfg = request.app.state.settings
    if limit is None:
        return cfg.default_queue_limit
    return max(1, min(limit, cfg.max_queue_limit))


@router.get("/queue")
def list_queue(
    request: Request,
    status: str | None = Query(None),
    priority: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
    start_after: str | None = Query(None, alias="startAfter"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    documents = document_dao.list_queue(
        db,
        status=parse_status(status),
        priority=parse_priority(priority),
        limit=clamp_limit(request, limit),
        start_after=start_after,
    )
    return {"documents": [serialize_document(d) for d in documents], "count": len(documents)}


@router.get("/queue/stats")
def queue_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    return {"stats": stats_service.get_queue_stats(db).to_dict()}


@router.get("/assigned")
def list_assigned(
    request: Request,
    status: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    documents = document_dao.list_assigned(
        db, actor.uid, status=parse_status(status), limit=clamp_limit(request, limit)
    )
    return {"documents": [serialize_document(d) for d in documents], "count": len(documents)}
