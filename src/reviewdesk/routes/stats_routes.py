"""
Translator performance routes.
GET /api/translator/stats               — the caller's stats for ?period=day|week|month|year|all
GET /api/translator/stats/leaderboard   — ranked by approvals in the period
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from reviewdesk.auth import Actor, require_translator
from reviewdesk.database import get_db
from reviewdesk.services import stats_service

router = APIRouter(prefix="/api/translator/stats", tags=["Statistics"])


@router.get("")
def translator_stats(
    period: str = Query("all"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    stats = stats_service.get_translator_stats(db, actor.uid, period)
    return {"stats": stats.to_dict()}


@router.get("/leaderboard")
def leaderboard(
    request: Request,
    period: str = Query("all"),
    limit: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_translator),
):
    limit = limit or request.app.state.settings.default_leaderboard_limit
    entries = stats_service.get_leaderboard(db, period, limit=limit)
    return {"leaderboard": [e.to_dict() for e in entries], "period": period}
