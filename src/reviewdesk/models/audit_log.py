from sqlalchemy import Column, Integer, String, DateTime, JSON
from reviewdesk.clock import utcnow
from reviewdesk.database import AppendOnly, Base


class AuditLog(AppendOnly, Base):
    """
    INSERT-only table. DB-level trigger installed in database.py
    prevents any UPDATE or DELETE at the engine level.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(128), nullable=False)         # DOCUMENT_CLAIMED, TRANSITION_REJECTED, etc.
    entity_type = Column(String(64), nullable=True)          # document | notification
    entity_id = Column(String(128), nullable=True, index=True)
    actor = Column(String(128), nullable=True)               # uid or "system"
    detail = Column(JSON, nullable=True)                     # arbitrary structured payload
    created_at = Column(DateTime, nullable=False, default=utcnow)
