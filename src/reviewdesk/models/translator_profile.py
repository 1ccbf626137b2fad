from sqlalchemy import Column, String, Integer, DateTime, Text
from reviewdesk.clock import utcnow
from reviewdesk.database import Base


class TranslatorProfile(Base):
    """All-time counters survive any statistics window; bumped atomically on approve/reject."""
    __tablename__ = "translator_profiles"

    uid = Column(String(128), primary_key=True)
    display_name = Column(String(256), nullable=True)
    email = Column(String(256), nullable=True)
    photo_url = Column(Text, nullable=True)
    documents_approved = Column(Integer, nullable=False, default=0)
    documents_rejected = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
