from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from reviewdesk.clock import utcnow
from reviewdesk.database import AppendOnly, Base


class Revision(AppendOnly, Base):
    """
    INSERT-only edit history of a document. DB-level triggers installed in
    database.py reject UPDATE and DELETE.
    """
    __tablename__ = "revisions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String(64), ForeignKey("documents.id"), nullable=False, index=True)
    translator_id = Column(String(128), nullable=False)
    translator_name = Column(String(256), nullable=True)
    changes = Column(Text, nullable=False)                   # summary or serialized diff
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    document = relationship("Document", back_populates="revisions")
