import enum
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Text, Index
from reviewdesk.clock import utcnow
from reviewdesk.database import Base


class NotificationType(str, enum.Enum):
    DOCUMENT_ASSIGNED = "document_assigned"
    DOCUMENT_APPROVED = "document_approved"
    DOCUMENT_REJECTED = "document_rejected"
    CLAIM_EXPIRED = "claim_expired"


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user", "user_id", "read", "created_at"),)

    id = Column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    user_id = Column(String(128), nullable=False)            # recipient
    type = Column(String(64), nullable=False)
    title = Column(String(256), nullable=False)
    message = Column(Text, nullable=False)
    document_id = Column(String(64), nullable=True)
    read = Column(Boolean, nullable=False, default=False)    # only field the consumer may change
    created_at = Column(DateTime, nullable=False, default=utcnow)
