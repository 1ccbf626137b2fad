import enum
import uuid
from sqlalchemy import Column, String, Integer, Float, Enum, DateTime, JSON, Text, Index
from sqlalchemy.orm import relationship
from reviewdesk.clock import utcnow
from reviewdesk.database import Base


class DocumentStatus(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    AI_COMPLETED = "ai_completed"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


CLAIMABLE_STATUSES = (DocumentStatus.PENDING_REVIEW, DocumentStatus.AI_COMPLETED)
OPEN_STATUSES = (DocumentStatus.PENDING_REVIEW, DocumentStatus.AI_COMPLETED, DocumentStatus.IN_REVIEW)
TERMINAL_STATUSES = (DocumentStatus.APPROVED, DocumentStatus.REJECTED)


class Priority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.NORMAL: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}


class RejectionType(str, enum.Enum):
    QUALITY = "quality"
    ILLEGIBLE = "illegible"
    INCOMPLETE = "incomplete"
    WRONG_FORMAT = "wrong_format"


def _new_id() -> str:
    return uuid.uuid4().hex


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_queue", "status", "priority", "created_at"),
        Index("ix_documents_assignee", "assigned_to", "status"),
        Index("ix_documents_approved", "approved_by", "approved_at"),
        Index("ix_documents_rejected", "rejected_by", "rejected_at"),
    )

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(128), nullable=True)              # submitter
    user_email = Column(String(256), nullable=True)
    form_type = Column(String(64), nullable=False)            # bulletin | diploma | transcript | attestation ...
    status = Column(Enum(DocumentStatus), nullable=False, default=DocumentStatus.PENDING_REVIEW)
    priority = Column(Enum(Priority), nullable=False, default=Priority.NORMAL)
    student_name = Column(String(256), nullable=True)
    school_name = Column(String(256), nullable=True)
    original_file_url = Column(Text, nullable=True)

    # Exclusive claim, non-null only while status == in_review
    assigned_to = Column(String(128), nullable=True)
    assigned_to_name = Column(String(256), nullable=True)
    assigned_at = Column(DateTime, nullable=True)             # start of the latest claim episode

    # Written once by the AI pipeline
    extracted_data = Column(JSON, nullable=True)
    ai_confidence_score = Column(Float, nullable=True)
    ai_notes = Column(Text, nullable=True)

    # Translator edits
    translated_data = Column(JSON, nullable=True)
    review_notes = Column(Text, nullable=True)

    # Terminal outcome, exactly one group is ever set
    approved_by = Column(String(128), nullable=True)
    approved_by_name = Column(String(256), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_by = Column(String(128), nullable=True)
    rejected_by_name = Column(String(256), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    rejection_type = Column(Enum(RejectionType), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False, default=1)

    revisions = relationship(
        "Revision",
        back_populates="document",
        order_by="Revision.id",
        lazy="select",
        passive_deletes="all",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
