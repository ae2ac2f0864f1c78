from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class AssignmentStatus(enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    DECLINED = "declined"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class AssignmentType(enum.Enum):
    PEER = "peer"
    MENTOR = "mentor"
    ADMIN = "admin"


TERMINAL_STATUSES = frozenset([
    AssignmentStatus.COMPLETED,
    AssignmentStatus.DECLINED,
    AssignmentStatus.EXPIRED,
    AssignmentStatus.CANCELLED
])

OUTSTANDING_STATUSES = frozenset([
    AssignmentStatus.PENDING,
    AssignmentStatus.ACCEPTED
])


class Assignment(BaseModel):
    __tablename__ = 'assignments'
    __table_args__ = (
        UniqueConstraint('submission_id', 'reviewer_id', name='uq_assignment_submission_reviewer'),
    )

    submission_id = Column(Integer, ForeignKey('submissions.id'), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    type = Column(Enum(AssignmentType), default=AssignmentType.PEER, nullable=False)
    status = Column(Enum(AssignmentStatus), default=AssignmentStatus.PENDING, nullable=False, index=True)
    priority = Column(Integer, default=0)
    due_date = Column(DateTime)

    # Timing
    accepted_at = Column(DateTime)
    completed_at = Column(DateTime)
    declined_at = Column(DateTime)
    expired_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    rejection_reason = Column(String(1000))

    # Relationships
    submission = relationship("Submission", back_populates="assignments")
    reviewer = relationship("User", back_populates="assignments")
    review = relationship("Review", back_populates="assignment", uselist=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
