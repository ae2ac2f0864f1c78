from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class SubmissionStatus(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class MentorReviewStatus(enum.Enum):
    NONE = "none"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"


class Submission(BaseModel):
    __tablename__ = 'submissions'

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey('projects.id'), nullable=False)

    feature_title = Column(String(255))
    pr_url = Column(String(500))

    # Review requirements
    peer_reviews_needed = Column(Integer, default=2, nullable=False)
    peer_reviews_received = Column(Integer, default=0, nullable=False)
    mentor_review_status = Column(Enum(MentorReviewStatus), default=MentorReviewStatus.NONE, nullable=False)

    # Status
    status = Column(Enum(SubmissionStatus), default=SubmissionStatus.OPEN, nullable=False, index=True)
    merged_at = Column(DateTime)

    # Relationships
    author = relationship("User", back_populates="submissions")
    project = relationship("Project", back_populates="submissions")
    assignments = relationship("Assignment", back_populates="submission", lazy='dynamic')
    reviews = relationship("Review", back_populates="submission", lazy='dynamic')
