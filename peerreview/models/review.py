from sqlalchemy import Column, String, Integer, Float, ForeignKey, DateTime, Enum, Text, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class ReviewType(enum.Enum):
    PEER = "peer"
    MENTOR = "mentor"


class ReviewDisposition(enum.Enum):
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    COMPLETED = "completed"
    PENDING = "pending"


class Review(BaseModel):
    __tablename__ = 'reviews'
    __table_args__ = (
        UniqueConstraint('submission_id', 'reviewer_id', name='uq_review_submission_reviewer'),
    )

    submission_id = Column(Integer, ForeignKey('submissions.id'), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    assignment_id = Column(Integer, ForeignKey('assignments.id'), unique=True)

    type = Column(Enum(ReviewType), default=ReviewType.PEER, nullable=False)

    # Rubric scores (0-100)
    functionality_score = Column(Float)
    code_quality_score = Column(Float)
    best_practices_score = Column(Float)
    documentation_score = Column(Float)
    overall_score = Column(Float)
    disposition = Column(Enum(ReviewDisposition), nullable=False)

    # Feedback
    strengths = Column(Text)
    improvements = Column(Text)
    suggestions = Column(Text)
    files_reviewed = Column(Integer, default=0)
    comments_added = Column(Integer, default=0)
    github_review_url = Column(String(500))

    submitted_at = Column(DateTime, nullable=False)

    # Relationships
    submission = relationship("Submission", back_populates="reviews")
    reviewer = relationship("User", back_populates="reviews_given")
    assignment = relationship("Assignment", back_populates="review")
