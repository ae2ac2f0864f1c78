from datetime import datetime
from typing import Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from peerreview.database import get_db
from peerreview.errors import (
    DuplicateReview, Forbidden, NotFound, SelfReviewForbidden, ValidationError
)
from peerreview.models import Assignment, Review, Submission, User
from peerreview.models.assignment import AssignmentStatus, AssignmentType
from peerreview.models.review import ReviewDisposition, ReviewType
from peerreview.models.submission import MentorReviewStatus, SubmissionStatus
from peerreview.services.assignment_lifecycle import AssignmentLifecycle
from peerreview.services.notification_service import (
    NotificationDispatcher, NotificationEvent, EventType
)
from peerreview.services.readiness_service import compute_readiness
from peerreview.services.rubric_scorer import RubricScorer, present_score
from config.config import Config
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)

NOTE_FIELDS = ('strengths', 'improvements', 'suggestions', 'github_review_url')
COUNT_FIELDS = ('files_reviewed', 'comments_added')

# Only PEER assignments fill peer slots; admin assignments carry mentor reviews
REVIEW_TYPES_BY_ASSIGNMENT = {
    AssignmentType.PEER: frozenset([ReviewType.PEER]),
    AssignmentType.MENTOR: frozenset([ReviewType.MENTOR]),
    AssignmentType.ADMIN: frozenset([ReviewType.MENTOR]),
}


def parse_review_type(value) -> ReviewType:
    if isinstance(value, ReviewType):
        return value
    if value is None:
        return ReviewType.PEER
    try:
        return ReviewType(str(value).lower())
    except ValueError:
        raise ValidationError(f"Unknown review type: {value}")


def serialize_review(review: Review) -> Dict:
    return {
        'id': review.id,
        'submission_id': review.submission_id,
        'reviewer_id': review.reviewer_id,
        'assignment_id': review.assignment_id,
        'type': review.type.value,
        'scores': {
            'functionality': review.functionality_score,
            'code_quality': review.code_quality_score,
            'best_practices': review.best_practices_score,
            'documentation': review.documentation_score
        },
        'overall_score': review.overall_score,
        'overall_score_display': present_score(review.overall_score),
        'disposition': review.disposition.value,
        'strengths': review.strengths,
        'improvements': review.improvements,
        'suggestions': review.suggestions,
        'files_reviewed': review.files_reviewed,
        'comments_added': review.comments_added,
        'github_review_url': review.github_review_url,
        'submitted_at': review.submitted_at.isoformat() if review.submitted_at else None
    }


class ReviewIntakeService:
    """Accept scored reviews and fold them into submission readiness"""

    def __init__(self, scorer: RubricScorer = None, lifecycle: AssignmentLifecycle = None,
                 dispatcher: NotificationDispatcher = None):
        self.scorer = scorer or RubricScorer()
        self.lifecycle = lifecycle or AssignmentLifecycle()
        self.dispatcher = dispatcher or NotificationDispatcher()

    def submit_review(self, submission_id: int, reviewer_id: int, review_type=ReviewType.PEER,
                      scores: Dict = None, notes: Dict = None) -> Dict:
        """Score and store a review, complete its assignment, report readiness"""
        if not submission_id:
            raise ValidationError('submission_id is required')
        review_type = parse_review_type(review_type)
        notes = self._clean_notes(notes)

        try:
            with get_db() as db:
                submission = db.query(Submission).filter_by(id=submission_id).first()
                if not submission:
                    raise NotFound('Submission not found', submission_id=submission_id)

                if submission.user_id == reviewer_id:
                    raise SelfReviewForbidden(submission_id)

                existing = db.query(Review).filter_by(
                    submission_id=submission_id, reviewer_id=reviewer_id
                ).first()
                if existing:
                    raise DuplicateReview(existing.id)

                reviewer = db.query(User).filter_by(id=reviewer_id).first()
                if not reviewer:
                    raise NotFound('Reviewer not found', reviewer_id=reviewer_id)

                if review_type == ReviewType.MENTOR and not reviewer.is_admin:
                    raise Forbidden('Only mentors can submit mentor reviews')

                if submission.status != SubmissionStatus.OPEN:
                    raise ValidationError('Submission is not open for review', submission_id=submission_id)

                result = self.scorer.score(scores)

                assignment = db.query(Assignment).filter_by(
                    submission_id=submission_id, reviewer_id=reviewer_id
                ).first()
                if assignment is None:
                    if review_type != ReviewType.MENTOR:
                        raise Forbidden('No review assignment for this submission',
                                        submission_id=submission_id)
                    assignment = self._synthesize_mentor_assignment(db, submission, reviewer)
                elif review_type not in REVIEW_TYPES_BY_ASSIGNMENT[assignment.type]:
                    raise Forbidden(
                        f"A {assignment.type.value} assignment cannot carry a {review_type.value} review",
                        assignment_id=assignment.id
                    )

                now = datetime.utcnow()
                self.lifecycle.complete(assignment, now=now)

                review = Review(
                    submission_id=submission.id,
                    reviewer_id=reviewer.id,
                    assignment_id=assignment.id,
                    type=review_type,
                    functionality_score=(scores or {}).get('functionality'),
                    code_quality_score=(scores or {}).get('code_quality'),
                    best_practices_score=(scores or {}).get('best_practices'),
                    documentation_score=(scores or {}).get('documentation'),
                    overall_score=result.overall_score,
                    disposition=result.disposition,
                    submitted_at=now,
                    **notes
                )
                db.add(review)
                db.flush()

                if review_type == ReviewType.PEER:
                    submission.peer_reviews_received = Submission.peer_reviews_received + 1
                else:
                    submission.mentor_review_status = (
                        MentorReviewStatus.APPROVED if result.disposition == ReviewDisposition.APPROVED
                        else MentorReviewStatus.CHANGES_REQUESTED
                    )
                db.flush()
                db.refresh(submission)

                readiness = compute_readiness(submission)
                review_data = serialize_review(review)
                events = self._review_events(submission, review)

        except IntegrityError:
            existing_id = self._existing_review_id(submission_id, reviewer_id)
            if existing_id is None:
                raise
            raise DuplicateReview(existing_id)

        logger.info(
            f"Review {review_data['id']} submitted for submission {submission_id} "
            f"({review_data['type']}, {review_data['disposition']})"
        )
        self.dispatcher.dispatch(events)

        return {'success': True, 'review': review_data, 'readiness': readiness}

    def get_review(self, review_id: int, viewer_id: int, viewer_is_admin: bool = False) -> Dict:
        """Review details for its reviewer, the submission author or an admin"""
        with get_db() as db:
            review = db.query(Review).filter_by(id=review_id).first()
            if not review:
                raise NotFound('Review not found', review_id=review_id)

            submission = db.query(Submission).filter_by(id=review.submission_id).first()
            if viewer_id not in (review.reviewer_id, submission.user_id) and not viewer_is_admin:
                raise Forbidden("You don't have permission to view this review")

            return serialize_review(review)

    def _synthesize_mentor_assignment(self, db: Session, submission: Submission,
                                      reviewer: User) -> Assignment:
        """Mentor override: admins may review without being assigned first.

        An ACCEPTED mentor assignment is created on the spot so the review
        still completes an assignment. Peer reviews never take this path.
        """
        now = datetime.utcnow()
        assignment = Assignment(
            submission_id=submission.id,
            reviewer_id=reviewer.id,
            type=AssignmentType.MENTOR,
            status=AssignmentStatus.ACCEPTED,
            accepted_at=now
        )
        db.add(assignment)
        db.flush()
        logger.info(f"Created mentor assignment {assignment.id} for admin {reviewer.id}")
        return assignment

    @staticmethod
    def _review_events(submission: Submission, review: Review):
        xp = Config.MENTOR_REVIEW_XP if review.type == ReviewType.MENTOR else Config.PEER_REVIEW_XP
        return [
            NotificationEvent(
                EventType.XP_AWARDED,
                review.reviewer_id,
                {
                    'amount': xp,
                    'reason': f"{review.type.value} review",
                    'review_id': review.id,
                    'submission_id': submission.id
                }
            ),
            NotificationEvent(
                EventType.REVIEW_RECEIVED,
                submission.user_id,
                {
                    'review_id': review.id,
                    'submission_id': submission.id,
                    'review_type': review.type.value,
                    'feature_title': submission.feature_title,
                    'overall_score': review.overall_score,
                    'overall_score_display': present_score(review.overall_score),
                    'disposition': review.disposition.value
                }
            )
        ]

    @staticmethod
    def _existing_review_id(submission_id: int, reviewer_id: int) -> Optional[int]:
        with get_db() as db:
            row = db.query(Review.id).filter_by(
                submission_id=submission_id, reviewer_id=reviewer_id
            ).first()
            return row[0] if row else None

    @staticmethod
    def _clean_notes(notes: Optional[Dict]) -> Dict:
        notes = notes or {}
        cleaned = {}
        for field in NOTE_FIELDS:
            value = notes.get(field)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{field} must be text")
            cleaned[field] = value
        for field in COUNT_FIELDS:
            value = notes.get(field, 0) or 0
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(f"{field} must be a non-negative integer")
            cleaned[field] = value
        return cleaned
