from datetime import datetime
from typing import Dict
from peerreview.database import get_db
from peerreview.errors import NotFound, ValidationError
from peerreview.models import Submission, Project
from peerreview.models.submission import SubmissionStatus, MentorReviewStatus
from peerreview.services.notification_service import (
    NotificationDispatcher, NotificationEvent, EventType
)
from config.config import Config
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)


def compute_readiness(submission: Submission) -> Dict[str, bool]:
    """Derive merge readiness from a submission's review counters"""
    peer_reviews_complete = (submission.peer_reviews_received or 0) >= submission.peer_reviews_needed
    mentor_approved = submission.mentor_review_status == MentorReviewStatus.APPROVED
    return {
        'peer_reviews_complete': peer_reviews_complete,
        'mentor_approved': mentor_approved,
        'ready_for_merge': peer_reviews_complete and mentor_approved
    }


class ReadinessService:
    """Read-only readiness status and the merge gate built on it"""

    def __init__(self, dispatcher: NotificationDispatcher = None):
        self.dispatcher = dispatcher or NotificationDispatcher()

    def get_readiness(self, submission_id: int) -> Dict:
        with get_db() as db:
            submission = db.query(Submission).filter_by(id=submission_id).first()
            if not submission:
                raise NotFound('Submission not found', submission_id=submission_id)

            readiness = compute_readiness(submission)
            readiness.update({
                'submission_id': submission.id,
                'peer_reviews_received': submission.peer_reviews_received,
                'peer_reviews_needed': submission.peer_reviews_needed,
                'status': submission.status.value
            })
            return readiness

    def mark_merged(self, submission_id: int) -> Dict:
        """Merge a submission once it is ready"""
        with get_db() as db:
            submission = db.query(Submission).filter_by(id=submission_id).with_for_update().first()
            if not submission:
                raise NotFound('Submission not found', submission_id=submission_id)

            if submission.status != SubmissionStatus.OPEN:
                raise ValidationError('Only open submissions can be merged', submission_id=submission_id)

            readiness = compute_readiness(submission)
            if not readiness['ready_for_merge']:
                raise ValidationError(
                    'Submission is not ready for merge',
                    submission_id=submission_id,
                    readiness=readiness
                )

            submission.status = SubmissionStatus.MERGED
            submission.merged_at = datetime.utcnow()

            project = db.query(Project).filter_by(id=submission.project_id).first()
            difficulty = project.difficulty if project else 1
            event = NotificationEvent(
                EventType.XP_AWARDED,
                submission.user_id,
                {
                    'amount': Config.MERGE_XP_PER_DIFFICULTY * difficulty,
                    'reason': 'merged pull request',
                    'submission_id': submission.id
                }
            )
            author_id = submission.user_id

        logger.info(f"Submission {submission_id} merged")
        self.dispatcher.dispatch([event])

        return {'success': True, 'submission_id': submission_id, 'author_id': author_id,
                'status': SubmissionStatus.MERGED.value}
