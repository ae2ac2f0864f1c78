from datetime import datetime, timedelta
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from peerreview.database import get_db
from peerreview.errors import Forbidden, NoEligibleReviewers, NotFound, ValidationError
from peerreview.models import Assignment, Project, Review, Submission, User
from peerreview.models.assignment import AssignmentStatus, AssignmentType, OUTSTANDING_STATUSES
from peerreview.models.submission import SubmissionStatus
from peerreview.models.user import UserRole
from peerreview.services.assignment_lifecycle import AssignmentLifecycle
from peerreview.services.candidate_pool import CandidatePool
from peerreview.services.notification_service import (
    NotificationDispatcher, NotificationEvent, EventType
)
from peerreview.services.reviewer_ranker import ReviewerRanker
from peerreview.utils.validators import validate_reviewer_count
from config.config import Config
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)

# Peer assignments that count towards the requested reviewer total
ACTIVE_PEER_STATUSES = frozenset([
    AssignmentStatus.PENDING,
    AssignmentStatus.ACCEPTED,
    AssignmentStatus.COMPLETED
])


def serialize_assignment(assignment: Assignment) -> Dict:
    def iso(value):
        return value.isoformat() if value else None

    return {
        'id': assignment.id,
        'submission_id': assignment.submission_id,
        'reviewer_id': assignment.reviewer_id,
        'type': assignment.type.value,
        'status': assignment.status.value,
        'priority': assignment.priority,
        'due_date': iso(assignment.due_date),
        'created_at': iso(assignment.created_at),
        'accepted_at': iso(assignment.accepted_at),
        'completed_at': iso(assignment.completed_at),
        'declined_at': iso(assignment.declined_at),
        'expired_at': iso(assignment.expired_at),
        'cancelled_at': iso(assignment.cancelled_at),
        'rejection_reason': assignment.rejection_reason
    }


class ReviewAssignmentEngine:
    """Select reviewers for submissions and drive their assignments"""

    def __init__(self, ranker: ReviewerRanker = None, candidate_pool: CandidatePool = None,
                 lifecycle: AssignmentLifecycle = None, dispatcher: NotificationDispatcher = None):
        self.ranker = ranker or ReviewerRanker()
        self.candidate_pool = candidate_pool or CandidatePool()
        self.lifecycle = lifecycle or AssignmentLifecycle()
        self.dispatcher = dispatcher or NotificationDispatcher()

    def assign_reviewers(self, submission_id: int, k: int = None) -> Dict:
        """Make sure ``k`` peer reviewers are assigned to a submission.

        Assignments that are pending, accepted or completed count towards
        ``k``; only the shortfall is ranked and created. Raises
        ``NoEligibleReviewers`` when reviewers are still needed but nobody
        is eligible.
        """
        if k is None:
            k = Config.DEFAULT_REVIEWERS_PER_SUBMISSION
        valid, error = validate_reviewer_count(k)
        if not valid:
            raise ValidationError(error)

        with get_db() as db:
            submission = self._get_open_submission(db, submission_id)

            active = db.query(Assignment).filter(
                Assignment.submission_id == submission.id,
                Assignment.type == AssignmentType.PEER,
                Assignment.status.in_(ACTIVE_PEER_STATUSES)
            ).count()
            needed = k - active

            if needed <= 0:
                logger.info(f"Submission {submission_id} already has {active} peer reviewer(s)")
                return {'success': True, 'requested': k, 'created_count': 0, 'assignment_ids': []}

            selected = self._rank_for(db, submission, needed)
            if not selected:
                logger.warning(f"No eligible reviewers found for submission {submission_id}")
                raise NoEligibleReviewers(submission_id)

            created = self._create_assignments(db, submission, selected, AssignmentType.PEER)
            events = [self._assigned_event(db, submission, a) for a in created]
            assignment_ids = [a.id for a in created]

        self.dispatcher.dispatch(events)

        if len(assignment_ids) < needed:
            logger.warning(
                f"Submission {submission_id}: requested {needed} reviewer(s), assigned {len(assignment_ids)}"
            )

        return {
            'success': True,
            'requested': k,
            'created_count': len(assignment_ids),
            'assignment_ids': assignment_ids
        }

    def accept_assignment(self, assignment_id: int, reviewer_id: int) -> Dict:
        """Reviewer commits to an assignment"""
        with get_db() as db:
            assignment = self._get_own_assignment(db, assignment_id, reviewer_id)
            changed = self.lifecycle.accept(assignment)
            return {'success': True, 'changed': changed, 'assignment': serialize_assignment(assignment)}

    def decline_assignment(self, assignment_id: int, reviewer_id: int, reason: str) -> Dict:
        """Reviewer refuses an assignment, with a reason"""
        with get_db() as db:
            assignment = self._get_own_assignment(db, assignment_id, reviewer_id)
            changed = self.lifecycle.decline(assignment, reason)
            return {'success': True, 'changed': changed, 'assignment': serialize_assignment(assignment)}

    def cancel_assignment(self, assignment_id: int) -> Dict:
        """Administrator revokes an assignment"""
        with get_db() as db:
            assignment = self._get_assignment(db, assignment_id)
            changed = self.lifecycle.cancel(assignment)
            return {'success': True, 'changed': changed, 'assignment': serialize_assignment(assignment)}

    def reassign(self, assignment_id: int) -> Dict:
        """Cancel an assignment and hand it to another reviewer.

        Falls back to an administrator reviewer when no peer is eligible.
        Nothing changes if neither is available.
        """
        with get_db() as db:
            assignment = self._get_assignment(db, assignment_id)
            if not self.lifecycle.cancel(assignment):
                return {'success': True, 'reassigned': False, 'assignment_ids': []}

            submission = self._get_open_submission(db, assignment.submission_id)
            db.flush()

            selected = self._rank_for(db, submission, 1)
            if selected:
                created = self._create_assignments(
                    db, submission, selected, AssignmentType.PEER, priority=assignment.priority
                )
            else:
                logger.warning(f"No peer available to reassign assignment {assignment_id}, using an admin")
                admin_id = self._least_loaded_admin(db, submission)
                if admin_id is None:
                    raise NoEligibleReviewers(submission.id)
                created = self._create_assignments(db, submission, [admin_id], AssignmentType.ADMIN)

            events = [self._assigned_event(db, submission, a) for a in created]
            assignment_ids = [a.id for a in created]

        self.dispatcher.dispatch(events)
        logger.info(f"Assignment {assignment_id} reassigned to {assignment_ids}")
        return {'success': True, 'reassigned': bool(assignment_ids), 'assignment_ids': assignment_ids}

    def assign_admin_reviewer(self, submission_id: int, admin_id: Optional[int] = None) -> Dict:
        """Assign an administrator to review a submission"""
        with get_db() as db:
            submission = self._get_open_submission(db, submission_id)

            if admin_id is None:
                admin_id = self._least_loaded_admin(db, submission)
                if admin_id is None:
                    raise NoEligibleReviewers(submission_id)
            else:
                admin = db.query(User).filter_by(id=admin_id).first()
                if not admin:
                    raise NotFound('Admin not found', admin_id=admin_id)
                if admin.role != UserRole.ADMIN:
                    raise ValidationError('Admin reviewer must have the admin role', admin_id=admin_id)
                if admin.id == submission.user_id:
                    raise ValidationError('Authors cannot review their own submission', admin_id=admin_id)

            created = self._create_assignments(db, submission, [admin_id], AssignmentType.ADMIN)
            if not created:
                existing = db.query(Assignment).filter_by(
                    submission_id=submission.id, reviewer_id=admin_id
                ).first()
                return {'success': True, 'created': False,
                        'assignment_id': existing.id if existing else None}

            events = [self._assigned_event(db, submission, created[0])]
            assignment_id = created[0].id

        self.dispatcher.dispatch(events)
        return {'success': True, 'created': True, 'assignment_id': assignment_id}

    def expire_overdue(self, now: datetime = None) -> int:
        """Expire outstanding assignments past their due date"""
        now = now or datetime.utcnow()
        expired = 0
        with get_db() as db:
            overdue = db.query(Assignment).filter(
                Assignment.status.in_(OUTSTANDING_STATUSES),
                Assignment.due_date.isnot(None),
                Assignment.due_date < now
            ).all()

            for assignment in overdue:
                if self.lifecycle.expire(assignment, now=now):
                    expired += 1

        if expired:
            logger.warning(f"Expired {expired} overdue assignment(s)")
        return expired

    def get_reviewer_queue(self, reviewer_id: int) -> Dict:
        """Assignments for a reviewer, outstanding first, with summary stats"""
        with get_db() as db:
            rows = (
                db.query(Assignment, Submission, Project, Review)
                .join(Submission, Assignment.submission_id == Submission.id)
                .join(Project, Submission.project_id == Project.id)
                .outerjoin(Review, Review.assignment_id == Assignment.id)
                .filter(Assignment.reviewer_id == reviewer_id)
                .order_by(Assignment.priority.desc(), Assignment.created_at.desc())
                .all()
            )

            one_week_ago = datetime.utcnow() - timedelta(days=7)
            results = []
            scores = []
            pending = completed = completed_this_week = 0

            for assignment, submission, project, review in rows:
                if assignment.status in OUTSTANDING_STATUSES:
                    pending += 1
                if assignment.status == AssignmentStatus.COMPLETED:
                    completed += 1
                    if assignment.completed_at and assignment.completed_at >= one_week_ago:
                        completed_this_week += 1
                if review is not None and review.overall_score is not None:
                    scores.append(review.overall_score)

                item = serialize_assignment(assignment)
                item['overall_score'] = review.overall_score if review else None
                item['submission'] = {
                    'id': submission.id,
                    'feature_title': submission.feature_title,
                    'pr_url': submission.pr_url,
                    'project': {'id': project.id, 'title': project.title}
                }
                results.append(item)

            # Outstanding assignments first
            results.sort(key=lambda a: a['status'] not in ('pending', 'accepted'))

            return {
                'assignments': results,
                'stats': {
                    'pending': pending,
                    'completed_this_week': completed_this_week,
                    'total_completed': completed,
                    'average_score': sum(scores) / len(scores) if scores else 0
                }
            }

    def list_assignments(self) -> List[Dict]:
        """All assignments for the admin dashboard"""
        with get_db() as db:
            assignments = db.query(Assignment).order_by(
                Assignment.status.asc(),
                Assignment.priority.desc(),
                Assignment.due_date.asc()
            ).all()
            return [serialize_assignment(a) for a in assignments]

    def get_assignment_stats(self) -> Dict:
        """Assignment counts by status and average completion time"""
        with get_db() as db:
            counts = dict(
                db.query(Assignment.status, func.count(Assignment.id))
                .group_by(Assignment.status)
                .all()
            )

            timings = db.query(Assignment.accepted_at, Assignment.completed_at).filter(
                Assignment.status == AssignmentStatus.COMPLETED,
                Assignment.accepted_at.isnot(None),
                Assignment.completed_at.isnot(None)
            ).all()

            average_hours = 0
            if timings:
                total_seconds = sum((done - accepted).total_seconds() for accepted, done in timings)
                average_hours = round(total_seconds / len(timings) / 3600)

            awaiting = db.query(Submission).filter(Submission.status == SubmissionStatus.OPEN).count()

            stats = {f"{status.value}_assignments": counts.get(status, 0) for status in AssignmentStatus}
            stats.update({
                'total_assignments': sum(counts.values()),
                'average_completion_hours': average_hours,
                'submissions_awaiting_review': awaiting
            })
            return stats

    def _rank_for(self, db: Session, submission: Submission, k: int) -> List[int]:
        assigned = [r for (r,) in db.query(Assignment.reviewer_id).filter_by(submission_id=submission.id)]
        reviewed = [r for (r,) in db.query(Review.reviewer_id).filter_by(submission_id=submission.id)]
        excluded = set(assigned) | set(reviewed) | {submission.user_id}

        candidates = self.candidate_pool.load(db, excluded)
        project = db.query(Project).filter_by(id=submission.project_id).first()
        return self.ranker.select(
            submission.user_id, excluded, candidates, k,
            project_difficulty=project.difficulty if project else None
        )

    def _create_assignments(self, db: Session, submission: Submission, reviewer_ids: List[int],
                            assignment_type: AssignmentType, priority: int = None) -> List[Assignment]:
        """Insert one PENDING assignment per reviewer.

        Each insert runs in its own savepoint; a unique-constraint violation
        means a concurrent request already assigned that reviewer, so it is
        skipped and the batch carries on.
        """
        now = datetime.utcnow()
        due_date = now + timedelta(days=Config.REVIEW_DUE_DAYS)
        created = []

        for index, reviewer_id in enumerate(reviewer_ids):
            assignment = Assignment(
                submission_id=submission.id,
                reviewer_id=reviewer_id,
                type=assignment_type,
                status=AssignmentStatus.PENDING,
                priority=priority if priority is not None else len(reviewer_ids) - index,
                due_date=due_date
            )
            try:
                with db.begin_nested():
                    db.add(assignment)
            except IntegrityError:
                logger.warning(
                    f"Reviewer {reviewer_id} already assigned to submission {submission.id}, skipping"
                )
                continue

            created.append(assignment)
            logger.info(
                f"Created {assignment_type.value} assignment {assignment.id} "
                f"(submission {submission.id}, reviewer {reviewer_id})"
            )

        return created

    def _assigned_event(self, db: Session, submission: Submission, assignment: Assignment) -> NotificationEvent:
        project = db.query(Project).filter_by(id=submission.project_id).first()
        return NotificationEvent(
            EventType.REVIEW_ASSIGNED,
            assignment.reviewer_id,
            {
                'assignment_id': assignment.id,
                'submission_id': submission.id,
                'project_title': project.title if project else None,
                'feature_title': submission.feature_title,
                'due_date': assignment.due_date.isoformat() if assignment.due_date else None
            }
        )

    def _least_loaded_admin(self, db: Session, submission: Submission) -> Optional[int]:
        assigned = [r for (r,) in db.query(Assignment.reviewer_id).filter_by(submission_id=submission.id)]
        load = (
            db.query(Assignment.reviewer_id.label('user_id'), func.count(Assignment.id).label('n'))
            .filter(Assignment.status.in_(OUTSTANDING_STATUSES))
            .group_by(Assignment.reviewer_id)
            .subquery()
        )
        query = (
            db.query(User.id)
            .outerjoin(load, load.c.user_id == User.id)
            .filter(
                User.role == UserRole.ADMIN,
                User.is_active == True,  # noqa: E712
                User.id != submission.user_id
            )
        )
        if assigned:
            query = query.filter(User.id.notin_(assigned))

        row = query.order_by(func.coalesce(load.c.n, 0).asc(), User.id.asc()).first()
        return row[0] if row else None

    @staticmethod
    def _get_open_submission(db: Session, submission_id: int) -> Submission:
        if not submission_id:
            raise ValidationError('submission_id is required')
        submission = db.query(Submission).filter_by(id=submission_id).first()
        if not submission:
            raise NotFound('Submission not found', submission_id=submission_id)
        if submission.status != SubmissionStatus.OPEN:
            raise ValidationError('Submission is not open for review', submission_id=submission_id)
        return submission

    @staticmethod
    def _get_assignment(db: Session, assignment_id: int) -> Assignment:
        assignment = db.query(Assignment).filter_by(id=assignment_id).first()
        if not assignment:
            raise NotFound('Assignment not found', assignment_id=assignment_id)
        return assignment

    def _get_own_assignment(self, db: Session, assignment_id: int, reviewer_id: int) -> Assignment:
        assignment = self._get_assignment(db, assignment_id)
        if assignment.reviewer_id != reviewer_id:
            raise Forbidden('Unauthorized', assignment_id=assignment_id)
        return assignment
