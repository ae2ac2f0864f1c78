from datetime import datetime
from typing import Optional
from peerreview.errors import InvalidTransition, ValidationError
from peerreview.models import Assignment
from peerreview.models.assignment import AssignmentStatus, OUTSTANDING_STATUSES
from peerreview.utils.validators import validate_reason
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)

# target state -> states it may be entered from
ALLOWED_TRANSITIONS = {
    AssignmentStatus.ACCEPTED: frozenset([AssignmentStatus.PENDING]),
    AssignmentStatus.DECLINED: frozenset([AssignmentStatus.PENDING]),
    AssignmentStatus.COMPLETED: frozenset([AssignmentStatus.ACCEPTED]),
    AssignmentStatus.EXPIRED: frozenset([AssignmentStatus.PENDING, AssignmentStatus.ACCEPTED]),
    AssignmentStatus.CANCELLED: OUTSTANDING_STATUSES,
}

TIMESTAMP_FIELDS = {
    AssignmentStatus.ACCEPTED: 'accepted_at',
    AssignmentStatus.COMPLETED: 'completed_at',
    AssignmentStatus.DECLINED: 'declined_at',
    AssignmentStatus.EXPIRED: 'expired_at',
    AssignmentStatus.CANCELLED: 'cancelled_at',
}


class AssignmentLifecycle:
    """State machine for one reviewer/submission assignment.

    ``transition`` returns True when the state changed and False when the
    assignment already sits in the requested state. Any other move raises
    ``InvalidTransition`` so side effects never run twice.
    """

    @staticmethod
    def can_transition(current: AssignmentStatus, target: AssignmentStatus) -> bool:
        return current in ALLOWED_TRANSITIONS.get(target, ())

    def transition(self, assignment: Assignment, target: AssignmentStatus,
                   now: datetime = None, reason: Optional[str] = None) -> bool:
        current = assignment.status

        if current == target:
            return False

        if not self.can_transition(current, target):
            raise InvalidTransition(current, target)

        if target == AssignmentStatus.DECLINED:
            valid, error = validate_reason(reason)
            if not valid:
                raise ValidationError(error)
            assignment.rejection_reason = reason.strip()

        assignment.status = target
        setattr(assignment, TIMESTAMP_FIELDS[target], now or datetime.utcnow())

        logger.info(f"Assignment {assignment.id}: {current.name} -> {target.name}")
        return True

    def accept(self, assignment: Assignment, now: datetime = None) -> bool:
        return self.transition(assignment, AssignmentStatus.ACCEPTED, now=now)

    def decline(self, assignment: Assignment, reason: str, now: datetime = None) -> bool:
        return self.transition(assignment, AssignmentStatus.DECLINED, now=now, reason=reason)

    def complete(self, assignment: Assignment, now: datetime = None) -> bool:
        """Complete an assignment, accepting it first if still pending"""
        now = now or datetime.utcnow()
        if assignment.status == AssignmentStatus.PENDING:
            self.accept(assignment, now=now)
        return self.transition(assignment, AssignmentStatus.COMPLETED, now=now)

    def expire(self, assignment: Assignment, now: datetime = None) -> bool:
        return self.transition(assignment, AssignmentStatus.EXPIRED, now=now)

    def cancel(self, assignment: Assignment, now: datetime = None) -> bool:
        return self.transition(assignment, AssignmentStatus.CANCELLED, now=now)
