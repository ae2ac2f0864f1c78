from typing import Iterable, List
from sqlalchemy import func
from sqlalchemy.orm import Session
from peerreview.models import User, Submission, Assignment, Review
from peerreview.models.assignment import OUTSTANDING_STATUSES
from peerreview.models.submission import SubmissionStatus
from peerreview.services.reviewer_ranker import ReviewerCandidate


class CandidatePool:
    """Load reviewer candidates with their counters derived from current state.

    Counters are recomputed on every call and never cached; reviewer load
    changes between requests.
    """

    def load(self, db: Session, excluded_ids: Iterable[int] = ()) -> List[ReviewerCandidate]:
        excluded = list(excluded_ids or ())

        merged = (
            db.query(Submission.user_id.label('user_id'), func.count(Submission.id).label('n'))
            .filter(Submission.status == SubmissionStatus.MERGED)
            .group_by(Submission.user_id)
            .subquery()
        )
        reviews = (
            db.query(Review.reviewer_id.label('user_id'), func.count(Review.id).label('n'))
            .group_by(Review.reviewer_id)
            .subquery()
        )
        pending = (
            db.query(Assignment.reviewer_id.label('user_id'), func.count(Assignment.id).label('n'))
            .filter(Assignment.status.in_(OUTSTANDING_STATUSES))
            .group_by(Assignment.reviewer_id)
            .subquery()
        )

        query = (
            db.query(
                User.id,
                User.role,
                func.coalesce(merged.c.n, 0),
                func.coalesce(reviews.c.n, 0),
                func.coalesce(pending.c.n, 0),
            )
            .outerjoin(merged, merged.c.user_id == User.id)
            .outerjoin(reviews, reviews.c.user_id == User.id)
            .outerjoin(pending, pending.c.user_id == User.id)
            .filter(
                User.is_active == True,  # noqa: E712
                User.github_username.isnot(None)
            )
        )
        if excluded:
            query = query.filter(User.id.notin_(excluded))

        return [
            ReviewerCandidate(
                id=row[0],
                role=row[1],
                completed_merged_submissions=int(row[2]),
                completed_reviews=int(row[3]),
                pending_assignments=int(row[4])
            )
            for row in query.order_by(User.id).all()
        ]
