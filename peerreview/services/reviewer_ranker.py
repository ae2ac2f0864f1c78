import math
import random
from typing import Iterable, List, NamedTuple, Optional, Set, Tuple
from peerreview.errors import ValidationError
from peerreview.models.user import UserRole
from peerreview.utils.validators import validate_reviewer_count
from config.config import Config
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)


class ReviewerCandidate(NamedTuple):
    """Snapshot of a prospective reviewer, computed fresh per ranking call"""
    id: int
    role: UserRole
    completed_merged_submissions: int
    completed_reviews: int
    pending_assignments: int


class ReviewerRanker:
    """Rank eligible reviewers, widen the shortlist, then shuffle it.

    Pure top-k would always hand work to the same best-ranked people, so the
    shortlist is the top half of the eligible pool (at least ``k``) and the
    final picks are drawn uniformly from it.
    """

    def __init__(self, rng: random.Random = None, shortlist_fraction: float = None):
        self.rng = rng or random.Random()
        self.shortlist_fraction = (
            Config.REVIEWER_SHORTLIST_FRACTION if shortlist_fraction is None else shortlist_fraction
        )

    def select(self, author_id: int, excluded_ids: Iterable[int],
               candidates: Iterable[ReviewerCandidate], k: int = 2,
               project_difficulty: Optional[int] = None) -> List[int]:
        """Return up to ``k`` reviewer ids, or an empty list if nobody is eligible.

        ``project_difficulty`` is context for logging only and does not
        affect ranking; reviewers are not matched to project difficulty.
        """
        valid, error = validate_reviewer_count(k)
        if not valid:
            raise ValidationError(error)

        eligible = self.eligible(author_id, excluded_ids, candidates)
        if not eligible:
            return []

        ranked = self.rank(eligible)

        shortlist_size = max(math.ceil(len(ranked) * self.shortlist_fraction), k)
        shortlist = [candidate.id for candidate, _ in ranked[:shortlist_size]]

        # random.shuffle is a Fisher-Yates shuffle
        self.rng.shuffle(shortlist)
        selected = shortlist[:k]

        logger.debug(
            f"Ranked {len(ranked)} eligible reviewers (difficulty {project_difficulty}), "
            f"shortlisted {len(shortlist)}, selected {selected}"
        )
        return selected

    @staticmethod
    def eligible(author_id: int, excluded_ids: Iterable[int],
                 candidates: Iterable[ReviewerCandidate]) -> List[ReviewerCandidate]:
        excluded: Set[int] = set(excluded_ids or ())
        excluded.add(author_id)
        return [
            candidate for candidate in candidates
            if candidate.id not in excluded and candidate.role != UserRole.ADMIN
        ]

    @classmethod
    def rank(cls, candidates: Iterable[ReviewerCandidate]) -> List[Tuple[ReviewerCandidate, int]]:
        """Score candidates and sort best first (stable for ties)"""
        scored = [(candidate, cls.rank_score(candidate)) for candidate in candidates]
        scored.sort(key=lambda x: x[1], reverse=True)
        return scored

    @staticmethod
    def rank_score(candidate: ReviewerCandidate) -> int:
        # Each component is bounded to 0-10, total 0-30
        experience = min(candidate.completed_merged_submissions * 2, 10)
        review_activity = min(candidate.completed_reviews, 10)
        load = max(10 - candidate.pending_assignments * 2, 0)
        return experience + review_activity + load
