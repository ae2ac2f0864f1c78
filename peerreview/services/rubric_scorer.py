import math
from typing import Dict, NamedTuple, Optional
from peerreview.errors import ValidationError
from peerreview.models.review import ReviewDisposition
from peerreview.utils.validators import validate_score
from config.config import Config

RUBRIC_DIMENSIONS = ('functionality', 'code_quality', 'best_practices', 'documentation')


class RubricResult(NamedTuple):
    overall_score: Optional[float]
    disposition: ReviewDisposition


class RubricScorer:
    """Weighted four-dimension rubric.

    The overall score keeps full float precision; use ``present_score`` to
    round for display.
    """

    def __init__(self, weights: Dict[str, float] = None,
                 approval_threshold: float = None,
                 changes_requested_threshold: float = None):
        weights = dict(weights if weights is not None else Config.RUBRIC_WEIGHTS)

        if set(weights) != set(RUBRIC_DIMENSIONS):
            raise ValidationError(
                f"Rubric weights must name exactly {', '.join(RUBRIC_DIMENSIONS)}"
            )
        total = math.fsum(weights.values())
        if abs(total - 1.0) > 1e-9:
            raise ValidationError(f"Rubric weights must sum to 1.0, got {total}")

        self.weights = weights
        self.approval_threshold = (
            Config.APPROVAL_THRESHOLD if approval_threshold is None else approval_threshold
        )
        self.changes_requested_threshold = (
            Config.CHANGES_REQUESTED_THRESHOLD if changes_requested_threshold is None
            else changes_requested_threshold
        )

    def score(self, scores: Dict[str, Optional[float]]) -> RubricResult:
        """Compute overall score and disposition from the four sub-scores"""
        scores = scores or {}
        unknown = set(scores) - set(RUBRIC_DIMENSIONS)
        if unknown:
            raise ValidationError(f"Unknown rubric dimension(s): {', '.join(sorted(unknown))}")

        for name in RUBRIC_DIMENSIONS:
            valid, error = validate_score(name, scores.get(name))
            if not valid:
                raise ValidationError(error)

        if any(scores.get(name) is None for name in RUBRIC_DIMENSIONS):
            # Feedback only, not gradeable yet
            return RubricResult(None, ReviewDisposition.PENDING)

        overall = sum(scores[name] * self.weights[name] for name in RUBRIC_DIMENSIONS)
        return RubricResult(overall, self.disposition_for(overall))

    def disposition_for(self, overall: float) -> ReviewDisposition:
        if overall < self.changes_requested_threshold:
            return ReviewDisposition.CHANGES_REQUESTED
        if overall >= self.approval_threshold:
            return ReviewDisposition.APPROVED
        return ReviewDisposition.COMPLETED


def present_score(overall: Optional[float]) -> Optional[int]:
    """Round an overall score to the nearest integer for display"""
    if overall is None:
        return None
    return int(math.floor(overall + 0.5))
