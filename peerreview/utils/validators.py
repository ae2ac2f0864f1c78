from numbers import Real
from typing import Optional, Tuple


def validate_score(name: str, value) -> Tuple[bool, Optional[str]]:
    """Validate a single rubric sub-score (absent is allowed)"""
    if value is None:
        return True, None
    if isinstance(value, bool) or not isinstance(value, Real):
        return False, f"{name} must be a number between 0 and 100"
    if value != value:  # NaN
        return False, f"{name} must be a number between 0 and 100"
    if value < 0 or value > 100:
        return False, f"{name} must be between 0 and 100"
    return True, None


def validate_reason(reason: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate a decline reason"""
    if reason is not None and not isinstance(reason, str):
        return False, "Reason must be text"
    if not reason or not reason.strip():
        return False, "A reason is required to decline an assignment"
    if len(reason) > 1000:
        return False, "Reason must be at most 1000 characters"
    return True, None


def validate_reviewer_count(count) -> Tuple[bool, Optional[str]]:
    """Validate the number of reviewers requested"""
    if isinstance(count, bool) or not isinstance(count, int):
        return False, "Number of reviewers must be an integer"
    if count < 1:
        return False, "Number of reviewers must be at least 1"
    return True, None
