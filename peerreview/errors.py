"""Named outcomes raised by the review engine.

Callers branch on these; routes turn them into JSON bodies with
``to_dict()`` and the class's ``status_code``.
"""


class ReviewEngineError(Exception):
    code = 'review_engine_error'
    status_code = 500

    def __init__(self, message: str = None, **details):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self) -> dict:
        body = {'error': self.message, 'code': self.code}
        body.update(self.details)
        return body


class ValidationError(ReviewEngineError):
    code = 'validation_error'
    status_code = 400


class NotFound(ReviewEngineError):
    code = 'not_found'
    status_code = 404


class Forbidden(ReviewEngineError):
    code = 'forbidden'
    status_code = 403


class SelfReviewForbidden(Forbidden):
    code = 'self_review_forbidden'

    def __init__(self, submission_id: int):
        super().__init__('You cannot review your own submission', submission_id=submission_id)


class DuplicateReview(ReviewEngineError):
    code = 'duplicate_review'
    status_code = 409

    def __init__(self, existing_review_id: int):
        super().__init__('You have already reviewed this submission', review_id=existing_review_id)
        self.existing_review_id = existing_review_id


class NoEligibleReviewers(ReviewEngineError):
    code = 'no_eligible_reviewers'
    status_code = 404

    def __init__(self, submission_id: int):
        super().__init__(
            'No eligible reviewers available. Please try again later.',
            submission_id=submission_id
        )


class InvalidTransition(ReviewEngineError):
    code = 'invalid_transition'
    status_code = 409

    def __init__(self, current, requested):
        current_name = getattr(current, 'name', current)
        requested_name = getattr(requested, 'name', requested)
        super().__init__(
            f"Cannot move assignment from {current_name} to {requested_name}",
            current=current_name,
            requested=requested_name
        )
        self.current = current
        self.requested = requested
