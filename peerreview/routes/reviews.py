from flask import Blueprint, request, jsonify
from peerreview.errors import ReviewEngineError, ValidationError
from peerreview.services.review_service import ReviewIntakeService, NOTE_FIELDS, COUNT_FIELDS
from peerreview.services.rubric_scorer import RUBRIC_DIMENSIONS
from peerreview.middleware.auth import require_auth
from peerreview.utils.logger import get_logger

bp = Blueprint('reviews', __name__)
logger = get_logger(__name__)
review_service = ReviewIntakeService()


@bp.route('', methods=['POST'])
@require_auth
def submit_review(current_user):
    """Submit a peer or mentor review"""
    try:
        data = request.get_json(silent=True) or {}
        if not data.get('submission_id'):
            raise ValidationError('submission_id is required')

        scores = {name: data.get(f'{name}_score') for name in RUBRIC_DIMENSIONS}
        notes = {field: data.get(field) for field in NOTE_FIELDS + COUNT_FIELDS if field in data}

        result = review_service.submit_review(
            data['submission_id'],
            current_user['user_id'],
            data.get('type', 'peer'),
            scores,
            notes
        )
        result['message'] = 'Review submitted successfully. Thank you for contributing to the community!'
        return jsonify(result), 201

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error submitting review: {str(e)}")
        return jsonify({'error': 'Failed to submit review'}), 500


@bp.route('/<int:review_id>', methods=['GET'])
@require_auth
def get_review(review_id, current_user):
    """Get review details"""
    try:
        review = review_service.get_review(
            review_id, current_user['user_id'], current_user.get('role') == 'admin'
        )
        return jsonify(review), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error getting review: {str(e)}")
        return jsonify({'error': 'Failed to get review'}), 500
