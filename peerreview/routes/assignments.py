from flask import Blueprint, request, jsonify
from peerreview.errors import ReviewEngineError
from peerreview.services.assignment_service import ReviewAssignmentEngine
from peerreview.middleware.auth import require_auth
from peerreview.utils.logger import get_logger

bp = Blueprint('assignments', __name__)
logger = get_logger(__name__)
assignment_engine = ReviewAssignmentEngine()


@bp.route('/my-assignments', methods=['GET'])
@require_auth
def get_my_assignments(current_user):
    """Get the current user's review queue"""
    try:
        return jsonify(assignment_engine.get_reviewer_queue(current_user['user_id'])), 200

    except Exception as e:
        logger.error(f"Error getting assignments: {str(e)}")
        return jsonify({'error': 'Failed to fetch review queue'}), 500


@bp.route('/<int:assignment_id>/accept', methods=['POST'])
@require_auth
def accept_assignment(assignment_id, current_user):
    """Accept a review assignment"""
    try:
        result = assignment_engine.accept_assignment(assignment_id, current_user['user_id'])
        return jsonify(result), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error accepting assignment: {str(e)}")
        return jsonify({'error': 'Failed to accept assignment'}), 500


@bp.route('/<int:assignment_id>/decline', methods=['POST'])
@require_auth
def decline_assignment(assignment_id, current_user):
    """Decline a review assignment"""
    try:
        data = request.get_json(silent=True) or {}
        result = assignment_engine.decline_assignment(
            assignment_id, current_user['user_id'], data.get('reason')
        )
        return jsonify(result), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error declining assignment: {str(e)}")
        return jsonify({'error': 'Failed to decline assignment'}), 500
