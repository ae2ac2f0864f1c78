from flask import Blueprint, request, jsonify
from peerreview.errors import ReviewEngineError
from peerreview.services.assignment_service import ReviewAssignmentEngine
from peerreview.middleware.auth import require_auth, require_admin
from peerreview.utils.logger import get_logger

bp = Blueprint('admin', __name__)
logger = get_logger(__name__)
assignment_engine = ReviewAssignmentEngine()


@bp.route('/review-assignments', methods=['GET'])
@require_auth
@require_admin
def list_review_assignments(current_user):
    """List all review assignments"""
    try:
        return jsonify(assignment_engine.list_assignments()), 200

    except Exception as e:
        logger.error(f"Error fetching admin review assignments: {str(e)}")
        return jsonify({'error': 'Failed to fetch review assignments'}), 500


@bp.route('/review-stats', methods=['GET'])
@require_auth
@require_admin
def review_stats(current_user):
    """Review assignment statistics"""
    try:
        return jsonify(assignment_engine.get_assignment_stats()), 200

    except Exception as e:
        logger.error(f"Error fetching admin review stats: {str(e)}")
        return jsonify({'error': 'Failed to fetch review stats'}), 500


@bp.route('/review-assignments/<int:assignment_id>/cancel', methods=['POST'])
@require_auth
@require_admin
def cancel_assignment(assignment_id, current_user):
    """Cancel a review assignment"""
    try:
        result = assignment_engine.cancel_assignment(assignment_id)
        result['message'] = 'Assignment cancelled successfully'
        return jsonify(result), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error cancelling review assignment: {str(e)}")
        return jsonify({'error': 'Failed to cancel assignment'}), 500


@bp.route('/review-assignments/<int:assignment_id>/reassign', methods=['POST'])
@require_auth
@require_admin
def reassign_assignment(assignment_id, current_user):
    """Cancel a review assignment and pick another reviewer"""
    try:
        return jsonify(assignment_engine.reassign(assignment_id)), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error reassigning review assignment: {str(e)}")
        return jsonify({'error': 'Failed to reassign assignment'}), 500


@bp.route('/submissions/<int:submission_id>/admin-reviewer', methods=['POST'])
@require_auth
@require_admin
def assign_admin_reviewer(submission_id, current_user):
    """Assign an administrator reviewer to a submission"""
    try:
        data = request.get_json(silent=True) or {}
        result = assignment_engine.assign_admin_reviewer(
            submission_id, data.get('admin_user_id') or current_user['user_id']
        )
        return jsonify(result), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error assigning admin reviewer: {str(e)}")
        return jsonify({'error': 'Failed to assign admin reviewer'}), 500


@bp.route('/expire-overdue', methods=['POST'])
@require_auth
@require_admin
def expire_overdue(current_user):
    """Expire assignments past their due date"""
    try:
        expired = assignment_engine.expire_overdue()
        return jsonify({'success': True, 'expired_count': expired}), 200

    except Exception as e:
        logger.error(f"Error expiring assignments: {str(e)}")
        return jsonify({'error': 'Failed to expire assignments'}), 500
