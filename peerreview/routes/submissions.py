from flask import Blueprint, request, jsonify
from peerreview.errors import ReviewEngineError
from peerreview.services.assignment_service import ReviewAssignmentEngine
from peerreview.services.readiness_service import ReadinessService
from peerreview.middleware.auth import require_auth, require_admin
from peerreview.utils.logger import get_logger

bp = Blueprint('submissions', __name__)
logger = get_logger(__name__)
assignment_engine = ReviewAssignmentEngine()
readiness_service = ReadinessService()


@bp.route('/<int:submission_id>/assign-reviewers', methods=['POST'])
@require_auth
def assign_reviewers(submission_id, current_user):
    """Assign peer reviewers to a submission"""
    try:
        data = request.get_json(silent=True) or {}
        result = assignment_engine.assign_reviewers(
            submission_id, data.get('number_of_reviewers')
        )
        return jsonify(result), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error assigning reviewers: {str(e)}")
        return jsonify({'error': 'Failed to assign reviewers'}), 500


@bp.route('/<int:submission_id>/readiness', methods=['GET'])
@require_auth
def get_readiness(submission_id, current_user):
    """Get peer/mentor review status and merge readiness"""
    try:
        return jsonify(readiness_service.get_readiness(submission_id)), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error getting readiness: {str(e)}")
        return jsonify({'error': 'Failed to get readiness'}), 500


@bp.route('/<int:submission_id>/merge', methods=['POST'])
@require_auth
@require_admin
def merge_submission(submission_id, current_user):
    """Mark a merge-ready submission as merged (admin only)"""
    try:
        return jsonify(readiness_service.mark_merged(submission_id)), 200

    except ReviewEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error merging submission: {str(e)}")
        return jsonify({'error': 'Failed to merge submission'}), 500
