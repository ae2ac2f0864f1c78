from functools import wraps
from flask import request, jsonify
from peerreview.utils.security import verify_token
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)


def require_auth(f):
    """Decorator to require a platform-issued bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            return jsonify({'error': 'Authorization header missing'}), 401

        parts = auth_header.split()
        if len(parts) != 2 or parts[0] != 'Bearer':
            return jsonify({'error': 'Invalid authorization header format'}), 401

        payload = verify_token(parts[1])
        if not payload or 'user_id' not in payload:
            return jsonify({'error': 'Invalid or expired token'}), 401

        return f(current_user=payload, *args, **kwargs)

    return decorated_function


def require_role(allowed_roles):
    """Decorator to require specific roles"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, current_user, **kwargs):
            if current_user.get('role') not in allowed_roles:
                return jsonify({'error': 'Admin privileges required'}), 403
            return f(*args, current_user=current_user, **kwargs)
        return decorated_function
    return decorator


def require_admin(f):
    """Decorator to require admin role"""
    return require_role(['admin'])(f)
