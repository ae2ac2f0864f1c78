from .logger import setup_logger, get_logger
from .security import generate_token, verify_token
from .validators import validate_score, validate_reason, validate_reviewer_count

__all__ = [
    'setup_logger', 'get_logger',
    'generate_token', 'verify_token',
    'validate_score', 'validate_reason', 'validate_reviewer_count'
]
