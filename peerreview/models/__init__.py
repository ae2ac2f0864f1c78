from .user import User
from .project import Project
from .submission import Submission
from .assignment import Assignment
from .review import Review
from .notification import Notification

__all__ = [
    'User', 'Project', 'Submission', 'Assignment', 'Review', 'Notification'
]
