import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///test_peerreview.db')
os.environ.setdefault('LOG_FILE', 'logs/test_peerreview.log')
os.environ['SENDGRID_API_KEY'] = ''

from datetime import datetime, timedelta
from unittest.mock import Mock
import pytest
from peerreview.database import init_db, drop_db, DatabaseManager
from peerreview.models import User, Project, Submission, Assignment
from peerreview.models.user import UserRole
from peerreview.models.assignment import AssignmentStatus, AssignmentType
from peerreview.services.notification_service import NotificationDispatcher, RewardNotifier


class Factory:
    """Create rows the way the surrounding platform would"""

    def __init__(self):
        self.user_db = DatabaseManager(User)
        self.project_db = DatabaseManager(Project)
        self.submission_db = DatabaseManager(Submission)
        self.assignment_db = DatabaseManager(Assignment)
        self._count = 0

    def user(self, name=None, role=UserRole.USER, github=True, **kwargs):
        self._count += 1
        name = name or f'user{self._count}'
        return self.user_db.create(
            username=name,
            email=f'{name}@test.com',
            role=role,
            github_username=f'{name}-gh' if github else None,
            **kwargs
        )

    def admin(self, name=None, **kwargs):
        return self.user(name=name, role=UserRole.ADMIN, **kwargs)

    def project(self, title='Markdown Renderer', difficulty=2):
        return self.project_db.create(title=title, difficulty=difficulty)

    def submission(self, author, project=None, **kwargs):
        project = project or self.project()
        kwargs.setdefault('feature_title', 'Add table support')
        kwargs.setdefault('peer_reviews_needed', 2)
        return self.submission_db.create(user_id=author.id, project_id=project.id, **kwargs)

    def assignment(self, submission, reviewer, status=AssignmentStatus.PENDING,
                   type=AssignmentType.PEER, **kwargs):
        kwargs.setdefault('due_date', datetime.utcnow() + timedelta(days=7))
        return self.assignment_db.create(
            submission_id=submission.id,
            reviewer_id=reviewer.id,
            status=status,
            type=type,
            **kwargs
        )


class FixedRanker:
    """Ranker stand-in that always proposes the same reviewers"""

    def __init__(self, reviewer_ids):
        self.reviewer_ids = list(reviewer_ids)

    def select(self, author_id, excluded_ids, candidates, k=2, project_difficulty=None):
        return self.reviewer_ids[:k]


@pytest.fixture
def database():
    """Fresh schema for each test"""
    init_db()
    yield
    drop_db()


@pytest.fixture
def factory(database):
    return Factory()


@pytest.fixture
def notifier():
    return Mock(spec=RewardNotifier)


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier=notifier)
