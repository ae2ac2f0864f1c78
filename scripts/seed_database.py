#!/usr/bin/env python3
"""
Script to seed the database with sample data for local development
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from peerreview.database import init_db, drop_db, get_db
from peerreview.models import User, Project, Submission
from peerreview.models.user import UserRole
from peerreview.models.submission import SubmissionStatus
from peerreview.utils.security import generate_token
import random


def create_users(db):
    """Create an admin and a pool of reviewers with some history"""
    admin = User(
        username='mentor',
        email='mentor@peerreview.dev',
        role=UserRole.ADMIN,
        github_username='mentor-gh'
    )
    db.add(admin)

    users = []
    for i in range(1, 9):
        user = User(
            username=f'dev{i}',
            email=f'dev{i}@peerreview.dev',
            role=UserRole.USER,
            # A couple of users never connected GitHub
            github_username=f'dev{i}-gh' if i % 4 else None
        )
        db.add(user)
        users.append(user)

    db.flush()
    print(f"Created {len(users) + 1} users")
    return admin, users


def create_projects(db, users):
    """Create projects and some merged history so ranking has signal"""
    projects = [
        Project(title='Todo API', difficulty=1),
        Project(title='Markdown Renderer', difficulty=3),
        Project(title='Realtime Chat', difficulty=5)
    ]
    db.add_all(projects)
    db.flush()

    for user in users:
        for _ in range(random.randint(0, 4)):
            db.add(Submission(
                user_id=user.id,
                project_id=random.choice(projects).id,
                feature_title='Earlier feature',
                status=SubmissionStatus.MERGED,
                peer_reviews_received=2
            ))

    open_submission = Submission(
        user_id=users[0].id,
        project_id=projects[1].id,
        feature_title='Add table support',
        pr_url='https://github.com/example/markdown/pull/42',
        peer_reviews_needed=2
    )
    db.add(open_submission)
    db.flush()
    print(f"Created {len(projects)} projects and open submission {open_submission.id}")
    return open_submission


def main():
    """Main seeding function"""
    print("Dropping existing database...")
    drop_db()

    print("Initializing new database...")
    init_db()

    with get_db() as db:
        admin, users = create_users(db)
        submission = create_projects(db, users)
        tokens = {
            user.username: generate_token({'user_id': user.id, 'role': user.role.value})
            for user in [admin] + users
        }
        submission_id = submission.id

    print("\nDatabase seeded successfully!")
    print(f"Open submission id: {submission_id}")
    print("\nBearer tokens:")
    for username, token in tokens.items():
        print(f"- {username}: {token}")


if __name__ == "__main__":
    main()
