import pytest
from peerreview.main import create_app
from peerreview.models.assignment import AssignmentStatus
from peerreview.models.submission import MentorReviewStatus
from peerreview.utils.security import generate_token

SCORES = {
    'functionality_score': 90,
    'code_quality_score': 85,
    'best_practices_score': 80,
    'documentation_score': 70
}


@pytest.fixture
def client(database):
    app = create_app('testing')
    return app.test_client()


def auth_headers(user):
    token = generate_token({'user_id': user.id, 'role': user.role.value})
    return {'Authorization': f'Bearer {token}'}


class TestAuth:
    """Test bearer token handling"""

    def test_health(self, client):
        assert client.get('/api/health').status_code == 200

    def test_missing_token(self, client):
        response = client.get('/api/assignments/my-assignments')
        assert response.status_code == 401

    def test_bad_token(self, client):
        response = client.get('/api/assignments/my-assignments',
                              headers={'Authorization': 'Bearer not-a-jwt'})
        assert response.status_code == 401

    def test_admin_route_rejects_users(self, client, factory):
        user = factory.user('dev')
        response = client.get('/api/admin/review-stats', headers=auth_headers(user))

        assert response.status_code == 403
        assert response.get_json()['error'] == 'Admin privileges required'


class TestSubmissionRoutes:
    """Test submission endpoints"""

    def test_assign_reviewers(self, client, factory):
        author = factory.user('author')
        for i in range(3):
            factory.user(f'rev{i}')
        submission = factory.submission(author)

        response = client.post(
            f'/api/submissions/{submission.id}/assign-reviewers',
            json={'number_of_reviewers': 2},
            headers=auth_headers(author)
        )

        assert response.status_code == 200
        assert response.get_json()['created_count'] == 2

    def test_assign_without_candidates(self, client, factory):
        author = factory.user('author')
        submission = factory.submission(author)

        response = client.post(
            f'/api/submissions/{submission.id}/assign-reviewers',
            headers=auth_headers(author)
        )

        assert response.status_code == 404
        assert response.get_json()['code'] == 'no_eligible_reviewers'

    def test_readiness(self, client, factory):
        author = factory.user('author')
        submission = factory.submission(author, peer_reviews_received=2)

        response = client.get(f'/api/submissions/{submission.id}/readiness', headers=auth_headers(author))

        body = response.get_json()
        assert response.status_code == 200
        assert body['peer_reviews_complete'] is True
        assert body['ready_for_merge'] is False

    def test_merge_not_ready(self, client, factory):
        mentor = factory.admin('mentor')
        submission = factory.submission(factory.user('author'))

        response = client.post(f'/api/submissions/{submission.id}/merge', headers=auth_headers(mentor))

        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'

    def test_merge_ready(self, client, factory):
        mentor = factory.admin('mentor')
        submission = factory.submission(
            factory.user('author'),
            peer_reviews_received=2,
            mentor_review_status=MentorReviewStatus.APPROVED
        )

        response = client.post(f'/api/submissions/{submission.id}/merge', headers=auth_headers(mentor))

        assert response.status_code == 200
        assert response.get_json()['status'] == 'merged'


class TestReviewRoutes:
    """Test review endpoints"""

    def test_submit_review(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        submission = factory.submission(author)
        factory.assignment(submission, reviewer)

        response = client.post(
            '/api/reviews',
            json=dict(SCORES, submission_id=submission.id, strengths='Nice and small'),
            headers=auth_headers(reviewer)
        )

        body = response.get_json()
        assert response.status_code == 201
        assert body['review']['disposition'] == 'approved'
        assert body['review']['overall_score_display'] == 85
        assert body['readiness']['peer_reviews_complete'] is False

        fetched = client.get(f"/api/reviews/{body['review']['id']}", headers=auth_headers(author))
        assert fetched.status_code == 200

    def test_self_review(self, client, factory):
        author = factory.user('author')
        submission = factory.submission(author)

        response = client.post(
            '/api/reviews',
            json=dict(SCORES, submission_id=submission.id),
            headers=auth_headers(author)
        )

        assert response.status_code == 403
        assert response.get_json()['code'] == 'self_review_forbidden'

    def test_duplicate_review(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        submission = factory.submission(author)
        factory.assignment(submission, reviewer)
        payload = dict(SCORES, submission_id=submission.id)

        first = client.post('/api/reviews', json=payload, headers=auth_headers(reviewer))
        second = client.post('/api/reviews', json=payload, headers=auth_headers(reviewer))

        assert second.status_code == 409
        assert second.get_json()['review_id'] == first.get_json()['review']['id']

    def test_missing_submission_id(self, client, factory):
        response = client.post('/api/reviews', json=SCORES, headers=auth_headers(factory.user('rev')))
        assert response.status_code == 400

    def test_invalid_score(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        submission = factory.submission(author)
        factory.assignment(submission, reviewer)

        response = client.post(
            '/api/reviews',
            json=dict(SCORES, submission_id=submission.id, documentation_score=101),
            headers=auth_headers(reviewer)
        )
        assert response.status_code == 400


class TestAssignmentRoutes:
    """Test reviewer queue endpoints"""

    def test_queue_and_accept(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        assignment = factory.assignment(factory.submission(author), reviewer)

        queue = client.get('/api/assignments/my-assignments', headers=auth_headers(reviewer))
        assert queue.get_json()['stats']['pending'] == 1

        response = client.post(f'/api/assignments/{assignment.id}/accept', headers=auth_headers(reviewer))
        assert response.status_code == 200
        assert response.get_json()['assignment']['status'] == AssignmentStatus.ACCEPTED.value

    def test_accept_other_reviewers_assignment(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        assignment = factory.assignment(factory.submission(author), reviewer)

        response = client.post(f'/api/assignments/{assignment.id}/accept', headers=auth_headers(author))
        assert response.status_code == 403

    def test_decline_requires_reason(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        assignment = factory.assignment(factory.submission(author), reviewer)

        response = client.post(f'/api/assignments/{assignment.id}/decline', json={},
                               headers=auth_headers(reviewer))
        assert response.status_code == 400

        response = client.post(f'/api/assignments/{assignment.id}/decline', json={'reason': 'Busy'},
                               headers=auth_headers(reviewer))
        assert response.status_code == 200
        assert response.get_json()['assignment']['status'] == 'declined'

    def test_decline_with_non_text_reason(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        assignment = factory.assignment(factory.submission(author), reviewer)

        response = client.post(f'/api/assignments/{assignment.id}/decline', json={'reason': 5},
                               headers=auth_headers(reviewer))

        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'

    def test_accept_after_decline(self, client, factory):
        author, reviewer = factory.user('author'), factory.user('rev')
        assignment = factory.assignment(
            factory.submission(author), reviewer, status=AssignmentStatus.DECLINED
        )

        response = client.post(f'/api/assignments/{assignment.id}/accept', headers=auth_headers(reviewer))

        assert response.status_code == 409
        assert response.get_json()['code'] == 'invalid_transition'


class TestAdminRoutes:
    """Test admin endpoints"""

    def test_stats_and_listing(self, client, factory):
        mentor = factory.admin('mentor')
        author, reviewer = factory.user('author'), factory.user('rev')
        factory.assignment(factory.submission(author), reviewer)

        stats = client.get('/api/admin/review-stats', headers=auth_headers(mentor))
        assert stats.status_code == 200
        assert stats.get_json()['pending_assignments'] == 1

        listed = client.get('/api/admin/review-assignments', headers=auth_headers(mentor))
        assert len(listed.get_json()) == 1

    def test_cancel_and_reassign(self, client, factory):
        mentor = factory.admin('mentor')
        author, r1, r2 = factory.user('author'), factory.user('rev1'), factory.user('rev2')
        submission = factory.submission(author)
        first = factory.assignment(submission, r1)
        second = factory.assignment(submission, r2)

        cancelled = client.post(f'/api/admin/review-assignments/{first.id}/cancel',
                                headers=auth_headers(mentor))
        assert cancelled.get_json()['assignment']['status'] == 'cancelled'

        reassigned = client.post(f'/api/admin/review-assignments/{second.id}/reassign',
                                 headers=auth_headers(mentor))
        assert reassigned.status_code == 200
        assert reassigned.get_json()['reassigned'] is True

    def test_admin_reviewer_defaults_to_caller(self, client, factory):
        mentor = factory.admin('mentor')
        submission = factory.submission(factory.user('author'))

        response = client.post(f'/api/admin/submissions/{submission.id}/admin-reviewer',
                               headers=auth_headers(mentor))

        assert response.status_code == 200
        assert response.get_json()['created'] is True

    def test_expire_overdue(self, client, factory):
        mentor = factory.admin('mentor')
        response = client.post('/api/admin/expire-overdue', headers=auth_headers(mentor))

        assert response.status_code == 200
        assert response.get_json()['expired_count'] == 0
