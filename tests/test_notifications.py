from unittest.mock import Mock, patch
import pytest
from peerreview.database import DatabaseManager
from peerreview.integrations import SendGridClient
from peerreview.models import Notification, User
from peerreview.services.notification_service import (
    EventType, NotificationDispatcher, NotificationEvent, NotificationService, level_for_xp
)


@pytest.fixture
def email_client():
    return Mock(spec=SendGridClient)


@pytest.fixture
def service(email_client):
    return NotificationService(email_client=email_client)


class TestLevels:
    """Test XP to level conversion"""

    @pytest.mark.parametrize('xp, level', [
        (0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (899, 3), (900, 4), (-10, 1)
    ])
    def test_level_for_xp(self, xp, level):
        assert level_for_xp(xp) == level


class TestNotificationService:
    """Test notification delivery and XP bookkeeping"""

    def test_award_xp(self, service, factory):
        user = factory.user('dev')

        result = service.award_xp(user.id, 25, 'peer review')

        assert result == {
            'success': True,
            'xp_awarded': 25,
            'new_total': 25,
            'level_up': False,
            'new_level': 1
        }
        rows = DatabaseManager(Notification).filter(user_id=user.id)
        assert [n.type for n in rows] == ['XP_AWARDED']
        assert rows[0].title == '+25 XP'

    def test_award_xp_level_up(self, service, factory):
        user = factory.user('dev', xp=90)

        result = service.award_xp(user.id, 50, 'mentor review')

        assert result['level_up'] is True
        assert result['new_level'] == 2
        updated = DatabaseManager(User).get(user.id)
        assert updated.xp == 140
        assert updated.level == 2
        types = sorted(n.type for n in DatabaseManager(Notification).filter(user_id=user.id))
        assert types == ['LEVEL_UP', 'XP_AWARDED']

    def test_award_xp_missing_user(self, service, database):
        assert service.award_xp(999, 25)['success'] is False

    def test_review_assigned(self, service, factory, email_client):
        reviewer = factory.user('rev')
        payload = {
            'assignment_id': 3,
            'submission_id': 7,
            'project_title': 'Markdown Renderer',
            'feature_title': 'Add table support',
            'due_date': '2026-03-08T12:00:00'
        }

        service.notify(EventType.REVIEW_ASSIGNED, reviewer.id, payload)

        rows = DatabaseManager(Notification).filter(user_id=reviewer.id)
        assert len(rows) == 1
        assert rows[0].type == 'REVIEW_ASSIGNED'
        assert 'Markdown Renderer - Add table support' in rows[0].message
        assert rows[0].data['assignment_id'] == 3

        email_client.send_review_assigned_email.assert_called_once()
        assert email_client.send_review_assigned_email.call_args.args[0] == 'rev@test.com'

    def test_review_received(self, service, factory, email_client):
        author = factory.user('author')

        service.notify(EventType.REVIEW_RECEIVED, author.id, {
            'submission_id': 7,
            'review_type': 'mentor',
            'feature_title': 'Add table support',
            'overall_score_display': 85
        })

        row = DatabaseManager(Notification).filter(user_id=author.id)[0]
        assert row.title == 'Mentor Review Received'
        assert 'overall score 85%' in row.message
        email_client.send_review_received_email.assert_called_once()

    def test_xp_event_routes_to_award(self, service, factory):
        user = factory.user('dev')
        service.notify(EventType.XP_AWARDED, user.id, {'amount': 100, 'reason': 'merged pull request'})
        assert DatabaseManager(User).get(user.id).level == 2

    def test_unknown_recipient_is_logged(self, service, database, email_client):
        service.notify(EventType.REVIEW_ASSIGNED, 404, {'assignment_id': 1})
        email_client.send_review_assigned_email.assert_not_called()


class TestNotificationDispatcher:
    """Test post-commit event delivery"""

    def test_inline_delivery(self, notifier):
        event = NotificationEvent(EventType.XP_AWARDED, 5, {'amount': 25})

        with patch('peerreview.services.notification_service.get_scheduler', return_value=None):
            NotificationDispatcher(notifier=notifier).dispatch([event])

        notifier.notify.assert_called_once_with(EventType.XP_AWARDED, 5, {'amount': 25})

    def test_uses_scheduler_when_running(self, notifier):
        scheduler = Mock()
        dispatcher = NotificationDispatcher(notifier=notifier, scheduler=scheduler)
        event = NotificationEvent(EventType.REVIEW_ASSIGNED, 5, {})

        dispatcher.dispatch([event])

        scheduler.add_job.assert_called_once_with(func=dispatcher._deliver, trigger='date', args=[event])
        notifier.notify.assert_not_called()

    def test_falls_back_inline_when_scheduling_fails(self, notifier):
        scheduler = Mock()
        scheduler.add_job.side_effect = RuntimeError('scheduler shut down')
        dispatcher = NotificationDispatcher(notifier=notifier, scheduler=scheduler)

        dispatcher.dispatch([NotificationEvent(EventType.REVIEW_ASSIGNED, 5, {})])

        notifier.notify.assert_called_once()

    def test_delivery_errors_are_swallowed(self, notifier):
        notifier.notify.side_effect = Exception('SendGrid timeout')
        dispatcher = NotificationDispatcher(notifier=notifier, scheduler=None)

        with patch('peerreview.services.notification_service.get_scheduler', return_value=None):
            dispatcher.dispatch([
                NotificationEvent(EventType.XP_AWARDED, 1, {'amount': 25}),
                NotificationEvent(EventType.REVIEW_RECEIVED, 2, {})
            ])

        assert notifier.notify.call_count == 2


class TestSendGridClient:
    """Test email client without an API key"""

    def test_disabled_without_key(self):
        client = SendGridClient()
        assert client.client is None
        assert client.send_email('dev@test.com', 'Subject', '<p>Hi</p>') is None
