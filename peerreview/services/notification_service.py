import enum
import math
from typing import Dict, Iterable, NamedTuple
from peerreview.database import get_db
from peerreview.models import User, Notification
from peerreview.integrations import SendGridClient
from peerreview.scheduler import get_scheduler
from config.config import Config
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)


class EventType(enum.Enum):
    REVIEW_ASSIGNED = "REVIEW_ASSIGNED"
    REVIEW_RECEIVED = "REVIEW_RECEIVED"
    XP_AWARDED = "XP_AWARDED"


class NotificationEvent(NamedTuple):
    event_type: EventType
    recipient_id: int
    payload: Dict


class RewardNotifier:
    """Receives reward and notification requests emitted by the engine"""

    def notify(self, event_type: EventType, recipient_id: int, payload: Dict) -> None:
        raise NotImplementedError


def level_for_xp(xp: int) -> int:
    # Level 1: 0-99, Level 2: 100-399, Level 3: 400-899 ...
    return int(math.floor(math.sqrt(max(xp, 0) / 100))) + 1


class NotificationService(RewardNotifier):
    """In-app notifications, XP bookkeeping and email via SendGrid"""

    def __init__(self, email_client: SendGridClient = None):
        self.sendgrid = email_client or SendGridClient()

    def notify(self, event_type: EventType, recipient_id: int, payload: Dict) -> None:
        if event_type == EventType.REVIEW_ASSIGNED:
            self.send_review_assigned(recipient_id, payload)
        elif event_type == EventType.REVIEW_RECEIVED:
            self.send_review_received(recipient_id, payload)
        elif event_type == EventType.XP_AWARDED:
            self.award_xp(recipient_id, payload.get('amount', 0), payload.get('reason'), payload)
        else:
            raise ValueError(f"Unknown notification type: {event_type}")

    def send_review_assigned(self, reviewer_id: int, payload: Dict):
        """Notify a reviewer about a new assignment"""
        review_title = f"{payload.get('project_title')} - {payload.get('feature_title')}"
        with get_db() as db:
            reviewer = db.query(User).filter_by(id=reviewer_id).first()
            if not reviewer:
                logger.error(f"Missing reviewer {reviewer_id} for assignment notification")
                return

            db.add(Notification(
                user_id=reviewer.id,
                type=EventType.REVIEW_ASSIGNED.value,
                title="New Review Assignment",
                message=f'You\'ve been assigned to review "{review_title}"',
                data=payload
            ))
            email, name = reviewer.email, reviewer.username

        self.sendgrid.send_review_assigned_email(
            email, name, review_title, payload.get('due_date'),
            f"{Config.APP_URL}/contributions/reviews"
        )
        logger.info(f"Sent assignment notification for assignment {payload.get('assignment_id')}")

    def send_review_received(self, author_id: int, payload: Dict):
        """Notify a submission author that a review arrived"""
        review_kind = 'Mentor' if payload.get('review_type') == 'mentor' else 'Peer'
        score = payload.get('overall_score_display')
        score_text = f"overall score {score}%" if score is not None else "feedback only"

        with get_db() as db:
            author = db.query(User).filter_by(id=author_id).first()
            if not author:
                logger.error(f"Missing author {author_id} for review notification")
                return

            db.add(Notification(
                user_id=author.id,
                type=EventType.REVIEW_RECEIVED.value,
                title=f"{review_kind} Review Received",
                message=f'Your PR for "{payload.get("feature_title")}" received a review with {score_text}',
                data=payload
            ))
            email, name = author.email, author.username

        self.sendgrid.send_review_received_email(
            email, name, review_kind, payload.get('feature_title') or 'your submission', score_text,
            f"{Config.APP_URL}/contributions/submissions/{payload.get('submission_id')}"
        )

    def award_xp(self, user_id: int, amount: int, reason: str = None, metadata: Dict = None) -> Dict:
        """Add XP to a user and record level ups"""
        with get_db() as db:
            user = db.query(User).filter_by(id=user_id).first()
            if not user:
                logger.error(f"Cannot award XP to missing user {user_id}")
                return {'success': False, 'xp_awarded': 0}

            old_level = user.level or 1
            user.xp = (user.xp or 0) + amount
            user.level = level_for_xp(user.xp)

            db.add(Notification(
                user_id=user.id,
                type=EventType.XP_AWARDED.value,
                title=f"+{amount} XP",
                message=f"You earned {amount} XP" + (f" for {reason}" if reason else ""),
                data=metadata or {}
            ))

            level_up = user.level > old_level
            if level_up:
                db.add(Notification(
                    user_id=user.id,
                    type='LEVEL_UP',
                    title=f"Level Up! You're now Level {user.level}",
                    message=f"Congratulations! You've reached Level {user.level} with {user.xp} XP!",
                    data={'old_level': old_level, 'new_level': user.level, 'total_xp': user.xp}
                ))

            logger.info(f"Awarded {amount} XP to user {user_id} ({reason}), total {user.xp}")
            return {
                'success': True,
                'xp_awarded': amount,
                'new_total': user.xp,
                'level_up': level_up,
                'new_level': user.level
            }


class NotificationDispatcher:
    """Deliver events after the primary transaction has committed.

    Runs on the background scheduler when one is running, otherwise inline.
    Delivery failures are logged and never reach the caller.
    """

    def __init__(self, notifier: RewardNotifier = None, scheduler=None):
        self.notifier = notifier or NotificationService()
        self.scheduler = scheduler

    def dispatch(self, events: Iterable[NotificationEvent]):
        for event in events:
            scheduler = self.scheduler or get_scheduler()
            if scheduler is not None:
                try:
                    scheduler.add_job(func=self._deliver, trigger='date', args=[event])
                    continue
                except Exception as e:
                    logger.error(f"Error scheduling {event.event_type.value} notification: {str(e)}")
            self._deliver(event)

    def _deliver(self, event: NotificationEvent):
        try:
            self.notifier.notify(event.event_type, event.recipient_id, event.payload)
        except Exception as e:
            logger.error(
                f"Error delivering {event.event_type.value} to user {event.recipient_id}: {str(e)}"
            )
