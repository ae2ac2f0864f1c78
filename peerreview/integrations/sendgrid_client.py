import sendgrid
from sendgrid.helpers.mail import Mail, Email, To, Content
from typing import Dict, Optional
from config.config import Config
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)


class SendGridClient:
    """Wrapper for SendGrid email operations"""

    def __init__(self):
        self.api_key = Config.SENDGRID_API_KEY
        self.from_email = Config.SENDGRID_FROM_EMAIL

        if self.api_key:
            self.client = sendgrid.SendGridAPIClient(api_key=self.api_key)
        else:
            self.client = None
            logger.warning("SendGrid API key not configured")

    def send_email(self, to_email: str, subject: str, html_content: str,
                   plain_content: str = None) -> Optional[Dict]:
        """Send email via SendGrid"""
        if not self.client:
            logger.debug(f"SendGrid disabled, not sending '{subject}' to {to_email}")
            return None

        try:
            message = Mail(
                from_email=Email(self.from_email, "Peer Review"),
                to_emails=To(to_email),
                subject=subject,
                html_content=Content("text/html", html_content)
            )

            if plain_content:
                message.plain_text_content = Content("text/plain", plain_content)

            response = self.client.send(message)

            return {
                'status_code': response.status_code,
                'message_id': response.headers.get('X-Message-Id')
            }
        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {str(e)}")
            return None

    def send_review_assigned_email(self, to_email: str, name: str, review_title: str,
                                   due_date: Optional[str], queue_link: str) -> Optional[Dict]:
        """Send review assignment email"""
        subject = f"New Review Assignment - {review_title}"
        due_line = f"<p><strong>Due:</strong> {due_date}</p>" if due_date else ""
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>New Review Assignment</h2>
                <p>Hi {name},</p>
                <p>You've been assigned to review <strong>{review_title}</strong>.</p>
                {due_line}
                <p style="margin: 30px 0;">
                    <a href="{queue_link}"
                       style="background-color: #4CAF50; color: white; padding: 14px 28px;
                              text-decoration: none; border-radius: 4px; display: inline-block;">
                        Open Review Queue
                    </a>
                </p>
            </body>
        </html>
        """
        return self.send_email(to_email, subject, html_content)

    def send_review_received_email(self, to_email: str, name: str, review_kind: str,
                                   feature_title: str, score_text: str,
                                   submission_link: str) -> Optional[Dict]:
        """Send review received email to the submission author"""
        subject = f"{review_kind} Review Received - {feature_title}"
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>{review_kind} Review Received</h2>
                <p>Hi {name},</p>
                <p>Your PR for "{feature_title}" received a review ({score_text}).</p>
                <p><a href="{submission_link}">View the review</a></p>
            </body>
        </html>
        """
        return self.send_email(to_email, subject, html_content)
