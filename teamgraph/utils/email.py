import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, Protocol

from teamgraph.core.config import settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_invitation(
        self, to_email: str, invite_link: str, team_name: str, inviter_name: Optional[str] = None
    ) -> None:
        ...


def send_email(to_email: str, subject: str, html_content: str, text_content: str = None):
    """
    Send an email via SMTP.

    Args:
        to_email: Recipient email address
        subject: Email subject
        html_content: HTML content of the email
        text_content: Plain text content (optional, fallback)
    """
    msg = MIMEMultipart('alternative')
    msg['Subject'] = subject
    msg['From'] = f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>"
    msg['To'] = to_email

    if text_content:
        msg.attach(MIMEText(text_content, 'plain'))
    msg.attach(MIMEText(html_content, 'html'))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        server.ehlo()
        server.starttls()
        server.ehlo()
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.sendmail(settings.SMTP_FROM_EMAIL, to_email, msg.as_string())
    logger.info(f"Email sent to {to_email}")


class SmtpNotifier:
    """Sends invitation emails through the configured SMTP relay."""

    def send_invitation(self, to_email, invite_link, team_name, inviter_name=None):
        subject = f"You've been invited to join {team_name}"
        lead = f"<strong>{inviter_name}</strong> has invited you" if inviter_name else "You've been invited"
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif;">
            <h2>You've been invited!</h2>
            <p>{lead} to join <strong>{team_name}</strong>.</p>
            <p><a href="{invite_link}">Accept Invitation</a></p>
            <p>Or copy and paste this link into your browser: {invite_link}</p>
            <p><strong>Note:</strong> This invitation will expire in {settings.INVITATION_EXPIRE_DAYS} days.</p>
        </body>
        </html>
        """
        text_content = (
            f"You've been invited to join {team_name}.\n\n"
            f"Accept the invitation: {invite_link}\n\n"
            f"This invitation will expire in {settings.INVITATION_EXPIRE_DAYS} days.\n"
        )
        send_email(to_email, subject, html_content, text_content)


class LogNotifier:
    """Writes the invitation link to the log instead of sending mail."""

    def send_invitation(self, to_email, invite_link, team_name, inviter_name=None):
        logger.info(f"Invitation for {to_email} to join {team_name}: {invite_link}")


def default_notifier() -> Notifier:
    if settings.SMTP_HOST:
        return SmtpNotifier()
    return LogNotifier()
