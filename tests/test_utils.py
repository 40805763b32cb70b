"""
Tests for invitation and email helpers.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from teamgraph.core.config import settings
from teamgraph.core.exceptions import AntiHijackViolation, InvitationExpired, TeamGraphError
from teamgraph.utils import email as email_utils
from teamgraph.utils.invitation import (
    build_invitation_link,
    generate_invitation_token,
    invitation_expiry,
    normalize_email,
)


class TestInvitationHelpers:
    def test_tokens_are_url_safe(self):
        token = generate_invitation_token()

        assert len(token) >= 32
        assert all(c.isalnum() or c in "-_" for c in token)

    def test_normalize_email(self):
        assert normalize_email("  Foo.Bar@Example.COM ") == "foo.bar@example.com"

    def test_expiry_uses_configured_days(self, monkeypatch):
        monkeypatch.setattr(settings, "INVITATION_EXPIRE_DAYS", 3)
        created = datetime(2024, 5, 1, tzinfo=timezone.utc)

        assert invitation_expiry(created) == created + timedelta(days=3)

    def test_invitation_link(self, monkeypatch):
        monkeypatch.setattr(settings, "FRONTEND_URL", "https://app.example.com")

        assert build_invitation_link("abc") == "https://app.example.com/invite/accept?token=abc"


class TestNotifiers:
    def test_log_notifier_without_smtp(self, monkeypatch):
        monkeypatch.setattr(settings, "SMTP_HOST", None)

        assert isinstance(email_utils.default_notifier(), email_utils.LogNotifier)

    def test_smtp_notifier_when_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")

        assert isinstance(email_utils.default_notifier(), email_utils.SmtpNotifier)

    def test_smtp_notifier_sends_link(self, monkeypatch):
        monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
        monkeypatch.setattr(settings, "SMTP_USER", None)

        with patch("teamgraph.utils.email.smtplib.SMTP") as smtp:
            server = MagicMock()
            smtp.return_value.__enter__.return_value = server

            email_utils.SmtpNotifier().send_invitation(
                "new@test.com", "https://app/invite/accept?token=t", "Platform", "Olivia"
            )

        server.sendmail.assert_called_once()
        _, to_email, body = server.sendmail.call_args[0]
        assert to_email == "new@test.com"
        assert "token=t" in body
        server.login.assert_not_called()


class TestErrors:
    def test_default_message_and_code(self):
        error = InvitationExpired()

        assert error.code == "invitation_expired"
        assert error.status_code == 410
        assert str(error) == error.default_message

    def test_custom_message(self):
        error = AntiHijackViolation("nope")

        assert isinstance(error, TeamGraphError)
        assert error.message == "nope"
        assert error.status_code == 409
