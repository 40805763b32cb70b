import secrets
from datetime import datetime, timedelta
from typing import Optional

from teamgraph.core.config import settings
from teamgraph.utils.time import utcnow


def generate_invitation_token() -> str:
    """Generate an unguessable, URL-safe invitation token."""
    return secrets.token_urlsafe(32)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def invitation_expiry(created_at: Optional[datetime] = None) -> datetime:
    return (created_at or utcnow()) + timedelta(days=settings.INVITATION_EXPIRE_DAYS)


def build_invitation_link(token: str) -> str:
    """
    Build the full invitation acceptance link.

    Args:
        token: Invitation token

    Returns:
        Full URL for accepting invitation
    """
    return f"{settings.FRONTEND_URL}/invite/accept?token={token}"
