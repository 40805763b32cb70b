import secrets

from fastapi import Header, HTTPException, status

from teamgraph.core.config import settings
from teamgraph.schemas.user import Identity


def get_current_identity(
    x_user_id: str = Header(None),
    x_user_email: str = Header(None),
) -> Identity:
    """
    Identity of the caller as established by the authenticating gateway,
    which verifies credentials and forwards the result in these headers.
    """
    if not x_user_id or not x_user_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated identity",
        )
    return Identity(user_id=x_user_id, email=x_user_email)


def require_service_token(x_service_token: str = Header(None)) -> None:
    """Admit internal callers presenting USAGE_INGEST_TOKEN, when one is configured."""
    expected = settings.USAGE_INGEST_TOKEN
    if not expected:
        return
    if not x_service_token or not secrets.compare_digest(x_service_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid service token",
        )
