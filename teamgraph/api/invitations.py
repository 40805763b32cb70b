from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from teamgraph.api.deps import get_current_identity
from teamgraph.core.rate_limit import limiter
from teamgraph.db.session import get_db
from teamgraph.schemas.invitation import InvitationPublicOut, MigrationResult
from teamgraph.schemas.user import Identity
from teamgraph.services.invitation_service import InvitationService

router = APIRouter()


@router.get("/{token}", response_model=InvitationPublicOut)
@limiter.limit("30/minute")
def get_invitation(
    request: Request,
    token: str,
    db: Session = Depends(get_db),
):
    """
    Get invitation details by token.
    This endpoint is public (no auth required) to show invite details.
    """
    return InvitationService.get_invitation_details(db, token)


@router.post("/{token}/accept", response_model=MigrationResult)
@limiter.limit("10/minute")
def accept_invitation(
    request: Request,
    token: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Accept a team invitation.
    The caller's verified email must match the invitation.
    """
    return InvitationService.accept_invitation(db, token, identity)
