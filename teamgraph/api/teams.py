"""
Teams API Module.
Handles team creation, direct membership, policy values and invitations
within a team context.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from teamgraph.api.deps import get_current_identity
from teamgraph.db.session import get_db
from teamgraph.models.invitation import InvitationStatus
from teamgraph.schemas.invitation import (
    InvitationCreate,
    InvitationOut,
    InvitationResponse,
)
from teamgraph.schemas.team import (
    MemberCreate,
    MemberLimitsUpdate,
    MemberOut,
    TeamCreate,
    TeamDefaultsUpdate,
    TeamOut,
)
from teamgraph.schemas.user import Identity
from teamgraph.services.invitation_service import InvitationService
from teamgraph.services.team_service import TeamService
from teamgraph.utils.invitation import build_invitation_link

router = APIRouter()


@router.post("", response_model=TeamOut, status_code=status.HTTP_201_CREATED)
def create_team(
    payload: TeamCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Create a new root team. The caller becomes its owner."""
    TeamService.register_user(db, identity.user_id, identity.email)
    return TeamService.create_team(db, identity.user_id, payload.name)


@router.get("/{team_id}", response_model=TeamOut)
def get_team(
    team_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return TeamService.get_team(db, team_id)


@router.patch("/{team_id}/defaults", response_model=TeamOut)
def update_team_defaults(
    team_id: int,
    payload: TeamDefaultsUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Set or clear the policy defaults inherited by the team's subtree."""
    return TeamService.set_team_defaults(
        db, team_id, identity.user_id, **payload.model_dump(exclude_unset=True)
    )


@router.post("/{team_id}/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def add_member(
    team_id: int,
    payload: MemberCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Add a registered user to the team without an invitation."""
    return TeamService.add_member(db, team_id, identity.user_id, payload.user_id, payload.role)


@router.patch("/{team_id}/members/{member_id}", response_model=MemberOut)
def update_member_limits(
    team_id: int,
    member_id: int,
    payload: MemberLimitsUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Set or clear a member's own limit overrides."""
    return TeamService.update_member_limits(
        db, team_id, identity.user_id, member_id, **payload.model_dump(exclude_unset=True)
    )


@router.delete("/{team_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    team_id: int,
    member_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    TeamService.remove_member(db, team_id, identity.user_id, member_id)


@router.post("/{team_id}/invitations", response_model=InvitationResponse)
def invite_member(
    request: Request,
    team_id: int,
    payload: InvitationCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Invite a user to the team."""
    TeamService.register_user(db, identity.user_id, identity.email)
    invitation = InvitationService.create_invitation(
        db,
        team_id=team_id,
        inviter_id=identity.user_id,
        email=payload.email,
        role=payload.role,
        notifier=getattr(request.app.state, "notifier", None),
    )
    return InvitationResponse(
        invite_link=build_invitation_link(invitation.token),
        invitation=InvitationOut.model_validate(invitation),
    )


@router.get("/{team_id}/invitations", response_model=List[InvitationOut])
def list_invitations(
    team_id: int,
    status_filter: Optional[InvitationStatus] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """List invitations for the team."""
    team = TeamService.get_team(db, team_id)
    TeamService.require_manager(db, team, identity.user_id)
    return InvitationService.list_team_invitations(db, team_id, status_filter)


@router.delete("/{team_id}/invitations/{token}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_invitation(
    team_id: int,
    token: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Revoke a pending invitation."""
    team = TeamService.get_team(db, team_id)
    TeamService.require_manager(db, team, identity.user_id)
    InvitationService.revoke_invitation(db, token, team_id)
