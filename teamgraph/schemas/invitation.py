from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Optional

from teamgraph.models.invitation import InvitationStatus
from teamgraph.models.team import TeamRole


class InvitationCreate(BaseModel):
    """Schema for creating a team invitation."""
    email: EmailStr
    role: TeamRole = TeamRole.MEMBER


class InvitationOut(BaseModel):
    """Schema for invitation details, as seen by the inviting team."""
    id: int
    email: str
    role: TeamRole
    team_id: Optional[int] = None
    invited_by_id: str
    status: InvitationStatus
    created_at: datetime
    expires_at: datetime
    responded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InvitationPublicOut(BaseModel):
    """Public schema for invitation (without sensitive data)."""
    email: str
    role: TeamRole
    team_id: Optional[int] = None
    team_name: Optional[str] = None
    status: InvitationStatus
    expires_at: datetime
    invited_by_name: Optional[str] = None


class InvitationResponse(BaseModel):
    """Response after creating invitation."""
    invite_link: str
    invitation: InvitationOut


class MigrationResult(BaseModel):
    """Outcome of accepting an invitation."""
    state: str
    invitation_id: int
    team_id: int
    member_id: Optional[int] = None
    absorbed_team_id: Optional[int] = None
    dissolved_team_id: Optional[int] = None
