from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional

from teamgraph.models.team import BillingProvider, TeamRole


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Team name cannot be empty')
        return v


class TeamOut(BaseModel):
    id: int
    name: str
    owner_id: str
    parent_team_id: Optional[int] = None
    shared_balance_cents: int
    is_unlimited: bool
    default_rate_limit_rpm: Optional[int] = None
    default_monthly_limit_cents: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TeamDefaultsUpdate(BaseModel):
    """Omitted fields stay as they are; null clears a default."""
    default_rate_limit_rpm: Optional[int] = Field(None, ge=0)
    default_monthly_limit_cents: Optional[int] = Field(None, ge=0)


class MemberCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    role: TeamRole = TeamRole.MEMBER


class MemberOut(BaseModel):
    id: int
    team_id: int
    user_id: str
    role: TeamRole
    monthly_limit_cents: Optional[int] = None
    rate_limit_rpm: Optional[int] = None
    current_month_spend_cents: int
    budget_reset_at: Optional[datetime] = None
    billing_provider: BillingProvider

    model_config = ConfigDict(from_attributes=True)


class MemberLimitsUpdate(BaseModel):
    """Omitted fields stay as they are; null clears an override."""
    monthly_limit_cents: Optional[int] = Field(None, ge=0)
    rate_limit_rpm: Optional[int] = Field(None, ge=0)
