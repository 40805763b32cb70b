from pydantic import BaseModel, Field
from typing import Optional


class UsageRecord(BaseModel):
    """One usage event from the usage source."""
    user_id: str = Field(..., min_length=1)
    cost_cents: int = Field(..., ge=0)
    event_id: str = Field(..., min_length=1, max_length=128)


class UsageOutcome(BaseModel):
    """Ledger state after recording a usage event."""
    current_spend_cents: int
    limit_exceeded: bool = False
    duplicate: bool = False
    owner_level: bool = False
    shared_balance_cents: Optional[int] = None
    member_id: Optional[int] = None
    monthly_limit_cents: Optional[int] = None
