"""Repository layer for database access."""

from teamgraph.repositories.user_repository import UserRepository
from teamgraph.repositories.team_repository import (
    TeamRepository,
    TeamMemberRepository,
)
from teamgraph.repositories.invitation_repository import InvitationRepository
from teamgraph.repositories.usage_event_repository import UsageEventRepository

__all__ = [
    "UserRepository",
    "TeamRepository",
    "TeamMemberRepository",
    "InvitationRepository",
    "UsageEventRepository",
]
