"""
Cascading policy values for team members.

A value is taken from the member's own override when one is stored, else
from the first team on the ancestor chain (root first) that configures a
default, else from the system default. NULL columns mean "not set", so an
explicit 0 override is honored.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from teamgraph.core.exceptions import MemberNotFound, UnknownProperty
from teamgraph.repositories import TeamMemberRepository
from teamgraph.services.hierarchy_service import HierarchyService


@dataclass(frozen=True)
class PolicyProperty:
    name: str
    member_attr: str
    team_attr: str
    default: Optional[int]


PROPERTIES: Dict[str, PolicyProperty] = {
    # 0 means unlimited
    "rate_limit_rpm": PolicyProperty(
        "rate_limit_rpm", "rate_limit_rpm", "default_rate_limit_rpm", 0
    ),
    # None means uncapped
    "monthly_limit_cents": PolicyProperty(
        "monthly_limit_cents", "monthly_limit_cents", "default_monthly_limit_cents", None
    ),
}

ALIASES = {
    "rateLimitRpm": "rate_limit_rpm",
    "monthlyLimitCents": "monthly_limit_cents",
}


def get_property(property_name: str) -> PolicyProperty:
    try:
        return PROPERTIES[ALIASES.get(property_name, property_name)]
    except KeyError:
        raise UnknownProperty(f"Unknown policy property: {property_name}") from None


class PropertyResolver:
    """Read-only resolution of member policy values."""

    @staticmethod
    def resolve(db: Session, member_id: int, property_name: str) -> Any:
        """
        Resolve one policy value for a member.

        Args:
            db: Database session
            member_id: TeamMember ID
            property_name: Property name (snake_case or camelCase)

        Returns:
            The resolved value

        Raises:
            UnknownProperty: If the property is not recognized
            MemberNotFound: If the member does not exist
        """
        prop = get_property(property_name)
        member = TeamMemberRepository(db).get_by_id(member_id)
        if member is None:
            raise MemberNotFound(f"Team member {member_id} not found")
        return PropertyResolver._resolve_for(db, member, prop)

    @staticmethod
    def resolve_all(db: Session, member_id: int) -> Dict[str, Any]:
        """Resolve every known property for a member."""
        member = TeamMemberRepository(db).get_by_id(member_id)
        if member is None:
            raise MemberNotFound(f"Team member {member_id} not found")
        return {
            name: PropertyResolver._resolve_for(db, member, prop)
            for name, prop in PROPERTIES.items()
        }

    @staticmethod
    def _resolve_for(db: Session, member, prop: PolicyProperty) -> Any:
        override = getattr(member, prop.member_attr)
        if override is not None:
            return override

        for team in HierarchyService.get_ancestor_chain(db, member.team_id):
            value = getattr(team, prop.team_attr)
            if value is not None:
                return value

        return prop.default
