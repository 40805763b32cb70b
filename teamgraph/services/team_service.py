"""
Team Service Module.
Handles team creation, direct member management and the policy values
that cascade to members. Stateless; every call gets the session to use.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from teamgraph.core.exceptions import (
    AlreadyTeamMember,
    MemberNotFound,
    PermissionDenied,
    TeamNotFound,
)
from teamgraph.db.session import unit_of_work
from teamgraph.models.team import Team, TeamMember, TeamRole
from teamgraph.models.user import User
from teamgraph.repositories import (
    TeamMemberRepository,
    TeamRepository,
    UserRepository,
)
from teamgraph.utils.invitation import normalize_email

logger = logging.getLogger(__name__)

# Distinguishes "leave unchanged" from an explicit None (clear the value)
UNSET = object()


def _check_limit(name: str, value) -> None:
    if value is not None and value is not UNSET and value < 0:
        raise ValueError(f"{name} must be non-negative")


class TeamService:
    """Service for managing team operations."""

    @staticmethod
    def ensure_user(db: Session, user_id: str, email: str, full_name: str = None) -> User:
        """
        Mirror an identity into the local user directory. Flushes only.
        """
        user_repo = UserRepository(db)
        user = user_repo.get_by_id(user_id)
        email = normalize_email(email)
        if user is None:
            return user_repo.create(User(id=user_id, email=email, full_name=full_name))
        if user.email != email or (full_name and user.full_name != full_name):
            user.email = email
            if full_name:
                user.full_name = full_name
            user_repo.update(user)
        return user

    @staticmethod
    def register_user(db: Session, user_id: str, email: str, full_name: str = None) -> User:
        """Create or refresh a user record from the identity provider."""
        with unit_of_work(db):
            user = TeamService.ensure_user(db, user_id, email, full_name)
        return user

    @staticmethod
    def create_team(db: Session, owner_id: str, name: str) -> Team:
        """Create a new root team owned by ``owner_id``."""
        team_repo = TeamRepository(db)
        with unit_of_work(db):
            team = team_repo.create(Team(name=name, owner_id=owner_id))
        logger.info(f"Team {team.id} created by user {owner_id}")
        return team

    @staticmethod
    def get_team(db: Session, team_id: int) -> Team:
        team = TeamRepository(db).get_by_id(team_id)
        if team is None:
            raise TeamNotFound(f"Team {team_id} not found")
        return team

    @staticmethod
    def require_manager(db: Session, team: Team, user_id: str) -> None:
        """
        Allow the team owner and the team's admins.

        Raises:
            PermissionDenied: For anyone else
        """
        if team.owner_id == user_id:
            return
        member = TeamMemberRepository(db).get_by_team_and_user(team.id, user_id)
        if member is None or member.role != TeamRole.ADMIN:
            raise PermissionDenied()

    @staticmethod
    def add_member(
        db: Session,
        team_id: int,
        actor_id: str,
        user_id: str,
        role: TeamRole = TeamRole.MEMBER,
    ) -> TeamMember:
        """
        Add a user to a team directly, without an invitation.

        Raises:
            ValueError: If the user has never been registered
            AlreadyTeamMember: If the user already belongs to a team
        """
        member_repo = TeamMemberRepository(db)
        team = TeamService.get_team(db, team_id)
        TeamService.require_manager(db, team, actor_id)
        if UserRepository(db).get_by_id(user_id) is None:
            raise ValueError(f"Unknown user {user_id}")

        existing = member_repo.get_by_user(user_id)
        if existing is not None:
            raise AlreadyTeamMember(
                f"User {user_id} already belongs to team {existing.team_id}"
            )

        with unit_of_work(db):
            member = member_repo.create(
                TeamMember(team_id=team_id, user_id=user_id, role=role)
            )
        logger.info(f"User {user_id} added to team {team_id} by {actor_id}")
        return member

    @staticmethod
    def get_member(db: Session, team_id: int, member_id: int) -> TeamMember:
        member = TeamMemberRepository(db).get_by_id(member_id)
        if member is None or member.team_id != team_id:
            raise MemberNotFound(f"Team member {member_id} not found in team {team_id}")
        return member

    @staticmethod
    def remove_member(db: Session, team_id: int, actor_id: str, member_id: int) -> None:
        """Delete a membership row."""
        team = TeamService.get_team(db, team_id)
        TeamService.require_manager(db, team, actor_id)
        member = TeamService.get_member(db, team_id, member_id)

        with unit_of_work(db):
            TeamMemberRepository(db).delete(member)
        logger.info(f"Member {member_id} removed from team {team_id} by {actor_id}")

    @staticmethod
    def update_member_limits(
        db: Session,
        team_id: int,
        actor_id: str,
        member_id: int,
        monthly_limit_cents=UNSET,
        rate_limit_rpm=UNSET,
    ) -> TeamMember:
        """
        Set or clear a member's own policy overrides.

        Pass None to clear an override so the value cascades again; leave an
        argument out to keep the current value.
        """
        _check_limit("monthly_limit_cents", monthly_limit_cents)
        _check_limit("rate_limit_rpm", rate_limit_rpm)
        team = TeamService.get_team(db, team_id)
        TeamService.require_manager(db, team, actor_id)
        member = TeamService.get_member(db, team_id, member_id)

        with unit_of_work(db):
            if monthly_limit_cents is not UNSET:
                member.monthly_limit_cents = monthly_limit_cents
            if rate_limit_rpm is not UNSET:
                member.rate_limit_rpm = rate_limit_rpm
            TeamMemberRepository(db).update(member)
        return member

    @staticmethod
    def set_team_defaults(
        db: Session,
        team_id: int,
        actor_id: str,
        default_monthly_limit_cents=UNSET,
        default_rate_limit_rpm=UNSET,
    ) -> Team:
        """Set or clear team-level defaults. Owner only."""
        _check_limit("default_monthly_limit_cents", default_monthly_limit_cents)
        _check_limit("default_rate_limit_rpm", default_rate_limit_rpm)
        team = TeamService.get_team(db, team_id)
        if team.owner_id != actor_id:
            raise PermissionDenied("Only the team owner can change team defaults")

        with unit_of_work(db):
            if default_monthly_limit_cents is not UNSET:
                team.default_monthly_limit_cents = default_monthly_limit_cents
            if default_rate_limit_rpm is not UNSET:
                team.default_rate_limit_rpm = default_rate_limit_rpm
            TeamRepository(db).update(team)
        return team
