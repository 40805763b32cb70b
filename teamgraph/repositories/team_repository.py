"""Team repository for database operations."""

from datetime import datetime
from typing import Optional, List, Iterable
from sqlalchemy.orm import Session
from sqlalchemy import func

from teamgraph.repositories.base_repository import BaseRepository
from teamgraph.models.team import Team, TeamMember


class TeamRepository(BaseRepository[Team]):
    """Repository for Team model operations."""

    def __init__(self, db: Session):
        """
        Initialize TeamRepository.

        Args:
            db: Database session
        """
        super().__init__(Team, db)

    def get_fresh(self, team_id: int) -> Optional[Team]:
        """Load a team, overwriting any copy already held by the session."""
        return (
            self.db.query(Team)
            .populate_existing()
            .filter(Team.id == team_id)
            .first()
        )

    def get_child_ids(self, team_ids: Iterable[int]) -> List[int]:
        """
        Get ids of teams whose parent is one of ``team_ids``.

        Args:
            team_ids: Parent team IDs

        Returns:
            List of child team IDs
        """
        team_ids = list(team_ids)
        if not team_ids:
            return []
        return [
            team_id
            for (team_id,) in self.db.query(Team.id)
            .filter(Team.parent_team_id.in_(team_ids))
            .order_by(Team.id)
            .all()
        ]

    def get_owned_teams(self, owner_id: str) -> List[Team]:
        """
        Get all teams owned by a user, oldest first.

        Args:
            owner_id: User ID

        Returns:
            List of teams
        """
        return (
            self.db.query(Team)
            .filter(Team.owner_id == owner_id)
            .order_by(Team.id)
            .all()
        )

    def get_owned_team_ids(self, owner_id: str) -> List[int]:
        return [team.id for team in self.get_owned_teams(owner_id)]

    def get_for_update(self, team_id: int) -> Optional[Team]:
        """Load a team with a row lock (ignored by SQLite)."""
        return (
            self.db.query(Team)
            .filter(Team.id == team_id)
            .with_for_update()
            .first()
        )

    def set_parent(self, team_id: int, parent_team_id: Optional[int]) -> None:
        """
        Point a team at a new parent.

        Args:
            team_id: Team to move
            parent_team_id: New parent, or None to make it a root
        """
        self.db.query(Team).filter(Team.id == team_id).update(
            {"parent_team_id": parent_team_id}, synchronize_session="fetch"
        )
        self.db.flush()

    def reparent_children(self, team_id: int, new_parent_id: Optional[int]) -> int:
        """
        Move every direct child of ``team_id`` under ``new_parent_id``.

        Returns:
            Number of teams moved
        """
        moved = self.db.query(Team).filter(Team.parent_team_id == team_id).update(
            {"parent_team_id": new_parent_id}, synchronize_session="fetch"
        )
        self.db.flush()
        return moved

    def adjust_shared_balance(self, team_id: int, delta_cents: int) -> Optional[int]:
        """
        Atomically add ``delta_cents`` to the shared balance.

        Returns:
            The new balance, or None if the team does not exist
        """
        updated = self.db.query(Team).filter(Team.id == team_id).update(
            {"shared_balance_cents": Team.shared_balance_cents + delta_cents},
            synchronize_session=False,
        )
        self.db.flush()
        if not updated:
            return None
        return (
            self.db.query(Team.shared_balance_cents)
            .filter(Team.id == team_id)
            .scalar()
        )


class TeamMemberRepository(BaseRepository[TeamMember]):
    """Repository for TeamMember model operations."""

    def __init__(self, db: Session):
        """
        Initialize TeamMemberRepository.

        Args:
            db: Database session
        """
        super().__init__(TeamMember, db)

    def get_by_user(self, user_id: str) -> Optional[TeamMember]:
        """
        Get the membership held by a user.

        Args:
            user_id: User ID

        Returns:
            TeamMember or None if the user belongs to no team
        """
        return self.db.query(TeamMember).filter(TeamMember.user_id == user_id).first()

    def get_by_user_for_update(self, user_id: str) -> Optional[TeamMember]:
        """Load a user's membership with a row lock (ignored by SQLite)."""
        return (
            self.db.query(TeamMember)
            .filter(TeamMember.user_id == user_id)
            .with_for_update()
            .first()
        )

    def get_by_team_and_user(
        self, team_id: int, user_id: str
    ) -> Optional[TeamMember]:
        """
        Get team member by team and user ID.

        Args:
            team_id: Team ID
            user_id: User ID

        Returns:
            TeamMember or None if not found
        """
        return (
            self.db.query(TeamMember)
            .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
            .first()
        )

    def get_team_members(self, team_id: int) -> List[TeamMember]:
        return (
            self.db.query(TeamMember)
            .filter(TeamMember.team_id == team_id)
            .order_by(TeamMember.id)
            .all()
        )

    def count_members(self, team_id: int, exclude_user_id: Optional[str] = None) -> int:
        """
        Count members in a team.

        Args:
            team_id: Team ID
            exclude_user_id: Optional user ID to exclude from count

        Returns:
            Number of members
        """
        query = self.db.query(func.count(TeamMember.id)).filter(
            TeamMember.team_id == team_id
        )
        if exclude_user_id:
            query = query.filter(TeamMember.user_id != exclude_user_id)
        return query.scalar()

    def reset_budget(
        self, member_id: int, observed_reset_at: datetime, next_reset_at: datetime
    ) -> bool:
        """
        Zero the monthly spend if the reset marker is still the one observed.

        Compare-and-set on ``budget_reset_at`` so two concurrent resets for the
        same period cannot both apply.

        Returns:
            True if this call performed the reset
        """
        updated = (
            self.db.query(TeamMember)
            .filter(
                TeamMember.id == member_id,
                TeamMember.budget_reset_at == observed_reset_at,
            )
            .update(
                {
                    "current_month_spend_cents": 0,
                    "budget_reset_at": next_reset_at,
                },
                synchronize_session=False,
            )
        )
        self.db.flush()
        return updated == 1

    def schedule_first_reset(self, member_id: int, next_reset_at: datetime) -> None:
        self.db.query(TeamMember).filter(
            TeamMember.id == member_id, TeamMember.budget_reset_at.is_(None)
        ).update({"budget_reset_at": next_reset_at}, synchronize_session=False)
        self.db.flush()

    def increment_spend(self, member_id: int, cost_cents: int) -> int:
        """
        Atomically add to the member's monthly spend.

        Returns:
            Spend after the increment
        """
        self.db.query(TeamMember).filter(TeamMember.id == member_id).update(
            {
                "current_month_spend_cents": TeamMember.current_month_spend_cents
                + cost_cents
            },
            synchronize_session=False,
        )
        self.db.flush()
        return (
            self.db.query(TeamMember.current_month_spend_cents)
            .filter(TeamMember.id == member_id)
            .scalar()
        )
