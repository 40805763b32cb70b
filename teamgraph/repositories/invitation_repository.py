"""Repository for team invitation operations."""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session

from teamgraph.models.invitation import TeamInvitation, InvitationStatus
from teamgraph.repositories.base_repository import BaseRepository


class InvitationRepository(BaseRepository[TeamInvitation]):
    """Repository for TeamInvitation database operations."""

    def __init__(self, db: Session):
        """Initialize InvitationRepository."""
        super().__init__(TeamInvitation, db)

    def get_by_token(self, token: str) -> Optional[TeamInvitation]:
        """
        Get invitation by token.

        Args:
            token: Invitation token

        Returns:
            TeamInvitation or None
        """
        return (
            self.db.query(TeamInvitation)
            .filter(TeamInvitation.token == token)
            .first()
        )

    def get_pending_by_team_and_email(
        self, team_id: int, email: str
    ) -> Optional[TeamInvitation]:
        """
        Get the pending invitation for a team and email, if any.

        Args:
            team_id: Team ID
            email: Normalized invitee email

        Returns:
            TeamInvitation or None
        """
        return (
            self.db.query(TeamInvitation)
            .filter(
                and_(
                    TeamInvitation.team_id == team_id,
                    TeamInvitation.email == email,
                    TeamInvitation.status == InvitationStatus.PENDING,
                )
            )
            .first()
        )

    def get_team_invitations(
        self,
        team_id: int,
        status: Optional[InvitationStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[TeamInvitation]:
        """
        Get invitations for a team, newest first.

        Args:
            team_id: Team ID
            status: Optional status filter
            skip: Number of records to skip
            limit: Maximum number of records

        Returns:
            List of invitations
        """
        query = self.db.query(TeamInvitation).filter(TeamInvitation.team_id == team_id)

        if status:
            query = query.filter(TeamInvitation.status == status)

        return (
            query.order_by(TeamInvitation.created_at.desc(), TeamInvitation.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def transition_from_pending(
        self,
        invitation_id: int,
        new_status: InvitationStatus,
        responded_at: datetime,
        accepted_by_id: Optional[str] = None,
    ) -> bool:
        """
        Move an invitation out of PENDING, exactly once.

        The status check is part of the UPDATE itself, so among concurrent
        callers only one sees a matched row.

        Returns:
            True if this call performed the transition
        """
        values = {"status": new_status, "responded_at": responded_at}
        if accepted_by_id is not None:
            values["accepted_by_id"] = accepted_by_id
        updated = (
            self.db.query(TeamInvitation)
            .filter(
                TeamInvitation.id == invitation_id,
                TeamInvitation.status == InvitationStatus.PENDING,
            )
            .update(values, synchronize_session="fetch")
        )
        self.db.flush()
        return updated == 1

    def expire_overdue(self, now: datetime, team_id: Optional[int] = None) -> int:
        """
        Flip every overdue PENDING invitation to EXPIRED.

        Args:
            now: Current time
            team_id: Optionally restrict the sweep to one team

        Returns:
            Number of invitations expired
        """
        query = self.db.query(TeamInvitation).filter(
            TeamInvitation.status == InvitationStatus.PENDING,
            TeamInvitation.expires_at <= now,
        )
        if team_id is not None:
            query = query.filter(TeamInvitation.team_id == team_id)
        expired = query.update(
            {"status": InvitationStatus.EXPIRED, "responded_at": now},
            synchronize_session="fetch",
        )
        self.db.flush()
        return expired

    def revoke_pending_for_team(self, team_id: int, now: datetime) -> int:
        """
        Revoke every PENDING invitation of a team.

        Args:
            team_id: Team ID
            now: Time recorded as the response time

        Returns:
            Number of invitations revoked
        """
        revoked = (
            self.db.query(TeamInvitation)
            .filter(
                TeamInvitation.team_id == team_id,
                TeamInvitation.status == InvitationStatus.PENDING,
            )
            .update(
                {"status": InvitationStatus.REVOKED, "responded_at": now},
                synchronize_session="fetch",
            )
        )
        self.db.flush()
        return revoked
