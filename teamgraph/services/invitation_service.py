"""Service for handling team invitation business logic."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teamgraph.core.exceptions import (
    AlreadyTeamMember,
    DuplicatePending,
    EmailMismatch,
    InvitationAlreadyProcessed,
    InvitationExpired,
    InvitationNotFound,
)
from teamgraph.db.session import unit_of_work
from teamgraph.models.invitation import InvitationStatus, TeamInvitation
from teamgraph.models.team import TeamRole
from teamgraph.repositories import (
    InvitationRepository,
    TeamMemberRepository,
    UserRepository,
)
from teamgraph.schemas.invitation import InvitationPublicOut, MigrationResult
from teamgraph.schemas.user import Identity
from teamgraph.services.hijack_guard import HijackGuard
from teamgraph.services.migration_engine import MigrationEngine
from teamgraph.services.team_service import TeamService
from teamgraph.utils.email import Notifier, default_notifier
from teamgraph.utils.invitation import (
    build_invitation_link,
    generate_invitation_token,
    invitation_expiry,
    normalize_email,
)
from teamgraph.utils.time import utcnow

logger = logging.getLogger(__name__)


class InvitationService:
    """Service for invitation-related operations."""

    @staticmethod
    def create_invitation(
        db: Session,
        team_id: int,
        inviter_id: str,
        email: str,
        role: TeamRole = TeamRole.MEMBER,
        notifier: Optional[Notifier] = None,
        now: Optional[datetime] = None,
    ) -> TeamInvitation:
        """
        Create a new team invitation and send the invite email.

        Args:
            db: Database session
            team_id: Inviting team
            inviter_id: User sending the invitation (owner or admin)
            email: Invitee email
            role: Role granted if acceptance creates a membership
            notifier: Email adapter; defaults to the configured one
            now: Current time, for tests

        Returns:
            Created TeamInvitation

        Raises:
            TeamNotFound, PermissionDenied: If the inviter may not invite
            AlreadyTeamMember: If the invitee is already on the team
            AntiHijackViolation: If the invitee owns an ancestor of the team
            DuplicatePending: If a pending invitation already exists
        """
        repo = InvitationRepository(db)
        now = now or utcnow()
        email = normalize_email(email)

        team = TeamService.get_team(db, team_id)
        TeamService.require_manager(db, team, inviter_id)

        invitee = UserRepository(db).get_by_email(email)
        if invitee is not None and TeamMemberRepository(db).get_by_team_and_user(
            team_id, invitee.id
        ):
            raise AlreadyTeamMember("This user is already a member of the team")

        HijackGuard.check(db, team_id, email)

        try:
            with unit_of_work(db):
                # Overdue rows still hold the pending slot until swept
                repo.expire_overdue(now, team_id=team_id)
                if repo.get_pending_by_team_and_email(team_id, email):
                    raise DuplicatePending()
                invitation = repo.create(
                    TeamInvitation(
                        team_id=team_id,
                        invited_by_id=inviter_id,
                        email=email,
                        role=role,
                        token=generate_invitation_token(),
                        status=InvitationStatus.PENDING,
                        created_at=now,
                        expires_at=invitation_expiry(now),
                    )
                )
        except IntegrityError:
            # Lost a race with a concurrent invite to the same address
            raise DuplicatePending() from None

        logger.info(f"Invitation {invitation.id} to team {team_id} created for {email}")
        InvitationService._notify(invitation, team.name, notifier)
        return invitation

    @staticmethod
    def _notify(invitation: TeamInvitation, team_name: str, notifier: Optional[Notifier]) -> None:
        """Send the invite email. Failures never undo the invitation."""
        notifier = notifier or default_notifier()
        inviter = invitation.inviter
        try:
            notifier.send_invitation(
                to_email=invitation.email,
                invite_link=build_invitation_link(invitation.token),
                team_name=team_name,
                inviter_name=inviter.full_name if inviter else None,
            )
        except Exception as e:
            logger.warning(f"Failed to send invitation {invitation.id} to {invitation.email}: {e}")

    @staticmethod
    def _get_or_raise(repo: InvitationRepository, token: str) -> TeamInvitation:
        invitation = repo.get_by_token(token)
        if not invitation:
            raise InvitationNotFound()
        return invitation

    @staticmethod
    def _ensure_pending(
        db: Session, repo: InvitationRepository, invitation: TeamInvitation, now: datetime
    ) -> None:
        """
        Reject invitations that can no longer be acted on, flipping an overdue
        PENDING row to EXPIRED on the way.
        """
        if invitation.status == InvitationStatus.EXPIRED:
            raise InvitationExpired()
        if invitation.status != InvitationStatus.PENDING:
            raise InvitationAlreadyProcessed(f"This invitation is {invitation.status.value.lower()}")
        if invitation.is_expired(now):
            with unit_of_work(db):
                repo.transition_from_pending(invitation.id, InvitationStatus.EXPIRED, now)
            raise InvitationExpired()

    @staticmethod
    def get_invitation_details(
        db: Session, token: str, now: Optional[datetime] = None
    ) -> InvitationPublicOut:
        """
        Get invitation details for public display.

        Raises:
            InvitationNotFound, InvitationExpired, InvitationAlreadyProcessed
        """
        repo = InvitationRepository(db)
        invitation = InvitationService._get_or_raise(repo, token)
        InvitationService._ensure_pending(db, repo, invitation, now or utcnow())

        return InvitationPublicOut(
            email=invitation.email,
            role=invitation.role,
            team_id=invitation.team_id,
            team_name=invitation.team.name if invitation.team else None,
            status=invitation.status,
            expires_at=invitation.expires_at,
            invited_by_name=invitation.inviter.full_name if invitation.inviter else None,
        )

    @staticmethod
    def accept_invitation(
        db: Session,
        token: str,
        identity: Identity,
        now: Optional[datetime] = None,
    ) -> MigrationResult:
        """
        Accept a team invitation and migrate the invitee.

        The token is re-validated first; every failure here is terminal for
        this token. The status claim and the migration then run as one unit
        of work.

        Args:
            db: Database session
            token: Invitation token
            identity: Authenticated user accepting the invitation
            now: Current time, for tests

        Returns:
            MigrationResult describing the change applied

        Raises:
            InvitationNotFound, InvitationExpired, InvitationAlreadyProcessed,
            EmailMismatch, AntiHijackViolation, AlreadyTeamMember
        """
        repo = InvitationRepository(db)
        now = now or utcnow()

        invitation = InvitationService._get_or_raise(repo, token)
        InvitationService._ensure_pending(db, repo, invitation, now)

        if normalize_email(identity.email) != invitation.email:
            logger.info(f"Invitation {invitation.id} presented by non-matching user {identity.user_id}")
            raise EmailMismatch()

        with unit_of_work(db):
            TeamService.ensure_user(db, identity.user_id, identity.email)
            result = MigrationEngine.apply(db, invitation, identity, now=now)

        logger.info(
            f"Invitation {invitation.id} accepted by user {identity.user_id} ({result.state})"
        )
        return result

    @staticmethod
    def revoke_invitation(
        db: Session, token: str, caller_team_id: int, now: Optional[datetime] = None
    ) -> TeamInvitation:
        """
        Revoke a pending invitation of the caller's team.

        Raises:
            InvitationNotFound: If the token does not belong to the team
            InvitationAlreadyProcessed: If the invitation already left PENDING
        """
        repo = InvitationRepository(db)
        invitation = repo.get_by_token(token)
        if invitation is None or invitation.team_id != caller_team_id:
            raise InvitationNotFound()

        with unit_of_work(db):
            revoked = repo.transition_from_pending(
                invitation.id, InvitationStatus.REVOKED, now or utcnow()
            )
            if not revoked:
                raise InvitationAlreadyProcessed()

        logger.info(f"Invitation {invitation.id} revoked by team {caller_team_id}")
        return invitation

    @staticmethod
    def list_team_invitations(
        db: Session,
        team_id: int,
        status: Optional[InvitationStatus] = None,
        skip: int = 0,
        limit: int = 100,
        now: Optional[datetime] = None,
    ) -> List[TeamInvitation]:
        """
        Get invitations for a team, sweeping overdue PENDING rows to EXPIRED first.
        """
        repo = InvitationRepository(db)
        with unit_of_work(db):
            expired = repo.expire_overdue(now or utcnow(), team_id=team_id)
        if expired:
            logger.info(f"Expired {expired} overdue invitation(s) of team {team_id}")
        return repo.get_team_invitations(team_id, status, skip, limit)
