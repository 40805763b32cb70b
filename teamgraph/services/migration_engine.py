"""
Membership migration on invitation acceptance.

The invitee's current situation is classified into exactly one
``InviteeState`` by ordered predicates (first match wins, later predicates
assume the earlier ones failed), and the matching handler performs the one
structural change for that state. The handler table must cover every state;
this is checked when the module is imported.

Nothing here commits. The caller wraps ``MigrationEngine.apply`` in a single
unit of work, so the status claim and the migration land together or not at
all.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from teamgraph.core.exceptions import AlreadyTeamMember, InvitationAlreadyProcessed
from teamgraph.models.invitation import InvitationStatus, TeamInvitation
from teamgraph.models.team import BillingProvider, Team, TeamMember
from teamgraph.repositories import (
    InvitationRepository,
    TeamMemberRepository,
    TeamRepository,
)
from teamgraph.schemas.invitation import MigrationResult
from teamgraph.schemas.user import Identity
from teamgraph.services.hierarchy_service import HierarchyService
from teamgraph.services.hijack_guard import HijackGuard
from teamgraph.utils.time import utcnow

logger = logging.getLogger(__name__)


class InviteeState(enum.Enum):
    NO_TEAM = "NO_TEAM"
    EMPTY_TEAM_NO_SUB = "EMPTY_TEAM_NO_SUB"
    EMPTY_TEAM_WITH_SUB = "EMPTY_TEAM_WITH_SUB"
    OWNS_TEAM_WITH_MEMBERS = "OWNS_TEAM_WITH_MEMBERS"
    MEMBER_ELSEWHERE = "MEMBER_ELSEWHERE"


@dataclass(frozen=True)
class InviteeFacts:
    """What the predicates look at, read once inside the transaction."""

    user_id: str
    owned_team: Optional[Team]
    other_member_count: int
    membership: Optional[TeamMember]


@dataclass(frozen=True)
class InviteeSituation:
    state: InviteeState
    facts: InviteeFacts


def _owns_empty_team(facts: InviteeFacts) -> bool:
    return facts.owned_team is not None and facts.other_member_count == 0


# Evaluated in order; first match wins.
_PREDICATES: Tuple[Tuple[InviteeState, Callable[[InviteeFacts], bool]], ...] = (
    (
        InviteeState.NO_TEAM,
        lambda f: f.owned_team is None and f.membership is None,
    ),
    (
        InviteeState.EMPTY_TEAM_NO_SUB,
        lambda f: _owns_empty_team(f) and not f.owned_team.holds_billing_state(),
    ),
    (
        # Also catches an empty team holding a balance, which is kept
        InviteeState.EMPTY_TEAM_WITH_SUB,
        _owns_empty_team,
    ),
    (
        InviteeState.OWNS_TEAM_WITH_MEMBERS,
        lambda f: f.owned_team is not None,
    ),
    (
        InviteeState.MEMBER_ELSEWHERE,
        lambda f: f.membership is not None,
    ),
)


class MigrationEngine:
    """Decides and applies the structural change for an accepted invitation."""

    @staticmethod
    def gather_facts(db: Session, user_id: str) -> InviteeFacts:
        team_repo = TeamRepository(db)
        member_repo = TeamMemberRepository(db)

        owned_teams = team_repo.get_owned_teams(user_id)
        # A user owning several teams is classified by the oldest one
        owned_team = owned_teams[0] if owned_teams else None
        other_member_count = (
            member_repo.count_members(owned_team.id, exclude_user_id=user_id)
            if owned_team is not None
            else 0
        )
        return InviteeFacts(
            user_id=user_id,
            owned_team=owned_team,
            other_member_count=other_member_count,
            membership=member_repo.get_by_user(user_id),
        )

    @staticmethod
    def classify(db: Session, user_id: str) -> InviteeSituation:
        """
        Classify the invitee's current membership situation.

        Args:
            db: Database session
            user_id: Invitee user ID

        Returns:
            The first matching state with the facts it was derived from
        """
        facts = MigrationEngine.gather_facts(db, user_id)
        for state, predicate in _PREDICATES:
            if predicate(facts):
                return InviteeSituation(state=state, facts=facts)
        # Unreachable: the last two predicates cover every remaining case
        raise RuntimeError(f"No invitee state matched for user {user_id}")

    @staticmethod
    def apply(
        db: Session,
        invitation: TeamInvitation,
        identity: Identity,
        now: Optional[datetime] = None,
    ) -> MigrationResult:
        """
        Claim the invitation and run the migration, inside the caller's
        unit of work.

        The claim is a conditional PENDING -> ACCEPTED update; of two racing
        acceptances only one matches a row, and the loser fails before any
        migration work starts.

        Raises:
            InvitationAlreadyProcessed: If another acceptance won the claim
            AntiHijackViolation: If the hierarchy changed since the invite
                was created so that accepting would capture an ancestor
            AlreadyTeamMember: If the invitee is already on the inviting team
            CycleDetected: If sub-team absorption would create a cycle
        """
        claimed = InvitationRepository(db).transition_from_pending(
            invitation.id,
            InvitationStatus.ACCEPTED,
            responded_at=now or utcnow(),
            accepted_by_id=identity.user_id,
        )
        if not claimed:
            logger.info(f"Invitation {invitation.id} lost the acceptance race")
            raise InvitationAlreadyProcessed()

        HijackGuard.check_user(db, invitation.team_id, identity.user_id)

        situation = MigrationEngine.classify(db, identity.user_id)
        logger.info(
            f"Accepting invitation {invitation.id} for user {identity.user_id}: "
            f"{situation.state.value}"
        )
        handler = _HANDLERS[situation.state]
        return handler(db, invitation, situation)


def _join_team(
    db: Session,
    user_id: str,
    invitation: TeamInvitation,
    billing_provider: BillingProvider = BillingProvider.TEAM_OWNER,
    is_unlimited: bool = False,
    external_subscription_ref: Optional[str] = None,
) -> TeamMember:
    """Create the invitee's membership in the inviting team, replacing any other."""
    member_repo = TeamMemberRepository(db)
    existing = member_repo.get_by_user(user_id)
    if existing is not None:
        if existing.team_id == invitation.team_id:
            raise AlreadyTeamMember()
        logger.info(f"Removing membership of user {user_id} in team {existing.team_id}")
        member_repo.delete(existing)

    return member_repo.create(
        TeamMember(
            team_id=invitation.team_id,
            user_id=user_id,
            role=invitation.role,
            billing_provider=billing_provider,
            is_unlimited=is_unlimited,
            external_subscription_ref=external_subscription_ref,
        )
    )


def _handle_no_team(db, invitation, situation) -> MigrationResult:
    member = _join_team(db, situation.facts.user_id, invitation)
    return MigrationResult(
        state=situation.state.value,
        invitation_id=invitation.id,
        team_id=invitation.team_id,
        member_id=member.id,
    )


def _handle_empty_team_no_sub(db, invitation, situation) -> MigrationResult:
    facts = situation.facts
    owned = facts.owned_team
    if facts.membership is not None and facts.membership.team_id == invitation.team_id:
        raise AlreadyTeamMember()

    dissolved_id = owned.id
    # Invitation rows outlive the team with a NULL team_id; none may stay open
    revoked = InvitationRepository(db).revoke_pending_for_team(dissolved_id, utcnow())
    HierarchyService.detach_children(db, dissolved_id, owned.parent_team_id)
    TeamRepository(db).delete(owned)
    logger.info(
        f"Dissolved empty team {dissolved_id} of user {facts.user_id}, "
        f"revoked {revoked} pending invitations"
    )

    member = _join_team(db, facts.user_id, invitation)
    return MigrationResult(
        state=situation.state.value,
        invitation_id=invitation.id,
        team_id=invitation.team_id,
        member_id=member.id,
        dissolved_team_id=dissolved_id,
    )


def _handle_empty_team_with_sub(db, invitation, situation) -> MigrationResult:
    owned = situation.facts.owned_team
    # Keep the invitee's own payment arrangement instead of cancelling it
    member = _join_team(
        db,
        situation.facts.user_id,
        invitation,
        billing_provider=BillingProvider.SELF,
        is_unlimited=owned.is_unlimited,
        external_subscription_ref=owned.external_subscription_ref,
    )
    return MigrationResult(
        state=situation.state.value,
        invitation_id=invitation.id,
        team_id=invitation.team_id,
        member_id=member.id,
    )


def _handle_owns_team_with_members(db, invitation, situation) -> MigrationResult:
    owned = situation.facts.owned_team
    # Re-checks acyclicity against the current tree in this transaction
    HierarchyService.attach_subteam(db, owned.id, invitation.team_id)
    return MigrationResult(
        state=situation.state.value,
        invitation_id=invitation.id,
        team_id=invitation.team_id,
        absorbed_team_id=owned.id,
    )


def _handle_member_elsewhere(db, invitation, situation) -> MigrationResult:
    member = _join_team(db, situation.facts.user_id, invitation)
    return MigrationResult(
        state=situation.state.value,
        invitation_id=invitation.id,
        team_id=invitation.team_id,
        member_id=member.id,
    )


_HANDLERS: Dict[InviteeState, Callable[..., MigrationResult]] = {
    InviteeState.NO_TEAM: _handle_no_team,
    InviteeState.EMPTY_TEAM_NO_SUB: _handle_empty_team_no_sub,
    InviteeState.EMPTY_TEAM_WITH_SUB: _handle_empty_team_with_sub,
    InviteeState.OWNS_TEAM_WITH_MEMBERS: _handle_owns_team_with_members,
    InviteeState.MEMBER_ELSEWHERE: _handle_member_elsewhere,
}

_unhandled = (set(InviteeState) - set(_HANDLERS)) | (
    set(InviteeState) - {state for state, _ in _PREDICATES}
)
if _unhandled:
    raise RuntimeError(f"No predicate or handler for states: {sorted(s.value for s in _unhandled)}")
