"""Rejects invitations that would let a descendant team capture an ancestor."""
import logging

from sqlalchemy.orm import Session

from teamgraph.core.exceptions import AntiHijackViolation
from teamgraph.repositories import TeamRepository, UserRepository
from teamgraph.services.hierarchy_service import HierarchyService

logger = logging.getLogger(__name__)


class HijackGuard:
    """Anti-hijacking rule for invitations."""

    @staticmethod
    def check(db: Session, team_id: int, invitee_email: str) -> None:
        """
        Ensure the invitee owns neither ``team_id`` nor any of its ancestors.

        Accepting such an invitation would absorb an ancestor (or the team
        itself) under one of its own descendants.

        Raises:
            AntiHijackViolation: If the invitee owns an ancestor of ``team_id``
        """
        user = UserRepository(db).get_by_email(invitee_email)
        if user is None:
            return
        HijackGuard.check_user(db, team_id, user.id)

    @staticmethod
    def check_user(db: Session, team_id: int, user_id: str) -> None:
        owned_ids = set(TeamRepository(db).get_owned_team_ids(user_id))
        if not owned_ids:
            return

        chain = HierarchyService.get_ancestor_chain(db, team_id)
        hijacked = [team.id for team in chain if team.id in owned_ids]
        if hijacked:
            logger.info(
                f"Invitation to team {team_id} rejected: invitee {user_id} owns "
                f"team {hijacked[0]} on its ancestor chain"
            )
            raise AntiHijackViolation()
