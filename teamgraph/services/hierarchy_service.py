"""
Hierarchy index over the team tree.

Every query reads the persisted ``parent_team_id`` edges at call time;
nothing is cached between calls because concurrent writers may have moved
teams in the meantime. The bounded walks are the only cycle detector.
"""
import logging
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from teamgraph.core.config import settings
from teamgraph.core.exceptions import CycleDetected, TeamNotFound
from teamgraph.models.team import Team
from teamgraph.repositories import TeamRepository

logger = logging.getLogger(__name__)


class HierarchyService:
    """Ancestor/descendant queries and the guarded sub-team write."""

    @staticmethod
    def _max_depth(max_depth: Optional[int]) -> int:
        return max_depth if max_depth is not None else settings.HIERARCHY_MAX_DEPTH

    @staticmethod
    def get_ancestor_chain(
        db: Session, team_id: int, max_depth: Optional[int] = None
    ) -> List[Team]:
        """
        Get the chain of teams from the root down to ``team_id``.

        Args:
            db: Database session
            team_id: Team ID
            max_depth: Override for the configured depth bound

        Returns:
            Teams ordered root first, ending with ``team_id`` itself

        Raises:
            TeamNotFound: If ``team_id`` does not exist
            CycleDetected: If the walk revisits a team or exceeds the bound
        """
        team_repo = TeamRepository(db)
        limit = HierarchyService._max_depth(max_depth)

        chain: List[Team] = []
        seen: Set[int] = set()
        current_id = team_id
        while current_id is not None:
            if current_id in seen or len(chain) >= limit:
                logger.error(
                    f"Cycle or depth overflow in team hierarchy starting at team {team_id} "
                    f"(visited {len(chain)} teams, stopped at {current_id})"
                )
                raise CycleDetected(
                    f"Team hierarchy above team {team_id} is cyclic or deeper than {limit}"
                )
            team = team_repo.get_fresh(current_id)
            if team is None:
                if current_id == team_id:
                    raise TeamNotFound(f"Team {team_id} not found")
                # Dangling parent reference; the foreign key should prevent it
                logger.error(f"Team {chain[-1].id} points at missing parent {current_id}")
                raise CycleDetected(f"Team hierarchy above team {team_id} is broken")
            seen.add(current_id)
            chain.append(team)
            current_id = team.parent_team_id

        chain.reverse()
        return chain

    @staticmethod
    def get_descendant_set(
        db: Session, team_id: int, max_depth: Optional[int] = None
    ) -> Set[int]:
        """
        Get ids of every team below ``team_id``, excluding ``team_id``.

        Breadth-first, one query per level.

        Raises:
            TeamNotFound: If ``team_id`` does not exist
            CycleDetected: If a team is reached twice or the bound is exceeded
        """
        team_repo = TeamRepository(db)
        limit = HierarchyService._max_depth(max_depth)
        if team_repo.get_by_id(team_id) is None:
            raise TeamNotFound(f"Team {team_id} not found")

        descendants: Set[int] = set()
        frontier = [team_id]
        depth = 0
        while frontier:
            children = team_repo.get_child_ids(frontier)
            if not children:
                break
            depth += 1
            if depth > limit:
                logger.error(f"Descendant walk below team {team_id} exceeded depth {limit}")
                raise CycleDetected(
                    f"Team hierarchy below team {team_id} is deeper than {limit}"
                )
            for child_id in children:
                if child_id == team_id or child_id in descendants:
                    logger.error(f"Team {child_id} reached twice below team {team_id}")
                    raise CycleDetected(f"Team hierarchy below team {team_id} is cyclic")
                descendants.add(child_id)
            frontier = children

        return descendants

    @staticmethod
    def is_ancestor_of(
        db: Session, candidate_ancestor_id: int, team_id: int
    ) -> bool:
        """True if ``candidate_ancestor_id`` is a strict ancestor of ``team_id``."""
        chain = HierarchyService.get_ancestor_chain(db, team_id)
        return any(team.id == candidate_ancestor_id for team in chain[:-1])

    @staticmethod
    def attach_subteam(db: Session, child_team_id: int, parent_team_id: int) -> Team:
        """
        Make ``child_team_id`` a child of ``parent_team_id``.

        Must run inside the caller's unit of work: the acyclicity check reads
        the current persisted chain of the new parent, and the write follows
        it in the same transaction. Flushes, never commits.

        Raises:
            CycleDetected: If the move would create a cycle or exceed the bound
        """
        team_repo = TeamRepository(db)
        child = team_repo.get_for_update(child_team_id)
        if child is None:
            raise TeamNotFound(f"Team {child_team_id} not found")

        parent_chain = HierarchyService.get_ancestor_chain(db, parent_team_id)
        if any(team.id == child_team_id for team in parent_chain):
            logger.error(
                f"Refusing to attach team {child_team_id} under {parent_team_id}: "
                f"team {child_team_id} is already above it"
            )
            raise CycleDetected(
                f"Attaching team {child_team_id} under team {parent_team_id} would create a cycle"
            )

        subtree_height = HierarchyService._subtree_height(db, child_team_id)
        limit = settings.HIERARCHY_MAX_DEPTH
        if len(parent_chain) + subtree_height > limit:
            logger.error(
                f"Refusing to attach team {child_team_id} under {parent_team_id}: "
                f"depth would exceed {limit}"
            )
            raise CycleDetected(
                f"Attaching team {child_team_id} under team {parent_team_id} exceeds depth {limit}"
            )

        team_repo.set_parent(child_team_id, parent_team_id)
        logger.info(f"Team {child_team_id} attached under team {parent_team_id}")
        return child

    @staticmethod
    def _subtree_height(db: Session, team_id: int) -> int:
        """Number of levels in the subtree rooted at ``team_id`` (1 for a leaf)."""
        team_repo = TeamRepository(db)
        height = 1
        frontier = [team_id]
        seen = {team_id}
        while True:
            children = team_repo.get_child_ids(frontier)
            if not children:
                return height
            if seen.intersection(children) or height >= settings.HIERARCHY_MAX_DEPTH:
                raise CycleDetected(f"Team hierarchy below team {team_id} is corrupt")
            seen.update(children)
            frontier = children
            height += 1

    @staticmethod
    def detach_children(db: Session, team_id: int, new_parent_id: Optional[int]) -> int:
        """Re-parent the direct children of a team that is about to be removed."""
        moved = TeamRepository(db).reparent_children(team_id, new_parent_id)
        if moved:
            logger.info(
                f"Moved {moved} child team(s) of team {team_id} under {new_parent_id or 'root'}"
            )
        return moved
