"""
Per-member monthly spend tracking.

Usage arrives at least once and possibly out of order. Each event id is
inserted into ``usage_events`` in the same transaction as its spend
increment, so a replay fails on the primary key and changes nothing.
Enforcement is advisory: going over the limit only logs an overage signal.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teamgraph.core.exceptions import MemberNotFound
from teamgraph.db.session import unit_of_work
from teamgraph.repositories import (
    TeamMemberRepository,
    TeamRepository,
    UsageEventRepository,
)
from teamgraph.schemas.usage import UsageOutcome
from teamgraph.utils.time import ensure_utc, start_of_next_month, utcnow

logger = logging.getLogger(__name__)


class BudgetLedger:
    """Records usage against member budgets and team shared balances."""

    @staticmethod
    def record_usage(
        db: Session,
        user_id: str,
        cost_cents: int,
        event_id: str,
        now: Optional[datetime] = None,
    ) -> UsageOutcome:
        """
        Record one usage event, at most once per ``event_id``.

        Args:
            db: Database session
            user_id: Billed user
            cost_cents: Non-negative cost of the event
            event_id: Stable id of the event, used for deduplication
            now: Current time, for tests

        Returns:
            UsageOutcome with the spend after this event

        Raises:
            ValueError: If cost_cents is not a non-negative integer
            MemberNotFound: If the user neither holds a membership nor owns a team
        """
        if isinstance(cost_cents, bool) or not isinstance(cost_cents, int) or cost_cents < 0:
            raise ValueError("cost_cents must be a non-negative integer")
        now = ensure_utc(now) if now is not None else utcnow()

        try:
            with unit_of_work(db):
                outcome = BudgetLedger._apply(db, user_id, cost_cents, event_id, now)
        except IntegrityError:
            if UsageEventRepository(db).get_by_id(event_id) is None:
                raise
            logger.info(f"Usage event {event_id} already recorded, ignoring replay")
            return BudgetLedger.current_state(db, user_id, duplicate=True)

        if outcome.limit_exceeded:
            BudgetLedger._emit_overage(user_id, outcome)
        return outcome

    @staticmethod
    def _apply(
        db: Session, user_id: str, cost_cents: int, event_id: str, now: datetime
    ) -> UsageOutcome:
        member_repo = TeamMemberRepository(db)
        usage_repo = UsageEventRepository(db)

        member = member_repo.get_by_user_for_update(user_id)
        if member is None:
            return BudgetLedger._apply_owner_level(db, user_id, cost_cents, event_id)

        usage_repo.mark_processed(event_id, user_id, cost_cents, member_id=member.id)

        reset_at = member.budget_reset_at
        if reset_at is None:
            # First usage: schedule the first reset, nothing to zero yet
            member_repo.schedule_first_reset(member.id, start_of_next_month(now))
        elif ensure_utc(reset_at) <= now:
            # False means a concurrent event already reset this period
            member_repo.reset_budget(member.id, reset_at, start_of_next_month(now))

        spend = member_repo.increment_spend(member.id, cost_cents)
        limit = member.monthly_limit_cents
        return UsageOutcome(
            current_spend_cents=spend,
            limit_exceeded=limit is not None and spend > limit,
            member_id=member.id,
            monthly_limit_cents=limit,
        )

    @staticmethod
    def _apply_owner_level(
        db: Session, user_id: str, cost_cents: int, event_id: str
    ) -> UsageOutcome:
        """Owners have no member row; their usage draws on the shared balance."""
        team_repo = TeamRepository(db)
        owned = team_repo.get_owned_teams(user_id)
        if not owned:
            raise MemberNotFound(f"No team member or team owner for user {user_id}")
        team = owned[0]

        UsageEventRepository(db).mark_processed(
            event_id, user_id, cost_cents, team_id=team.id
        )
        balance = team_repo.adjust_shared_balance(team.id, -cost_cents)
        return UsageOutcome(
            current_spend_cents=0,
            owner_level=True,
            shared_balance_cents=balance,
        )

    @staticmethod
    def current_state(db: Session, user_id: str, duplicate: bool = False) -> UsageOutcome:
        """Ledger state for a user without recording anything."""
        member = TeamMemberRepository(db).get_by_user(user_id)
        if member is not None:
            spend = member.current_month_spend_cents
            limit = member.monthly_limit_cents
            return UsageOutcome(
                current_spend_cents=spend,
                limit_exceeded=limit is not None and spend > limit,
                duplicate=duplicate,
                member_id=member.id,
                monthly_limit_cents=limit,
            )

        owned = TeamRepository(db).get_owned_teams(user_id)
        if owned:
            return UsageOutcome(
                current_spend_cents=0,
                duplicate=duplicate,
                owner_level=True,
                shared_balance_cents=owned[0].shared_balance_cents,
            )
        return UsageOutcome(current_spend_cents=0, duplicate=duplicate)

    @staticmethod
    def _emit_overage(user_id: str, outcome: UsageOutcome) -> None:
        logger.warning(
            f"Budget overage for member {outcome.member_id}: monthly spend "
            f"{outcome.current_spend_cents} exceeds limit {outcome.monthly_limit_cents}",
            extra={
                "event": "budget_overage",
                "user_id": user_id,
                "member_id": outcome.member_id,
                "current_spend_cents": outcome.current_spend_cents,
                "monthly_limit_cents": outcome.monthly_limit_cents,
            },
        )
