"""
Tests for monthly spend tracking, budget resets and usage deduplication.
"""
import logging
from datetime import datetime, timezone

import pytest

from teamgraph.core.exceptions import MemberNotFound
from teamgraph.models.team import Team, TeamMember
from teamgraph.models.usage_event import UsageEvent
from teamgraph.repositories import TeamMemberRepository
from teamgraph.services.budget_ledger import BudgetLedger
from teamgraph.utils.time import ensure_utc, start_of_next_month


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def member(factory):
    team = factory.team(factory.user("boss"), "Ops")
    return factory.member(team, factory.user("dev"), monthly_limit_cents=500)


class TestStartOfNextMonth:
    """Test the monthly reset boundary."""

    def test_mid_month(self):
        assert start_of_next_month(utc(2024, 11, 15, 9, 30)) == utc(2024, 12, 1)

    def test_december_rolls_into_next_year(self):
        assert start_of_next_month(utc(2024, 12, 31, 23, 59)) == utc(2025, 1, 1)

    def test_leap_february(self):
        assert start_of_next_month(utc(2024, 2, 29, 12)) == utc(2024, 3, 1)

    def test_end_of_long_month(self):
        assert start_of_next_month(utc(2025, 1, 31)) == utc(2025, 2, 1)

    def test_naive_input_is_treated_as_utc(self):
        assert start_of_next_month(datetime(2024, 6, 10)) == utc(2024, 7, 1)


class TestRecordUsage:
    """Test spend accumulation and resets."""

    def test_first_usage_schedules_reset(self, db, member):
        outcome = BudgetLedger.record_usage(db, "dev", 120, "evt-1", now=utc(2024, 11, 15))

        assert outcome.current_spend_cents == 120
        assert not outcome.limit_exceeded
        db.refresh(member)
        assert ensure_utc(member.budget_reset_at) == utc(2024, 12, 1)

    def test_usage_accumulates(self, db, member):
        now = utc(2024, 11, 15)
        BudgetLedger.record_usage(db, "dev", 100, "evt-1", now=now)
        outcome = BudgetLedger.record_usage(db, "dev", 50, "evt-2", now=now)

        assert outcome.current_spend_cents == 150

    def test_overage_is_flagged_and_logged(self, db, factory, caplog):
        team = factory.team(factory.user("boss"), "Ops")
        factory.member(
            team,
            factory.user("dev"),
            monthly_limit_cents=500,
            current_month_spend_cents=450,
            budget_reset_at=utc(2024, 12, 1),
        )

        with caplog.at_level(logging.WARNING, logger="teamgraph.services.budget_ledger"):
            outcome = BudgetLedger.record_usage(db, "dev", 100, "evt-9", now=utc(2024, 11, 20))

        assert outcome.current_spend_cents == 550
        assert outcome.limit_exceeded
        assert "Budget overage" in caplog.text

    def test_usage_is_still_recorded_past_limit(self, db, member):
        now = utc(2024, 11, 15)
        BudgetLedger.record_usage(db, "dev", 600, "evt-1", now=now)
        outcome = BudgetLedger.record_usage(db, "dev", 10, "evt-2", now=now)

        assert outcome.current_spend_cents == 610
        assert outcome.limit_exceeded

    def test_no_limit_is_never_exceeded(self, db, factory):
        team = factory.team(factory.user("boss"), "Ops")
        factory.member(team, factory.user("dev"))

        outcome = BudgetLedger.record_usage(db, "dev", 10**6, "evt-1", now=utc(2024, 11, 1))

        assert not outcome.limit_exceeded

    def test_overdue_reset_zeroes_spend_first(self, db, factory):
        team = factory.team(factory.user("boss"), "Ops")
        member = factory.member(
            team,
            factory.user("dev"),
            current_month_spend_cents=480,
            budget_reset_at=utc(2024, 11, 1),
        )

        outcome = BudgetLedger.record_usage(db, "dev", 30, "evt-1", now=utc(2024, 11, 3))

        assert outcome.current_spend_cents == 30
        db.refresh(member)
        assert ensure_utc(member.budget_reset_at) == utc(2024, 12, 1)

    def test_december_reset_moves_to_january(self, db, factory):
        team = factory.team(factory.user("boss"), "Ops")
        member = factory.member(
            team, factory.user("dev"), current_month_spend_cents=5, budget_reset_at=utc(2024, 12, 1)
        )

        BudgetLedger.record_usage(db, "dev", 1, "evt-1", now=utc(2024, 12, 24))

        db.refresh(member)
        assert ensure_utc(member.budget_reset_at) == utc(2025, 1, 1)
        assert member.current_month_spend_cents == 1

    def test_zero_cost_is_allowed(self, db, member):
        outcome = BudgetLedger.record_usage(db, "dev", 0, "evt-1", now=utc(2024, 11, 15))

        assert outcome.current_spend_cents == 0

    @pytest.mark.parametrize("cost", [-1, 1.5, "10", True])
    def test_invalid_cost(self, db, member, cost):
        with pytest.raises(ValueError):
            BudgetLedger.record_usage(db, "dev", cost, "evt-1")

    def test_unknown_user(self, db, member):
        with pytest.raises(MemberNotFound):
            BudgetLedger.record_usage(db, "ghost", 10, "evt-1")

        assert db.query(UsageEvent).count() == 0


class TestIdempotency:
    """Test at-least-once delivery handling."""

    def test_replay_is_ignored(self, db, member):
        now = utc(2024, 11, 15)
        first = BudgetLedger.record_usage(db, "dev", 200, "evt-1", now=now)
        replay = BudgetLedger.record_usage(db, "dev", 200, "evt-1", now=now)

        assert first.current_spend_cents == 200
        assert replay.current_spend_cents == 200
        assert replay.duplicate
        assert db.query(UsageEvent).count() == 1

    def test_out_of_order_events_all_count(self, db, member):
        now = utc(2024, 11, 15)
        for event_id in ("evt-3", "evt-1", "evt-2"):
            BudgetLedger.record_usage(db, "dev", 10, event_id, now=now)
        BudgetLedger.record_usage(db, "dev", 10, "evt-2", now=now)

        db.refresh(member)
        assert member.current_month_spend_cents == 30

    def test_stale_reset_marker_does_not_zero_spend(self, db, factory):
        team = factory.team(factory.user("boss"), "Ops")
        member = factory.member(
            team, factory.user("dev"), current_month_spend_cents=480, budget_reset_at=utc(2024, 11, 1)
        )
        repo = TeamMemberRepository(db)

        assert repo.reset_budget(member.id, utc(2024, 11, 1), utc(2024, 12, 1)) is True
        repo.increment_spend(member.id, 40)
        # A second resetter that read the same marker lost the race
        assert repo.reset_budget(member.id, utc(2024, 11, 1), utc(2024, 12, 1)) is False
        db.commit()

        db.refresh(member)
        assert member.current_month_spend_cents == 40
        assert ensure_utc(member.budget_reset_at) == utc(2024, 12, 1)


class TestOwnerLevelUsage:
    """Test usage by team owners, who hold no member row."""

    def test_owner_usage_draws_on_shared_balance(self, db, factory):
        owner = factory.user("boss")
        team = factory.team(owner, "Ops", shared_balance_cents=1000)

        outcome = BudgetLedger.record_usage(db, "boss", 250, "evt-1", now=utc(2024, 11, 15))

        assert outcome.owner_level
        assert outcome.shared_balance_cents == 750
        db.refresh(team)
        assert team.shared_balance_cents == 750

    def test_owner_replay_debits_once(self, db, factory):
        team = factory.team(factory.user("boss"), "Ops", shared_balance_cents=1000)

        BudgetLedger.record_usage(db, "boss", 250, "evt-1")
        replay = BudgetLedger.record_usage(db, "boss", 250, "evt-1")

        assert replay.duplicate
        assert db.get(Team, team.id).shared_balance_cents == 750
        assert db.query(TeamMember).count() == 0
