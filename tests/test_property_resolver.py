"""
Tests for cascading policy values.
"""
import pytest

from teamgraph.core.exceptions import MemberNotFound, UnknownProperty
from teamgraph.services.property_resolver import PROPERTIES, PropertyResolver


@pytest.fixture
def chain(factory):
    """root > mid > leaf, with one member in leaf."""
    root = factory.team(factory.user("root-owner"), "root")
    mid = factory.team(factory.user("mid-owner"), "mid", parent=root)
    leaf = factory.team(factory.user("leaf-owner"), "leaf", parent=mid)
    member = factory.member(leaf, factory.user("dev"))
    return {"root": root, "mid": mid, "leaf": leaf, "member": member}


class TestPropertyResolver:
    """Test member override, then ancestor defaults, then system default."""

    def test_system_defaults(self, db, chain):
        member_id = chain["member"].id

        assert PropertyResolver.resolve(db, member_id, "rate_limit_rpm") == 0
        assert PropertyResolver.resolve(db, member_id, "monthly_limit_cents") is None

    def test_member_override_wins(self, db, chain):
        chain["root"].default_rate_limit_rpm = 10
        chain["leaf"].default_rate_limit_rpm = 20
        chain["member"].rate_limit_rpm = 99
        db.commit()

        assert PropertyResolver.resolve(db, chain["member"].id, "rate_limit_rpm") == 99

    def test_explicit_zero_override_is_honored(self, db, chain):
        chain["leaf"].default_monthly_limit_cents = 5000
        chain["member"].monthly_limit_cents = 0
        db.commit()

        assert PropertyResolver.resolve(db, chain["member"].id, "monthly_limit_cents") == 0

    def test_root_most_default_wins(self, db, chain):
        chain["root"].default_monthly_limit_cents = 1000
        chain["mid"].default_monthly_limit_cents = 2000
        chain["leaf"].default_monthly_limit_cents = 3000
        db.commit()

        assert PropertyResolver.resolve(db, chain["member"].id, "monthly_limit_cents") == 1000

    def test_first_configured_team_on_chain(self, db, chain):
        chain["mid"].default_rate_limit_rpm = 60
        chain["leaf"].default_rate_limit_rpm = 30
        db.commit()

        assert PropertyResolver.resolve(db, chain["member"].id, "rate_limit_rpm") == 60

    def test_camel_case_alias(self, db, chain):
        chain["member"].rate_limit_rpm = 42
        db.commit()

        assert PropertyResolver.resolve(db, chain["member"].id, "rateLimitRpm") == 42

    def test_unknown_property(self, db, chain):
        with pytest.raises(UnknownProperty):
            PropertyResolver.resolve(db, chain["member"].id, "favourite_colour")

    def test_unknown_member(self, db, chain):
        with pytest.raises(MemberNotFound):
            PropertyResolver.resolve(db, 9999, "rate_limit_rpm")

    def test_resolution_is_deterministic(self, db, chain):
        chain["mid"].default_monthly_limit_cents = 700
        db.commit()

        first = PropertyResolver.resolve_all(db, chain["member"].id)
        second = PropertyResolver.resolve_all(db, chain["member"].id)
        assert first == second == {"rate_limit_rpm": 0, "monthly_limit_cents": 700}

    def test_resolve_all_covers_every_property(self, db, chain):
        assert set(PropertyResolver.resolve_all(db, chain["member"].id)) == set(PROPERTIES)
