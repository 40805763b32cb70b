"""
Tests for the team hierarchy queries and the guarded sub-team write.
"""
import pytest

from teamgraph.core.exceptions import CycleDetected, TeamNotFound
from teamgraph.models.team import Team
from teamgraph.services.hierarchy_service import HierarchyService


@pytest.fixture
def tree(factory):
    """
    root
    ├── a
    │   └── b
    └── c
    """
    owner = factory.user("owner")
    root = factory.team(owner, "root")
    a = factory.team(factory.user("alice"), "a", parent=root)
    b = factory.team(factory.user("bob"), "b", parent=a)
    c = factory.team(factory.user("carol"), "c", parent=root)
    return {"root": root.id, "a": a.id, "b": b.id, "c": c.id}


def _force_parent(db, team_id, parent_id):
    db.query(Team).filter(Team.id == team_id).update({"parent_team_id": parent_id})
    db.commit()


class TestAncestorChain:
    """Test root-first ancestor walks."""

    def test_chain_is_root_first_and_ends_with_team(self, db, tree):
        chain = HierarchyService.get_ancestor_chain(db, tree["b"])

        assert [t.id for t in chain] == [tree["root"], tree["a"], tree["b"]]

    def test_root_chain_is_itself(self, db, tree):
        chain = HierarchyService.get_ancestor_chain(db, tree["root"])

        assert [t.id for t in chain] == [tree["root"]]

    def test_chain_has_no_repeats(self, db, tree):
        ids = [t.id for t in HierarchyService.get_ancestor_chain(db, tree["b"])]

        assert len(ids) == len(set(ids))

    def test_unknown_team(self, db, tree):
        with pytest.raises(TeamNotFound):
            HierarchyService.get_ancestor_chain(db, 9999)

    def test_cycle_in_stored_data_is_reported(self, db, tree):
        _force_parent(db, tree["root"], tree["b"])

        with pytest.raises(CycleDetected):
            HierarchyService.get_ancestor_chain(db, tree["a"])

    def test_depth_bound(self, db, tree):
        with pytest.raises(CycleDetected):
            HierarchyService.get_ancestor_chain(db, tree["b"], max_depth=2)

    def test_reads_current_parent_not_cached_one(self, db, tree):
        HierarchyService.get_ancestor_chain(db, tree["b"])
        _force_parent(db, tree["b"], tree["c"])

        chain = HierarchyService.get_ancestor_chain(db, tree["b"])
        assert [t.id for t in chain] == [tree["root"], tree["c"], tree["b"]]


class TestDescendants:
    """Test descendant sets."""

    def test_descendants_of_root(self, db, tree):
        assert HierarchyService.get_descendant_set(db, tree["root"]) == {
            tree["a"],
            tree["b"],
            tree["c"],
        }

    def test_leaf_has_no_descendants(self, db, tree):
        assert HierarchyService.get_descendant_set(db, tree["b"]) == set()

    def test_descendants_exclude_team_itself(self, db, tree):
        assert tree["a"] not in HierarchyService.get_descendant_set(db, tree["a"])

    def test_cycle_below_team_is_reported(self, db, tree):
        _force_parent(db, tree["a"], tree["b"])

        with pytest.raises(CycleDetected):
            HierarchyService.get_descendant_set(db, tree["a"])

    def test_unknown_team(self, db, tree):
        with pytest.raises(TeamNotFound):
            HierarchyService.get_descendant_set(db, 9999)


class TestIsAncestorOf:
    def test_strict_ancestors(self, db, tree):
        assert HierarchyService.is_ancestor_of(db, tree["root"], tree["b"])
        assert HierarchyService.is_ancestor_of(db, tree["a"], tree["b"])

    def test_not_ancestor(self, db, tree):
        assert not HierarchyService.is_ancestor_of(db, tree["c"], tree["b"])
        assert not HierarchyService.is_ancestor_of(db, tree["b"], tree["a"])

    def test_team_is_not_its_own_ancestor(self, db, tree):
        assert not HierarchyService.is_ancestor_of(db, tree["a"], tree["a"])


class TestAttachSubteam:
    """Test the acyclicity guard on parent changes."""

    def test_attach_moves_team(self, db, tree):
        HierarchyService.attach_subteam(db, tree["c"], tree["b"])
        db.commit()

        chain = HierarchyService.get_ancestor_chain(db, tree["c"])
        assert [t.id for t in chain] == [tree["root"], tree["a"], tree["b"], tree["c"]]

    def test_attach_under_own_descendant_is_refused(self, db, tree):
        with pytest.raises(CycleDetected):
            HierarchyService.attach_subteam(db, tree["a"], tree["b"])
        db.rollback()

        assert db.get(Team, tree["a"]).parent_team_id == tree["root"]

    def test_attach_under_itself_is_refused(self, db, tree):
        with pytest.raises(CycleDetected):
            HierarchyService.attach_subteam(db, tree["c"], tree["c"])

    def test_attach_beyond_depth_bound_is_refused(self, db, tree, monkeypatch):
        from teamgraph.core.config import settings

        monkeypatch.setattr(settings, "HIERARCHY_MAX_DEPTH", 3)

        # c under b would make the chain root > a > b > c, four levels
        with pytest.raises(CycleDetected):
            HierarchyService.attach_subteam(db, tree["c"], tree["b"])

    def test_detach_children_moves_them_up(self, db, tree):
        moved = HierarchyService.detach_children(db, tree["a"], tree["root"])
        db.commit()

        assert moved == 1
        assert db.get(Team, tree["b"]).parent_team_id == tree["root"]
