import random
import threading

import pytest

from app.core.exceptions import (
    GenerationCancelledError,
    InfeasibleError,
    InvalidConstraintError,
    ItemError,
    SessionNotFoundError,
)
from app.services.grouping_session import Combination, GroupingSession, SessionRegistry


@pytest.fixture
def session(six_names):
    grouping = GroupingSession()
    for name in six_names:
        grouping.add_item(name)
    return grouping


def test_add_item_normalizes_and_rejects_duplicates():
    grouping = GroupingSession()
    assert grouping.add_item("  Alice ") == "alice"
    with pytest.raises(ItemError):
        grouping.add_item("ALICE")
    with pytest.raises(ItemError):
        grouping.add_item("   ")
    assert grouping.items == ["alice"]


def test_item_limit():
    grouping = GroupingSession(max_items=2)
    grouping.add_item("a")
    grouping.add_item("b")
    with pytest.raises(ItemError):
        grouping.add_item("c")


def test_remove_item_drops_its_restrictions(session):
    session.add_constraint("alice", "bob")
    session.add_constraint("carol", "dave")
    removed = session.remove_item("Bob")
    assert [(pair.first, pair.second) for pair in removed] == [("alice", "bob")]
    assert [(pair.first, pair.second) for pair in session.constraints] == [("carol", "dave")]
    assert "bob" not in session.items


def test_remove_unknown_item(session):
    with pytest.raises(ItemError):
        session.remove_item("zed")


def test_group_size_is_clamped(session):
    assert session.set_group_size(10) == 3
    assert session.increment_group_size() == 3
    assert session.set_group_size(0) == 2
    assert session.decrement_group_size() == 2


def test_constraint_must_name_session_items(session):
    with pytest.raises(InvalidConstraintError):
        session.add_constraint("alice", "zed")
    with pytest.raises(InvalidConstraintError):
        session.add_constraint("alice", "alice")
    assert session.add_constraint("alice", "bob") is True
    assert session.add_constraint("bob", "alice") is False


def test_partner_candidates_exclude_existing_restrictions(session):
    session.add_constraint("alice", "bob")
    assert session.partner_candidates("alice") == ["carol", "dave", "erin", "frank"]
    assert session.partner_candidates("zed") == []


def test_feasibility_with_no_items_reports_nothing_missing():
    report = GroupingSession().feasibility()
    assert report.feasible is False
    assert report.missing_count == 0
    assert report.possible_groups == 0


def test_feasibility_tracks_items(session):
    session.set_group_size(3)
    session.add_item("gina")
    report = session.feasibility()
    assert report.feasible is False
    assert report.missing_count == 2
    assert report.possible_groups == 2


def test_any_input_change_invalidates_result(session):
    session.generate("exhaustive")
    assert session.result is not None
    revision = session.revision

    session.add_constraint("alice", "bob")
    assert session.result is None
    assert session.revision == revision + 1

    session.generate("exhaustive")
    session.set_group_size(3)
    assert session.result is None

    session.generate("exhaustive")
    session.remove_constraint(0)
    assert session.result is None


def test_noop_changes_keep_result(session):
    session.add_constraint("alice", "bob")
    session.generate("exhaustive")
    session.add_constraint("bob", "alice")
    session.set_group_size(2)
    session.remove_constraint(7)
    assert session.result is not None


def test_exhaustive_generation_and_paging(session):
    session.add_constraint("alice", "bob")
    result = session.generate("exhaustive")
    assert result.enumeration.count == 12
    assert session.cursor == 0

    first = session.current_combination()
    assert first == Combination(index=0, total=12, groups=result.partitions[0])
    assert session.move_cursor(-1) == first
    assert session.move_cursor(1).groups == result.partitions[1]
    last = session.move_cursor(100)
    assert (last.index, last.groups) == (11, result.partitions[-1])
    assert session.cursor == 11


def test_repair_generation(session):
    session.add_constraint("alice", "bob")
    result = session.generate("repair", rng=random.Random(5))
    assert result.mode == "repair"
    assert result.repair.violation_count == 0
    assert session.current_combination() == Combination(index=0, total=1, groups=result.repair.partition)


def test_combination_read_waits_for_pending_change(session):
    session.generate("exhaustive")
    seen = []
    reader = threading.Thread(target=lambda: seen.append(session.current_combination()))

    with session._lock:
        reader.start()
        reader.join(timeout=0.1)
        assert reader.is_alive()
        session._invalidate()
    reader.join()

    assert seen == [None]


def test_restriction_removed_by_pair(session):
    session.add_constraint("alice", "bob")
    session.generate("exhaustive")
    removed = session.remove_constraint(("Bob", "ALICE"))
    assert (removed.first, removed.second) == ("alice", "bob")
    assert session.constraints == []
    assert session.result is None


def test_infeasible_generation_keeps_no_result(session):
    session.add_item("gina")
    with pytest.raises(InfeasibleError):
        session.generate("exhaustive")
    assert session.result is None
    assert session.current_combination() is None
    assert session.move_cursor(1) is None


def test_superseded_generation_is_cancelled(session):
    session.set_group_size(2)
    calls = {"count": 0}
    original = session._is_stale

    def is_stale(snapshot):
        calls["count"] += 1
        if calls["count"] == 3:
            session.add_item("gina")
        return original(snapshot)

    session._is_stale = is_stale
    with pytest.raises(GenerationCancelledError):
        session.generate("exhaustive")
    assert session.result is None


def test_registry_lifecycle():
    registry = SessionRegistry(max_items=4)
    grouping = registry.create()
    assert registry.get(grouping.id) is grouping
    assert grouping.max_items == 4
    assert len(registry) == 1

    registry.delete(grouping.id)
    with pytest.raises(SessionNotFoundError):
        registry.get(grouping.id)
    with pytest.raises(SessionNotFoundError):
        registry.delete(grouping.id)
