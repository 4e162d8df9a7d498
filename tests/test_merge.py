"""
Tests for the sync merger.

Tests cover:
- Union of disjoint stores
- Last-modified conflict resolution with reports
- Commutativity of the winning entry set
- Purity (inputs untouched) and the no-tombstone policy
"""
import itertools
import math
import sys

import pytest
from pydantic import ValidationError

from keyroost.entries import EntryStore
from keyroost.sync.merge import ConflictReport, merge, pick_winner

from .conftest import make_entry


def winners(result):
    return {entry.name: entry for entry in result.store.list()}


class TestMergeExamples:
    """Worked examples of merge behaviour."""

    def test_later_timestamp_wins(self):
        local = EntryStore([make_entry("github", "u1", "p1", t=100)])
        remote = EntryStore([make_entry("github", "u1", "p2", t=200)])
        merged, conflicts = merge(local, remote)
        entry = merged.get("github")
        assert (entry.username, entry.password, entry.updated_at) == ("u1", "p2", 200)
        assert len(conflicts) == 1
        assert conflicts[0].name == "github"
        assert conflicts[0].discarded.password == "p1"
        assert conflicts[0].kept.password == "p2"

    def test_local_newer_wins(self):
        local = EntryStore([make_entry("github", "u1", "p1", t=300)])
        remote = EntryStore([make_entry("github", "u1", "p2", t=200)])
        merged, conflicts = merge(local, remote)
        assert merged.get("github").password == "p1"
        assert conflicts[0].discarded.password == "p2"

    def test_union_without_conflicts(self):
        a = make_entry("github", t=1)
        b = make_entry("gitlab", t=2)
        merged, conflicts = merge(EntryStore([a]), EntryStore([b]))
        assert {e.name: e for e in merged.list()} == {"github": a, "gitlab": b}
        assert conflicts == ()

    def test_identical_entries(self):
        entry = make_entry("github", t=5)
        merged, conflicts = merge(EntryStore([entry]), EntryStore([entry]))
        assert merged.get("github") == entry
        assert conflicts == ()

    def test_same_content_keeps_later_timestamp(self):
        old = make_entry("github", t=5)
        new = make_entry("github", t=9)
        merged, conflicts = merge(EntryStore([old]), EntryStore([new]))
        assert merged.get("github").updated_at == 9
        assert conflicts == ()

    def test_both_empty(self):
        merged, conflicts = merge(EntryStore(), EntryStore())
        assert merged.empty
        assert conflicts == ()

    def test_conflicts_ordered_by_name(self):
        local = EntryStore([
            make_entry("zeta", password="a", t=1),
            make_entry("alpha", password="a", t=1),
        ])
        remote = EntryStore([
            make_entry("zeta", password="b", t=2),
            make_entry("alpha", password="b", t=2),
        ])
        _, conflicts = merge(local, remote)
        assert [c.name for c in conflicts] == ["alpha", "zeta"]
        assert all(isinstance(c, ConflictReport) for c in conflicts)


class TestMergeProperties:
    """Determinism and purity."""

    STORES = [
        [],
        [make_entry("a", "u", "p", t=1)],
        [make_entry("a", "u", "q", t=2), make_entry("b", t=3)],
        [make_entry("a", "v", "p", t=2), make_entry("c", t=1)],
        [make_entry("a", "u", "p", t=5), make_entry("b", "x", "y", t=3)],
    ]

    @pytest.mark.parametrize(
        "left,right", list(itertools.combinations(range(len(STORES)), 2)),
    )
    def test_commutative(self, left, right):
        a = EntryStore(self.STORES[left])
        b = EntryStore(self.STORES[right])
        ab = merge(a, b)
        ba = merge(b, a)
        assert winners(ab) == winners(ba)
        assert {c.name for c in ab.conflicts} == {c.name for c in ba.conflicts}

    def test_equal_timestamps_break_ties_symmetrically(self):
        x = make_entry("a", "u", "first", t=7)
        y = make_entry("a", "u", "second", t=7)
        assert pick_winner(x, y) == pick_winner(y, x)
        ab, _ = merge(EntryStore([x]), EntryStore([y]))
        ba, _ = merge(EntryStore([y]), EntryStore([x]))
        assert ab.get("a") == ba.get("a")

    @pytest.mark.parametrize("bad", [math.nan, math.inf])
    def test_non_finite_timestamps_cannot_enter(self, bad):
        with pytest.raises(ValidationError):
            make_entry("a", t=bad)
        x = make_entry("a", "u", "p", t=5)
        y = make_entry("a", "u", "q", t=sys.float_info.max)
        assert pick_winner(x, y) == pick_winner(y, x) == y

    def test_inputs_not_mutated(self):
        local = EntryStore([make_entry("a", password="1", t=1), make_entry("b", t=1)])
        remote = EntryStore([make_entry("a", password="2", t=2), make_entry("c", t=1)])
        local_before = local.copy()
        remote_before = remote.copy()
        merged, _ = merge(local, remote)
        merged.delete("a")
        assert local == local_before
        assert remote == remote_before

    def test_result_uses_local_clock(self):
        local = EntryStore(clock=lambda: 42.0)
        merged, _ = merge(local, EntryStore([make_entry("a")]))
        assert merged.update("a", password="x").updated_at == 42.0


class TestNoTombstones:
    """Deletions are not tracked: a remotely deleted entry comes back."""

    def test_remote_delete_resurrects(self):
        shared = make_entry("github", t=10)
        local = EntryStore([shared, make_entry("gitlab", t=10)])
        remote = EntryStore([make_entry("gitlab", t=10)])  # github deleted remotely
        merged, conflicts = merge(local, remote)
        assert "github" in merged
        assert conflicts == ()

    def test_local_delete_resurrects(self):
        local = EntryStore()
        remote = EntryStore([make_entry("github", t=10)])
        merged, _ = merge(local, remote)
        assert "github" in merged
