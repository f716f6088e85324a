"""Tests for group membership traversal: nesting, cycles, failure isolation, seed names."""

from __future__ import annotations

import pytest

from breachad.analysis.resolver import MembershipResolver
from breachad.errors import NoValidGroupsError
from breachad.model.schemas import MemberKind

from conftest import FakeDirectory


def _resolver(directory, expand_nested: bool = True) -> MembershipResolver:
    return MembershipResolver(directory, expand_nested=expand_nested, verbose=False)


def _summary(result) -> list[tuple]:
    return [
        (m.kind, m.object_id, m.nesting_level, m.parent_group_id)
        for m in result.members
    ]


def test_nested_group_expanded(nested_directory):
    """Direct user and nested group at level 0, nested user at level 1."""
    result = _resolver(nested_directory).resolve(["G"])

    assert _summary(result) == [
        (MemberKind.USER, "U", 0, "G"),
        (MemberKind.GROUP, "N", 0, "G"),
        (MemberKind.USER, "V", 1, "N"),
    ]
    assert result.members[2].parent_group_name == "Platform"
    assert result.members[0].email == "uma@corp.example"
    assert result.groups_expanded == ["G", "N"]


def test_nested_group_not_expanded(nested_directory):
    """Without expansion only the direct user is emitted and N is never listed."""
    result = _resolver(nested_directory, expand_nested=False).resolve(["G"])

    assert _summary(result) == [(MemberKind.USER, "U", 0, "G")]
    assert nested_directory.listing_calls == ["G"]


def test_mutual_nesting_terminates():
    """A -> B -> A expands each group exactly once."""
    d = FakeDirectory(
        groups={"A": "Alpha", "B": "Beta"},
        members={
            "A": [("B", "group"), ("a1", "user")],
            "B": [("A", "group"), ("b1", "user")],
        },
    )
    d.add_user("a1", "Alice", "alice@corp.example")
    d.add_user("b1", "Bob", "bob@corp.example")

    result = _resolver(d).resolve(["A"])

    assert d.listing_calls == ["A", "B"]
    assert result.groups_expanded == ["A", "B"]
    assert _summary(result) == [
        (MemberKind.GROUP, "B", 0, "A"),
        (MemberKind.GROUP, "A", 1, "B"),
        (MemberKind.USER, "b1", 1, "B"),
        (MemberKind.USER, "a1", 0, "A"),
    ]


def test_self_nesting_terminates():
    d = FakeDirectory(
        groups={"S": "Self"},
        members={"S": [("S", "group"), ("u", "user")]},
    )
    d.add_user("u", "Uma")

    result = _resolver(d).resolve(["S"])

    assert d.listing_calls == ["S"]
    assert [m.object_id for m in result.users] == ["u"]


def test_failed_user_lookup_keeps_siblings():
    d = FakeDirectory(
        groups={"G": "Group"},
        members={"G": [("u1", "user"), ("bad", "user"), ("u2", "user")]},
    )
    d.add_user("u1", "One")
    d.add_user("u2", "Two")
    d.failing_users.add("bad")

    result = _resolver(d).resolve(["G"])

    assert [m.object_id for m in result.members] == ["u1", "u2"]
    assert result.group_errors == {}


def test_unresolvable_seed_isolated():
    """A missing seed is reported; the seeds around it are still walked."""
    d = FakeDirectory(
        groups={"G1": "First", "G2": "Second"},
        members={"G1": [("u1", "user")], "G2": [("u2", "user")]},
    )
    d.add_user("u1", "One")
    d.add_user("u2", "Two")

    result = _resolver(d).resolve(["G1", "missing", "G2"])

    assert [m.object_id for m in result.members] == ["u1", "u2"]
    assert list(result.group_errors) == ["missing"]
    assert [g.object_id for g in result.seed_groups] == ["G1", "G2"]


def test_nested_listing_failure_skips_subtree_only():
    d = FakeDirectory(
        groups={"G": "Top", "N": "Broken"},
        members={"G": [("N", "group"), ("U", "user")], "N": [("V", "user")]},
    )
    d.add_user("U", "Uma")
    d.add_user("V", "Victor")
    d.failing_listings.add("N")

    result = _resolver(d).resolve(["G"])

    assert _summary(result) == [
        (MemberKind.GROUP, "N", 0, "G"),
        (MemberKind.USER, "U", 0, "G"),
    ]
    assert "N" in result.group_errors
    assert result.groups_expanded == ["G"]


def test_visited_set_shared_across_seeds(nested_directory):
    """A seed already expanded under an earlier seed is not walked again."""
    result = _resolver(nested_directory).resolve(["G", "N"])

    assert nested_directory.listing_calls == ["G", "N"]
    assert [m.object_id for m in result.users] == ["U", "V"]
    assert [g.object_id for g in result.seed_groups] == ["G", "N"]


def test_duplicate_seeds_ignored(nested_directory):
    result = _resolver(nested_directory).resolve(["G", "G"])

    assert len(result.members) == 3
    assert nested_directory.listing_calls == ["G", "N"]


def test_unknown_member_types_ignored():
    d = FakeDirectory(
        groups={"G": "Devices"},
        members={"G": [("d1", "device"), ("sp1", "serviceprincipal"), ("u", "user")]},
    )
    d.add_user("u", "Uma")

    result = _resolver(d).resolve(["G"])

    assert [m.object_id for m in result.members] == ["u"]
    assert d.user_calls == ["u"]


def test_separate_calls_do_not_share_state(nested_directory):
    resolver = _resolver(nested_directory)
    first = resolver.resolve(["G"])
    second = resolver.resolve(["G"])

    assert _summary(first) == _summary(second)
    assert first is not second


def test_progress_callback_receives_messages(nested_directory):
    messages = []
    resolver = MembershipResolver(
        nested_directory, verbose=False, progress_callback=messages.append
    )
    resolver.resolve(["G"])

    assert any(m.startswith("[*] Enumerating group 'Engineering'") for m in messages)


# ---------------------------------------------------------------------------
# Seed names
# ---------------------------------------------------------------------------

def test_seed_name_resolves_single_match():
    d = FakeDirectory(groups={"g1": "Finance", "g2": "Sales"})

    seeds = _resolver(d).resolve_seed_names(["Finance"])

    assert [g.object_id for g in seeds] == ["g1"]


def test_ambiguous_seed_name_skipped():
    d = FakeDirectory(groups={"s1": "Sales", "s2": "Sales", "f1": "Finance"})

    seeds = _resolver(d).resolve_seed_names(["Sales", "Finance"])

    assert [g.object_id for g in seeds] == ["f1"]


def test_only_ambiguous_seed_fails_run():
    d = FakeDirectory(groups={"s1": "Sales", "s2": "Sales"})

    with pytest.raises(NoValidGroupsError) as excinfo:
        _resolver(d).resolve_seed_names(["Sales"])

    assert str(excinfo.value) == "No valid groups found"


def test_unknown_seed_name_fails_run():
    d = FakeDirectory(groups={"g1": "Finance"})

    with pytest.raises(NoValidGroupsError):
        _resolver(d).resolve_seed_names(["Marketing"])


def test_exact_case_breaks_tie():
    """Case-insensitive search returns two groups; the exact-case one wins."""
    d = FakeDirectory(groups={"lower": "sales", "proper": "Sales"})

    seeds = _resolver(d).resolve_seed_names(["Sales"])

    assert [g.object_id for g in seeds] == ["proper"]


def test_seed_name_falls_back_to_full_listing():
    d = FakeDirectory(groups={"g1": "Finance"})
    d.filter_search_enabled = False

    seeds = _resolver(d).resolve_seed_names(["finance"])

    assert [g.object_id for g in seeds] == ["g1"]


def test_seed_names_deduplicated():
    d = FakeDirectory(groups={"g1": "Finance"})

    seeds = _resolver(d).resolve_seed_names(["Finance", "finance"])

    assert len(seeds) == 1
