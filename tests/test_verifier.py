"""Tests for rate-limited breach verification."""

from __future__ import annotations

import pytest

from breachad.analysis.verifier import (
    BreachVerifier, compute_delay, normalize_breaches, select_verification_targets
)
from breachad.errors import BreachRateLimitedError, BreachNetworkError
from breachad.model.schemas import BreachStatus, GroupRef, MemberRecord, DirectoryUser

from conftest import FakeBreachClient


GROUP = GroupRef("G", "Finance")


def _user(user_id: str, mail, department=None, parent=GROUP) -> MemberRecord:
    user = DirectoryUser(object_id=user_id, display_name=user_id.title(), mail=mail, department=department)
    return MemberRecord.for_user(user, parent, 0)


@pytest.mark.parametrize("rate,expected", [
    (10, 6000),
    (50, 1200),
    (100, 600),
    (500, 120),
    (1000, 60),
])
def test_delay_table(rate, expected):
    assert compute_delay(rate) == expected


@pytest.mark.parametrize("rate", [0, 1, 20, 5000, -10])
def test_unsupported_rate_rejected(rate):
    with pytest.raises(ValueError):
        compute_delay(rate)


def test_empty_list_makes_no_calls(recorded_sleep):
    client = FakeBreachClient()
    verifier = BreachVerifier(client, verbose=False, sleep_func=recorded_sleep)

    assert verifier.verify([]) == []
    assert client.calls == []
    assert recorded_sleep.calls == []


def test_outcomes_in_input_order(recorded_sleep):
    client = FakeBreachClient({
        "b@corp.example": [{"Name": "Adobe", "BreachDate": "2013-10-04", "DataClasses": ["Emails", "Passwords"]}],
    })
    users = [_user("a", "a@corp.example"), _user("b", "b@corp.example", "Sales")]

    outcomes = BreachVerifier(client, verbose=False, sleep_func=recorded_sleep).verify(users)

    assert [o.email for o in outcomes] == ["a@corp.example", "b@corp.example"]
    assert outcomes[0].status == BreachStatus.CLEAN
    assert outcomes[0].breach_count == 0
    breached = outcomes[1]
    assert breached.status == BreachStatus.BREACHED
    assert breached.breach_count == 1
    assert breached.department == "Sales"
    assert breached.parent_group == "Finance"
    assert breached.breaches[0].name == "Adobe"
    assert breached.breaches[0].date == "2013-10-04"
    assert breached.breaches[0].data_exposed == "Emails, Passwords"


def test_sleeps_between_lookups_only(recorded_sleep):
    """Three users at 50/min: two pauses of 1.2 s, none after the last."""
    client = FakeBreachClient()
    users = [_user(f"u{i}", f"u{i}@corp.example") for i in range(3)]

    BreachVerifier(client, rate_per_minute=50, verbose=False, sleep_func=recorded_sleep).verify(users)

    assert recorded_sleep.calls == [1.2, 1.2]
    assert len(client.calls) == 3


def test_single_user_no_sleep(recorded_sleep):
    client = FakeBreachClient()
    BreachVerifier(client, verbose=False, sleep_func=recorded_sleep).verify([_user("a", "a@corp.example")])

    assert recorded_sleep.calls == []


def test_error_isolated_to_one_user(recorded_sleep):
    client = FakeBreachClient({
        "b@corp.example": BreachRateLimitedError("Rate limited by HIBP", retry_after=2),
        "c@corp.example": [{"Name": "LinkedIn"}],
    })
    users = [_user(x, f"{x}@corp.example") for x in ("a", "b", "c")]

    outcomes = BreachVerifier(client, verbose=False, sleep_func=recorded_sleep).verify(users)

    assert [o.status for o in outcomes] == [BreachStatus.CLEAN, BreachStatus.ERROR, BreachStatus.BREACHED]
    assert outcomes[1].error == "Rate limited by HIBP"
    assert outcomes[1].breach_count == 0
    assert len(client.calls) == 3
    # Pacing is unchanged by the failure
    assert len(recorded_sleep.calls) == 2


def test_network_error_becomes_error_outcome(recorded_sleep):
    client = FakeBreachClient({"a@corp.example": BreachNetworkError("connection reset")})

    outcomes = BreachVerifier(client, verbose=False, sleep_func=recorded_sleep).verify([_user("a", "a@corp.example")])

    assert outcomes[0].status == BreachStatus.ERROR
    assert "connection reset" in outcomes[0].error


def test_empty_name_breach_yields_clean(recorded_sleep):
    client = FakeBreachClient({"a@corp.example": [{"Name": "", "BreachDate": "2020-01-01"}]})

    outcomes = BreachVerifier(client, verbose=False, sleep_func=recorded_sleep).verify([_user("a", "a@corp.example")])

    assert outcomes[0].status == BreachStatus.CLEAN
    assert outcomes[0].breach_count == 0
    assert outcomes[0].breaches == []


def test_normalize_defaults():
    entries = normalize_breaches([
        {"Name": "Canva"},
        {"Name": None},
        {"Name": "   "},
        {"Name": "Dropbox", "BreachDate": "2012-07-01", "DataClasses": []},
    ])

    assert [e.name for e in entries] == ["Canva", "Dropbox"]
    assert entries[0].date == "Unknown"
    assert entries[0].data_exposed == "Not specified"
    assert entries[1].data_exposed == "Not specified"


def test_targets_require_email_and_dedupe_case_insensitive():
    other = GroupRef("H", "Payroll")
    members = [
        _user("a", "Alice@Corp.Example"),
        _user("b", None),
        _user("c", ""),
        _user("a2", "alice@corp.example", parent=other),
        MemberRecord.for_group(other, GROUP, 0),
        _user("d", "dave@corp.example", parent=other),
    ]

    targets = select_verification_targets(members)

    assert [t.object_id for t in targets] == ["a", "d"]
    assert targets[0].parent_group_name == "Finance"
