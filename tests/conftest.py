"""Shared test fixtures for breachAD tests."""

from __future__ import annotations

from typing import Optional

import pytest

from breachad.errors import GroupNotFoundError, UserNotFoundError, DirectoryConnectionError
from breachad.model.schemas import DirectoryMember, DirectoryUser, GroupRef


class FakeDirectory:
    """In-memory directory with scripted failures.

    groups: group id -> display name
    members: group id -> list of (member id, type tag)
    users: user id -> DirectoryUser
    """

    def __init__(self, groups=None, members=None, users=None):
        self.groups: dict[str, str] = dict(groups or {})
        self.members: dict[str, list[tuple[str, str]]] = dict(members or {})
        self.users: dict[str, DirectoryUser] = dict(users or {})

        self.failing_groups: set[str] = set()
        self.failing_listings: set[str] = set()
        self.failing_users: set[str] = set()
        self.filter_search_enabled = True
        self.fail_connect = False

        self.connected = False
        self.disconnected = False
        self.listing_calls: list[str] = []
        self.user_calls: list[str] = []

    def add_user(self, user_id: str, name: str, mail: Optional[str] = None, **kwargs) -> DirectoryUser:
        user = DirectoryUser(object_id=user_id, display_name=name, mail=mail, **kwargs)
        self.users[user_id] = user
        return user

    def connect(self) -> None:
        if self.fail_connect:
            raise DirectoryConnectionError("connection refused")
        self.connected = True

    def disconnect(self) -> None:
        self.disconnected = True

    def resolve_group(self, group_id: str) -> GroupRef:
        if group_id in self.failing_groups or group_id not in self.groups:
            raise GroupNotFoundError(group_id)
        return GroupRef(group_id, self.groups[group_id])

    def find_groups_by_display_name(self, name: str) -> list[GroupRef]:
        if not self.filter_search_enabled:
            return []
        return [GroupRef(gid, n) for gid, n in self.groups.items() if n.lower() == name.lower()]

    def list_all_groups(self) -> list[GroupRef]:
        return [GroupRef(gid, n) for gid, n in self.groups.items()]

    def list_group_members(self, group_id: str) -> list[DirectoryMember]:
        self.listing_calls.append(group_id)
        if group_id in self.failing_listings:
            raise GroupNotFoundError(group_id, "listing failed")
        return [DirectoryMember(mid, tag) for mid, tag in self.members.get(group_id, [])]

    def resolve_user(self, user_id: str) -> DirectoryUser:
        self.user_calls.append(user_id)
        if user_id in self.failing_users or user_id not in self.users:
            raise UserNotFoundError(user_id)
        return self.users[user_id]


class FakeBreachClient:
    """Scripted breach lookups: email -> list of breach dicts or an exception."""

    def __init__(self, responses=None):
        self.responses: dict = dict(responses or {})
        self.calls: list[str] = []
        self.closed = False

    def check_breaches(self, email: str) -> list[dict]:
        self.calls.append(email)
        response = self.responses.get(email, [])
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def nested_directory() -> FakeDirectory:
    """Seed G with direct user U and nested group N containing user V."""
    d = FakeDirectory(
        groups={"G": "Engineering", "N": "Platform"},
        members={
            "G": [("U", "user"), ("N", "group")],
            "N": [("V", "user")],
        },
    )
    d.add_user("U", "Uma User", "uma@corp.example", department="Eng")
    d.add_user("V", "Victor Nested", "victor@corp.example", department="Ops")
    return d


@pytest.fixture
def breach_client() -> FakeBreachClient:
    return FakeBreachClient()


@pytest.fixture
def recorded_sleep():
    """Sleep stand-in that records requested seconds in .calls."""
    calls: list[float] = []

    def _sleep(seconds: float) -> None:
        calls.append(seconds)

    _sleep.calls = calls
    return _sleep
