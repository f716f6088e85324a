"""Tests for the LDAP directory client against a stubbed ldap3 connection."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from breachad.directory.ldap_client import (
    LDAPDirectoryClient, PAGED_RESULTS_OID, object_class_tag
)
from breachad.errors import GroupNotFoundError, UserNotFoundError


GROUP_DN = "CN=Finance,OU=Groups,DC=corp,DC=local"


def _entry(dn: str, **attrs):
    entry = MagicMock()
    entry.entry_dn = dn
    entry.entry_attributes_as_dict = attrs
    return entry


def _client(*pages) -> tuple[LDAPDirectoryClient, MagicMock]:
    """Client whose successive searches return the given entry pages."""
    conn = MagicMock()
    state = {"page": 0}

    def _search(**kwargs):
        index = state["page"]
        state["page"] += 1
        conn.entries = pages[index] if index < len(pages) else []
        cookie = b"next" if index + 1 < len(pages) and kwargs.get("paged_size") else None
        conn.result = {"controls": {PAGED_RESULTS_OID: {"value": {"cookie": cookie}}}}
        return True

    conn.search.side_effect = _search
    client = LDAPDirectoryClient("10.0.0.1", "corp.local", connection=conn, verbose=False)
    return client, conn


@pytest.mark.parametrize("classes,tag", [
    (["top", "group"], "group"),
    (["top", "person", "organizationalPerson", "user"], "user"),
    (["top", "person", "organizationalPerson", "user", "computer"], "computer"),
    (["top", "person", "organizationalPerson", "contact"], "contact"),
    (["top", "foreignSecurityPrincipal"], "foreignsecurityprincipal"),
    ([], "unknown"),
])
def test_object_class_tag(classes, tag):
    assert object_class_tag(classes) == tag


def test_base_dn_from_domain():
    client = LDAPDirectoryClient("10.0.0.1", "corp.example.local", verbose=False)
    assert client.base_dn == "DC=corp,DC=example,DC=local"


def test_resolve_group_name():
    client, _ = _client([_entry(GROUP_DN, cn=["Finance"], displayName=["Finance Team"])])

    group = client.resolve_group(GROUP_DN)

    assert group.object_id == GROUP_DN
    assert group.display_name == "Finance Team"


def test_resolve_group_missing():
    client, _ = _client([])

    with pytest.raises(GroupNotFoundError):
        client.resolve_group(GROUP_DN)


def test_members_paged_and_tagged():
    client, conn = _client(
        [_entry("CN=Alice,OU=Users,DC=corp,DC=local", objectClass=["top", "person", "user"])],
        [_entry("CN=Payroll,OU=Groups,DC=corp,DC=local", objectClass=["top", "group"])],
    )

    members = client.list_group_members(GROUP_DN)

    assert [(m.object_id, m.type_tag) for m in members] == [
        ("CN=Alice,OU=Users,DC=corp,DC=local", "user"),
        ("CN=Payroll,OU=Groups,DC=corp,DC=local", "group"),
    ]
    assert conn.search.call_count == 2
    assert conn.search.call_args_list[0].kwargs["search_filter"] == f"(memberOf={GROUP_DN})"


def test_resolve_user_enabled_flag():
    client, _ = _client([_entry(
        "CN=Alice,OU=Users,DC=corp,DC=local",
        displayName=["Alice Adams"],
        mail=["alice@corp.example"],
        title=["Analyst"],
        department=["Finance"],
        userAccountControl=[514],
    )])

    user = client.resolve_user("CN=Alice,OU=Users,DC=corp,DC=local")

    assert user.display_name == "Alice Adams"
    assert user.mail == "alice@corp.example"
    assert user.job_title == "Analyst"
    assert user.account_enabled is False


def test_resolve_user_missing():
    client, _ = _client([])

    with pytest.raises(UserNotFoundError):
        client.resolve_user("CN=Ghost,DC=corp,DC=local")
