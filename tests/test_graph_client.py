"""Tests for the Microsoft Graph directory client against a mocked session."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from breachad.config import GraphConfig
from breachad.directory.graph_client import (
    GRAPH_BASE, GraphAPIError, GraphDirectoryClient, escape_odata_string, odata_type_tag
)
from breachad.errors import DirectoryConnectionError, GroupNotFoundError, UserNotFoundError


def _response(status: int, payload=None, headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.text = "" if payload is None else str(payload)
    resp.json.return_value = payload
    return resp


def _client(*responses) -> tuple[GraphDirectoryClient, MagicMock]:
    session = MagicMock()
    session.get.side_effect = list(responses)
    config = GraphConfig(tenant_id="t", client_id="c", client_secret="s", max_retries=2)
    return GraphDirectoryClient(config, session=session, verbose=False), session


@pytest.mark.parametrize("marker,tag", [
    ("#microsoft.graph.user", "user"),
    ("#microsoft.graph.group", "group"),
    ("#microsoft.graph.device", "device"),
    (None, "unknown"),
])
def test_odata_type_tag(marker, tag):
    assert odata_type_tag(marker) == tag


def test_escape_odata_string():
    assert escape_odata_string("O'Brien's Team") == "O''Brien''s Team"


def test_connect_probe_failure_is_connection_error():
    client, _ = _client(_response(401, {"error": "denied"}))

    with pytest.raises(DirectoryConnectionError):
        client.connect()


def test_members_follow_next_link():
    client, session = _client(
        _response(200, {
            "value": [{"id": "u1", "@odata.type": "#microsoft.graph.user"}],
            "@odata.nextLink": f"{GRAPH_BASE}/groups/g1/members?$skiptoken=abc",
        }),
        _response(200, {
            "value": [
                {"id": "g2", "@odata.type": "#microsoft.graph.group"},
                {"id": "d1", "@odata.type": "#microsoft.graph.device"},
            ],
        }),
    )

    members = client.list_group_members("g1")

    assert [(m.object_id, m.type_tag) for m in members] == [
        ("u1", "user"), ("g2", "group"), ("d1", "device"),
    ]
    second_call = session.get.call_args_list[1]
    assert second_call.args[0].endswith("$skiptoken=abc")
    assert second_call.kwargs["params"] is None


def test_missing_group_maps_to_not_found():
    client, _ = _client(_response(404, {"error": {"code": "Request_ResourceNotFound"}}))

    with pytest.raises(GroupNotFoundError):
        client.resolve_group("nope")


def test_missing_user_maps_to_not_found():
    client, _ = _client(_response(404, {"error": {}}))

    with pytest.raises(UserNotFoundError):
        client.resolve_user("nope")


def test_resolve_user_fields():
    client, _ = _client(_response(200, {
        "id": "u1",
        "displayName": "Alice",
        "userPrincipalName": "alice@corp.example",
        "mail": "alice@corp.example",
        "jobTitle": "Analyst",
        "department": "Finance",
        "accountEnabled": False,
    }))

    user = client.resolve_user("u1")

    assert user.display_name == "Alice"
    assert user.mail == "alice@corp.example"
    assert user.department == "Finance"
    assert user.account_enabled is False


def test_find_groups_uses_filter():
    client, session = _client(_response(200, {"value": [{"id": "g1", "displayName": "Sales"}]}))

    groups = client.find_groups_by_display_name("Sales")

    assert [(g.object_id, g.display_name) for g in groups] == [("g1", "Sales")]
    assert session.get.call_args.kwargs["params"]["$filter"] == "displayName eq 'Sales'"


@patch("breachad.directory.graph_client.time.sleep")
def test_transient_status_retried(mock_sleep):
    client, session = _client(
        _response(429, headers={"Retry-After": "1"}),
        _response(200, {"id": "g1", "displayName": "Sales"}),
    )

    group = client.resolve_group("g1")

    assert group.display_name == "Sales"
    assert session.get.call_count == 2
    mock_sleep.assert_called_once_with(1.0)


@patch("breachad.directory.graph_client.time.sleep")
def test_retries_are_bounded(mock_sleep):
    client, session = _client(*[_response(503) for _ in range(3)])

    with pytest.raises(GraphAPIError) as excinfo:
        client.resolve_group("g1")

    assert excinfo.value.status_code == 503
    assert session.get.call_count == 3
    assert mock_sleep.call_count == 2
