"""
Microsoft Graph Directory Client
================================

Group and user lookups against Entra ID through Microsoft Graph v1.0.

Features:
- App-only authentication (client credentials) when a secret is configured
- Delegated device-code sign-in otherwise
- @odata.nextLink paging for member and group listings
- Bounded retry on transient responses (429, 5xx)

Security Consideration:
This module performs read-only queries (Group.Read.All, User.Read.All).
"""

import time
from typing import Optional, Callable, List

import msal
import requests

from ..config import GraphConfig
from ..errors import (
    DirectoryConnectionError, DirectoryError,
    GroupNotFoundError, UserNotFoundError
)
from ..model.schemas import DirectoryMember, DirectoryUser, GroupRef


GRAPH_BASE = "https://graph.microsoft.com/v1.0"
APP_SCOPES = ["https://graph.microsoft.com/.default"]
DELEGATED_SCOPES = ["Group.Read.All", "User.Read.All"]

USER_FIELDS = "id,displayName,userPrincipalName,mail,jobTitle,department,accountEnabled"
GROUP_FIELDS = "id,displayName"

_TRANSIENT_CODES = (429, 500, 502, 503, 504)
_RETRY_DELAY = 3  # seconds


class GraphAPIError(DirectoryError):
    """Raised when a Graph call returns a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body[:200]}")


def odata_type_tag(odata_type: Optional[str]) -> str:
    """Reduce '#microsoft.graph.user' style markers to a lowercase tag."""
    if not odata_type:
        return "unknown"
    return odata_type.rsplit(".", 1)[-1].lower()


def escape_odata_string(value: str) -> str:
    """Escape a value for use inside an OData string literal."""
    return value.replace("'", "''")


class GraphDirectoryClient:
    """Directory client backed by Microsoft Graph.

    Usage:
        client = GraphDirectoryClient(GraphConfig(tenant_id=..., client_id=...))
        client.connect()
        group = client.resolve_group("0f3c...")
        members = client.list_group_members(group.object_id)
    """

    def __init__(
        self,
        config: Optional[GraphConfig] = None,
        session: Optional[requests.Session] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None,
        device_flow_callback: Optional[Callable[[dict], None]] = None
    ):
        """Initialize the Graph client.

        Args:
            config: GraphConfig with tenant and app registration
            session: Pre-authenticated session (skips token acquisition)
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
            device_flow_callback: Receives the device-code flow dict so the
                caller can show the sign-in URL and code
        """
        self.config = config or GraphConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback
        self.device_flow_callback = device_flow_callback
        self._session = session

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _acquire_token(self) -> str:
        """Acquire a Graph access token via MSAL."""
        if not self.config.client_id:
            raise DirectoryConnectionError(
                "Graph client id is required (set AZURE_CLIENT_ID or pass --client-id)"
            )

        if self.config.client_secret:
            if not self.config.tenant_id:
                raise DirectoryConnectionError(
                    "Graph tenant id is required for app-only authentication"
                )
            app = msal.ConfidentialClientApplication(
                self.config.client_id,
                authority=self.config.authority,
                client_credential=self.config.client_secret,
            )
            result = app.acquire_token_for_client(scopes=APP_SCOPES)
        else:
            app = msal.PublicClientApplication(
                self.config.client_id,
                authority=self.config.authority,
            )
            flow = app.initiate_device_flow(scopes=DELEGATED_SCOPES)
            if "user_code" not in flow:
                raise DirectoryConnectionError(
                    f"Device code flow failed: {flow.get('error_description', 'Unknown error')}"
                )
            if self.device_flow_callback:
                self.device_flow_callback(flow)
            self._log(f"[*] {flow.get('message', 'Complete the device code sign-in')}")
            result = app.acquire_token_by_device_flow(flow)

        if "access_token" not in result:
            error_desc = result.get("error_description", result.get("error", "Unknown"))
            raise DirectoryConnectionError(f"Sign-in failed: {error_desc}")

        return result["access_token"]

    def connect(self) -> None:
        """Authenticate and verify Graph connectivity.

        Raises:
            DirectoryConnectionError: If sign-in or the probe request fails
        """
        if self._session is None:
            token = self._acquire_token()
            self._session = requests.Session()
            self._session.headers.update({
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            })

        try:
            self._get_json(f"{GRAPH_BASE}/groups", params={"$top": "1", "$select": "id"})
        except (DirectoryError, requests.RequestException) as e:
            raise DirectoryConnectionError(f"Could not reach Microsoft Graph: {e}") from e

        self._log("[+] Connected to Microsoft Graph")

    def disconnect(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _get_with_retry(self, url: str, **kwargs) -> requests.Response:
        """GET with retry on transient errors (429, 5xx)."""
        if self._session is None:
            raise DirectoryError("Not connected. Call connect() first.")

        kwargs.setdefault("timeout", self.config.timeout)
        for attempt in range(self.config.max_retries + 1):
            resp = self._session.get(url, **kwargs)
            if resp.status_code not in _TRANSIENT_CODES or attempt == self.config.max_retries:
                return resp
            try:
                delay = float(resp.headers.get("Retry-After", ""))
            except ValueError:
                delay = _RETRY_DELAY * (attempt + 1)
            self._log(f"[-] Transient {resp.status_code} from Graph, retrying in {delay:.0f}s...")
            time.sleep(delay)
        return resp

    def _get_json(self, url: str, params: Optional[dict] = None) -> dict:
        resp = self._get_with_retry(url, params=params)
        if resp.status_code >= 400:
            raise GraphAPIError(resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as e:
            raise DirectoryError(f"Malformed Graph response from {url}: {e}") from e

    def _get_paged(self, url: str, params: Optional[dict] = None) -> list[dict]:
        """Collect 'value' items across all @odata.nextLink pages."""
        items = []
        next_url: Optional[str] = url
        while next_url:
            data = self._get_json(next_url, params=params)
            items.extend(data.get("value", []))
            next_url = data.get("@odata.nextLink")
            params = None  # nextLink already carries the query
        return items

    def resolve_group(self, group_id: str) -> GroupRef:
        try:
            data = self._get_json(
                f"{GRAPH_BASE}/groups/{group_id}",
                params={"$select": GROUP_FIELDS}
            )
        except GraphAPIError as e:
            if e.status_code == 404:
                raise GroupNotFoundError(group_id) from e
            raise
        return GroupRef(data["id"], data.get("displayName") or data["id"])

    def find_groups_by_display_name(self, name: str) -> List[GroupRef]:
        items = self._get_paged(
            f"{GRAPH_BASE}/groups",
            params={
                "$filter": f"displayName eq '{escape_odata_string(name)}'",
                "$select": GROUP_FIELDS,
            }
        )
        return [GroupRef(g["id"], g.get("displayName") or g["id"]) for g in items]

    def list_all_groups(self) -> List[GroupRef]:
        items = self._get_paged(
            f"{GRAPH_BASE}/groups",
            params={"$select": GROUP_FIELDS, "$top": "999"}
        )
        return [GroupRef(g["id"], g.get("displayName") or g["id"]) for g in items]

    def list_group_members(self, group_id: str) -> List[DirectoryMember]:
        try:
            items = self._get_paged(
                f"{GRAPH_BASE}/groups/{group_id}/members",
                params={"$select": "id"}
            )
        except GraphAPIError as e:
            if e.status_code == 404:
                raise GroupNotFoundError(group_id) from e
            raise
        return [
            DirectoryMember(m["id"], odata_type_tag(m.get("@odata.type")))
            for m in items
        ]

    def resolve_user(self, user_id: str) -> DirectoryUser:
        try:
            data = self._get_json(
                f"{GRAPH_BASE}/users/{user_id}",
                params={"$select": USER_FIELDS}
            )
        except GraphAPIError as e:
            if e.status_code == 404:
                raise UserNotFoundError(user_id) from e
            raise
        return DirectoryUser(
            object_id=data["id"],
            display_name=data.get("displayName") or "",
            user_principal_name=data.get("userPrincipalName"),
            mail=data.get("mail"),
            job_title=data.get("jobTitle"),
            department=data.get("department"),
            account_enabled=data.get("accountEnabled"),
        )
