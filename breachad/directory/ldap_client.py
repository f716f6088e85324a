"""
LDAP Directory Client
=====================

Group and user lookups against on-premises Active Directory via LDAP.

Features:
- Supports LDAP (389) and LDAPS (636)
- NTLM bind with simple-bind fallback
- Handles large groups with paged searches

Design Decisions:
-----------------
1. Uses ldap3 library for cross-platform LDAP support
2. Object ids are distinguished names, so every lookup is a BASE search
3. Direct members are found with a (memberOf=<group dn>) search, which
   returns each member's objectClass in the same round trip
4. accountEnabled is derived from the userAccountControl ACCOUNTDISABLE flag

Security Consideration:
This module performs read-only operations. No modifications are made to the AD.
"""

from typing import Optional, Callable, List

from ldap3 import Server, Connection, ALL, SUBTREE, BASE, NTLM, SIMPLE
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from ..config import LDAPConfig
from ..errors import (
    DirectoryConnectionError, DirectoryError,
    GroupNotFoundError, UserNotFoundError
)
from ..model.schemas import DirectoryMember, DirectoryUser, GroupRef


GROUP_ATTRIBUTES = ['cn', 'displayName', 'sAMAccountName']
USER_ATTRIBUTES = [
    'cn', 'displayName', 'sAMAccountName', 'userPrincipalName',
    'mail', 'title', 'department', 'userAccountControl'
]

PAGED_RESULTS_OID = '1.2.840.113556.1.4.319'
UAC_ACCOUNTDISABLE = 0x02


def _first(attrs: dict, key: str, default=None):
    """Safely get the first value of a (possibly multi-valued) attribute."""
    values = attrs.get(key)
    if values is None:
        return default
    if isinstance(values, (list, tuple)):
        return values[0] if values else default
    return values


def object_class_tag(object_classes) -> str:
    """Map an objectClass list to a member type tag.

    Computers inherit from the user class, so they are checked first.
    """
    classes = {str(c).lower() for c in (object_classes or [])}
    if 'group' in classes:
        return 'group'
    if 'computer' in classes:
        return 'computer'
    if 'user' in classes and 'person' in classes:
        return 'user'
    if 'contact' in classes:
        return 'contact'
    if 'foreignsecurityprincipal' in classes:
        return 'foreignsecurityprincipal'
    return 'unknown'


def _group_name(attrs: dict, dn: str) -> str:
    name = _first(attrs, 'displayName') or _first(attrs, 'cn') or _first(attrs, 'sAMAccountName')
    if not name and 'CN=' in dn:
        name = dn.split('CN=')[1].split(',')[0]
    return str(name or dn)


class LDAPDirectoryClient:
    """Directory client for Active Directory over LDAP.

    Usage:
        client = LDAPDirectoryClient(
            server_ip="192.168.1.100",
            domain="corp.local",
            username="user",
            password="password"
        )
        client.connect()
        group = client.resolve_group("CN=Sales,OU=Groups,DC=corp,DC=local")
    """

    def __init__(
        self,
        server_ip: str,
        domain: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        config: Optional[LDAPConfig] = None,
        connection: Optional[Connection] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        """Initialize the LDAP client.

        Args:
            server_ip: IP address or hostname of the domain controller
            domain: Domain name (e.g., "corp.local")
            username: Username for authentication (domain\\user or user@domain)
            password: Password for authentication
            config: LDAPConfig object for connection settings
            connection: Already-bound ldap3 Connection (skips binding)
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
        """
        self.server_ip = server_ip
        self.domain = domain
        self.username = username
        self.password = password
        self.config = config or LDAPConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback

        self.connection: Optional[Connection] = connection

        # Derive base DN from domain
        self.base_dn = ",".join([f"DC={part}" for part in domain.split(".")])

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def connect(self) -> None:
        """Establish connection to the LDAP server.

        Raises:
            DirectoryConnectionError: If the bind fails
        """
        if self.connection is not None:
            return

        try:
            port = self.config.port or (636 if self.config.use_ssl else 389)
            server = Server(
                self.server_ip,
                port=port,
                use_ssl=self.config.use_ssl,
                get_info=ALL,
                connect_timeout=self.config.timeout
            )

            if self.username and self.password:
                # Format username for NTLM
                if '\\' not in self.username and '@' not in self.username:
                    ntlm_user = f"{self.domain.split('.')[0].upper()}\\{self.username}"
                else:
                    ntlm_user = self.username

                self._log(f"[*] Connecting to {self.server_ip}:{port} as {ntlm_user}")

                try:
                    self.connection = Connection(
                        server,
                        user=ntlm_user,
                        password=self.password,
                        authentication=NTLM,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
                except LDAPException:
                    self._log("[*] NTLM auth failed, trying simple bind...")
                    self.connection = Connection(
                        server,
                        user=self.username if '@' in self.username else f"{self.username}@{self.domain}",
                        password=self.password,
                        authentication=SIMPLE,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
            else:
                self._log(f"[*] Connecting anonymously to {self.server_ip}:{port}")
                self.connection = Connection(
                    server,
                    auto_bind=True,
                    receive_timeout=self.config.timeout
                )

        except LDAPException as e:
            self.connection = None
            raise DirectoryConnectionError(f"LDAP connection to {self.server_ip} failed: {e}") from e

        self._log(f"[+] Connected successfully to {self.server_ip}")

    def disconnect(self) -> None:
        """Unbind from the LDAP server."""
        if self.connection is not None:
            try:
                self.connection.unbind()
            except LDAPException as e:
                self._log(f"[!] Error during unbind: {e}")
            self.connection = None

    def _require_connection(self) -> Connection:
        if self.connection is None:
            raise DirectoryError("Not connected. Call connect() first.")
        return self.connection

    def _search_base(self, dn: str, ldap_filter: str, attributes: list) -> Optional[dict]:
        """BASE search on a single DN; returns its attributes or None."""
        conn = self._require_connection()
        try:
            conn.search(
                search_base=dn,
                search_filter=ldap_filter,
                search_scope=BASE,
                attributes=attributes
            )
        except LDAPException as e:
            raise DirectoryError(f"LDAP lookup of {dn} failed: {e}") from e

        if not conn.entries:
            return None
        return conn.entries[0].entry_attributes_as_dict

    def _paged_search(self, ldap_filter: str, attributes: list) -> list:
        """SUBTREE search under the base DN, following paging cookies."""
        conn = self._require_connection()
        entries = []
        cookie = None
        try:
            while True:
                conn.search(
                    search_base=self.base_dn,
                    search_filter=ldap_filter,
                    search_scope=SUBTREE,
                    attributes=attributes,
                    paged_size=self.config.page_size,
                    paged_cookie=cookie
                )
                entries.extend(conn.entries)
                controls = (conn.result or {}).get('controls') or {}
                cookie = controls.get(PAGED_RESULTS_OID, {}).get('value', {}).get('cookie')
                if not cookie:
                    break
        except LDAPException as e:
            raise DirectoryError(f"LDAP search {ldap_filter} failed: {e}") from e
        return entries

    def resolve_group(self, group_id: str) -> GroupRef:
        attrs = self._search_base(group_id, "(objectClass=group)", GROUP_ATTRIBUTES)
        if attrs is None:
            raise GroupNotFoundError(group_id)
        return GroupRef(group_id, _group_name(attrs, group_id))

    def find_groups_by_display_name(self, name: str) -> List[GroupRef]:
        value = escape_filter_chars(name)
        ldap_filter = (
            f"(&(objectClass=group)"
            f"(|(displayName={value})(cn={value})(sAMAccountName={value})))"
        )
        return [
            GroupRef(str(e.entry_dn), _group_name(e.entry_attributes_as_dict, str(e.entry_dn)))
            for e in self._paged_search(ldap_filter, GROUP_ATTRIBUTES)
        ]

    def list_all_groups(self) -> List[GroupRef]:
        return [
            GroupRef(str(e.entry_dn), _group_name(e.entry_attributes_as_dict, str(e.entry_dn)))
            for e in self._paged_search("(objectClass=group)", GROUP_ATTRIBUTES)
        ]

    def list_group_members(self, group_id: str) -> List[DirectoryMember]:
        ldap_filter = f"(memberOf={escape_filter_chars(group_id)})"
        return [
            DirectoryMember(
                str(e.entry_dn),
                object_class_tag(e.entry_attributes_as_dict.get('objectClass'))
            )
            for e in self._paged_search(ldap_filter, ['objectClass'])
        ]

    def resolve_user(self, user_id: str) -> DirectoryUser:
        attrs = self._search_base(user_id, "(objectClass=user)", USER_ATTRIBUTES)
        if attrs is None:
            raise UserNotFoundError(user_id)

        uac = _first(attrs, 'userAccountControl')
        enabled = not (int(uac) & UAC_ACCOUNTDISABLE) if uac not in (None, '') else None

        return DirectoryUser(
            object_id=user_id,
            display_name=str(
                _first(attrs, 'displayName') or _first(attrs, 'cn')
                or _first(attrs, 'sAMAccountName') or ''
            ),
            user_principal_name=_first(attrs, 'userPrincipalName'),
            mail=_first(attrs, 'mail'),
            job_title=_first(attrs, 'title'),
            department=_first(attrs, 'department'),
            account_enabled=enabled,
        )
