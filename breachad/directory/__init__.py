"""
breachAD Directory Module
=========================

Directory backends used by the membership resolver.

Supported Sources:
- Microsoft Graph (Entra ID) using requests + msal
- On-premises Active Directory over LDAP (using ldap3)

Design Philosophy:
- All backends satisfy the DirectoryClient protocol
- Backends only look things up; traversal policy lives in analysis/
"""

from .base import DirectoryClient
from .graph_client import GraphDirectoryClient
from .ldap_client import LDAPDirectoryClient
