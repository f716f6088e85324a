"""
breachAD - Group Membership Breach Exposure Audit
=================================================

Enumerates the members of directory groups (including nested groups) and
checks every member's email address against Have I Been Pwned.

Architecture Overview:
----------------------
- directory/: Microsoft Graph and LDAP directory clients
- intel/: Breach-intelligence client (Have I Been Pwned)
- model/: Typed data models and the membership graph
- analysis/: Membership traversal, rate-limited verification, aggregates
- reporting/: JSON/CSV/HTML/PDF reports and graph visualization
- gui_integration/: Bridge module for the CLI and the Streamlit GUI

Design Decisions:
-----------------
1. Traversal and verification are single-threaded and deterministic
2. All data models use Python dataclasses for type safety and clarity
3. Lookup failures are contained to the group, member or user they concern
4. Directory and breach backends sit behind small protocols
"""

__version__ = "1.0.0"
__author__ = "breachAD Team"

from .config import BreachADConfig
