"""
breachAD Model Module
=====================

Contains the core data models and the graph view of group membership.

Key Components:
- schemas.py: Typed dataclasses for groups, members and breach outcomes
- membership_graph.py: NetworkX-based view of a completed traversal
"""

from .schemas import (
    MemberKind,
    BreachStatus,
    GroupRef,
    DirectoryMember,
    DirectoryUser,
    MemberRecord,
    MembershipResult,
    BreachEntry,
    BreachOutcome,
    AuditSummary,
    AuditResult
)
from .membership_graph import MembershipGraph
