"""
breachAD Analysis Module
========================

Membership traversal, breach verification and run aggregates.

Components:
- resolver.py: Depth-first group membership walk with cycle protection
- verifier.py: Rate-limited, serial breach lookups
- summarizer.py: Run-level aggregates for reporting
"""

from .resolver import MembershipResolver
from .verifier import (
    BreachVerifier,
    compute_delay,
    normalize_breaches,
    select_verification_targets
)
from .summarizer import AuditSummarizer
