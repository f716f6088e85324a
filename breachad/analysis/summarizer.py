"""
Audit Summarizer
================

Derives run-level aggregates from the member and outcome lists.

All figures are pure functions of the two lists; nothing is queried again.
"""

from typing import Optional

from ..model.schemas import (
    AuditSummary, BreachStatus, MembershipResult
)


class AuditSummarizer:
    """Computes AuditSummary figures for one run.

    Usage:
        summarizer = AuditSummarizer(membership, outcomes)
        summary = summarizer.summarize()
        print(summarizer.get_department_breakdown())
    """

    def __init__(
        self,
        membership: MembershipResult,
        outcomes: Optional[list] = None,
        verification_skipped: bool = False
    ):
        self.membership = membership
        self.outcomes = outcomes or []
        self.verification_skipped = verification_skipped

    def summarize(self) -> AuditSummary:
        users = self.membership.users
        user_ids = {m.object_id for m in users}
        nested_ids = {m.object_id for m in self.membership.nested_groups}
        emails = {m.email.strip().lower() for m in users if m.email and m.email.strip()}

        return AuditSummary(
            seed_groups=len(self.membership.seed_groups),
            groups_processed=len(self.membership.groups_expanded),
            group_errors=len(self.membership.group_errors),
            total_members=len(self.membership.members),
            unique_users=len(user_ids),
            unique_nested_groups=len(nested_ids),
            users_with_email=len(emails),
            emails_checked=len(self.outcomes),
            total_breaches=sum(o.breach_count for o in self.outcomes),
            breached_accounts=sum(1 for o in self.outcomes if o.status == BreachStatus.BREACHED),
            clean_accounts=sum(1 for o in self.outcomes if o.status == BreachStatus.CLEAN),
            error_accounts=sum(1 for o in self.outcomes if o.status == BreachStatus.ERROR),
            verification_skipped=self.verification_skipped,
        )

    def get_department_breakdown(self) -> dict:
        """Breached account count per department, most affected first."""
        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            if outcome.status != BreachStatus.BREACHED:
                continue
            department = outcome.department or "Unspecified"
            counts[department] = counts.get(department, 0) + 1
        return dict(sorted(counts.items(), key=lambda x: x[1], reverse=True))

    def get_top_breaches(self, top_n: int = 10) -> list[tuple[str, int]]:
        """Most frequent breach names across all checked accounts."""
        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            for breach in outcome.breaches:
                counts[breach.name] = counts.get(breach.name, 0) + 1
        return sorted(counts.items(), key=lambda x: x[1], reverse=True)[:top_n]
