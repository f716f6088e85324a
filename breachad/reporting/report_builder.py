"""
Report Builder Module
=====================

Builds the audit result container and its machine-readable exports.

The report contains:
- Seed groups, member records and group errors
- Breach outcomes per checked account
- Run summary
- Export references (JSON, CSV, membership graph)

Design Decisions:
-----------------
1. Reports are structured data (JSON-serializable)
2. Tabular exports go through pandas so column order is stable
3. Includes all data needed for GUI display
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from ..analysis.summarizer import AuditSummarizer
from ..model.membership_graph import MembershipGraph
from ..model.schemas import AuditResult, MembershipResult
from .visualization import GraphVisualizer


MEMBER_COLUMNS = [
    "kind", "display_name", "email", "user_principal_name", "job_title",
    "department", "account_enabled", "parent_group_name", "parent_group_id",
    "nesting_level", "object_id",
]

OUTCOME_COLUMNS = [
    "display_name", "email", "department", "parent_group", "status",
    "breach_count", "breaches", "error",
]


def members_dataframe(result: AuditResult) -> pd.DataFrame:
    """Member records as a DataFrame in emission order."""
    rows = [m.to_dict() for m in result.members]
    return pd.DataFrame(rows, columns=MEMBER_COLUMNS)


def outcomes_dataframe(result: AuditResult) -> pd.DataFrame:
    """Breach outcomes as a DataFrame, breach names joined with '; '."""
    rows = []
    for outcome in result.outcomes:
        row = outcome.to_dict()
        row["breaches"] = "; ".join(b.name for b in outcome.breaches)
        rows.append(row)
    return pd.DataFrame(rows, columns=OUTCOME_COLUMNS)


class ReportBuilder:
    """Builds audit reports from traversal and verification output.

    Usage:
        builder = ReportBuilder(output_dir="output")
        result = builder.build_report(membership, outcomes)
        print(result.summary.breached_accounts)
    """

    def __init__(self, output_dir: str = "output"):
        """Initialize the report builder.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def build_report(
        self,
        membership: MembershipResult,
        outcomes: Optional[list] = None,
        verification_skipped: bool = False,
        generate_json: bool = True,
        generate_csv: bool = True,
        generate_graph: bool = True,
        metadata: Optional[dict] = None
    ) -> AuditResult:
        """Build a complete audit report.

        Args:
            membership: Traversal output
            outcomes: Breach outcomes (empty when verification was skipped)
            verification_skipped: Whether breach verification was skipped
            generate_json: Write breachad_results.json
            generate_csv: Write members.csv and breach_results.csv
            generate_graph: Write the interactive membership graph
            metadata: Extra metadata merged into the result

        Returns:
            AuditResult with all report data
        """
        outcomes = outcomes or []
        summary = AuditSummarizer(membership, outcomes, verification_skipped).summarize()
        graph = MembershipGraph.from_result(membership)

        result = AuditResult(
            membership=membership,
            outcomes=outcomes,
            summary=summary,
            metadata={
                'timestamp': datetime.now().isoformat(),
                'graph_nodes': graph.node_count,
                'graph_edges': graph.edge_count,
                'nesting_cycles': graph.has_cycles(),
                **(metadata or {}),
            }
        )

        if generate_graph:
            visualizer = GraphVisualizer(graph, str(self.output_dir))
            result.graph_path = visualizer.create_membership_visualization(outcomes)

        if generate_csv:
            result.csv_paths = self._save_csv_reports(result)

        if generate_json:
            result.report_path = self._save_json_report(result)

        return result

    def _save_csv_reports(self, result: AuditResult) -> dict[str, str]:
        paths = {}

        members_path = self.output_dir / "members.csv"
        members_dataframe(result).to_csv(members_path, index=False)
        paths["members"] = str(members_path)

        if result.outcomes:
            outcomes_path = self.output_dir / "breach_results.csv"
            outcomes_dataframe(result).to_csv(outcomes_path, index=False)
            paths["breach_results"] = str(outcomes_path)

        return paths

    def _save_json_report(self, result: AuditResult) -> str:
        """Save the report as JSON.

        Args:
            result: AuditResult to save

        Returns:
            Path to saved JSON file
        """
        json_path = self.output_dir / "breachad_results.json"
        result.report_path = str(json_path)

        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(result.to_dict(), f, indent=2, default=str)

        return str(json_path)


def generate_text_report(result: AuditResult) -> str:
    """Generate a text-based report summary.

    Args:
        result: AuditResult to summarize

    Returns:
        Formatted text report
    """
    summary = result.summary
    seeds = ", ".join(g.display_name for g in result.membership.seed_groups) or "none"

    lines = [
        "=" * 60,
        "breachAD - Group Membership Breach Exposure Report",
        "=" * 60,
        "",
        f"Generated: {result.metadata.get('timestamp', 'Unknown')}",
        f"Groups: {seeds}",
        "",
        "MEMBERSHIP",
        "-" * 40,
        f"Groups processed: {summary.groups_processed}",
        f"Group errors: {summary.group_errors}",
        f"Member records: {summary.total_members}",
        f"Unique users: {summary.unique_users}",
        f"Nested groups: {summary.unique_nested_groups}",
        f"Users with email: {summary.users_with_email}",
        "",
    ]

    for group_id, message in result.membership.group_errors.items():
        lines.append(f"  ! {group_id}: {message}")
    if result.membership.group_errors:
        lines.append("")

    lines.extend(["BREACH VERIFICATION", "-" * 40])

    if summary.verification_skipped:
        lines.append("Skipped")
    else:
        lines.extend([
            f"Accounts checked: {summary.emails_checked}",
            f"  - Breached: {summary.breached_accounts}",
            f"  - Clean: {summary.clean_accounts}",
            f"  - Errors: {summary.error_accounts}",
            f"Total breaches: {summary.total_breaches}",
        ])

        breached = result.breached_outcomes
        if breached:
            lines.extend(["", "BREACHED ACCOUNTS", "-" * 40])
            for outcome in sorted(breached, key=lambda o: o.breach_count, reverse=True):
                lines.append(f"{outcome.email} ({outcome.display_name}) - {outcome.breach_count} breach(es)")
                for breach in outcome.breaches:
                    lines.append(f"      {breach.name} [{breach.date}]")

    lines.extend([
        "",
        "=" * 60,
        "End of Report",
        "=" * 60,
    ])

    return "\n".join(lines)
