"""
HTML Export Module
==================

Exports audit results as a standalone HTML report.

Features:
- Self-contained HTML with embedded styles
- Membership table indented by nesting level
- Per-account breach details
- Print-friendly styling (used for PDF conversion)
"""

from datetime import datetime
from pathlib import Path
import html

from ..model.schemas import (
    AuditResult, AuditSummary, BreachOutcome, BreachStatus, MemberRecord
)


def _esc(value) -> str:
    if value is None or value == "":
        return "&mdash;"
    return html.escape(str(value))


class HTMLExporter:
    """Exports audit results to HTML format.

    Usage:
        exporter = HTMLExporter("output")
        html_path = exporter.export(result, "breachad_report.html")
    """

    CSS = """
    :root {
        --bg-primary: #1a202c;
        --bg-secondary: #2d3748;
        --bg-tertiary: #4a5568;
        --text-primary: #e2e8f0;
        --text-secondary: #a0aec0;
        --accent: #ecc94b;
        --breached: #e53e3e;
        --error: #ed8936;
        --clean: #48bb78;
        --info: #4299e1;
    }

    * { box-sizing: border-box; margin: 0; padding: 0; }

    body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
        background-color: var(--bg-primary);
        color: var(--text-primary);
        line-height: 1.5;
        padding: 2rem;
    }

    .container { max-width: 1280px; margin: 0 auto; }

    h1 {
        color: var(--accent);
        font-size: 2.3rem;
        border-bottom: 2px solid var(--accent);
        padding-bottom: 0.5rem;
        margin-bottom: 0.75rem;
    }

    h2 { font-size: 1.4rem; margin: 2rem 0 1rem; }

    .header { text-align: center; margin-bottom: 2.5rem; }
    .header .subtitle { color: var(--text-secondary); }

    .summary-grid {
        display: grid;
        grid-template-columns: repeat(auto-fit, minmax(170px, 1fr));
        gap: 1rem;
    }

    .stat-card {
        background: var(--bg-secondary);
        padding: 1.25rem;
        border-radius: 8px;
        text-align: center;
    }
    .stat-card .number { font-size: 2.2rem; font-weight: bold; color: var(--accent); }
    .stat-card .label { color: var(--text-secondary); font-size: 0.8rem; text-transform: uppercase; }
    .stat-card.breached .number { color: var(--breached); }
    .stat-card.clean .number { color: var(--clean); }
    .stat-card.error .number { color: var(--error); }

    table.data-table { width: 100%; border-collapse: collapse; font-size: 0.9rem; }
    .data-table th, .data-table td {
        padding: 0.55rem 0.75rem;
        text-align: left;
        border-bottom: 1px solid var(--bg-tertiary);
        vertical-align: top;
    }
    .data-table th { color: var(--accent); font-weight: 600; }
    .data-table tr.group-row td { color: var(--info); font-weight: 600; }
    .data-table tr.disabled td { color: var(--text-secondary); }

    .status-badge {
        padding: 0.15rem 0.6rem;
        border-radius: 4px;
        font-size: 0.8rem;
        font-weight: bold;
        color: #1a202c;
    }
    .status-badge.breached { background: var(--breached); color: white; }
    .status-badge.clean { background: var(--clean); }
    .status-badge.error { background: var(--error); }

    .breach-list { list-style: none; }
    .breach-list li { padding: 0.1rem 0; }
    .breach-list .date { color: var(--text-secondary); }
    .breach-list .classes { color: var(--text-secondary); font-size: 0.8rem; }

    .notice {
        background: var(--bg-secondary);
        border-left: 4px solid var(--info);
        padding: 1rem;
        border-radius: 4px;
    }
    .notice.warning { border-left-color: var(--error); }

    .footer {
        margin-top: 3rem;
        text-align: center;
        color: var(--text-secondary);
        font-size: 0.85rem;
        padding-top: 1.5rem;
        border-top: 1px solid var(--bg-tertiary);
    }

    @media print {
        body { background: white; color: black; padding: 0.5rem; }
        .stat-card, .notice { background: #f7fafc; }
        .data-table tr { page-break-inside: avoid; }
    }
    """

    def __init__(self, output_dir: str = "output"):
        """Initialize the HTML exporter.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export(
        self,
        result: AuditResult,
        filename: str = "breachad_report.html"
    ) -> str:
        """Export audit result to HTML.

        Args:
            result: AuditResult to export
            filename: Output filename

        Returns:
            Path to generated HTML file
        """
        output_path = self.output_dir / filename

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.render(result))

        return str(output_path)

    def render(self, result: AuditResult) -> str:
        """Generate the complete HTML document."""
        timestamp = result.metadata.get('timestamp', datetime.now().isoformat())

        sections = [
            self._generate_header(result, timestamp),
            self._generate_summary(result.summary),
            self._generate_group_errors(result),
            self._generate_members(result.members),
            self._generate_breaches(result),
            self._generate_footer(),
        ]

        body_content = "\n".join(s for s in sections if s)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>breachAD Group Breach Report</title>
    <style>
    {self.CSS}
    </style>
</head>
<body>
    <div class="container">
        {body_content}
    </div>
</body>
</html>"""

    def _generate_header(self, result: AuditResult, timestamp: str) -> str:
        seeds = ", ".join(g.display_name for g in result.membership.seed_groups) or "none"
        return f"""
        <div class="header">
            <h1>breach<span style="color: #a16207;">AD</span></h1>
            <p class="subtitle">Group Membership Breach Exposure Report</p>
            <p class="subtitle">Groups: {html.escape(seeds)}</p>
            <p class="subtitle">Generated: {html.escape(str(timestamp))}</p>
        </div>
        """

    def _generate_summary(self, summary: AuditSummary) -> str:
        cards = [
            ("", summary.groups_processed, "Groups Processed"),
            ("", summary.unique_users, "Unique Users"),
            ("", summary.unique_nested_groups, "Nested Groups"),
            ("", summary.users_with_email, "Users With Email"),
        ]
        if not summary.verification_skipped:
            cards.extend([
                ("breached", summary.breached_accounts, "Breached Accounts"),
                ("breached", summary.total_breaches, "Total Breaches"),
                ("clean", summary.clean_accounts, "Clean Accounts"),
                ("error", summary.error_accounts, "Check Errors"),
            ])

        cards_html = "".join(
            f"""
            <div class="stat-card {css}">
                <div class="number">{value}</div>
                <div class="label">{label}</div>
            </div>"""
            for css, value, label in cards
        )
        return f"""
        <h2>Summary</h2>
        <div class="summary-grid">{cards_html}
        </div>
        """

    def _generate_group_errors(self, result: AuditResult) -> str:
        errors = result.membership.group_errors
        if not errors:
            return ""
        items = "".join(
            f"<li><code>{html.escape(group_id)}</code>: {html.escape(message)}</li>"
            for group_id, message in errors.items()
        )
        return f"""
        <h2>Groups Not Processed</h2>
        <div class="notice warning"><ul>{items}</ul></div>
        """

    def _generate_members(self, members: list) -> str:
        if not members:
            return "<h2>Members</h2><p>No members found.</p>"

        rows = "".join(self._generate_member_row(m) for m in members)
        return f"""
        <h2>Members ({len(members)} records)</h2>
        <table class="data-table">
            <tr>
                <th>Name</th><th>Type</th><th>Email</th><th>Job Title</th>
                <th>Department</th><th>Enabled</th><th>Parent Group</th><th>Level</th>
            </tr>
            {rows}
        </table>
        """

    def _generate_member_row(self, member: MemberRecord) -> str:
        indent = f"padding-left: {0.75 + member.nesting_level * 1.25:.2f}rem;"
        css = "group-row" if member.is_group else ("disabled" if member.account_enabled is False else "")
        if member.account_enabled is None:
            enabled = "&mdash;"
        else:
            enabled = "Yes" if member.account_enabled else "No"
        return f"""
            <tr class="{css}">
                <td style="{indent}">{_esc(member.display_name)}</td>
                <td>{member.kind.value}</td>
                <td>{_esc(member.email)}</td>
                <td>{_esc(member.job_title)}</td>
                <td>{_esc(member.department)}</td>
                <td>{enabled}</td>
                <td>{_esc(member.parent_group_name)}</td>
                <td>{member.nesting_level}</td>
            </tr>"""

    def _generate_breaches(self, result: AuditResult) -> str:
        if result.summary.verification_skipped:
            return """
            <h2>Breach Verification</h2>
            <div class="notice">Breach verification was skipped for this run.</div>
            """
        if not result.outcomes:
            return "<h2>Breach Verification</h2><p>No accounts with email addresses were checked.</p>"

        # Breached first, then errors, then clean; stable within each bucket
        order = {BreachStatus.BREACHED: 0, BreachStatus.ERROR: 1, BreachStatus.CLEAN: 2}
        outcomes = sorted(result.outcomes, key=lambda o: order[o.status])
        rows = "".join(self._generate_outcome_row(o) for o in outcomes)

        return f"""
        <h2>Breach Verification ({len(result.outcomes)} accounts)</h2>
        <table class="data-table">
            <tr>
                <th>Account</th><th>Email</th><th>Department</th><th>Group</th>
                <th>Status</th><th>Breaches</th><th>Details</th>
            </tr>
            {rows}
        </table>
        """

    def _generate_outcome_row(self, outcome: BreachOutcome) -> str:
        css = outcome.status.value.lower()
        if outcome.status == BreachStatus.ERROR:
            details = f"<span class='date'>{_esc(outcome.error)}</span>"
        elif outcome.breaches:
            details = "<ul class='breach-list'>" + "".join(
                f"<li><strong>{html.escape(b.name)}</strong> "
                f"<span class='date'>({html.escape(b.date)})</span><br>"
                f"<span class='classes'>{html.escape(b.data_exposed)}</span></li>"
                for b in outcome.breaches
            ) + "</ul>"
        else:
            details = "&mdash;"

        return f"""
            <tr>
                <td>{_esc(outcome.display_name)}</td>
                <td>{_esc(outcome.email)}</td>
                <td>{_esc(outcome.department)}</td>
                <td>{_esc(outcome.parent_group)}</td>
                <td><span class="status-badge {css}">{outcome.status.value}</span></td>
                <td>{outcome.breach_count}</td>
                <td>{details}</td>
            </tr>"""

    def _generate_footer(self) -> str:
        return """
        <div class="footer">
            <p>Generated by breachAD - Group Membership Breach Exposure Audit</p>
            <p>Breach data provided by Have I Been Pwned. For authorized security assessment purposes only.</p>
        </div>
        """
