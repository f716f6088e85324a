#!/usr/bin/env python3
"""
breachAD - Group Membership Breach Exposure Audit
=================================================

Command-line interface for running a group breach-exposure audit.

Usage:
    # Microsoft Graph, groups by name
    breachad --group-names "Finance" "Payroll Admins" --tenant-id contoso.onmicrosoft.com \\
        --client-id <app-id> --client-secret <secret> --api-key <hibp-key>

    # On-premises AD over LDAP, groups by distinguished name
    breachad --backend ldap -s 192.168.1.100 -d corp.local -u auditor -p Password123 \\
        --group-ids "CN=Finance,OU=Groups,DC=corp,DC=local" --rate 50

    # Enumerate only
    breachad --group-names Finance --skip-breach-check

Options:
    --group-ids         Seed group ids (Graph object ids or LDAP DNs)
    --group-names       Seed group display names
    --no-nested         Do not descend into nested groups
    --rate              HIBP requests per minute (10, 50, 100, 500, 1000)
    --skip-breach-check Enumerate members only
    --api-key           Have I Been Pwned API key
    --pdf               Also render the HTML report to PDF
    --backend           Directory backend: graph (default) or ldap
    --output, -o        Output directory (default: ./output)
    --verbose, -v       Verbose output

Environment Variables:
    HIBP_API_KEY            Have I Been Pwned API key
    AZURE_TENANT_ID         Entra ID tenant
    AZURE_CLIENT_ID         App registration client id
    AZURE_CLIENT_SECRET     App registration secret (device-code sign-in if unset)
"""

import argparse
import sys

from .config import SUPPORTED_RATE_TIERS, DEFAULT_RATE_TIER
from .gui_integration.bridge import run_audit, BACKEND_GRAPH, BACKEND_LDAP
from .reporting.report_builder import generate_text_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="breachad",
        description="breachAD - Group Membership Breach Exposure Audit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Microsoft Graph with app-only authentication
  %(prog)s --group-names Finance --tenant-id contoso.onmicrosoft.com --client-id <id> --client-secret <secret>

  # LDAP backend, 50 requests/minute subscription
  %(prog)s --backend ldap -s 192.168.1.100 -d corp.local -u auditor -p Password123 --group-names "Domain Admins" --rate 50

  # Enumerate only, PDF report
  %(prog)s --group-ids 0f3c1d2e-... --skip-breach-check --pdf
        """
    )

    # Seed groups
    seed_group = parser.add_argument_group("Seed Groups")
    seeds = seed_group.add_mutually_exclusive_group(required=True)
    seeds.add_argument(
        "--group-ids",
        nargs="+",
        metavar="ID",
        help="Group ids to audit (Graph object ids or LDAP distinguished names)"
    )
    seeds.add_argument(
        "--group-names",
        nargs="+",
        metavar="NAME",
        help="Group display names to audit"
    )
    seed_group.add_argument(
        "--no-nested",
        action="store_true",
        help="Only audit direct members; do not descend into nested groups"
    )

    # Breach verification
    breach_group = parser.add_argument_group("Breach Verification")
    breach_group.add_argument(
        "--rate",
        type=int,
        choices=SUPPORTED_RATE_TIERS,
        default=DEFAULT_RATE_TIER,
        help=f"HIBP subscription rate in requests per minute (default: {DEFAULT_RATE_TIER})"
    )
    breach_group.add_argument(
        "--skip-breach-check",
        action="store_true",
        help="Enumerate members without checking breaches"
    )
    breach_group.add_argument(
        "--api-key",
        help="Have I Been Pwned API key (default: $HIBP_API_KEY)"
    )

    # Directory backend
    directory_group = parser.add_argument_group("Directory")
    directory_group.add_argument(
        "--backend",
        choices=[BACKEND_GRAPH, BACKEND_LDAP],
        default=BACKEND_GRAPH,
        help="Directory backend (default: graph)"
    )

    graph_group = parser.add_argument_group("Microsoft Graph")
    graph_group.add_argument(
        "--tenant-id",
        help="Entra ID tenant id or domain (default: $AZURE_TENANT_ID)"
    )
    graph_group.add_argument(
        "--client-id",
        help="App registration client id (default: $AZURE_CLIENT_ID)"
    )
    graph_group.add_argument(
        "--client-secret",
        help="App registration secret; device-code sign-in is used when omitted"
    )

    ldap_group = parser.add_argument_group("LDAP")
    ldap_group.add_argument(
        "-s", "--server",
        help="Domain controller IP address or hostname"
    )
    ldap_group.add_argument(
        "-d", "--domain",
        help="Domain name (e.g., corp.local)"
    )
    ldap_group.add_argument(
        "-u", "--username",
        help="Domain username for LDAP authentication"
    )
    ldap_group.add_argument(
        "-p", "--password",
        help="Domain password for LDAP authentication"
    )
    ldap_group.add_argument(
        "--ldaps",
        action="store_true",
        help="Use LDAPS (port 636)"
    )

    # Output options
    output_group = parser.add_argument_group("Output")
    output_group.add_argument(
        "-o", "--output",
        default="output",
        help="Output directory for results (default: ./output)"
    )
    output_group.add_argument(
        "--pdf",
        action="store_true",
        help="Also render the HTML report to PDF (needs Chrome, Chromium or Edge)"
    )
    output_group.add_argument(
        "--browser",
        help="Browser executable used for PDF rendering"
    )
    output_group.add_argument(
        "--no-graph",
        action="store_true",
        help="Do not render the interactive membership graph"
    )

    # General options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="breachAD 1.0.0"
    )

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.backend == BACKEND_LDAP and not (args.server and args.domain):
        parser.error("LDAP backend requires -s (server) and -d (domain)")

    config = {
        "ldap": {
            "use_ssl": args.ldaps,
        },
        "output": {
            "output_dir": args.output,
            "generate_graph": not args.no_graph,
        },
        "verbose": args.verbose,
    }

    print_banner()

    try:
        print(f"\n{'='*60}")
        print("Starting Audit")
        print(f"{'='*60}\n")

        # run_audit prints its own progress; the callback is not needed here
        result = run_audit(
            group_ids=args.group_ids,
            group_names=args.group_names,
            backend=args.backend,
            tenant_id=args.tenant_id,
            client_id=args.client_id,
            client_secret=args.client_secret,
            server_ip=args.server,
            domain=args.domain,
            username=args.username,
            password=args.password,
            api_key=args.api_key,
            rate_per_minute=args.rate,
            skip_breach_check=args.skip_breach_check,
            expand_nested=not args.no_nested,
            generate_pdf=args.pdf,
            browser_path=args.browser,
            output_dir=args.output,
            config=config
        )

        summary = result.summary
        print(f"\n{'='*60}")
        print("Audit Complete")
        print(f"{'='*60}\n")

        print(f"Groups processed: {summary.groups_processed} ({summary.group_errors} error(s))")
        print(f"Unique users: {summary.unique_users} ({summary.users_with_email} with email)")
        if summary.verification_skipped:
            print("Breach verification: skipped")
        else:
            print(f"Breached accounts: {summary.breached_accounts} of {summary.emails_checked}")
            print(f"  - Total breaches: {summary.total_breaches}")
            print(f"  - Check errors: {summary.error_accounts}")

        print(f"\nResults saved to:")
        if result.report_path:
            print(f"  - JSON: {result.report_path}")
        for name, path in result.csv_paths.items():
            print(f"  - CSV ({name}): {path}")
        if result.html_report_path:
            print(f"  - HTML: {result.html_report_path}")
        if result.pdf_report_path:
            print(f"  - PDF: {result.pdf_report_path}")
        if result.graph_path:
            print(f"  - Graph: {result.graph_path}")

        # Print text report if verbose
        if args.verbose:
            print(f"\n{'='*60}")
            print(generate_text_report(result))

        return 0

    except Exception as e:
        print(f"\n[!] Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def print_banner():
    """Print the breachAD banner."""
    banner = r"""
  _                     _        _    ____
 | |__  _ __ ___  __ _  ___| |__   / \  |  _ \
 | '_ \| '__/ _ \/ _` |/ __| '_ \ / _ \ | | | |
 | |_) | | |  __/ (_| | (__| | | / ___ \| |_| |
 |_.__/|_|  \___|\__,_|\___|_| |_/_/   \_\____/

  Group Membership Breach Exposure Audit
  For authorized security assessment only
    """
    print(banner)


if __name__ == "__main__":
    sys.exit(main())
