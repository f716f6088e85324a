"""
GUI Bridge Module
=================

High-level interface for the CLI and the Streamlit GUI.

This module orchestrates the entire audit pipeline:
1. Directory connection (Microsoft Graph or LDAP)
2. Seed group resolution (by id or display name)
3. Membership traversal
4. Breach verification (unless skipped)
5. Summary and report generation
6. HTML, graph and optional PDF export

Design Decisions:
-----------------
1. Single entry point (run_audit) for simplicity
2. Returns AuditResult which contains all data the GUI needs
3. Directory and breach clients can be injected
4. Progress updates via callback for real-time GUI updates
"""

import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..config import BreachADConfig, GraphConfig, LDAPConfig
from ..directory.base import DirectoryClient
from ..directory.graph_client import GraphDirectoryClient
from ..directory.ldap_client import LDAPDirectoryClient
from ..errors import DirectoryConnectionError
from ..intel.hibp_client import BreachClient, HIBPClient
from ..model.schemas import AuditResult
from ..analysis.resolver import MembershipResolver
from ..analysis.verifier import BreachVerifier, select_verification_targets
from ..reporting.report_builder import ReportBuilder
from ..reporting.export_html import HTMLExporter
from ..reporting.export_pdf import PDFExporter


BACKEND_GRAPH = "graph"
BACKEND_LDAP = "ldap"


def run_audit(
    group_ids: Optional[list[str]] = None,
    group_names: Optional[list[str]] = None,
    backend: str = BACKEND_GRAPH,
    tenant_id: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    server_ip: Optional[str] = None,
    domain: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    api_key: Optional[str] = None,
    rate_per_minute: Optional[int] = None,
    skip_breach_check: Optional[bool] = None,
    expand_nested: Optional[bool] = None,
    generate_pdf: Optional[bool] = None,
    browser_path: Optional[str] = None,
    output_dir: str = "output",
    config: Optional[dict] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
    clean_output: bool = True,
    directory_client: Optional[DirectoryClient] = None,
    breach_client: Optional[BreachClient] = None,
    sleep_func: Callable[[float], None] = time.sleep,
    device_flow_callback: Optional[Callable[[dict], None]] = None
) -> AuditResult:
    """Main entry point for running a group breach-exposure audit.

    Args:
        group_ids: Seed group ids (mutually exclusive with group_names)
        group_names: Seed group display names
        backend: "graph" (Microsoft Graph) or "ldap" (on-premises AD)
        tenant_id: Entra ID tenant for the Graph backend
        client_id: App registration client id for the Graph backend
        client_secret: App secret; device-code sign-in is used when absent
        server_ip: Domain controller for the LDAP backend
        domain: Domain name for the LDAP backend
        username: LDAP bind user
        password: LDAP bind password
        api_key: Have I Been Pwned API key
        rate_per_minute: HIBP rate tier (10, 50, 100, 500 or 1000)
        skip_breach_check: Enumerate only, no breach lookups
        expand_nested: Descend into nested groups
        generate_pdf: Also render the HTML report to PDF
        browser_path: Chrome/Edge executable for PDF export
        output_dir: Directory for output files
        config: Optional configuration dictionary (see BreachADConfig.from_dict)
        progress_callback: Optional callback for progress updates
        clean_output: Remove previous results from output_dir first
        directory_client: Pre-built directory client (skips backend setup)
        breach_client: Pre-built breach client (skips HIBP setup)
        sleep_func: Sleep function used between breach lookups
        device_flow_callback: Receives Graph device-code sign-in details

    Returns:
        AuditResult containing members, outcomes, summary and report paths

    Raises:
        ValueError: If seeds are missing or both kinds are given
        DirectoryConnectionError: If the directory session cannot be established
        NoValidGroupsError: If no seed group name could be resolved

    Example:
        result = run_audit(
            group_names=["Finance", "Payroll Admins"],
            tenant_id="contoso.onmicrosoft.com",
            client_id="...",
            client_secret="...",
            api_key="...",
            rate_per_minute=50
        )
    """

    def log(message: str):
        """Log message to callback if provided."""
        if progress_callback:
            progress_callback(message)
        print(message)

    started = datetime.now().isoformat()

    if bool(group_ids) == bool(group_names):
        raise ValueError("Provide either group ids or group names (exactly one of them)")

    audit_config = _build_config(
        config,
        output_dir,
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        api_key=api_key,
        rate_per_minute=rate_per_minute,
        skip_breach_check=skip_breach_check,
        expand_nested=expand_nested,
        generate_pdf=generate_pdf,
        browser_path=browser_path,
    )
    output_dir = audit_config.output.output_dir

    # Clean output directory if requested (removes old results)
    output_path = Path(output_dir)
    if clean_output and output_path.exists():
        log("[*] Cleaning previous output...")
        for item in output_path.iterdir():
            if item.is_file():
                item.unlink()
            elif item.is_dir():
                shutil.rmtree(item)

    output_path.mkdir(parents=True, exist_ok=True)

    # Step 1: Directory connection
    if directory_client is None:
        directory_client = _create_directory_client(
            backend, audit_config, server_ip, domain, username, password,
            log, device_flow_callback
        )

    log(f"[*] Connecting to directory ({backend})...")
    try:
        directory_client.connect()
    except DirectoryConnectionError as e:
        log(f"[!] Directory connection failed: {e}")
        raise

    try:
        # Step 2: Seed resolution and traversal
        resolver = MembershipResolver(
            directory_client,
            expand_nested=audit_config.expand_nested,
            verbose=False,
            progress_callback=log
        )

        if group_names:
            log(f"[*] Resolving {len(group_names)} group name(s)...")
            seeds = resolver.resolve_seed_names(group_names)
            seed_ids = [g.object_id for g in seeds]
        else:
            seed_ids = list(group_ids)

        nested_note = "with" if audit_config.expand_nested else "without"
        log(f"[*] Enumerating {len(seed_ids)} group(s) {nested_note} nested expansion...")
        membership = resolver.resolve(seed_ids)
        log(
            f"[+] Enumeration complete: {len(membership.members)} record(s), "
            f"{len(membership.users)} user record(s), {len(membership.group_errors)} group error(s)"
        )
    finally:
        directory_client.disconnect()

    # Step 3: Breach verification
    targets = select_verification_targets(membership.members)
    log(f"[*] {len(targets)} unique user(s) with email address")

    outcomes = []
    verification_skipped = False
    breach_settings = audit_config.breach

    if breach_settings.skip:
        log("[*] Breach verification skipped by request")
        verification_skipped = True
    elif breach_client is None and not breach_settings.api_key:
        log("[!] No HIBP API key configured (set HIBP_API_KEY or pass --api-key); skipping breach verification")
        verification_skipped = True
    else:
        owns_client = breach_client is None
        if owns_client:
            breach_client = HIBPClient(config=breach_settings)
        try:
            verifier = BreachVerifier(
                breach_client,
                rate_per_minute=breach_settings.rate_per_minute,
                verbose=False,
                progress_callback=log,
                sleep_func=sleep_func
            )
            outcomes = verifier.verify(targets)
        finally:
            if owns_client:
                breach_client.close()

    # Step 4: Build report
    log("[*] Generating reports...")
    output_settings = audit_config.output

    report_builder = ReportBuilder(output_dir)
    result = report_builder.build_report(
        membership,
        outcomes,
        verification_skipped=verification_skipped,
        generate_json=output_settings.generate_json,
        generate_csv=output_settings.generate_csv,
        generate_graph=output_settings.generate_graph,
        metadata={
            'started': started,
            'backend': backend,
            'seed_input': list(group_names or group_ids),
            'expand_nested': audit_config.expand_nested,
            'rate_per_minute': breach_settings.rate_per_minute,
            'config': audit_config.to_dict(redact_secrets=True),
        }
    )

    # Step 5: Export HTML report
    if output_settings.generate_html:
        html_exporter = HTMLExporter(output_dir)
        result.html_report_path = html_exporter.export(result)
        log(f"[+] HTML report saved to {result.html_report_path}")

        if output_settings.generate_pdf:
            pdf_exporter = PDFExporter(
                browser_path=output_settings.browser_path,
                verbose=False,
                progress_callback=log
            )
            result.pdf_report_path = pdf_exporter.export(result.html_report_path)
            if result.pdf_report_path:
                log(f"[+] PDF report saved to {result.pdf_report_path}")
    elif output_settings.generate_pdf:
        log("[!] PDF export needs the HTML report; enable HTML output")

    if result.report_path:
        log(f"[+] Report saved to {result.report_path}")
    if result.graph_path:
        log(f"[+] Membership graph saved to {result.graph_path}")

    summary = result.summary
    if verification_skipped:
        log(f"[+] Audit complete: {summary.unique_users} user(s), verification skipped")
    else:
        log(
            f"[+] Audit complete: {summary.breached_accounts} of {summary.emails_checked} "
            f"account(s) breached, {summary.total_breaches} breach(es) total"
        )

    return result


def _create_directory_client(
    backend: str,
    audit_config: BreachADConfig,
    server_ip: Optional[str],
    domain: Optional[str],
    username: Optional[str],
    password: Optional[str],
    log: Callable[[str], None],
    device_flow_callback: Optional[Callable[[dict], None]] = None
) -> DirectoryClient:
    if backend == BACKEND_GRAPH:
        return GraphDirectoryClient(
            config=audit_config.graph,
            verbose=False,
            progress_callback=log,
            device_flow_callback=device_flow_callback
        )

    if backend == BACKEND_LDAP:
        if not server_ip or not domain:
            raise ValueError("LDAP backend requires a domain controller address and a domain")
        return LDAPDirectoryClient(
            server_ip=server_ip,
            domain=domain,
            username=username,
            password=password,
            config=audit_config.ldap,
            verbose=False,
            progress_callback=log
        )

    raise ValueError(f"Unknown directory backend '{backend}' (expected 'graph' or 'ldap')")


def _build_config(
    config_dict: Optional[dict],
    output_dir: str,
    tenant_id: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    api_key: Optional[str] = None,
    rate_per_minute: Optional[int] = None,
    skip_breach_check: Optional[bool] = None,
    expand_nested: Optional[bool] = None,
    generate_pdf: Optional[bool] = None,
    browser_path: Optional[str] = None
) -> BreachADConfig:
    """Build BreachADConfig from a dictionary plus explicit overrides.

    Explicit arguments win over the dictionary; anything left unset falls
    back to the dataclass defaults and environment variables.

    Raises:
        ValueError: If the rate tier is not supported
    """
    data = {k: dict(v) if isinstance(v, dict) else v for k, v in (config_dict or {}).items()}

    graph = data.setdefault("graph", {})
    breach = data.setdefault("breach", {})
    output = data.setdefault("output", {})

    for key, value in (("tenant_id", tenant_id), ("client_id", client_id),
                       ("client_secret", client_secret)):
        if value:
            graph[key] = value

    if api_key:
        breach["api_key"] = api_key
    if rate_per_minute is not None:
        breach["rate_per_minute"] = rate_per_minute
    if skip_breach_check is not None:
        breach["skip"] = skip_breach_check

    output.setdefault("output_dir", output_dir)
    if generate_pdf is not None:
        output["generate_pdf"] = generate_pdf
    if browser_path:
        output["browser_path"] = browser_path

    if expand_nested is not None:
        data["expand_nested"] = expand_nested

    return BreachADConfig.from_dict(data)


# Additional helper functions for the GUI

def validate_directory_connection(
    backend: str = BACKEND_GRAPH,
    tenant_id: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    server_ip: Optional[str] = None,
    domain: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None
) -> tuple[bool, str]:
    """Validate directory connectivity before running a full audit.

    Returns:
        Tuple of (success, message)
    """
    try:
        if backend == BACKEND_GRAPH:
            client = GraphDirectoryClient(
                GraphConfig(tenant_id=tenant_id, client_id=client_id, client_secret=client_secret),
                verbose=False
            )
        elif backend == BACKEND_LDAP:
            if not server_ip or not domain:
                return False, "Domain controller address and domain are required"
            client = LDAPDirectoryClient(
                server_ip=server_ip,
                domain=domain,
                username=username,
                password=password,
                config=LDAPConfig(),
                verbose=False
            )
        else:
            return False, f"Unknown directory backend '{backend}'"

        client.connect()
        client.disconnect()
        return True, "Connection successful"

    except Exception as e:
        return False, str(e)

