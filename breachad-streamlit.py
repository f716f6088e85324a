import streamlit as st
import html
import threading
from pathlib import Path
import time
import sys
import os
import pandas as pd
from queue import Queue

# Add breachad package to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from breachad.config import SUPPORTED_RATE_TIERS, DEFAULT_RATE_TIER
from breachad.gui_integration.bridge import run_audit, validate_directory_connection
from breachad.analysis.summarizer import AuditSummarizer
from breachad.reporting.report_builder import members_dataframe, outcomes_dataframe

# Page config
st.set_page_config(
    page_title="breachAD",
    page_icon="🔐",
    layout="wide",
    initial_sidebar_state="collapsed"
)

# Custom CSS for styling
st.markdown("""
<style>
    .stApp {
        background-color: #1f2937;
    }
    .main-header {
        font-size: 3rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
    }
    .breach-text {
        color: white;
    }
    .ad-text {
        color: #a16207;
    }
    .subtitle {
        color: #9ca3af;
        margin-bottom: 2rem;
    }
    .terminal-output {
        background-color: #000000;
        color: #e5e7eb;
        padding: 1rem;
        border-radius: 0.5rem;
        font-family: monospace;
        font-size: 0.875rem;
        height: 420px;
        overflow-y: auto;
    }
    .success-line {
        color: #4ade80;
    }
    .warning-line {
        color: #facc15;
    }
    .info-line {
        color: #60a5fa;
    }
    .trace-line {
        color: #6b7280;
    }
    .stTabs [data-baseweb="tab-list"] {
        gap: 0.5rem;
        background-color: #1f2937;
    }
    .stTabs [aria-selected="true"] {
        background-color: #854d0e;
        color: white;
        border-bottom: 2px solid #a16207;
    }
</style>
""", unsafe_allow_html=True)

# Initialize session state
if 'terminal_output' not in st.session_state:
    st.session_state.terminal_output = []
if 'is_running' not in st.session_state:
    st.session_state.is_running = False
if 'audit_result' not in st.session_state:
    st.session_state.audit_result = None
if 'output_queue' not in st.session_state:
    st.session_state.output_queue = Queue()
if 'audit_error' not in st.session_state:
    st.session_state.audit_error = None


def _split_seeds(text: str) -> list:
    """One seed per line; blank lines ignored."""
    return [line.strip() for line in text.splitlines() if line.strip()]


# Header
st.markdown('<div class="main-header"><span class="breach-text">breach</span><span class="ad-text">AD</span></div>', unsafe_allow_html=True)
st.markdown('<div class="subtitle">Group Membership Breach Exposure Audit</div>', unsafe_allow_html=True)

# Tabs
tab1, tab2, tab3, tab4, tab5 = st.tabs(["Configuration", "Terminal Output", "Members", "Breach Results", "Report"])

# Configuration Tab
with tab1:
    st.markdown("### Directory")

    backend_label = st.radio(
        "Backend",
        ["Microsoft Graph (Entra ID)", "LDAP (on-premises AD)"],
        horizontal=True
    )
    backend = "graph" if backend_label.startswith("Microsoft") else "ldap"

    col1, col2 = st.columns(2)
    if backend == "graph":
        with col1:
            tenant_id = st.text_input("Tenant ID", value=st.session_state.get('tenant_id', ''))
            client_id = st.text_input("Client ID", value=st.session_state.get('client_id', ''))
        with col2:
            client_secret = st.text_input("Client Secret", type="password",
                                          help="Leave empty to sign in with a device code")
        server_ip = domain = username = password = None
    else:
        with col1:
            server_ip = st.text_input("Domain Controller", placeholder="192.168.1.100", value=st.session_state.get('ip', ''))
            domain = st.text_input("Domain Name", placeholder="example.local", value=st.session_state.get('domain', ''))
        with col2:
            username = st.text_input("Username", placeholder="username", value=st.session_state.get('username', ''))
            password = st.text_input("Password", type="password", placeholder="••••••••")
        tenant_id = client_id = client_secret = None

    st.markdown("### Groups")
    seed_mode = st.radio("Identify groups by", ["Display name", "Group id"], horizontal=True)
    seed_text = st.text_area(
        "Groups (one per line)",
        value=st.session_state.get('seed_text', ''),
        help="Group display names, Graph object ids or LDAP distinguished names"
    )
    expand_nested = st.checkbox("Expand nested groups", value=True)

    st.markdown("### Breach Verification")
    col_b1, col_b2 = st.columns(2)
    with col_b1:
        api_key = st.text_input("HIBP API Key", type="password",
                                help="Defaults to the HIBP_API_KEY environment variable")
        skip_breach_check = st.checkbox("Skip breach verification", value=False)
    with col_b2:
        rate = st.selectbox(
            "Rate tier (requests/minute)",
            SUPPORTED_RATE_TIERS,
            index=SUPPORTED_RATE_TIERS.index(DEFAULT_RATE_TIER)
        )
        st.caption(f"{-(-60000 // rate)} ms between lookups")

    col_opt1, col_opt2 = st.columns(2)
    with col_opt1:
        generate_pdf = st.checkbox("Generate PDF report", value=False,
                                   help="Requires Chrome, Chromium or Edge")
    with col_opt2:
        clean_output = st.checkbox("Clean Previous Output", value=True,
                                   help="Remove previous results before running")

    st.markdown("<br>", unsafe_allow_html=True)

    seeds = _split_seeds(seed_text)
    if backend == "graph":
        has_directory = bool(client_id)
    else:
        has_directory = bool(server_ip and domain)

    col_btn1, col_btn2, col_btn3 = st.columns([1, 1, 4])

    with col_btn1:
        start_button = st.button("Start Audit", type="primary",
                                 disabled=st.session_state.is_running or not (seeds and has_directory),
                                 use_container_width=True)

    with col_btn2:
        test_button = st.button("Test Connection", disabled=st.session_state.is_running or not has_directory,
                                use_container_width=True)

    if test_button:
        with st.spinner("Connecting..."):
            ok, message = validate_directory_connection(
                backend=backend,
                tenant_id=tenant_id or None,
                client_id=client_id or None,
                client_secret=client_secret or None,
                server_ip=server_ip,
                domain=domain,
                username=username or None,
                password=password or None
            )
        if ok:
            st.success(message)
        else:
            st.error(message)

    if start_button:
        st.session_state.is_running = True
        st.session_state.terminal_output = ["[+] Initializing breachAD..."]
        st.session_state.audit_result = None
        st.session_state.audit_error = None

        st.session_state['seed_text'] = seed_text
        st.session_state['tenant_id'] = tenant_id or ''
        st.session_state['client_id'] = client_id or ''
        st.session_state['ip'] = server_ip or ''
        st.session_state['domain'] = domain or ''
        st.session_state['username'] = username or ''

        audit_params = {
            'group_ids': seeds if seed_mode == "Group id" else None,
            'group_names': seeds if seed_mode == "Display name" else None,
            'backend': backend,
            'tenant_id': tenant_id or None,
            'client_id': client_id or None,
            'client_secret': client_secret or None,
            'server_ip': server_ip or None,
            'domain': domain or None,
            'username': username or None,
            'password': password or None,
            'api_key': api_key or None,
            'rate_per_minute': rate,
            'skip_breach_check': skip_breach_check,
            'expand_nested': expand_nested,
            'generate_pdf': generate_pdf,
            'output_dir': "output",
            'clean_output': clean_output,
        }

        # Get queue reference before thread starts (thread-safe)
        output_queue = st.session_state.output_queue

        def run_audit_backend():
            """Background thread function - uses queue for thread-safe communication."""
            try:
                def progress_callback(message):
                    output_queue.put(("log", message))

                def device_flow_callback(flow):
                    output_queue.put(("log", f"[*] {flow.get('message', '')}"))

                result = run_audit(
                    progress_callback=progress_callback,
                    device_flow_callback=device_flow_callback,
                    **audit_params
                )
                output_queue.put(("result", result))

            except Exception as e:
                output_queue.put(("log", f"[!] Error: {e}"))
                output_queue.put(("error", str(e)))
            finally:
                output_queue.put(("complete", None))

        thread = threading.Thread(target=run_audit_backend, daemon=True)
        thread.start()
        st.session_state['audit_thread'] = thread
        st.rerun()

# Terminal Output Tab
with tab2:
    st.markdown("### Terminal Output")

    if st.session_state.is_running:
        st.info("🔄 Audit in progress...")

        # Process messages from queue (thread-safe)
        output_queue = st.session_state.output_queue
        while not output_queue.empty():
            msg_type, message = output_queue.get_nowait()
            if msg_type == "complete":
                st.session_state.is_running = False
            elif msg_type == "log":
                st.session_state.terminal_output.append(message)
            elif msg_type == "result":
                st.session_state.audit_result = message
            elif msg_type == "error":
                st.session_state.audit_error = message

    terminal_html = '<div class="terminal-output">'
    if not st.session_state.terminal_output:
        terminal_html += '<span style="color: #6b7280;">Waiting for execution...</span>'
    else:
        for line in st.session_state.terminal_output:
            text = html.escape(line)
            if line.startswith('[+]'):
                terminal_html += f'<div class="success-line">{text}</div>'
            elif line.startswith('[!]'):
                terminal_html += f'<div class="warning-line">{text}</div>'
            elif line.startswith('[*]'):
                terminal_html += f'<div class="info-line">{text}</div>'
            elif line.startswith('[-]'):
                terminal_html += f'<div class="trace-line">{text}</div>'
            else:
                terminal_html += f'<div>{text}</div>'
    terminal_html += '</div>'

    st.markdown(terminal_html, unsafe_allow_html=True)

    if st.session_state.get('audit_error'):
        st.error(f"Audit error: {st.session_state.audit_error}")

    # Auto-refresh while running
    if st.session_state.is_running:
        time.sleep(0.5)
        st.rerun()

# Members Tab
with tab3:
    st.markdown("### Group Members")

    result = st.session_state.audit_result
    if result:
        summary = result.summary
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Groups Processed", summary.groups_processed)
        with col2:
            st.metric("Unique Users", summary.unique_users)
        with col3:
            st.metric("Nested Groups", summary.unique_nested_groups)
        with col4:
            st.metric("Group Errors", summary.group_errors)

        for group_id, message in result.membership.group_errors.items():
            st.warning(f"{group_id}: {message}")

        df = members_dataframe(result)
        if df.empty:
            st.info("No members found")
        else:
            kinds = st.multiselect("Show", ["User", "Group"], default=["User", "Group"])
            st.dataframe(df[df["kind"].isin(kinds)], use_container_width=True, hide_index=True)

        if result.graph_path and Path(result.graph_path).exists():
            st.markdown("---")
            st.markdown("### Membership Graph")
            try:
                with open(result.graph_path, 'r', encoding='utf-8') as f:
                    st.components.v1.html(f.read(), height=780, scrolling=True)
            except OSError as e:
                st.error(f"Error loading membership graph: {e}")
    else:
        st.info("Run an audit from the Configuration tab to see group members")

# Breach Results Tab
with tab4:
    st.markdown("### Breach Results")

    result = st.session_state.audit_result
    if result and result.summary.verification_skipped:
        st.info("Breach verification was skipped for this run")
    elif result:
        summary = result.summary
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Accounts Checked", summary.emails_checked)
        with col2:
            st.metric("Breached", summary.breached_accounts)
        with col3:
            st.metric("Total Breaches", summary.total_breaches)
        with col4:
            st.metric("Errors", summary.error_accounts)

        df = outcomes_dataframe(result)
        if df.empty:
            st.info("No accounts with email addresses were checked")
        else:
            statuses = st.multiselect("Status", ["Breached", "Error", "Clean"], default=["Breached", "Error", "Clean"])
            st.dataframe(df[df["status"].isin(statuses)], use_container_width=True, hide_index=True)

            summarizer = AuditSummarizer(result.membership, result.outcomes)
            col_left, col_right = st.columns(2)
            with col_left:
                st.markdown("#### Breached Accounts by Department")
                departments = summarizer.get_department_breakdown()
                if departments:
                    st.bar_chart(pd.Series(departments, name="Accounts"))
                else:
                    st.caption("No breached accounts")
            with col_right:
                st.markdown("#### Most Frequent Breaches")
                top = summarizer.get_top_breaches()
                if top:
                    st.dataframe(pd.DataFrame(top, columns=["Breach", "Accounts"]),
                                 use_container_width=True, hide_index=True)
                else:
                    st.caption("No breaches found")

            for outcome in result.breached_outcomes:
                with st.expander(f"{outcome.display_name} <{outcome.email}> - {outcome.breach_count} breach(es)"):
                    for breach in outcome.breaches:
                        st.markdown(f"**{breach.name}** ({breach.date})  \n{breach.data_exposed}")
    else:
        st.info("Run an audit from the Configuration tab to see breach results")

# Report Tab
with tab5:
    st.markdown("### Reports")

    result = st.session_state.audit_result
    if result:
        downloads = [
            ("Download HTML Report", result.html_report_path, "text/html"),
            ("Download PDF Report", result.pdf_report_path, "application/pdf"),
            ("Download JSON Report", result.report_path, "application/json"),
            ("Download Members CSV", result.csv_paths.get("members"), "text/csv"),
            ("Download Breach Results CSV", result.csv_paths.get("breach_results"), "text/csv"),
        ]
        cols = st.columns(len(downloads))
        for col, (label, path, mime) in zip(cols, downloads):
            with col:
                if path and Path(path).exists():
                    st.download_button(
                        label=label,
                        data=Path(path).read_bytes(),
                        file_name=Path(path).name,
                        mime=mime
                    )

        if result.html_report_path and Path(result.html_report_path).exists():
            st.markdown("---")
            st.components.v1.html(
                Path(result.html_report_path).read_text(encoding='utf-8'),
                height=900,
                scrolling=True
            )
    else:
        st.info("Run an audit from the Configuration tab to see the report")
