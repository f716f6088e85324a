"""Tests for report generation: JSON, CSV, text and HTML."""

from __future__ import annotations

import json
from unittest.mock import patch

import pandas as pd

from breachad.analysis.resolver import MembershipResolver
from breachad.model.schemas import BreachEntry, BreachOutcome, BreachStatus
from breachad.reporting.export_html import HTMLExporter
from breachad.reporting.export_pdf import PDFExporter, find_browser
from breachad.reporting.report_builder import ReportBuilder, generate_text_report

from conftest import FakeDirectory


def _membership():
    d = FakeDirectory(
        groups={"G": "R&D <Core>", "N": "Platform"},
        members={"G": [("U", "user"), ("N", "group")], "N": [("V", "user")]},
    )
    d.add_user("U", "Uma <script>", "uma@corp.example", department="Eng")
    d.add_user("V", "Victor", "victor@corp.example")
    return MembershipResolver(d, verbose=False).resolve(["G", "missing"])


def _outcomes():
    return [
        BreachOutcome("uma@corp.example", "Uma <script>", "Eng", "R&D <Core>",
                      status=BreachStatus.BREACHED,
                      breaches=[BreachEntry("Adobe", "2013-10-04", "Emails, Passwords")]),
        BreachOutcome("victor@corp.example", "Victor", None, "Platform",
                      status=BreachStatus.ERROR, error="Rate limit exceeded (HTTP 429)"),
    ]


def test_build_report_writes_json_and_csv(tmp_path):
    builder = ReportBuilder(str(tmp_path))
    result = builder.build_report(_membership(), _outcomes(), generate_graph=False)

    assert result.summary.breached_accounts == 1
    assert result.metadata["nesting_cycles"] is False

    with open(result.report_path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["summary"]["error_accounts"] == 1
    assert data["membership"]["group_errors"] == {"missing": "Group not found: missing"}
    assert data["report_path"] == result.report_path

    members = pd.read_csv(result.csv_paths["members"])
    assert list(members["object_id"]) == ["U", "N", "V"]
    assert list(members["nesting_level"]) == [0, 0, 1]

    outcomes = pd.read_csv(result.csv_paths["breach_results"])
    assert list(outcomes["status"]) == ["Breached", "Error"]
    assert outcomes.loc[0, "breaches"] == "Adobe"


def test_build_report_without_outcomes_skips_breach_csv(tmp_path):
    result = ReportBuilder(str(tmp_path)).build_report(
        _membership(), [], verification_skipped=True, generate_graph=False
    )

    assert "breach_results" not in result.csv_paths
    assert result.summary.verification_skipped is True


def test_text_report(tmp_path):
    result = ReportBuilder(str(tmp_path)).build_report(
        _membership(), _outcomes(), generate_json=False, generate_csv=False, generate_graph=False
    )

    text = generate_text_report(result)

    assert "Breached: 1" in text
    assert "uma@corp.example (Uma <script>) - 1 breach(es)" in text
    assert "missing: Group not found: missing" in text


def test_html_report_escapes_and_indents(tmp_path):
    result = ReportBuilder(str(tmp_path)).build_report(
        _membership(), _outcomes(), generate_json=False, generate_csv=False, generate_graph=False
    )

    path = HTMLExporter(str(tmp_path)).export(result)
    with open(path, encoding="utf-8") as f:
        page = f.read()

    assert "<script>" not in page
    assert "Uma &lt;script&gt;" in page
    assert "R&amp;D &lt;Core&gt;" in page
    assert "padding-left: 2.00rem;" in page  # nesting level 1
    assert "Rate limit exceeded (HTTP 429)" in page
    assert "Groups Not Processed" in page


def test_html_report_skipped_verification(tmp_path):
    result = ReportBuilder(str(tmp_path)).build_report(
        _membership(), [], verification_skipped=True,
        generate_json=False, generate_csv=False, generate_graph=False
    )

    page = HTMLExporter(str(tmp_path)).render(result)

    assert "Breach verification was skipped" in page
    assert "Breached Accounts" not in page


def test_pdf_without_browser_returns_none(tmp_path):
    html_path = tmp_path / "report.html"
    html_path.write_text("<html></html>", encoding="utf-8")
    messages = []

    with patch("breachad.reporting.export_pdf.shutil.which", return_value=None):
        exporter = PDFExporter(verbose=False, progress_callback=messages.append)
        assert exporter.export(str(html_path)) is None

    assert messages and messages[0].startswith("[!]")


def test_pdf_invokes_headless_browser(tmp_path):
    html_path = tmp_path / "report.html"
    html_path.write_text("<html></html>", encoding="utf-8")
    pdf_path = tmp_path / "report.pdf"

    def _fake_run(cmd, **kwargs):
        pdf_path.write_bytes(b"%PDF-1.4")
        return type("Proc", (), {"returncode": 0, "stderr": ""})()

    with patch("breachad.reporting.export_pdf.shutil.which", return_value="/usr/bin/chromium"), \
            patch("breachad.reporting.export_pdf.subprocess.run", side_effect=_fake_run) as run:
        result = PDFExporter(verbose=False).export(str(html_path))

    assert result == str(pdf_path.resolve())
    cmd = run.call_args.args[0]
    assert cmd[0] == "/usr/bin/chromium"
    assert "--headless" in cmd
    assert f"--print-to-pdf={pdf_path.resolve()}" in cmd
    assert cmd[-1].startswith("file://")


def test_find_browser_prefers_explicit_path(tmp_path):
    browser = tmp_path / "chrome"
    browser.write_text("")

    assert find_browser(str(browser)) == str(browser)
