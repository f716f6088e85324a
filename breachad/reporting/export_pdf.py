"""
PDF Export Module
=================

Converts the HTML report to PDF with a headless Chromium-family browser.

Design Decisions:
-----------------
1. No PDF library; the browser's print engine renders the same HTML
   the user sees, including the print stylesheet
2. A missing browser or a failed conversion is logged and returns None;
   the HTML report is still the primary deliverable
"""

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional


BROWSER_CANDIDATES = [
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "chrome",
    "msedge",
    "microsoft-edge",
]


def find_browser(browser_path: Optional[str] = None) -> Optional[str]:
    """Locate a browser able to print to PDF.

    Args:
        browser_path: Explicit executable path or name, checked first

    Returns:
        Executable path, or None if nothing suitable was found
    """
    if browser_path:
        if Path(browser_path).is_file():
            return browser_path
        return shutil.which(browser_path)

    for name in BROWSER_CANDIDATES:
        found = shutil.which(name)
        if found:
            return found
    return None


class PDFExporter:
    """Renders an HTML report to PDF.

    Usage:
        exporter = PDFExporter(browser_path=None)
        pdf_path = exporter.export("output/breachad_report.html")
    """

    def __init__(
        self,
        browser_path: Optional[str] = None,
        timeout: int = 120,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        self.browser_path = browser_path
        self.timeout = timeout
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def export(self, html_path: str, pdf_path: Optional[str] = None) -> Optional[str]:
        """Print an HTML file to PDF.

        Args:
            html_path: Path to the HTML report
            pdf_path: Output path (defaults to the HTML path with .pdf)

        Returns:
            Path to the PDF, or None if conversion was not possible
        """
        browser = find_browser(self.browser_path)
        if not browser:
            self._log("[!] No Chrome, Chromium or Edge executable found; skipping PDF export")
            return None

        source = Path(html_path).resolve()
        target = Path(pdf_path) if pdf_path else source.with_suffix(".pdf")
        target = target.resolve()

        cmd = [
            browser,
            "--headless",
            "--disable-gpu",
            "--no-sandbox",
            "--no-pdf-header-footer",
            f"--print-to-pdf={target}",
            source.as_uri(),
        ]

        self._log(f"[*] Rendering PDF with {Path(browser).name}...")
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self._log(f"[!] PDF export failed: {e}")
            return None

        if proc.returncode != 0 or not target.exists():
            detail = (proc.stderr or "").strip().splitlines()
            self._log(
                f"[!] PDF export failed (exit code {proc.returncode})"
                + (f": {detail[-1]}" if detail else "")
            )
            return None

        return str(target)
