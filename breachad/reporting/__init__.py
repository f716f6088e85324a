"""
breachAD Reporting Module
=========================

Report generation and export.

Components:
- report_builder.py: Builds AuditResult, JSON and CSV exports
- export_html.py: Standalone HTML report
- export_pdf.py: PDF conversion via a headless browser
- visualization.py: Interactive membership graph
"""

from .report_builder import ReportBuilder, generate_text_report
from .export_html import HTMLExporter
from .export_pdf import PDFExporter, find_browser
from .visualization import GraphVisualizer
