"""
breachAD GUI Integration Module
===============================

Bridge functions for CLI and GUI communication.

Key Functions:
- run_audit(): Main entry point for running an audit
- validate_directory_connection(): Connectivity check before a run
"""

from .bridge import run_audit, validate_directory_connection
