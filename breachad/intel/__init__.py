"""
breachAD Intel Module
=====================

Breach-intelligence sources consulted by the verifier.

Key Components:
- hibp_client.py: Have I Been Pwned v3 breachedaccount lookups
"""

from .hibp_client import BreachClient, HIBPClient
