"""
breachAD Errors
===============

Exception taxonomy shared by the directory clients, the breach client and
the audit pipeline.

Scope of each failure:
- DirectoryConnectionError, NoValidGroupsError: abort the whole run
- GroupNotFoundError: abort expansion of that one group
- UserNotFoundError: skip that one member
- BreachLookupError and subclasses: Error outcome for that one user
"""

from typing import Optional


class BreachADError(Exception):
    """Base class for all breachAD errors."""


class DirectoryError(BreachADError):
    """A directory lookup failed."""


class DirectoryConnectionError(DirectoryError):
    """The directory session could not be established."""


class GroupNotFoundError(DirectoryError):
    """A group id did not resolve to a group."""

    def __init__(self, group_id: str, message: Optional[str] = None):
        self.group_id = group_id
        super().__init__(message or f"Group not found: {group_id}")


class UserNotFoundError(DirectoryError):
    """A member id did not resolve to a user."""

    def __init__(self, user_id: str, message: Optional[str] = None):
        self.user_id = user_id
        super().__init__(message or f"User not found: {user_id}")


class NoValidGroupsError(BreachADError):
    """None of the requested seed groups could be resolved."""

    def __init__(self, message: str = "No valid groups found"):
        super().__init__(message)


class BreachLookupError(BreachADError):
    """A breach lookup failed (malformed response or unexpected status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class BreachRateLimitedError(BreachLookupError):
    """The breach service rejected the request with HTTP 429."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


class BreachAuthError(BreachLookupError):
    """The API key was rejected (HTTP 401/403)."""


class BreachNetworkError(BreachLookupError):
    """The breach service could not be reached."""
