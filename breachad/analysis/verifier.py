"""
Breach Verifier
===============

Checks each user's email address against a breach-intelligence source
under a fixed requests-per-minute budget.

Design Decisions:
-----------------
1. Strictly serial, one lookup at a time, in input order
2. Throttling is a fixed pause of ceil(60000 / rate) ms between lookups;
   there is no burst allowance and no adaptive backoff
3. A failed lookup becomes an Error outcome for that user only
4. Breach entries without a name are dropped and not counted
"""

import math
import time
from typing import Callable, Iterable, Optional

from ..config import SUPPORTED_RATE_TIERS
from ..intel.hibp_client import BreachClient
from ..model.schemas import BreachEntry, BreachOutcome, BreachStatus, MemberRecord


def compute_delay(rate_per_minute: int) -> int:
    """Convert a rate tier to the pause between lookups.

    Args:
        rate_per_minute: One of the supported rate tiers

    Returns:
        Delay in milliseconds (ceil(60000 / rate_per_minute))

    Raises:
        ValueError: If the rate is not a supported tier
    """
    if rate_per_minute not in SUPPORTED_RATE_TIERS:
        raise ValueError(
            f"Unsupported rate tier {rate_per_minute}; "
            f"choose one of {', '.join(str(r) for r in SUPPORTED_RATE_TIERS)}"
        )
    return math.ceil(60000 / rate_per_minute)


def select_verification_targets(members: Iterable[MemberRecord]) -> list[MemberRecord]:
    """Users with an email address, one per address (case-insensitive).

    The first record seen for an address wins, so the reported parent group
    is the first group the user was found in.
    """
    targets = []
    seen = set()
    for record in members:
        if not record.is_user or not record.email:
            continue
        key = record.email.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        targets.append(record)
    return targets


def normalize_breaches(raw_breaches: Iterable[dict]) -> list[BreachEntry]:
    """Turn raw HIBP breach objects into BreachEntries.

    Entries with an empty or missing name are discarded silently.
    """
    entries = []
    for breach in raw_breaches or []:
        if not isinstance(breach, dict):
            continue
        name = breach.get("Name")
        if not name or not str(name).strip():
            continue
        data_classes = breach.get("DataClasses") or []
        entries.append(BreachEntry(
            name=str(name),
            date=breach.get("BreachDate") or "Unknown",
            data_exposed=", ".join(str(d) for d in data_classes) if data_classes else "Not specified",
        ))
    return entries


class BreachVerifier:
    """Runs rate-limited breach lookups for a list of users.

    Usage:
        verifier = BreachVerifier(HIBPClient(api_key), rate_per_minute=50)
        outcomes = verifier.verify(select_verification_targets(result.members))
    """

    def __init__(
        self,
        client: BreachClient,
        rate_per_minute: int = 10,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None,
        sleep_func: Callable[[float], None] = time.sleep
    ):
        """Initialize the verifier.

        Args:
            client: Breach lookup backend
            rate_per_minute: Subscription rate tier
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
            sleep_func: Sleep function taking seconds
        """
        self.client = client
        self.rate_per_minute = rate_per_minute
        self.delay_ms = compute_delay(rate_per_minute)
        self.verbose = verbose
        self.progress_callback = progress_callback
        self._sleep = sleep_func

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def verify(self, users: Iterable[MemberRecord]) -> list[BreachOutcome]:
        """Check every user's email, pausing between lookups.

        Args:
            users: User records with an email address

        Returns:
            One BreachOutcome per user, in input order
        """
        users = list(users)
        if not users:
            self._log("[*] No users with email addresses to check")
            return []

        self._log(
            f"[*] Checking {len(users)} account(s) at {self.rate_per_minute} requests/minute "
            f"({self.delay_ms} ms between requests)"
        )

        outcomes = []
        for index, user in enumerate(users, 1):
            outcome = self._check_user(user)
            outcomes.append(outcome)

            if outcome.status == BreachStatus.BREACHED:
                self._log(f"[!] [{index}/{len(users)}] {user.email}: {outcome.breach_count} breach(es)")
            elif outcome.status == BreachStatus.CLEAN:
                self._log(f"[+] [{index}/{len(users)}] {user.email}: no breaches found")

            if index < len(users):
                self._sleep(self.delay_ms / 1000.0)

        breached = sum(1 for o in outcomes if o.status == BreachStatus.BREACHED)
        errors = sum(1 for o in outcomes if o.status == BreachStatus.ERROR)
        self._log(f"[+] Breach check complete: {breached} breached, {errors} error(s)")

        return outcomes

    def _check_user(self, user: MemberRecord) -> BreachOutcome:
        base = dict(
            email=user.email,
            display_name=user.display_name,
            department=user.department,
            parent_group=user.parent_group_name,
        )

        try:
            raw_breaches = self.client.check_breaches(user.email)
        except Exception as e:
            self._log(f"[!] Error checking {user.email}: {e}")
            return BreachOutcome(status=BreachStatus.ERROR, error=str(e), **base)

        breaches = normalize_breaches(raw_breaches)
        status = BreachStatus.BREACHED if breaches else BreachStatus.CLEAN
        return BreachOutcome(status=status, breaches=breaches, **base)
