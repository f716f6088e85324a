"""
Membership Resolver
===================

Walks the group-membership graph from one or more seed groups and produces
a flat, order-stable list of MemberRecords.

Algorithm:
----------
Depth-first per seed, siblings in directory listing order, one visited set
shared by all seeds of a single resolve() call. A group id is marked visited
before its members are fetched, so self-nesting and mutual nesting (A -> B -> A)
terminate with each group expanded exactly once. Re-encountering a visited
group still emits a Group record for that edge but never re-expands it.

The walk keeps an explicit stack of member iterators instead of recursing,
so very deep nesting cannot exhaust the interpreter stack. Emission order
is the same as the recursive formulation.

Failure scope:
- a group that cannot be resolved or listed: that subtree is skipped and the
  error recorded against the group id
- a user whose details cannot be fetched: that member is skipped
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional

from ..directory.base import DirectoryClient
from ..errors import NoValidGroupsError
from ..model.schemas import (
    GroupRef, MemberRecord, MembershipResult,
    MEMBER_TYPE_USER, MEMBER_TYPE_GROUP
)


@dataclass
class _Frame:
    """One group being expanded: its ref, depth and remaining members."""
    group: GroupRef
    depth: int
    members: Iterator


@dataclass
class _TraversalState:
    """Per-invocation accumulator; never shared between resolve() calls."""
    result: MembershipResult = field(default_factory=MembershipResult)
    visited: dict = field(default_factory=dict)  # group id -> True once expanded
    group_refs: dict = field(default_factory=dict)  # group id -> GroupRef cache


class MembershipResolver:
    """Resolves seed groups to a deduplicated list of member records.

    Usage:
        resolver = MembershipResolver(directory, expand_nested=True)
        result = resolver.resolve(["group-id-1", "group-id-2"])
        for record in result.members:
            print(record.nesting_level, record.display_name)

        # Seeds given by name
        seeds = resolver.resolve_seed_names(["Sales", "Finance"])
        result = resolver.resolve([g.object_id for g in seeds])
    """

    def __init__(
        self,
        directory: DirectoryClient,
        expand_nested: bool = True,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        """Initialize the resolver.

        Args:
            directory: Directory backend used for all lookups
            expand_nested: Whether nested groups are recorded and descended into
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
        """
        self.directory = directory
        self.expand_nested = expand_nested
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    # ------------------------------------------------------------------
    # Seed resolution
    # ------------------------------------------------------------------

    def resolve_seed_names(self, names: Iterable[str]) -> list[GroupRef]:
        """Resolve seed display names to exactly one group each.

        Args:
            names: Group display names

        Returns:
            GroupRefs for the names that resolved unambiguously, in input order

        Raises:
            NoValidGroupsError: If no name resolved
        """
        resolved: list[GroupRef] = []
        seen_ids = set()

        for name in names:
            group = self._resolve_seed_name(name)
            if group is None or group.object_id in seen_ids:
                continue
            seen_ids.add(group.object_id)
            resolved.append(group)

        if not resolved:
            raise NoValidGroupsError()

        return resolved

    def _resolve_seed_name(self, name: str) -> Optional[GroupRef]:
        try:
            candidates = self.directory.find_groups_by_display_name(name)
            if not candidates:
                # Some directories reject or under-report filtered queries
                candidates = [
                    g for g in self.directory.list_all_groups()
                    if g.display_name.lower() == name.lower()
                ]
        except Exception as e:
            self._log(f"[!] Lookup of group '{name}' failed: {e}")
            return None

        if not candidates:
            self._log(f"[!] Group '{name}' not found, skipping")
            return None

        if len(candidates) == 1:
            group = candidates[0]
            self._log(f"[+] Resolved group '{name}' -> {group.object_id}")
            return group

        exact = [g for g in candidates if g.display_name == name]
        if len(exact) == 1:
            group = exact[0]
            self._log(f"[+] Resolved group '{name}' -> {group.object_id} (exact match)")
            return group

        ids = ", ".join(g.object_id for g in (exact or candidates))
        self._log(
            f"[!] Group name '{name}' is ambiguous ({len(exact or candidates)} matches: {ids}); "
            f"skipping - pass the group id instead"
        )
        return None

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def resolve(self, seed_group_ids: Iterable[str]) -> MembershipResult:
        """Enumerate members of the seed groups.

        Args:
            seed_group_ids: Group ids to start from; duplicates are ignored

        Returns:
            MembershipResult with members in depth-first emission order
        """
        state = _TraversalState()

        for seed_id in dict.fromkeys(seed_group_ids):
            if seed_id in state.visited:
                if seed_id in state.group_refs:
                    state.result.seed_groups.append(state.group_refs[seed_id])
                self._log(f"[-] Seed group {seed_id} already expanded, skipping")
                continue

            seed = self._lookup_group(seed_id, state)
            if seed is None:
                state.visited[seed_id] = True
                continue

            state.result.seed_groups.append(seed)
            self._log(f"[*] Enumerating group '{seed.display_name}' ({seed.object_id})")
            before = len(state.result.members)
            self._walk(seed, state)
            self._log(
                f"[+] Group '{seed.display_name}': "
                f"{len(state.result.members) - before} member record(s)"
            )

        return state.result

    def _lookup_group(self, group_id: str, state: _TraversalState) -> Optional[GroupRef]:
        """Resolve a group's metadata once per traversal."""
        if group_id in state.group_refs:
            return state.group_refs[group_id]
        try:
            group = self.directory.resolve_group(group_id)
        except Exception as e:
            self._record_group_error(group_id, e, state)
            return None
        state.group_refs[group_id] = group
        return group

    def _record_group_error(self, group_id: str, error: Exception, state: _TraversalState) -> None:
        state.result.group_errors[group_id] = str(error)
        self._log(f"[!] Error processing group {group_id}: {error}")

    def _open_frame(self, group: GroupRef, depth: int, state: _TraversalState) -> Optional[_Frame]:
        """Mark a group visited and fetch its direct members."""
        if group.object_id in state.visited:
            self._log(f"[-] Group '{group.display_name}' already processed, skipping")
            return None

        state.visited[group.object_id] = True

        try:
            members = self.directory.list_group_members(group.object_id)
        except Exception as e:
            self._record_group_error(group.object_id, e, state)
            return None

        state.result.groups_expanded.append(group.object_id)
        return _Frame(group=group, depth=depth, members=iter(members))

    def _walk(self, seed: GroupRef, state: _TraversalState) -> None:
        stack: list[_Frame] = []
        frame = self._open_frame(seed, 0, state)
        if frame:
            stack.append(frame)

        while stack:
            frame = stack[-1]
            member = next(frame.members, None)
            if member is None:
                stack.pop()
                continue

            tag = (member.type_tag or "").lower()

            if tag == MEMBER_TYPE_USER:
                self._add_user(member.object_id, frame, state)

            elif tag == MEMBER_TYPE_GROUP:
                if not self.expand_nested:
                    self._log(
                        f"[-] Nested group {member.object_id} in '{frame.group.display_name}' "
                        f"not expanded"
                    )
                    continue

                nested = self._lookup_group(member.object_id, state)
                if nested is None:
                    continue

                state.result.members.append(
                    MemberRecord.for_group(nested, frame.group, frame.depth)
                )
                self._log(
                    f"[*] Nested group '{nested.display_name}' in "
                    f"'{frame.group.display_name}' (level {frame.depth})"
                )

                child = self._open_frame(nested, frame.depth + 1, state)
                if child:
                    stack.append(child)

            else:
                self._log(
                    f"[-] Ignoring {tag or 'unknown'} member {member.object_id} "
                    f"in '{frame.group.display_name}'"
                )

    def _add_user(self, user_id: str, frame: _Frame, state: _TraversalState) -> None:
        try:
            user = self.directory.resolve_user(user_id)
        except Exception as e:
            self._log(
                f"[!] Could not get details for user {user_id} "
                f"in '{frame.group.display_name}': {e}"
            )
            return

        state.result.members.append(
            MemberRecord.for_user(user, frame.group, frame.depth)
        )
