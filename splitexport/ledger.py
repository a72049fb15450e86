"""
Per-destination record of which branch was committed at which revision.

A destination only sees the part of the history its selector matches, so
most source revisions leave no commit in it. Branch points and merge
parents name a source revision, and `find_commit` maps that onto the
nearest commit the destination actually has.
"""
from __future__ import annotations
from typing import Dict, List, Optional


class BranchLedger:
    def __init__(self, max_revisions: Optional[int] = None):
        # Index - revision number, content - {branch id: commit mark}.
        # Preallocated when the revision count is known upfront.
        self._fixed = max_revisions is not None
        self._entries: List[Optional[Dict[int, int]]] = (
            [None] * (max_revisions + 1) if self._fixed else []
        )
        self._branch_ids: Dict[str, int] = {}
        self._branch_names: List[str] = []

    def branch_id(self, name: str) -> int:
        """Small integer handle for a branch name, assigned on first use."""
        bid = self._branch_ids.get(name)
        if bid is None:
            bid = len(self._branch_names)
            self._branch_ids[name] = bid
            self._branch_names.append(name)
        return bid

    def branch_name(self, bid: int) -> str:
        return self._branch_names[bid]

    def record(self, revision: int, branch: str, mark: int) -> None:
        if revision < 0:
            raise ValueError(f"negative revision {revision}")
        if revision >= len(self._entries):
            if self._fixed:
                raise IndexError(
                    f"revision {revision} exceeds the maximum of {len(self._entries) - 1}"
                )
            self._entries.extend([None] * (revision + 1 - len(self._entries)))
        entry = self._entries[revision]
        if entry is None:
            entry = self._entries[revision] = {}
        bid = self.branch_id(branch)
        if bid in entry:
            raise ValueError(f"branch {branch} already committed at revision {revision}")
        entry[bid] = mark

    def branches_at(self, revision: int) -> List[str]:
        if not 0 <= revision < len(self._entries) or self._entries[revision] is None:
            return []
        return [self._branch_names[bid] for bid in self._entries[revision]]

    def find_commit(self, revision: int, branch: str) -> Optional[int]:
        """
        Find the most recent revision <= `revision` that has a commit to
        `branch`, or None if the branch has no commit that early.
        """
        bid = self._branch_ids.get(branch)
        if bid is None:
            return None
        rev = min(revision, len(self._entries) - 1)
        while rev >= 0:
            entry = self._entries[rev]
            if entry is not None and bid in entry:
                return rev
            rev -= 1
        return None

    def mark_at(self, revision: int, branch: str) -> Optional[int]:
        bid = self._branch_ids.get(branch)
        if bid is None or not 0 <= revision < len(self._entries):
            return None
        entry = self._entries[revision]
        if entry is None:
            return None
        return entry.get(bid)

    def resolve(self, revision: int, branch: str) -> Optional[int]:
        """Mark of the nearest commit to `branch` at or before `revision`."""
        found = self.find_commit(revision, branch)
        if found is None:
            return None
        return self.mark_at(found, branch)
