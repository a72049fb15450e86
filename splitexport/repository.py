"""
One destination repository: the pending changes of the revision being
converted, the marks handed out so far and the fast-import stream.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, List, Optional, Sequence

from . import errors
from .events import MODE_EXECUTABLE, MODE_REGULAR, Timestamp
from .fastimport import ChangeOp, Copy, Delete, FastImportWriter, Modify
from .ledger import BranchLedger

logger = logging.getLogger("splitexport.repository")

# Tags are staged on branches in this namespace so they never collide
# with real branch names.
TAG_TEMP_BRANCH = "tag-branches/"


@dataclass
class Commit:
    revision: int
    branch: str
    identity: str
    timestamp: Timestamp
    message: str
    merge_revisions: Sequence[int] = ()
    force: bool = False


@dataclass
class Tag:
    name: str
    identity: str
    timestamp: Timestamp
    message: str

    @property
    def tag_branch(self) -> str:
        return TAG_TEMP_BRANCH + self.name


@dataclass
class _Pending:
    # Copies are kept apart from the other changes because they have to be
    # written before a deletion of their source in the same revision.
    copies: List[Copy] = field(default_factory=list)
    changes: List[ChangeOp] = field(default_factory=list)
    forced: bool = False
    parent: Optional[int] = None

    def is_empty(self) -> bool:
        return not self.copies and not self.changes


class RepositoryStream:
    def __init__(self, name: str, pattern: str, out: BinaryIO, max_revisions: Optional[int] = None):
        self.name = name
        self.pattern = pattern
        self.out = out
        self.writer = FastImportWriter(out)
        self.ledger = BranchLedger(max_revisions)
        self.max_revisions = max_revisions
        self._mark = 0
        # branch name (None until the revision's default branch is known)
        self._pending: Dict[Optional[str], _Pending] = {}
        self._tips: Dict[str, int] = {}

    def __repr__(self):
        return f"<RepositoryStream {self.name} /{self.pattern}/>"

    def allocate_mark(self) -> int:
        self._mark += 1
        return self._mark

    def _pending_for(self, branch: Optional[str]) -> _Pending:
        pending = self._pending.get(branch)
        if pending is None:
            pending = self._pending[branch] = _Pending()
        return pending

    def record_modify(self, path: str, mode: str, content: bytes, branch: Optional[str] = None) -> int:
        """Write the blob now and remember the file for the next commit."""
        if mode not in (MODE_REGULAR, MODE_EXECUTABLE):
            errors.warn(f"{self.name}: {path}: unsupported file mode {mode}, exported as a regular file")
            mode = MODE_REGULAR
        mark = self.allocate_mark()
        self.writer.blob(mark, content)
        self._pending_for(branch).changes.append(Modify(path, mode, mark))
        return mark

    def record_delete(self, path: str, branch: Optional[str] = None) -> None:
        self._pending_for(branch).changes.append(Delete(path))

    def record_copy(self, src_revision: int, src_path: str, dst_path: str, branch: Optional[str] = None) -> None:
        self._pending_for(branch).copies.append(Copy(src_revision, src_path, dst_path))

    def start_branch(self, branch: str, parent_mark: int) -> None:
        """Force a commit on `branch` this revision, parented on `parent_mark`."""
        pending = self._pending_for(branch)
        pending.forced = True
        pending.parent = parent_mark

    def assign_default_branch(self, branch: str) -> None:
        """Changes recorded without a branch belong to `branch`."""
        unnamed = self._pending.pop(None, None)
        if unnamed is None:
            return
        pending = self._pending.get(branch)
        if pending is None:
            self._pending[branch] = unnamed
        else:
            pending.copies.extend(unnamed.copies)
            pending.changes.extend(unnamed.changes)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def branches_pending(self) -> List[Optional[str]]:
        return list(self._pending)

    def last_mark(self, branch: str) -> Optional[int]:
        return self._tips.get(branch)

    def flush_commit(self, commit: Commit) -> Optional[int]:
        """
        Write the pending changes of `commit.branch` as one commit.

        Returns the mark of the new commit, or None when there was nothing
        to commit and the commit was not forced.
        """
        pending = self._pending.pop(commit.branch, None)
        if pending is None:
            if not commit.force:
                return None
            pending = _Pending()
        if pending.is_empty() and not (commit.force or pending.forced):
            return None

        parent = pending.parent if pending.parent is not None else self._tips.get(commit.branch)
        merges: List[int] = []
        for revision in commit.merge_revisions:
            mark = self.ledger.resolve(revision, commit.branch)
            if mark is not None and mark != parent and mark not in merges:
                merges.append(mark)

        mark = self.allocate_mark()
        self.writer.commit(
            commit.branch,
            mark,
            commit.identity,
            commit.timestamp,
            commit.message,
            parent=parent,
            merges=merges,
            copies=pending.copies,
            changes=pending.changes,
        )
        self._tips[commit.branch] = mark
        self.ledger.record(commit.revision, commit.branch, mark)
        logger.debug("%s: revision %d on %s is :%d", self.name, commit.revision, commit.branch, mark)
        return mark

    def find_commit(self, revision: int, branch: str) -> Optional[int]:
        return self.ledger.find_commit(revision, branch)

    def unchanged_since(self, revision: int, branch: str) -> bool:
        """
        Is the tree the next commit on `branch` starts from still the tree
        `branch` had at `revision`?

        A `C` directive copies from that tree, so it only reproduces a copy
        source taken at `revision` when nothing was committed on the branch
        since.
        """
        pending = self._pending.get(branch)
        if pending is not None and pending.parent is not None:
            return False
        tip = self._tips.get(branch)
        return tip is not None and self.ledger.resolve(revision, branch) == tip

    def write_tag(self, tag: Tag) -> bool:
        """Annotated tag at the tip of the tag's tracking branch, if it exists here."""
        tip = self._tips.get(tag.tag_branch)
        if tip is None:
            return False
        self.writer.tag(tag.name, tip, tag.identity, tag.timestamp, tag.message)
        return True

    def close(self) -> None:
        if self._pending:
            errors.report(f"{self.name}: closing with uncommitted changes on {self.branches_pending()}")
        self.writer.done()
        self.out.flush()
        self.out.close()

    def abort(self) -> None:
        """Close the stream after a failed run, leaving it without its `done`."""
        errors.report(f"{self.name}: stream left incomplete")
        self._pending.clear()
        self.out.flush()
        self.out.close()
