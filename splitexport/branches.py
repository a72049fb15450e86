"""
Branches and tags of a trunk/branches/tags layout.

Paths of the source history are split into a branch name and the file
name inside the branch. Copying a whole branch root onto a new branch or
tag root creates that branch or tag; every other copy is an ordinary
file operation.
"""
from __future__ import annotations
from typing import NamedTuple, Optional, Tuple

from .events import ADD, COPY, PathEvent
from .layout import LayoutConfig
from .repository import TAG_TEMP_BRANCH


class Creation(NamedTuple):
    is_branch: bool
    # branch or tag name as the user knows it
    name: str
    # branch receiving the commit (tags live under TAG_TEMP_BRANCH)
    branch: str
    from_revision: int
    from_branch: str


def _absolute(path: str) -> str:
    return path if path.startswith("/") else "/" + path


class BranchLayout:
    def __init__(
        self,
        trunk_base: str = "/trunk",
        branches: str = "/branches/",
        tags: str = "/tags/",
        default_branch: str = "master",
    ):
        self.trunk_base = _absolute(trunk_base.rstrip("/"))
        self.trunk = self.trunk_base + "/"
        self.branches = _absolute(branches)
        self.tags = _absolute(tags)
        self.default_branch = default_branch

    @classmethod
    def from_config(cls, config: LayoutConfig) -> "BranchLayout":
        return cls(config.trunk_base, config.branches, config.tags, config.default_branch)

    def split(self, path: str) -> Optional[Tuple[str, str]]:
        """
        Split `path` into (branch, file name inside the branch).

        The root of a branch gives an empty file name; a path outside the
        layout gives None.
        """
        path = _absolute(path)
        if path == self.trunk_base:
            return self.default_branch, ""
        if path.startswith(self.trunk):
            return self.default_branch, path[len(self.trunk):]

        if path.startswith(self.branches):
            rest = path[len(self.branches):]
            prefix = ""
        elif path.startswith(self.tags):
            rest = path[len(self.tags):]
            prefix = TAG_TEMP_BRANCH
        else:
            return None

        name, slash, fname = rest.partition("/")
        if not name:
            return None
        return prefix + name, fname if slash else ""

    def classify(self, event: PathEvent) -> Optional[Creation]:
        """A branch or tag creation, or None for an ordinary add/copy."""
        if event.kind not in (ADD, COPY) or not event.has_copy_source:
            return None
        target = self.split(event.path)
        if target is None or target[1]:
            return None
        source = self.split(event.copy_from_path)
        if source is None or source[1]:
            return None
        branch = target[0]
        is_branch = not branch.startswith(TAG_TEMP_BRANCH)
        name = branch if is_branch else branch[len(TAG_TEMP_BRANCH):]
        return Creation(is_branch, name, branch, event.copy_from_revision, source[0])
