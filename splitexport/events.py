"""
Revision records handed to the registry by a history walker.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

ADD = "add"
MODIFY = "modify"
DELETE = "delete"
COPY = "copy"

KINDS = (ADD, MODIFY, DELETE, COPY)

MODE_REGULAR = "644"
MODE_EXECUTABLE = "755"
MODE_SYMLINK = "120000"


@dataclass(frozen=True)
class Timestamp:
    """Seconds since the epoch plus the author's offset in minutes east of UTC."""

    seconds: int
    offset_minutes: int = 0

    def __str__(self) -> str:
        sign = "-" if self.offset_minutes < 0 else "+"
        hours, minutes = divmod(abs(self.offset_minutes), 60)
        return f"{int(self.seconds)} {sign}{hours:02d}{minutes:02d}"


@dataclass
class PathEvent:
    """
    One changed path of a revision.

    Directory events may carry `children`: the file-level events the walker
    expanded the directory into, used whenever the change cannot be
    expressed as a single copy directive.
    """

    kind: str
    path: str
    content: Optional[bytes] = None
    copy_from_revision: Optional[int] = None
    copy_from_path: Optional[str] = None
    mode: str = MODE_REGULAR
    directory: bool = False
    children: Tuple["PathEvent", ...] = ()

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"unknown path event kind {self.kind!r} for {self.path}")
        if (self.copy_from_path is None) != (self.copy_from_revision is None):
            raise ValueError(f"incomplete copy source for {self.path}")

    @property
    def has_copy_source(self) -> bool:
        return self.copy_from_path is not None


@dataclass
class Revision:
    number: int
    author: str
    timestamp: Timestamp
    message: str
    parents: List[int] = field(default_factory=list)
    events: List[PathEvent] = field(default_factory=list)
