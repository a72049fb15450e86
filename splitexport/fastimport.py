"""
Rendering of git fast-import records onto one binary output stream.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Optional, Union

from .events import Timestamp


@dataclass(frozen=True)
class Modify:
    path: str
    mode: str
    mark: int


@dataclass(frozen=True)
class Delete:
    path: str


@dataclass(frozen=True)
class Copy:
    source_revision: int
    source_path: str
    path: str


ChangeOp = Union[Modify, Delete]


def quote_path(path: str, force: bool = False) -> str:
    """
    C-style quote a path when fast-import would otherwise misread it.
    `force` is used for the source side of C directives, where a space
    would end the path.
    """
    if not (path.startswith('"') or "\n" in path or (force and " " in path)):
        return path
    escaped = path.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


class FastImportWriter:
    def __init__(self, out: BinaryIO):
        self.out = out

    def _write(self, text: str) -> None:
        self.out.write(text.encode("utf-8"))

    def _data(self, payload: bytes) -> None:
        self._write(f"data {len(payload)}\n")
        self.out.write(payload)
        self.out.write(b"\n")

    def blob(self, mark: int, content: bytes) -> None:
        # fast-import expects: blob\nmark :N\ndata <len>\n<content>
        self._write(f"blob\nmark :{mark}\n")
        self._data(content)

    def commit(
        self,
        branch: str,
        mark: int,
        identity: str,
        timestamp: Timestamp,
        message: str,
        parent: Optional[int] = None,
        merges: Iterable[int] = (),
        copies: Iterable[Copy] = (),
        changes: Iterable[ChangeOp] = (),
    ) -> None:
        self._write(f"commit refs/heads/{branch}\n")
        self._write(f"mark :{mark}\n")
        self._write(f"author {identity} {timestamp}\n")
        self._write(f"committer {identity} {timestamp}\n")
        self._data((message or "").encode("utf-8"))
        if parent:
            self._write(f"from :{parent}\n")
        for merge in merges:
            self._write(f"merge :{merge}\n")
        # copies first: their source may be deleted further down
        for copy in copies:
            self._write(f"C {quote_path(copy.source_path, force=True)} {quote_path(copy.path)}\n")
        for op in changes:
            if isinstance(op, Delete):
                self._write(f"D {quote_path(op.path)}\n")
            else:
                self._write(f"M {op.mode} :{op.mark} {quote_path(op.path)}\n")
        self._write("\n")

    def tag(self, name: str, mark: int, identity: str, timestamp: Timestamp, message: str) -> None:
        self._write(f"tag {name}\n")
        self._write(f"from :{mark}\n")
        self._write(f"tagger {identity} {timestamp}\n")
        self._data((message or "").encode("utf-8"))
        self._write("\n")

    def done(self) -> None:
        # `git fast-import --done` rejects a stream that ends without this
        self._write("done\n")
