"""
Committer identities: `username = Full Name <email>` per line.
"""
from __future__ import annotations
import os
from typing import Dict, Iterable, Optional, Set

from . import errors


class Committers:
    def __init__(self, mapping: Optional[Dict[str, str]] = None):
        self.mapping: Dict[str, str] = dict(mapping or {})
        self._missing: Set[str] = set()

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "Committers":
        mapping: Dict[str, str] = {}
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                errors.report(f"Malformed committer line '{line}'")
                continue
            uname, author = line.split("=", 1)
            uname = uname.strip()
            author = author.strip()
            if uname in mapping:
                errors.warn(f"username {uname} redefined to {author}")
            mapping[uname] = author
        return cls(mapping)

    @classmethod
    def load(cls, fn: str) -> "Committers":
        try:
            with open(os.path.expanduser(fn), "r", encoding="utf-8") as f:
                return cls.parse(f)
        except FileNotFoundError:
            errors.report(f"Committers file {fn} not found")
            return cls()

    def identity(self, username: str) -> str:
        """`Full Name <email>` for `username`; unknown names are reported once."""
        author = self.mapping.get(username)
        if author is not None:
            return author
        if username not in self._missing:
            self._missing.add(username)
            errors.report(f"Committer '{username}' not found in the committers file")
        return f"{username} <{username}>"
