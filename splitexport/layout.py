"""
Repository layout file: which destination repositories exist, which paths
go where, and what to leave out of the conversion.

    # comment
    :trunk /trunk
    :branches /branches/
    :tags /tags/
    :default-branch master
    :first-revision 0
    :ignore-revisions 17 42
    :ignore-tags OLD_TAG
    core ^src/
    docs ^doc/
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Set, Tuple

from . import errors


@dataclass
class LayoutConfig:
    destinations: List[Tuple[str, str]] = field(default_factory=list)
    ignore_revisions: Set[int] = field(default_factory=set)
    ignore_tags: Set[str] = field(default_factory=set)
    trunk_base: str = "/trunk"
    branches: str = "/branches/"
    tags: str = "/tags/"
    default_branch: str = "master"
    first_revision: int = 0

    @property
    def trunk(self) -> str:
        return self.trunk_base + "/"


def _as_dir_prefix(value: str) -> str:
    return value if value.endswith("/") else value + "/"


def parse_layout(lines: Iterable[str], source: str = "<layout>") -> LayoutConfig:
    config = LayoutConfig()
    for lineno, raw in enumerate(lines, 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        where = f"{source}:{lineno}"
        if line.startswith(":"):
            directive, _, value = line[1:].partition(" ")
            value = value.strip()
            if directive == "ignore-revisions":
                for word in value.split():
                    try:
                        config.ignore_revisions.add(int(word))
                    except ValueError:
                        errors.report(f"{where}: '{word}' is not a revision number")
            elif directive == "ignore-tags":
                config.ignore_tags.update(value.split())
            elif not value:
                errors.report(f"{where}: directive ':{directive}' needs a value")
            elif directive == "trunk":
                config.trunk_base = value.rstrip("/")
            elif directive == "branches":
                config.branches = _as_dir_prefix(value)
            elif directive == "tags":
                config.tags = _as_dir_prefix(value)
            elif directive == "default-branch":
                config.default_branch = value
            elif directive == "first-revision":
                try:
                    config.first_revision = int(value)
                except ValueError:
                    errors.report(f"{where}: '{value}' is not a revision number")
            else:
                errors.report(f"{where}: unknown directive ':{directive}'")
            continue
        parts = line.split(None, 1)
        if len(parts) != 2:
            errors.report(f"{where}: expected 'name regex', got '{line}'")
            continue
        name, pattern = parts[0], parts[1].strip()
        if name in (n for n, _ in config.destinations):
            errors.report(f"{where}: repository '{name}' defined twice, keeping the first")
            continue
        config.destinations.append((name, pattern))
    return config


def load_layout(fn: str) -> LayoutConfig:
    try:
        with open(os.path.expanduser(fn), "r", encoding="utf-8") as f:
            return parse_layout(f, fn)
    except OSError as e:
        raise errors.ConfigError(f"Cannot read layout file {fn}: {e}") from e
