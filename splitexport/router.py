"""
First-match routing of file paths to destination repositories.
"""
from __future__ import annotations
import re
from typing import Generic, List, Optional, Tuple, TypeVar

from . import errors

T = TypeVar("T")


def compile_selector(name: str, pattern: str) -> Optional[re.Pattern]:
    """Compile a selector; an invalid one is reported and gives None."""
    try:
        return re.compile(pattern)
    except re.error as e:
        errors.report(f"Repository '{name}': invalid regex '{pattern}': {e}")
        return None


class PathRouter(Generic[T]):
    """
    Ordered list of compiled selectors. A path belongs to the first
    destination whose selector matches anywhere in it (use ``^`` to anchor).
    """

    def __init__(self):
        self._rules: List[Tuple[re.Pattern, T]] = []

    def add(self, selector: re.Pattern, destination: T) -> None:
        self._rules.append((selector, destination))

    def match(self, path: str) -> Optional[T]:
        for selector, destination in self._rules:
            if selector.search(path):
                return destination
        return None

    def __len__(self) -> int:
        return len(self._rules)

    def destinations(self) -> List[T]:
        return [destination for _, destination in self._rules]
