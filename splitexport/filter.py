"""
Tab policy for source files: tabs in the leading indentation of a line
become spaces up to the next tab stop. Other tabs are left alone.

The conversion is a pure function over one chunk of bytes plus a small
state value, so a file may be fed in pieces of any size.
"""
from __future__ import annotations
import os
from typing import NamedTuple, Tuple

TAB_WIDTH = 4

FILTERED_SUFFIXES = frozenset(
    [
        "c", "cpp", "cxx", "h", "hrc", "hxx", "idl", "inl", "java", "map",
        "mk", "pmk", "pl", "pm", "sdi", "sh", "src", "tab", "xcu", "xml",
    ]
)


class TabState(NamedTuple):
    column: int = 0
    # spaces of the current indentation not yet written; a following tab
    # replaces them with the run up to its tab stop
    pending_spaces: int = 0
    non_space_seen: bool = False


def filter_tabs(data: bytes, state: TabState = TabState()) -> Tuple[bytes, TabState]:
    column, pending, seen = state
    out = bytearray()
    for byte in data:
        if seen:
            out.append(byte)
            if byte == 0x0A:
                column, pending, seen = 0, 0, False
            continue
        if byte == 0x20:
            column += 1
            pending += 1
        elif byte == 0x09:
            stop = (column // TAB_WIDTH + 1) * TAB_WIDTH
            out.extend(b" " * (pending + stop - column))
            column, pending = stop, 0
        else:
            out.extend(b" " * pending)
            out.append(byte)
            if byte == 0x0A:
                column, pending = 0, 0
            else:
                pending, seen = 0, True
    return bytes(out), TabState(column, pending, seen)


def finish(state: TabState) -> bytes:
    """Spaces still held back at the end of the input."""
    return b" " * state.pending_spaces


def wants_tab_filter(filename: str) -> bool:
    suffix = os.path.splitext(filename)[1][1:].lower()
    return suffix in FILTERED_SUFFIXES


def filter_content(filename: str, data: bytes) -> bytes:
    if not wants_tab_filter(filename):
        return data
    converted, state = filter_tabs(data)
    return converted + finish(state)
