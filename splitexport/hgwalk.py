"""
Walk the changesets of a Mercurial repository and feed them to a Registry.

Only the public changectx/filectx API of `mercurial` is used, so anything
that looks like a repository (``len(repo)``, ``repo[rev]``) can be walked.
"""
from __future__ import annotations
import logging
import os
from typing import Dict, List, Union

from . import errors
from .events import DELETE, MODE_EXECUTABLE, MODE_REGULAR, MODE_SYMLINK, MODIFY, PathEvent, Timestamp
from .filter import filter_content
from .registry import Registry

logger = logging.getLogger("splitexport.hgwalk")

HGTAGS = ".hgtags"
NULL_NODE = "0" * 40


def _str(value: Union[bytes, str]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "surrogateescape")
    return value


def _bytes(value: Union[bytes, str]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    return value


def file_mode(flags: Union[bytes, str]) -> str:
    flags = _str(flags)
    if "l" in flags:
        return MODE_SYMLINK
    if "x" in flags:
        return MODE_EXECUTABLE
    if flags:
        errors.warn(f"Got an unknown flag '{flags}'")
    return MODE_REGULAR


def hg_timestamp(date) -> Timestamp:
    """Mercurial dates are (seconds, offset in seconds west of UTC)."""
    seconds, offset = date
    return Timestamp(int(seconds), -int(offset) // 60)


def changed_during_merge(manifest, parent_manifest) -> List:
    """Files a merge changed relative to its first parent."""
    files = []
    for fname, node in manifest.items():
        if fname not in parent_manifest:
            files.append(fname)
        elif parent_manifest[fname] != node or manifest.flags(fname) != parent_manifest.flags(fname):
            files.append(fname)
    for fname in parent_manifest:
        if fname not in manifest:
            files.append(fname)
    return sorted(files)


def open_repository(path: str):
    from mercurial import hg, ui as uimod

    ui = uimod.ui.load()
    ui.setconfig(b"ui", b"interactive", b"off")
    return hg.repository(ui, os.fsencode(path))


class MercurialWalker:
    def __init__(self, registry: Registry, repo, tab_filter: bool = True):
        self.registry = registry
        self.repo = repo
        self.tab_filter = tab_filter
        # tag name -> node it was last exported at
        self._tags: Dict[str, str] = {}

    def crawl(self) -> int:
        """Export every changeset from the layout's first revision on."""
        exported = 0
        for rev in range(self.registry.config.first_revision, len(self.repo)):
            if self.registry.ignore_revision(rev):
                logger.info("Revision %d ignored", rev)
                continue
            if self.export_changeset(self.repo[rev]):
                exported += 1
        return exported

    def export_changeset(self, ctx) -> bool:
        rev = ctx.rev()
        logger.info("Exporting revision %d (%s)...", rev, _str(ctx.hex()))

        parents = [p.rev() for p in ctx.parents()]
        if not parents or not self.registry.has_parent(parents[0]):
            errors.report(f"Revision {rev} ignored, no parent.")
            return False

        author = _str(ctx.user())
        timestamp = hg_timestamp(ctx.date())
        message = _str(ctx.description())

        if len(parents) > 1:
            files = changed_during_merge(ctx.manifest(), ctx.parents()[0].manifest())
        else:
            files = ctx.files()

        for f in files:
            self.dump_file(ctx, f, author, timestamp, message)

        written = self.registry.commit_all(
            author, self.registry.config.default_branch, rev, timestamp, message, parents
        )
        logger.info("Revision %d done, %d commit(s)", rev, written)
        return True

    def dump_file(self, ctx, f, author: str, timestamp: Timestamp, message: str) -> None:
        path = _str(f)
        if path == HGTAGS:
            # never exported as a file
            if f in ctx:
                self.update_tags(_bytes(ctx.filectx(f).data()), author, timestamp, message)
            return
        if f not in ctx:
            self.registry.route_and_record(PathEvent(DELETE, path))
            return
        filectx = ctx.filectx(f)
        data = _bytes(filectx.data())
        if self.tab_filter:
            data = filter_content(path, data)
        self.registry.route_and_record(PathEvent(MODIFY, path, content=data, mode=file_mode(filectx.flags())))

    def update_tags(self, hgtags: bytes, author: str, timestamp: Timestamp, message: str) -> None:
        for line in hgtags.decode("utf-8", "surrogateescape").splitlines():
            parts = line.split(None, 1)
            if len(parts) != 2:
                continue
            node, name = parts[0], parts[1].strip()
            if self._tags.get(name) == node:
                continue
            self._tags[name] = node
            if node == NULL_NODE:
                logger.info("Tag %s removed", name)
                continue
            try:
                binnode = bytes.fromhex(node)
            except ValueError:
                errors.report(f"Malformed .hgtags line '{line}'")
                continue
            if binnode not in self.repo:
                errors.report(f"Tag {name} refers to unknown changeset {node}")
                continue
            tag_rev = self.repo[binnode].rev()
            self.registry.update_mercurial_tag(name, tag_rev, author, timestamp, message)


def crawl_revisions(registry: Registry, repo, tab_filter: bool = True) -> int:
    return MercurialWalker(registry, repo, tab_filter).crawl()
