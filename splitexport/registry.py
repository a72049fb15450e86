"""
All destination repositories of a conversion run.

The walker of the source history feeds one revision at a time: every
changed path is routed to the destination whose selector matches it, and
when the revision is complete each destination with pending changes
writes its commit(s).
"""
from __future__ import annotations
import logging
import os
from typing import BinaryIO, Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

from . import errors
from .branches import BranchLayout
from .committers import Committers
from .events import DELETE, PathEvent, Revision, Timestamp
from .layout import LayoutConfig, load_layout
from .repository import TAG_TEMP_BRANCH, Commit, RepositoryStream, Tag
from .router import PathRouter, compile_selector

logger = logging.getLogger("splitexport.registry")

Opener = Callable[[str], BinaryIO]


def output_dir_opener(output_dir: str) -> Opener:
    """One file per repository, named after it; may be a named pipe."""

    def opener(name: str) -> BinaryIO:
        return open(os.path.join(output_dir, name), "wb")

    return opener


class Registry:
    def __init__(self, config: LayoutConfig, committers: Optional[Committers] = None):
        self.config = config
        self.layout = BranchLayout.from_config(config)
        self.committers = committers if committers is not None else Committers()
        self.router: PathRouter[RepositoryStream] = PathRouter()
        self.tags: Dict[str, Tag] = {}
        self._converted: Set[int] = set()

    @classmethod
    def load(
        cls,
        config: Union[str, LayoutConfig],
        max_revisions: Optional[int] = None,
        opener: Optional[Opener] = None,
        committers: Optional[Committers] = None,
    ) -> "Registry":
        """
        Create the repositories of a layout file (or an already parsed layout).

        Raises ConfigError when no valid repository definition remains.
        """
        if not isinstance(config, LayoutConfig):
            config = load_layout(config)
        if opener is None:
            opener = output_dir_opener(os.getcwd())
        registry = cls(config, committers)
        for name, pattern in config.destinations:
            selector = compile_selector(name, pattern)
            if selector is None:
                continue
            registry.router.add(selector, RepositoryStream(name, pattern, opener(name), max_revisions))
        if not len(registry.router):
            raise errors.ConfigError("Must have at least one valid repository definition.")
        return registry

    @property
    def repositories(self) -> List[RepositoryStream]:
        return self.router.destinations()

    def get(self, name: str) -> Optional[RepositoryStream]:
        for repo in self.repositories:
            if repo.name == name:
                return repo
        return None

    def ignore_revision(self, revision: int) -> bool:
        return revision in self.config.ignore_revisions

    def ignore_tag(self, name: str) -> bool:
        return name in self.config.ignore_tags

    def has_parent(self, revision: int) -> bool:
        """Is `revision` something a converted commit may descend from?"""
        return (
            revision < 0
            or revision < self.config.first_revision
            or revision in self._converted
            or self.ignore_revision(revision)
        )

    # ---------- Recording changes ----------

    def route_and_record(self, event: PathEvent, branch: Optional[str] = None) -> Optional[RepositoryStream]:
        """
        Record one change of a file (paths relative to the branch).

        Paths no selector matches are dropped. Returns the repository the
        change went to.
        """
        if event.children:
            for child in event.children:
                self.route_and_record(child, branch)
            return None
        repo = self.router.match(event.path)
        if repo is None:
            logger.debug("%s matches no repository", event.path)
            return None

        if event.kind == DELETE:
            repo.record_delete(event.path, branch)
        elif event.content is not None:
            repo.record_modify(event.path, event.mode, event.content, branch)
        elif event.has_copy_source:
            if self.router.match(event.copy_from_path) is not repo:
                raise ValueError(
                    f"{event.path}: copy from {event.copy_from_path} leaves repository {repo.name} "
                    "and carries no content"
                )
            repo.record_copy(event.copy_from_revision, event.copy_from_path, event.path, branch)
        elif event.directory:
            # git does not track empty directories
            return None
        else:
            raise ValueError(f"{event.path}: {event.kind} without content")
        return repo

    def _copies_in_place(self, branch: str, source: Tuple[str, str], fname: str, revision: int) -> bool:
        """Can a copy of `source` at `revision` be written as a `C` directive?"""
        source_branch, source_fname = source
        if source_branch != branch or not source_fname:
            return False
        repo = self.router.match(fname)
        if repo is None or self.router.match(source_fname) is not repo:
            return False
        return repo.unchanged_since(revision, branch)

    def _record_layout_event(self, event: PathEvent) -> None:
        split = self.layout.split(event.path)
        if split is None:
            logger.debug("%s is outside of trunk, branches and tags", event.path)
            return
        branch, fname = split
        if branch.startswith(TAG_TEMP_BRANCH) and self.ignore_tag(branch[len(TAG_TEMP_BRANCH):]):
            return

        if event.children:
            for child in event.children:
                self._record_layout_event(child)
            return

        if not fname:
            if event.kind == DELETE:
                logger.info("Branch %s deleted", branch)
            return

        copy_from = None
        if event.has_copy_source:
            source = self.layout.split(event.copy_from_path)
            if source is not None and self._copies_in_place(branch, source, fname, event.copy_from_revision):
                copy_from = source[1]
            elif event.content is None:
                if self.router.match(fname) is None:
                    logger.debug("%s matches no repository", fname)
                    return
                errors.report(
                    f"{event.path}: copy from {event.copy_from_path}@{event.copy_from_revision} "
                    "needs the copied files, skipped"
                )
                return

        self.route_and_record(
            PathEvent(
                event.kind,
                fname,
                content=event.content,
                copy_from_revision=event.copy_from_revision if copy_from else None,
                copy_from_path=copy_from,
                mode=event.mode,
                directory=event.directory,
            ),
            branch,
        )

    # ---------- Branches and tags ----------

    def create_branch_or_tag(
        self,
        is_branch: bool,
        from_revision: int,
        from_branch: str,
        committer: str,
        name: str,
        timestamp: Timestamp,
        message: str,
    ) -> int:
        """
        Start branch or tag `name` from `from_branch` as it was at
        `from_revision`, in every repository that has that branch by then.
        The commit itself is written by the next `commit_all`.

        Returns the number of repositories the branch was started in.
        """
        if not is_branch and self.ignore_tag(name):
            logger.info("Tag %s ignored", name)
            return 0
        branch = name if is_branch else TAG_TEMP_BRANCH + name
        started = 0
        for repo in self.repositories:
            found = repo.find_commit(from_revision, from_branch)
            if found is None:
                logger.debug("%s: no %s at revision %d, %s not created", repo.name, from_branch, from_revision, name)
                continue
            repo.start_branch(branch, repo.ledger.mark_at(found, from_branch))
            started += 1
        if not is_branch:
            self.tags[name] = Tag(name, self.committers.identity(committer), timestamp, message)
        return started

    def update_mercurial_tag(self, name: str, tag_revision: int, committer: str, timestamp: Timestamp, message: str) -> int:
        """(Re)point a tag listed in .hgtags at `tag_revision`."""
        return self.create_branch_or_tag(
            False, tag_revision, self.config.default_branch, committer, name, timestamp, message
        )

    # ---------- Committing ----------

    def commit_all(
        self,
        author: str,
        default_branch: str,
        revision: int,
        timestamp: Timestamp,
        message: str,
        parent_revisions: Sequence[int] = (),
    ) -> int:
        """
        Commit the pending changes of every repository.

        Each (repository, branch) pair with changes gets its own commit with
        the same author and message. The first parent revision is the
        branch's own history; the others become merge parents.
        Returns the number of commits written.
        """
        identity = None
        merges = list(parent_revisions[1:])
        written = 0
        for repo in self.repositories:
            if not repo.has_pending():
                continue
            repo.assign_default_branch(default_branch)
            for branch in repo.branches_pending():
                if identity is None:
                    identity = self.committers.identity(author)
                commit = Commit(revision, branch, identity, timestamp, message, merges)
                if repo.flush_commit(commit) is not None:
                    written += 1
        self._converted.add(revision)
        return written

    def process_revision(self, revision: Revision) -> int:
        """Convert one revision of a trunk/branches/tags history."""
        if self.ignore_revision(revision.number):
            logger.info("Revision %d ignored", revision.number)
            return 0
        for event in revision.events:
            creation = self.layout.classify(event)
            if creation is None:
                self._record_layout_event(event)
                continue
            logger.info(
                "Creating %s %s from %s@%d",
                "branch" if creation.is_branch else "tag",
                creation.name,
                creation.from_branch,
                creation.from_revision,
            )
            self.create_branch_or_tag(
                creation.is_branch,
                creation.from_revision,
                creation.from_branch,
                revision.author,
                creation.name,
                revision.timestamp,
                revision.message,
            )
        return self.commit_all(
            revision.author,
            self.config.default_branch,
            revision.number,
            revision.timestamp,
            revision.message,
            revision.parents,
        )

    def close(self) -> None:
        """Write the tags and close every repository's stream."""
        for tag in self.tags.values():
            if not any([repo.write_tag(tag) for repo in self.repositories]):
                errors.warn(f"Tag {tag.name} has no commits in any repository")
        for repo in self.repositories:
            repo.close()

    def abort(self) -> None:
        """Close every stream without tags after the conversion failed."""
        for repo in self.repositories:
            repo.abort()
