import shutil
import subprocess

import pytest

from splitexport.committers import Committers
from splitexport.events import ADD, COPY, MODIFY, PathEvent, Revision, Timestamp
from splitexport.layout import LayoutConfig
from splitexport.registry import Registry, output_dir_opener

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(cwd, *args, **kwargs):
    return subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True, **kwargs).stdout


def revision(number, *events):
    return Revision(number, "joe", Timestamp(1200000000 + number * 3600, 60), f"r{number}", [number - 1], list(events))


def test_streams_load_into_git(tmp_path):
    streams = tmp_path / "streams"
    streams.mkdir()
    config = LayoutConfig(destinations=[("core", "^src/"), ("docs", "^doc/")])
    registry = Registry.load(
        config, 10, output_dir_opener(str(streams)), Committers({"joe": "Joe Bloggs <joe@example.com>"})
    )

    registry.process_revision(
        revision(
            1,
            PathEvent(MODIFY, "/trunk/src/a.c", content=b"int a;\n"),
            PathEvent(MODIFY, "/trunk/doc/guide.txt", content=b"guide\n"),
        )
    )
    registry.process_revision(
        revision(
            2,
            PathEvent(COPY, "/trunk/src/b.c", copy_from_revision=1, copy_from_path="/trunk/src/a.c"),
            PathEvent(MODIFY, "/trunk/src/a.c", content=b"int a2;\n"),
        )
    )
    registry.process_revision(
        revision(3, PathEvent(ADD, "/branches/b1", copy_from_revision=2, copy_from_path="/trunk", directory=True))
    )
    registry.process_revision(revision(4, PathEvent(MODIFY, "/branches/b1/src/a.c", content=b"branch\n")))
    registry.process_revision(
        revision(5, PathEvent(COPY, "/tags/T1", copy_from_revision=3, copy_from_path="/trunk", directory=True))
    )
    registry.close()

    counts = {}
    for name in ("core", "docs"):
        repo = tmp_path / name
        repo.mkdir()
        git(repo, "init", "--quiet")
        with open(streams / name, "rb") as stream:
            subprocess.run(["git", "fast-import", "--quiet", "--done"], cwd=repo, stdin=stream, check=True)
        counts[name] = git(repo, "rev-list", "--all", "--count").strip()

    core = tmp_path / "core"
    assert counts == {"core": "5", "docs": "3"}
    assert git(core, "show", "master:src/b.c") == "int a;\n"
    assert git(core, "show", "master:src/a.c") == "int a2;\n"
    assert git(core, "show", "b1:src/a.c") == "branch\n"
    assert git(core, "tag").split() == ["T1"]
    assert git(core, "log", "-1", "--format=%an <%ae> %s", "T1") == "Joe Bloggs <joe@example.com> r5\n"
    assert git(core, "rev-parse", "T1^{commit}^") == git(core, "rev-parse", "master")
    assert git(tmp_path / "docs", "ls-tree", "--name-only", "-r", "b1") == "doc/guide.txt\n"
