from unittest.mock import patch

import pytest

from fake_hg import FakeRepo
from splitexport.cli import main
from splitexport.hgwalk import crawl_revisions


def write_config(tmp_path, committers="joe = Joe Bloggs <joe@example.com>\n", layout="core ^src/\ndocs ^doc/\n"):
    (tmp_path / "committers.txt").write_text(committers, encoding="utf-8")
    (tmp_path / "layout.txt").write_text(layout, encoding="utf-8")
    out = tmp_path / "out"
    out.mkdir()
    return [
        "/path/to/hg",
        str(tmp_path / "committers.txt"),
        str(tmp_path / "layout.txt"),
        "--output-dir",
        str(out),
    ]


def sample_repo():
    repo = FakeRepo()
    repo.add({b"src/a.c": (b"\tx;\n", b""), b"doc/a.txt": (b"doc\n", b"")}, [b"src/a.c", b"doc/a.txt"])
    repo.add({b"src/a.c": (b"y;\n", b""), b"doc/a.txt": (b"doc\n", b"")}, [b"src/a.c"])
    return repo


def test_main_writes_one_stream_per_repository(tmp_path, capsys):
    argv = write_config(tmp_path)
    with patch("splitexport.cli.open_repository", return_value=sample_repo()) as opened:
        assert main(argv) == 0
    opened.assert_called_once_with("/path/to/hg")

    core = (tmp_path / "out" / "core").read_bytes()
    docs = (tmp_path / "out" / "docs").read_bytes()
    assert core.count(b"commit refs/heads/master\n") == 2
    assert b"data 7\n    x;\n" in core
    assert docs.count(b"commit refs/heads/master\n") == 1
    assert "Exported 2 revisions into 2 repositories" in capsys.readouterr().err


def test_no_tab_filter_option(tmp_path):
    argv = write_config(tmp_path) + ["--no-tab-filter"]
    with patch("splitexport.cli.open_repository", return_value=sample_repo()):
        assert main(argv) == 0
    assert b"data 4\n\tx;\n" in (tmp_path / "out" / "core").read_bytes()


def test_reported_errors_set_exit_status(tmp_path):
    argv = write_config(tmp_path, committers="")
    with patch("splitexport.cli.open_repository", return_value=sample_repo()):
        assert main(argv) == 1
    assert (tmp_path / "out" / "core").exists()


def test_no_valid_repository_definition(tmp_path):
    argv = write_config(tmp_path, layout="core (src\n")
    with patch("splitexport.cli.open_repository", return_value=sample_repo()):
        assert main(argv) == 1
    assert list((tmp_path / "out").iterdir()) == []


def test_failed_conversion_leaves_streams_incomplete(tmp_path):
    argv = write_config(tmp_path)
    repo = FakeRepo()
    first = repo.add({b"src/a.c": (b"x;\n", b"")}, [b"src/a.c"])
    repo.add({b"src/a.c": (b"x;\n", b""), b".hgtags": (b"%s REL_1\n" % first.hex(), b"")}, [b".hgtags"])

    def crawl_then_fail(registry, repo, tab_filter):
        crawl_revisions(registry, repo, tab_filter)
        raise RuntimeError("disk full")

    with patch("splitexport.cli.open_repository", return_value=repo), \
            patch("splitexport.cli.crawl_revisions", side_effect=crawl_then_fail):
        with pytest.raises(RuntimeError):
            main(argv)

    core = (tmp_path / "out" / "core").read_bytes()
    assert b"commit refs/heads/tag-branches/REL_1\n" in core
    assert b"tag REL_1\n" not in core
    assert not core.endswith(b"done\n")


def test_finished_conversion_ends_streams_with_done(tmp_path):
    argv = write_config(tmp_path)
    with patch("splitexport.cli.open_repository", return_value=sample_repo()):
        assert main(argv) == 0
    for name in ("core", "docs"):
        assert (tmp_path / "out" / name).read_bytes().endswith(b"\ndone\n")
