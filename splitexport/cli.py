#!/usr/bin/env python3
"""
splitexport

Split the history of a Mercurial repository into several git fast-import
streams, one per destination repository of the layout file.

Usage:
    splitexport [options] REPOS_PATH committers.txt reposlayout.txt

Example:
    mkfifo core docs
    (cd core.git && git fast-import --done < ../core) &
    (cd docs.git && git fast-import --done < ../docs) &
    splitexport /path/to/hg/repo committers.txt reposlayout.txt
"""
from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from . import errors
from .committers import Committers
from .hgwalk import crawl_revisions, open_repository
from .layout import load_layout
from .registry import Registry, output_dir_opener


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="splitexport",
        description="Convert a Mercurial repository into git fast-import streams, split by path.",
    )
    parser.add_argument("repos_path", help="the Mercurial repository to convert")
    parser.add_argument("committers", help="file with `username = Full Name <email>` mappings")
    parser.add_argument("layout", help="repository layout file (destinations and ignore lists)")
    parser.add_argument(
        "--output-dir",
        "-o",
        default=".",
        help="where to create one output stream per destination (default: current directory)",
    )
    parser.add_argument(
        "--no-tab-filter",
        dest="tab_filter",
        action="store_false",
        help="do not convert leading tabs of source files to spaces",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="debug output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    committers = Committers.load(args.committers)
    try:
        layout = load_layout(args.layout)
        repo = open_repository(args.repos_path)
        registry = Registry.load(layout, len(repo), output_dir_opener(args.output_dir), committers)
    except errors.ConfigError as e:
        errors.report(str(e))
        return errors.exit_status()

    try:
        exported = crawl_revisions(registry, repo, args.tab_filter)
    except BaseException:
        registry.abort()
        raise
    registry.close()

    sys.stderr.write(f"Exported {exported} revisions into {len(registry.repositories)} repositories\n")
    return errors.exit_status()


if __name__ == "__main__":
    sys.exit(main())
