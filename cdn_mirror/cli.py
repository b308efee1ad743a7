"""Command-line entry point for the CDN image mirror."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .config import (
    DEFAULT_EXTENSIONS,
    DEFAULT_MIRROR_ROOT,
    DEFAULT_ORIGIN_HOSTS,
    MirrorConfig,
)
from .errors import DocumentError
from .mirror import localize, populate

logger = logging.getLogger("cdn_mirror.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("all", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="HTML document to process")
    parser.add_argument(
        "--mirror-root",
        type=Path,
        default=DEFAULT_MIRROR_ROOT,
        help="Directory for mirrored images, relative to the input document",
    )
    parser.add_argument(
        "--host",
        dest="hosts",
        action="append",
        default=None,
        help="Origin host whose images are mirrored (repeatable)",
    )
    parser.add_argument(
        "--ext",
        dest="extensions",
        action="append",
        default=None,
        help="Image extension to recognise (repeatable)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only log errors",
    )


def _add_fetch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--concurrency",
        type=int,
        default=6,
        help="Number of downloads to run at once",
    )
    parser.add_argument(
        "--redirect-limit",
        type=int,
        default=5,
        help="Maximum redirects to follow per image",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=15.0,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=3,
        help="Retries for throttled or failing upstream responses",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any image fails to download",
    )


def _add_rewrite_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Rewritten document path (default: <input>_modified.<ext>)",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mirror CDN images referenced by an HTML document and rewrite it to use the local copies.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subparsers.add_parser("fetch", help="Download referenced images")
    _add_common_arguments(fetch_parser)
    _add_fetch_arguments(fetch_parser)

    rewrite_parser = subparsers.add_parser(
        "rewrite", help="Point image references at the local mirror"
    )
    _add_common_arguments(rewrite_parser)
    _add_rewrite_arguments(rewrite_parser)

    all_parser = subparsers.add_parser("all", help="Download, then rewrite")
    _add_common_arguments(all_parser)
    _add_fetch_arguments(all_parser)
    _add_rewrite_arguments(all_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> MirrorConfig:
    config = MirrorConfig(
        input_path=Path(args.input).resolve(),
        output_path=Path(args.output).resolve() if getattr(args, "output", None) else None,
        mirror_root=args.mirror_root,
        origin_hosts=tuple(args.hosts) if args.hosts else DEFAULT_ORIGIN_HOSTS,
        extensions=tuple(args.extensions) if args.extensions else DEFAULT_EXTENSIONS,
    )
    if hasattr(args, "concurrency"):
        config.concurrency_limit = args.concurrency
        config.redirect_hop_limit = args.redirect_limit
        config.timeout = args.timeout
        config.retries = args.retries
    return config


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args)
    config = build_config(args)

    failed = 0
    try:
        if args.command in ("fetch", "all"):
            summary = populate(config)
            failed = summary.failed
            for outcome in summary.failures:
                logger.debug("Failed: %s (%s)", outcome.reference.display, outcome.error)
        if args.command in ("rewrite", "all"):
            localize(config)
    except DocumentError as exc:
        logger.error("%s", exc)
        return 1

    if failed and getattr(args, "strict", False):
        logger.error("%d image(s) failed to download", failed)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
