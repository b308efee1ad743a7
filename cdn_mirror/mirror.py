"""High-level orchestration of the fetch and rewrite passes."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import requests

from .config import MirrorConfig
from .errors import DocumentError
from .extract import ReferenceExtractor
from .images import Fetcher
from .models import BatchSummary, RewriteResult
from .rewrite import Rewriter

logger = logging.getLogger("cdn_mirror")


def read_document(path: Path) -> str:
    """Load the source document; failure here is fatal for the run."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentError(f"Cannot read {path}: {exc}") from exc


def write_document(path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise DocumentError(f"Cannot write {path}: {exc}") from exc


def populate(
    config: MirrorConfig,
    session: Optional[requests.Session] = None,
) -> BatchSummary:
    """Download every image the input document references into the mirror."""
    start = time.perf_counter()
    logger.info("Reading %s", config.input_path)
    text = read_document(config.input_path)

    references = ReferenceExtractor(config).extract(text)
    fetcher = Fetcher.from_config(config, session=session)
    summary = fetcher.fetch_all(references)

    logger.info(
        "Download finished in %.2fs (%d/%d succeeded, %d failed) into %s",
        time.perf_counter() - start,
        summary.succeeded,
        summary.total,
        summary.failed,
        config.resolved_mirror_root(),
    )
    return summary


def localize(config: MirrorConfig) -> RewriteResult:
    """Rewrite the input document to point at the mirror and save the result."""
    logger.info("Reading %s", config.input_path)
    text = read_document(config.input_path)

    result = Rewriter.from_config(config).rewrite(text)

    output_path = config.resolved_output_path()
    write_document(output_path, result.text)
    logger.info(
        "Saved rewritten document to %s (%d replacements)",
        output_path,
        result.substitutions,
    )
    for tier, count in result.per_tier.items():
        logger.debug("  %s: %d", tier, count)
    return result
