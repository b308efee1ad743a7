"""MCP server exposing cdn-mirror extract/rewrite tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from .config import DEFAULT_EXTENSIONS, DEFAULT_MIRROR_ROOT, DEFAULT_ORIGIN_HOSTS
from .extract import extract_references
from .paths import local_relpath
from .patterns import build_tiers
from .rewrite import Rewriter

logger = logging.getLogger("cdn_mirror.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="cdn-mirror")


def _hosts(hosts: Optional[List[str]]) -> tuple:
    return tuple(hosts) if hosts else DEFAULT_ORIGIN_HOSTS


@mcp.tool()
async def extract(html: str, hosts: Optional[List[str]] = None) -> List[Dict[str, Optional[str]]]:
    """List the CDN image references in a document and their mirror-relative paths."""

    tiers = build_tiers(_hosts(hosts), DEFAULT_EXTENSIONS)
    return [
        {
            "url": reference.url,
            "dimension": reference.dimension,
            "local_path": local_relpath(reference.url, reference.dimension).as_posix(),
        }
        for reference in extract_references(html, tiers)
    ]


@mcp.tool()
async def rewrite(
    html: str,
    mirror_root: str = str(DEFAULT_MIRROR_ROOT),
    hosts: Optional[List[str]] = None,
) -> Dict[str, object]:
    """Rewrite CDN image references to links under ``mirror_root``."""

    rewriter = Rewriter(Path(mirror_root), Path("."), _hosts(hosts), DEFAULT_EXTENSIONS)
    result = rewriter.rewrite(html)
    return {"text": result.text, "substitutions": result.substitutions}


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
