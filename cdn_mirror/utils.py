"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import os
import re
from pathlib import Path, PurePosixPath
from typing import Union
from urllib.parse import quote

UNSAFE_FILENAME_PATTERN = re.compile(r'[=&/\\:*?"<>|]')
LINK_SAFE_CHARS = "/._-~+"


def canonical_query(query: str) -> str:
    """Fold a query string into a filename-safe token (``a=1&b=2`` -> ``a_1_b_2``)."""
    return UNSAFE_FILENAME_PATTERN.sub("_", query.lstrip("?"))


def render_link(target: Union[Path, PurePosixPath], document_dir: Path) -> str:
    """Render ``target`` as a POSIX link relative to the directory of a document.

    Paths are compared lexically so no filesystem access is needed. The link
    is percent-encoded, so a file literally named ``a%20b.png`` is linked as
    ``a%2520b.png`` and resolves back to that name.
    """
    relative = os.path.relpath(os.path.abspath(target), os.path.abspath(document_dir))
    link = quote(Path(relative).as_posix(), safe=LINK_SAFE_CHARS)
    if link.startswith("../"):
        return link
    return f"./{link}"
