"""Deterministic mapping from remote asset URLs to mirror paths.

The fetch pass and the rewrite pass both derive file locations through
this module and nothing else. Two runs that never share memory therefore
agree on where an asset lives: the downloader writes ``map(url, width)``
and the rewriter links to the very same path.

Layout rules:

* the remote path hierarchy is preserved below the mirror root;
* a query string is folded into the filename (``?format=100w`` becomes
  ``_format_100w``);
* a srcset width token is appended after the query token.

``https://cdn/a/b.png?format=100w`` requested at ``200w`` thus maps to
``<root>/a/b_format_100w_200w.png``.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlsplit

from .errors import ParseError
from .models import AssetReference
from .utils import canonical_query

_ALLOWED_SCHEMES = {"http", "https"}


def local_relpath(url: str, dimension: Optional[str] = None) -> PurePosixPath:
    """Return the mirror-relative path for ``url`` at an optional width."""
    parts = urlsplit(url)
    if parts.scheme.lower() not in _ALLOWED_SCHEMES or not parts.netloc:
        raise ParseError(f"Not an http(s) URL: {url!r}")

    remote = PurePosixPath(parts.path or "/")
    segments = [segment for segment in remote.parts if segment != "/"]
    if any(segment in (".", "..") for segment in segments):
        raise ParseError(f"Relative path segments are not allowed: {url!r}")
    if not segments or parts.path.endswith("/"):
        raise ParseError(f"URL has no filename: {url!r}")

    filename = segments[-1]
    query_token = canonical_query(parts.query) if parts.query else ""
    if query_token or dimension:
        name = PurePosixPath(filename)
        pieces = [name.stem]
        if query_token:
            pieces.append(query_token)
        if dimension:
            pieces.append(dimension)
        filename = "_".join(pieces) + name.suffix

    return PurePosixPath(*segments[:-1], filename)


class PathMapper:
    """Join :func:`local_relpath` results under a mirror root."""

    def __init__(self, mirror_root: Path) -> None:
        self.mirror_root = Path(mirror_root)

    def map(self, url: str, dimension: Optional[str] = None) -> Path:
        return self.mirror_root.joinpath(*local_relpath(url, dimension).parts)

    def map_reference(self, reference: AssetReference) -> Path:
        return self.map(reference.url, reference.dimension)
