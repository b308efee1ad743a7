"""Exceptions raised while mirroring assets."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class MirrorError(Exception):
    """Base class for every error raised by cdn_mirror."""


class ParseError(MirrorError, ValueError):
    """A candidate URL cannot be mapped to a local path."""


class FetchCause(str, Enum):
    HTTP_STATUS = "http_status"
    NETWORK = "network"
    REDIRECT_LOOP = "redirect_loop"


class FetchError(MirrorError):
    """Retrieving a single reference failed."""

    def __init__(
        self,
        url: str,
        cause: FetchCause,
        message: str,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.cause = cause
        self.status = status


class StorageError(MirrorError):
    """A mirrored file could not be written to its local path."""


class DocumentError(MirrorError):
    """The input document cannot be read or the output cannot be written."""
