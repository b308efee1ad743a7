"""Configuration objects and constants for the mirror."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

DEFAULT_ORIGIN_HOSTS = ("images.squarespace-cdn.com",)
DEFAULT_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "ico")
DEFAULT_MIRROR_ROOT = Path("sscopy")
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; cdn-mirror/0.1)"


@dataclass
class MirrorConfig:
    """Top-level settings shared by the fetch and rewrite passes."""

    input_path: Path
    output_path: Optional[Path] = None
    mirror_root: Path = DEFAULT_MIRROR_ROOT
    redirect_hop_limit: int = 5
    concurrency_limit: int = 6
    timeout: float = 15.0
    retries: int = 3
    origin_hosts: Tuple[str, ...] = DEFAULT_ORIGIN_HOSTS
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def document_dir(self) -> Path:
        return self.input_path.parent

    def resolved_mirror_root(self) -> Path:
        """Anchor a relative mirror root at the input document's directory."""
        if self.mirror_root.is_absolute():
            return self.mirror_root
        return self.document_dir / self.mirror_root

    def resolved_output_path(self) -> Path:
        if self.output_path is not None:
            return self.output_path
        source = self.input_path
        return source.with_name(f"{source.stem}_modified{source.suffix}")
