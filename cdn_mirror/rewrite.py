"""Replace remote image references with links into the local mirror."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from .config import MirrorConfig
from .errors import ParseError
from .models import RewriteResult
from .paths import PathMapper
from .patterns import Tier, apply_tiers, build_tiers, reference_from_match
from .utils import render_link

logger = logging.getLogger("cdn_mirror")


class Rewriter:
    """Rewrite documents so their images resolve against the mirror.

    Links are rendered relative to ``document_dir``, the directory the
    rewritten document will live in, so it can be opened without a server.
    """

    def __init__(
        self,
        mirror_root: Path,
        document_dir: Path,
        origin_hosts: Iterable[str],
        extensions: Iterable[str],
    ) -> None:
        self.mapper = PathMapper(mirror_root)
        self.document_dir = Path(document_dir)
        self.tiers = build_tiers(origin_hosts, extensions)

    @classmethod
    def from_config(cls, config: MirrorConfig) -> "Rewriter":
        output_path = config.resolved_output_path()
        return cls(
            config.resolved_mirror_root(),
            output_path.parent,
            config.origin_hosts,
            config.extensions,
        )

    def _substitute(self, tier: Tier, match) -> Optional[str]:
        try:
            reference = reference_from_match(match)
        except ParseError as exc:
            logger.debug("Leaving %s match untouched: %s", tier.name, exc)
            return None
        link = render_link(self.mapper.map_reference(reference), self.document_dir)
        logger.debug("Replacing %s URL: %s -> %s", tier.name, reference.display, link)
        return link + (match.groupdict().get("tail") or "")

    def rewrite(self, text: str) -> RewriteResult:
        rewritten, per_tier = apply_tiers(text, self.tiers, self._substitute)
        return RewriteResult(
            text=rewritten,
            substitutions=sum(per_tier.values()),
            per_tier=per_tier,
        )
