"""Discovery of remote image references in raw document text."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .config import MirrorConfig
from .errors import ParseError
from .models import AssetReference
from .patterns import Tier, apply_tiers, build_tiers, reference_from_match

logger = logging.getLogger("cdn_mirror")

# Masked regions keep their length so match offsets stay comparable across tiers.
_MASK = "\x00"


def extract_references(text: str, tiers: Iterable[Tier]) -> List[AssetReference]:
    """Return unique references in order of first occurrence."""
    found: List[Tuple[int, AssetReference]] = []

    def _record(tier: Tier, match) -> Optional[str]:
        try:
            reference = reference_from_match(match)
        except ParseError as exc:
            logger.debug("Skipping %s match: %s", tier.name, exc)
            return None
        found.append((match.start(), reference))
        return _MASK * len(match.group(0))

    apply_tiers(text, tiers, _record)

    unique: Dict[AssetReference, None] = {}
    for _, reference in sorted(found, key=lambda item: item[0]):
        unique.setdefault(reference, None)
    return list(unique)


class ReferenceExtractor:
    """Extract references for the origin hosts named in a config."""

    def __init__(self, config: MirrorConfig) -> None:
        self.tiers = build_tiers(config.origin_hosts, config.extensions)

    def extract(self, text: str) -> List[AssetReference]:
        references = extract_references(text, self.tiers)
        logger.info("Found %d unique image references", len(references))
        return references
