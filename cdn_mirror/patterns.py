"""Tiered URL patterns shared by extraction and rewriting."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from .models import AssetReference
from .paths import local_relpath

SRCSET_QUERY = "srcset-query"
SRCSET = "srcset"
QUERY = "query"
BARE = "bare"

# Characters that end a URL embedded in markup, CSS or JSON.
_STOP = r"\s\"'<>()\\"
# Entity-encoded quotes end a URL too, e.g. JSON inside an attribute.
_QUOTE_ENTITY = r"&(?:quot|apos|#0*3[49]|#x0*2[27]);"


@dataclass(frozen=True)
class Tier:
    """One pass of the match-and-replace pipeline."""

    name: str
    pattern: re.Pattern[str]


def build_tiers(hosts: Iterable[str], extensions: Iterable[str]) -> Tuple[Tier, ...]:
    """Compile the four tiers, most specific first."""
    host = "|".join(re.escape(h) for h in hosts)
    ext = "|".join(re.escape(e.lstrip(".")) for e in extensions)
    if not host or not ext:
        raise ValueError("At least one origin host and one extension are required")

    char = rf"(?!{_QUOTE_ENTITY})[^{_STOP}#"
    base = rf"https?://(?:{host})/(?:{char}?])*?\.(?:{ext})(?=[{_STOP}?#,&]|$)"
    # A query never ends with a comma so srcset lists stay separable.
    query = rf"\?(?:{char}])*(?:{char},])(?=[{_STOP}#,]|{_QUOTE_ENTITY}|$)"
    width = r"(?P<tail>\s+(?P<width>\d+w))\b"
    no_width = r"(?!\s+\d+w\b)"

    flags = re.IGNORECASE
    return (
        Tier(SRCSET_QUERY, re.compile(rf"(?P<url>{base}{query}){width}", flags)),
        Tier(SRCSET, re.compile(rf"(?P<url>{base}){width}", flags)),
        Tier(QUERY, re.compile(rf"(?P<url>{base}{query}){no_width}", flags)),
        Tier(BARE, re.compile(rf"(?P<url>{base})(?!\?[^{_STOP}#,]){no_width}", flags)),
    )


def reference_from_match(match: re.Match[str]) -> AssetReference:
    """Build a validated reference from a tier match.

    Raises :class:`~cdn_mirror.errors.ParseError` when the URL cannot be mapped.
    """
    url = html.unescape(match.group("url"))
    reference = AssetReference(url=url, dimension=match.groupdict().get("width"))
    local_relpath(reference.url, reference.dimension)
    return reference


Substitute = Callable[[Tier, re.Match[str]], Optional[str]]


def apply_tiers(
    text: str,
    tiers: Iterable[Tier],
    substitute: Substitute,
) -> Tuple[str, Dict[str, int]]:
    """Run every tier over the output of the previous one.

    ``substitute`` returns the replacement for a match, or ``None`` to keep
    the matched text verbatim. Returns the final text and the number of
    replacements made per tier.
    """
    counts: Dict[str, int] = {}
    for tier in tiers:
        hits = 0

        def _replace(match: re.Match[str]) -> str:
            nonlocal hits
            replacement = substitute(tier, match)
            if replacement is None:
                return match.group(0)
            hits += 1
            return replacement

        text = tier.pattern.sub(_replace, text)
        counts[tier.name] = hits
    return text, counts
