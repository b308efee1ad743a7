"""Data models used throughout the mirror pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass(frozen=True)
class AssetReference:
    """Remote asset found in a document, optionally tied to a srcset width."""

    url: str
    dimension: Optional[str] = None

    @property
    def display(self) -> str:
        return f"{self.url} {self.dimension}" if self.dimension else self.url


@dataclass
class FetchOutcome:
    """Result of mirroring one reference."""

    reference: AssetReference
    path: Optional[Path]
    error: Optional[Exception] = None
    final_url: Optional[str] = None
    bytes_written: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchSummary:
    """Tally of a fetch batch, computed from the collected outcomes."""

    outcomes: List[FetchOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def failures(self) -> List[FetchOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


@dataclass
class RewriteResult:
    """Rewritten document text plus the substitutions made."""

    text: str
    substitutions: int = 0
    per_tier: Dict[str, int] = field(default_factory=dict)
