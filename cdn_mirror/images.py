"""Image downloading into the local mirror."""

from __future__ import annotations

import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import suppress
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urljoin

import requests
from filetype import guess
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import DEFAULT_USER_AGENT, MirrorConfig
from .errors import FetchCause, FetchError, MirrorError, StorageError
from .models import AssetReference, BatchSummary, FetchOutcome
from .paths import PathMapper

logger = logging.getLogger("cdn_mirror")

REDIRECT_STATUSES = {301, 302, 303, 307, 308}
CHUNK_SIZE = 64 * 1024
SIGNATURE_BYTES = 262


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def build_session(user_agent: str = DEFAULT_USER_AGENT, retries: int = 3) -> requests.Session:
    """Create a session that retries throttled and failing upstream responses."""
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=frozenset(["GET"]),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=16, pool_maxsize=16)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class Fetcher:
    """Download references to the paths :class:`PathMapper` assigns them."""

    def __init__(
        self,
        mirror_root: Path,
        redirect_hop_limit: int = 5,
        timeout: float = 15.0,
        concurrency_limit: int = 6,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.mapper = PathMapper(mirror_root)
        self.redirect_hop_limit = redirect_hop_limit
        self.timeout = timeout
        self.concurrency_limit = max(1, concurrency_limit)
        self.session = session or build_session()

    @classmethod
    def from_config(
        cls,
        config: MirrorConfig,
        session: Optional[requests.Session] = None,
    ) -> "Fetcher":
        return cls(
            config.resolved_mirror_root(),
            redirect_hop_limit=config.redirect_hop_limit,
            timeout=config.timeout,
            concurrency_limit=config.concurrency_limit,
            session=session or build_session(config.user_agent, config.retries),
        )

    def _open(self, url: str) -> Tuple[requests.Response, str]:
        """Follow redirects by hand and return the final streaming response."""
        current = url
        for _ in range(self.redirect_hop_limit + 1):
            try:
                response = self.session.get(
                    current,
                    timeout=self.timeout,
                    stream=True,
                    allow_redirects=False,
                )
            except requests.RequestException as exc:
                raise FetchError(url, FetchCause.NETWORK, str(exc)) from exc

            status = response.status_code
            if status in REDIRECT_STATUSES:
                location = response.headers.get("Location")
                response.close()
                if not location:
                    raise FetchError(
                        url,
                        FetchCause.HTTP_STATUS,
                        f"HTTP {status} without a Location header",
                        status=status,
                    )
                next_url = urljoin(current, location)
                logger.debug("Redirecting %s -> %s", current, next_url)
                current = next_url
                continue

            if not 200 <= status < 300:
                response.close()
                raise FetchError(url, FetchCause.HTTP_STATUS, f"HTTP {status}", status=status)
            return response, current

        raise FetchError(
            url,
            FetchCause.REDIRECT_LOOP,
            f"more than {self.redirect_hop_limit} redirects",
        )

    def fetch_or_raise(self, reference: AssetReference) -> FetchOutcome:
        """Mirror one reference, raising a :class:`MirrorError` on failure."""
        destination = self.mapper.map_reference(reference)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create {destination.parent}: {exc}") from exc

        response, final_url = self._open(reference.url)
        content_type = response.headers.get("Content-Type", "")
        head = b""
        written = 0
        partial = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.part")
        try:
            with response, open(partial, "wb") as handle:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    if len(head) < SIGNATURE_BYTES:
                        head += chunk[: SIGNATURE_BYTES - len(head)]
                    handle.write(chunk)
                    written += len(chunk)
            os.replace(partial, destination)
        except requests.RequestException as exc:
            self._discard(partial)
            raise FetchError(reference.url, FetchCause.NETWORK, str(exc)) from exc
        except OSError as exc:
            self._discard(partial)
            raise StorageError(f"Cannot write {destination}: {exc}") from exc

        if detect_image_format(head) is None:
            logger.warning(
                "%s does not look like an image (Content-Type=%s)",
                reference.display,
                content_type,
            )
        return FetchOutcome(
            reference=reference,
            path=destination,
            final_url=final_url,
            bytes_written=written,
        )

    @staticmethod
    def _discard(partial: Path) -> None:
        with suppress(OSError):
            partial.unlink()

    def fetch(self, reference: AssetReference) -> FetchOutcome:
        """Mirror one reference, recording any failure in the outcome."""
        try:
            return self.fetch_or_raise(reference)
        except MirrorError as exc:
            logger.warning("Failed to fetch %s: %s", reference.display, exc)
            return FetchOutcome(reference=reference, path=None, error=exc)

    def fetch_all(self, references: Sequence[AssetReference]) -> BatchSummary:
        """Mirror every reference on a bounded worker pool."""
        total = len(references)
        if not total:
            return BatchSummary()
        outcomes: List[Optional[FetchOutcome]] = [None] * total
        with ThreadPoolExecutor(max_workers=self.concurrency_limit) as pool:
            futures = {
                pool.submit(self.fetch, reference): index
                for index, reference in enumerate(references)
            }
            for done, future in enumerate(as_completed(futures), start=1):
                index = futures[future]
                reference = references[index]
                try:
                    outcome = future.result()
                except Exception as exc:  # pylint: disable=broad-except
                    logger.exception("Unexpected error fetching %s", reference.display)
                    outcome = FetchOutcome(reference=reference, path=None, error=exc)
                outcomes[index] = outcome
                if outcome.ok:
                    logger.info("[%d/%d] Saved %s -> %s", done, total, reference.display, outcome.path)
        return BatchSummary([outcome for outcome in outcomes if outcome is not None])
