from pathlib import Path

import pytest

from cdn_mirror.config import MirrorConfig

CDN = "https://cdn.example.com"
HOSTS = ("cdn.example.com",)
EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "ico")
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 120


@pytest.fixture
def config(tmp_path: Path) -> MirrorConfig:
    return MirrorConfig(
        input_path=tmp_path / "index.html",
        origin_hosts=HOSTS,
        concurrency_limit=4,
        retries=0,
    )
