"""Path derivation shared by the fetch and rewrite passes."""

from pathlib import Path, PurePosixPath

import pytest

from cdn_mirror.errors import ParseError
from cdn_mirror.models import AssetReference
from cdn_mirror.paths import PathMapper, local_relpath

IMG = "https://images.squarespace-cdn.com/content/v1/5f1a/hero.png"


@pytest.mark.parametrize(
    "url,dimension,expected",
    [
        (IMG, None, "content/v1/5f1a/hero.png"),
        (IMG, "100w", "content/v1/5f1a/hero_100w.png"),
        (IMG + "?format=100w", None, "content/v1/5f1a/hero_format_100w.png"),
        (IMG + "?format=100w", "300w", "content/v1/5f1a/hero_format_100w_300w.png"),
        (IMG + "?format=500w&quality=80", None, "content/v1/5f1a/hero_format_500w_quality_80.png"),
        (IMG + "#top", None, "content/v1/5f1a/hero.png"),
        ("https://cdn.example.com/photo.tar.jpg?a/b=c", None, "photo.tar_a_b_c.jpg"),
    ],
)
def test_local_relpath_layout(url, dimension, expected):
    assert local_relpath(url, dimension) == PurePosixPath(expected)


def test_local_relpath_is_deterministic():
    first = local_relpath(IMG + "?format=100w", "100w")
    second = local_relpath(IMG + "?format=100w", "100w")
    assert first == second


def test_width_and_query_variants_map_to_distinct_files():
    url = "https://cdn.example.com/assets/img.png"
    paths = {
        local_relpath(url, "100w"),
        local_relpath(url, "200w"),
        local_relpath(url + "?format=100w"),
        local_relpath(url + "?format=200w"),
    }
    assert len(paths) == 4


def test_bare_url_differs_from_width_variant():
    url = "https://cdn.example.com/assets/img.png"
    assert local_relpath(url) != local_relpath(url, "100w")


@pytest.mark.parametrize(
    "url",
    [
        "ftp://cdn.example.com/a.png",
        "https:///a.png",
        "https://cdn.example.com/gallery/",
        "https://cdn.example.com/../etc/a.png",
    ],
)
def test_local_relpath_rejects_malformed_urls(url):
    with pytest.raises(ParseError):
        local_relpath(url)


def test_path_mapper_joins_under_mirror_root(tmp_path):
    mapper = PathMapper(tmp_path / "sscopy")
    reference = AssetReference(IMG + "?format=100w", "100w")

    path = mapper.map_reference(reference)

    assert path == tmp_path / "sscopy" / "content" / "v1" / "5f1a" / "hero_format_100w_100w.png"
    assert mapper.map(reference.url, reference.dimension) == path
    assert isinstance(path, Path)
