"""Tiered rewriting of remote references into mirror links."""

import pytest
from conftest import CDN, EXTENSIONS, HOSTS

from cdn_mirror.extract import extract_references
from cdn_mirror.patterns import BARE, QUERY, SRCSET, SRCSET_QUERY
from cdn_mirror.rewrite import Rewriter
from cdn_mirror.utils import render_link


@pytest.fixture
def rewriter(tmp_path):
    return Rewriter(tmp_path / "sscopy", tmp_path, HOSTS, EXTENSIONS)


def test_bare_url_points_at_mirror(rewriter):
    result = rewriter.rewrite(f'<img src="{CDN}/content/a.png">')

    assert result.text == '<img src="./sscopy/content/a.png">'
    assert result.substitutions == 1
    assert result.per_tier[BARE] == 1


def test_srcset_keeps_width_descriptors(rewriter):
    html = f'<img srcset="{CDN}/a.png?format=100w 100w, {CDN}/a.png?format=200w 200w">'

    result = rewriter.rewrite(html)

    assert result.text == (
        '<img srcset="./sscopy/a_format_100w_100w.png 100w, '
        './sscopy/a_format_200w_200w.png 200w">'
    )
    assert result.per_tier[SRCSET_QUERY] == 2


def test_query_url_folds_query_into_filename(rewriter):
    result = rewriter.rewrite(f'<meta content="{CDN}/og/card.jpg?format=1500w">')

    assert result.text == '<meta content="./sscopy/og/card_format_1500w.jpg">'
    assert result.per_tier[QUERY] == 1


def test_each_tier_counts_its_own_matches(rewriter):
    html = (
        f'<img src="{CDN}/a.png" srcset="{CDN}/a.png 100w, {CDN}/a.png?format=300w 300w">'
        f'<img src="{CDN}/b.png?format=750w">'
    )

    result = rewriter.rewrite(html)

    assert result.per_tier == {SRCSET_QUERY: 1, SRCSET: 1, QUERY: 1, BARE: 1}
    assert result.substitutions == 4
    assert CDN not in result.text


def test_rewrite_is_idempotent(rewriter):
    html = (
        f'<img src="{CDN}/a.png?format=500w" srcset="{CDN}/a.png?format=100w 100w, '
        f'{CDN}/a.png 300w"><div style="background-image:url({CDN}/bg.jpg)"></div>'
    )

    first = rewriter.rewrite(html)
    second = rewriter.rewrite(first.text)

    assert first.substitutions == 4
    assert second.substitutions == 0
    assert second.text == first.text


def test_links_are_relative_to_the_document_directory(tmp_path):
    rewriter = Rewriter(tmp_path / "sscopy", tmp_path / "site" / "pages", HOSTS, EXTENSIONS)

    result = rewriter.rewrite(f'<img src="{CDN}/a.png">')

    assert result.text == '<img src="../../sscopy/a.png">'


def test_unmappable_and_foreign_urls_are_left_verbatim(rewriter):
    html = f'<img src="{CDN}/../a.png"><img src="https://elsewhere.example.org/a.png">'

    result = rewriter.rewrite(html)

    assert result.text == html
    assert result.substitutions == 0


def test_rewrite_agrees_with_extraction(rewriter, tmp_path):
    html = (
        f'<img src="{CDN}/x/a.png?format=500w&amp;q=1" '
        f'srcset="{CDN}/x/a.png?format=100w 100w, {CDN}/x/a.png 200w">'
    )

    links = [
        render_link(rewriter.mapper.map_reference(ref), tmp_path)
        for ref in extract_references(html, rewriter.tiers)
    ]
    text = rewriter.rewrite(html).text

    assert links == [
        "./sscopy/x/a_format_500w_q_1.png",
        "./sscopy/x/a_format_100w_100w.png",
        "./sscopy/x/a_200w.png",
    ]
    for link in links:
        assert link in text


def test_link_is_percent_encoded(rewriter):
    result = rewriter.rewrite(f'<img src="{CDN}/content/Screen%20Shot.png">')

    assert result.text == '<img src="./sscopy/content/Screen%2520Shot.png">'


def test_entity_quoted_json_keeps_both_urls(rewriter):
    html = (
        '<div data-x="{&quot;a&quot;:&quot;'
        f'{CDN}/a.png&quot;,&quot;b&quot;:&quot;{CDN}/b.png?format=100w&quot;}}"></div>'
    )

    result = rewriter.rewrite(html)

    assert result.text == (
        '<div data-x="{&quot;a&quot;:&quot;./sscopy/a.png&quot;,'
        '&quot;b&quot;:&quot;./sscopy/b_format_100w.png&quot;}"></div>'
    )
    assert result.substitutions == 2
