"""
Unit tests for ContentExtractor css and auto strategies.
"""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from autoblogger.ingestion.content_extractor import ContentExtractor
from autoblogger.utils.exceptions import ArticleUnavailableError

PAGE = """
<html><head><title>Page</title></head>
<body>
    <div class="nav">Home About Contact</div>
    <div class="post body">First body part</div>
    <div class="postbody">Not a token match</div>
    <div id="extra">Second part</div>
    <p class="post">Paragraph part</p>
</body></html>
"""


class TestCssExtraction:
    """Selector list handling."""

    @pytest.fixture
    def extractor(self):
        return ContentExtractor(timeout=5)

    def test_class_match_is_token_exact(self, extractor):
        markup = extractor.extract_from_html(PAGE, "css", ".post")

        assert "First body part" in markup
        assert "Paragraph part" in markup
        assert "Not a token match" not in markup

    def test_clauses_concatenated_in_given_order(self, extractor):
        markup = extractor.extract_from_html(PAGE, "css", "#extra, .body")

        assert markup == "Second partFirst body part"

    def test_tag_clause(self, extractor):
        assert extractor.extract_from_html(PAGE, "css", "p") == "Paragraph part"

    def test_unsupported_clauses_are_skipped(self, extractor):
        markup = extractor.extract_from_html(PAGE, "css", "div > p, .nav, a[href]")
        assert markup == "Home About Contact"

    def test_no_match_returns_none(self, extractor):
        assert extractor.extract_from_html(PAGE, "css", ".missing, #nowhere") is None

    def test_blank_selector_falls_back_to_auto(self, extractor):
        html = "<div class='entry-content'><p>Body</p></div>"
        assert extractor.extract_from_html(html, "css", "  ") == "<p>Body</p>"


class TestAutoExtraction:
    """Container heuristics."""

    @pytest.fixture
    def extractor(self):
        return ContentExtractor(timeout=5)

    def test_article_preferred(self, extractor):
        html = """
        <article><p>Short article text</p></article>
        <div class="entry-content">A much longer entry content block that would win on length</div>
        """
        assert extractor.extract_from_html(html) == "<p>Short article text</p>"

    def test_longest_candidate_wins(self, extractor):
        html = """
        <article>tiny</article>
        <article><p>The longer of the two articles</p></article>
        """
        assert extractor.extract_from_html(html) == "<p>The longer of the two articles</p>"

    def test_class_substring_match(self, extractor):
        html = "<div class='main-content-wrapper'><p>Wrapped body</p></div>"
        assert extractor.extract_from_html(html) == "<p>Wrapped body</p>"

    def test_empty_candidates_are_skipped(self, extractor):
        html = "<article>   </article><div class='post-content'><p>Real body</p></div>"
        assert extractor.extract_from_html(html) == "<p>Real body</p>"

    def test_falls_back_to_largest_div(self, extractor):
        html = "<div>short</div><div><p>the biggest block of text</p></div>"
        assert extractor.extract_from_html(html) == "<p>the biggest block of text</p>"

    def test_nothing_found(self, extractor):
        assert extractor.extract_from_html("<p>no containers</p>") is None
        assert extractor.extract_from_html("") is None


class TestExtractFetch:
    """Network behaviour of extract()."""

    @pytest.mark.asyncio
    async def test_extract_uses_fetched_page(self):
        extractor = ContentExtractor(timeout=5)
        page = b"<article><p>Fetched body</p></article>"

        with patch.object(extractor, "_fetch_page", AsyncMock(return_value=page)):
            markup = await extractor.extract("https://source.example/a")

        assert markup == "<p>Fetched body</p>"

    @pytest.mark.asyncio
    async def test_non_2xx_page_yields_none(self):
        extractor = ContentExtractor(timeout=5)

        with patch.object(extractor, "_fetch_page", AsyncMock(return_value=None)):
            assert await extractor.extract("https://source.example/a") is None

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        extractor = ContentExtractor(timeout=5)

        with patch.object(aiohttp.ClientSession, "get", side_effect=aiohttp.ClientConnectionError("reset")):
            with pytest.raises(ArticleUnavailableError):
                await extractor.extract("https://source.example/a")
