"""
Content Cleaner
===============

Allow-list HTML sanitizer for post bodies and plain-text rendering.

The allow-list describes a "rich post body": structural, text-level, list,
table, figure, link and image markup. Tags outside the list are unwrapped
(their text survives); executable or embedding tags are removed together
with their content.
"""

import re
from typing import Dict, FrozenSet

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction

from ..utils.logging import get_logger_for_component


class ContentCleaner:
    """HTML sanitizer and text extractor."""

    # Removed together with their content
    DANGEROUS_ELEMENTS = frozenset({
        "script", "style", "iframe", "frame", "frameset", "embed", "object",
        "applet", "form", "input", "button", "select", "option", "textarea",
        "meta", "link", "base", "noscript", "canvas", "svg", "math",
        "template", "head", "title",
    })

    SAFE_ELEMENTS = frozenset({
        "a", "abbr", "acronym", "address", "article", "b", "bdo", "big",
        "blockquote", "br", "caption", "cite", "code", "col", "colgroup",
        "dd", "del", "details", "dfn", "div", "dl", "dt", "em", "figcaption",
        "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header",
        "hr", "i", "img", "ins", "kbd", "li", "mark", "ol", "p", "pre", "q",
        "s", "samp", "section", "small", "span", "strike", "strong", "sub",
        "summary", "sup", "table", "tbody", "td", "tfoot", "th", "thead",
        "time", "tr", "u", "ul", "var",
    })

    # Word boundaries in the plain-text rendering
    BLOCK_ELEMENTS = frozenset({
        "address", "article", "aside", "blockquote", "caption", "dd", "details",
        "div", "dl", "dt", "figcaption", "figure", "footer", "h1", "h2", "h3",
        "h4", "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p",
        "pre", "section", "summary", "table", "tbody", "td", "tfoot", "th",
        "thead", "tr", "ul",
    })

    GLOBAL_ATTRIBUTES = frozenset({"class", "id", "title", "lang", "dir"})

    SAFE_ATTRIBUTES: Dict[str, FrozenSet[str]] = {
        "a": frozenset({"href", "rel", "target", "name"}),
        "img": frozenset({"src", "alt", "width", "height", "srcset", "sizes", "loading"}),
        "td": frozenset({"colspan", "rowspan", "headers"}),
        "th": frozenset({"colspan", "rowspan", "headers", "scope"}),
        "col": frozenset({"span"}),
        "colgroup": frozenset({"span"}),
        "ol": frozenset({"start", "reversed", "type"}),
        "li": frozenset({"value"}),
        "blockquote": frozenset({"cite"}),
        "q": frozenset({"cite"}),
        "del": frozenset({"cite", "datetime"}),
        "ins": frozenset({"cite", "datetime"}),
        "time": frozenset({"datetime"}),
        "details": frozenset({"open"}),
    }

    URL_ATTRIBUTES = frozenset({"href", "src", "cite", "srcset"})

    # Browsers ignore whitespace and control characters inside a scheme
    SCHEME_NOISE_PATTERN = re.compile(r"[\x00-\x20\x7f]+")
    UNSAFE_SCHEMES = ("javascript:", "data:", "vbscript:")

    WHITESPACE_PATTERN = re.compile(r"\s+")

    def __init__(self):
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"

    def sanitize_html(self, html_content: str) -> str:
        """Reduce markup to the allow-list.

        Args:
            html_content: Untrusted HTML fragment

        Returns:
            Sanitized HTML fragment (empty string for empty input)
        """
        if not html_content or not html_content.strip():
            return ""

        soup = BeautifulSoup(html_content, self.parser)

        self._remove_non_content_nodes(soup)

        for element in soup.find_all(list(self.DANGEROUS_ELEMENTS)):
            if not element.decomposed:
                element.decompose()

        for element in soup.find_all(True):
            if element.decomposed:
                continue
            if element.name not in self.SAFE_ELEMENTS:
                element.unwrap()
                continue
            self._clean_attributes(element)

        return str(soup).strip()

    def extract_text_only(self, html_content: str) -> str:
        """Plain text of an HTML fragment with whitespace collapsed.

        Inline markup joins without a separator, so ``<b>Py</b>thon`` reads
        as ``Python``. Block-level elements and ``<br>`` break words.
        """
        if not html_content or not html_content.strip():
            return ""

        soup = BeautifulSoup(html_content, self.parser)
        for element in soup.find_all(["script", "style", "noscript", "template"]):
            if not element.decomposed:
                element.decompose()

        for element in soup.find_all(list(self.BLOCK_ELEMENTS)):
            element.insert_before(" ")
            element.insert_after(" ")
        for element in soup.find_all("br"):
            element.replace_with(" ")

        text = soup.get_text()
        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

    def is_unsafe_url(self, value: str) -> bool:
        compact = self.SCHEME_NOISE_PATTERN.sub("", value or "").lower()
        return compact.startswith(self.UNSAFE_SCHEMES)

    def _remove_non_content_nodes(self, soup: BeautifulSoup) -> None:
        """Remove comments, CDATA, doctypes and processing instructions."""
        for node in soup.find_all(
            string=lambda text: isinstance(
                text, (Comment, CData, ProcessingInstruction, Doctype, Declaration)
            )
        ):
            node.extract()

    def _clean_attributes(self, element) -> None:
        allowed = self.GLOBAL_ATTRIBUTES | self.SAFE_ATTRIBUTES.get(element.name, frozenset())

        for attr_name in list(element.attrs):
            name = attr_name.lower()
            if name not in allowed:
                del element[attr_name]
                continue

            if name in self.URL_ATTRIBUTES:
                value = element.get(attr_name)
                if isinstance(value, list):
                    value = " ".join(value)
                if name == "srcset":
                    unsafe = any(self.is_unsafe_url(part) for part in value.split(","))
                else:
                    unsafe = self.is_unsafe_url(value)
                if unsafe:
                    del element[attr_name]
