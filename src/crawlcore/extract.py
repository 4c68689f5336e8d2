"""HTML selection helpers using selectolax."""

import re
from urllib.parse import urljoin

from selectolax.lexbor import LexborHTMLParser

SKIPPED_LINK_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")


class Extractor:
    """Extract data from HTML using CSS selectors or simple XPath."""

    def __init__(self, html: str):
        self.tree = LexborHTMLParser(html)

    def css(self, selector: str, attribute: str | None = None) -> list[str]:
        """Extract text (or an attribute) from every node matching ``selector``."""
        results = []

        for node in self.tree.css(selector):
            if attribute:
                attr_val = node.attributes.get(attribute)
                if attr_val:
                    results.append(attr_val)
            else:
                text = node.text(strip=True)
                if text:
                    results.append(text)

        return results

    def css_first(self, selector: str, attribute: str | None = None) -> str | None:
        results = self.css(selector, attribute)
        return results[0] if results else None

    def xpath(self, expression: str, attribute: str | None = None) -> list[str]:
        """
        Extract data using an XPath-like expression.
        Only the subset convertible to CSS is supported; anything else matches nothing.
        """
        css_selector = self._xpath_to_css(expression)
        if css_selector:
            return self.css(css_selector, attribute)
        return []

    def _xpath_to_css(self, xpath: str) -> str | None:
        # //div[@class="foo"] -> div[class="foo"]
        # //a[@href] -> a[href]
        # //div/p -> div > p
        if xpath.startswith("//"):
            xpath = xpath[2:]

        result = xpath.replace("//", " ")
        result = re.sub(r'\[@(\w+)="([^"]+)"\]', r'[\1="\2"]', result)
        result = re.sub(r'\[@(\w+)\]', r'[\1]', result)
        result = result.replace("/", " > ")
        result = re.sub(r'\s+', ' ', result).strip()

        return result or None

    def links(self, base_url: str) -> list[str]:
        """Absolute http(s) links found in ``a[href]``, in document order, without duplicates."""
        seen = set()
        links = []
        for node in self.tree.css("a[href]"):
            href = (node.attributes.get("href") or "").strip()
            if not href or href.startswith(SKIPPED_LINK_PREFIXES):
                continue

            absolute_url = urljoin(base_url, href).split("#", 1)[0]
            if not absolute_url.startswith(("http://", "https://")):
                continue
            if absolute_url not in seen:
                seen.add(absolute_url)
                links.append(absolute_url)
        return links
