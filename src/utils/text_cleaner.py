from __future__ import annotations

import html as _html
import re
import unicodedata
from typing import Iterable, Optional

from bs4 import BeautifulSoup
from bs4.element import NavigableString

_BOILERPLATE_PATTERNS: Iterable[re.Pattern] = [
    re.compile(r"^\s*read more\s*$", re.I),
    re.compile(r"^\s*continue reading\s*\W*$", re.I),
    re.compile(r"^\s*the post .* appeared first on .*", re.I),
    re.compile(r"^\s*subscribe now\s*$", re.I),
]


def normalize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    text = _html.unescape(text)
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\x00", "").replace("\r", " ").replace("\n", " ")
    text = " ".join(text.split())
    return text.strip()


def clean_html(html: Optional[str]) -> str:
    """Strip markup, scripts and feed boilerplate, returning normalised plain text."""
    if not html:
        return ""
    if "<" not in html:
        return normalize_text(html)
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    for node in list(soup.find_all(string=True)):
        if not isinstance(node, NavigableString):
            continue
        if any(p.search(normalize_text(str(node))) for p in _BOILERPLATE_PATTERNS):
            node.extract()
    return normalize_text(soup.get_text(" "))


def make_excerpt(text: Optional[str], length: int = 200) -> str:
    """Plain-text prefix of ``text`` with at most ``length`` characters."""
    plain = clean_html(text)
    if len(plain) <= length:
        return plain
    return plain[:length]


def first_image_src(html: Optional[str]) -> Optional[str]:
    """``src`` of the first ``<img>`` in an HTML fragment, if any."""
    if not html or "<img" not in html.lower():
        return None
    soup = BeautifulSoup(html, "html.parser")
    img = soup.find("img", src=True)
    if img is None:
        return None
    return img["src"].strip() or None


__all__ = ["clean_html", "first_image_src", "make_excerpt", "normalize_text"]
