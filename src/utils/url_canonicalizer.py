"""Deterministic canonicalization of article item URLs.

Item URLs are the global dedup key of the article pool, so two links to the
same post must compare equal:

- Lower-case scheme/host, drop default ports and a leading ``www.``.
- Strip tracking parameters (utm_*, fbclid, gclid...). Substack share
  parameters (``r``, ``s``, ``post_id``...) only go on Substack hosts and
  ``/p/slug`` post paths.
- Collapse duplicate slashes, drop fragments and a trailing ``/amp``.
- Sort the surviving query parameters.

Unlike publication roots (see ``src.pipeline.resolver``) the path is kept
intact; only noise is removed. A trailing slash is dropped except for the
root path.
"""

from __future__ import annotations

import posixpath
import re
from functools import lru_cache
from typing import Callable, Iterable, Optional, Tuple
from urllib.parse import parse_qsl, quote, unquote, urljoin, urlparse, urlunparse

from config.sources import match_host

TRACKING_PARAM_PREFIXES: Tuple[str, ...] = ("utm_", "mc_", "pk_")

TRACKING_PARAMS: Tuple[str, ...] = (
    "fbclid",
    "gclid",
    "yclid",
    "mkt_tok",
    "igshid",
    "ref",
    "ref_src",
    "amp",
)

# Share/redirect parameters Substack appends to post links. Elsewhere these
# names can identify the post itself (``view.php?post_id=12``) and are kept.
SUBSTACK_PARAMS: Tuple[str, ...] = (
    "r",
    "s",
    "triedredirect",
    "publication_id",
    "post_id",
    "isfreemail",
)

SUBSTACK_HOSTS = frozenset({"substack.com"})

POST_PATH_SHAPE = re.compile(r"^/p/[^/]+")

AMP_PATH_PATTERN = re.compile(r"/amp/?$", re.IGNORECASE)

SAFE_PATH_CHARS = "@:$&'()*+,;=-._~!%/"


def _clean_host(netloc: str, scheme: str) -> str:
    host = netloc.lower()
    if "@" in host:
        host = host.rsplit("@", 1)[1]
    if ":" in host:
        name, port = host.rsplit(":", 1)
        if (scheme, port) in (("http", "80"), ("https", "443")) or not port:
            host = name
    if host.startswith("www.") and len(host) > 4:
        host = host[4:]
    return host.strip(".")


def _normalize_path(path: str) -> str:
    if not path or path == "/":
        return "/"
    decoded = re.sub(r"//+", "/", unquote(path))
    normalized = posixpath.normpath(decoded)
    if normalized in (".", ""):
        normalized = "/"
    while AMP_PATH_PATTERN.search(normalized):
        normalized = AMP_PATH_PATTERN.sub("", normalized) or "/"
    if len(normalized) > 1:
        normalized = normalized.rstrip("/") or "/"
    return quote(normalized, safe=SAFE_PATH_CHARS)


def _filter_query_params(
    pairs: Iterable[Tuple[str, str]], *, substack_post: bool = False
) -> Iterable[Tuple[str, str]]:
    seen = set()
    for key, value in pairs:
        key_lower = key.lower()
        if not key_lower or value == "":
            continue
        if any(key_lower.startswith(prefix) for prefix in TRACKING_PARAM_PREFIXES):
            continue
        if key_lower in TRACKING_PARAMS:
            continue
        if substack_post and key_lower in SUBSTACK_PARAMS:
            continue
        pair = (key_lower, value)
        if pair in seen:
            continue
        seen.add(pair)
        yield pair


def _canonicalize_url_impl(url: str) -> str:
    """Canonicalize an item URL; returns the stripped input when it has no host."""
    if not url:
        return ""
    url = url.strip()
    if not url:
        return ""

    parsed = urlparse(url)
    scheme = parsed.scheme.lower() if parsed.scheme else "https"
    netloc, path = parsed.netloc, parsed.path

    # Scheme-less input such as "example.com/post"
    if not netloc and not parsed.scheme and path:
        netloc, _, remainder = path.partition("/")
        path = f"/{remainder}"

    if scheme not in ("http", "https"):
        return url
    host = _clean_host(netloc, scheme)
    if not host:
        return url

    normalized_path = _normalize_path(path)
    substack_post = bool(
        match_host(host, SUBSTACK_HOSTS) or POST_PATH_SHAPE.match(normalized_path)
    )
    filtered = sorted(
        _filter_query_params(parse_qsl(parsed.query), substack_post=substack_post)
    )
    query = "&".join(f"{key}={quote(value, safe='')}" for key, value in filtered)

    return urlunparse(("https", host, normalized_path, "", query, ""))


_SCHEME_PATTERN = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*):(?!\d)")


def foreign_scheme(url: str) -> Optional[str]:
    """Explicit non-web scheme of ``url`` (``mailto``, ``ftp``...), else ``None``."""
    match = _SCHEME_PATTERN.match(url.strip())
    if not match:
        return None
    scheme = match.group(1).lower()
    return None if scheme in ("http", "https") else scheme


def ensure_scheme(url: str) -> str:
    """Prefix scheme-less input such as ``example.com/blog`` with ``https://``."""
    url = url.strip()
    if not url or re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    return f"https://{url}"


def absolutize(href: Optional[str], base_url: str) -> str:
    """Resolve ``href`` against ``base_url``; non-web schemes yield ''."""
    if not href:
        return ""
    href = href.strip()
    if href.split(":", 1)[0].lower() in {"mailto", "tel", "javascript", "data"}:
        return ""
    return urljoin(base_url, href)


_CACHE_SIZE = -1


def configure_canonicalization_cache(size: int) -> None:
    """Configure the LRU cache used by :func:`canonicalize_url`."""

    global canonicalize_url, _CACHE_SIZE
    if size == _CACHE_SIZE:
        return
    if size <= 0:
        canonicalize_url = _canonicalize_url_impl
    else:
        canonicalize_url = lru_cache(maxsize=size)(_canonicalize_url_impl)
    _CACHE_SIZE = size


canonicalize_url: Callable[[str], str] = _canonicalize_url_impl


configure_canonicalization_cache(2048)


__all__ = [
    "absolutize",
    "canonicalize_url",
    "configure_canonicalization_cache",
    "ensure_scheme",
    "foreign_scheme",
]
