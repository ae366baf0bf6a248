from __future__ import annotations

import string
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qsl, urlparse

from hypothesis import given, settings
from hypothesis import strategies as st

from src.contracts import ArticleDraft, ArticleRecord
from src.pipeline.date_resolver import DateResolver
from src.pipeline.resolver import resolve
from src.storage.ingestion import merge, recency_key
from src.utils.url_canonicalizer import canonicalize_url

SEGMENT_CHARS = string.ascii_letters + string.digits + "-_"

_TRACKING_KEYS = [
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "fbclid",
    "gclid",
    "ref",
    "amp",
    "r",
    "s",
]

HOSTS = st.sampled_from(
    [
        "example.com",
        "www.example.com",
        "blog.example.org",
        "writer.substack.com",
        "team.ghost.io",
        "medium.com",
        "dev.to",
        "jane.github.io",
        "paulgraham.com",
    ]
)

SEGMENTS = st.one_of(
    st.text(alphabet=SEGMENT_CHARS, min_size=1, max_size=12),
    st.sampled_from(
        ["p", "post", "blog", "posts", "2024", "01", "15", "feed", "rss.xml", "index.html", "@jane"]
    ),
)


@st.composite
def messy_urls(draw) -> str:
    scheme = draw(st.sampled_from(["http://", "https://", "HTTPS://", ""]))
    host = draw(HOSTS)
    port = draw(st.sampled_from(["", ":443", ":8080"])) if scheme.lower() == "https://" else ""
    segments = draw(st.lists(SEGMENTS, max_size=6))
    path = "/" + "/".join(segments)
    if draw(st.booleans()):
        path += draw(st.sampled_from(["/", "/amp", "/amp/", "//"]))
    query_pairs = draw(
        st.lists(
            st.tuples(
                st.one_of(
                    st.sampled_from(_TRACKING_KEYS),
                    st.text(alphabet=string.ascii_lowercase, min_size=1, max_size=6),
                ),
                st.text(alphabet=SEGMENT_CHARS, min_size=0, max_size=6),
            ),
            max_size=4,
        )
    )
    url = f"{scheme}{host}{port}{path}"
    if query_pairs:
        url += "?" + "&".join(f"{key}={value}" for key, value in query_pairs)
    if draw(st.booleans()):
        url += draw(st.sampled_from(["#fragment", "#Section"]))
    return url


@given(messy_urls())
@settings(max_examples=150)
def test_resolve_is_idempotent(raw: str) -> None:
    once = resolve(raw)
    assert resolve(once) == once
    parsed = urlparse(once)
    assert parsed.scheme == "https"
    assert not parsed.netloc.startswith("www.")
    assert not parsed.query and not parsed.fragment
    assert not once.endswith("/")


@given(messy_urls())
@settings(max_examples=150)
def test_canonicalize_url_is_idempotent_and_https(raw: str) -> None:
    canonical = canonicalize_url(raw)
    assert canonicalize_url(canonical) == canonical
    parsed = urlparse(canonical)
    assert parsed.scheme == "https"
    assert not parsed.netloc.startswith("www.")
    assert not parsed.fragment
    pairs = parse_qsl(parsed.query, keep_blank_values=False)
    assert pairs == sorted(pairs)
    for key, _ in pairs:
        assert not key.startswith("utm_")
        assert key not in {"fbclid", "gclid", "amp", "ref"}
        if parsed.netloc.endswith("substack.com") or parsed.path.startswith("/p/"):
            assert key not in {"r", "s"}


DATE_CANDIDATES = st.one_of(
    st.none(),
    st.text(max_size=80),
    st.integers(),
    st.floats(allow_nan=True),
    st.datetimes(),
    st.datetimes(timezones=st.just(timezone.utc)),
    st.sampled_from(
        [
            "2024-02-30",
            "Sept 31, 2020",
            "31/31/2020",
            "Mon, 32 Jan 2024 25:61:00 GMT",
            "0000-00-00T00:00:00Z",
            "9999-12-31",
        ]
    ),
)


@given(st.lists(DATE_CANDIDATES, max_size=4), st.text(max_size=120), st.text(max_size=200))
@settings(max_examples=200)
def test_date_resolver_never_raises(candidates, url: str, body: str) -> None:
    resolver = DateResolver(overrides={})
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)

    resolved = resolver.resolve(*candidates, url=url)
    if resolved is not None:
        assert resolved.tzinfo is not None
        assert resolved.year >= 1990

    effective = resolver.resolve_effective(*candidates, url=url, body_text=body, now=now)
    assert isinstance(effective, datetime)
    assert effective.tzinfo is not None


def _record(index: int, base: datetime) -> ArticleRecord:
    return ArticleRecord(
        feed_id="feed-a",
        title=f"Existing {index}",
        url=f"https://example.com/posts/existing-{index}",
        published_at=base - timedelta(days=index),
        created_at=base,
    )


@given(
    existing_count=st.integers(min_value=0, max_value=60),
    incoming_slugs=st.lists(st.text(alphabet=string.ascii_lowercase, min_size=1, max_size=6), max_size=20),
    limit=st.integers(min_value=1, max_value=60),
)
@settings(max_examples=100)
def test_merge_keeps_unique_recent_articles(existing_count: int, incoming_slugs, limit: int) -> None:
    base = datetime(2024, 6, 1, tzinfo=timezone.utc)
    existing = [_record(index, base) for index in range(existing_count)]
    incoming = [
        ArticleDraft(
            title=slug,
            url=f"https://example.com/posts/{slug}",
            published_at=base - timedelta(hours=position),
        )
        for position, slug in enumerate(incoming_slugs)
    ]

    result = merge(existing, incoming, limit, feed_id="feed-b", now=base)

    urls = [article.url for article in result.final_set]
    assert len(urls) == len(set(urls))
    assert len(result.final_set) <= limit
    assert result.added_count == len(set(incoming_slugs))
    keys = [recency_key(article) for article in result.final_set]
    assert keys == sorted(keys, reverse=True)
