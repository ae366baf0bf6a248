from datetime import datetime, timezone

import pytest

from src.collectors.feed_parser import UNTITLED, parse_feed
from src.contracts import UNKNOWN_FEED_TITLE
from src.pipeline.errors import ParseError

from conftest import rss_document

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)

ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Notes</title>
  <subtitle>Thoughts &amp; notes</subtitle>
  <link href="https://notes.example/"/>
  <entry>
    <title>Hello Atom</title>
    <link href="/2023/04/hello-atom/"/>
    <id>tag:notes.example,2023:1</id>
    <updated>2023-04-02T09:00:00Z</updated>
    <author><name>Jane Doe</name></author>
    <content type="html">&lt;p&gt;Body &lt;img src="/img/cover.png"&gt;&lt;/p&gt;</content>
  </entry>
</feed>
"""


def test_parse_rss_items(date_resolver) -> None:
    document = rss_document(
        "Example Blog",
        [
            ("First post", "https://example.com/blog/first?utm_source=rss", "Mon, 15 Jan 2024 10:00:00 GMT"),
            ("Second post", "https://example.com/blog/second", "Tue, 16 Jan 2024 10:00:00 GMT"),
        ],
        description="A personal blog",
    )
    parsed = parse_feed(document, "https://example.com/feed.xml", date_resolver=date_resolver, now=NOW)

    assert parsed.title == "Example Blog"
    assert parsed.description == "A personal blog"
    assert [article.url for article in parsed.articles] == [
        "https://example.com/blog/first",
        "https://example.com/blog/second",
    ]
    first = parsed.articles[0]
    assert first.published_at == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert first.excerpt == "About First post"

    publication = parsed.as_publication("https://example.com", feed_url="https://example.com/feed.xml")
    assert publication.title == "Example Blog"
    assert publication.url == "https://example.com"


def test_parse_atom_resolves_relative_links_and_metadata(date_resolver) -> None:
    parsed = parse_feed(ATOM, "https://notes.example/atom.xml", date_resolver=date_resolver, now=NOW)
    article = parsed.articles[0]
    assert parsed.title == "Atom Notes"
    assert parsed.description == "Thoughts & notes"
    assert article.url == "https://notes.example/2023/04/hello-atom"
    assert article.author == "Jane Doe"
    assert article.image_url == "https://notes.example/img/cover.png"
    assert article.published_at == datetime(2023, 4, 2, 9, 0, tzinfo=timezone.utc)


def test_items_without_dates_or_titles_get_fallbacks(date_resolver) -> None:
    document = (
        '<?xml version="1.0"?><rss version="2.0"><channel><title></title>'
        "<item><link>https://example.com/2019/08/untitled-thing</link></item>"
        "</channel></rss>"
    )
    parsed = parse_feed(document, "https://example.com/rss", date_resolver=date_resolver, now=NOW)
    assert parsed.title == UNKNOWN_FEED_TITLE
    article = parsed.articles[0]
    assert article.title == UNTITLED
    assert article.published_at == datetime(2019, 8, 1, tzinfo=timezone.utc)


def test_limit_and_duplicate_links(date_resolver) -> None:
    items = [(f"Post {i}", f"https://example.com/p/{i % 3}", "") for i in range(6)]
    parsed = parse_feed(
        rss_document("Dupes", items), "https://example.com/feed", date_resolver=date_resolver, limit=2, now=NOW
    )
    assert [article.url for article in parsed.articles] == [
        "https://example.com/p/0",
        "https://example.com/p/1",
    ]


@pytest.mark.parametrize("document", ["<html><body>Not a feed</body></html>", "plain text"])
def test_non_feeds_raise_parse_error(date_resolver, document: str) -> None:
    with pytest.raises(ParseError):
        parse_feed(document, "https://example.com/feed", date_resolver=date_resolver)
