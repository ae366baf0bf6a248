from datetime import datetime, timezone

from bs4 import BeautifulSoup

from src.collectors.html_extractor import (
    HtmlArticleExtractor,
    discover_feed_links,
    find_pagination_links,
    page_metadata,
)
from src.pipeline.validator import ArticleValidator

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)

LISTING = """
<html>
  <head>
    <title>Jane Writes</title>
    <meta name="description" content="Essays about software">
    <link rel="alternate" type="application/rss+xml" href="/feed.xml">
    <link rel="alternate" type="application/atom+xml" href="https://jane.example/atom.xml">
    <link rel="stylesheet" type="text/css" href="/style.css">
  </head>
  <body>
    <nav><a href="/about">About</a></nav>
    <article>
      <h2><a href="/posts/first-essay">First essay</a></h2>
      <span class="author">Jane</span>
      <time datetime="2024-03-01T08:00:00Z">March 1</time>
      <p>Opening paragraph of the first essay.</p>
      <img src="/img/first.png">
    </article>
    <article>
      <h2><a href="/posts/second-essay">Second essay</a></h2>
      <div class="date">February 10, 2024</div>
    </article>
    <article>
      <h2><a href="/about">About</a></h2>
    </article>
    <a rel="next" href="/page/2/">Older posts</a>
  </body>
</html>
"""


def _extractor(date_resolver) -> HtmlArticleExtractor:
    return HtmlArticleExtractor(validator=ArticleValidator(), date_resolver=date_resolver)


def test_extracts_articles_from_blocks(date_resolver) -> None:
    soup = BeautifulSoup(LISTING, "html.parser")
    articles = _extractor(date_resolver).extract(soup, "https://jane.example/", now=NOW)

    assert [article.url for article in articles] == [
        "https://jane.example/posts/first-essay",
        "https://jane.example/posts/second-essay",
    ]
    first, second = articles
    assert first.title == "First essay"
    assert first.author == "Jane"
    assert first.published_at == datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    assert first.image_url == "https://jane.example/img/first.png"
    assert first.excerpt.startswith("Opening paragraph")
    assert second.published_at == datetime(2024, 2, 10, tzinfo=timezone.utc)


def test_excludes_known_urls_and_respects_limit(date_resolver) -> None:
    soup = BeautifulSoup(LISTING, "html.parser")
    articles = _extractor(date_resolver).extract(
        soup,
        "https://jane.example/",
        exclude={"https://jane.example/posts/first-essay"},
        now=NOW,
    )
    assert [article.title for article in articles] == ["Second essay"]

    limited = _extractor(date_resolver).extract(soup, "https://jane.example/", limit=1, now=NOW)
    assert len(limited) == 1


def test_link_parent_fallback(date_resolver) -> None:
    html = """
    <html><body><ul>
      <li><a href="/blog/one-thing">One thing</a></li>
      <li><a href="/blog/another-thing">Another thing</a></li>
    </ul></body></html>
    """
    soup = BeautifulSoup(html, "html.parser")
    articles = _extractor(date_resolver).extract(soup, "https://x.example", now=NOW)
    assert [article.title for article in articles] == ["One thing", "Another thing"]
    # no date anywhere: effective date falls back to now
    assert all(article.published_at == NOW for article in articles)


def test_page_metadata_and_feed_discovery() -> None:
    soup = BeautifulSoup(LISTING, "html.parser")
    assert page_metadata(soup) == ("Jane Writes", "Essays about software")
    assert discover_feed_links(soup, "https://jane.example/") == [
        "https://jane.example/feed.xml",
        "https://jane.example/atom.xml",
    ]
    assert page_metadata(BeautifulSoup("<html></html>", "html.parser")) == ("Unknown Blog", "")


def test_find_pagination_links() -> None:
    soup = BeautifulSoup(LISTING, "html.parser")
    assert find_pagination_links(soup, "https://jane.example/") == ["https://jane.example/page/2/"]
