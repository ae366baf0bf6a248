import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import mock_transport, rss_document
from src.contracts import ArticleRecord
from src.pipeline.errors import ClassificationRejected, FetchError, PublicationNotFound
from src.pipeline.service import BlogScoutService

pytestmark = pytest.mark.e2e

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
RSS = "application/rss+xml"

LANDING = """
<html><head>
  <title>Jane's Blog</title>
  <link rel="alternate" type="application/rss+xml" href="/feed.xml">
</head><body><main><p>Hello</p></main></body></html>
"""

FEED = rss_document(
    "Jane's Blog",
    [
        ("Newest", "https://example.com/posts/newest", "Wed, 17 Jan 2024 09:00:00 GMT"),
        ("Older", "https://example.com/posts/older", "Mon, 15 Jan 2024 09:00:00 GMT"),
    ],
    description="Notes",
)


@pytest.fixture()
def calls():
    return []


@pytest.fixture()
def service(json_store, make_engine, date_resolver, calls) -> BlogScoutService:
    transport = mock_transport(
        {
            "https://example.com/": (200, LANDING),
            "https://example.com/feed.xml": (200, FEED, RSS),
            "https://shop.example/": (200, "<html><body><p>Buy things</p></body></html>"),
        },
        calls=calls,
    )
    return BlogScoutService(
        json_store,
        engine=make_engine(transport),
        date_resolver=date_resolver,
        max_articles=50,
        cooldown_minutes=60,
    )


def test_ingest_tracks_publication_and_articles(service: BlogScoutService) -> None:
    submitted = "https://example.com/blog/post-123?utm_source=newsletter"
    result = asyncio.run(service.ingest(submitted, now=NOW))

    assert result.created is True
    assert result.added_count == 2
    publication = result.publication
    assert publication.url == "https://example.com"
    assert publication.original_url == submitted
    assert publication.title == "Jane's Blog"
    assert publication.last_fetched == NOW

    articles, total = service.list_articles(publication.id)
    assert total == 2
    assert [article.title for article in articles] == ["Newest", "Older"]
    assert all(article.feed_id == publication.id for article in articles)


def test_post_url_with_page_feed_yields_that_article(json_store, make_engine, date_resolver) -> None:
    post_url = "https://example.com/blog/2024/01/a-post"
    feed = rss_document(
        "Jane's Blog",
        [("A post", post_url, "Tue, 16 Jan 2024 08:00:00 GMT")],
    )
    transport = mock_transport(
        {
            "https://example.com/": (200, LANDING),
            "https://example.com/feed.xml": (200, feed, RSS),
        }
    )
    blog_service = BlogScoutService(
        json_store, engine=make_engine(transport), date_resolver=date_resolver
    )

    result = asyncio.run(blog_service.ingest(post_url, now=NOW))

    assert result.publication.url == "https://example.com"
    articles, total = blog_service.list_articles(result.publication.id)
    assert total == 1
    assert articles[0].url == post_url
    assert articles[0].title == "A post"
    assert articles[0].published_at == datetime(2024, 1, 16, 8, 0, tzinfo=timezone.utc)


def test_resubmitting_a_known_publication_is_idempotent(service: BlogScoutService, calls) -> None:
    first = asyncio.run(service.ingest("https://example.com/blog/post-123", now=NOW))
    requests_after_first = len(calls)

    again = asyncio.run(service.ingest("www.example.com/", now=NOW + timedelta(hours=1)))

    assert again.created is False
    assert again.added_count == 0
    assert again.publication.id == first.publication.id
    assert len(service.list_publications()) == 1
    assert len(calls) == requests_after_first


def test_bare_domain_reuses_content_check_page(service: BlogScoutService, calls) -> None:
    result = asyncio.run(service.ingest("example.com", now=NOW))

    assert result.created is True
    assert calls.count("https://example.com/") == 1


def test_denylisted_hosts_create_nothing(service: BlogScoutService, calls) -> None:
    with pytest.raises(ClassificationRejected):
        asyncio.run(service.ingest("https://twitter.com/someone"))
    assert service.list_publications() == []
    assert calls == []


def test_non_blog_landing_page_is_rejected(service: BlogScoutService) -> None:
    with pytest.raises(ClassificationRejected):
        asyncio.run(service.ingest("https://shop.example"))
    assert service.list_publications() == []


def test_unreachable_publication_raises_fetch_error(service: BlogScoutService) -> None:
    with pytest.raises(FetchError):
        asyncio.run(service.ingest("https://offline.example/blog/some-post"))
    assert service.list_publications() == []


def test_delete_feed_cascades_to_articles(service: BlogScoutService) -> None:
    result = asyncio.run(service.ingest("https://example.com/blog/x", now=NOW))

    removed = asyncio.run(service.delete_feed(result.publication.id))

    assert removed == 2
    assert service.list_publications() == []
    assert service.list_articles() == ([], 0)
    with pytest.raises(PublicationNotFound):
        asyncio.run(service.delete_feed(result.publication.id))


def test_list_articles_paginates(service: BlogScoutService) -> None:
    asyncio.run(service.ingest("https://example.com/blog/x", now=NOW))

    page, total = service.list_articles(limit=1, offset=1)

    assert total == 2
    assert [article.title for article in page] == ["Older"]


def test_refresh_after_cooldown(service: BlogScoutService) -> None:
    asyncio.run(service.ingest("https://example.com/blog/x", now=NOW - timedelta(hours=2)))
    assert len(service.due_publications(NOW)) == 1

    report = asyncio.run(service.refresh_due(now=NOW))

    assert report.refreshed_count == 1
    assert report.added_count == 0
    assert service.due_publications(NOW) == []


def test_backfill_missing_dates(service: BlogScoutService) -> None:
    undated = ArticleRecord(
        feed_id="legacy",
        title="Legacy post",
        url="https://legacy.example/2020/05/legacy-post",
        created_at=NOW,
    )
    dated = ArticleRecord(
        feed_id="legacy",
        title="Dated post",
        url="https://legacy.example/posts/dated",
        published_at=NOW - timedelta(days=1),
        created_at=NOW,
    )
    asyncio.run(service.store.replace_articles([undated, dated]))

    repaired = asyncio.run(service.backfill_missing_dates())

    assert repaired == 1
    by_url = {article.url: article for article in service.store.load_articles()}
    assert by_url[undated.url].published_at == datetime(2020, 5, 1, tzinfo=timezone.utc)
    assert by_url[dated.url].published_at == NOW - timedelta(days=1)
