import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.collectors.engine import AcquisitionEngine  # noqa: E402
from src.pipeline.date_resolver import DateResolver  # noqa: E402
from src.storage.ingestion import IngestionStore  # noqa: E402
from src.storage.record_store import JsonFileRecordStore  # noqa: E402

Route = Union[Tuple[int, str], Tuple[int, str, str]]


def pytest_configure(config):
    config.addinivalue_line("markers", "e2e: exercises several layers together")


def rss_document(
    title: str,
    items: Iterable[Tuple[str, str, str]],
    *,
    link: str = "https://example.com",
    description: str = "",
) -> str:
    """RSS 2.0 body; ``items`` are ``(title, link, pubDate)`` triples."""
    rendered = "".join(
        f"<item><title>{item_title}</title><link>{item_link}</link>"
        f"<pubDate>{pub_date}</pubDate><description>About {item_title}</description></item>"
        for item_title, item_link, pub_date in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>{title}</title><link>{link}</link>'
        f"<description>{description}</description>{rendered}</channel></rss>"
    )


def mock_transport(routes: Dict[str, Route], *, calls: Optional[list] = None) -> httpx.MockTransport:
    """Serve ``routes`` keyed by full URL (no query); everything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        if calls is not None:
            calls.append(key)
        route = routes.get(key)
        if route is None:
            return httpx.Response(404, text="not found")
        status, body = route[0], route[1]
        content_type = route[2] if len(route) > 2 else "text/html; charset=utf-8"
        return httpx.Response(status, text=body, headers={"content-type": content_type})

    return httpx.MockTransport(handler)


async def _no_sleep(_delay: float) -> None:
    return None


@pytest.fixture()
def date_resolver() -> DateResolver:
    return DateResolver(overrides={})


@pytest.fixture()
def make_engine(date_resolver) -> Callable[..., AcquisitionEngine]:
    def factory(transport: httpx.AsyncBaseTransport, **kwargs) -> AcquisitionEngine:
        options = {"transport": transport, "max_retries": 0, "sleep": _no_sleep}
        options.update(kwargs.pop("fetcher_options", {}))
        kwargs.setdefault("date_resolver", date_resolver)
        kwargs.setdefault("strategy_timeout", 5.0)
        return AcquisitionEngine(fetcher_options=options, **kwargs)

    return factory


@pytest.fixture()
def json_store(tmp_path) -> JsonFileRecordStore:
    return JsonFileRecordStore(tmp_path / "data")


@pytest.fixture()
def ingestion_store(json_store) -> IngestionStore:
    return IngestionStore(json_store, limit=50)
