import json
import time
from datetime import datetime, timezone

import pytest

from src.pipeline.date_resolver import DateResolver, load_overrides

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def resolver() -> DateResolver:
    return DateResolver(overrides={})


@pytest.mark.parametrize(
    "candidate, expected",
    [
        ("2024-01-15T10:30:00Z", datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)),
        ("2024-01-15", datetime(2024, 1, 15, tzinfo=timezone.utc)),
        ("Mon, 15 Jan 2024 10:00:00 GMT", datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)),
        ("January 15, 2024", datetime(2024, 1, 15, tzinfo=timezone.utc)),
        ("Posted on Sept 3rd, 2021 by Jane", datetime(2021, 9, 3, tzinfo=timezone.utc)),
        ("3 March 2020", datetime(2020, 3, 3, tzinfo=timezone.utc)),
        ("01/15/2024", datetime(2024, 1, 15, tzinfo=timezone.utc)),
        ("2024/01/15", datetime(2024, 1, 15, tzinfo=timezone.utc)),
    ],
)
def test_resolve_common_formats(resolver: DateResolver, candidate, expected) -> None:
    assert resolver.resolve(candidate) == expected


def test_resolve_struct_time_and_datetime(resolver: DateResolver) -> None:
    parsed = time.strptime("2022-11-05 08:00:00", "%Y-%m-%d %H:%M:%S")
    assert resolver.resolve(parsed) == datetime(2022, 11, 5, 8, 0, tzinfo=timezone.utc)
    naive = datetime(2020, 2, 2, 2, 2)
    assert resolver.resolve(naive) == naive.replace(tzinfo=timezone.utc)


def test_resolve_tries_candidates_in_order(resolver: DateResolver) -> None:
    result = resolver.resolve(None, "", "not a date", "2023-07-04")
    assert result == datetime(2023, 7, 4, tzinfo=timezone.utc)


@pytest.mark.parametrize("candidate", [None, "", "yesterday", "2024-13-45", "1850-01-01", "3000-01-01"])
def test_resolve_returns_none_for_unusable_values(resolver: DateResolver, candidate) -> None:
    assert resolver.resolve(candidate) is None


def test_resolve_effective_falls_back_to_body_then_url_then_now(resolver: DateResolver) -> None:
    from_body = resolver.resolve_effective(
        "garbage", url="https://example.com/x", body_text="Written on March 5, 2019.", now=NOW
    )
    assert from_body == datetime(2019, 3, 5, tzinfo=timezone.utc)

    from_url = resolver.resolve_effective(
        None, url="https://example.com/2018/07/some-post", body_text="no dates here", now=NOW
    )
    assert from_url == datetime(2018, 7, 1, tzinfo=timezone.utc)

    assert resolver.resolve_effective(None, url="https://example.com/post", now=NOW) == NOW


def test_overrides_win_over_candidates() -> None:
    resolver = DateResolver(
        overrides={"https://www.example.com/essays/old-one/?utm_source=x": "2001-09-01"}
    )
    result = resolver.resolve("2024-01-01", url="https://example.com/essays/old-one")
    assert result == datetime(2001, 9, 1, tzinfo=timezone.utc)
    assert resolver.resolve("2024-01-01", url="https://example.com/other") == datetime(
        2024, 1, 1, tzinfo=timezone.utc
    )


def test_load_overrides_from_file(tmp_path) -> None:
    path = tmp_path / "overrides.json"
    path.write_text(json.dumps({"https://example.com/a/": "2010-05-05"}), encoding="utf-8")
    assert load_overrides(path) == {"https://example.com/a": "2010-05-05"}

    resolver = DateResolver(override_file=path)
    assert resolver.resolve(url="https://example.com/a") == datetime(2010, 5, 5, tzinfo=timezone.utc)


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_load_overrides_tolerates_bad_files(tmp_path, content: str) -> None:
    path = tmp_path / "overrides.json"
    path.write_text(content, encoding="utf-8")
    assert load_overrides(path) == {}
    assert load_overrides(tmp_path / "missing.json") == {}
    assert load_overrides(None) == {}
