import pytest

from src.pipeline.resolver import SourceResolver, resolve


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://example.com/blog/2024/01/a-post", "https://example.com"),
        ("https://www.example.com/", "https://example.com"),
        ("example.com", "https://example.com"),
        ("http://Example.com/posts/hello-world?utm_source=x#top", "https://example.com"),
        ("https://writer.substack.com/p/on-gardens", "https://writer.substack.com"),
        ("https://team.ghost.io/post/launch-notes/", "https://team.ghost.io"),
        ("https://medium.com/@jane/some-story-1a2b3c4d5e6f", "https://medium.com/@jane"),
        ("https://dev.to/jane/writing-rust-3k2j", "https://dev.to/jane"),
        ("https://jane.github.io/project/docs/intro.html", "https://jane.github.io/project"),
        ("https://jane.github.io/2024/01/15/my-post.html", "https://jane.github.io"),
        ("https://jane.micro.blog/2024/03/02/hello-world.html", "https://jane.micro.blog"),
        ("https://jane.medium.com/why-i-write-3f2a1b", "https://jane.medium.com"),
        ("https://jane.github.io/notebook", "https://jane.github.io/notebook"),
        ("https://example.com/~jane/journal/2023/05/notes-on-x", "https://example.com/~jane/journal"),
        ("https://example.com/feed.xml", "https://example.com"),
        ("https://example.com:8443/blog/", "https://example.com:8443"),
    ],
)
def test_resolve_collapses_to_publication_root(raw: str, expected: str) -> None:
    assert SourceResolver().resolve(raw) == expected


def test_resolve_leaves_unusable_input_alone() -> None:
    assert resolve("") == ""
    assert resolve(None) == ""
    assert resolve("mailto:jane@example.com") == "mailto:jane@example.com"


def test_resolve_is_idempotent_on_examples() -> None:
    for raw in (
        "https://example.com/blog/2024/01/a-post",
        "https://medium.com/@jane/some-story",
        "https://example.com/essays/section/deep/path",
    ):
        once = resolve(raw)
        assert resolve(once) == once


def test_posts_on_an_author_subdomain_share_one_root() -> None:
    roots = {
        resolve(url)
        for url in (
            "https://jane.github.io/2024/01/15/my-post.html",
            "https://jane.github.io/2023/11/02/another-post.html",
            "https://jane.github.io/",
        )
    }
    assert roots == {"https://jane.github.io"}
