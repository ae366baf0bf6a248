# config/sources.py
# Static host tables used by classification and acquisition
# =========================================================

"""
Host catalogues consulted by the pipeline.

- BLOCKED_HOSTS: platforms that never host a personal publication.
- KNOWN_FEEDS: hosts whose feed lives at a fixed, known-good address.
- ESSAY_HOSTS: long-form essay sites that get bonus weight when classifying.
- FEED_PLATFORMS: publishing platforms that expose conventional feed endpoints.
- PAGINATED_PLATFORMS: platforms with deep archives worth crawling.
- POST_PATH_PLATFORMS / AUTHOR_SCOPED_PLATFORMS: canonicalization rules.

Hosts are matched on the registrable suffix, so "www.x.com" and "m.x.com"
both match an entry "x.com".
"""

from typing import Dict, FrozenSet, Optional

# Social networks, mail, marketplaces and generic site builders
# ============================================================
BLOCKED_HOSTS: FrozenSet[str] = frozenset(
    {
        # social networks
        "facebook.com",
        "instagram.com",
        "twitter.com",
        "x.com",
        "tiktok.com",
        "linkedin.com",
        "pinterest.com",
        "reddit.com",
        "threads.net",
        "snapchat.com",
        "youtube.com",
        "youtu.be",
        "twitch.tv",
        "discord.com",
        "t.me",
        "whatsapp.com",
        # mailbox providers
        "gmail.com",
        "mail.google.com",
        "outlook.com",
        "outlook.live.com",
        "mail.yahoo.com",
        "proton.me",
        "protonmail.com",
        "icloud.com",
        # marketplaces
        "amazon.com",
        "ebay.com",
        "etsy.com",
        "aliexpress.com",
        "walmart.com",
        # generic SaaS site builders and tools
        "wix.com",
        "squarespace.com",
        "weebly.com",
        "godaddy.com",
        "shopify.com",
        "docs.google.com",
        "drive.google.com",
        "dropbox.com",
        "notion.so",
        "canva.com",
    }
)

KNOWN_FEEDS: Dict[str, str] = {
    "paulgraham.com": "http://www.aaronsw.com/2002/feeds/pgessays.rss",
    "daringfireball.net": "https://daringfireball.net/feeds/main",
    "danluu.com": "https://danluu.com/atom.xml",
    "jvns.ca": "https://jvns.ca/atom.xml",
    "simonwillison.net": "https://simonwillison.net/atom/everything/",
    "overreacted.io": "https://overreacted.io/rss.xml",
    "martinfowler.com": "https://martinfowler.com/feed.atom",
    "blog.codinghorror.com": "https://blog.codinghorror.com/rss/",
    "stratechery.com": "https://stratechery.com/feed/",
    "kottke.org": "https://feeds.kottke.org/main",
}

ESSAY_HOSTS: FrozenSet[str] = frozenset(
    {
        "paulgraham.com",
        "gwern.net",
        "danluu.com",
        "waitbutwhy.com",
        "slatestarcodex.com",
        "astralcodexten.com",
        "marginalrevolution.com",
        "stratechery.com",
        "overreacted.io",
        "jvns.ca",
        "martinfowler.com",
        "kottke.org",
    }
)

FEED_PLATFORMS: FrozenSet[str] = frozenset(
    {
        "substack.com",
        "medium.com",
        "ghost.io",
        "wordpress.com",
        "blogspot.com",
        "tumblr.com",
        "buttondown.email",
        "bearblog.dev",
        "hashnode.dev",
        "dev.to",
        "write.as",
        "micro.blog",
        "github.io",
        "beehiiv.com",
    }
)

PAGINATED_PLATFORMS: FrozenSet[str] = frozenset(
    {
        "substack.com",
        "wordpress.com",
        "blogspot.com",
        "ghost.io",
        "tumblr.com",
        "medium.com",
    }
)

POST_PATH_PLATFORMS: FrozenSet[str] = frozenset(
    {
        "substack.com",
        "ghost.io",
        "buttondown.email",
        "beehiiv.com",
    }
)

AUTHOR_SCOPED_PLATFORMS: FrozenSet[str] = frozenset(
    {
        "medium.com",
        "dev.to",
        "hashnode.com",
        "write.as",
        "micro.blog",
    }
)


def match_host(host: str, catalogue) -> Optional[str]:
    """Return the catalogue entry matching ``host`` or one of its parent domains."""

    if not host:
        return None
    host = host.lower().split(":", 1)[0].strip(".")
    if host.startswith("www."):
        host = host[4:]
    parts = host.split(".")
    for index in range(len(parts) - 1):
        candidate = ".".join(parts[index:])
        if candidate in catalogue:
            return candidate
    return None


def validate_sources() -> None:
    """Sanity-check the static tables."""

    for host, feed_url in KNOWN_FEEDS.items():
        if not feed_url.startswith(("http://", "https://")):
            raise ValueError(f"Known feed for {host} is not an http(s) URL: {feed_url}")
        if match_host(host, BLOCKED_HOSTS):
            raise ValueError(f"Known feed host {host} is also blocked")
    overlap = ESSAY_HOSTS & BLOCKED_HOSTS
    if overlap:
        raise ValueError(f"Hosts both allowed and blocked: {sorted(overlap)}")


__all__ = [
    "BLOCKED_HOSTS",
    "KNOWN_FEEDS",
    "ESSAY_HOSTS",
    "FEED_PLATFORMS",
    "PAGINATED_PLATFORMS",
    "POST_PATH_PLATFORMS",
    "AUTHOR_SCOPED_PLATFORMS",
    "match_host",
    "validate_sources",
]
