# src/pipeline/date_resolver.py
# Effective-date resolution for scraped articles
# ==============================================

"""
Turns the heterogeneous date representations found in feeds and HTML into a
timezone-aware UTC timestamp.

``resolve`` is total but nullable: every candidate is tried in order (the
most structured field first) and ``None`` is returned when nothing parses.
``resolve_effective`` applies the caller fallback chain on top of it (body
text scan, item URL path, then "now") and therefore always returns a value.

An optional override map, keyed by canonical item URL, wins over every
candidate. It is loaded from the JSON file named by ``dates.override_file``.
"""

from __future__ import annotations

import json
import re
import time as _time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dateutil import parser as date_parser

from config.settings import DATES_CONFIG
from src.utils.datetime_utils import ensure_utc, struct_time_to_utc, utcnow
from src.utils.logger import get_logger
from src.utils.url_canonicalizer import canonicalize_url

MIN_YEAR = 1990

MONTHS: Dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
MONTHS.update({name[:3]: number for name, number in list(MONTHS.items())})
MONTHS["sept"] = 9

_MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))

_ISO_DAY = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
_US_DAY = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_SLASHED_DAY = re.compile(r"\b(\d{4})/(\d{1,2})/(\d{1,2})\b")
_MONTH_FIRST = re.compile(
    rf"\b({_MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})\b", re.I | re.ASCII
)
_DAY_FIRST = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTH_NAMES})\.?,?\s+(\d{{4}})\b", re.I | re.ASCII
)
_URL_DATE = re.compile(r"/(\d{4})/(\d{1,2})(?:/(\d{1,2}))?(?:/|$)")
_HAS_YEAR = re.compile(r"(?<!\d)(19|20)\d{2}(?!\d)")


def load_overrides(path: Optional[Path]) -> Dict[str, str]:
    """
    Read an override map ``{item_url: date_string}`` from a JSON file.

    Missing or malformed files yield an empty map; keys are canonicalized so
    lookups match the stored article URLs.
    """
    if not path:
        return {}
    log = get_logger().create_module_logger("pipeline.date_resolver")
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        log.warning(
            {
                "event": "dates.overrides.unreadable",
                "details": {"path": str(path), "error": str(exc)},
            }
        )
        return {}
    if not isinstance(raw, dict):
        log.warning(
            {"event": "dates.overrides.invalid", "details": {"path": str(path)}}
        )
        return {}
    return {canonicalize_url(str(key)): str(value) for key, value in raw.items()}


class DateResolver:
    """Best-effort date parser with a deterministic fallback chain."""

    def __init__(
        self,
        overrides: Optional[Mapping[str, Any]] = None,
        *,
        override_file: Optional[Path] = None,
    ):
        self.logger = get_logger().create_module_logger("pipeline.date_resolver")
        if overrides is None:
            if override_file is None:
                override_file = DATES_CONFIG.get("override_file")
            overrides = load_overrides(override_file)
        else:
            overrides = {canonicalize_url(key): value for key, value in overrides.items()}
        self.overrides: Dict[str, Any] = dict(overrides)

    # Public API
    # ==========

    def resolve(self, *candidates: Any, url: Optional[str] = None) -> Optional[datetime]:
        """Return the first candidate that parses into a plausible UTC datetime."""
        now = utcnow()
        if url and self.overrides:
            override = self.overrides.get(canonicalize_url(url))
            if override is not None:
                parsed = self._safe_parse(override, now)
                if parsed is not None:
                    return parsed

        for candidate in candidates:
            parsed = self._safe_parse(candidate, now)
            if parsed is not None:
                return parsed
        return None

    def resolve_effective(
        self,
        *candidates: Any,
        url: Optional[str] = None,
        body_text: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> datetime:
        """Like :meth:`resolve` but falls back to body text, the URL path and ``now``."""
        now = ensure_utc(now) if now else utcnow()
        resolved = self.resolve(*candidates, url=url)
        if resolved is not None:
            return resolved

        if body_text:
            try:
                scanned = self._match_patterns(str(body_text)[:5000], now)
            except Exception as exc:  # noqa: BLE001 - never propagate
                self.logger.debug({"event": "dates.body_scan.failed", "details": str(exc)})
                scanned = None
            if scanned is not None:
                return scanned

        if url:
            from_url = self._from_url_path(url, now)
            if from_url is not None:
                return from_url

        return now

    # Parsing helpers
    # ===============

    def _safe_parse(self, candidate: Any, now: datetime) -> Optional[datetime]:
        try:
            return self._parse_candidate(candidate, now)
        except Exception as exc:  # noqa: BLE001 - date failures degrade to None
            self.logger.debug(
                {
                    "event": "dates.candidate.failed",
                    "details": {"candidate": repr(candidate)[:80], "error": str(exc)},
                }
            )
            return None

    def _parse_candidate(self, candidate: Any, now: datetime) -> Optional[datetime]:
        if candidate is None:
            return None
        if isinstance(candidate, datetime):
            return self._plausible(ensure_utc(candidate), now)
        if isinstance(candidate, _time.struct_time):
            return self._plausible(struct_time_to_utc(candidate), now)

        text = str(candidate).strip()
        if not text:
            return None

        parsed = self._parse_iso(text)
        if parsed is not None and self._plausible(parsed, now):
            return parsed

        # dateutil fills missing fields from today; require an explicit year
        if _HAS_YEAR.search(text) and len(text) <= 64:
            try:
                parsed = ensure_utc(date_parser.parse(text))
            except (ValueError, OverflowError, TypeError):
                parsed = None
            if parsed is not None and self._plausible(parsed, now):
                return parsed

        return self._match_patterns(text, now)

    @staticmethod
    def _parse_iso(text: str) -> Optional[datetime]:
        if not re.match(r"^\d{4}-\d{2}-\d{2}", text):
            return None
        try:
            return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return None

    def _match_patterns(self, text: str, now: datetime) -> Optional[datetime]:
        match = _ISO_DAY.search(text)
        if match:
            result = self._build(match.group(1), match.group(2), match.group(3), now)
            if result:
                return result
        match = _US_DAY.search(text)
        if match:
            result = self._build(match.group(3), match.group(1), match.group(2), now)
            if result:
                return result
        match = _SLASHED_DAY.search(text)
        if match:
            result = self._build(match.group(1), match.group(2), match.group(3), now)
            if result:
                return result
        match = _MONTH_FIRST.search(text)
        if match:
            month = MONTHS[match.group(1).lower()]
            result = self._build(match.group(3), month, match.group(2), now)
            if result:
                return result
        match = _DAY_FIRST.search(text)
        if match:
            month = MONTHS[match.group(2).lower()]
            result = self._build(match.group(3), month, match.group(1), now)
            if result:
                return result
        return None

    def _from_url_path(self, url: str, now: datetime) -> Optional[datetime]:
        match = _URL_DATE.search(url)
        if not match:
            return None
        return self._build(match.group(1), match.group(2), match.group(3) or 1, now)

    def _build(self, year, month, day, now: datetime) -> Optional[datetime]:
        try:
            value = datetime(int(year), int(month), int(day), tzinfo=timezone.utc)
        except (ValueError, OverflowError):
            return None
        return self._plausible(value, now)

    @staticmethod
    def _plausible(value: datetime, now: datetime) -> Optional[datetime]:
        if value.year < MIN_YEAR or value.year > now.year + 1:
            return None
        return value


_default_resolver: Optional[DateResolver] = None


def get_date_resolver() -> DateResolver:
    """Process-wide resolver honouring ``dates.override_file``."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = DateResolver()
    return _default_resolver


__all__ = ["DateResolver", "MONTHS", "get_date_resolver", "load_overrides"]
