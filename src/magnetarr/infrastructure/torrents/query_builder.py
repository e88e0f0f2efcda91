"""Search query construction for the torrent backend.

Pure and deterministic: no randomness, no I/O.

- Movies: ``"{title} {year}"``
- Shows:  ``"{title} S01E05"``
- Anime:  ``"{title} 005"`` (anime releases rarely encode the season)
"""

from __future__ import annotations

import re
from collections.abc import Mapping

import structlog

from magnetarr.domain.entities.media import MediaDescriptor, MediaType
from magnetarr.domain.entities.torrent import SearchQuery
from magnetarr.infrastructure.torrents.titles import (
    clean_anime_title,
    extract_season_from_title,
    get_base_title_without_season,
    get_display_title,
)

log = structlog.get_logger(__name__)

# Long-form show names → abbreviations used by most releases.
DEFAULT_ABBREVIATIONS: dict[str, str] = {
    "Special Victims Unit": "SVU",
    "Criminal Intent": "CI",
    "Criminal Minds": "CM",
    "Crime Scene Investigation": "CSI",
}

_PUNCT_RE = re.compile(r"[&:]")
_LAW_ORDER_PREFIX = "law order "


def _depunctuate(title: str) -> str:
    return " ".join(_PUNCT_RE.sub(" ", title).split())


def _apply_abbreviations(title: str, abbreviations: Mapping[str, str]) -> str:
    """Rewrite the first matching long-form name (case-insensitive)."""
    for full, abbr in abbreviations.items():
        pattern = re.compile(re.escape(full), re.IGNORECASE)
        if pattern.search(title):
            abbreviated = pattern.sub(abbr, title)
            log.debug("title_abbreviated", original=title, abbreviated=abbreviated)
            return abbreviated
    return title


def _expand_law_and_order(title: str) -> str:
    # "Law Order SVU" matches fewer releases than "Law and Order SVU".
    if title.lower().startswith(_LAW_ORDER_PREFIX):
        variant = title[len(_LAW_ORDER_PREFIX) :].strip()
        if variant:
            return f"Law and Order {variant}"
    return title


def build_search_query(
    descriptor: MediaDescriptor,
    season: int | None = None,
    episode: int | None = None,
    *,
    abbreviations: Mapping[str, str] = DEFAULT_ABBREVIATIONS,
) -> str:
    """Build the primary search string for a media item."""
    title = get_display_title(descriptor)

    if descriptor.type == MediaType.MOVIE:
        year = descriptor.release_year or ""
        return f"{title} {year}".strip()

    title = _depunctuate(title)
    title = _apply_abbreviations(title, abbreviations)
    title = _expand_law_and_order(title)

    if descriptor.type == MediaType.ANIME:
        return f"{title} {episode:03d}" if episode else title

    season_str = f"S{season:02d}" if season else ""
    episode_str = f"E{episode:02d}" if episode else ""
    return f"{title} {season_str}{episode_str}".strip()


def _effective_season(
    descriptor: MediaDescriptor, title: str, season: int | None
) -> int | None:
    title_season = extract_season_from_title(title)
    if descriptor.type == MediaType.ANIME:
        # The season in an anime title names the cour being watched; a
        # caller-supplied season must never replace it.
        return title_season or season
    return season or title_season


def generate_fallback_queries(
    descriptor: MediaDescriptor,
    season: int | None = None,
) -> list[str]:
    """Progressively simpler queries for when the primary query finds nothing.

    The season is never dropped once known, except for the bare base title,
    which is only tried after every season-qualified variant.
    Movies have no fallback queries.
    """
    original = get_display_title(descriptor)
    effective_season = _effective_season(descriptor, original, season)
    queries: list[str] = []

    if descriptor.type == MediaType.ANIME:
        cleaned = clean_anime_title(original, keep_season=True)
        base = get_base_title_without_season(cleaned)

        if cleaned != original:
            queries.append(cleaned)
        if effective_season:
            queries.append(f"{base} Season {effective_season}")
            queries.append(f"{base} S{effective_season:02d}")
        queries.append(base)
        if effective_season:
            queries.append(f"{base} Season {effective_season} batch")
            queries.append(f"{base} Season {effective_season} complete")

    elif descriptor.type == MediaType.SHOW:
        base = get_base_title_without_season(original)

        if effective_season:
            queries.append(f"{base} Season {effective_season}")
            queries.append(f"{base} S{effective_season:02d}")
        queries.append(base)
        if effective_season:
            queries.append(f"{base} Season {effective_season} complete")

    # Exact-match dedup, first occurrence wins.
    seen: set[str] = set()
    unique: list[str] = []
    for q in queries:
        if q and q.strip() and q not in seen:
            seen.add(q)
            unique.append(q)

    log.debug(
        "fallback_queries_generated",
        original=original,
        season=effective_season,
        queries=unique,
    )
    return unique


def fallback_search_queries(
    descriptor: MediaDescriptor,
    season: int | None = None,
) -> list[SearchQuery]:
    """Fallback queries wrapped with their rank (1-based)."""
    return [
        SearchQuery(query_text=q, is_fallback=True, fallback_rank=rank)
        for rank, q in enumerate(generate_fallback_queries(descriptor, season), 1)
    ]
