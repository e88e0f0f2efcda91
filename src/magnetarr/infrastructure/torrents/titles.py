"""Title normalization for torrent search.

Pure transformation logic — no I/O, never raises on malformed input.
Derives a canonical display title from a MediaDescriptor and produces the
simplified title variants used by fallback searches.
"""

from __future__ import annotations

import re

import structlog

from magnetarr.domain.entities.media import AnimeTitle, MediaDescriptor, MediaType

log = structlog.get_logger(__name__)

_SEASON_WORD_RE = re.compile(r"Season\s*(\d+)", re.IGNORECASE)
_SEASON_SHORT_RE = re.compile(r"\bS(\d{1,2})\b", re.IGNORECASE)

# Ordered cleanup passes for anime titles.  The case-sensitive passes only
# fire on a capitalised subtitle so "Re:Zero" style titles survive.
_BRACKETED_RE = re.compile(r"[\[(].*?[\])]")
_DASH_WRAPPED_RE = re.compile(r"\s*-[^-]+?-\s*")
_DASH_SUBTITLE_RE = re.compile(r"\s*-\s*[A-Z][a-z].*$")
_PART_RE = re.compile(r"\s*(Part|Cour|Arc)\s*\d+\s*", re.IGNORECASE)
_THE_SUFFIX_RE = re.compile(r"\s*The\s+(Animation|Movie|Series)\s*", re.IGNORECASE)
_COLON_SUBTITLE_RE = re.compile(r":\s*[A-Z].*$")

_STRIP_SEASON_WORD_RE = re.compile(r"\s*Season\s*\d+\s*", re.IGNORECASE)
_STRIP_SEASON_SHORT_RE = re.compile(r"\s+S\d{1,2}\b", re.IGNORECASE)


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _anime_title(title: AnimeTitle | str) -> str:
    if isinstance(title, str):
        return title
    for candidate in (
        title.english,
        title.user_preferred,
        title.romaji,
        title.native,
    ):
        if candidate:
            return candidate
    return ""


def get_display_title(descriptor: MediaDescriptor) -> str:
    """Canonical title used for queries and matching ("" when unknown)."""
    try:
        if descriptor.type == MediaType.ANIME:
            return _anime_title(descriptor.title)
        if descriptor.type == MediaType.SHOW and descriptor.name:
            return descriptor.name
        if isinstance(descriptor.title, AnimeTitle):
            return _anime_title(descriptor.title)
        return descriptor.title or ""
    except AttributeError:
        log.warning("display_title_unavailable", descriptor=repr(descriptor))
        return ""


def extract_season_from_title(title: str) -> int | None:
    """Return N from a "Season N" or "SNN" token, or None."""
    if not title:
        return None
    m = _SEASON_WORD_RE.search(title) or _SEASON_SHORT_RE.search(title)
    return int(m.group(1)) if m else None


def clean_anime_title(title: str, keep_season: bool = True) -> str:
    """Strip subtitles and qualifiers from an anime title.

    "Solo Leveling Season 2 -Arise from the Shadow-" → "Solo Leveling Season 2"
    """
    if not title:
        return ""

    season_match = re.search(r"(Season\s*\d+)", title, re.IGNORECASE)
    season_text = season_match.group(1) if season_match else ""

    cleaned = _BRACKETED_RE.sub("", title)
    cleaned = _DASH_WRAPPED_RE.sub(" ", cleaned)
    cleaned = _DASH_SUBTITLE_RE.sub("", cleaned)
    cleaned = _PART_RE.sub(" ", cleaned)
    cleaned = _THE_SUFFIX_RE.sub(" ", cleaned)
    cleaned = _COLON_SUBTITLE_RE.sub("", cleaned)
    cleaned = _collapse(cleaned)

    if keep_season and season_text and "season" not in cleaned.lower():
        base = _STRIP_SEASON_WORD_RE.sub(" ", cleaned).strip()
        cleaned = _collapse(f"{base} {season_text}")

    return cleaned


def get_base_title_without_season(title: str) -> str:
    """Remove "Season N" and "SNN" tokens: "Solo Leveling Season 2" → "Solo Leveling"."""
    if not title:
        return ""
    text = _STRIP_SEASON_WORD_RE.sub(" ", title)
    text = _STRIP_SEASON_SHORT_RE.sub(" ", text)
    return _collapse(text)


def title_words(title: str) -> list[str]:
    """Lowercased significant words (longer than 2 characters) of a title."""
    text = re.sub(r"[^\w\s]", " ", title.lower())
    return [w for w in text.split() if len(w) > 2]
