"""Normalization of raw catalog payloads into MediaDescriptor.

Catalog APIs (TMDB, AniList wrappers) disagree on field names.  Every
field below is read from an explicit priority list so the rest of the
engine only ever sees the normalized shape.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from magnetarr.domain.entities.media import AnimeTitle, MediaDescriptor, MediaType
from magnetarr.domain.exceptions import InvalidMediaDescriptorError

_TYPE_ALIASES: dict[str, MediaType] = {
    "movie": MediaType.MOVIE,
    "movies": MediaType.MOVIE,
    "show": MediaType.SHOW,
    "shows": MediaType.SHOW,
    "tv": MediaType.SHOW,
    "series": MediaType.SHOW,
    "anime": MediaType.ANIME,
}

_TYPE_KEYS = ("type", "media_type", "category")
_YEAR_KEYS = ("release_year", "year")
_DATE_KEYS = ("release_date", "first_air_date")
_EPISODE_COUNT_KEYS = ("total_episodes", "totalEpisodes", "episodes")

_YEAR_PREFIX_RE = re.compile(r"^(\d{4})")


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _media_type(raw: Mapping[str, Any]) -> MediaType:
    value = _first(raw, _TYPE_KEYS)
    if isinstance(value, MediaType):
        return value
    media_type = _TYPE_ALIASES.get(str(value).lower()) if value else None
    if media_type is None:
        raise InvalidMediaDescriptorError(f"Unknown media type: {value!r}")
    return media_type


def _anime_title(value: Any) -> AnimeTitle:
    if isinstance(value, AnimeTitle):
        return value
    if isinstance(value, str):
        return AnimeTitle(user_preferred=value)
    if not isinstance(value, Mapping):
        return AnimeTitle()
    return AnimeTitle(
        romaji=value.get("romaji") or "",
        english=value.get("english") or "",
        native=value.get("native") or "",
        user_preferred=value.get("userPreferred") or value.get("user_preferred") or "",
    )


def _release_year(raw: Mapping[str, Any]) -> int | None:
    year = _as_int(_first(raw, _YEAR_KEYS))
    if year is not None:
        return year

    date = _first(raw, _DATE_KEYS)
    if isinstance(date, str):
        m = _YEAR_PREFIX_RE.match(date)
        if m:
            return int(m.group(1))

    season_year = _as_int(raw.get("seasonYear"))
    if season_year is not None:
        return season_year

    start = raw.get("startDate")
    if isinstance(start, Mapping):
        return _as_int(start.get("year"))
    return None


def _seasons(raw: Mapping[str, Any]) -> tuple[int, ...]:
    seasons = raw.get("seasons")
    if not isinstance(seasons, list):
        return ()
    numbers: list[int] = []
    for entry in seasons:
        number = (
            _as_int(entry.get("season_number"))
            if isinstance(entry, Mapping)
            else _as_int(entry)
        )
        if number is not None:
            numbers.append(number)
    return tuple(numbers)


def descriptor_from_catalog(raw: Mapping[str, Any]) -> MediaDescriptor:
    """Build a MediaDescriptor from a catalog payload.

    Field priorities:

    - type: ``type`` > ``media_type`` > ``category`` (movie/movies,
      show/shows/tv/series, anime)
    - title: anime → mapping ``{english, userPreferred, romaji, native}``;
      otherwise ``title`` > ``original_title`` > ``original_name``
    - name (shows): ``name``
    - release_year: ``release_year`` > ``year`` > ``release_date[:4]`` >
      ``first_air_date[:4]`` > ``seasonYear`` > ``startDate.year``
    - total_episodes: ``total_episodes`` > ``totalEpisodes`` > ``episodes``
    - seasons: ``seasons`` (ints or dicts with ``season_number``)

    Raises:
        InvalidMediaDescriptorError: missing id or unknown media type.
    """
    media_id = raw.get("id")
    if media_id in (None, ""):
        raise InvalidMediaDescriptorError("Media payload has no id")

    media_type = _media_type(raw)

    if media_type == MediaType.ANIME:
        title: str | AnimeTitle = _anime_title(raw.get("title"))
    else:
        title = str(_first(raw, ("title", "original_title", "original_name")) or "")

    return MediaDescriptor(
        id=str(media_id),
        type=media_type,
        title=title,
        name=str(raw.get("name") or "") if media_type == MediaType.SHOW else "",
        release_year=_release_year(raw),
        total_episodes=_as_int(_first(raw, _EPISODE_COUNT_KEYS)),
        seasons=_seasons(raw),
    )
