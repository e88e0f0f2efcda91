"""Domain entities describing catalog media items.

Pure value objects — no framework dependencies, no I/O.
A MediaDescriptor is owned by the catalog collaborator; the engine only reads it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MediaType(str, Enum):
    """Media category as used by the catalog and the query conventions."""

    MOVIE = "movie"
    SHOW = "show"
    ANIME = "anime"


@dataclass(frozen=True)
class AnimeTitle:
    """Title bundle as returned by AniList-style catalogs (any may be empty)."""

    romaji: str = ""
    english: str = ""
    native: str = ""
    user_preferred: str = ""


@dataclass(frozen=True)
class MediaDescriptor:
    """A movie, show, or anime item the user wants to watch.

    ``title`` is a plain string for movies and shows, an ``AnimeTitle``
    for anime.  ``name`` carries the localized show name (preferred over
    ``title`` for shows).
    """

    id: str
    type: MediaType
    title: str | AnimeTitle = ""
    name: str = ""
    release_year: int | None = None
    total_episodes: int | None = None
    seasons: tuple[int, ...] = field(default_factory=tuple)
