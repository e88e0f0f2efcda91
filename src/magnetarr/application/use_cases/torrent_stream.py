"""Stream preparation with a per-content cache and in-flight deduplication.

Entry point for callers: ``prepare`` / ``resolve`` for a media item and
``switch_source`` for one of the exposed alternatives.  At most one
resolution pipeline runs per content key; concurrent callers share the
running task.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import structlog

from magnetarr.domain.entities.media import MediaDescriptor
from magnetarr.domain.entities.torrent import (
    AlternativeSource,
    DebridStream,
    MatchRequest,
    PlaybackSession,
    ResolvedStream,
    TorrentCandidate,
)

from .stream_resolution import StreamResolutionUseCase
from .torrent_search import TorrentSearchUseCase

log = structlog.get_logger(__name__)


class _EngineConfig(Protocol):
    """Configuration values consumed by TorrentStreamEngine."""

    stream_cache_ttl_seconds: int


class _Ranker(Protocol):
    """Filters and ranks raw search results (best first)."""

    def filter_and_score(
        self,
        candidates: list[TorrentCandidate],
        request: MatchRequest,
    ) -> list[TorrentCandidate]: ...


@dataclass(frozen=True)
class _CacheEntry:
    stream: ResolvedStream
    source_name: str
    alternatives: list[AlternativeSource]
    created_at: float


def stream_cache_key(media_id: str, season: int | None, episode: int | None) -> str:
    """``{id}_{season or 'movie'}_{episode or ''}``"""
    return f"{media_id}_{season or 'movie'}_{episode or ''}"


class TorrentStreamEngine:
    """Owns the stream cache, the in-flight map and the playback session.

    One instance per composition root; tests build a fresh one per case.
    """

    def __init__(
        self,
        *,
        search: TorrentSearchUseCase,
        ranker: _Ranker,
        resolver: StreamResolutionUseCase,
        config: _EngineConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._search = search
        self._ranker = ranker
        self._resolver = resolver
        self._ttl = config.stream_cache_ttl_seconds
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task[_CacheEntry | None]] = {}
        self.session = PlaybackSession()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def cached_stream(self, key: str) -> ResolvedStream | None:
        """Fresh cached stream for *key*; expired entries are dropped."""
        entry = self._fresh_entry(key)
        return entry.stream if entry is not None else None

    def start(
        self,
        descriptor: MediaDescriptor,
        season: int | None = None,
        episode: int | None = None,
    ) -> str:
        """Kick off preparation without waiting for it; returns the cache key."""
        key = stream_cache_key(descriptor.id, season, episode)
        if self._fresh_entry(key) is None:
            self._task_for(key, descriptor, season, episode)
        return key

    async def resolve(
        self,
        descriptor: MediaDescriptor,
        season: int | None = None,
        episode: int | None = None,
    ) -> ResolvedStream | None:
        """Playable stream for the item, or None when nothing playable was found.

        Served from the cache when fresh, otherwise joins the running
        preparation for the same key or starts one.
        """
        key = stream_cache_key(descriptor.id, season, episode)

        entry = self._fresh_entry(key)
        if entry is not None:
            log.debug("stream_cache_hit", key=key)
            self._activate(entry.stream, entry.source_name, entry.alternatives)
            return entry.stream

        task = self._task_for(key, descriptor, season, episode)
        # A cancelled caller must not cancel the preparation other callers share.
        entry = await asyncio.shield(task)
        if entry is None:
            return None
        self._activate(entry.stream, entry.source_name, entry.alternatives)
        return entry.stream

    async def prepare(
        self,
        descriptor: MediaDescriptor,
        season: int | None = None,
        episode: int | None = None,
    ) -> str | None:
        """Stream URL for the item, or None."""
        stream = await self.resolve(descriptor, season, episode)
        return stream.stream_url if stream is not None else None

    async def switch_source(
        self,
        source: AlternativeSource | int,
        descriptor: MediaDescriptor | None = None,
        episode: int | None = None,
    ) -> ResolvedStream | None:
        """Re-resolve through an alternative (object or index into the session).

        Search, filtering and ranking are skipped; the add and
        file-selection steps are the same as for ``resolve``.
        """
        if isinstance(source, int):
            alternatives = self.session.alternatives
            if not 0 <= source < len(alternatives):
                log.warning(
                    "switch_source_invalid_index",
                    index=source,
                    available=len(alternatives),
                )
                return None
            source = alternatives[source]

        if not source.magnet_link:
            log.warning("switch_source_invalid", source=source.name)
            return None

        log.info("switch_source_start", source=source.name)
        try:
            stream = await self._resolver.resolve_source(
                source.magnet_link, descriptor, episode
            )
        except Exception:
            log.error("switch_source_failed", source=source.name, exc_info=True)
            return None

        if stream is None:
            log.warning("switch_source_unplayable", source=source.name)
            return None

        self._activate(stream, source.name)
        log.info("switch_source_done", source=source.name, kind=stream.kind)
        return stream

    async def aclose(self) -> None:
        """Cancel running preparations (shutdown)."""
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fresh_entry(self, key: str) -> _CacheEntry | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at >= self._ttl:
            del self._cache[key]
            log.debug("stream_cache_expired", key=key)
            return None
        return entry

    def _task_for(
        self,
        key: str,
        descriptor: MediaDescriptor,
        season: int | None,
        episode: int | None,
    ) -> asyncio.Task[_CacheEntry | None]:
        task = self._in_flight.get(key)
        if task is not None:
            log.debug("stream_preparation_joined", key=key)
            return task

        task = asyncio.create_task(
            self._prepare_entry(key, descriptor, season, episode),
            name=f"prepare-{key}",
        )
        self._in_flight[key] = task
        return task

    async def _prepare_entry(
        self,
        key: str,
        descriptor: MediaDescriptor,
        season: int | None,
        episode: int | None,
    ) -> _CacheEntry | None:
        try:
            found = await self._search.execute(descriptor, season, episode)
            if not found.candidates:
                log.info("stream_preparation_no_results", key=key)
                return None

            ranked = self._ranker.filter_and_score(
                found.candidates,
                MatchRequest(
                    descriptor=descriptor,
                    season=season,
                    episode=episode,
                    used_fallback=found.used_fallback,
                ),
            )
            if not ranked:
                log.info(
                    "stream_preparation_no_compatible",
                    key=key,
                    total=len(found.candidates),
                    query=found.query_used,
                )
                return None

            alternatives = self._resolver.alternatives(ranked)
            self.session.alternatives = alternatives
            self.session.current_source_name = ranked[0].name

            outcome = await self._resolver.resolve(ranked, descriptor, episode)
            if outcome is None:
                return None

            candidate, stream = outcome
            entry = _CacheEntry(
                stream=stream,
                source_name=candidate.name,
                alternatives=alternatives,
                created_at=self._clock(),
            )
            self._cache[key] = entry
            log.info(
                "stream_prepared",
                key=key,
                kind=stream.kind,
                source=candidate.name,
                used_fallback=found.used_fallback,
            )
            return entry
        except Exception:
            log.error("stream_preparation_failed", key=key, exc_info=True)
            return None
        finally:
            self._in_flight.pop(key, None)

    def _activate(
        self,
        stream: ResolvedStream,
        source_name: str,
        alternatives: list[AlternativeSource] | None = None,
    ) -> None:
        session = self.session
        if isinstance(stream, DebridStream):
            session.active_hash = stream.torrent_hash
            session.active_file_index = 0
            session.is_debrid = True
            session.subtitles = list(stream.subtitle_tracks)
        else:
            session.active_hash = stream.torrent_hash
            session.active_file_index = stream.selected_file_index
            session.is_debrid = False
            session.subtitles = []
        session.current_source_name = source_name
        if alternatives is not None:
            session.alternatives = list(alternatives)
