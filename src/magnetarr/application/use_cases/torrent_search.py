"""Torrent search with cascading fallback queries.

Primary query first; when it finds nothing, progressively simpler
queries are tried strictly in order, stopping at the first non-empty
result.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

import structlog

from magnetarr.domain.entities.media import MediaDescriptor
from magnetarr.domain.entities.torrent import FallbackSearchResult, SearchQuery
from magnetarr.domain.ports.torrent_backend import TorrentBackendPort

log = structlog.get_logger(__name__)

# Type aliases for injected pure functions.
_QueryFn = Callable[[MediaDescriptor, Optional[int], Optional[int]], str]
_FallbackQueriesFn = Callable[[MediaDescriptor, Optional[int]], list[SearchQuery]]


class TorrentSearchUseCase:
    """Primary search plus fallback cascade against the torrent backend."""

    def __init__(
        self,
        *,
        backend: TorrentBackendPort,
        query_fn: _QueryFn,
        fallback_queries_fn: _FallbackQueriesFn,
    ) -> None:
        self._backend = backend
        self._query_fn = query_fn
        self._fallback_queries_fn = fallback_queries_fn

    async def execute(
        self,
        descriptor: MediaDescriptor,
        season: int | None = None,
        episode: int | None = None,
    ) -> FallbackSearchResult:
        """Search for *descriptor*, falling back to simpler queries.

        Returns:
            Candidates of the first query that found anything, whether a
            fallback query was needed, and that query's text.  An empty
            candidate list when every query came back empty.
        """
        primary = self._query_fn(descriptor, season, episode)
        if not primary:
            log.warning("search_query_empty", media_id=descriptor.id)
            return FallbackSearchResult(candidates=[], used_fallback=False, query_used="")

        log.info("torrent_search_start", media_id=descriptor.id, query=primary)
        candidates = await self._backend.search(primary)
        if candidates:
            return FallbackSearchResult(
                candidates=candidates,
                used_fallback=False,
                query_used=primary,
            )

        fallbacks = self._fallback_queries_fn(descriptor, season)
        if not fallbacks:
            log.info("torrent_search_no_results", media_id=descriptor.id, query=primary)
            return FallbackSearchResult(
                candidates=[], used_fallback=False, query_used=primary
            )

        log.info(
            "torrent_search_fallback_start",
            media_id=descriptor.id,
            queries=[q.query_text for q in fallbacks],
        )
        for query in fallbacks:
            candidates = await self._backend.search(query.query_text)
            if candidates:
                log.info(
                    "torrent_search_fallback_hit",
                    media_id=descriptor.id,
                    query=query.query_text,
                    rank=query.fallback_rank,
                    results=len(candidates),
                )
                return FallbackSearchResult(
                    candidates=candidates,
                    used_fallback=True,
                    query_used=query.query_text,
                )

        log.info(
            "torrent_search_fallback_exhausted",
            media_id=descriptor.id,
            tried=len(fallbacks),
        )
        return FallbackSearchResult(
            candidates=[], used_fallback=True, query_used=fallbacks[-1].query_text
        )
