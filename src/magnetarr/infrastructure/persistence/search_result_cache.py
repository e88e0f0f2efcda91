"""Search result cache backed by CachePort (diskcache).

Only non-empty result lists are stored; an empty search is always retried.
"""

from __future__ import annotations

import json
from dataclasses import asdict

import structlog

from magnetarr.domain.entities.torrent import TorrentCandidate
from magnetarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)


def _key(query_text: str) -> str:
    return f"torrentsearch:{query_text}"


def _serialize(candidates: list[TorrentCandidate]) -> str:
    return json.dumps([asdict(c) for c in candidates])


def _deserialize(data: str) -> list[TorrentCandidate]:
    return [
        TorrentCandidate(
            name=d["name"],
            magnet_link=d["magnet_link"],
            size_bytes=d.get("size_bytes", 0),
            seeder_count=d.get("seeder_count", 0),
            score=d.get("score", 0.0),
            quality_label=d.get("quality_label"),
            source_label=d.get("source_label"),
            audio_language=d.get("audio_language"),
            audio_codec=d.get("audio_codec"),
            size_label=d.get("size_label", ""),
        )
        for d in json.loads(data)
    ]


class SearchResultCache:
    """Caches raw backend search results per query text."""

    def __init__(self, cache: CachePort, ttl_seconds: int = 900) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    async def save(self, query_text: str, candidates: list[TorrentCandidate]) -> None:
        if not candidates:
            return
        await self.cache.set(_key(query_text), _serialize(candidates), ttl=self.ttl)
        log.debug(
            "search_results_saved",
            query=query_text,
            count=len(candidates),
            ttl=self.ttl,
        )

    async def get(self, query_text: str) -> list[TorrentCandidate] | None:
        """Fresh copies of the cached candidates, or None on a miss."""
        data = await self.cache.get(_key(query_text))
        if data is None:
            return None

        try:
            candidates = _deserialize(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error("search_results_deserialize_error", query=query_text, error=str(e))
            return None

        log.debug("search_results_loaded", query=query_text, count=len(candidates))
        return candidates or None
