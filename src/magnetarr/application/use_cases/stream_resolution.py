"""Resolution of ranked torrent candidates into a playable stream.

Candidates are tried strictly one after another (never concurrently) so
the backend's debrid provider is not rate-limited; a courtesy delay
separates two attempts.  The first candidate the backend accepts wins.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, Protocol

import structlog

from magnetarr.domain.entities.media import MediaDescriptor, MediaType
from magnetarr.domain.entities.torrent import (
    AlternativeSource,
    BackendFile,
    DebridStream,
    P2PStream,
    ResolvedStream,
    TorrentCandidate,
    TorrentStreamInfo,
)
from magnetarr.domain.ports.torrent_backend import TorrentBackendPort

log = structlog.get_logger(__name__)


class _ResolutionConfig(Protocol):
    """Configuration values consumed by StreamResolutionUseCase."""

    candidates_to_try: int
    alternatives_limit: int
    attempt_delay_seconds: float


class _SelectFileFn(Protocol):
    def __call__(
        self,
        files: tuple[BackendFile, ...],
        *,
        selected_index: Optional[int] = None,
        anime_episode: Optional[int] = None,
    ) -> BackendFile | None: ...


_LabelFn = Callable[[str], str]
_SleepFn = Callable[[float], Awaitable[None]]

_DEFAULT_LANGUAGE = "English"
_UNKNOWN = "Unknown"


def _episode_hint(descriptor: MediaDescriptor | None, episode: int | None) -> int | None:
    # The backend only uses the hint to pick anime episodes out of batches.
    if descriptor is not None and descriptor.type == MediaType.ANIME:
        return episode
    return None


class StreamResolutionUseCase:
    """Turn ranked candidates into a DebridStream or P2PStream.

    Flow:
        1. Expose the top candidates as alternative sources.
        2. Add the top ``candidates_to_try`` magnets one by one until the
           backend returns a file list.
        3. Debrid response: use the direct URL as is.
        4. Otherwise pick the file (server index, anime episode, largest)
           and build the backend stream route for it.
    """

    def __init__(
        self,
        *,
        backend: TorrentBackendPort,
        config: _ResolutionConfig,
        select_file_fn: _SelectFileFn,
        quality_fn: _LabelFn,
        source_fn: _LabelFn,
        sleep: _SleepFn = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._select_file_fn = select_file_fn
        self._quality_fn = quality_fn
        self._source_fn = source_fn
        self._sleep = sleep
        self._candidates_to_try = config.candidates_to_try
        self._alternatives_limit = config.alternatives_limit
        self._attempt_delay = config.attempt_delay_seconds

    def alternatives(self, ranked: list[TorrentCandidate]) -> list[AlternativeSource]:
        """Top ranked candidates with display labels for manual switching.

        Backend-provided labels win; release-name parsing fills the gaps.
        """
        return [
            AlternativeSource(
                name=c.name,
                magnet_link=c.magnet_link,
                size=c.size_label,
                seeders=c.seeder_count,
                score=c.score,
                quality=c.quality_label or self._quality_fn(c.name),
                source=c.source_label or self._source_fn(c.name),
                language=c.audio_language or _DEFAULT_LANGUAGE,
                audio_codec=c.audio_codec or _UNKNOWN,
            )
            for c in ranked[: self._alternatives_limit]
        ]

    async def resolve(
        self,
        ranked: list[TorrentCandidate],
        descriptor: MediaDescriptor,
        episode: int | None = None,
    ) -> tuple[TorrentCandidate, ResolvedStream] | None:
        """Resolve the best playable candidate.

        Returns:
            The candidate that was used and its stream, or None when no
            candidate could be added or the accepted one has no video file.
        """
        to_try = ranked[: self._candidates_to_try]
        hint = _episode_hint(descriptor, episode)

        for attempt, candidate in enumerate(to_try, 1):
            log.info(
                "resolution_attempt",
                attempt=attempt,
                of=len(to_try),
                candidate=candidate.name,
            )
            info = await self._backend.add_torrent(candidate.magnet_link, episode=hint)
            if info is not None:
                log.info("resolution_candidate_accepted", attempt=attempt, hash=info.hash)
                stream = self.materialize(info, descriptor, episode)
                if stream is None:
                    return None
                return candidate, stream

            if attempt < len(to_try):
                await self._sleep(self._attempt_delay)

        log.warning("resolution_all_candidates_failed", tried=len(to_try))
        return None

    async def resolve_source(
        self,
        magnet_link: str,
        descriptor: MediaDescriptor | None = None,
        episode: int | None = None,
    ) -> ResolvedStream | None:
        """Add one known magnet and build its stream (no search, no ranking)."""
        info = await self._backend.add_torrent(
            magnet_link, episode=_episode_hint(descriptor, episode)
        )
        if info is None:
            return None
        return self.materialize(info, descriptor, episode)

    def materialize(
        self,
        info: TorrentStreamInfo,
        descriptor: MediaDescriptor | None,
        episode: int | None = None,
    ) -> ResolvedStream | None:
        if info.is_debrid:
            log.info(
                "resolution_debrid_stream",
                service=info.service,
                hash=info.hash,
                subtitles=len(info.subtitles),
            )
            return DebridStream(
                stream_url=info.stream_url or "",
                service_name=info.service or "",
                subtitle_tracks=info.subtitles,
                torrent_hash=info.hash,
            )

        chosen = self._select_file_fn(
            info.files,
            selected_index=info.selected_file_index,
            anime_episode=_episode_hint(descriptor, episode),
        )
        if chosen is None:
            log.warning("resolution_no_video_file", hash=info.hash, files=len(info.files))
            return None

        log.info(
            "resolution_p2p_stream",
            hash=info.hash,
            file=chosen.name,
            file_index=chosen.index,
        )
        return P2PStream(
            torrent_hash=info.hash,
            selected_file_index=chosen.index,
            stream_url=self._backend.file_stream_url(info.hash, chosen.index),
        )
