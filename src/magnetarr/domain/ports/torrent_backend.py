"""Port for the self-hosted torrent search/stream backend."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from magnetarr.domain.entities.torrent import TorrentCandidate, TorrentStreamInfo


@runtime_checkable
class TorrentBackendPort(Protocol):
    """Async interface for torrent search and add-to-stream calls.

    Neither method raises on transport or HTTP errors.
    """

    async def search(self, query_text: str) -> list[TorrentCandidate]:
        """Search torrents. Returns an empty list on failure."""
        ...

    async def add_torrent(
        self,
        magnet_link: str,
        *,
        episode: int | None = None,
    ) -> TorrentStreamInfo | None:
        """Add a magnet to the backend. None = failure, timeout, or no files."""
        ...

    def file_stream_url(self, torrent_hash: str, file_index: int) -> str:
        """Backend route that streams one file of a torrent."""
        ...
