"""Torrent backend client — async httpx implementation.

Wire protocol:

- ``GET  {api_url}/torrents/search/{query}`` → ``{data: {torrents: [...]}}``
- ``POST {api_url}/torrents/stream`` body ``{magnetURI, episodeInfo}``
  → ``{data: {hash, name, files, streamType?, streamUrl?, ...}}``
- ``{api_url}/torrents/stream/{hash}/files/{index}/stream`` (playback)

Transport and HTTP errors never propagate: search returns ``[]`` and
add returns ``None``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from magnetarr.domain.entities.torrent import (
    BackendFile,
    SubtitleTrack,
    TorrentCandidate,
    TorrentStreamInfo,
)
from magnetarr.infrastructure.common.parsers import parse_size_to_bytes, to_float, to_int
from magnetarr.infrastructure.persistence.search_result_cache import (
    SearchResultCache,
)

log = structlog.get_logger(__name__)

# Field-name priority lists for the search record shape.
_NAME_KEYS = ("Name", "name", "title")
_MAGNET_KEYS = ("Magnet", "magnet", "magnetURI", "magnet_link")
_SIZE_KEYS = ("Size", "size", "sizeBytes")
_SEEDER_KEYS = ("Seeders", "seeders", "seeds")
_SCORE_KEYS = ("Score", "score")
_QUALITY_KEYS = ("Quality", "quality")
_SOURCE_KEYS = ("Type", "source")
_LANGUAGE_KEYS = ("AudioLanguage", "audioLanguage")
_AUDIO_CODEC_KEYS = ("AudioCodec", "audioCodec")


def _pick(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _label(value: Any) -> str | None:
    if value in (None, "") or str(value) == "Unknown":
        return None
    return str(value)


def candidate_from_record(record: Mapping[str, Any]) -> TorrentCandidate:
    """Normalize one backend search record.

    Enriched labels are read from the top-level fields first and from
    ``_scoreDetails`` second.  Missing values become empty/unknown.
    """
    details = record.get("_scoreDetails")
    if not isinstance(details, Mapping):
        details = {}

    raw_size = _pick(record, _SIZE_KEYS)
    if isinstance(raw_size, (int, float)) and not isinstance(raw_size, bool):
        size_bytes = to_int(raw_size) or 0
        size_label = str(raw_size)
    else:
        size_label = str(raw_size or "")
        size_bytes = parse_size_to_bytes(size_label)

    return TorrentCandidate(
        name=str(_pick(record, _NAME_KEYS) or ""),
        magnet_link=str(_pick(record, _MAGNET_KEYS) or ""),
        size_bytes=size_bytes,
        size_label=size_label,
        seeder_count=to_int(_pick(record, _SEEDER_KEYS)) or 0,
        score=to_float(_pick(record, _SCORE_KEYS)) or 0.0,
        quality_label=_label(_pick(record, _QUALITY_KEYS) or details.get("resolution")),
        source_label=_label(_pick(record, _SOURCE_KEYS) or details.get("source")),
        audio_language=_label(
            _pick(record, _LANGUAGE_KEYS) or details.get("audioLanguage")
        ),
        audio_codec=_label(_pick(record, _AUDIO_CODEC_KEYS) or details.get("audioCodec")),
    )


def _file_from_record(position: int, record: Mapping[str, Any]) -> BackendFile:
    index = to_int(record.get("index"))
    size = to_int(record.get("size"))
    if size is None:
        size = to_int(record.get("length"))
    return BackendFile(
        index=position if index is None else index,
        name=str(record.get("name") or ""),
        size=size or 0,
    )


def _subtitle_from_record(record: Mapping[str, Any]) -> SubtitleTrack | None:
    url = record.get("url")
    if not url:
        return None
    return SubtitleTrack(
        url=str(url),
        language=str(record.get("language") or ""),
        filename=str(record.get("filename") or ""),
        source=str(record.get("source") or "Torrent"),
    )


def stream_info_from_payload(data: Mapping[str, Any]) -> TorrentStreamInfo:
    """Normalize the ``data`` object of an add-torrent response."""
    files = tuple(
        _file_from_record(i, f)
        for i, f in enumerate(data.get("files") or [])
        if isinstance(f, Mapping)
    )
    subtitles = tuple(
        track
        for track in (
            _subtitle_from_record(s)
            for s in data.get("subtitles") or []
            if isinstance(s, Mapping)
        )
        if track is not None
    )
    return TorrentStreamInfo(
        hash=str(data.get("hash") or ""),
        name=str(data.get("name") or ""),
        files=files,
        stream_type=data.get("streamType"),
        stream_url=data.get("streamUrl"),
        service=data.get("service"),
        subtitles=subtitles,
        selected_file_index=to_int(data.get("selectedFileIndex")),
    )


class HttpxTorrentBackend:
    """Async client for the torrent backend.

    Implements ``TorrentBackendPort`` from domain.ports.torrent_backend.
    """

    def __init__(
        self,
        *,
        api_url: str,
        http_client: httpx.AsyncClient,
        add_timeout_seconds: float = 45.0,
        search_cache: SearchResultCache | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._http = http_client
        self._add_timeout = add_timeout_seconds
        self._search_cache = search_cache

    def file_stream_url(self, torrent_hash: str, file_index: int) -> str:
        return f"{self._api_url}/torrents/stream/{torrent_hash}/files/{file_index}/stream"

    async def search(self, query_text: str) -> list[TorrentCandidate]:
        """Search the backend; ``[]`` on any failure."""
        if self._search_cache is not None:
            cached = await self._search_cache.get(query_text)
            if cached is not None:
                return cached

        url = f"{self._api_url}/torrents/search/{quote(query_text, safe='')}"
        try:
            resp = await self._http.get(url)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            log.warning(
                "torrent_search_http_error",
                query=query_text,
                status=exc.response.status_code,
            )
            return []
        except httpx.HTTPError:
            log.warning("torrent_search_network_error", query=query_text, exc_info=True)
            return []
        except ValueError:
            log.warning("torrent_search_invalid_json", query=query_text)
            return []

        data = payload.get("data") if isinstance(payload, Mapping) else None
        records = data.get("torrents") if isinstance(data, Mapping) else None
        if not isinstance(records, list):
            records = []

        candidates = [
            candidate_from_record(r) for r in records if isinstance(r, Mapping)
        ]
        log.debug("torrent_search_done", query=query_text, results=len(candidates))

        if candidates and self._search_cache is not None:
            await self._search_cache.save(query_text, candidates)
        return candidates

    async def add_torrent(
        self,
        magnet_link: str,
        *,
        episode: int | None = None,
    ) -> TorrentStreamInfo | None:
        """Hand a magnet to the backend; ``None`` unless it lists files."""
        body = {
            "magnetURI": magnet_link,
            "episodeInfo": {"episode": episode} if episode is not None else None,
        }
        try:
            resp = await self._http.post(
                f"{self._api_url}/torrents/stream",
                json=body,
                timeout=self._add_timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.TimeoutException:
            log.warning("torrent_add_timeout", timeout=self._add_timeout)
            return None
        except httpx.HTTPStatusError as exc:
            log.warning("torrent_add_http_error", status=exc.response.status_code)
            return None
        except httpx.HTTPError:
            log.warning("torrent_add_network_error", exc_info=True)
            return None
        except ValueError:
            log.warning("torrent_add_invalid_json")
            return None

        data = payload.get("data") if isinstance(payload, Mapping) else None
        if not isinstance(data, Mapping):
            log.warning("torrent_add_invalid_response")
            return None

        info = stream_info_from_payload(data)
        if not info.files:
            log.warning("torrent_add_no_files", hash=info.hash)
            return None
        return info
