"""Tests for HttpxTorrentBackend (torrent backend adapter)."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from magnetarr.domain.entities import BackendFile, SubtitleTrack, TorrentCandidate
from magnetarr.infrastructure.torrents.backend_client import (
    HttpxTorrentBackend,
    candidate_from_record,
    stream_info_from_payload,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

API_URL = "http://backend.test/api"
_SEARCH_URL = f"{API_URL}/torrents/search/Game%20of%20Thrones%20S01E01"
_ADD_URL = f"{API_URL}/torrents/stream"


@pytest.fixture()
def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


@pytest.fixture()
def search_cache() -> AsyncMock:
    mock = AsyncMock()
    mock.get.return_value = None  # default: cache miss
    return mock


@pytest.fixture()
def backend(
    http_client: httpx.AsyncClient, search_cache: AsyncMock
) -> HttpxTorrentBackend:
    return HttpxTorrentBackend(
        api_url=API_URL + "/",
        http_client=http_client,
        add_timeout_seconds=5.0,
        search_cache=search_cache,
    )


# ---------------------------------------------------------------------------
# Backend JSON response fixtures
# ---------------------------------------------------------------------------

_SEARCH_RESPONSE = {
    "data": {
        "torrents": [
            {
                "Name": "Game.of.Thrones.S01E01.1080p.WEB-DL.AAC.mp4",
                "Magnet": "magnet:?xt=urn:btih:aaa",
                "Size": "1.4 GB",
                "Seeders": "50",
                "Score": 120,
                "Quality": "1080p",
                "AudioLanguage": "English",
            },
            {
                "title": "Game.of.Thrones.S01E01.720p.mkv",
                "magnetURI": "magnet:?xt=urn:btih:ccc",
                "sizeBytes": 734003200,
                "seeds": 12,
                "_scoreDetails": {"resolution": "720p", "source": "WEBRip"},
            },
        ]
    }
}

_ADD_P2P_RESPONSE = {
    "data": {
        "hash": "aaa",
        "name": "Game.of.Thrones.S01E01",
        "files": [
            {"name": "sample.mp4", "length": 10000},
            {"index": 1, "name": "Game.of.Thrones.S01E01.mp4", "size": 2000000},
        ],
        "selectedFileIndex": 1,
    }
}

_ADD_DEBRID_RESPONSE = {
    "data": {
        "hash": "aaa",
        "name": "Game.of.Thrones.S01E01",
        "files": [{"index": 0, "name": "Game.of.Thrones.S01E01.mp4", "size": 1}],
        "streamType": "debrid",
        "streamUrl": "https://cdn.debrid.test/dl/abc.mp4",
        "service": "RealDebrid",
        "subtitles": [
            {"url": "https://cdn.debrid.test/en.vtt", "language": "en"},
            {"language": "de"},
        ],
    }
}


# ---------------------------------------------------------------------------
# Record normalization
# ---------------------------------------------------------------------------


class TestCandidateFromRecord:
    def test_capitalized_keys(self) -> None:
        c = candidate_from_record(_SEARCH_RESPONSE["data"]["torrents"][0])
        assert c.name == "Game.of.Thrones.S01E01.1080p.WEB-DL.AAC.mp4"
        assert c.magnet_link == "magnet:?xt=urn:btih:aaa"
        assert c.size_bytes == int(1.4 * 1024**3)
        assert c.size_label == "1.4 GB"
        assert c.seeder_count == 50
        assert c.score == 120.0
        assert c.quality_label == "1080p"
        assert c.audio_language == "English"
        assert c.source_label is None

    def test_alternate_keys_and_score_details(self) -> None:
        c = candidate_from_record(_SEARCH_RESPONSE["data"]["torrents"][1])
        assert c.name == "Game.of.Thrones.S01E01.720p.mkv"
        assert c.magnet_link == "magnet:?xt=urn:btih:ccc"
        assert c.size_bytes == 734003200
        assert c.seeder_count == 12
        assert c.quality_label == "720p"
        assert c.source_label == "WEBRip"

    def test_unknown_labels_become_none(self) -> None:
        c = candidate_from_record({"name": "x", "Quality": "Unknown"})
        assert c.quality_label is None
        assert c.magnet_link == ""
        assert c.seeder_count == 0

    def test_garbled_numbers_tolerated(self) -> None:
        c = candidate_from_record(
            {"name": "x", "seeders": "inf", "size": float("inf"), "magnet": "m"}
        )
        assert c.seeder_count == 0
        assert c.size_bytes == 0


class TestStreamInfoFromPayload:
    def test_file_index_and_size_fallbacks(self) -> None:
        info = stream_info_from_payload(_ADD_P2P_RESPONSE["data"])
        assert info.files == (
            BackendFile(index=0, name="sample.mp4", size=10000),
            BackendFile(index=1, name="Game.of.Thrones.S01E01.mp4", size=2000000),
        )
        assert info.selected_file_index == 1
        assert info.is_debrid is False

    def test_debrid_subtitles_need_url(self) -> None:
        info = stream_info_from_payload(_ADD_DEBRID_RESPONSE["data"])
        assert info.is_debrid
        assert info.service == "RealDebrid"
        assert info.subtitles == (
            SubtitleTrack(url="https://cdn.debrid.test/en.vtt", language="en"),
        )


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


class TestSearch:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_results_parsed_and_cached(
        self, backend: HttpxTorrentBackend, search_cache: AsyncMock
    ) -> None:
        respx.get(_SEARCH_URL).respond(json=_SEARCH_RESPONSE)

        results = await backend.search("Game of Thrones S01E01")

        assert [c.magnet_link for c in results] == [
            "magnet:?xt=urn:btih:aaa",
            "magnet:?xt=urn:btih:ccc",
        ]
        search_cache.save.assert_awaited_once_with("Game of Thrones S01E01", results)

    @respx.mock
    @pytest.mark.asyncio()
    async def test_cache_hit_skips_request(
        self, backend: HttpxTorrentBackend, search_cache: AsyncMock
    ) -> None:
        cached = [TorrentCandidate(name="cached", magnet_link="magnet:?x")]
        search_cache.get.return_value = cached
        route = respx.get(_SEARCH_URL)

        assert await backend.search("Game of Thrones S01E01") == cached
        assert not route.called

    @respx.mock
    @pytest.mark.asyncio()
    async def test_empty_results_not_cached(
        self, backend: HttpxTorrentBackend, search_cache: AsyncMock
    ) -> None:
        respx.get(_SEARCH_URL).respond(json={"data": {"torrents": []}})

        assert await backend.search("Game of Thrones S01E01") == []
        search_cache.save.assert_not_awaited()

    @respx.mock
    @pytest.mark.asyncio()
    async def test_garbled_seeders_do_not_fail_search(
        self, backend: HttpxTorrentBackend
    ) -> None:
        respx.get(_SEARCH_URL).respond(
            json={
                "data": {
                    "torrents": [
                        {"name": "a", "magnet": "magnet:?xt=urn:btih:aaa", "seeders": "inf"},
                        {"name": "b", "magnet": "magnet:?xt=urn:btih:bbb", "seeders": 9},
                    ]
                }
            }
        )

        results = await backend.search("Game of Thrones S01E01")

        assert [c.seeder_count for c in results] == [0, 9]

    @respx.mock
    @pytest.mark.asyncio()
    async def test_http_error_returns_empty(
        self, backend: HttpxTorrentBackend
    ) -> None:
        respx.get(_SEARCH_URL).respond(status_code=500)
        assert await backend.search("Game of Thrones S01E01") == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_network_error_returns_empty(
        self, backend: HttpxTorrentBackend
    ) -> None:
        respx.get(_SEARCH_URL).mock(side_effect=httpx.ConnectError("down"))
        assert await backend.search("Game of Thrones S01E01") == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_invalid_json_returns_empty(
        self, backend: HttpxTorrentBackend
    ) -> None:
        respx.get(_SEARCH_URL).respond(text="<html>oops</html>")
        assert await backend.search("Game of Thrones S01E01") == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_unexpected_shape_returns_empty(
        self, backend: HttpxTorrentBackend
    ) -> None:
        respx.get(_SEARCH_URL).respond(json={"data": {"torrents": "nope"}})
        assert await backend.search("Game of Thrones S01E01") == []


# ---------------------------------------------------------------------------
# add_torrent
# ---------------------------------------------------------------------------


class TestAddTorrent:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_p2p(self, backend: HttpxTorrentBackend) -> None:
        route = respx.post(_ADD_URL).respond(json=_ADD_P2P_RESPONSE)

        info = await backend.add_torrent("magnet:?xt=urn:btih:aaa")

        assert info is not None
        assert info.hash == "aaa"
        assert len(info.files) == 2
        body = json.loads(route.calls.last.request.content)
        assert body == {"magnetURI": "magnet:?xt=urn:btih:aaa", "episodeInfo": None}

    @respx.mock
    @pytest.mark.asyncio()
    async def test_episode_hint_sent(self, backend: HttpxTorrentBackend) -> None:
        route = respx.post(_ADD_URL).respond(json=_ADD_DEBRID_RESPONSE)

        info = await backend.add_torrent("magnet:?xt=urn:btih:aaa", episode=5)

        assert info is not None
        assert info.is_debrid
        body = json.loads(route.calls.last.request.content)
        assert body["episodeInfo"] == {"episode": 5}

    @respx.mock
    @pytest.mark.asyncio()
    async def test_no_files_returns_none(self, backend: HttpxTorrentBackend) -> None:
        respx.post(_ADD_URL).respond(json={"data": {"hash": "aaa", "files": []}})
        assert await backend.add_torrent("magnet:?xt=urn:btih:aaa") is None

    @respx.mock
    @pytest.mark.asyncio()
    async def test_timeout_returns_none(self, backend: HttpxTorrentBackend) -> None:
        respx.post(_ADD_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        assert await backend.add_torrent("magnet:?xt=urn:btih:aaa") is None

    @respx.mock
    @pytest.mark.asyncio()
    async def test_http_error_returns_none(self, backend: HttpxTorrentBackend) -> None:
        respx.post(_ADD_URL).respond(status_code=502)
        assert await backend.add_torrent("magnet:?xt=urn:btih:aaa") is None

    @respx.mock
    @pytest.mark.asyncio()
    async def test_missing_data_returns_none(
        self, backend: HttpxTorrentBackend
    ) -> None:
        respx.post(_ADD_URL).respond(json={"error": "bad magnet"})
        assert await backend.add_torrent("magnet:?xt=urn:btih:aaa") is None


class TestFileStreamUrl:
    def test_route(self, backend: HttpxTorrentBackend) -> None:
        assert (
            backend.file_stream_url("aaa", 1)
            == f"{API_URL}/torrents/stream/aaa/files/1/stream"
        )
