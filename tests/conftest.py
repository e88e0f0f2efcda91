"""Shared test fixtures for the Magnetarr test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from magnetarr.domain.entities import (
    AnimeTitle,
    BackendFile,
    MediaDescriptor,
    MediaType,
    TorrentCandidate,
    TorrentStreamInfo,
)
from magnetarr.infrastructure.config.schema import EngineConfig

API_URL = "http://backend.test/api"

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def movie() -> MediaDescriptor:
    return MediaDescriptor(
        id="603",
        type=MediaType.MOVIE,
        title="The Matrix",
        release_year=1999,
    )


@pytest.fixture()
def show() -> MediaDescriptor:
    return MediaDescriptor(id="1399", type=MediaType.SHOW, title="Game of Thrones")


@pytest.fixture()
def anime() -> MediaDescriptor:
    return MediaDescriptor(
        id="176496",
        type=MediaType.ANIME,
        title=AnimeTitle(
            romaji="Ore dake Level Up na Ken Season 2",
            english="Solo Leveling Season 2 -Arise from the Shadow-",
        ),
        total_episodes=13,
    )


@pytest.fixture()
def got_candidates() -> list[TorrentCandidate]:
    return [
        TorrentCandidate(
            name="Game.of.Thrones.S01E01.1080p.WEB-DL.AAC.mp4",
            magnet_link="magnet:?xt=urn:btih:aaa",
            seeder_count=50,
        ),
        TorrentCandidate(
            name="Game.of.Thrones.S01E01.2160p.AV1.mkv",
            magnet_link="magnet:?xt=urn:btih:bbb",
            seeder_count=200,
        ),
    ]


@pytest.fixture()
def p2p_info() -> TorrentStreamInfo:
    return TorrentStreamInfo(
        hash="aaa",
        name="Game.of.Thrones.S01E01",
        files=(
            BackendFile(index=0, name="sample.mp4", size=10_000),
            BackendFile(index=1, name="Game.of.Thrones.S01E01.mp4", size=2_000_000),
            BackendFile(index=2, name="info.nfo", size=100),
        ),
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine_config() -> EngineConfig:
    """Engine config without the courtesy delay between attempts."""
    return EngineConfig(api_url=API_URL, attempt_delay_seconds=0.0)


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_backend() -> MagicMock:
    """Mock TorrentBackendPort (async search/add, sync URL builder)."""
    backend = MagicMock()
    backend.search = AsyncMock(return_value=[])
    backend.add_torrent = AsyncMock(return_value=None)
    backend.file_stream_url.side_effect = (
        lambda h, i: f"{API_URL}/torrents/stream/{h}/files/{i}/stream"
    )
    return backend


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache
