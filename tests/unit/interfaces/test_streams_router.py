"""Tests for the stream API router and app wiring."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from magnetarr.domain.entities import (
    AlternativeSource,
    DebridStream,
    MediaType,
    P2PStream,
    PlaybackSession,
    SubtitleTrack,
)
from magnetarr.infrastructure.config import AppConfig
from magnetarr.interfaces.api.streams.router import router
from magnetarr.interfaces.app import create_app

_SHOW = {"id": 1399, "type": "tv", "name": "Game of Thrones"}
_P2P = P2PStream(
    torrent_hash="aaa",
    selected_file_index=1,
    stream_url="http://backend.test/api/torrents/stream/aaa/files/1/stream",
)


def _make_engine(
    *,
    stream: object = None,
    session: PlaybackSession | None = None,
) -> MagicMock:
    engine = MagicMock()
    engine.start.return_value = "1399_1_1"
    engine.resolve = AsyncMock(return_value=stream)
    engine.switch_source = AsyncMock(return_value=stream)
    engine.session = session or PlaybackSession()
    return engine


def _make_app(engine: MagicMock) -> FastAPI:
    """Create a minimal FastAPI app with the streams router."""
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.state.engine = engine
    return app


def _alternative(name: str = "Game.of.Thrones.S01E01.1080p.mp4") -> AlternativeSource:
    return AlternativeSource(
        name=name,
        magnet_link="magnet:?xt=urn:btih:aaa",
        size="1.4 GB",
        seeders=50,
        score=800.0,
        quality="1080p",
        source="WEB-DL",
        language="English",
        audio_codec="AAC",
    )


class TestPrepareEndpoint:
    def test_returns_key_immediately(self) -> None:
        engine = _make_engine()
        client = TestClient(_make_app(engine))

        resp = client.post(
            "/api/v1/streams/prepare",
            json={"media": _SHOW, "season": 1, "episode": 1},
        )

        assert resp.status_code == 202
        assert resp.json() == {"key": "1399_1_1"}
        descriptor, season, episode = engine.start.call_args[0]
        assert descriptor.type == MediaType.SHOW
        assert (season, episode) == (1, 1)

    def test_negative_episode_rejected(self) -> None:
        client = TestClient(_make_app(_make_engine()))
        resp = client.post(
            "/api/v1/streams/prepare", json={"media": _SHOW, "episode": -1}
        )
        assert resp.status_code == 422


class TestResolveEndpoint:
    def test_p2p_stream(self) -> None:
        session = PlaybackSession(
            active_hash="aaa",
            active_file_index=1,
            current_source_name="Game.of.Thrones.S01E01.1080p.mp4",
        )
        client = TestClient(_make_app(_make_engine(stream=_P2P, session=session)))

        resp = client.post(
            "/api/v1/streams/resolve",
            json={"media": _SHOW, "season": 1, "episode": 1},
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "key": "1399_1_1",
            "stream_url": _P2P.stream_url,
            "is_debrid": False,
            "torrent_hash": "aaa",
            "file_index": 1,
            "subtitles": [],
            "current_source": "Game.of.Thrones.S01E01.1080p.mp4",
        }

    def test_debrid_stream_lists_subtitles(self) -> None:
        stream = DebridStream(
            stream_url="https://cdn.debrid.test/dl/abc.mp4",
            service_name="RealDebrid",
            subtitle_tracks=(
                SubtitleTrack(url="https://cdn.debrid.test/en.vtt", language="en"),
            ),
            torrent_hash="aaa",
        )
        session = PlaybackSession(active_hash="aaa", active_file_index=0, is_debrid=True)
        client = TestClient(_make_app(_make_engine(stream=stream, session=session)))

        data = client.post(
            "/api/v1/streams/resolve", json={"media": _SHOW, "season": 1, "episode": 1}
        ).json()

        assert data["is_debrid"] is True
        assert data["file_index"] == 0
        assert data["subtitles"] == [
            {
                "url": "https://cdn.debrid.test/en.vtt",
                "language": "en",
                "filename": "",
                "source": "Torrent",
            }
        ]

    def test_no_source(self) -> None:
        client = TestClient(_make_app(_make_engine()))

        data = client.post(
            "/api/v1/streams/resolve",
            json={"media": {"id": 603, "type": "movie", "title": "The Matrix"}},
        ).json()

        assert data["key"] == "603_movie_"
        assert data["stream_url"] is None
        assert data["subtitles"] == []


class TestAlternativesEndpoint:
    def test_lists_session_alternatives(self) -> None:
        session = PlaybackSession(
            alternatives=[_alternative(), _alternative("Second")],
            current_source_name="Second",
        )
        client = TestClient(_make_app(_make_engine(session=session)))

        data = client.get("/api/v1/streams/alternatives").json()

        assert data["current_source"] == "Second"
        assert [a["name"] for a in data["alternatives"]] == [
            "Game.of.Thrones.S01E01.1080p.mp4",
            "Second",
        ]
        assert data["alternatives"][0]["magnet"] == "magnet:?xt=urn:btih:aaa"
        assert data["alternatives"][0]["audio_codec"] == "AAC"


class TestSwitchEndpoint:
    def test_switch_by_index(self) -> None:
        engine = _make_engine(stream=_P2P)
        client = TestClient(_make_app(engine))

        data = client.post("/api/v1/streams/switch", json={"index": 2}).json()

        assert data["stream_url"] == _P2P.stream_url
        assert data["key"] is None
        engine.switch_source.assert_awaited_once_with(2, None, None)

    def test_switch_with_media(self) -> None:
        engine = _make_engine(stream=_P2P)
        client = TestClient(_make_app(engine))

        client.post(
            "/api/v1/streams/switch",
            json={"index": 0, "media": _SHOW, "episode": 3},
        )

        index, descriptor, episode = engine.switch_source.call_args[0]
        assert index == 0
        assert descriptor.id == "1399"
        assert episode == 3


class TestCreateApp:
    def _client(self) -> tuple[TestClient, MagicMock]:
        app = create_app(AppConfig())
        engine = _make_engine()
        app.state.engine = engine
        return TestClient(app), engine

    def test_healthz(self) -> None:
        client, _ = self._client()
        resp = client.get("/api/v1/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_invalid_media_is_400(self) -> None:
        client, engine = self._client()

        resp = client.post(
            "/api/v1/streams/resolve", json={"media": {"id": 1, "type": "podcast"}}
        )

        assert resp.status_code == 400
        assert "podcast" in resp.json()["detail"]
        engine.resolve.assert_not_awaited()

    def test_missing_id_is_400(self) -> None:
        client, _ = self._client()
        resp = client.post(
            "/api/v1/streams/prepare", json={"media": {"type": "movie"}}
        )
        assert resp.status_code == 400
