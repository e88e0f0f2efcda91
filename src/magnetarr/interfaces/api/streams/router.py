"""Stream API endpoints (prepare, resolve, alternatives, switch)."""

from __future__ import annotations

from typing import Any, Optional, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from magnetarr.application.use_cases.torrent_stream import stream_cache_key
from magnetarr.domain.entities.torrent import (
    AlternativeSource,
    DebridStream,
    PlaybackSession,
    ResolvedStream,
    SubtitleTrack,
)
from magnetarr.infrastructure.torrents.descriptor import descriptor_from_catalog
from magnetarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/streams", tags=["streams"])


class StreamRequest(BaseModel):
    """Media item (raw catalog payload) plus optional season/episode."""

    media: dict[str, Any]
    season: Optional[int] = Field(default=None, ge=0)
    episode: Optional[int] = Field(default=None, ge=0)


class SwitchRequest(BaseModel):
    """Alternative to switch to, by position in the alternatives list."""

    index: int = Field(ge=0)
    media: Optional[dict[str, Any]] = None
    episode: Optional[int] = Field(default=None, ge=0)


def _format_subtitle(track: SubtitleTrack) -> dict[str, str]:
    return {
        "url": track.url,
        "language": track.language,
        "filename": track.filename,
        "source": track.source,
    }


def _format_alternative(alt: AlternativeSource) -> dict[str, Any]:
    return {
        "name": alt.name,
        "magnet": alt.magnet_link,
        "size": alt.size,
        "seeders": alt.seeders,
        "score": alt.score,
        "quality": alt.quality,
        "source": alt.source,
        "language": alt.language,
        "audio_codec": alt.audio_codec,
    }


def _format_resolution(
    key: str | None,
    stream: ResolvedStream | None,
    session: PlaybackSession,
) -> dict[str, Any]:
    if stream is None:
        return {
            "key": key,
            "stream_url": None,
            "is_debrid": False,
            "torrent_hash": None,
            "file_index": None,
            "subtitles": [],
            "current_source": None,
        }

    is_debrid = isinstance(stream, DebridStream)
    return {
        "key": key,
        "stream_url": stream.stream_url,
        "is_debrid": is_debrid,
        "torrent_hash": stream.torrent_hash,
        "file_index": session.active_file_index,
        "subtitles": (
            [_format_subtitle(t) for t in stream.subtitle_tracks] if is_debrid else []
        ),
        "current_source": session.current_source_name,
    }


@router.post("/prepare", status_code=202)
async def prepare_stream(request: Request, body: StreamRequest) -> JSONResponse:
    """Start preparing a stream in the background (user landed on the item)."""
    state = cast(AppState, request.app.state)
    descriptor = descriptor_from_catalog(body.media)

    key = state.engine.start(descriptor, body.season, body.episode)
    log.info("stream_prepare_requested", key=key)
    return JSONResponse({"key": key}, status_code=202)


@router.post("/resolve")
async def resolve_stream(request: Request, body: StreamRequest) -> JSONResponse:
    """Resolve (or join the running preparation of) a playable stream.

    ``stream_url`` is null when no playable source was found.
    """
    state = cast(AppState, request.app.state)
    descriptor = descriptor_from_catalog(body.media)
    engine = state.engine

    stream = await engine.resolve(descriptor, body.season, body.episode)
    key = stream_cache_key(descriptor.id, body.season, body.episode)
    if stream is None:
        log.info("stream_resolve_no_source", key=key)

    return JSONResponse(_format_resolution(key, stream, engine.session))


@router.get("/alternatives")
async def list_alternatives(request: Request) -> JSONResponse:
    """Alternative sources of the last resolution, best first."""
    state = cast(AppState, request.app.state)
    session = state.engine.session
    return JSONResponse(
        {
            "current_source": session.current_source_name,
            "alternatives": [_format_alternative(a) for a in session.alternatives],
        }
    )


@router.post("/switch")
async def switch_source(request: Request, body: SwitchRequest) -> JSONResponse:
    """Re-resolve through one of the exposed alternatives."""
    state = cast(AppState, request.app.state)
    engine = state.engine

    descriptor = descriptor_from_catalog(body.media) if body.media else None
    stream = await engine.switch_source(body.index, descriptor, body.episode)
    if stream is None:
        log.info("stream_switch_no_source", index=body.index)

    return JSONResponse(_format_resolution(None, stream, engine.session))
