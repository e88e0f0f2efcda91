"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import functools
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from magnetarr.application.use_cases import (
    StreamResolutionUseCase,
    TorrentSearchUseCase,
    TorrentStreamEngine,
)
from magnetarr.domain.ports.torrent_backend import TorrentBackendPort
from magnetarr.infrastructure.cache import DiskcacheAdapter
from magnetarr.infrastructure.config.schema import EngineConfig
from magnetarr.infrastructure.persistence.search_result_cache import (
    SearchResultCache,
)
from magnetarr.infrastructure.torrents.backend_client import HttpxTorrentBackend
from magnetarr.infrastructure.torrents.candidate_filter import CandidateRanker
from magnetarr.infrastructure.torrents.file_selector import select_file
from magnetarr.infrastructure.torrents.query_builder import (
    build_search_query,
    fallback_search_queries,
)
from magnetarr.infrastructure.torrents.release_parser import (
    parse_quality,
    parse_source,
)
from magnetarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def build_engine(config: EngineConfig, backend: TorrentBackendPort) -> TorrentStreamEngine:
    """Wire the search, ranking and resolution pieces into one engine."""
    search = TorrentSearchUseCase(
        backend=backend,
        query_fn=functools.partial(
            build_search_query, abbreviations=config.title_abbreviations
        ),
        fallback_queries_fn=fallback_search_queries,
    )
    resolver = StreamResolutionUseCase(
        backend=backend,
        config=config,
        select_file_fn=select_file,
        quality_fn=parse_quality,
        source_fn=parse_source,
    )
    return TorrentStreamEngine(
        search=search,
        ranker=CandidateRanker(config),
        resolver=resolver,
        config=config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache (search-result cache builds on it)
        2. HTTP Client
        3. Torrent backend client (uses HTTP client + cache)
        4. Stream engine (uses backend)
    """
    state = cast(AppState, app.state)
    config = state.config

    cache = DiskcacheAdapter(
        directory=config.cache.directory,
        ttl_seconds=config.cache.ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", directory=str(config.cache.directory))

    if config.environment == "dev":
        await cache.clear()
        log.debug("cache_cleared", environment="dev")

    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    search_cache = None
    if config.cache.search_ttl_seconds > 0:
        search_cache = SearchResultCache(
            cache=state.cache,
            ttl_seconds=config.cache.search_ttl_seconds,
        )

    state.backend = HttpxTorrentBackend(
        api_url=config.engine.api_url,
        http_client=state.http_client,
        add_timeout_seconds=config.engine.add_timeout_seconds,
        search_cache=search_cache,
    )
    log.info(
        "torrent_backend_initialized",
        api_url=config.engine.api_url,
        search_cache=search_cache is not None,
    )

    state.engine = build_engine(config.engine, state.backend)
    log.info("stream_engine_initialized")

    try:
        yield
    finally:
        await state.engine.aclose()
        log.info("stream_engine_closed")

        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
