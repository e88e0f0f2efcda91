"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from magnetarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from magnetarr.application.use_cases.torrent_stream import TorrentStreamEngine
    from magnetarr.domain.ports import CachePort, TorrentBackendPort


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    http_client: httpx.AsyncClient

    # Domain Ports
    backend: TorrentBackendPort

    # Application Services
    engine: TorrentStreamEngine
