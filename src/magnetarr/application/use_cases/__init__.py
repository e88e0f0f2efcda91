from .stream_resolution import StreamResolutionUseCase
from .torrent_search import TorrentSearchUseCase
from .torrent_stream import TorrentStreamEngine, stream_cache_key

__all__ = [
    "StreamResolutionUseCase",
    "TorrentSearchUseCase",
    "TorrentStreamEngine",
    "stream_cache_key",
]
