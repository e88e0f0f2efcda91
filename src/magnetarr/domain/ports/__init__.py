from .cache import CachePort
from .torrent_backend import TorrentBackendPort

__all__ = ["CachePort", "TorrentBackendPort"]
