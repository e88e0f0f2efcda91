from .media import AnimeTitle, MediaDescriptor, MediaType
from .torrent import (
    AlternativeSource,
    BackendFile,
    DebridStream,
    FallbackSearchResult,
    MatchRequest,
    P2PStream,
    PlaybackSession,
    ReleaseTraits,
    ResolvedStream,
    SearchQuery,
    SubtitleTrack,
    TorrentCandidate,
    TorrentStreamInfo,
)

__all__ = [
    "AlternativeSource",
    "AnimeTitle",
    "BackendFile",
    "DebridStream",
    "FallbackSearchResult",
    "MatchRequest",
    "MediaDescriptor",
    "MediaType",
    "P2PStream",
    "PlaybackSession",
    "ReleaseTraits",
    "ResolvedStream",
    "SearchQuery",
    "SubtitleTrack",
    "TorrentCandidate",
    "TorrentStreamInfo",
]
