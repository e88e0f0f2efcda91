"""Domain entities for torrent discovery, ranking, and stream resolution.

Pure value objects — no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from .media import MediaDescriptor


@dataclass(frozen=True)
class SearchQuery:
    """One search string sent to the torrent backend."""

    query_text: str
    is_fallback: bool = False
    fallback_rank: int = 0  # 0 = primary query, 1.. = position in fallback list


@dataclass
class TorrentCandidate:
    """A single search result from the torrent backend.

    ``score`` starts as the backend-provided score and is mutated by the
    scorer.  The label fields are optional enrichments from the backend.
    """

    name: str
    magnet_link: str
    size_bytes: int = 0
    seeder_count: int = 0
    score: float = 0.0
    quality_label: str | None = None
    source_label: str | None = None
    audio_language: str | None = None
    audio_codec: str | None = None
    size_label: str = ""  # raw size text as the backend sent it ("1.4 GB")


@dataclass(frozen=True)
class ReleaseTraits:
    """Facts parsed from a release name, used for filtering and scoring."""

    quality: str = "Unknown"  # "4K", "1080p", "720p", "480p"
    source: str = "Unknown"  # "BluRay", "WEB-DL", "CAM", ...
    is_av1: bool = False
    bad_audio: str | None = None  # "DTS", "AC3", "TRUEHD", "ATMOS", "FLAC"
    good_audio: bool = False  # explicit AAC or MP3
    browser_safe_audio: bool = False  # AAC, MP3, Opus or Vorbis
    is_mp4: bool = False
    is_mkv: bool = False
    is_h264: bool = False
    is_adult: bool = False


@dataclass(frozen=True)
class FallbackSearchResult:
    """Outcome of the primary search plus any fallback searches."""

    candidates: list[TorrentCandidate]
    used_fallback: bool
    query_used: str


@dataclass(frozen=True)
class BackendFile:
    """One file inside a torrent, as listed by the backend."""

    index: int
    name: str
    size: int = 0


@dataclass(frozen=True)
class SubtitleTrack:
    """Subtitle file bundled with a debrid stream."""

    url: str
    language: str = ""
    filename: str = ""
    source: str = "Torrent"


@dataclass(frozen=True)
class TorrentStreamInfo:
    """Normalized response of the backend add-torrent endpoint."""

    hash: str
    name: str = ""
    files: tuple[BackendFile, ...] = ()
    stream_type: str | None = None  # "debrid" or None (peer-to-peer)
    stream_url: str | None = None
    service: str | None = None
    subtitles: tuple[SubtitleTrack, ...] = ()
    selected_file_index: int | None = None

    @property
    def is_debrid(self) -> bool:
        return self.stream_type == "debrid" and bool(self.stream_url)


@dataclass(frozen=True)
class DebridStream:
    """Instantly playable HTTP URL from a debrid caching service."""

    stream_url: str
    service_name: str = ""
    subtitle_tracks: tuple[SubtitleTrack, ...] = ()
    torrent_hash: str = ""
    kind: Literal["debrid"] = "debrid"


@dataclass(frozen=True)
class P2PStream:
    """Stream proxied by the backend from a peer-to-peer download."""

    torrent_hash: str
    selected_file_index: int
    stream_url: str
    kind: Literal["p2p"] = "p2p"


ResolvedStream = Union[DebridStream, P2PStream]


@dataclass(frozen=True)
class AlternativeSource:
    """A ranked candidate exposed to the UI for manual source switching."""

    name: str
    magnet_link: str
    size: str
    seeders: int
    score: float
    quality: str
    source: str
    language: str
    audio_codec: str


@dataclass
class PlaybackSession:
    """Mutable per-session playback state shared with the UI layer."""

    active_hash: str | None = None
    active_file_index: int | None = None
    is_debrid: bool = False
    subtitles: list[SubtitleTrack] = field(default_factory=list)
    alternatives: list[AlternativeSource] = field(default_factory=list)
    current_source_name: str | None = None


@dataclass(frozen=True)
class MatchRequest:
    """What the user asked for, plus whether fallback search produced the list."""

    descriptor: MediaDescriptor
    season: int | None = None
    episode: int | None = None
    used_fallback: bool = False
