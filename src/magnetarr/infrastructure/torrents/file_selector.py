"""Selection of the playable file inside a resolved torrent."""

from __future__ import annotations

import re

import structlog

from magnetarr.domain.entities.torrent import BackendFile

log = structlog.get_logger(__name__)

VIDEO_EXTENSIONS: tuple[str, ...] = (
    "mp4",
    "mkv",
    "avi",
    "mov",
    "wmv",
    "flv",
    "webm",
    "m4v",
)

_VIDEO_RE = re.compile(
    r"\.(" + "|".join(VIDEO_EXTENSIONS) + r")$",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"\d+")


def video_files(files: tuple[BackendFile, ...] | list[BackendFile]) -> list[BackendFile]:
    return [f for f in files if _VIDEO_RE.search(f.name)]


def _episode_patterns(episode: int) -> list[re.Pattern[str]]:
    ep2 = f"{episode:02d}"
    ep3 = f"{episode:03d}"
    sep_open = r"[\s\-_.\[(]"
    sep_close = r"[\s\-_.\])\[]"
    return [
        re.compile(rf"s\d{{1,2}}e0*{episode}(?:\D|$)", re.IGNORECASE),
        re.compile(rf"{sep_open}{ep3}{sep_close}", re.IGNORECASE),
        re.compile(rf"{sep_open}{ep2}{sep_close}", re.IGNORECASE),
        re.compile(rf"episode\s*{ep3}\D", re.IGNORECASE),
        re.compile(rf"episode\s*{ep2}\D", re.IGNORECASE),
        re.compile(rf"\be{ep2}\D", re.IGNORECASE),
        re.compile(rf"\be{ep3}\D", re.IGNORECASE),
    ]


def find_episode_file(files: list[BackendFile], episode: int) -> BackendFile | None:
    """Find the file for *episode* by name.

    A pattern hit only counts when the episode number is also one of the
    numeric tokens (1..1999) of the name.
    """
    patterns = _episode_patterns(episode)
    for f in files:
        lower = f.name.lower()
        if not any(p.search(lower) for p in patterns):
            continue
        numbers = {int(n) for n in _NUMBER_RE.findall(lower)}
        if episode in {n for n in numbers if 0 < n < 2000}:
            return f
    return None


def largest_file(files: list[BackendFile]) -> BackendFile:
    return max(files, key=lambda f: f.size)


def _server_selected(
    files: tuple[BackendFile, ...], selected_index: int
) -> BackendFile | None:
    for f in files:
        if f.index == selected_index:
            return f
    if 0 <= selected_index < len(files):
        return files[selected_index]
    return None


def select_file(
    files: tuple[BackendFile, ...],
    *,
    selected_index: int | None = None,
    anime_episode: int | None = None,
) -> BackendFile | None:
    """Pick the file to stream, or None when the torrent holds no video.

    Priority: server-selected index, client-side anime episode match,
    largest video file.
    """
    videos = video_files(files)
    if not videos:
        log.warning("no_video_files", files=[f.name for f in files[:10]])
        return None

    if selected_index is not None:
        chosen = _server_selected(files, selected_index)
        if chosen is not None:
            log.debug("file_server_selected", file=chosen.name, index=chosen.index)
            return chosen

    if anime_episode is not None:
        chosen = find_episode_file(videos, anime_episode)
        if chosen is not None:
            log.debug("file_episode_matched", file=chosen.name, episode=anime_episode)
            return chosen

    chosen = largest_file(videos)
    log.debug("file_largest_fallback", file=chosen.name, size=chosen.size)
    return chosen
