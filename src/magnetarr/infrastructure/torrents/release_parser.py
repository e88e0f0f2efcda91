"""Release name parser: quality, source, and codec flags.

Pure functions over a release name string; the filter and scorer consume
the returned ReleaseTraits instead of matching names themselves.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from guessit import guessit

from magnetarr.domain.entities.torrent import ReleaseTraits

# --- Quality ---

_SCREEN_SIZE_TO_QUALITY: dict[str, str] = {
    "2160p": "4K",
    "1080p": "1080p",
    "1080i": "1080p",
    "720p": "720p",
    "480p": "480p",
}

_QUALITY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("2160p", "4K"),
    ("4k", "4K"),
    ("1080p", "1080p"),
    ("720p", "720p"),
    ("480p", "480p"),
)

# --- Source (most specific first) ---


def _has(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda lower: bool(compiled.search(lower))


def _has_unless(pattern: str, exclude: str) -> Callable[[str], bool]:
    # Bare two/three-letter tags collide with ordinary words ("bits", "etc").
    compiled = re.compile(pattern)
    return lambda lower: bool(compiled.search(lower)) and exclude not in lower


_SOURCE_RULES: tuple[tuple[Callable[[str], bool], str], ...] = (
    (_has(r"remux"), "REMUX"),
    (_has(r"blu-?ray"), "BluRay"),
    (_has(r"web-?dl"), "WEB-DL"),
    (_has(r"webrip"), "WEBRip"),
    (_has(r"web-?screener"), "WEBSCREENER"),
    (_has(r"hdtv"), "HDTV"),
    (_has(r"dvdrip"), "DVDRip"),
    (_has(r"\bhd-?ts\b"), "HDTS"),
    (_has(r"\bhd-?tc\b"), "HDTC"),
    (_has(r"\btelesync\b|\.ts\.|-ts-"), "TS"),
    (_has_unless(r"\bts\b", "bits"), "TS"),
    (_has(r"\btelecine\b|\.tc\.|-tc-"), "TC"),
    (_has_unless(r"\btc\b", "etc"), "TC"),
    (_has(r"\bcam\b|\bcamrip\b"), "CAM"),
    (_has(r"screener"), "SCREENER"),
    (_has_unless(r"\bscr\b", "screen"), "SCREENER"),
)

# --- Codecs and containers ---

_AV1_RE = re.compile(r"\b(av1|av\.1)\b", re.IGNORECASE)
# Audio codecs a plain <video> element cannot decode.
_BAD_AUDIO_RE = re.compile(r"\b(dts|ac3|truehd|atmos|flac)(?:\d\.\d)?\b", re.IGNORECASE)
_GOOD_AUDIO_RE = re.compile(r"\b(aac|mp3)(?:\d\.\d)?\b", re.IGNORECASE)
_SAFE_AUDIO_RE = re.compile(r"\b(aac|mp3|opus|vorbis)(?:\d\.\d)?\b", re.IGNORECASE)
_MP4_RE = re.compile(r"\.mp4\b", re.IGNORECASE)
_MKV_RE = re.compile(r"\.mkv\b", re.IGNORECASE)
_H264_RE = re.compile(r"\b(h\.?264|x264)\b", re.IGNORECASE)

DEFAULT_ADULT_KEYWORDS: tuple[str, ...] = (
    "xxx",
    "porn",
    "sex",
    "nsfw",
    "adult",
    "hentai",
)


def adult_pattern(keywords: Iterable[str]) -> re.Pattern[str]:
    """Whole-word, case-insensitive pattern for the given keywords."""
    alternation = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b({alternation})\b", re.IGNORECASE)


_DEFAULT_ADULT_RE = adult_pattern(DEFAULT_ADULT_KEYWORDS)


def parse_quality(name: str) -> str:
    """Resolution label: "4K", "1080p", "720p", "480p", or "Unknown"."""
    if not name:
        return "Unknown"
    screen_size = guessit(name).get("screen_size")
    if screen_size in _SCREEN_SIZE_TO_QUALITY:
        return _SCREEN_SIZE_TO_QUALITY[screen_size]
    lower = name.lower()
    for keyword, label in _QUALITY_KEYWORDS:
        if keyword in lower:
            return label
    return "Unknown"


def parse_source(name: str) -> str:
    """Release source label ("BluRay", "WEB-DL", "CAM", ...) or "Unknown"."""
    if not name:
        return "Unknown"
    lower = name.lower()
    for matches, label in _SOURCE_RULES:
        if matches(lower):
            return label
    return "Unknown"


def parse_release(
    name: str,
    *,
    adult_re: re.Pattern[str] = _DEFAULT_ADULT_RE,
) -> ReleaseTraits:
    """Parse everything the filter and scorer need from a release name."""
    if not name:
        return ReleaseTraits()

    bad_audio = _BAD_AUDIO_RE.search(name)
    return ReleaseTraits(
        quality=parse_quality(name),
        source=parse_source(name),
        is_av1=bool(_AV1_RE.search(name)),
        bad_audio=bad_audio.group(1).upper() if bad_audio else None,
        good_audio=bool(_GOOD_AUDIO_RE.search(name)),
        browser_safe_audio=bool(_SAFE_AUDIO_RE.search(name)),
        is_mp4=bool(_MP4_RE.search(name)),
        is_mkv=bool(_MKV_RE.search(name)),
        is_h264=bool(_H264_RE.search(name)),
        is_adult=bool(adult_re.search(name)),
    )
