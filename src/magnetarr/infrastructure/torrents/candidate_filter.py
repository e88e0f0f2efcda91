"""Compatibility filtering and scoring of torrent candidates.

Playback happens through a plain browser <video> element with no
transcoding, so codec problems are total failures: AV1 and DTS/AC3/
TrueHD/Atmos/FLAC audio are hard rejects, MKV without browser-safe
audio is only deprioritized.

All thresholds and weights come from EngineConfig.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Protocol

import structlog

from magnetarr.domain.entities.media import MediaType
from magnetarr.domain.entities.torrent import (
    MatchRequest,
    ReleaseTraits,
    TorrentCandidate,
)
from magnetarr.infrastructure.torrents.release_parser import (
    adult_pattern,
    parse_release,
)
from magnetarr.infrastructure.torrents.titles import (
    clean_anime_title,
    get_display_title,
    title_words,
)

log = structlog.get_logger(__name__)


class _FilterConfig(Protocol):
    """Configuration values consumed by CandidateRanker."""

    min_seeders: int
    min_seeders_fallback: int
    title_match_threshold: float
    title_match_threshold_fallback: float
    mp4_bonus: int
    good_audio_bonus: int
    h264_bonus: int
    mkv_penalty_factor: float
    title_abbreviations: dict[str, str]
    adult_keywords: list[str]


# Range like "01-12" or "1~24".
_RANGE_RE = re.compile(r"(\d+)\s*[-~]\s*(\d+)")
_EPISODE_MARKER_RE = re.compile(r"s\d{1,2}e\d{1,3}")
_SEASON_MARKER_RE = re.compile(r"\bs(\d{1,2})(?!\d)")
_SEASON_WORD_RE = re.compile(r"\bseasons?[\s._-]*(\d{1,2})(?!\d)")
# "S01-S08", "S01-08", "Season 1-8", "Seasons 1 - 8"
_SEASON_SPAN_RE = re.compile(
    r"\b(?:s|seasons?[\s._-]*)(\d{1,2})\s*-\s*(?:s|seasons?[\s._-]*)?(\d{1,2})(?!\d)"
)


def seasons_covered(name: str) -> set[int]:
    """Season numbers a release name claims to contain (ranges expanded)."""
    lower = name.lower()
    covered = {int(s) for s in _SEASON_MARKER_RE.findall(lower)}
    covered.update(int(s) for s in _SEASON_WORD_RE.findall(lower))
    for start, end in _SEASON_SPAN_RE.findall(lower):
        first, last = sorted((int(start), int(end)))
        covered.update(range(first, last + 1))
    return covered


def title_match_ratio(name: str, words: list[str]) -> float:
    """Share of *words* that occur (as substrings) in the lowercased *name*."""
    lower = name.lower()
    matched = [w for w in words if w in lower]
    return len(matched) / max(len(words), 1)


def anime_episode_patterns(episode: int) -> list[str]:
    """Lowercase substrings that mark a single-episode anime release."""
    ep2 = f"{episode:02d}"
    ep3 = f"{episode:03d}"
    return [
        f"episode {episode}",
        f"episode {ep2}",
        f"episode {ep3}",
        f"e{ep2}",
        f"e{ep3}",
        f" {ep3}",
        f" {ep2}",
        f"-{ep3}",
        f".{ep3}.",
        f"[{ep2}]",
    ]


def is_batch_release(name: str) -> bool:
    """True when the name looks like a batch, season pack, or episode range."""
    lower = name.lower()
    return (
        "batch" in lower
        or "complete" in lower
        or "season" in lower
        or "s01" in lower
        or "s02" in lower
        or bool(_RANGE_RE.search(lower))
    )


def episode_in_range(name: str, episode: int) -> bool | None:
    """Whether *episode* lies in the first numeric range of *name*.

    Returns None when the name carries no range at all.
    """
    m = _RANGE_RE.search(name.lower())
    if not m:
        return None
    start, end = int(m.group(1)), int(m.group(2))
    return start <= episode <= end


def _show_matches_exact(name: str, season: int | None, episode: int | None) -> bool:
    """Direct (non-fallback) show search: exact SxxEyy or a season pack."""
    lower = name.lower()
    if season is None and episode is None:
        return True

    season_token = f"s{season:02d}" if season is not None else ""
    episode_token = f"e{episode:02d}" if episode is not None else ""
    if f"{season_token}{episode_token}" in lower:
        return True

    # A name with an SxxEyy marker that is not ours names another episode.
    if _EPISODE_MARKER_RE.search(lower):
        return False
    seasons_named = seasons_covered(lower)
    if season is not None and seasons_named and season not in seasons_named:
        return False
    return (
        "complete" in lower
        or "season" in lower
        or bool(season_token and season_token in lower)
    )


def _show_matches_fallback(name: str, season: int | None) -> bool:
    """Fallback show search: right season or a complete pack; episode comes later."""
    if season is None:
        return True
    lower = name.lower()
    return (
        f"s{season:02d}" in lower
        or f"season {season}" in lower
        or "complete" in lower
    )


def _anime_matches(name: str, episode: int | None, used_fallback: bool) -> bool:
    if episode is None:
        return True

    lower = name.lower()
    batch = is_batch_release(lower)

    if any(p in lower for p in anime_episode_patterns(episode)):
        return True
    if used_fallback:
        # Batch and single releases alike; the episode file is picked from
        # the file list during resolution.
        return True
    if batch:
        in_range = episode_in_range(lower, episode)
        return in_range is None or in_range
    return False


class CandidateRanker:
    """Filters candidates for playability and ranks the survivors.

    Score formula (on top of the backend score):
    +mp4_bonus for an ``.mp4`` container, +good_audio_bonus for explicit
    AAC/MP3, +h264_bonus for H.264/x264; then the running score is
    multiplied by mkv_penalty_factor for MKV without browser-safe audio.
    """

    def __init__(self, config: _FilterConfig) -> None:
        self._config = config
        self._adult_re = adult_pattern(config.adult_keywords)
        self._abbreviations: Mapping[str, str] = config.title_abbreviations

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def _match_words(self, request: MatchRequest) -> list[str]:
        title = get_display_title(request.descriptor)
        words = title_words(title)

        lower_title = title.lower()
        for full, abbr in self._abbreviations.items():
            if full.lower() in lower_title:
                words.append(abbr.lower())

        if request.used_fallback:
            for w in title_words(clean_anime_title(title)):
                if w not in words:
                    words.append(w)
        return words

    def _rejection_reason(
        self,
        candidate: TorrentCandidate,
        traits: ReleaseTraits,
        request: MatchRequest,
        words: list[str],
    ) -> str | None:
        cfg = self._config
        name = candidate.name

        min_seeders = (
            cfg.min_seeders_fallback if request.used_fallback else cfg.min_seeders
        )
        if candidate.seeder_count < min_seeders:
            return "too_few_seeders"

        media_type = request.descriptor.type
        if media_type == MediaType.SHOW:
            if request.used_fallback:
                if not _show_matches_fallback(name, request.season):
                    return "wrong_season"
            elif not _show_matches_exact(name, request.season, request.episode):
                return "wrong_episode"
        elif media_type == MediaType.ANIME:
            if not _anime_matches(name, request.episode, request.used_fallback):
                return "no_episode_match"

        threshold = (
            cfg.title_match_threshold_fallback
            if request.used_fallback
            else cfg.title_match_threshold
        )
        if title_match_ratio(name, words) < threshold:
            return "title_mismatch"

        if traits.is_adult:
            return "adult_content"
        if traits.is_av1:
            return "av1_unsupported"
        if traits.bad_audio:
            return f"{traits.bad_audio.lower()}_audio_unsupported"
        return None

    def filter(
        self,
        candidates: list[TorrentCandidate],
        request: MatchRequest,
    ) -> list[tuple[TorrentCandidate, ReleaseTraits]]:
        """Drop every candidate that cannot play or names other content."""
        words = self._match_words(request)
        kept: list[tuple[TorrentCandidate, ReleaseTraits]] = []

        for candidate in candidates:
            traits = parse_release(candidate.name, adult_re=self._adult_re)
            reason = self._rejection_reason(candidate, traits, request, words)
            if reason is None:
                kept.append((candidate, traits))
            else:
                log.debug(
                    "candidate_rejected",
                    candidate=candidate.name,
                    reason=reason,
                    seeders=candidate.seeder_count,
                )
        return kept

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(self, candidate: TorrentCandidate, traits: ReleaseTraits) -> float:
        """Final score for one surviving candidate."""
        cfg = self._config
        score = float(candidate.score or 0)

        if traits.is_mp4:
            score += cfg.mp4_bonus
        if traits.good_audio:
            score += cfg.good_audio_bonus
        if traits.is_h264:
            score += cfg.h264_bonus
        if traits.is_mkv and not traits.browser_safe_audio:
            score *= cfg.mkv_penalty_factor
        return score

    def filter_and_score(
        self,
        candidates: list[TorrentCandidate],
        request: MatchRequest,
    ) -> list[TorrentCandidate]:
        """Filter, score, and sort candidates (best first, stable on ties).

        If filtering itself blows up, the first three raw candidates are
        returned unscored so that playback can still be attempted.
        """
        try:
            survivors = self.filter(candidates, request)
        except Exception:
            log.error(
                "candidate_filter_failed",
                total=len(candidates),
                exc_info=True,
            )
            return list(candidates[:3])

        for candidate, traits in survivors:
            candidate.score = self.score(candidate, traits)

        ranked = [c for c, _ in survivors]
        ranked.sort(key=lambda c: c.score, reverse=True)

        log.info(
            "candidates_ranked",
            total=len(candidates),
            kept=len(ranked),
            used_fallback=request.used_fallback,
            best=ranked[0].name if ranked else None,
        )
        return ranked
