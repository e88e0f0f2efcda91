"""Tests for SearchResultCache."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

from magnetarr.domain.entities import TorrentCandidate
from magnetarr.infrastructure.persistence.search_result_cache import (
    SearchResultCache,
    _serialize,
)


def _make_candidate(
    *,
    name: str = "Game.of.Thrones.S01E01.1080p.mp4",
    magnet_link: str = "magnet:?xt=urn:btih:aaa",
    seeders: int = 50,
) -> TorrentCandidate:
    return TorrentCandidate(
        name=name,
        magnet_link=magnet_link,
        seeder_count=seeders,
        quality_label="1080p",
        size_label="1.4 GB",
    )


class TestSearchResultCache:
    async def test_save_stores_json_list(self, mock_cache: AsyncMock) -> None:
        repo = SearchResultCache(cache=mock_cache)
        await repo.save("Game of Thrones S01E01", [_make_candidate()])

        mock_cache.set.assert_awaited_once()
        key, value = mock_cache.set.call_args[0]
        assert key == "torrentsearch:Game of Thrones S01E01"
        restored = json.loads(value)
        assert restored[0]["magnet_link"] == "magnet:?xt=urn:btih:aaa"
        assert restored[0]["seeder_count"] == 50

    async def test_save_uses_configured_ttl(self, mock_cache: AsyncMock) -> None:
        repo = SearchResultCache(cache=mock_cache, ttl_seconds=120)
        await repo.save("q", [_make_candidate()])
        assert mock_cache.set.call_args[1]["ttl"] == 120

    async def test_empty_list_is_not_saved(self, mock_cache: AsyncMock) -> None:
        repo = SearchResultCache(cache=mock_cache)
        await repo.save("q", [])
        mock_cache.set.assert_not_awaited()

    async def test_key_is_exact_query_text(self, mock_cache: AsyncMock) -> None:
        repo = SearchResultCache(cache=mock_cache)
        await repo.get("Game of Thrones")
        await repo.get("game of thrones")
        keys = [c.args[0] for c in mock_cache.get.await_args_list]
        assert keys == ["torrentsearch:Game of Thrones", "torrentsearch:game of thrones"]

    async def test_get_returns_fresh_candidates(self, mock_cache: AsyncMock) -> None:
        original = _make_candidate()
        mock_cache.get = AsyncMock(return_value=_serialize([original]))
        repo = SearchResultCache(cache=mock_cache)

        result = await repo.get("Game of Thrones S01E01")

        assert result == [original]
        assert result is not None
        assert result[0] is not original

    async def test_get_returns_none_for_missing(self, mock_cache: AsyncMock) -> None:
        repo = SearchResultCache(cache=mock_cache)
        assert await repo.get("nothing") is None

    async def test_get_handles_corrupt_data(self, mock_cache: AsyncMock) -> None:
        mock_cache.get = AsyncMock(return_value="not-valid-json{{{")
        repo = SearchResultCache(cache=mock_cache)
        assert await repo.get("corrupt") is None

    async def test_get_handles_missing_fields(self, mock_cache: AsyncMock) -> None:
        mock_cache.get = AsyncMock(return_value=json.dumps([{"name": "x"}]))
        repo = SearchResultCache(cache=mock_cache)
        assert await repo.get("partial") is None
