"""Unit tests for the consumer-facing service."""

import functools

import pytest

from top2000_etl.metadata import ITunesCatalog, MetadataResolver
from top2000_etl.pipeline import build_leaderboard
from top2000_etl.service import LeaderboardService, open_service
from top2000_etl.snapshot_cache import SnapshotCache
from top2000_etl.stores import JsonFileStore, MemoryStore

from .fakes import HIT, FakeCatalog


async def _build(html_content):
    return build_leaderboard(html_content, partial_threshold=5)


@pytest.mark.asyncio
async def test_service_serves_leaderboard_and_metadata(sample_article) -> None:
    service = LeaderboardService(
        SnapshotCache(MemoryStore(), functools.partial(_build, sample_article)),
        MetadataResolver(FakeCatalog(HIT)),
    )

    snapshot = await service.get_leaderboard()
    top = snapshot.entries[0].record

    assert top.artist == "Queen"
    assert await service.resolve_metadata(top.artist, top.title) == HIT


@pytest.mark.asyncio
async def test_open_service_with_file_backend(tmp_path) -> None:
    async with open_service(backend="file", storage_dir=str(tmp_path)) as service:
        assert isinstance(service.resolver.catalog, ITunesCatalog)
        assert isinstance(service.resolver.durable_store, JsonFileStore)
        assert isinstance(service.snapshot_cache.store, JsonFileStore)


@pytest.mark.asyncio
async def test_open_service_rejects_unknown_backend() -> None:
    with pytest.raises(ValueError):
        async with open_service(backend="redis"):
            pass


@pytest.mark.asyncio
async def test_service_serves_edition_views(sample_article) -> None:
    service = LeaderboardService(
        SnapshotCache(MemoryStore(), functools.partial(_build, sample_article)),
        MetadataResolver(FakeCatalog()),
    )

    latest = await service.get_edition(2020)
    changes = await service.get_edition(2000, changes_only=True)
    debuts = await service.get_debuts()

    assert [entry.record.artist for entry in latest] == [
        "Queen",
        "Eagles",
        "Boudewijn de Groot",
        "Billy Joel",
    ]
    assert [entry.record.artist for entry in changes] == ["Boudewijn de Groot"]
    assert [entry.record.artist for entry in debuts] == ["Billy Joel"]
