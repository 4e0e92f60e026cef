"""Tests for IndexCoordinator orchestration."""

from __future__ import annotations

import math
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from vaultgraph.config.models import VaultGraphConfig, WatcherConfig
from vaultgraph.core.errors import ConfigError, EmbeddingError, QueryError
from vaultgraph.index.ops import IndexCoordinator

_B = [0.9 / math.hypot(0.9, 0.1), 0.1 / math.hypot(0.9, 0.1)]

NOTES = {
    "a.md": ("alpha note", [1.0, 0.0]),
    "b.md": ("beta note", _B),
    "c.md": ("gamma note", [0.0, 1.0]),
}


@pytest.fixture
def config() -> VaultGraphConfig:
    return VaultGraphConfig(watcher=WatcherConfig(enabled=False))


@pytest.fixture
def abc_vault(vault: Path, write_note: Callable[[str, str], Path]) -> Path:
    for rel, (text, _vec) in NOTES.items():
        write_note(rel, text)
    return vault


@pytest.fixture
def embedder(make_embedder: Callable[..., Any]) -> Any:
    table = {text: vec for text, vec in NOTES.values()}
    table["something like alpha"] = [1.0, 0.05]
    return make_embedder(dim=2, table=table)


@pytest_asyncio.fixture
async def coordinator(
    abc_vault: Path, config: VaultGraphConfig, embedder: Any
) -> AsyncGenerator[IndexCoordinator, None]:
    coord = IndexCoordinator(abc_vault, config, embedder=embedder)
    await coord.initialize()
    yield coord
    await coord.close()


class TestInitialize:
    """Startup flow."""

    @pytest.mark.asyncio
    async def test_empty_store_triggers_pipeline(
        self, abc_vault: Path, config: VaultGraphConfig, embedder: Any
    ) -> None:
        coord = IndexCoordinator(abc_vault, config, embedder=embedder)
        try:
            result = await coord.initialize()
        finally:
            await coord.close()

        assert result.pipeline is not None
        assert result.pipeline.processed == 3
        assert result.documents == 3
        assert result.blocks == 3
        assert result.watching is False

    @pytest.mark.asyncio
    async def test_unchanged_vault_embeds_nothing(
        self, abc_vault: Path, config: VaultGraphConfig, embedder: Any
    ) -> None:
        """A second startup over an unchanged vault only loads from the store."""
        first = IndexCoordinator(abc_vault, config, embedder=embedder)
        await first.initialize()
        await first.close()
        embedder.calls.clear()

        second = IndexCoordinator(abc_vault, config, embedder=embedder)
        try:
            result = await second.initialize()

            assert result.pipeline.processed == 0
            assert second.index.is_loaded
            assert len(second.index) == 3
            assert embedder.calls == []
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_changes_between_sessions_are_picked_up(
        self,
        abc_vault: Path,
        config: VaultGraphConfig,
        embedder: Any,
        write_note: Callable[[str, str], Path],
    ) -> None:
        """Notes added or removed while nothing was watching appear on next startup."""
        # Given
        first = IndexCoordinator(abc_vault, config, embedder=embedder)
        await first.initialize()
        await first.close()
        write_note("d.md", "delta note")
        (abc_vault / "c.md").unlink()

        # When
        second = IndexCoordinator(abc_vault, config, embedder=embedder)
        try:
            result = await second.initialize()

            # Then
            assert (result.pipeline.processed, result.pipeline.deleted) == (1, 1)
            assert sorted(second.index.sources) == ["a.md", "b.md", "d.md"]
            assert second.store.get_document("c.md") is None
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_force_reindex_reembeds(
        self, abc_vault: Path, config: VaultGraphConfig, embedder: Any
    ) -> None:
        first = IndexCoordinator(abc_vault, config, embedder=embedder)
        await first.initialize()
        await first.close()

        second = IndexCoordinator(abc_vault, config, embedder=embedder)
        try:
            result = await second.initialize(force_reindex=True)
        finally:
            await second.close()

        assert result.pipeline is not None
        assert result.pipeline.processed == 3

    @pytest.mark.asyncio
    async def test_store_lives_under_state_dir(
        self, abc_vault: Path, config: VaultGraphConfig, embedder: Any
    ) -> None:
        coord = IndexCoordinator(abc_vault, config, embedder=embedder)
        try:
            await coord.initialize()
        finally:
            await coord.close()

        assert (abc_vault / ".vaultgraph" / "embeddings.db").exists()


class TestQueries:
    """End-to-end similarity over three notes."""

    @pytest.mark.asyncio
    async def test_find_similar_ranks_and_excludes_source(
        self, coordinator: IndexCoordinator
    ) -> None:
        results = coordinator.find_similar("a.md", limit=10, threshold=0.0)

        assert [r.path for r in results] == ["b.md", "c.md"]
        assert results[0].similarity == pytest.approx(0.9939, abs=1e-3)
        assert results[1].similarity == pytest.approx(0.0, abs=1e-6)
        assert results[0].blocks == ("document",)

    @pytest.mark.asyncio
    async def test_threshold_filters(self, coordinator: IndexCoordinator) -> None:
        results = coordinator.find_similar("a.md", threshold=0.5)

        assert [r.path for r in results] == ["b.md"]

    @pytest.mark.asyncio
    async def test_unknown_note_raises(self, coordinator: IndexCoordinator) -> None:
        with pytest.raises(QueryError):
            coordinator.find_similar("missing.md")

    @pytest.mark.asyncio
    async def test_graph(self, coordinator: IndexCoordinator) -> None:
        root = coordinator.build_graph("a.md", depth=2, max_per_level=5, threshold=0.5)

        assert root is not None
        assert root.iter_paths() == ["a.md", "b.md"]

    @pytest.mark.asyncio
    async def test_graph_for_unknown_note_is_none(self, coordinator: IndexCoordinator) -> None:
        assert coordinator.build_graph("missing.md") is None

    @pytest.mark.asyncio
    async def test_search_embeds_query(
        self, coordinator: IndexCoordinator, embedder: Any
    ) -> None:
        results = coordinator.search("something like alpha", threshold=0.5)

        assert [r.path for r in results] == ["a.md", "b.md"]
        assert embedder.calls[-1] == ["something like alpha"]

    @pytest.mark.asyncio
    async def test_search_embedding_failure_propagates(
        self, coordinator: IndexCoordinator, embedder: Any
    ) -> None:
        embedder.fail_on = "boom"

        with pytest.raises(EmbeddingError):
            coordinator.search("boom")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "kwargs"),
        [
            ("find_similar", {"path": "a.md", "limit": 0}),
            ("find_similar", {"path": "a.md", "threshold": 1.5}),
            ("find_similar", {"path": ""}),
            ("search", {"query": "", "limit": 5}),
            ("build_graph", {"path": "a.md", "depth": 0}),
            ("build_graph", {"path": "a.md", "max_per_level": 100}),
        ],
    )
    async def test_out_of_range_parameters_rejected(
        self, coordinator: IndexCoordinator, method: str, kwargs: dict[str, Any]
    ) -> None:
        with pytest.raises(ConfigError):
            getattr(coordinator, method)(**kwargs)

    @pytest.mark.asyncio
    async def test_reindex_picks_up_new_note(
        self,
        coordinator: IndexCoordinator,
        write_note: Callable[[str, str], Path],
        embedder: Any,
    ) -> None:
        embedder.table["delta note"] = [0.95, 0.05]
        write_note("d.md", "delta note")

        stats = coordinator.reindex()

        assert stats.processed == 1
        assert [r.path for r in coordinator.find_similar("a.md", threshold=0.5)] == [
            "d.md",
            "b.md",
        ]


class TestStatus:
    """Status reporting."""

    @pytest.mark.asyncio
    async def test_status_counts(self, coordinator: IndexCoordinator) -> None:
        status = coordinator.status()

        assert status.documents == 3
        assert status.blocks == 3
        assert status.index_loaded is True
        assert status.indexed_in_memory == 3
        assert status.watching is False
        assert status.model == "fake-embed"
        # FakeEmbedder has no health check
        assert status.embedding_reachable is None
        assert status.to_dict()["documents"] == 3

    @pytest.mark.asyncio
    async def test_status_before_initialize(
        self, abc_vault: Path, config: VaultGraphConfig, embedder: Any
    ) -> None:
        coord = IndexCoordinator(abc_vault, config, embedder=embedder)
        try:
            status = coord.status(check_embedding=False)
        finally:
            await coord.close()

        assert status.documents == 0
        assert status.index_loaded is False
