"""
Shared pytest fixtures and configuration for shard-sim tests.

This module provides:
- Logging reset between tests (CLI tests point structlog at captured streams)
- Shard registries on pinned in-memory shards or temporary file shards
- A ``fetch`` helper for reading rows back out of a shard

Usage:
    def test_something(memory_registry, fetch):
        provision_shards(memory_registry)
        assert fetch(memory_registry[0], "SELECT COUNT(*) FROM users") == [(0,)]
"""

import uuid
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

from shardsim.core.connection import shard_connection
from shardsim.core.logging import clear_context
from shardsim.core.registry import ShardDescriptor, ShardRegistry
from shardsim.ops.provision import provision_shards

# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.path).relative_to(Path(__file__).parent)

        if "cli" in test_path.parts:
            item.add_marker(pytest.mark.cli)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "cli"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Logging Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Restore structlog defaults and drop bound context after each test."""
    yield
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Registries
# =============================================================================


def _memory_urls(count: int) -> list[str]:
    prefix = uuid.uuid4().hex[:8]
    return [f"memory://t{prefix}_{i}" for i in range(count)]


@pytest.fixture()
def memory_registry() -> Iterator[ShardRegistry]:
    """Three unprovisioned in-memory shards, unique to this test."""
    registry = ShardRegistry.from_urls(_memory_urls(3))
    yield registry
    registry.close()


@pytest.fixture()
def file_registry(tmp_path: Path) -> Iterator[ShardRegistry]:
    """Three unprovisioned file-backed shards under tmp_path."""
    urls = [f"sqlite:///{tmp_path / f'shard{i}.db'}" for i in range(3)]
    registry = ShardRegistry.from_urls(urls)
    yield registry
    registry.close()


@pytest.fixture()
def provisioned(memory_registry: ShardRegistry) -> ShardRegistry:
    """In-memory registry with the shard tables already created."""
    result = provision_shards(memory_registry)
    assert result.success
    return memory_registry


@pytest.fixture()
def artifact(tmp_path: Path) -> Path:
    """Snapshot artifact path inside tmp_path (not created)."""
    return tmp_path / "dump.jsonl"


# =============================================================================
# Helpers
# =============================================================================


def _fetch(shard: ShardDescriptor, sql: str, params: tuple = ()) -> list[tuple[Any, ...]]:
    with shard_connection(shard) as conn:
        conn.execute(sql, params)
        return [tuple(row) for row in conn.fetchall()]


@pytest.fixture()
def fetch() -> Callable[..., list[tuple[Any, ...]]]:
    """``fetch(shard, sql, params=())`` → rows as plain tuples."""
    return _fetch
