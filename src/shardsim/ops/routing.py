"""
Entity routing.

Maps an entity id to the shard that owns it.  The policy is fixed two-way
parity over the first two shards:

    odd  entity id → shard 0
    even entity id → shard 1

Shards at index 2 and above can be provisioned but never receive routed
writes under this policy.
"""

from __future__ import annotations

from shardsim.core.registry import ShardDescriptor, ShardRegistry

ODD_SHARD_INDEX = 0
EVEN_SHARD_INDEX = 1


def shard_index_for(entity_id: int) -> int:
    """Registry index owning ``entity_id``. Depends only on parity."""
    return EVEN_SHARD_INDEX if entity_id % 2 == 0 else ODD_SHARD_INDEX


def route(entity_id: int, registry: ShardRegistry) -> ShardDescriptor:
    """Return the shard that owns ``entity_id``."""
    return registry[shard_index_for(entity_id)]


__all__ = ["route", "shard_index_for"]
