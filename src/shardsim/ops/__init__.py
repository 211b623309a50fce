"""
Operations layer for shard-sim.

One module per simulation stage, with consistent patterns:

- Functions take a ``ShardDescriptor`` (or the ``ShardRegistry``) explicitly
- Functions return ``OperationResult[T]``; a failed unit of work is logged
  and reported, never raised
- Aggregate operations keep going past failed units and fail with
  ``PARTIAL_FAILURE`` while still carrying their report

Usage::

    from shardsim.ops.provision import provision_shards
    from shardsim.ops.load import load_entities

    result = provision_shards(registry)
    assert result.success
"""

from shardsim.ops.result import OperationError, OperationResult

__all__ = ["OperationError", "OperationResult"]
