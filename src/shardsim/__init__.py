"""
shard-sim - horizontal sharding simulation.

Provisions a fixed set of SQLite shards, evolves one shard's schema, routes
synthetic entities across shards by id parity, and migrates one shard's
contents onto another through a dump-and-load snapshot.
"""

__version__ = "0.1.0"
