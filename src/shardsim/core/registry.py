"""Shard registry — the fixed, ordered set of shard descriptors.

The registry is built once from configuration and handed to every stage.
Nothing reads shard endpoints from module-level state.

Usage::

    from shardsim.core.registry import ShardRegistry

    with ShardRegistry.from_urls(["memory://insta1", "memory://insta2"]) as registry:
        first = registry[0]
        print(first.name, first.endpoint)

In-memory endpoints only live while some connection to them is open, so the
registry pins each one with an idle anchor connection until :meth:`close`.
Operations never use the anchor; they open their own connection.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from shardsim.core.connection import display_name, pin_endpoint, validate_endpoint
from shardsim.core.errors import ConfigError, ShardSimError
from shardsim.core.logging import get_logger

if TYPE_CHECKING:
    from shardsim.core.settings import ShardSimSettings

logger = get_logger(__name__)

# Migration needs a source and a distinct target.
MIN_SHARDS = 2


@dataclass(frozen=True, slots=True)
class ShardDescriptor:
    """Address and credentials of one shard.

    Attributes:
        index: Ordinal position in the registry.
        endpoint: Connection URL (``memory://name``, ``sqlite:///path``, or a path).
        user: Credential user name.
        password: Credential secret. Excluded from ``repr``.
    """

    index: int
    endpoint: str
    user: str = "sa"
    password: str = field(default="", repr=False)

    @property
    def name(self) -> str:
        """Short human-readable shard name used in logs."""
        return display_name(self.endpoint)


class ShardRegistry:
    """Immutable, ordered collection of :class:`ShardDescriptor`.

    Raises:
        ConfigError: fewer than ``min_shards`` descriptors, indices that do
            not match positions, the same endpoint listed twice,
            or an endpoint that names no database.
    """

    def __init__(
        self,
        descriptors: Sequence[ShardDescriptor],
        *,
        min_shards: int = MIN_SHARDS,
    ) -> None:
        shards = tuple(descriptors)
        if len(shards) < min_shards:
            raise ConfigError(
                f"Shard registry needs at least {min_shards} shards, got {len(shards)}"
            )

        seen: set[str] = set()
        for position, shard in enumerate(shards):
            try:
                validate_endpoint(shard.endpoint)
            except ConfigError as exc:
                raise exc.with_context(shard=shard.name, shard_index=position)
            if shard.index != position:
                raise ConfigError(
                    f"Shard at position {position} declares index {shard.index}"
                ).with_context(shard=shard.name, shard_index=shard.index)
            if shard.endpoint in seen:
                raise ConfigError(
                    f"Endpoint listed more than once: {shard.endpoint}"
                ).with_context(shard=shard.name, shard_index=shard.index)
            seen.add(shard.endpoint)

        self._shards = shards
        self._anchors: list[Any] = []
        try:
            for shard in shards:
                anchor = pin_endpoint(shard.endpoint)
                if anchor is not None:
                    self._anchors.append(anchor)
        except ShardSimError:
            self.close()
            raise

        logger.debug("registry.ready", shards=len(shards), pinned=len(self._anchors))

    # -- construction helpers ---------------------------------------------

    @classmethod
    def from_urls(
        cls,
        urls: Sequence[str],
        *,
        user: str = "sa",
        password: str = "",
        min_shards: int = MIN_SHARDS,
    ) -> ShardRegistry:
        """Build a registry with one descriptor per URL, sharing one credential pair."""
        descriptors = [
            ShardDescriptor(index=i, endpoint=url, user=user, password=password)
            for i, url in enumerate(urls)
        ]
        return cls(descriptors, min_shards=min_shards)

    @classmethod
    def from_settings(cls, settings: ShardSimSettings) -> ShardRegistry:
        """Build a registry from :class:`~shardsim.core.settings.ShardSimSettings`."""
        return cls.from_urls(
            settings.shard_urls,
            user=settings.shard_user,
            password=settings.shard_password.get_secret_value(),
        )

    # -- sequence protocol ------------------------------------------------

    def __len__(self) -> int:
        return len(self._shards)

    def __iter__(self) -> Iterator[ShardDescriptor]:
        return iter(self._shards)

    def __getitem__(self, index: int) -> ShardDescriptor:
        if not 0 <= index < len(self._shards):
            raise IndexError(f"Shard index {index} out of range 0..{len(self._shards) - 1}")
        return self._shards[index]

    # -- lifecycle --------------------------------------------------------

    def close(self) -> None:
        """Release in-memory anchors. In-memory shards are discarded."""
        for anchor in self._anchors:
            anchor.close()
        self._anchors.clear()

    def __enter__(self) -> ShardRegistry:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        names = ", ".join(shard.name for shard in self._shards)
        return f"ShardRegistry([{names}])"


__all__ = ["MIN_SHARDS", "ShardDescriptor", "ShardRegistry"]
