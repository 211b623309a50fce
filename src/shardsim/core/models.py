"""Row models for the three shard tables.

Each synthetic entity is one user with one post and one profile, all derived
from the entity id and always stored together on the same shard.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

POST_ID_FACTOR = 10

USER_NAME_TEMPLATE = "User{id}"
POST_CONTENT_TEMPLATE = "Post content for user {id}"
PROFILE_BIO_TEMPLATE = "Bio for user {id}"


@dataclass(frozen=True, slots=True)
class User:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Post:
    """A post. ``post_date`` only exists on shards that were evolved."""

    id: int
    user_id: int
    content: str
    post_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class Profile:
    user_id: int
    bio: str


@dataclass(frozen=True, slots=True)
class EntityRows:
    """The related rows written for one entity."""

    user: User
    post: Post
    profile: Profile

    @classmethod
    def for_entity(cls, entity_id: int) -> EntityRows:
        """Derive the rows for ``entity_id`` from the fixed naming templates.

        >>> rows = EntityRows.for_entity(7)
        >>> rows.user.name, rows.post.id, rows.profile.bio
        ('User7', 70, 'Bio for user 7')
        """
        return cls(
            user=User(id=entity_id, name=USER_NAME_TEMPLATE.format(id=entity_id)),
            post=Post(
                id=entity_id * POST_ID_FACTOR,
                user_id=entity_id,
                content=POST_CONTENT_TEMPLATE.format(id=entity_id),
            ),
            profile=Profile(user_id=entity_id, bio=PROFILE_BIO_TEMPLATE.format(id=entity_id)),
        )


def entity_rows(entity_id: int) -> EntityRows:
    return EntityRows.for_entity(entity_id)


__all__ = ["EntityRows", "Post", "Profile", "User", "POST_ID_FACTOR", "entity_rows"]
