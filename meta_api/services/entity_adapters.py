"""
Entity Adapters

An EntityAdapter gives the meta service everything it needs to know about
one kind of parent entity: how to load it, who owns it, which subtype it
has (post type / taxonomy) and whether a caller may read, edit or delete
it. One adapter per entity type; the service itself is the same for all.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from meta_api.constants.meta import EntityType
from meta_api.exceptions import ErrorCode, NotFoundError
from meta_api.models.comment import Comment, CommentStatus
from meta_api.models.post import Post, PostStatus
from meta_api.models.term import Term
from meta_api.models.user import User
from meta_api.permissions_config.permissions import user_has_permission

logger = logging.getLogger(__name__)


class EntityAdapter(ABC):
    """Lookup and capability checks for one parent entity type."""

    entity_type: EntityType
    model: type

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_parent_object(self, entity_id: int) -> Any:
        """Load the parent entity or raise NotFoundError."""
        entity = await self.db.get(self.model, entity_id)
        if entity is None:
            raise NotFoundError(
                f"Invalid {self.entity_type.value} id.",
                ErrorCode.META_PARENT_NOT_FOUND,
                {"entity_type": self.entity_type.value, "entity_id": entity_id},
            )
        return entity

    def object_subtype(self, entity: Any) -> str | None:
        """Subtype used to select subtype-specific meta keys."""
        return None

    @abstractmethod
    def owner_id(self, entity: Any) -> int | None:
        """Id of the user owning *entity*, if any."""

    @abstractmethod
    def check_read_permission(self, caller: User | None, entity: Any) -> bool: ...

    @abstractmethod
    def check_edit_permission(self, caller: User | None, entity: Any) -> bool: ...

    @abstractmethod
    def check_delete_permission(self, caller: User | None, entity: Any) -> bool: ...

    def _is_owner(self, caller: User | None, entity: Any) -> bool:
        return caller is not None and caller.id == self.owner_id(entity)


class PostAdapter(EntityAdapter):
    entity_type = EntityType.POST
    model = Post

    def object_subtype(self, entity: Post) -> str | None:
        return entity.post_type

    def owner_id(self, entity: Post) -> int | None:
        return entity.author_id

    def check_read_permission(self, caller: User | None, entity: Post) -> bool:
        if entity.status == PostStatus.PUBLISHED:
            return True
        if self._is_owner(caller, entity):
            return True
        if entity.status == PostStatus.PRIVATE:
            return user_has_permission(caller, "read_private_posts")
        return user_has_permission(caller, "edit_others_posts")

    def check_edit_permission(self, caller: User | None, entity: Post) -> bool:
        if self._is_owner(caller, entity) and user_has_permission(caller, "edit_posts"):
            return True
        return user_has_permission(caller, "edit_others_posts")

    def check_delete_permission(self, caller: User | None, entity: Post) -> bool:
        if self._is_owner(caller, entity) and user_has_permission(caller, "delete_posts"):
            return True
        return user_has_permission(caller, "delete_others_posts")


class UserAdapter(EntityAdapter):
    entity_type = EntityType.USER
    model = User

    def owner_id(self, entity: User) -> int | None:
        return entity.id

    def check_read_permission(self, caller: User | None, entity: User) -> bool:
        return caller is not None

    def check_edit_permission(self, caller: User | None, entity: User) -> bool:
        return self._is_owner(caller, entity) or user_has_permission(caller, "edit_users")

    def check_delete_permission(self, caller: User | None, entity: User) -> bool:
        return self.check_edit_permission(caller, entity)


class CommentAdapter(EntityAdapter):
    entity_type = EntityType.COMMENT
    model = Comment

    def owner_id(self, entity: Comment) -> int | None:
        return entity.user_id

    def check_read_permission(self, caller: User | None, entity: Comment) -> bool:
        if entity.status == CommentStatus.APPROVED:
            return True
        return self._is_owner(caller, entity) or user_has_permission(caller, "moderate_comments")

    def check_edit_permission(self, caller: User | None, entity: Comment) -> bool:
        return self._is_owner(caller, entity) or user_has_permission(caller, "moderate_comments")

    def check_delete_permission(self, caller: User | None, entity: Comment) -> bool:
        return self.check_edit_permission(caller, entity)


class TermAdapter(EntityAdapter):
    entity_type = EntityType.TERM
    model = Term

    def object_subtype(self, entity: Term) -> str | None:
        return entity.taxonomy

    def owner_id(self, entity: Term) -> int | None:
        return None

    def check_read_permission(self, caller: User | None, entity: Term) -> bool:
        return True

    def check_edit_permission(self, caller: User | None, entity: Term) -> bool:
        return user_has_permission(caller, "manage_terms")

    def check_delete_permission(self, caller: User | None, entity: Term) -> bool:
        return user_has_permission(caller, "manage_terms")


ADAPTERS: dict[EntityType, type[EntityAdapter]] = {
    EntityType.POST: PostAdapter,
    EntityType.USER: UserAdapter,
    EntityType.COMMENT: CommentAdapter,
    EntityType.TERM: TermAdapter,
}


def get_adapter(entity_type: EntityType, db: AsyncSession) -> EntityAdapter:
    """Return the adapter for *entity_type* bound to *db*."""
    return ADAPTERS[EntityType(entity_type)](db)
