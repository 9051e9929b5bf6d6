"""
Meta Constants

Enumerations shared by the registry, permission engine, service and routes.
"""

from enum import Enum


class EntityType(str, Enum):
    """Kinds of parent entity that can own metadata."""

    POST = "post"
    USER = "user"
    COMMENT = "comment"
    TERM = "term"


class ViewMode(str, Enum):
    """Request context controlling which keys and values are exposed."""

    VIEW = "view"
    EDIT = "edit"


class ValueType(str, Enum):
    """Declared type of a registered meta key."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class MetaAction(str, Enum):
    """Action being authorized against a meta key."""

    READ = "read"
    EDIT = "edit"
    DELETE = "delete"


# URL segment for each parent collection
PARENT_COLLECTIONS = {
    EntityType.POST: "posts",
    EntityType.USER: "users",
    EntityType.COMMENT: "comments",
    EntityType.TERM: "terms",
}

# Python types the API accepts as meta values on write
SCALAR_TYPES = (str, int, float, bool)

DEFAULT_META_DESCRIPTION = "Description of the meta key"
