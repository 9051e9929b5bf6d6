"""Constants package for the meta API."""

from .auth import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from .meta import (
    PARENT_COLLECTIONS,
    SCALAR_TYPES,
    EntityType,
    MetaAction,
    ValueType,
    ViewMode,
)
from .roles import RoleName

__all__ = [
    # Role constants
    "RoleName",
    # Auth constants
    "SECRET_KEY",
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    # Meta constants
    "EntityType",
    "MetaAction",
    "ValueType",
    "ViewMode",
    "PARENT_COLLECTIONS",
    "SCALAR_TYPES",
]
