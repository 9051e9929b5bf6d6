from .meta import (
    MetaAuditEvent,
    MetaCreate,
    MetaDeleteResponse,
    MetaLinks,
    MetaResponse,
    MetaSchemaResponse,
    MetaUpdate,
)
from .token import Token

# Define the public API of this module
__all__ = [
    "MetaAuditEvent",
    "MetaCreate",
    "MetaDeleteResponse",
    "MetaLinks",
    "MetaResponse",
    "MetaSchemaResponse",
    "MetaUpdate",
    "Token",
]
