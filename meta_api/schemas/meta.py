from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MetaCreate(BaseModel):
    # Loosely typed: key/value are checked against the endpoint args so
    # errors carry META_* codes instead of a generic 422
    key: Any = Field(None, description="The key for the custom field.")
    value: Any = Field(None, description="The value of the custom field.")

    model_config = ConfigDict(
        json_schema_extra={"example": {"key": "color", "value": "red"}},
    )


class MetaUpdate(BaseModel):
    key: Any = Field(None, description="New key for the custom field.")
    value: Any = Field(None, description="New value of the custom field.")

    model_config = ConfigDict(
        json_schema_extra={"example": {"value": "blue"}},
    )


class MetaLinks(BaseModel):
    self: str = Field(..., description="URL of this meta entry.")
    collection: str = Field(..., description="URL of the parent's meta collection.")
    about: str = Field(..., description="URL of the parent entity.")


class MetaResponse(BaseModel):
    id: Optional[int] = Field(None, description="Entry id; null for a multi-valued key.")
    key: str = Field(..., description="The key for the custom field.")
    value: Any = Field(None, description="The value of the custom field.")
    type: str = Field(..., description="Declared value type of the key.")
    description: str = Field("", description="Description of the meta key.")
    links: MetaLinks


class MetaDeleteResponse(BaseModel):
    deleted: bool = True
    previous: MetaResponse
    count: Optional[int] = Field(None, description="Entries removed by a delete_all request.")


class MetaSchemaResponse(BaseModel):
    item: dict[str, Any] = Field(..., description="Schema of a single meta item.")
    keys: dict[str, Any] = Field(..., description="Schema listing every registered key.")
    create_args: dict[str, Any]
    update_args: dict[str, Any]


class MetaAuditEvent(BaseModel):
    event: str
    timestamp: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    entry_id: Optional[int] = None
    key: Optional[str] = None
    user_id: Optional[int] = None
