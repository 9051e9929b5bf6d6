"""
SchemaBuilder

Derives JSON-Schema documents from the meta key registry and assembles
the argument rules used to validate request payloads. The checks
themselves are done by pydantic; this module only decides which rule
applies to which argument.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from pydantic import StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter, ValidationError

from meta_api.constants.meta import EntityType, ViewMode
from meta_api.exceptions import ErrorCode, InvalidInputError
from meta_api.services.meta_registry import MetaKeyRegistry
from meta_api.utils.sanitize import sanitize_plain_text

logger = logging.getLogger(__name__)

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-04/schema#"

Operation = Literal["create", "update"]

# JSON-Schema type name -> python type checked by pydantic
_JSON_TYPES: dict[str, Any] = {
    "string": StrictStr,
    "number": Union[StrictInt, StrictFloat],
    "integer": StrictInt,
    "boolean": StrictBool,
    "array": list,
    "object": dict,
}


@dataclass
class ArgRule:
    """Validation rule for one request argument."""

    name: str
    type: str | list[str]
    description: str = ""
    required: bool = False
    default: Any = None
    enum: list[Any] | None = None

    def python_type(self) -> Any:
        types = self.type if isinstance(self.type, list) else [self.type]
        members = [_JSON_TYPES[t] for t in types]
        return members[0] if len(members) == 1 else Union[tuple(members)]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.required:
            data["required"] = True
        if self.default is not None:
            data["default"] = self.default
        if self.enum is not None:
            data["enum"] = self.enum
        return data


@dataclass
class _AdapterCache:
    adapters: dict[str, TypeAdapter] = field(default_factory=dict)

    def get(self, rule: ArgRule) -> TypeAdapter:
        cache_key = repr(rule.type)
        if cache_key not in self.adapters:
            self.adapters[cache_key] = TypeAdapter(rule.python_type())
        return self.adapters[cache_key]


class SchemaBuilder:
    def __init__(self, registry: MetaKeyRegistry) -> None:
        self.registry = registry
        self._adapters = _AdapterCache()

    # ── Schemas ───────────────────────────────────────────────────────────────

    def build_item_schema(self) -> dict[str, Any]:
        """Schema of one meta item as accepted and returned by the API."""
        return {
            "$schema": JSON_SCHEMA_DRAFT,
            "title": "meta",
            "type": "object",
            "properties": {
                "key": {
                    "description": "The key for the custom field.",
                    "type": "string",
                    "context": [ViewMode.VIEW.value, ViewMode.EDIT.value],
                    "required": True,
                },
                "value": {
                    "description": "The value of the custom field.",
                    "type": ["string", "number", "boolean"],
                    "context": [ViewMode.VIEW.value, ViewMode.EDIT.value],
                    "required": True,
                },
            },
        }

    def build_schema(self, entity_type: EntityType, object_subtype: str | None = None) -> dict[str, Any]:
        """Schema listing every registered key with its declared type."""
        properties: dict[str, Any] = {}
        for definition in self.registry.list_for(entity_type, object_subtype):
            description = sanitize_plain_text(definition.display_description)
            properties[definition.key] = {
                "id": definition.key,
                "type": "object",
                "description": description,
                "properties": {
                    "key": {"type": "string", "required": True},
                    "value": {"type": definition.value_type.value, "required": True},
                    "description": {"type": "string", "default": description},
                },
            }
        return {
            "$schema": JSON_SCHEMA_DRAFT,
            "title": f"{EntityType(entity_type).value}-meta",
            "type": "object",
            "properties": properties,
        }

    # ── Endpoint arguments ────────────────────────────────────────────────────

    def build_endpoint_args(self, schema: dict[str, Any], operation: Operation) -> dict[str, ArgRule]:
        """
        Turn a schema's properties into argument rules for *operation*.

        `required` and `default` are only carried over for create; an
        update never requires an argument nor injects a default.
        """
        creating = operation == "create"
        args: dict[str, ArgRule] = {}
        for name, prop in schema.get("properties", {}).items():
            if prop.get("readonly"):
                continue
            args[name] = ArgRule(
                name=name,
                type=prop.get("type", "string"),
                description=prop.get("description", ""),
                required=bool(prop.get("required", False)) if creating else False,
                default=prop.get("default") if creating else None,
                enum=prop.get("enum"),
            )
        return args

    def collection_params(self) -> dict[str, ArgRule]:
        return {
            "context": ArgRule(
                name="context",
                type="string",
                description="Scope under which the request is made; determines fields present in response.",
                default=ViewMode.VIEW.value,
                enum=[ViewMode.VIEW.value, ViewMode.EDIT.value],
            )
        }

    def validate_args(self, args: dict[str, ArgRule], payload: dict[str, Any]) -> dict[str, Any]:
        """
        Check *payload* against *args* and return the accepted arguments.

        Missing required arguments, type mismatches and values outside an
        enum raise InvalidInputError. Unknown payload fields are dropped.
        """
        accepted: dict[str, Any] = {}
        for name, rule in args.items():
            if name not in payload or payload[name] is None:
                if rule.required:
                    raise InvalidInputError(
                        f"Missing parameter: {name}",
                        self._error_code(name),
                        {"field": name},
                    )
                if rule.default is not None:
                    accepted[name] = rule.default
                continue

            value = payload[name]
            try:
                value = self._adapters.get(rule).validate_python(value)
            except ValidationError as e:
                raise InvalidInputError(
                    f"Invalid parameter: {name}",
                    self._error_code(name),
                    {"field": name, "expected": rule.type, "reason": e.errors()[0]["msg"]},
                ) from e

            if rule.enum is not None and value not in rule.enum:
                raise InvalidInputError(
                    f"{name} is not one of {', '.join(map(str, rule.enum))}",
                    self._error_code(name),
                    {"field": name, "enum": rule.enum},
                )
            accepted[name] = value
        return accepted

    @staticmethod
    def _error_code(name: str) -> ErrorCode:
        if name == "key":
            return ErrorCode.META_INVALID_KEY
        if name == "value":
            return ErrorCode.META_INVALID_VALUE
        return ErrorCode.META_INVALID_PARAMETERS
