"""
Registered meta keys

build_default_registry() creates the MetaKeyRegistry used by the
application: the built-in keys below, then any keys listed in the JSON
file named by the META_KEYS_FILE setting. File entries replace built-in
definitions of the same key.

File format (a list of objects):

    [
        {
            "entity_type": "post",
            "key": "reading_time",
            "type": "number",
            "single": true,
            "show_in_rest": true,
            "description": "Estimated reading time in minutes",
            "object_subtype": null,
            "required_permission": null
        }
    ]
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from meta_api.constants.meta import EntityType, ValueType
from meta_api.permissions_config.permissions import ALL_PERMISSIONS
from meta_api.services.meta_registry import (
    AnyOf,
    MetaKeyDefinition,
    MetaKeyRegistry,
    OwnerOnly,
    RequirePermission,
)
from meta_api.utils.sanitize import sanitize_html, sanitize_plain_text, sanitize_url

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    return sanitize_plain_text(value) if isinstance(value, str) else value


def _rich(value: Any) -> Any:
    return sanitize_html(value) if isinstance(value, str) else value


def _url(value: Any) -> Any:
    return sanitize_url(value) if isinstance(value, str) else value


BUILTIN_KEYS: dict[EntityType, list[MetaKeyDefinition]] = {
    EntityType.POST: [
        MetaKeyDefinition("subtitle", description="Secondary headline", sanitize_rule=_plain),
        MetaKeyDefinition("excerpt", description="Short formatted summary", sanitize_rule=_rich),
        MetaKeyDefinition("color", description="Accent color", sanitize_rule=_plain),
        MetaKeyDefinition("reading_time", ValueType.NUMBER, description="Estimated reading time in minutes"),
        MetaKeyDefinition("featured", ValueType.BOOLEAN, description="Show on the front page"),
        MetaKeyDefinition("related_link", single=False, description="Related URLs", sanitize_rule=_url),
        MetaKeyDefinition(
            "reviewer_notes",
            description="Notes from the reviewing editor",
            sanitize_rule=_plain,
            authorization_rule=RequirePermission("edit_others_posts"),
        ),
        MetaKeyDefinition("_thumbnail_id", ValueType.NUMBER, description="Id of the featured image"),
        MetaKeyDefinition("_edit_lock", show_in_rest=False),
        MetaKeyDefinition("page_template", description="Template file for a page", object_subtype="page"),
    ],
    EntityType.USER: [
        MetaKeyDefinition("nickname", description="Public display name", sanitize_rule=_plain),
        MetaKeyDefinition("locale", description="Preferred language", sanitize_rule=_plain),
        MetaKeyDefinition("website", description="Personal website", sanitize_rule=_url),
        MetaKeyDefinition(
            "private_notes",
            description="Notes visible to the user and user managers",
            show_in_rest=False,
            authorization_rule=AnyOf(OwnerOnly(), RequirePermission("edit_users")),
        ),
        MetaKeyDefinition("_session_tokens", show_in_rest=False),
    ],
    EntityType.COMMENT: [
        MetaKeyDefinition("rating", ValueType.NUMBER, description="Star rating given with the comment"),
        MetaKeyDefinition(
            "moderator_flag",
            ValueType.BOOLEAN,
            description="Flagged for moderator attention",
            authorization_rule=RequirePermission("moderate_comments"),
        ),
    ],
    EntityType.TERM: [
        MetaKeyDefinition("color", description="Label color", sanitize_rule=_plain),
        MetaKeyDefinition("order", ValueType.NUMBER, description="Sort position", object_subtype="category"),
    ],
}


def _definition_from_dict(data: dict[str, Any]) -> MetaKeyDefinition:
    permission = data.get("required_permission")
    if permission and permission not in ALL_PERMISSIONS:
        raise ValueError(f"unknown permission {permission!r}")
    rule = RequirePermission(permission) if permission else None
    value_type = ValueType(data.get("type", ValueType.STRING.value))
    return MetaKeyDefinition(
        key=data["key"],
        value_type=value_type,
        single=bool(data.get("single", True)),
        show_in_rest=bool(data.get("show_in_rest", True)),
        description=data.get("description", ""),
        authorization_rule=rule,
        sanitize_rule=_plain if value_type == ValueType.STRING else None,
        object_subtype=data.get("object_subtype"),
        default=data.get("default"),
    )


def load_meta_keys_file(registry: MetaKeyRegistry, path: str) -> int:
    """Register every key listed in the JSON file at *path*; returns the count."""
    entries = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(entries, list):
        raise ValueError(f"{path}: expected a list of meta key objects")

    for data in entries:
        try:
            entity_type = EntityType(data["entity_type"])
            definition = _definition_from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            raise ValueError(f"{path}: invalid meta key entry {data!r}: {e}") from e
        registry.reregister(entity_type, definition)

    logger.info("Loaded %d meta keys from %s", len(entries), path)
    return len(entries)


def build_default_registry(meta_keys_file: Optional[str] = None) -> MetaKeyRegistry:
    """Create and freeze the application's meta key registry."""
    registry = MetaKeyRegistry()
    for entity_type, definitions in BUILTIN_KEYS.items():
        for definition in definitions:
            registry.register(entity_type, definition)

    if meta_keys_file:
        load_meta_keys_file(registry, meta_keys_file)

    registry.freeze()
    logger.info("Meta key registry ready with %d keys", len(registry))
    return registry
