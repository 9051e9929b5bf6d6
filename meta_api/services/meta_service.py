"""
Meta Resource Service

MetaResourceService implements the list/get/create/update/delete
operations on the metadata of one parent entity type. It is the same class
for posts, users, comments and terms; everything entity specific comes
from the injected EntityAdapter, and everything key specific from the
MetaKeyRegistry.

Failures are raised as the typed exceptions of meta_api.exceptions and
mapped to HTTP responses by the registered exception handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from meta_api.constants.meta import PARENT_COLLECTIONS, EntityType, ViewMode
from meta_api.exceptions import (
    ErrorCode,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PolicyViolationError,
    StoreFailureError,
    UnsupportedError,
)
from meta_api.permissions_config.permissions import user_has_permission
from meta_api.plugins.hooks import (
    FILTER_META_PREPARE_RESPONSE,
    HOOK_META_DELETED,
    HOOK_META_INSERTED,
    HOOK_META_UPDATED,
)
from meta_api.plugins.registry import PluginRegistry
from meta_api.schemas.meta import MetaDeleteResponse, MetaLinks, MetaResponse
from meta_api.services.entity_adapters import EntityAdapter
from meta_api.services.meta_registry import MetaKeyDefinition, MetaKeyRegistry
from meta_api.services.meta_store import MetaEntry, MetaStore
from meta_api.services.permission_engine import PermissionEngine, is_empty_value, is_scalar_value
from meta_api.services.schema_builder import SchemaBuilder
from meta_api.utils.meta_values import canonical_string, coerce_input_value, prepare_output_value

logger = logging.getLogger(__name__)

# Permission needed to delete a key/value pair across every parent
DELETE_ALL_PERMISSION = "manage_meta"


@dataclass
class RequestContext:
    """Who is calling and in which view mode."""

    caller: Any = None
    view_mode: ViewMode = ViewMode.VIEW

    @property
    def user_id(self) -> int | None:
        return getattr(self.caller, "id", None)


class MetaResourceService:
    """Metadata operations for one parent entity type."""

    def __init__(
        self,
        entity_type: EntityType,
        registry: MetaKeyRegistry,
        store: MetaStore,
        adapter: EntityAdapter,
        engine: PermissionEngine,
        plugins: PluginRegistry,
        schema_builder: SchemaBuilder | None = None,
        base_url: str = "",
    ):
        self.entity_type = EntityType(entity_type)
        self.registry = registry
        self.store = store
        self.adapter = adapter
        self.engine = engine
        self.plugins = plugins
        self.schema_builder = schema_builder or SchemaBuilder(registry)
        self.base_url = base_url.rstrip("/")

    # ── Read ──────────────────────────────────────────────────────────────────

    async def list(self, entity_id: int, ctx: RequestContext) -> list[MetaResponse]:
        """
        Return every visible meta item of a parent, in registration order.

        Keys the caller may not read are skipped. In edit context a key
        whose authorization rule refuses the caller fails the whole
        request instead.
        """
        entity = await self._get_readable_parent(entity_id, ctx)
        subtype = self.adapter.object_subtype(entity)

        items = []
        for definition in self.registry.list_for(self.entity_type, subtype):
            entries = await self.store.list_entries(self.entity_type, entity_id, definition.key)
            stored = self._stored_value(definition, entries)
            if is_empty_value(stored):
                continue

            self._check_edit_context_rule(ctx, entity, definition)
            if not self.engine.can_read(ctx.caller, ctx.view_mode, entity, definition, stored):
                continue

            items.append(await self._key_response(entity_id, definition, entries, ctx))
        return items

    async def get(self, entity_id: int, key: str, ctx: RequestContext) -> MetaResponse:
        """Return the meta item stored under *key*."""
        entity = await self._get_readable_parent(entity_id, ctx)
        definition = self.registry.lookup(self.entity_type, key, self.adapter.object_subtype(entity))

        entries = await self.store.list_entries(self.entity_type, entity_id, definition.key)
        stored = self._stored_value(definition, entries)
        if is_empty_value(stored):
            raise self._not_visible(key)

        self._check_edit_context_rule(ctx, entity, definition)
        if not self.engine.can_read(ctx.caller, ctx.view_mode, entity, definition, stored):
            raise self._not_visible(key)

        return await self._key_response(entity_id, definition, entries, ctx)

    async def get_entry(self, entity_id: int, entry_id: int, ctx: RequestContext) -> MetaResponse:
        """Return one stored entry by its id."""
        entity = await self._get_readable_parent(entity_id, ctx)
        entry = await self._get_entry(entity_id, entry_id)

        definition = self.registry.find(self.entity_type, entry.key, self.adapter.object_subtype(entity))
        if definition is None:
            raise self._not_visible(entry.key)

        self._check_edit_context_rule(ctx, entity, definition)
        if not self.engine.can_read(ctx.caller, ctx.view_mode, entity, definition, entry.value):
            raise self._not_visible(entry.key)

        return await self._entry_response(entity_id, definition, entry, ctx)

    # ── Write ─────────────────────────────────────────────────────────────────

    async def create(self, entity_id: int, key: Any, value: Any, ctx: RequestContext) -> MetaResponse:
        """Add a meta entry to a parent and return it."""
        entity = await self.adapter.get_parent_object(entity_id)

        key = self._clean_key(key)
        definition = self.registry.find(self.entity_type, key, self.adapter.object_subtype(entity))
        if self.engine.is_protected(key, definition):
            raise PolicyViolationError(key)

        if not is_scalar_value(value):
            raise InvalidInputError("Invalid provided meta data for action.", ErrorCode.META_INVALID_VALUE, {"key": key})

        if definition is None:
            raise InvalidInputError("Meta key is not registered.", ErrorCode.META_INVALID_KEY, {"key": key})

        if not self.engine.can_write(ctx.caller, ViewMode.EDIT, entity, definition):
            raise ForbiddenError("Sorry, you are not allowed to edit this meta.", details={"key": key})

        value = self._prepare_input(definition, value)

        if definition.single and await self.store.list_entries(self.entity_type, entity_id, key):
            raise StoreFailureError(
                "Could not add meta.",
                ErrorCode.META_COULD_NOT_ADD,
                400,
                {"key": key, "reason": "single-valued key already has a value"},
            )

        entry_id = await self.store.add(self.entity_type, entity_id, key, value)
        if entry_id is None:
            raise StoreFailureError("Could not add meta.", ErrorCode.META_COULD_NOT_ADD, 400, {"key": key})

        entry = MetaEntry(entry_id, self.entity_type, entity_id, key, value)
        response = await self._entry_response(entity_id, definition, entry, ctx)
        await self._notify(HOOK_META_INSERTED, entity_id, response, ctx)
        return response

    async def update(
        self,
        entity_id: int,
        entry_id: int,
        ctx: RequestContext,
        key: Any = None,
        value: Any = None,
    ) -> MetaResponse:
        """
        Change the key and/or value of an entry.

        A request that would leave both unchanged returns the current
        state without writing or notifying.
        """
        entity = await self.adapter.get_parent_object(entity_id)
        current = await self._get_entry(entity_id, entry_id)

        if key is None and value is None:
            raise InvalidInputError("Invalid meta parameters.", ErrorCode.META_INVALID_PARAMETERS)

        new_key = self._clean_key(key) if key is not None else current.key
        new_value = value if value is not None else current.value

        if not is_scalar_value(current.value):
            raise InvalidInputError(
                "Invalid existing meta data for action.", ErrorCode.META_INVALID_VALUE, {"entry_id": entry_id}
            )
        if not is_scalar_value(new_value):
            raise InvalidInputError(
                "Invalid provided meta data for action.", ErrorCode.META_INVALID_VALUE, {"key": new_key}
            )

        subtype = self.adapter.object_subtype(entity)
        current_definition = self.registry.find(self.entity_type, current.key, subtype)
        new_definition = self.registry.find(self.entity_type, new_key, subtype)
        if self.engine.is_protected(current.key, current_definition):
            raise PolicyViolationError(current.key)
        if self.engine.is_protected(new_key, new_definition):
            raise PolicyViolationError(new_key)

        if current_definition is None:
            raise self._not_visible(current.key)
        if new_definition is None:
            raise InvalidInputError("Meta key is not registered.", ErrorCode.META_INVALID_KEY, {"key": new_key})

        for definition in (current_definition, new_definition):
            if not self.engine.can_write(ctx.caller, ViewMode.EDIT, entity, definition):
                raise ForbiddenError("Sorry, you are not allowed to edit this meta.", details={"key": definition.key})

        if (
            new_key != current.key
            and new_definition.single
            and await self.store.list_entries(self.entity_type, entity_id, new_key)
        ):
            raise StoreFailureError(
                "Could not update meta.",
                ErrorCode.META_COULD_NOT_UPDATE,
                400,
                {"key": new_key, "reason": "single-valued key already has a value"},
            )

        new_value = self._prepare_input(new_definition, new_value)

        if new_key == current.key and canonical_string(new_value) == canonical_string(current.value):
            logger.debug("Meta entry %d unchanged, skipping write", entry_id)
            return await self._entry_response(entity_id, current_definition, current, ctx)

        updated = await self.store.update_by_entry_id(
            self.entity_type,
            entry_id,
            new_value,
            key=new_key if new_key != current.key else None,
        )
        if not updated:
            raise StoreFailureError("Could not update meta.", ErrorCode.META_COULD_NOT_UPDATE, details={"entry_id": entry_id})

        refreshed = await self.store.get_by_entry_id(self.entity_type, entry_id)
        if refreshed is None:
            raise StoreFailureError("Could not update meta.", ErrorCode.META_COULD_NOT_UPDATE, details={"entry_id": entry_id})

        response = await self._entry_response(entity_id, new_definition, refreshed, ctx)
        await self._notify(
            HOOK_META_UPDATED,
            entity_id,
            response,
            ctx,
            previous={"key": current.key, "value": current.value},
        )
        return response

    async def delete(
        self,
        entity_id: int,
        entry_id: int,
        ctx: RequestContext,
        force: bool = False,
        delete_all: bool = False,
    ) -> MetaDeleteResponse:
        """
        Permanently remove an entry.

        With delete_all every entry of the entity type carrying the same
        key and value is removed, whichever parent it belongs to.
        """
        if not force:
            raise UnsupportedError()

        entity = await self.adapter.get_parent_object(entity_id)
        current = await self._get_entry(entity_id, entry_id)

        if not is_scalar_value(current.value):
            raise InvalidInputError(
                "Invalid existing meta data for action.", ErrorCode.META_INVALID_VALUE, {"entry_id": entry_id}
            )

        definition = self.registry.find(self.entity_type, current.key, self.adapter.object_subtype(entity))
        if self.engine.is_protected(current.key, definition):
            raise PolicyViolationError(current.key)
        if definition is None:
            raise self._not_visible(current.key)

        if not self.engine.can_delete(ctx.caller, ViewMode.EDIT, entity, definition):
            raise ForbiddenError("Sorry, you are not allowed to delete this meta.", details={"key": current.key})

        previous = await self._entry_response(entity_id, definition, current, ctx)

        if delete_all:
            if not user_has_permission(ctx.caller, DELETE_ALL_PERMISSION):
                raise ForbiddenError(
                    "Sorry, you are not allowed to delete this meta from every object.",
                    details={"required_permission": DELETE_ALL_PERMISSION},
                )
            count = await self.store.delete_by_key(self.entity_type, current.key, value=current.value)
            if count < 0:
                raise StoreFailureError("Could not delete meta.", ErrorCode.META_COULD_NOT_DELETE, details={"key": current.key})
            await self._notify(HOOK_META_DELETED, entity_id, previous, ctx, count=count)
            return MetaDeleteResponse(deleted=True, previous=previous, count=count)

        if not await self.store.delete_by_entry_id(self.entity_type, entry_id):
            raise StoreFailureError("Could not delete meta.", ErrorCode.META_COULD_NOT_DELETE, details={"entry_id": entry_id})

        await self._notify(HOOK_META_DELETED, entity_id, previous, ctx)
        return MetaDeleteResponse(deleted=True, previous=previous)

    # ── Schema ────────────────────────────────────────────────────────────────

    async def schema(self, entity_id: int | None = None) -> dict[str, Any]:
        """Schema document for this entity type, narrowed to a parent's subtype when given."""
        subtype = None
        if entity_id is not None:
            entity = await self.adapter.get_parent_object(entity_id)
            subtype = self.adapter.object_subtype(entity)

        item = self.schema_builder.build_item_schema()
        return {
            "item": item,
            "keys": self.schema_builder.build_schema(self.entity_type, subtype),
            "create_args": self._args_dict(item, "create"),
            "update_args": self._args_dict(item, "update"),
        }

    def create_args(self):
        return self.schema_builder.build_endpoint_args(self.schema_builder.build_item_schema(), "create")

    def update_args(self):
        return self.schema_builder.build_endpoint_args(self.schema_builder.build_item_schema(), "update")

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _get_readable_parent(self, entity_id: int, ctx: RequestContext) -> Any:
        entity = await self.adapter.get_parent_object(entity_id)
        if not self.adapter.check_read_permission(ctx.caller, entity):
            raise ForbiddenError(
                f"Sorry, you are not allowed to view the meta of this {self.entity_type.value}.",
                details={"entity_id": entity_id},
            )
        if ctx.view_mode == ViewMode.EDIT and not self.adapter.check_edit_permission(ctx.caller, entity):
            raise ForbiddenError(
                "Sorry, you are not allowed to view meta in edit context.",
                ErrorCode.META_FORBIDDEN_CONTEXT,
                {"entity_id": entity_id},
            )
        return entity

    def _check_edit_context_rule(self, ctx: RequestContext, entity: Any, definition: MetaKeyDefinition) -> None:
        if ctx.view_mode != ViewMode.EDIT:
            return
        if self.engine.rule_denies(ctx.caller, ctx.view_mode, entity, definition):
            raise ForbiddenError(
                "Sorry, you are not allowed to view this meta in edit context.",
                ErrorCode.META_FORBIDDEN_CONTEXT,
                {"key": definition.key},
            )

    async def _get_entry(self, entity_id: int, entry_id: int) -> MetaEntry:
        entry = await self.store.get_by_entry_id(self.entity_type, entry_id)
        if entry is None:
            raise NotFoundError("Invalid meta id.", ErrorCode.META_INVALID_ID, {"entry_id": entry_id})
        if entry.entity_id != entity_id:
            raise InvalidInputError(
                f"Meta does not belong to this {self.entity_type.value}.",
                ErrorCode.META_PARENT_MISMATCH,
                {"entry_id": entry_id, "entity_id": entity_id},
            )
        return entry

    @staticmethod
    def _clean_key(key: Any) -> str:
        if not isinstance(key, str) or not key.strip():
            raise InvalidInputError("Invalid meta key.", ErrorCode.META_INVALID_KEY)
        return key.strip()

    @staticmethod
    def _stored_value(definition: MetaKeyDefinition, entries: list[MetaEntry]) -> Any:
        if definition.single:
            return entries[0].value if entries else None
        return [entry.value for entry in entries]

    def _prepare_input(self, definition: MetaKeyDefinition, value: Any) -> Any:
        try:
            value = coerce_input_value(definition.value_type, value)
            if definition.sanitize_rule is not None:
                value = definition.sanitize_rule(value)
        except ValueError as e:
            raise InvalidInputError(
                f"Invalid value for {definition.key}.",
                ErrorCode.META_INVALID_VALUE,
                {"key": definition.key, "reason": str(e)},
            ) from e

        if not is_scalar_value(value):
            raise InvalidInputError(
                "Invalid provided meta data for action.", ErrorCode.META_INVALID_VALUE, {"key": definition.key}
            )
        return value

    def _not_visible(self, key: str) -> NotFoundError:
        return NotFoundError("This meta is not visible.", ErrorCode.META_NOT_VISIBLE, {"key": key})

    def _args_dict(self, schema: dict[str, Any], operation: str) -> dict[str, Any]:
        args = self.schema_builder.build_endpoint_args(schema, operation)
        return {name: rule.to_dict() for name, rule in args.items()}

    # ── Responses ─────────────────────────────────────────────────────────────

    def _collection_url(self, entity_id: int) -> str:
        return f"{self._parent_url(entity_id)}/meta"

    def _parent_url(self, entity_id: int) -> str:
        return f"{self.base_url}/{PARENT_COLLECTIONS[self.entity_type]}/{entity_id}"

    def entry_url(self, entity_id: int, entry_id: int) -> str:
        return f"{self._collection_url(entity_id)}/{entry_id}"

    def _links(self, entity_id: int, entry_id: int | None, key: str) -> MetaLinks:
        collection = self._collection_url(entity_id)
        own = f"{collection}/{entry_id}" if entry_id is not None else f"{collection}/keys/{key}"
        return MetaLinks(self=own, collection=collection, about=self._parent_url(entity_id))

    async def _key_response(
        self,
        entity_id: int,
        definition: MetaKeyDefinition,
        entries: list[MetaEntry],
        ctx: RequestContext,
    ) -> MetaResponse:
        if definition.single:
            return await self._entry_response(entity_id, definition, entries[0], ctx)

        values = [entry.value for entry in entries]
        response = MetaResponse(
            id=None,
            key=definition.key,
            value=prepare_output_value(definition.value_type, values, single=False),
            type=definition.value_type.value,
            description=definition.display_description,
            links=self._links(entity_id, None, definition.key),
        )
        return await self._filter_response(response, entity_id, ctx)

    async def _entry_response(
        self,
        entity_id: int,
        definition: MetaKeyDefinition,
        entry: MetaEntry,
        ctx: RequestContext,
    ) -> MetaResponse:
        response = MetaResponse(
            id=entry.entry_id,
            key=entry.key,
            value=prepare_output_value(definition.value_type, entry.value),
            type=definition.value_type.value,
            description=definition.display_description,
            links=self._links(entity_id, entry.entry_id, entry.key),
        )
        return await self._filter_response(response, entity_id, ctx)

    async def _filter_response(self, response: MetaResponse, entity_id: int, ctx: RequestContext) -> MetaResponse:
        filtered = await self.plugins.apply_filters(
            FILTER_META_PREPARE_RESPONSE,
            response,
            {"entity_type": self.entity_type.value, "entity_id": entity_id, "view_mode": ctx.view_mode.value},
        )
        if not isinstance(filtered, MetaResponse):
            logger.warning("Filter %s returned %r, keeping original", FILTER_META_PREPARE_RESPONSE, type(filtered))
            return response
        return filtered

    async def _notify(
        self,
        hook: str,
        entity_id: int,
        response: MetaResponse,
        ctx: RequestContext,
        **extra: Any,
    ) -> None:
        payload = {
            "entity_type": self.entity_type.value,
            "entity_id": entity_id,
            "meta": response.model_dump(mode="json"),
            "user_id": ctx.user_id,
            **extra,
        }
        await self.plugins.fire_hook(hook, payload)
