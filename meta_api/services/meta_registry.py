"""
Meta Key Registry

MetaKeyRegistry holds, per entity type, the registered meta keys and their
declared type, visibility and authorization rules. Keys that are not
registered are invisible to the API whatever is stored for them.

The registry is an explicitly constructed object handed to each
MetaResourceService; it is populated at startup (see meta_api.meta_keys)
and only read afterwards.

Authorization rules are typed AuthorizationRule instances rather than
arbitrary callables:

    registry.register(
        EntityType.POST,
        MetaKeyDefinition(
            key="reviewer_notes",
            value_type=ValueType.STRING,
            authorization_rule=RequirePermission("edit_others_posts"),
        ),
    )
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from meta_api.constants.meta import DEFAULT_META_DESCRIPTION, EntityType, MetaAction, ValueType, ViewMode
from meta_api.exceptions import DuplicateKeyError, ErrorCode, NotFoundError
from meta_api.permissions_config.permissions import user_has_permission

logger = logging.getLogger(__name__)


# ── Authorization rules ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class AuthorizationContext:
    """Everything a rule may look at when deciding an access."""

    caller: Any
    entity_type: EntityType
    entity: Any
    definition: MetaKeyDefinition
    action: MetaAction
    view_mode: ViewMode = ViewMode.VIEW
    owner_id: int | None = None


class AuthorizationRule(ABC):
    """A per-key access rule. Its decision is authoritative when present."""

    @abstractmethod
    def evaluate(self, context: AuthorizationContext) -> bool:
        """Return True to allow the access described by *context*."""


class AllowAll(AuthorizationRule):
    def evaluate(self, context: AuthorizationContext) -> bool:
        return True


class DenyAll(AuthorizationRule):
    def evaluate(self, context: AuthorizationContext) -> bool:
        return False


class RequirePermission(AuthorizationRule):
    """Allow callers whose role holds *permission*."""

    def __init__(self, permission: str) -> None:
        self.permission = permission

    def evaluate(self, context: AuthorizationContext) -> bool:
        return user_has_permission(context.caller, self.permission)

    def __repr__(self) -> str:
        return f"RequirePermission({self.permission!r})"


class OwnerOnly(AuthorizationRule):
    """Allow only the caller who owns the parent entity."""

    def evaluate(self, context: AuthorizationContext) -> bool:
        caller_id = getattr(context.caller, "id", None)
        return caller_id is not None and caller_id == context.owner_id


class AnyOf(AuthorizationRule):
    def __init__(self, *rules: AuthorizationRule) -> None:
        self.rules = rules

    def evaluate(self, context: AuthorizationContext) -> bool:
        return any(rule.evaluate(context) for rule in self.rules)


class AllOf(AuthorizationRule):
    def __init__(self, *rules: AuthorizationRule) -> None:
        self.rules = rules

    def evaluate(self, context: AuthorizationContext) -> bool:
        return all(rule.evaluate(context) for rule in self.rules)


# ── Definitions ───────────────────────────────────────────────────────────────


@dataclass
class MetaKeyDefinition:
    """
    Declarative description of one registered meta key.

    Attributes:
        key:                Meta key, unique per entity type (and subtype).
        value_type:         Declared type, used for schema and coercion.
        single:             False when a parent may hold several values.
        show_in_rest:       Expose in view context; opts protected keys in.
        description:        Human-readable description for the schema.
        authorization_rule: Optional rule whose decision is authoritative.
        sanitize_rule:      Optional function applied to incoming values.
        object_subtype:     Restrict to one post type / taxonomy, or None.
        default:            Default value advertised for create.
    """

    key: str
    value_type: ValueType = ValueType.STRING
    single: bool = True
    show_in_rest: bool = True
    description: str = ""
    authorization_rule: AuthorizationRule | None = None
    sanitize_rule: Callable[[Any], Any] | None = None
    object_subtype: str | None = None
    default: Any = None

    @property
    def display_description(self) -> str:
        return self.description or DEFAULT_META_DESCRIPTION


# ── Registry ──────────────────────────────────────────────────────────────────


class MetaKeyRegistry:
    """
    In-memory table of registered meta keys.

    Definitions are stored per entity type in registration order. The same
    key may be registered once without a subtype and once per subtype.
    """

    def __init__(self) -> None:
        self._keys: dict[EntityType, dict[tuple[str | None, str], MetaKeyDefinition]] = {}
        self._frozen = False

    # ── Registration ──────────────────────────────────────────────────────────

    def register(self, entity_type: EntityType, definition: MetaKeyDefinition) -> MetaKeyDefinition:
        """Register *definition*; raises DuplicateKeyError if already present."""
        entity_type = EntityType(entity_type)
        table = self._table(entity_type)
        slot = (definition.object_subtype, definition.key)
        if slot in table:
            raise DuplicateKeyError(entity_type.value, definition.key)
        table[slot] = definition
        logger.debug("Registered meta key %s.%s", entity_type.value, definition.key)
        return definition

    def reregister(self, entity_type: EntityType, definition: MetaKeyDefinition) -> MetaKeyDefinition:
        """Register *definition*, replacing any existing one. Last writer wins."""
        entity_type = EntityType(entity_type)
        table = self._table(entity_type)
        slot = (definition.object_subtype, definition.key)
        if slot in table:
            logger.warning(
                "Meta key %s.%s re-registered, previous definition replaced",
                entity_type.value,
                definition.key,
            )
        table[slot] = definition
        return definition

    def freeze(self) -> None:
        """Mark the end of initialization; later writes are logged."""
        self._frozen = True

    # ── Lookup ────────────────────────────────────────────────────────────────

    def find(
        self, entity_type: EntityType, key: str, object_subtype: str | None = None
    ) -> MetaKeyDefinition | None:
        """Return the definition for *key*, or None. Subtype entries win."""
        table = self._keys.get(EntityType(entity_type), {})
        if object_subtype is not None and (object_subtype, key) in table:
            return table[(object_subtype, key)]
        return table.get((None, key))

    def lookup(
        self, entity_type: EntityType, key: str, object_subtype: str | None = None
    ) -> MetaKeyDefinition:
        """Return the definition for *key* or raise NotFoundError."""
        definition = self.find(entity_type, key, object_subtype)
        if definition is None:
            raise NotFoundError(
                "Invalid meta key.",
                ErrorCode.META_UNKNOWN_KEY,
                {"entity_type": EntityType(entity_type).value, "key": key},
            )
        return definition

    def list_for(self, entity_type: EntityType, object_subtype: str | None = None) -> list[MetaKeyDefinition]:
        """
        Return the definitions visible for *entity_type* in registration order.

        Subtype-less keys are always included; subtype keys only for the
        matching subtype, in which case they shadow a subtype-less key of
        the same name.
        """
        table = self._keys.get(EntityType(entity_type), {})
        shadowed = {key for (subtype, key) in table if subtype is not None and subtype == object_subtype}

        definitions = []
        for (subtype, key), definition in table.items():
            if subtype is None and key in shadowed:
                continue
            if subtype is not None and subtype != object_subtype:
                continue
            definitions.append(definition)
        return definitions

    def is_registered(self, entity_type: EntityType, key: str, object_subtype: str | None = None) -> bool:
        return self.find(entity_type, key, object_subtype) is not None

    # ── Internals ─────────────────────────────────────────────────────────────

    def _table(self, entity_type: EntityType) -> dict[tuple[str | None, str], MetaKeyDefinition]:
        if self._frozen:
            logger.warning("Meta registry modified after initialization (%s)", entity_type.value)
        return self._keys.setdefault(entity_type, {})

    def __len__(self) -> int:
        return sum(len(table) for table in self._keys.values())
