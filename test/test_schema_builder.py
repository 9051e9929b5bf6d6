"""
Tests for SchemaBuilder schemas, endpoint args and argument validation
"""

import pytest

from meta_api.constants.meta import EntityType, ValueType
from meta_api.exceptions import ErrorCode, InvalidInputError
from meta_api.services.meta_registry import MetaKeyDefinition, MetaKeyRegistry
from meta_api.services.schema_builder import ArgRule, SchemaBuilder


@pytest.fixture
def builder():
    registry = MetaKeyRegistry()
    registry.register(EntityType.POST, MetaKeyDefinition("color", description="<b>Accent</b> color"))
    registry.register(EntityType.POST, MetaKeyDefinition("rating", ValueType.NUMBER))
    registry.register(EntityType.POST, MetaKeyDefinition("layout", object_subtype="page"))
    return SchemaBuilder(registry)


class TestItemSchema:
    def test_key_and_value_are_required(self, builder):
        schema = builder.build_item_schema()
        assert schema["properties"]["key"]["type"] == "string"
        assert schema["properties"]["key"]["required"] is True
        assert schema["properties"]["value"]["required"] is True
        assert schema["properties"]["value"]["type"] == ["string", "number", "boolean"]

    def test_contexts(self, builder):
        schema = builder.build_item_schema()
        assert schema["properties"]["key"]["context"] == ["view", "edit"]


class TestBuildSchema:
    def test_lists_registered_keys_with_types(self, builder):
        schema = builder.build_schema(EntityType.POST)

        assert schema["title"] == "post-meta"
        assert list(schema["properties"]) == ["color", "rating"]
        assert schema["properties"]["rating"]["properties"]["value"]["type"] == "number"
        assert schema["properties"]["color"]["properties"]["key"] == {"type": "string", "required": True}

    def test_descriptions_are_stripped_of_markup(self, builder):
        schema = builder.build_schema(EntityType.POST)
        assert schema["properties"]["color"]["description"] == "Accent color"

    def test_default_description(self, builder):
        schema = builder.build_schema(EntityType.POST)
        assert schema["properties"]["rating"]["description"] == "Description of the meta key"

    def test_subtype_keys_included_for_subtype(self, builder):
        schema = builder.build_schema(EntityType.POST, "page")
        assert "layout" in schema["properties"]

    def test_empty_entity_type(self, builder):
        assert builder.build_schema(EntityType.USER)["properties"] == {}


class TestEndpointArgs:
    def test_create_copies_required_and_default(self, builder):
        schema = {
            "properties": {
                "key": {"type": "string", "required": True},
                "value": {"type": "string", "default": "none"},
            }
        }
        args = builder.build_endpoint_args(schema, "create")
        assert args["key"].required is True
        assert args["value"].default == "none"

    def test_update_never_requires_or_defaults(self, builder):
        schema = {
            "properties": {
                "key": {"type": "string", "required": True},
                "value": {"type": "string", "default": "none"},
            }
        }
        args = builder.build_endpoint_args(schema, "update")
        assert args["key"].required is False
        assert args["value"].default is None

    def test_readonly_properties_skipped(self, builder):
        schema = {"properties": {"id": {"type": "integer", "readonly": True}, "key": {"type": "string"}}}
        assert list(builder.build_endpoint_args(schema, "create")) == ["key"]

    def test_arg_rule_to_dict(self):
        rule = ArgRule(name="context", type="string", default="view", enum=["view", "edit"])
        assert rule.to_dict() == {"type": "string", "description": "", "default": "view", "enum": ["view", "edit"]}


class TestValidateArgs:
    def _create_args(self, builder):
        return builder.build_endpoint_args(builder.build_item_schema(), "create")

    def test_valid_payload(self, builder):
        accepted = builder.validate_args(self._create_args(builder), {"key": "color", "value": "red", "extra": 1})
        assert accepted == {"key": "color", "value": "red"}

    @pytest.mark.parametrize("value", ["red", 3, 2.5, True])
    def test_scalar_values_accepted(self, builder, value):
        accepted = builder.validate_args(self._create_args(builder), {"key": "k", "value": value})
        assert accepted["value"] == value

    def test_missing_key(self, builder):
        with pytest.raises(InvalidInputError) as exc_info:
            builder.validate_args(self._create_args(builder), {"value": "red"})
        assert exc_info.value.error_code == ErrorCode.META_INVALID_KEY

    def test_null_value_counts_as_missing(self, builder):
        with pytest.raises(InvalidInputError) as exc_info:
            builder.validate_args(self._create_args(builder), {"key": "color", "value": None})
        assert exc_info.value.error_code == ErrorCode.META_INVALID_VALUE

    @pytest.mark.parametrize("value", [{"a": 1}, [1, 2]])
    def test_structured_value_rejected(self, builder, value):
        with pytest.raises(InvalidInputError) as exc_info:
            builder.validate_args(self._create_args(builder), {"key": "data", "value": value})
        assert exc_info.value.error_code == ErrorCode.META_INVALID_VALUE

    def test_non_string_key_rejected(self, builder):
        with pytest.raises(InvalidInputError) as exc_info:
            builder.validate_args(self._create_args(builder), {"key": 5, "value": "x"})
        assert exc_info.value.error_code == ErrorCode.META_INVALID_KEY

    def test_update_args_accept_partial_payload(self, builder):
        args = builder.build_endpoint_args(builder.build_item_schema(), "update")
        assert builder.validate_args(args, {"value": "blue"}) == {"value": "blue"}
        assert builder.validate_args(args, {}) == {}

    def test_context_param_default_and_enum(self, builder):
        params = builder.collection_params()
        assert builder.validate_args(params, {}) == {"context": "view"}
        assert builder.validate_args(params, {"context": "edit"}) == {"context": "edit"}
        with pytest.raises(InvalidInputError) as exc_info:
            builder.validate_args(params, {"context": "embed"})
        assert exc_info.value.error_code == ErrorCode.META_INVALID_PARAMETERS
