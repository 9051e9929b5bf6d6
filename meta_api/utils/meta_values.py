"""
Meta value helpers

Conversion of meta values between what clients send, what is stored and
what is returned, driven by the key's declared ValueType.
"""

from typing import Annotated, Any

from pydantic import Field, TypeAdapter, ValidationError

from meta_api.constants.meta import SCALAR_TYPES, ValueType

_FALSE_STRINGS = {"", "0", "false", "no", "off"}

# nan and inf have no JSON form and cannot be stored or returned
_float_adapter = TypeAdapter(Annotated[float, Field(allow_inf_nan=False)])
_bool_adapter = TypeAdapter(bool)


def canonical_string(value: Any) -> str:
    """
    String form used to decide whether an update changes anything.

    True/False become "1"/"" and integral floats lose their ".0", so that
    "5", 5 and 5.0 compare equal.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_input_value(value_type: ValueType, value: Any) -> Any:
    """
    Convert an incoming scalar to the key's declared type.

    Raises ValueError when the value cannot represent that type. Array and
    object keys store each scalar item unchanged.
    """
    if value_type == ValueType.STRING:
        if isinstance(value, bool):
            raise ValueError("expected a string, got a boolean")
        return value if isinstance(value, str) else str(value)

    if value_type == ValueType.NUMBER:
        if isinstance(value, bool):
            raise ValueError("expected a number, got a boolean")
        try:
            return _float_adapter.validate_python(value)
        except ValidationError as e:
            raise ValueError(f"expected a number: {e.errors()[0]['msg']}") from e

    if value_type == ValueType.BOOLEAN:
        try:
            return _bool_adapter.validate_python(value)
        except ValidationError as e:
            raise ValueError(f"expected a boolean: {e.errors()[0]['msg']}") from e

    return value


def _prepare_scalar(value_type: ValueType, value: Any) -> Any:
    if value is None:
        return None

    if value_type == ValueType.STRING:
        return canonical_string(value) if isinstance(value, SCALAR_TYPES) else None

    if value_type == ValueType.NUMBER:
        if not isinstance(value, SCALAR_TYPES):
            return None
        try:
            return float(value)
        except ValueError:
            return None

    if value_type == ValueType.BOOLEAN:
        if isinstance(value, str):
            return value.strip().lower() not in _FALSE_STRINGS
        if isinstance(value, SCALAR_TYPES):
            return bool(value)
        return None

    # Declared structured: lists and dicts pass through, blobs never do
    if isinstance(value, (bytes, bytearray)):
        return None
    return value


def prepare_output_value(value_type: ValueType, value: Any, single: bool = True) -> Any:
    """
    Prepare a stored value for a response.

    Scalars are cast to the declared type. A structured value stored under
    a key declared as a scalar type is returned as None rather than
    exposing its internal form. Multi-valued keys prepare each item.
    """
    if not single and isinstance(value, list):
        return [_prepare_scalar(value_type, item) for item in value]
    return _prepare_scalar(value_type, value)
