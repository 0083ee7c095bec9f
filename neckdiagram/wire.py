"""Tolerant readers for JSON documents.

Persisted and imported documents are repaired rather than rejected, so every
field read goes through one of these helpers, which fall back to a default
when the field is missing or has the wrong type.
"""

from typing import Any, List, Mapping, Optional, Union

Number = Union[int, float]


def as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    """Return the value if it is a JSON object, else None."""
    return value if isinstance(value, Mapping) else None


def get_int(raw: Mapping[str, Any], key: str, default: int) -> int:
    """Read an integer field, accepting integral floats.

    Args:
        raw: The JSON object.
        key: Field name.
        default: Value used when the field is missing or not a whole number.

    Returns:
        The integer value or the default.
    """
    value = raw.get(key)
    if isinstance(value, bool):
        return default
    elif isinstance(value, int):
        return value
    elif isinstance(value, float) and value.is_integer():
        return int(value)
    else:
        return default


def get_number(raw: Mapping[str, Any], key: str, default: Number) -> Number:
    """Read a numeric field (int or float), rejecting booleans and NaN."""
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    elif value != value:
        return default
    else:
        return value


def get_bool(raw: Mapping[str, Any], key: str, default: bool) -> bool:
    """Read a boolean field."""
    value = raw.get(key)
    return value if isinstance(value, bool) else default


def get_str(raw: Mapping[str, Any], key: str) -> Optional[str]:
    """Read an optional string field."""
    value = raw.get(key)
    return value if isinstance(value, str) else None


def get_list(raw: Mapping[str, Any], key: str) -> Optional[List[Any]]:
    """Read an optional array field."""
    value = raw.get(key)
    return value if isinstance(value, list) else None


def put_optional(out: dict[str, Any], key: str, value: Any) -> None:
    """Write a field only when it is set, mirroring how optional fields are omitted."""
    if value is not None:
        out[key] = value
