"""Serialization of ledger models and views for JSON output."""

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def to_dict(obj: Any) -> dict:
    """Convert object to dictionary with snake_case keys."""
    if is_dataclass(obj):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return {k: serialize_value(v) for k, v in obj.items()}
    else:
        return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert dataclass to dict with proper serialization."""
    result = {}
    for key, value in asdict(obj).items():
        result[key] = serialize_value(value)
    return result


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output.

    Money stays exact: ``Decimal`` is rendered as a string.
    """
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif is_dataclass(value) and not isinstance(value, type):
        return dataclass_to_dict(value)
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def camel_case(name: str) -> str:
    """``remaining_debt`` -> ``remainingDebt``."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def camelize(value: Any) -> Any:
    """Recursively rename snake_case string keys to camelCase."""
    if isinstance(value, dict):
        return {
            camel_case(k) if isinstance(k, str) else k: camelize(v)
            for k, v in value.items()
        }
    elif isinstance(value, list):
        return [camelize(v) for v in value]
    return value


def to_json_dict(obj: Any) -> Any:
    """Render a view (or a list of views) in the camelCase JSON shape."""
    if isinstance(obj, (list, tuple)):
        return [to_json_dict(item) for item in obj]
    return camelize(to_dict(obj))
