"""
Response serialization shared by the routers.
ORM rows are exposed with camelCase keys and ISO-8601 timestamps.
"""
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic.alias_generators import to_camel
from sqlalchemy import inspect


def iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def to_camel_key(s: str) -> str:
    return to_camel(s)


def row_to_dict(row: Any, exclude: Iterable[str] = ()) -> dict[str, Any]:
    """Column values of an ORM row, camelCased, datetimes as ISO strings."""
    skip = set(exclude)
    out: dict[str, Any] = {}
    for attr in inspect(row).mapper.column_attrs:
        if attr.key in skip:
            continue
        value = getattr(row, attr.key)
        out[to_camel_key(attr.key)] = iso(value) if isinstance(value, datetime) else value
    return out
