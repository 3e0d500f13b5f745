"""
Remote schema generation.

Builds the PostgreSQL DDL for the four remote tables from the entity
models, so the schema cannot drift from what ``PostgreSQLRemoteStore``
writes. Every table gets a ``natural_key`` column, maintained by the store
on insert, holding the JSON-encoded ``Entity.natural_key()``.

Example:
    >>> print(generate_schema(Vehicle))
    CREATE TABLE IF NOT EXISTS vehicles (
        id VARCHAR(255) PRIMARY KEY,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL,
        ...
        natural_key TEXT NOT NULL
    );
"""

import types
from datetime import date, datetime
from enum import Enum
from typing import Any, Union, get_args, get_origin

from pydantic.fields import FieldInfo

from tankersync.entities.base import Entity
from tankersync.entities.records import ENTITY_CLASSES

NATURAL_KEY_COLUMN = "natural_key"

POSTGRESQL_TYPE_MAP: dict[type, str] = {
    str: "VARCHAR(255)",
    int: "INTEGER",
    float: "DOUBLE PRECISION",
    bool: "BOOLEAN",
    datetime: "TIMESTAMP WITH TIME ZONE",
    date: "DATE",
    dict: "JSONB",
    list: "JSONB",
}


def generate_schema(entity_class: type[Entity], if_not_exists: bool = True) -> str:
    """
    Generate CREATE TABLE SQL for one entity type.

    Args:
        entity_class: Entity model to generate the table for
        if_not_exists: Include IF NOT EXISTS (default True)

    Returns:
        CREATE TABLE statement
    """
    table_name = entity_class.table_name()
    columns = [
        _generate_column(name, entity_class.model_fields[name])
        for name in entity_class.remote_field_names()
    ]
    columns.append(f"{NATURAL_KEY_COLUMN} TEXT NOT NULL")

    exists_clause = "IF NOT EXISTS " if if_not_exists else ""
    columns_sql = ",\n    ".join(columns)
    return f"""CREATE TABLE {exists_clause}{table_name} (
    {columns_sql}
);"""


def generate_indexes(entity_class: type[Entity]) -> list[str]:
    """Index on the natural key plus one per foreign key column."""
    table_name = entity_class.table_name()
    indexes = [
        f"CREATE INDEX IF NOT EXISTS idx_{table_name}_{NATURAL_KEY_COLUMN} "
        f"ON {table_name}({NATURAL_KEY_COLUMN});"
    ]
    for fk in entity_class.foreign_key_fields:
        indexes.append(
            f"CREATE INDEX IF NOT EXISTS idx_{table_name}_{fk.field} ON {table_name}({fk.field});"
        )
    return indexes


def generate_full_schema() -> str:
    """DDL for all four tables and their indexes, parents first."""
    parts: list[str] = []
    for entity_class in ENTITY_CLASSES.values():
        parts.append(generate_schema(entity_class))
        parts.extend(generate_indexes(entity_class))
    return "\n\n".join(parts)


def json_field_names(entity_class: type[Entity]) -> set[str]:
    """Remote fields stored as JSONB."""
    return {
        name
        for name in entity_class.remote_field_names()
        if _extract_type(entity_class.model_fields[name].annotation) in (dict, list)
    }


def _generate_column(field_name: str, field_info: FieldInfo) -> str:
    python_type = _extract_type(field_info.annotation)
    if isinstance(python_type, type) and issubclass(python_type, Enum):
        sql_type = "VARCHAR(32)"
    else:
        sql_type = POSTGRESQL_TYPE_MAP.get(python_type, "TEXT")

    if field_name == "id":
        return f"id {sql_type} PRIMARY KEY"

    parts = [field_name, sql_type]
    if not _is_optional(field_info.annotation):
        parts.append("NOT NULL")
    return " ".join(parts)


def _extract_type(annotation: Any) -> Any:
    """Strip Optional and generic parameters: ``dict[str, Any] | None`` -> ``dict``."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        for arg in get_args(annotation):
            if arg is not type(None):
                return _extract_type(arg)
    if origin is not None:
        return origin
    return annotation


def _is_optional(annotation: Any) -> bool:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return type(None) in get_args(annotation)
    return False
