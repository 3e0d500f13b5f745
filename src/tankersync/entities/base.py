"""
Base class for migrated entities.

An entity is one record of the delivery app's dataset. The same model is
used for the local copy (read from the device store, camelCase JSON) and the
remote copy (written to the backend, snake_case columns); aliases let both
spellings populate it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tankersync.types import EntityType, NaturalKey


@dataclass(frozen=True)
class ForeignKey:
    """
    A reference from a dependent entity to its parent.

    Attributes:
        field: Attribute on the dependent entity holding the parent id
        parent: Entity type the id points at
        required: If True an unresolvable parent skips the record; if False
            the reference is cleared and the record is still migrated
        parent_role: Role the referenced user must have, checked by the
            validator (None accepts any parent)
    """

    field: str
    parent: EntityType
    required: bool = True
    parent_role: str | None = None


def _utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Entity(BaseModel):
    """
    Base class for the four migrated entity types.

    Entities are immutable: the engine never mutates a local record. Foreign
    key rewriting produces a copy through ``with_references``.

    Attributes:
        id: Author-assigned, stable identifier (preserved as remote primary key)
        created_at: Creation timestamp (UTC)
        updated_at: Last update timestamp (UTC)
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    entity_type: ClassVar[EntityType]
    foreign_key_fields: ClassVar[tuple[ForeignKey, ...]] = ()
    # Fields that exist only on the device and are never written remotely
    local_only_fields: ClassVar[frozenset[str]] = frozenset()

    id: str = Field(..., min_length=1, description="Stable record identifier")
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _normalize_timestamps(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def table_name(cls) -> str:
        """Remote table name, e.g. ``vehicles``."""
        return cls.entity_type.plural

    @classmethod
    def remote_field_names(cls) -> list[str]:
        """Field names written to the remote backend, in declaration order."""
        return [name for name in cls.model_fields if name not in cls.local_only_fields]

    def natural_key(self) -> NaturalKey:
        """
        Non-id field combination identifying an equivalent remote record.

        For dependent entities the key embeds parent ids, so it must be taken
        from a record whose references have already been resolved.
        """
        raise NotImplementedError

    def references(self) -> dict[str, str | None]:
        """Current values of this entity's foreign key fields."""
        return {fk.field: getattr(self, fk.field) for fk in self.foreign_key_fields}

    def with_references(self, **updates: str | None) -> Entity:
        """Copy of this entity with foreign key fields replaced."""
        unknown = set(updates) - {fk.field for fk in self.foreign_key_fields}
        if unknown:
            raise ValueError(f"not foreign key fields of {type(self).__name__}: {sorted(unknown)}")
        return self.model_copy(update=updates)

    def to_remote_row(self) -> dict[str, Any]:
        """Python-typed column values for the remote backend (snake_case)."""
        return self.model_dump(mode="python", exclude=set(self.local_only_fields))

    def __str__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"
