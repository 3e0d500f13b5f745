"""
Entity models migrated by the engine.

Key Components:
    Entity: Frozen pydantic base with id, timestamps and natural key support
    ForeignKey: Declares a dependent entity's reference to its parent
    User, Address, Vehicle, Booking: The four fixed entity types
    entity_class: Look up the model class for an ``EntityType``
"""

from tankersync.entities.base import Entity, ForeignKey
from tankersync.entities.records import (
    ENTITY_CLASSES,
    Address,
    Booking,
    BookingStatus,
    User,
    UserRole,
    Vehicle,
    entity_class,
)

__all__ = [
    "Entity",
    "ForeignKey",
    "User",
    "UserRole",
    "Address",
    "Vehicle",
    "Booking",
    "BookingStatus",
    "ENTITY_CLASSES",
    "entity_class",
]
