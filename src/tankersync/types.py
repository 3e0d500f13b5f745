"""Common type definitions for tankersync."""

from enum import Enum

# Ids are author-assigned strings in the local store and are preserved remotely
LocalId = str
RemoteId = str

# Natural keys are tuples of plain values, compared by equality
NaturalKey = tuple[str, ...]


class EntityType(Enum):
    """
    The four entity types the engine migrates.

    Declaration order is the dependency order: users first, then addresses
    and vehicles (both depend only on users), then bookings.
    """

    USER = "user"
    ADDRESS = "address"
    VEHICLE = "vehicle"
    BOOKING = "booking"

    @property
    def plural(self) -> str:
        """Plural name used for result counters and table names."""
        return {
            EntityType.USER: "users",
            EntityType.ADDRESS: "addresses",
            EntityType.VEHICLE: "vehicles",
            EntityType.BOOKING: "bookings",
        }[self]


MIGRATION_ORDER: tuple[EntityType, ...] = (
    EntityType.USER,
    EntityType.ADDRESS,
    EntityType.VEHICLE,
    EntityType.BOOKING,
)
