"""
The four entity types of the delivery app.

Field names follow the remote schema; the local JSON spelling (camelCase)
is accepted through the alias generator on ``Entity``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import Field, field_validator

from tankersync.entities.base import Entity, ForeignKey, as_utc
from tankersync.types import EntityType, NaturalKey


class UserRole(str, Enum):
    """Role a user account plays in the app."""

    CUSTOMER = "customer"
    DRIVER = "driver"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    """Lifecycle of a delivery booking."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class User(Entity):
    """
    An admin (agency), driver or customer account.

    ``password`` and ``saved_addresses`` only exist on the device: the
    password feeds identity provisioning and the saved addresses become
    ``Address`` records. ``account_id`` is set remotely when an identity
    account was provisioned for the user.
    """

    entity_type: ClassVar[EntityType] = EntityType.USER
    local_only_fields: ClassVar[frozenset[str]] = frozenset({"password", "saved_addresses"})

    role: UserRole
    name: str
    email: str | None = None
    phone: str | None = None
    password: str | None = Field(default=None, repr=False)
    account_id: str | None = None
    profile_image: str | None = None

    # admin
    business_name: str | None = None

    # driver
    vehicle_number: str | None = None
    license_number: str | None = None
    license_expiry: datetime | None = None
    total_earnings: float | None = None
    completed_orders: int | None = None
    created_by_admin: bool | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None

    # customer
    saved_addresses: list[dict[str, Any]] = Field(default_factory=list)

    def natural_key(self) -> NaturalKey:
        # Older records may lack a phone; the email is the next stable handle
        contact = self.phone or self.email or self.id
        return (contact, self.role.value)


class Address(Entity):
    """A saved delivery address owned by a customer."""

    entity_type: ClassVar[EntityType] = EntityType.ADDRESS
    foreign_key_fields: ClassVar[tuple[ForeignKey, ...]] = (
        ForeignKey("user_id", EntityType.USER),
    )

    user_id: str
    label: str
    address: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    is_default: bool = False

    def natural_key(self) -> NaturalKey:
        return (self.user_id, self.label)


class Vehicle(Entity):
    """A tanker vehicle registered by an agency (admin user)."""

    entity_type: ClassVar[EntityType] = EntityType.VEHICLE
    foreign_key_fields: ClassVar[tuple[ForeignKey, ...]] = (
        ForeignKey("agency_id", EntityType.USER, parent_role=UserRole.ADMIN.value),
    )

    agency_id: str
    vehicle_number: str = Field(..., min_length=1)
    insurance_company_name: str | None = None
    insurance_expiry_date: datetime | None = None
    vehicle_capacity: int | None = None
    amount: float | None = None

    def natural_key(self) -> NaturalKey:
        return (self.vehicle_number.strip().upper(),)


class Booking(Entity):
    """A delivery order placed by a customer."""

    entity_type: ClassVar[EntityType] = EntityType.BOOKING
    foreign_key_fields: ClassVar[tuple[ForeignKey, ...]] = (
        ForeignKey("customer_id", EntityType.USER),
        ForeignKey("vehicle_id", EntityType.VEHICLE),
        ForeignKey("agency_id", EntityType.USER, required=False),
        ForeignKey("driver_id", EntityType.USER, required=False),
    )

    customer_id: str
    vehicle_id: str | None = None
    agency_id: str | None = None
    driver_id: str | None = None
    customer_name: str = ""
    customer_phone: str = ""
    agency_name: str | None = None
    driver_name: str | None = None
    driver_phone: str | None = None
    status: BookingStatus = BookingStatus.PENDING
    tanker_size: int | None = None
    quantity: int = 1
    base_price: float | None = None
    distance_charge: float | None = None
    total_price: float | None = None
    delivery_address: dict[str, Any] = Field(default_factory=dict)
    distance: float | None = None
    scheduled_for: datetime | None = None
    payment_status: str = "pending"
    payment_id: str | None = None
    cancellation_reason: str | None = None
    can_cancel: bool = True
    accepted_at: datetime | None = None
    delivered_at: datetime | None = None

    @field_validator("scheduled_for", "accepted_at", "delivered_at", mode="after")
    @classmethod
    def _normalize_optional_timestamps(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    def natural_key(self) -> NaturalKey:
        return (self.customer_id, self.created_at.isoformat())


ENTITY_CLASSES: dict[EntityType, type[Entity]] = {
    EntityType.USER: User,
    EntityType.ADDRESS: Address,
    EntityType.VEHICLE: Vehicle,
    EntityType.BOOKING: Booking,
}


def entity_class(entity_type: EntityType) -> type[Entity]:
    """Model class for an entity type."""
    return ENTITY_CLASSES[entity_type]
