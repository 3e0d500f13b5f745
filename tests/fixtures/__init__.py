"""
Shared test fixtures for tankersync.

Usage:
    from tests.fixtures import make_user, make_vehicle, make_booking
"""

from tests.fixtures.entities import (
    BASE_TIME,
    make_address,
    make_agency,
    make_booking,
    make_driver,
    make_user,
    make_vehicle,
)

__all__ = [
    "BASE_TIME",
    "make_user",
    "make_agency",
    "make_driver",
    "make_address",
    "make_vehicle",
    "make_booking",
]
