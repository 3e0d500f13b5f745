"""Serialization utilities for tankersync."""

from tankersync.serialization.json import TankerSyncJSONEncoder, json_dumps, json_loads

__all__ = [
    "TankerSyncJSONEncoder",
    "json_dumps",
    "json_loads",
]
