"""
JSON helpers for values that the standard encoder rejects.

The device store keeps every collection as a JSON string, and the remote
backend stores embedded documents (a booking's delivery address) as JSON.
Both go through these helpers so datetimes and enums round-trip the same way.

Example:
    >>> from tankersync.serialization import json_dumps
    >>> json_dumps({"createdAt": datetime(2024, 1, 1, tzinfo=UTC)})
    '{"createdAt": "2024-01-01T00:00:00+00:00"}'
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class TankerSyncJSONEncoder(json.JSONEncoder):
    """
    JSON encoder that understands datetimes, dates, UUIDs and enums.

    - datetime / date: ISO 8601 string
    - UUID: canonical string form
    - Enum: its value
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime | date):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def json_dumps(obj: Any) -> str:
    """Serialize ``obj`` with ``TankerSyncJSONEncoder``."""
    return json.dumps(obj, cls=TankerSyncJSONEncoder)


def json_loads(s: str | bytes) -> Any:
    """Parse a JSON document."""
    return json.loads(s)
