"""Canonical punch record and persistence outcome."""

import copy
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

# Any value a JSON document can hold
JSONValue = Union[None, bool, int, float, str, list[Any], dict[str, Any]]

UNKNOWN_DEVICE = "Unknown-Device"
UNKNOWN_USER = "Unknown-User"
TEXT_DEVICE = "ZKTeco-Device"

# Marker for numeric fields the device sent but that could not be parsed
NOT_A_NUMBER = float("nan")


def is_not_a_number(value) -> bool:
    return isinstance(value, float) and math.isnan(value)


class StorageKind(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class LogRecord:
    serial_number: str
    pin: str
    verified: int | float
    status: int | float
    date_time: str
    raw_data: JSONValue = None

    def to_document(self) -> dict[str, Any]:
        """Document form persisted to the store, keyed the way devices name fields."""
        return {
            "serialNumber": self.serial_number,
            "pin": self.pin,
            "verified": self.verified,
            "status": self.status,
            "dateTime": self.date_time,
            "rawData": copy.deepcopy(self.raw_data),
        }


@dataclass(frozen=True)
class Outcome:
    success: bool
    id: str | None = None
    storage_kind: StorageKind | None = None
    error: str | None = None
