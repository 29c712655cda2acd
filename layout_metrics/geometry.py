#!/usr/bin/env python3
"""
Physical keyboard geometry for layout analysis.

Defines the static reference table of key slots: row and column indices,
finger and hand assignments, and physical key-center coordinates in mm.

Conventions used throughout the package:

  - Rows: number row = 0, top row = 1, home row = 2, bottom row = 3
  - Columns: 1-10 from the left pinky column to the right pinky column;
    the extra right-pinky keys ([ and ') sit in column 11.
    Columns 5 and 6 are the center (index-stretch) columns.
  - Fingers: 1-4 = left pinky..left index, 7-10 = right index..right pinky,
    so moving "inward" (toward the keyboard center) is an increasing finger
    number on the left hand and a decreasing one on the right hand.
  - Slot identifiers are the QWERTY key labels ('Q', 'A', ';', '1', ...).
"""

import hashlib
from dataclasses import dataclass
from enum import Enum, IntEnum
from math import sqrt
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple


class Row(IntEnum):
    NUMBER = 0
    TOP = 1
    HOME = 2
    BOTTOM = 3


class Hand(Enum):
    LEFT = 'L'
    RIGHT = 'R'


class Finger(IntEnum):
    LEFT_PINKY = 1
    LEFT_RING = 2
    LEFT_MIDDLE = 3
    LEFT_INDEX = 4
    RIGHT_INDEX = 7
    RIGHT_MIDDLE = 8
    RIGHT_RING = 9
    RIGHT_PINKY = 10

    @property
    def hand(self) -> Hand:
        return Hand.LEFT if self.value <= 4 else Hand.RIGHT

    @property
    def is_pinky(self) -> bool:
        return self in (Finger.LEFT_PINKY, Finger.RIGHT_PINKY)

    @property
    def is_index(self) -> bool:
        return self in (Finger.LEFT_INDEX, Finger.RIGHT_INDEX)

    @property
    def short_name(self) -> str:
        """Two-letter name as used in the finger usage breakdown (e.g. 'LP')."""
        hand, finger = self.name.split('_')
        return hand[0] + finger[0]

    def inward_step(self, other: 'Finger') -> int:
        """
        Direction of a move from this finger to another finger of the same hand.

        Returns:
            +1 if the move goes toward the keyboard center, -1 if it goes
            outward, 0 if it is the same finger
        """
        delta = other.value - self.value
        if delta == 0:
            return 0
        inward = delta > 0 if self.hand is Hand.LEFT else delta < 0
        return 1 if inward else -1


@dataclass(frozen=True)
class KeySlot:
    """One physical key position."""

    slot_id: str
    row: Row
    column: int
    finger: Finger
    coord: Tuple[float, float]
    is_home: bool = False

    @property
    def hand(self) -> Hand:
        return self.finger.hand


def calculate_euclidean_distance(pos1: Tuple[float, float], pos2: Tuple[float, float]) -> float:
    """Calculate Euclidean distance between two positions in mm."""
    dx = pos2[0] - pos1[0]
    dy = pos2[1] - pos1[1]
    return sqrt(dx * dx + dy * dy)


# Standard row-staggered board: key pitch in mm, row offsets in key units
KEY_PITCH_MM = 19.05
ROW_STAGGER_UNITS = {
    Row.NUMBER: -0.5,
    Row.TOP: 0.0,
    Row.HOME: 0.25,
    Row.BOTTOM: 0.75,
}

STANDARD_ROWS = {
    Row.NUMBER: "1234567890",
    Row.TOP: "QWERTYUIOP[",
    Row.HOME: "ASDFGHJKL;'",
    Row.BOTTOM: "ZXCVBNM,./",
}

COLUMN_FINGERS = {
    1: Finger.LEFT_PINKY, 2: Finger.LEFT_RING, 3: Finger.LEFT_MIDDLE,
    4: Finger.LEFT_INDEX, 5: Finger.LEFT_INDEX,
    6: Finger.RIGHT_INDEX, 7: Finger.RIGHT_INDEX, 8: Finger.RIGHT_MIDDLE,
    9: Finger.RIGHT_RING, 10: Finger.RIGHT_PINKY, 11: Finger.RIGHT_PINKY,
}

# Home row positions for each finger (where fingers rest)
HOME_ROW_POSITIONS = {
    Finger.LEFT_PINKY: 'A',
    Finger.LEFT_RING: 'S',
    Finger.LEFT_MIDDLE: 'D',
    Finger.LEFT_INDEX: 'F',
    Finger.RIGHT_INDEX: 'J',
    Finger.RIGHT_MIDDLE: 'K',
    Finger.RIGHT_RING: 'L',
    Finger.RIGHT_PINKY: ';',
}

# Slot order used when a layout is written as a string of characters
QWERTY_ORDER = "QWERTYUIOPASDFGHJKL;ZXCVBNM,./['"


def normalize_slot_id(slot_id: str) -> str:
    """Slot identifiers are case-insensitive; letters are stored uppercase."""
    return str(slot_id).strip().upper()


def read_only(value: Any) -> Any:
    """
    Read-only copy of a value: mappings become MappingProxyType (recursively)
    and lists become tuples. Other values are returned as they are.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({key: read_only(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(read_only(item) for item in value)
    return value


def writable(value: Any) -> Any:
    """Plain-dict copy of a read_only() value, for pickling."""
    if isinstance(value, Mapping):
        return {key: writable(item) for key, item in value.items()}
    return value


class GeometryTable:
    """
    Immutable table of key slots.

    Maps slot identifiers to KeySlot records and knows each finger's home slot.
    """

    def __init__(self, slots: Mapping[str, KeySlot], name: str = "custom"):
        if not slots:
            raise ValueError("Geometry table cannot be empty")

        normalized = {}
        for slot_id, slot in slots.items():
            key = normalize_slot_id(slot_id)
            if key in normalized:
                raise ValueError(f"Duplicate slot identifier in geometry table: {key}")
            normalized[key] = slot

        self.name = name
        self._slots: Dict[str, KeySlot] = normalized
        self._home_slots: Dict[Finger, str] = {
            slot.finger: key for key, slot in normalized.items() if slot.is_home
        }
        self._fingerprint: Optional[str] = None

    def __contains__(self, slot_id: object) -> bool:
        return isinstance(slot_id, str) and normalize_slot_id(slot_id) in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"GeometryTable(name={self.name!r}, slots={len(self._slots)})"

    @property
    def slots(self) -> Mapping[str, KeySlot]:
        return MappingProxyType(self._slots)

    @property
    def home_slots(self) -> Mapping[Finger, str]:
        return MappingProxyType(self._home_slots)

    def get(self, slot_id: str) -> Optional[KeySlot]:
        return self._slots.get(normalize_slot_id(slot_id))

    def resolve(self, slot_id: str) -> KeySlot:
        """
        Look up a slot by identifier.

        Raises:
            KeyError: If the slot identifier is unknown
        """
        return self._slots[normalize_slot_id(slot_id)]

    def home_slot(self, finger: Finger) -> Optional[KeySlot]:
        slot_id = self._home_slots.get(finger)
        return self._slots[slot_id] if slot_id is not None else None

    @property
    def fingerprint(self) -> str:
        """Content hash of the table, stable across processes."""
        if self._fingerprint is None:
            digest = hashlib.sha256()
            for slot_id in sorted(self._slots):
                slot = self._slots[slot_id]
                digest.update(
                    f"{slot_id}|{int(slot.row)}|{slot.column}|{int(slot.finger)}|"
                    f"{slot.coord[0]!r}|{slot.coord[1]!r}|{int(slot.is_home)};".encode('utf-8')
                )
            self._fingerprint = digest.hexdigest()[:16]
        return self._fingerprint


def build_standard_geometry() -> GeometryTable:
    """Build the standard row-staggered geometry (number row plus three letter rows)."""
    home_keys = set(HOME_ROW_POSITIONS.values())
    slots: Dict[str, KeySlot] = {}

    for row, keys in STANDARD_ROWS.items():
        y = (int(row) - int(Row.TOP)) * KEY_PITCH_MM
        for index, slot_id in enumerate(keys):
            column = index + 1
            x = (ROW_STAGGER_UNITS[row] + index) * KEY_PITCH_MM
            slots[slot_id] = KeySlot(
                slot_id=slot_id,
                row=row,
                column=column,
                finger=COLUMN_FINGERS[column],
                coord=(round(x, 4), round(y, 4)),
                is_home=slot_id in home_keys,
            )

    return GeometryTable(slots, name="standard_staggered")


STANDARD_GEOMETRY = build_standard_geometry()
