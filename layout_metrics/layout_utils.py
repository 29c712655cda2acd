#!/usr/bin/env python3
"""
Layout utilities for keyboard layout analysis.

Functions for creating layout mappings from the supported input formats and
validating them against a geometry table into an immutable Layout.
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from layout_metrics.errors import (
    DuplicateAssignmentError, InvalidSlotError, LayoutError, MissingRequiredCharacterError
)
from layout_metrics.geometry import QWERTY_ORDER, STANDARD_GEOMETRY, GeometryTable, KeySlot, read_only, writable

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_CHARS = 'abcdefghijklmnopqrstuvwxyz'
DEFAULT_OPTIONAL_CHARS = ";,./'[-"

# Placeholder for an unassigned key in QWERTY-order layout strings
EMPTY_SLOT_MARKERS = {' ', '_'}


@dataclass(frozen=True)
class Layout:
    """
    A validated character -> key slot mapping.

    Every mapped character resolves to a full KeySlot of the geometry table
    it was validated against; no two characters share a slot.
    """

    name: str
    keys: Mapping[str, KeySlot]
    unmapped: FrozenSet[str]
    geometry_name: str
    layout_hash: str

    def __post_init__(self):
        object.__setattr__(self, 'keys', read_only(self.keys))
        object.__setattr__(self, 'unmapped', frozenset(self.unmapped))

    def __getstate__(self):
        return {name: writable(value) for name, value in self.__dict__.items()}

    def __setstate__(self, state):
        for name, value in state.items():
            object.__setattr__(self, name, value)
        self.__post_init__()

    def __contains__(self, char: object) -> bool:
        return char in self.keys

    def __len__(self) -> int:
        return len(self.keys)

    def slot_for(self, char: str) -> Optional[KeySlot]:
        return self.keys.get(char)

    @property
    def slot_ids(self) -> Dict[str, str]:
        """Character -> slot identifier mapping."""
        return {char: slot.slot_id for char, slot in sorted(self.keys.items())}

    def get_layout_string(self) -> str:
        """Layout mapping as a readable 'chars → positions' string."""
        chars = ''.join(sorted(self.keys))
        positions = ''.join(self.keys[c].slot_id for c in sorted(self.keys))
        return f"{chars} → {positions}"


def compute_layout_hash(pairs: Iterable[Tuple[str, str]]) -> str:
    """Content hash of the sorted (char, slot_id) pairs."""
    digest = hashlib.sha256()
    for char, slot_id in sorted(pairs):
        digest.update(f"{char}\x1f{slot_id}\x1e".encode('utf-8'))
    return digest.hexdigest()


def validate_layout(mapping: Mapping[str, str],
                    geometry: GeometryTable = STANDARD_GEOMETRY,
                    required_chars: Iterable[str] = DEFAULT_REQUIRED_CHARS,
                    optional_chars: Iterable[str] = DEFAULT_OPTIONAL_CHARS,
                    name: str = "layout") -> Layout:
    """
    Validate a character -> slot identifier mapping into a Layout.

    Checks run in order: non-empty mapping of single characters, every slot
    identifier resolves, no slot is assigned twice, required characters are
    covered. Optional characters that are not mapped are recorded in
    Layout.unmapped.

    Args:
        mapping: Character to slot identifier mapping (slot ids are case-insensitive)
        geometry: Geometry table defining the valid slots
        required_chars: Characters the layout must map
        optional_chars: Characters that may be left unmapped
        name: Layout name

    Raises:
        LayoutError: If the mapping is empty or a key is not a single character
        InvalidSlotError: If a slot identifier is not in the geometry table
        DuplicateAssignmentError: If two characters share a slot
        MissingRequiredCharacterError: If a required character is not mapped
    """
    if not mapping:
        raise LayoutError("Layout mapping cannot be empty")

    for char, slot_id in mapping.items():
        if not isinstance(char, str) or len(char) != 1:
            raise LayoutError(f"Layout keys must be single characters, got {char!r}")
        if not slot_id or not str(slot_id).strip():
            raise InvalidSlotError(str(slot_id), char)

    keys: Dict[str, KeySlot] = {}
    for char in sorted(mapping):
        slot = geometry.get(mapping[char])
        if slot is None:
            raise InvalidSlotError(str(mapping[char]), char)
        keys[char] = slot

    assigned: Dict[str, list] = {}
    for char, slot in keys.items():
        assigned.setdefault(slot.slot_id, []).append(char)
    duplicates = sorted(slot_id for slot_id, chars in assigned.items() if len(chars) > 1)
    if duplicates:
        raise DuplicateAssignmentError(duplicates[0], assigned[duplicates[0]])

    missing = set(required_chars) - set(keys)
    if missing:
        raise MissingRequiredCharacterError(missing)

    unmapped = frozenset(set(optional_chars) - set(keys))
    if unmapped:
        logger.debug(f"Layout '{name}' leaves optional characters unmapped: {''.join(sorted(unmapped))}")

    return Layout(
        name=name,
        keys=keys,
        unmapped=unmapped,
        geometry_name=geometry.name,
        layout_hash=compute_layout_hash((char, slot.slot_id) for char, slot in keys.items()),
    )


def normalize_layout_strings(letters: str, positions: str) -> Tuple[str, str]:
    """
    Normalize and clean layout strings for consistent processing.

    Returns:
        Tuple of (cleaned_letters, cleaned_positions)
    """
    letters_clean = re.sub(r'\s+', '', letters.lower())
    positions_clean = re.sub(r'\s+', '', positions.upper())
    return letters_clean, positions_clean


def create_layout_mapping(letters: str, positions: str) -> Dict[str, str]:
    """
    Create a layout mapping from letter and position strings.

    Args:
        letters: String of characters (e.g., 'etaoinshrlcu')
        positions: String of corresponding positions (e.g., 'FDESGJWXRTYZ')

    Returns:
        Dict mapping characters to positions (lowercase chars to uppercase positions)

    Raises:
        LayoutError: If strings have different lengths or a character repeats
    """
    letters_clean, positions_clean = normalize_layout_strings(letters, positions)

    if len(letters_clean) != len(positions_clean):
        raise LayoutError(
            f"Letters length ({len(letters_clean)}) != positions length ({len(positions_clean)})"
        )
    if len(set(letters_clean)) != len(letters_clean):
        repeated = sorted({c for c in letters_clean if letters_clean.count(c) > 1})
        raise LayoutError(f"Characters listed more than once: {repeated}")

    return dict(zip(letters_clean, positions_clean))


def layout_from_qwerty_string(chars: str, order: str = QWERTY_ORDER) -> Dict[str, str]:
    """
    Create a layout mapping from characters listed in QWERTY key order.

    The i-th character is placed on the key labelled order[i]
    (Q W E R T Y U I O P A S D F ... / [ '). A space or underscore leaves
    that key empty.

    Raises:
        LayoutError: If more characters are given than there are keys, or a character repeats
    """
    if len(chars) > len(order):
        raise LayoutError(f"Layout string has {len(chars)} characters but only {len(order)} keys")

    mapping: Dict[str, str] = {}
    for char, slot_id in zip(chars.lower(), order):
        if char in EMPTY_SLOT_MARKERS:
            continue
        if char in mapping:
            raise LayoutError(f"Character '{char}' listed more than once")
        mapping[char] = slot_id
    return mapping


def qwerty_mapping() -> Dict[str, str]:
    """The QWERTY reference mapping: every key types its own (lowercase) label."""
    return {slot_id.lower(): slot_id for slot_id in QWERTY_ORDER}
