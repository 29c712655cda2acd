#!/usr/bin/env python3
"""
Effort model: constant, versioned reference tables for per-keystroke strain.

The base effort of a key slot is

    base[finger][row] x (center_column_penalty if the slot is in a center column)

where base[finger][row] is finger_strength[finger] x row_difficulty[row]
unless an explicit base table overrides individual entries.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

from layout_metrics.config_loader import DEFAULT_CONFIG
from layout_metrics.errors import ComputationError
from layout_metrics.geometry import Finger, KeySlot, Row, read_only, writable


def _parse_finger(name: Any) -> Finger:
    if isinstance(name, Finger):
        return name
    if isinstance(name, int) or (isinstance(name, str) and name.isdigit()):
        return Finger(int(name))
    return Finger[str(name).upper()]


def _parse_row(name: Any) -> Row:
    if isinstance(name, Row):
        return name
    if isinstance(name, int) or (isinstance(name, str) and name.isdigit()):
        return Row(int(name))
    return Row[str(name).upper()]


@dataclass(frozen=True)
class EffortModel:
    """Finger-strength, row-difficulty and center-column tables."""

    version: str
    finger_strength: Mapping[Finger, float]
    row_difficulty: Mapping[Row, float]
    center_column_penalty: float = 1.0
    center_columns: FrozenSet[int] = frozenset({5, 6})
    base_overrides: Mapping[Finger, Mapping[Row, float]] = field(default_factory=dict)
    name: str = "custom"

    def __post_init__(self):
        # Tables are copied into read-only views; the caller's dicts are never shared
        object.__setattr__(self, 'finger_strength', read_only(self.finger_strength))
        object.__setattr__(self, 'row_difficulty', read_only(self.row_difficulty))
        object.__setattr__(self, 'center_columns', frozenset(self.center_columns))
        object.__setattr__(self, 'base_overrides', read_only(self.base_overrides))

    def __getstate__(self):
        return {name: writable(value) for name, value in self.__dict__.items()}

    def __setstate__(self, state):
        for name, value in state.items():
            object.__setattr__(self, name, value)
        self.__post_init__()

    @classmethod
    def from_config(cls, config: Dict[str, Any],
                    center_columns: Optional[FrozenSet[int]] = None) -> 'EffortModel':
        """
        Build an effort model from a configuration mapping.

        Args:
            config: One entry of the effort_models configuration section
            center_columns: Center columns (defaults to classifier.center_columns)

        Raises:
            ValueError: If the tables reference unknown fingers or rows
        """
        try:
            finger_strength = {_parse_finger(k): float(v)
                               for k, v in config.get('finger_strength', {}).items()}
            row_difficulty = {_parse_row(k): float(v)
                              for k, v in config.get('row_difficulty', {}).items()}
            base_overrides = {
                _parse_finger(finger): {_parse_row(row): float(value) for row, value in rows.items()}
                for finger, rows in (config.get('base') or {}).items()
            }
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid effort model table entry: {e}")

        if center_columns is None:
            center_columns = config.get('center_columns',
                                        DEFAULT_CONFIG['classifier']['center_columns'])

        return cls(
            version=str(config.get('version', 'unversioned')),
            finger_strength=finger_strength,
            row_difficulty=row_difficulty,
            center_column_penalty=float(config.get('center_column_penalty', 1.0)),
            center_columns=frozenset(int(c) for c in center_columns),
            base_overrides=base_overrides,
            name=str(config.get('name', 'custom')),
        )

    @classmethod
    def standard(cls) -> 'EffortModel':
        """The default effort model shipped with the package."""
        config = dict(DEFAULT_CONFIG['effort_models']['standard'])
        config['name'] = 'standard'
        return cls.from_config(config)

    def base_effort(self, finger: Finger, row: Row) -> float:
        """
        Base effort for a finger pressing a key in the given row.

        Raises:
            ComputationError: If the model has no entry for the finger or row
        """
        override = self.base_overrides.get(finger)
        if override is not None and row in override:
            return override[row]

        if finger not in self.finger_strength:
            raise ComputationError(f"Effort model '{self.version}' has no strength for {finger.name}")
        if row not in self.row_difficulty:
            raise ComputationError(f"Effort model '{self.version}' has no difficulty for row {row.name}")
        return self.finger_strength[finger] * self.row_difficulty[row]

    def slot_effort(self, slot: KeySlot) -> float:
        """Base effort of a key slot, including the center-column penalty."""
        effort = self.base_effort(slot.finger, slot.row)
        if slot.column in self.center_columns:
            effort *= self.center_column_penalty
        return effort

    @property
    def fingerprint(self) -> str:
        """Version plus a hash of the tables; part of the report cache key."""
        payload = {
            'finger_strength': {f.name: v for f, v in sorted(self.finger_strength.items())},
            'row_difficulty': {r.name: v for r, v in sorted(self.row_difficulty.items())},
            'center_column_penalty': self.center_column_penalty,
            'center_columns': sorted(self.center_columns),
            'base': {f.name: {r.name: v for r, v in sorted(rows.items())}
                     for f, rows in sorted(self.base_overrides.items())},
        }
        digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode('utf-8')).hexdigest()
        return f"{self.version}:{digest[:12]}"
