#!/usr/bin/env python3
"""
Effort and distance calculation.

Per-key effort comes from the effort model; per-transition distance is the
Euclidean distance between key centers. The calculator resolves both for a
validated layout once, up front, so that metric aggregation only does
lookups.

    effort   = sum_c base(slot(c)) * f(c) / sum_c f(c)            (mapped chars)
    distance = sum_(c1,c2) euclid(slot(c1), slot(c2)) * f(c1,c2)
               / sum_(c1,c2) f(c1,c2)                              (mapped bigrams)
"""

from typing import Dict, Optional, Tuple

from layout_metrics.effort_model import EffortModel
from layout_metrics.errors import ComputationError
from layout_metrics.geometry import STANDARD_GEOMETRY, GeometryTable, KeySlot, calculate_euclidean_distance
from layout_metrics.layout_utils import Layout


class EffortDistanceCalculator:
    """Effort and travel distance for one layout under one effort model."""

    def __init__(self, layout: Layout, effort_model: EffortModel,
                 geometry: GeometryTable = STANDARD_GEOMETRY):
        """
        Args:
            layout: Validated layout
            effort_model: Effort tables
            geometry: Geometry the analysis runs against

        Raises:
            ComputationError: If a layout slot is not in the geometry table, or
                the effort model has no entry for a finger/row the layout uses
        """
        self.layout = layout
        self.effort_model = effort_model

        self._slots: Dict[str, KeySlot] = {}
        self._effort: Dict[str, float] = {}
        for char, slot in layout.keys.items():
            known = geometry.get(slot.slot_id)
            if known is None or known != slot:
                raise ComputationError(
                    f"Layout '{layout.name}' places '{char}' on slot '{slot.slot_id}', "
                    f"which does not match geometry table '{geometry.name}'"
                )
            self._slots[char] = slot
            self._effort[char] = effort_model.slot_effort(slot)

        self._distance_cache: Dict[Tuple[str, str], float] = {}

    def slot(self, char: str) -> Optional[KeySlot]:
        return self._slots.get(char)

    def char_effort(self, char: str) -> Optional[float]:
        """Base effort of the key typing char (None if unmapped)."""
        return self._effort.get(char)

    def transition_distance(self, char1: str, char2: str) -> Optional[float]:
        """Distance in mm between the keys of two characters (None if either is unmapped)."""
        key = (char1, char2)
        cached = self._distance_cache.get(key)
        if cached is not None:
            return cached

        slot1 = self._slots.get(char1)
        slot2 = self._slots.get(char2)
        if slot1 is None or slot2 is None:
            return None

        distance = calculate_euclidean_distance(slot1.coord, slot2.coord)
        self._distance_cache[key] = distance
        return distance

    def key_efforts(self) -> Dict[str, float]:
        """Effort of every mapped character."""
        return dict(sorted(self._effort.items()))
