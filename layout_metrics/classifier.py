#!/usr/bin/env python3
"""
Pattern classification of bigrams and trigrams.

Every detection rule is a pure function of the key slots involved. Rules
that form a family (the same-finger variants, the trigram flow labels)
return one member of a closed enum, with priority encoded as ordered guard
clauses, so a bigram or trigram is never counted in two buckets of the
same family.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from layout_metrics.config_loader import DEFAULT_CONFIG
from layout_metrics.geometry import KeySlot


class SameFingerClass(Enum):
    TWO_ROW_SFB = 'two_row_sfb'
    SKIP_BIGRAM_3U_PLUS = 'skip_bigram_3u_plus'
    SKIP_BIGRAM_2U = 'skip_bigram_2u'
    BASIC_SFB = 'basic_sfb'


class ScissorsClass(Enum):
    PINKY_SCISSORS = 'pinky_scissors'
    GENERAL_SCISSORS = 'general_scissors'


class TrigramClass(Enum):
    ALTERNATION = 'alternation'
    ROLL_IN = 'roll_in'
    ROLL_OUT = 'roll_out'
    REDIRECT = 'redirect'
    OTHER = 'other'


class RollDirection(Enum):
    INWARD = 'in'
    OUTWARD = 'out'


@dataclass(frozen=True)
class StretchPattern:
    """A lateral stretch between two columns (matched in either direction)."""

    columns: Tuple[int, int]
    severity: float


@dataclass(frozen=True)
class ClassifierConfig:
    """Thresholds and tables used by the classifier."""

    center_columns: FrozenSet[int] = frozenset({5, 6})
    row_jump_threshold: int = 2
    stretch_patterns: Tuple[StretchPattern, ...] = ()
    same_row_multiplier: float = 1.3
    _stretch_lookup: Dict[Tuple[int, int], float] = field(default_factory=dict, init=False,
                                                          repr=False, compare=False)

    def __post_init__(self):
        lookup = {}
        for pattern in self.stretch_patterns:
            first, second = pattern.columns
            lookup[(first, second)] = pattern.severity
            lookup[(second, first)] = pattern.severity
        object.__setattr__(self, '_stretch_lookup', lookup)
        object.__setattr__(self, 'center_columns', frozenset(self.center_columns))

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> 'ClassifierConfig':
        """Build from the 'classifier' configuration section."""
        defaults = DEFAULT_CONFIG['classifier']
        config = config or defaults
        stretch = config.get('lateral_stretch', defaults['lateral_stretch'])

        patterns = []
        for entry in stretch.get('patterns', []):
            columns = entry['columns']
            if len(columns) != 2:
                raise ValueError(f"Lateral stretch pattern needs two columns, got {columns}")
            patterns.append(StretchPattern((int(columns[0]), int(columns[1])), float(entry['severity'])))

        return cls(
            center_columns=frozenset(int(c) for c in config.get('center_columns', defaults['center_columns'])),
            row_jump_threshold=int(config.get('row_jump_threshold', defaults['row_jump_threshold'])),
            stretch_patterns=tuple(patterns),
            same_row_multiplier=float(stretch.get('same_row_multiplier',
                                                  defaults['lateral_stretch']['same_row_multiplier'])),
        )

    def stretch_severity(self, column1: int, column2: int) -> Optional[float]:
        return self._stretch_lookup.get((column1, column2))


DEFAULT_CLASSIFIER_CONFIG = ClassifierConfig.from_config()


def row_difference(slot1: KeySlot, slot2: KeySlot) -> int:
    return abs(int(slot1.row) - int(slot2.row))


def column_difference(slot1: KeySlot, slot2: KeySlot) -> int:
    return abs(slot1.column - slot2.column)


# ============================================================================
# Bigram rules
# ============================================================================
def classify_same_finger(slot1: KeySlot, slot2: KeySlot,
                         row_jump_threshold: int = 2) -> Optional[SameFingerClass]:
    """
    Classify a same-finger bigram.

    Returns None unless both keys are typed by the same finger and are
    different keys. Otherwise exactly one class applies, checked in order:
    two-row SFB, 3+ column skip, 2 column skip, basic SFB.
    """
    if slot1.finger != slot2.finger or slot1.slot_id == slot2.slot_id:
        return None

    col_diff = column_difference(slot1, slot2)
    if row_difference(slot1, slot2) >= row_jump_threshold:
        return SameFingerClass.TWO_ROW_SFB
    if col_diff >= 3:
        return SameFingerClass.SKIP_BIGRAM_3U_PLUS
    if col_diff == 2:
        return SameFingerClass.SKIP_BIGRAM_2U
    return SameFingerClass.BASIC_SFB


def classify_scissors(slot1: KeySlot, slot2: KeySlot,
                      row_jump_threshold: int = 2) -> Optional[ScissorsClass]:
    """Adjacent fingers of the same hand reaching across two or more rows."""
    if slot1.hand != slot2.hand:
        return None
    if abs(int(slot1.finger) - int(slot2.finger)) != 1:
        return None
    if row_difference(slot1, slot2) < row_jump_threshold:
        return None
    if slot1.finger.is_pinky or slot2.finger.is_pinky:
        return ScissorsClass.PINKY_SCISSORS
    return ScissorsClass.GENERAL_SCISSORS


def classify_lateral_stretch(slot1: KeySlot, slot2: KeySlot,
                             config: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG) -> Optional[float]:
    """
    Severity of a lateral stretch, or None if the column pair is not a stretch.

    Same-row stretches are multiplied by config.same_row_multiplier.
    """
    severity = config.stretch_severity(slot1.column, slot2.column)
    if severity is None:
        return None
    if slot1.row == slot2.row:
        severity *= config.same_row_multiplier
    return severity


def is_two_row_jump(slot1: KeySlot, slot2: KeySlot, row_jump_threshold: int = 2) -> bool:
    return row_difference(slot1, slot2) >= row_jump_threshold


def is_hand_alternation(slot1: KeySlot, slot2: KeySlot) -> bool:
    return slot1.hand != slot2.hand


def is_center_column(slot: KeySlot, config: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG) -> bool:
    return slot.column in config.center_columns


@dataclass(frozen=True)
class BigramFlags:
    """All bigram-level flags for one key pair."""

    same_finger: Optional[SameFingerClass] = None
    scissors: Optional[ScissorsClass] = None
    stretch_severity: Optional[float] = None
    two_row_jump: bool = False
    alternation: bool = False


def classify_bigram(slot1: KeySlot, slot2: KeySlot,
                    config: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG) -> BigramFlags:
    """Apply every bigram rule to one key pair."""
    return BigramFlags(
        same_finger=classify_same_finger(slot1, slot2, config.row_jump_threshold),
        scissors=classify_scissors(slot1, slot2, config.row_jump_threshold),
        stretch_severity=classify_lateral_stretch(slot1, slot2, config),
        two_row_jump=is_two_row_jump(slot1, slot2, config.row_jump_threshold),
        alternation=is_hand_alternation(slot1, slot2),
    )


# ============================================================================
# Trigram rules
# ============================================================================
def classify_trigram(slot1: KeySlot, slot2: KeySlot, slot3: KeySlot) -> TrigramClass:
    """
    Primary flow label of a trigram.

    Alternation when the hand changes on both transitions. On a single hand,
    a roll when both finger steps go the same way (inward or outward) and a
    redirect when the direction reverses. Everything else is 'other'.
    """
    if slot1.hand != slot2.hand and slot2.hand != slot3.hand:
        return TrigramClass.ALTERNATION

    if slot1.hand == slot2.hand == slot3.hand:
        first = slot1.finger.inward_step(slot2.finger)
        second = slot2.finger.inward_step(slot3.finger)
        if first == second == 1:
            return TrigramClass.ROLL_IN
        if first == second == -1:
            return TrigramClass.ROLL_OUT
        if first * second == -1:
            return TrigramClass.REDIRECT

    return TrigramClass.OTHER


def classify_bigram_roll(slot1: KeySlot, slot2: KeySlot, slot3: KeySlot) -> Optional[RollDirection]:
    """
    Two-key roll inside a trigram that switches hands once.

    The same-hand pair is either the first two keys (then a hand switch) or
    the last two (after a hand switch). Its direction is that pair's finger
    step; a same-finger pair is not a roll.
    """
    if slot1.hand == slot2.hand and slot3.hand != slot2.hand:
        step = slot1.finger.inward_step(slot2.finger)
    elif slot1.hand != slot2.hand and slot2.hand == slot3.hand:
        step = slot2.finger.inward_step(slot3.finger)
    else:
        return None

    if step == 1:
        return RollDirection.INWARD
    if step == -1:
        return RollDirection.OUTWARD
    return None


@dataclass(frozen=True)
class TrigramFlags:
    """Primary label plus sub-flags for one trigram."""

    primary: TrigramClass
    alt_same_finger: bool = False
    weak_redirect: bool = False
    bigram_roll: Optional[RollDirection] = None


def classify_trigram_flags(slot1: KeySlot, slot2: KeySlot, slot3: KeySlot) -> TrigramFlags:
    """Apply every trigram rule to one key triple."""
    primary = classify_trigram(slot1, slot2, slot3)
    return TrigramFlags(
        primary=primary,
        alt_same_finger=primary is TrigramClass.ALTERNATION and slot1.finger == slot3.finger,
        weak_redirect=(primary is TrigramClass.REDIRECT
                       and not any(slot.finger.is_index for slot in (slot1, slot2, slot3))),
        bigram_roll=classify_bigram_roll(slot1, slot2, slot3) if primary is TrigramClass.OTHER else None,
    )
