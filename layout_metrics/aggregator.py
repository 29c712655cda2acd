#!/usr/bin/env python3
"""
Aggregation and normalization of weighted classification counts.

MetricAccumulator walks the corpus once: each character, bigram and
trigram is resolved to key slots, classified, and its frequency added to
every bucket it falls in. finalize() turns the bucket sums into metrics:

  - percentage metrics divide a bucket by its relevant mass and multiply by 100
    (bigram buckets by mapped bigram mass, trigram buckets by mapped trigram
    mass, character tallies by mapped character mass, pinky-off-home by
    pinky keystroke mass)
  - ratio metrics (effort, distance, pinky_distance, lateral_stretch_severity)
    are plain ratios

A zero denominator yields 0.0 and the metric name is reported as undefined.
Sums are kept at full precision; rounding happens only on output.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Sequence, Set, Tuple

from layout_metrics.calculator import EffortDistanceCalculator
from layout_metrics.classifier import (
    DEFAULT_CLASSIFIER_CONFIG, ClassifierConfig, RollDirection, SameFingerClass, ScissorsClass,
    TrigramClass, classify_bigram, classify_trigram_flags, is_center_column
)
from layout_metrics.errors import ComputationError

logger = logging.getLogger(__name__)

METRIC_NAMES: Tuple[str, ...] = (
    'effort',
    'distance',
    'pinky_distance',
    'pinky_off_home_pct',
    'same_finger_bigrams_pct',
    'basic_sfb_pct',
    'skip_bigrams_pct',
    'skip_bigrams2_pct',
    'two_row_sfb_pct',
    'scissors_pct',
    'pinky_scissors_pct',
    'general_scissors_pct',
    'lateral_stretch_pct',
    'lateral_stretch_severity',
    'two_row_jumps_pct',
    'hand_alternation_pct',
    'col5_6_pct',
    'trigram_alt_pct',
    'alt_same_finger_pct',
    'roll_in_pct',
    'roll_out_pct',
    'tri_redirect_pct',
    'weak_redirect_pct',
    'bigram_roll_in_pct',
    'bigram_roll_out_pct',
    'trigram_other_pct',
)

# Same-finger class -> reported metric
SAME_FINGER_METRICS = {
    SameFingerClass.BASIC_SFB: 'basic_sfb_pct',
    SameFingerClass.SKIP_BIGRAM_2U: 'skip_bigrams_pct',
    SameFingerClass.SKIP_BIGRAM_3U_PLUS: 'skip_bigrams2_pct',
    SameFingerClass.TWO_ROW_SFB: 'two_row_sfb_pct',
}

TRIGRAM_METRICS = {
    TrigramClass.ALTERNATION: 'trigram_alt_pct',
    TrigramClass.ROLL_IN: 'roll_in_pct',
    TrigramClass.ROLL_OUT: 'roll_out_pct',
    TrigramClass.REDIRECT: 'tri_redirect_pct',
    TrigramClass.OTHER: 'trigram_other_pct',
}

TOP_SAME_FINGER_BIGRAMS = 10


def check_weight(weight: float, ngram: Sequence[str]) -> float:
    """
    Reject frequencies no corpus can legitimately hold.

    Raises:
        ComputationError: If the weight is negative or not finite
    """
    if not math.isfinite(weight) or weight < 0:
        raise ComputationError(f"Invalid corpus frequency {weight!r} for {''.join(ngram)!r}")
    return weight


def safe_ratio(numerator: float, denominator: float, name: str, undefined: Set[str]) -> float:
    """numerator / denominator, or 0.0 with name recorded as undefined."""
    if denominator <= 0:
        undefined.add(name)
        return 0.0
    return numerator / denominator


def safe_percentage(numerator: float, denominator: float, name: str, undefined: Set[str]) -> float:
    if denominator <= 0:
        undefined.add(name)
        return 0.0
    return numerator / denominator * 100.0


@dataclass
class AggregateResult:
    """Output of MetricAccumulator.finalize()."""

    metrics: Dict[str, float]
    undefined: FrozenSet[str]
    breakdowns: Dict[str, Dict[str, float]]
    diagnostics: Dict[str, Any]


@dataclass
class _Masses:
    total_chars: float = 0.0
    mapped_chars: float = 0.0
    pinky_chars: float = 0.0
    total_bigrams: float = 0.0
    mapped_bigrams: float = 0.0
    total_trigrams: float = 0.0
    mapped_trigrams: float = 0.0
    distance: float = 0.0


class MetricAccumulator:
    """Single-pass accumulator of weighted bucket sums for one layout."""

    def __init__(self, calculator: EffortDistanceCalculator,
                 classifier_config: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG):
        self.calculator = calculator
        self.classifier_config = classifier_config

        self.mass = _Masses()
        self.buckets: Dict[str, float] = defaultdict(float)
        self.finger_usage: Dict[str, float] = defaultdict(float)
        self.row_usage: Dict[str, float] = defaultdict(float)
        self.column_usage: Dict[int, float] = defaultdict(float)
        self.hand_usage: Dict[str, float] = defaultdict(float)
        self.same_finger_bigrams: Dict[str, float] = defaultdict(float)
        self.unmapped_chars: Dict[str, float] = defaultdict(float)
        self.unmapped_bigram_mass = 0.0
        self.unmapped_trigram_mass = 0.0

    def add_char(self, char: str, weight: float) -> None:
        weight = check_weight(weight, char)
        self.mass.total_chars += weight

        slot = self.calculator.slot(char)
        if slot is None:
            self.unmapped_chars[char] += weight
            return

        self.mass.mapped_chars += weight
        self.buckets['effort'] += self.calculator.char_effort(char) * weight
        self.finger_usage[slot.finger.short_name] += weight
        self.row_usage[slot.row.name.lower()] += weight
        self.column_usage[slot.column] += weight
        self.hand_usage[slot.hand.name.lower()] += weight

        if is_center_column(slot, self.classifier_config):
            self.buckets['center_column'] += weight

        if slot.finger.is_pinky:
            self.mass.pinky_chars += weight
            if not slot.is_home:
                self.buckets['pinky_off_home'] += weight

    def add_bigram(self, bigram: Tuple[str, str], weight: float) -> None:
        weight = check_weight(weight, bigram)
        self.mass.total_bigrams += weight

        char1, char2 = bigram
        slot1 = self.calculator.slot(char1)
        slot2 = self.calculator.slot(char2)
        if slot1 is None or slot2 is None:
            self.unmapped_bigram_mass += weight
            return

        self.mass.mapped_bigrams += weight

        distance = self.calculator.transition_distance(char1, char2)
        self.mass.distance += distance * weight
        if slot2.finger.is_pinky:
            self.buckets['pinky_distance'] += distance * weight

        flags = classify_bigram(slot1, slot2, self.classifier_config)

        if flags.same_finger is not None:
            self.buckets[SAME_FINGER_METRICS[flags.same_finger]] += weight
            self.buckets['same_finger'] += weight
            self.same_finger_bigrams[char1 + char2] += weight

        if flags.scissors is ScissorsClass.PINKY_SCISSORS:
            self.buckets['pinky_scissors_pct'] += weight
        elif flags.scissors is ScissorsClass.GENERAL_SCISSORS:
            self.buckets['general_scissors_pct'] += weight

        if flags.stretch_severity is not None:
            self.buckets['lateral_stretch'] += weight
            self.buckets['lateral_stretch_severity'] += flags.stretch_severity * weight

        if flags.two_row_jump:
            self.buckets['two_row_jumps_pct'] += weight
        if flags.alternation:
            self.buckets['hand_alternation_pct'] += weight

    def add_trigram(self, trigram: Tuple[str, str, str], weight: float) -> None:
        weight = check_weight(weight, trigram)
        self.mass.total_trigrams += weight

        slots = [self.calculator.slot(char) for char in trigram]
        if any(slot is None for slot in slots):
            self.unmapped_trigram_mass += weight
            return

        self.mass.mapped_trigrams += weight
        flags = classify_trigram_flags(*slots)

        self.buckets[TRIGRAM_METRICS[flags.primary]] += weight
        if flags.alt_same_finger:
            self.buckets['alt_same_finger_pct'] += weight
        if flags.weak_redirect:
            self.buckets['weak_redirect_pct'] += weight
        if flags.bigram_roll is RollDirection.INWARD:
            self.buckets['bigram_roll_in_pct'] += weight
        elif flags.bigram_roll is RollDirection.OUTWARD:
            self.buckets['bigram_roll_out_pct'] += weight

    def finalize(self) -> AggregateResult:
        """Normalize bucket sums into metrics, breakdowns and diagnostics."""
        undefined: Set[str] = set()
        b = self.buckets
        mass = self.mass

        metrics: Dict[str, float] = {
            'effort': safe_ratio(b['effort'], mass.mapped_chars, 'effort', undefined),
            'distance': safe_ratio(mass.distance, mass.mapped_bigrams, 'distance', undefined),
            'pinky_distance': safe_ratio(b['pinky_distance'], mass.distance, 'pinky_distance', undefined),
            'pinky_off_home_pct': safe_percentage(b['pinky_off_home'], mass.pinky_chars,
                                                  'pinky_off_home_pct', undefined),
            'same_finger_bigrams_pct': safe_percentage(b['same_finger'], mass.mapped_bigrams,
                                                       'same_finger_bigrams_pct', undefined),
        }

        for name in ('basic_sfb_pct', 'skip_bigrams_pct', 'skip_bigrams2_pct', 'two_row_sfb_pct',
                     'pinky_scissors_pct', 'general_scissors_pct', 'two_row_jumps_pct',
                     'hand_alternation_pct'):
            metrics[name] = safe_percentage(b[name], mass.mapped_bigrams, name, undefined)

        metrics['scissors_pct'] = safe_percentage(
            b['pinky_scissors_pct'] + b['general_scissors_pct'], mass.mapped_bigrams, 'scissors_pct', undefined)
        metrics['lateral_stretch_pct'] = safe_percentage(
            b['lateral_stretch'], mass.mapped_bigrams, 'lateral_stretch_pct', undefined)
        metrics['lateral_stretch_severity'] = safe_ratio(
            b['lateral_stretch_severity'], mass.mapped_bigrams, 'lateral_stretch_severity', undefined)
        metrics['col5_6_pct'] = safe_percentage(b['center_column'], mass.mapped_chars, 'col5_6_pct', undefined)

        for name in ('trigram_alt_pct', 'alt_same_finger_pct', 'roll_in_pct', 'roll_out_pct',
                     'tri_redirect_pct', 'weak_redirect_pct', 'bigram_roll_in_pct',
                     'bigram_roll_out_pct', 'trigram_other_pct'):
            metrics[name] = safe_percentage(b[name], mass.mapped_trigrams, name, undefined)

        ordered = {name: metrics[name] for name in METRIC_NAMES}

        return AggregateResult(
            metrics=ordered,
            undefined=frozenset(undefined),
            breakdowns=self._breakdowns(),
            diagnostics=self._diagnostics(),
        )

    def _usage(self, table: Dict[Any, float]) -> Dict[str, float]:
        if self.mass.mapped_chars <= 0:
            return {}
        return {str(key): value / self.mass.mapped_chars * 100.0 for key, value in sorted(table.items())}

    def _breakdowns(self) -> Dict[str, Dict[str, float]]:
        top_sfbs: List[Tuple[str, float]] = sorted(
            self.same_finger_bigrams.items(), key=lambda item: (-item[1], item[0])
        )[:TOP_SAME_FINGER_BIGRAMS]

        return {
            'finger_usage': self._usage(self.finger_usage),
            'row_usage': self._usage(self.row_usage),
            'column_usage': self._usage(self.column_usage),
            'hand_usage': self._usage(self.hand_usage),
            'top_same_finger_bigrams': {
                bigram: weight / self.mass.mapped_bigrams * 100.0 for bigram, weight in top_sfbs
            } if self.mass.mapped_bigrams > 0 else {},
        }

    def _diagnostics(self) -> Dict[str, Any]:
        unmapped_mass = sum(self.unmapped_chars.values())
        unmapped = sorted(self.unmapped_chars)
        if unmapped:
            logger.warning(f"Layout '{self.calculator.layout.name}' does not map corpus characters: "
                           f"{''.join(unmapped)}")

        def share(part: float, whole: float) -> float:
            return part / whole * 100.0 if whole > 0 else 0.0

        return {
            'unmapped_pct': share(unmapped_mass, self.mass.total_chars),
            'unmapped_chars': unmapped,
            'unmapped_bigram_pct': share(self.unmapped_bigram_mass, self.mass.total_bigrams),
            'unmapped_trigram_pct': share(self.unmapped_trigram_mass, self.mass.total_trigrams),
            'layout_unmapped': sorted(self.calculator.layout.unmapped),
        }
