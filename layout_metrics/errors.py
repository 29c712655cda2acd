#!/usr/bin/env python3
"""
Exception hierarchy for keyboard layout analysis.

Validation errors are raised synchronously when a corpus or layout is built.
Per-item anomalies found while computing metrics (an unmapped character in a
bigram, a zero denominator) are never raised; they are recorded as
diagnostics on the MetricReport instead.
"""

from typing import Iterable, Tuple


class LayoutMetricsError(Exception):
    """Base class for all errors raised by the layout metrics engine."""


class CorpusError(LayoutMetricsError):
    """Corpus could not be built from the given sources."""


class EmptyCorpusError(CorpusError):
    """No valid tokens were left after normalization and filtering."""

    def __init__(self, message: str = "Corpus is empty after filtering"):
        super().__init__(message)


class LayoutError(LayoutMetricsError):
    """Layout mapping failed validation."""


class DuplicateAssignmentError(LayoutError):
    """Two or more characters were assigned to the same slot."""

    def __init__(self, slot_id: str, chars: Iterable[str] = ()):
        self.slot_id = slot_id
        self.chars: Tuple[str, ...] = tuple(sorted(chars))
        detail = f" (characters: {list(self.chars)})" if self.chars else ""
        super().__init__(f"Slot '{slot_id}' is assigned more than once{detail}")


class InvalidSlotError(LayoutError):
    """A slot identifier does not exist in the geometry table."""

    def __init__(self, slot_id: str, char: str = ""):
        self.slot_id = slot_id
        self.char = char
        where = f" for character '{char}'" if char else ""
        super().__init__(f"Unknown slot identifier '{slot_id}'{where}")


class MissingRequiredCharacterError(LayoutError):
    """The layout does not cover the required alphabet."""

    def __init__(self, chars: Iterable[str]):
        self.chars: Tuple[str, ...] = tuple(sorted(chars))
        super().__init__(f"Layout is missing required characters: {''.join(self.chars)}")


class ComputationError(LayoutMetricsError):
    """
    Inputs are individually valid but cannot be combined.

    Raised for truly invalid states only, e.g. a layout whose slots are not in
    the analyzer's geometry table, an effort model with no entry for a finger
    or row in use, or a corpus holding negative or non-finite frequencies.
    """
