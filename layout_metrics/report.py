#!/usr/bin/env python3
"""
Result container for keyboard layout analysis.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from layout_metrics.geometry import read_only, writable

CacheKey = Tuple[str, str, str]


@dataclass(frozen=True)
class MetricReport:
    """
    Standardized result of analyzing one (layout, corpus, effort model) triple.

    Metric values are kept at full precision; to_dict() rounds them for
    export. A report is never modified after creation: if any input changes,
    a new report is computed.
    """

    layout_name: str
    """Name of the analyzed layout"""

    metrics: Mapping[str, float]
    """Named scalar metrics (ratios and percentages)"""

    undefined: FrozenSet[str] = frozenset()
    """Metrics whose denominator was zero (reported as 0.0)"""

    breakdowns: Mapping[str, Mapping[str, float]] = field(default_factory=dict)
    """Usage percentages per finger, row, column and hand, plus top same-finger bigrams"""

    diagnostics: Mapping[str, Any] = field(default_factory=dict)
    """Unmapped character mass and related anomalies"""

    layout_hash: str = ""
    corpus_version: str = ""
    effort_model_version: str = ""

    precision: int = 2
    """Decimal places used by to_dict() and summary()"""

    execution_time: float = field(default=0.0, compare=False)
    """Time taken to compute the report (seconds)"""

    def __post_init__(self):
        for name in ('metrics', 'breakdowns', 'diagnostics'):
            object.__setattr__(self, name, read_only(getattr(self, name)))
        object.__setattr__(self, 'undefined', frozenset(self.undefined))

    def __getstate__(self):
        return {name: writable(value) for name, value in self.__dict__.items()}

    def __setstate__(self, state):
        for name, value in state.items():
            object.__setattr__(self, name, value)
        self.__post_init__()

    @property
    def cache_key(self) -> CacheKey:
        """(layout_hash, corpus_version, effort_model_version)"""
        return (self.layout_hash, self.corpus_version, self.effort_model_version)

    def get_metric(self, name: str) -> float:
        """
        Get a metric value at full precision.

        Raises:
            KeyError: If the metric is not in this report
        """
        if name not in self.metrics:
            available = list(self.metrics.keys())
            raise KeyError(f"Metric '{name}' not found. Available: {available}")
        return self.metrics[name]

    def is_defined(self, name: str) -> bool:
        return name in self.metrics and name not in self.undefined

    def to_dict(self, precision: Optional[int] = None) -> Dict[str, Any]:
        """
        Convert the report to a flat record of named fields plus nested breakdowns.

        Args:
            precision: Decimal places for metric values (defaults to self.precision)

        Returns:
            Dictionary suitable for JSON export
        """
        digits = self.precision if precision is None else precision

        result: Dict[str, Any] = {
            'layout_name': self.layout_name,
            'layout_hash': self.layout_hash,
            'corpus_version': self.corpus_version,
            'effort_model_version': self.effort_model_version,
        }
        for name, value in self.metrics.items():
            result[name] = round(value, digits)

        result['undefined'] = sorted(self.undefined)
        result['unmapped_pct'] = round(self.diagnostics.get('unmapped_pct', 0.0), digits)
        result['breakdowns'] = {
            group: {key: round(value, digits) for key, value in values.items()}
            for group, values in self.breakdowns.items()
        }
        diagnostics: Dict[str, Any] = {}
        for key, value in self.diagnostics.items():
            if isinstance(value, float):
                value = round(value, digits)
            elif isinstance(value, tuple):
                value = list(value)
            diagnostics[key] = value
        result['diagnostics'] = diagnostics
        result['execution_time'] = self.execution_time
        return result

    def flat_record(self, precision: Optional[int] = None) -> Dict[str, Any]:
        """Scalar fields only (one row of a comparison table)."""
        return {key: value for key, value in self.to_dict(precision).items()
                if isinstance(value, (str, int, float, bool))}

    def summary(self) -> str:
        """
        Get a brief summary string of the results.

        Returns:
            Human-readable summary
        """
        summary_lines = [f"Layout: {self.layout_name}"]

        for name, value in self.metrics.items():
            marker = " (undefined)" if name in self.undefined else ""
            summary_lines.append(f"  {name}: {value:.{self.precision}f}{marker}")

        unmapped = self.diagnostics.get('unmapped_pct', 0.0)
        if unmapped > 0:
            summary_lines.append(f"  Unmapped characters: {unmapped:.{self.precision}f}% "
                                 f"({''.join(self.diagnostics.get('unmapped_chars', []))})")

        if self.execution_time > 0:
            summary_lines.append(f"Execution time: {self.execution_time:.3f}s")

        return "\n".join(summary_lines)
