#!/usr/bin/env python3
"""
Single-layout analysis entry point.

LayoutAnalyzer holds the shared, read-only inputs of an analysis (corpus,
effort model, geometry, classifier thresholds) and computes a MetricReport
for any validated layout. Analysis performs no I/O and does not modify its
inputs, so one analyzer can serve many layouts, in any process.
"""

import logging
import time
from typing import Any, Dict, Iterable, Optional, Tuple

from layout_metrics.aggregator import METRIC_NAMES, MetricAccumulator
from layout_metrics.calculator import EffortDistanceCalculator
from layout_metrics.classifier import ClassifierConfig
from layout_metrics.corpus import Corpus
from layout_metrics.effort_model import EffortModel
from layout_metrics.geometry import STANDARD_GEOMETRY, GeometryTable
from layout_metrics.layout_utils import Layout
from layout_metrics.report import CacheKey, MetricReport

logger = logging.getLogger(__name__)


def cache_key(layout: Layout, corpus: Corpus, effort_model: EffortModel) -> CacheKey:
    """Key under which a report for this input triple may be cached by the caller."""
    return (layout.layout_hash, corpus.version, effort_model.fingerprint)


class LayoutAnalyzer:
    """Computes metric reports for layouts against one corpus and effort model."""

    def __init__(self, corpus: Corpus,
                 effort_model: Optional[EffortModel] = None,
                 geometry: GeometryTable = STANDARD_GEOMETRY,
                 classifier_config: Optional[ClassifierConfig] = None,
                 metrics: Optional[Iterable[str]] = None,
                 precision: int = 2):
        """
        Initialize the analyzer.

        Args:
            corpus: Frequency tables to weight every metric by
            effort_model: Effort tables (defaults to the standard model)
            geometry: Geometry table layouts must have been validated against
            classifier_config: Classification thresholds (defaults to built-in tables)
            metrics: Names of the metrics to report (None = all)
            precision: Decimal places used when the report is exported

        Raises:
            ValueError: If an unknown metric name is requested
        """
        self.corpus = corpus
        self.effort_model = effort_model or EffortModel.standard()
        self.geometry = geometry
        self.classifier_config = classifier_config or ClassifierConfig.from_config()
        self.precision = precision

        if metrics is None:
            self.metric_names: Tuple[str, ...] = METRIC_NAMES
        else:
            requested = tuple(metrics)
            unknown = [name for name in requested if name not in METRIC_NAMES]
            if unknown:
                raise ValueError(f"Unknown metrics: {unknown}. Available: {list(METRIC_NAMES)}")
            self.metric_names = requested

    @classmethod
    def from_config(cls, corpus: Corpus, config: Dict[str, Any],
                    effort_model_name: Optional[str] = None,
                    geometry: GeometryTable = STANDARD_GEOMETRY) -> 'LayoutAnalyzer':
        """
        Build an analyzer from a full configuration dictionary.

        Args:
            corpus: Corpus to analyze against
            config: Configuration as returned by ConfigLoader.load_config()
            effort_model_name: Named effort model (defaults to default_effort_model)
            geometry: Geometry table
        """
        classifier_section = config.get('classifier', {})
        name = effort_model_name or config.get('default_effort_model', 'standard')
        models = config.get('effort_models', {})
        if name not in models:
            raise ValueError(f"Effort model '{name}' not found. Available: {sorted(models)}")

        model_config = dict(models[name])
        model_config.setdefault('name', name)
        effort_model = EffortModel.from_config(
            model_config, center_columns=classifier_section.get('center_columns')
        )

        report_section = config.get('report', {})
        return cls(
            corpus,
            effort_model=effort_model,
            geometry=geometry,
            classifier_config=ClassifierConfig.from_config(classifier_section),
            metrics=report_section.get('metrics'),
            precision=int(report_section.get('precision', 2)),
        )

    def cache_key(self, layout: Layout) -> CacheKey:
        return cache_key(layout, self.corpus, self.effort_model)

    def analyze(self, layout: Layout) -> MetricReport:
        """
        Main entry point for analyzing a layout.

        Args:
            layout: Validated layout

        Returns:
            MetricReport with timing information

        Raises:
            ComputationError: If the layout does not fit the analyzer's geometry
                or effort model, or the corpus holds an invalid frequency
        """
        start_time = time.time()

        calculator = EffortDistanceCalculator(layout, self.effort_model, self.geometry)
        accumulator = MetricAccumulator(calculator, self.classifier_config)

        for char, weight in self.corpus.char_freq.items():
            accumulator.add_char(char, weight)
        for bigram, weight in self.corpus.bigram_freq.items():
            accumulator.add_bigram(bigram, weight)
        for trigram, weight in self.corpus.trigram_freq.items():
            accumulator.add_trigram(trigram, weight)

        aggregate = accumulator.finalize()

        report = MetricReport(
            layout_name=layout.name,
            metrics={name: aggregate.metrics[name] for name in self.metric_names},
            undefined=frozenset(name for name in aggregate.undefined if name in self.metric_names),
            breakdowns=aggregate.breakdowns,
            diagnostics=aggregate.diagnostics,
            layout_hash=layout.layout_hash,
            corpus_version=self.corpus.version,
            effort_model_version=self.effort_model.fingerprint,
            precision=self.precision,
            execution_time=time.time() - start_time,
        )

        logger.debug(f"Analyzed layout '{layout.name}' in {report.execution_time:.3f}s")
        return report


def analyze_layout(layout: Layout, corpus: Corpus,
                   effort_model: Optional[EffortModel] = None,
                   geometry: GeometryTable = STANDARD_GEOMETRY,
                   classifier_config: Optional[ClassifierConfig] = None) -> MetricReport:
    """Convenience function: analyze one layout with a throwaway analyzer."""
    return LayoutAnalyzer(corpus, effort_model, geometry, classifier_config).analyze(layout)
