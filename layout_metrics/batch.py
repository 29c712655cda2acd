#!/usr/bin/env python3
"""
Batch analysis of many layouts against one corpus.

Layouts are independent, so a batch runs either sequentially or across a
multiprocessing pool that shares one read-only analyzer per worker.
Cancellation is cooperative: the cancel flag is checked between layouts and
a layout that has started is always finished. Report caching is left to the
caller, who may pass any MutableMapping; the batch only computes keys and
reads/fills that mapping.
"""

import logging
import multiprocessing
from multiprocessing.pool import AsyncResult
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, MutableMapping, Optional, Tuple

from layout_metrics.analyzer import LayoutAnalyzer
from layout_metrics.errors import LayoutMetricsError
from layout_metrics.layout_utils import Layout
from layout_metrics.log_utils import handle_error
from layout_metrics.report import CacheKey, MetricReport

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Reports of a batch run, in input order."""

    reports: List[MetricReport] = field(default_factory=list)
    cancelled: bool = False
    skipped: List[str] = field(default_factory=list)
    """Layouts never started because the batch was cancelled"""

    failed: Dict[str, str] = field(default_factory=dict)
    """Layout name -> error message for layouts that could not be analyzed"""

    cache_hits: int = 0

    @property
    def completed(self) -> List[str]:
        return [report.layout_name for report in self.reports]

    def by_name(self) -> Dict[str, MetricReport]:
        return {report.layout_name: report for report in self.reports}


# Per-process analyzer installed by the pool initializer
_worker_analyzer: Optional[LayoutAnalyzer] = None


def _init_worker(analyzer: LayoutAnalyzer) -> None:
    global _worker_analyzer
    _worker_analyzer = analyzer


def _analyze_in_worker(layout: Layout) -> MetricReport:
    return _worker_analyzer.analyze(layout)


def _is_cancelled(cancel_event) -> bool:
    return cancel_event is not None and cancel_event.is_set()


class BatchAnalyzer:
    """
    Runs a LayoutAnalyzer over many layouts.

    Args:
        analyzer: Shared analyzer (corpus, effort model, geometry)
        workers: Number of worker processes (1 = run in this process)
        cache: Optional caller-owned mapping of cache key -> MetricReport
    """

    def __init__(self, analyzer: LayoutAnalyzer, workers: int = 1,
                 cache: Optional[MutableMapping[CacheKey, MetricReport]] = None):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.analyzer = analyzer
        self.workers = workers
        self.cache = cache

    def _cached(self, layout: Layout) -> Optional[MetricReport]:
        if self.cache is None:
            return None
        return self.cache.get(self.analyzer.cache_key(layout))

    def _store(self, report: MetricReport) -> None:
        if self.cache is not None:
            self.cache[report.cache_key] = report

    def run(self, layouts: Iterable[Layout], cancel_event=None) -> BatchResult:
        """
        Analyze layouts in order.

        Args:
            layouts: Validated layouts
            cancel_event: Object with an is_set() method (e.g. threading.Event);
                checked before each layout is started

        Returns:
            BatchResult with the completed reports in input order
        """
        layouts = list(layouts)
        logger.info(f"Analyzing {len(layouts)} layout(s) with {self.workers} worker(s)")

        if self.workers == 1:
            result = self._run_sequential(layouts, cancel_event)
        else:
            result = self._run_pool(layouts, cancel_event)

        if result.cancelled:
            logger.warning(f"Batch cancelled: {len(result.reports)} completed, "
                           f"{len(result.skipped)} skipped")
        return result

    def _run_sequential(self, layouts: List[Layout], cancel_event) -> BatchResult:
        result = BatchResult()

        for index, layout in enumerate(layouts):
            if _is_cancelled(cancel_event):
                result.cancelled = True
                result.skipped = [remaining.name for remaining in layouts[index:]]
                break

            report = self._cached(layout)
            if report is not None:
                result.cache_hits += 1
            else:
                try:
                    report = self.analyzer.analyze(layout)
                except LayoutMetricsError as e:
                    handle_error(e, f"Layout '{layout.name}' failed", logger)
                    result.failed[layout.name] = str(e)
                    continue
                self._store(report)

            result.reports.append(report)
            logger.debug(f"Completed layout {index + 1}/{len(layouts)}: {layout.name}")

        return result

    def _run_pool(self, layouts: List[Layout], cancel_event) -> BatchResult:
        result = BatchResult()
        reports: Dict[int, MetricReport] = {}
        in_flight: Deque[Tuple[int, Layout, AsyncResult]] = deque()
        next_index = 0

        with multiprocessing.Pool(self.workers, initializer=_init_worker,
                                  initargs=(self.analyzer,)) as pool:
            while True:
                # Keep at most one layout per worker queued so cancellation takes effect promptly
                while len(in_flight) < self.workers and next_index < len(layouts):
                    if _is_cancelled(cancel_event):
                        result.cancelled = True
                        break

                    layout = layouts[next_index]
                    cached = self._cached(layout)
                    if cached is not None:
                        result.cache_hits += 1
                        reports[next_index] = cached
                    else:
                        in_flight.append((next_index, layout,
                                          pool.apply_async(_analyze_in_worker, (layout,))))
                    next_index += 1

                if not in_flight:
                    break

                index, layout, pending = in_flight.popleft()
                try:
                    report = pending.get()
                except LayoutMetricsError as e:
                    handle_error(e, f"Layout '{layout.name}' failed", logger)
                    result.failed[layout.name] = str(e)
                    continue

                self._store(report)
                reports[index] = report

        if result.cancelled:
            result.skipped = [layout.name for layout in layouts[next_index:]]
        result.reports = [reports[index] for index in sorted(reports)]
        return result


def analyze_layouts(layouts: Iterable[Layout], analyzer: LayoutAnalyzer,
                    workers: int = 1, cancel_event=None,
                    cache: Optional[MutableMapping[CacheKey, MetricReport]] = None) -> BatchResult:
    """Convenience wrapper around BatchAnalyzer.run()."""
    return BatchAnalyzer(analyzer, workers=workers, cache=cache).run(layouts, cancel_event)
