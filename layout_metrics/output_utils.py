#!/usr/bin/env python3
"""
Output utilities for keyboard layout analysis.

Common functions for formatting and displaying metric reports in various formats.
"""

import logging
import sys
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from layout_metrics.geometry import QWERTY_ORDER
from layout_metrics.report import MetricReport

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ('detailed', 'csv', 'score_only')

# Breakdown groups shown by the detailed format, in display order
BREAKDOWN_TITLES = {
    'finger_usage': 'Finger usage (%)',
    'row_usage': 'Row usage (%)',
    'column_usage': 'Column usage (%)',
    'hand_usage': 'Hand usage (%)',
    'top_same_finger_bigrams': 'Top same-finger bigrams (% of bigrams)',
}


def format_layout_in_qwerty_order(layout_mapping: Mapping[str, str]) -> str:
    """
    Format layout mapping as character sequence in QWERTY position order.

    Args:
        layout_mapping: Dictionary mapping characters to QWERTY positions

    Returns:
        String of characters in QWERTY position order (e.g., "qwertyuiop...")
    """
    if not layout_mapping:
        return ""

    pos_to_char = {pos.upper(): char for char, pos in layout_mapping.items()}
    return ''.join(pos_to_char[pos] for pos in QWERTY_ORDER if pos in pos_to_char)


def _format_value(value: float, precision: int) -> str:
    return f"{value:.{precision}f}"


def format_csv_output(report: MetricReport,
                      config: Optional[Dict[str, Any]] = None,
                      include_metadata: bool = True) -> str:
    """
    Format a metric report as CSV output.

    Args:
        report: MetricReport to format
        config: Output format configuration (delimiter, precision, include_headers)
        include_metadata: Whether to include layout name, unmapped share and timing

    Returns:
        CSV formatted string
    """
    if config is None:
        config = {}

    delimiter = config.get('delimiter', ',')
    precision = config.get('precision', 6)
    include_headers = config.get('include_headers', True)

    headers: List[str] = []
    values: List[str] = []

    if include_metadata:
        headers.append('layout_name')
        values.append(report.layout_name)

    for name, value in report.metrics.items():
        headers.append(name)
        values.append(_format_value(value, precision))

    if include_metadata:
        headers.extend(['unmapped_pct', 'undefined', 'execution_time'])
        values.append(_format_value(report.diagnostics.get('unmapped_pct', 0.0), precision))
        values.append(';'.join(sorted(report.undefined)))
        values.append(f"{report.execution_time:.3f}")

    lines = []
    if include_headers:
        lines.append(delimiter.join(headers))
    lines.append(delimiter.join(values))
    return '\n'.join(lines)


def format_score_only_output(report: MetricReport,
                             config: Optional[Dict[str, Any]] = None) -> str:
    """
    Format a metric report as score-only output (compact format).

    Returns:
        Separator-joined metric values in report order
    """
    if config is None:
        config = {}

    precision = config.get('precision', report.precision)
    separator = config.get('separator', ' ')
    return separator.join(_format_value(value, precision) for value in report.metrics.values())


def format_detailed_output(report: MetricReport,
                           config: Optional[Dict[str, Any]] = None) -> str:
    """
    Format a metric report as detailed human-readable output.

    Args:
        report: MetricReport to format
        config: Output format configuration (show_breakdown, show_diagnostics)

    Returns:
        Formatted detailed output string
    """
    if config is None:
        config = {}

    show_breakdown = config.get('show_breakdown', True)
    show_diagnostics = config.get('show_diagnostics', True)
    precision = report.precision

    lines = [f"Layout: {report.layout_name}", "=" * 70, "Metrics:"]

    for name, value in report.metrics.items():
        metric_name = name.replace('_', ' ').capitalize()
        marker = "  (undefined)" if name in report.undefined else ""
        lines.append(f"  {metric_name:<28}: {value:10.{precision}f}{marker}")

    if show_breakdown:
        for group, title in BREAKDOWN_TITLES.items():
            values = report.breakdowns.get(group)
            if not values:
                continue
            lines.append(f"\n{title}:")
            for key, value in values.items():
                lines.append(f"  {key:<12}: {value:8.{precision}f}")

    if show_diagnostics and report.diagnostics:
        lines.append("\nDiagnostics:")
        for key, value in report.diagnostics.items():
            key_name = key.replace('_', ' ').capitalize()
            if isinstance(value, float):
                lines.append(f"  {key_name:<28}: {value:8.{precision}f}")
            elif isinstance(value, (list, tuple)):
                lines.append(f"  {key_name:<28}: {''.join(value) if value else '-'}")
            else:
                lines.append(f"  {key_name:<28}: {value}")

    if report.execution_time > 0:
        lines.append(f"\nExecution time: {report.execution_time:.3f}s")

    return '\n'.join(lines)


def format_report(report: MetricReport,
                  output_format: str = "detailed",
                  config: Optional[Dict[str, Any]] = None) -> str:
    """
    Format a report in the named format.

    Raises:
        ValueError: If the format is unknown
    """
    if output_format == "csv":
        return format_csv_output(report, config)
    if output_format == "score_only":
        return format_score_only_output(report, config)
    if output_format == "detailed":
        return format_detailed_output(report, config)
    raise ValueError(f"Unknown output format: {output_format}")


def print_results(report: MetricReport,
                  output_format: str = "detailed",
                  config: Optional[Dict[str, Any]] = None,
                  file=None) -> None:
    """
    Print a metric report in the specified format.

    Args:
        report: MetricReport to print
        output_format: Format type ('detailed', 'csv', 'score_only')
        config: Output format configuration
        file: File object to write to (defaults to stdout)
    """
    if file is None:
        file = sys.stdout
    print(format_report(report, output_format, config), file=file)


def save_results_to_file(report: MetricReport,
                         filepath: str,
                         output_format: str = "csv",
                         config: Optional[Dict[str, Any]] = None) -> None:
    """Save a metric report to a file in the specified format."""
    content = format_report(report, output_format, config)
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(content)
        f.write('\n')


def comparison_frame(reports: Sequence[MetricReport],
                     layout_mappings: Optional[Mapping[str, Mapping[str, str]]] = None,
                     precision: Optional[int] = None) -> pd.DataFrame:
    """
    Build a comparison table with one row per layout and one column per metric.

    Args:
        reports: Reports to compare
        layout_mappings: Optional {layout_name: {char: slot_id}} to add the
            layout characters in QWERTY key order
        precision: Round metric values (None = full precision)
    """
    rows = []
    for report in reports:
        row: Dict[str, Any] = {'layout': report.layout_name}
        if layout_mappings is not None:
            row['layout_chars'] = format_layout_in_qwerty_order(layout_mappings.get(report.layout_name, {}))
        for name, value in report.metrics.items():
            row[name] = round(value, precision) if precision is not None else value
        row['unmapped_pct'] = report.diagnostics.get('unmapped_pct', 0.0)
        rows.append(row)
    return pd.DataFrame(rows)


def format_comparison_output(reports: Sequence[MetricReport],
                             output_format: str = "detailed",
                             sort_by: Optional[str] = None) -> str:
    """
    Format a comparison of several metric reports.

    Args:
        reports: Reports to compare
        output_format: Format type ('detailed', 'csv', 'score_only')
        sort_by: Metric to rank layouts by (ascending; detailed format only)

    Returns:
        Formatted comparison string
    """
    if not reports:
        return "No results to compare"

    precision = reports[0].precision
    metric_names = list(reports[0].metrics.keys())
    lines = []

    if output_format == "csv":
        lines.append(','.join(['layout_name'] + metric_names))
        for report in reports:
            values = [f"{report.metrics.get(name, 0.0):.6f}" for name in metric_names]
            lines.append(','.join([report.layout_name] + values))

    elif output_format == "score_only":
        for report in reports:
            lines.append(f"{report.layout_name}: {format_score_only_output(report)}")

    else:
        lines.append("\nLayout Comparison")
        lines.append("=" * 70)

        ordered = list(reports)
        if sort_by is not None:
            if sort_by not in metric_names:
                raise ValueError(f"Cannot sort by unknown metric '{sort_by}'")
            ordered.sort(key=lambda report: report.metrics[sort_by])
            lines.append(f"Ranked by {sort_by} (lowest first)")

        header = f"  {'Metric':<26}" + ''.join(f" {report.layout_name[:12]:>12}" for report in ordered)
        lines.append(header)
        lines.append("  " + "-" * (26 + 13 * len(ordered)))
        for name in metric_names:
            row = f"  {name:<26}"
            for report in ordered:
                row += f" {report.metrics.get(name, 0.0):12.{precision}f}"
            lines.append(row)

    return '\n'.join(lines)


def save_comparison_csv(reports: Sequence[MetricReport],
                        csv_file: str,
                        layout_mappings: Optional[Mapping[str, Mapping[str, str]]] = None) -> None:
    """
    Save comparison results to CSV file with layout mappings.

    Args:
        reports: Reports to save
        csv_file: Output CSV file path
        layout_mappings: Dictionary of {layout_name: {char: position}} mappings
    """
    if not reports:
        logger.warning("No results to save")
        return

    df = comparison_frame(reports, layout_mappings)
    df.to_csv(csv_file, index=False)
    logger.info(f"Comparison saved to: {csv_file}")
