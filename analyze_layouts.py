#!/usr/bin/env python3
"""
Keyboard layout analyzer.

(c) Arno Klein (arnoklein.info), MIT License (see LICENSE)

Computes biomechanical and flow metrics for one or more keyboard layouts,
weighted by a text corpus: effort, travel distance, same-finger bigrams
(basic, skip, two-row), scissors, lateral stretches, two-row jumps, center
column usage, hand alternation, and trigram alternation, rolls and
redirects, plus finger/row/column/hand usage breakdowns.

Usage:

  # QWERTY (keys listed in QWERTY order) against a text
  python analyze_layouts.py --qwerty "qwertyuiopasdfghjkl;zxcvbnm,./" --text "the quick brown fox jumps over the lazy dog"

  # Letters and positions, several text files
  python analyze_layouts.py --letters "etaoinshrlcu..." --positions "FDESGJWXRTYZ..." --text-file a.txt --text-file b.txt

  # Every layout in a JSON file, precomputed frequencies, comparison CSV
  python analyze_layouts.py --layout-file layouts.json --char-freq chars.csv --bigram-freq bigrams.csv --compare-csv out.csv

  # CSV output
  python analyze_layouts.py --qwerty "qwertyuiopasdfghjkl;zxcvbnm,./" --text-file corpus.txt --csv
"""

import logging
import sys
from typing import List, Optional

from layout_metrics.analyzer import LayoutAnalyzer
from layout_metrics.batch import analyze_layouts
from layout_metrics.cli_utils import (
    EXIT_COMPUTATION_ERROR, EXIT_OK, StandardCLIParser, get_corpus_from_args, get_geometry_from_args,
    get_layouts_from_args, handle_common_errors
)
from layout_metrics.config_loader import get_config_loader
from layout_metrics.log_utils import setup_logging
from layout_metrics.output_utils import format_comparison_output, print_results, save_comparison_csv

logger = logging.getLogger(__name__)


@handle_common_errors
def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = StandardCLIParser().parse_args(argv)

    config_loader = get_config_loader(args.config)
    config = config_loader.load_config()
    setup_logging(config.get('logging'), quiet=args.quiet, verbose=args.verbose)

    for issue in config_loader.validate_config():
        logger.warning(f"Configuration: {issue}")

    geometry = get_geometry_from_args(args)
    layouts = get_layouts_from_args(args, geometry, config.get('layout'))
    corpus = get_corpus_from_args(args, config.get('corpus'))
    logger.info(corpus.summary())

    analyzer = LayoutAnalyzer.from_config(corpus, config, args.effort_model, geometry)
    workers = args.workers or int(config.get('corpus', {}).get('workers', 1))
    batch = analyze_layouts(layouts, analyzer, workers=min(workers, len(layouts)))

    output_config = config_loader.get_output_format_config(args.output_format)
    if len(batch.reports) == 1 and not args.sort_by:
        print_results(batch.reports[0], args.output_format, output_config)
    elif batch.reports:
        print(format_comparison_output(batch.reports, args.output_format, sort_by=args.sort_by))

    if args.compare_csv:
        save_comparison_csv(batch.reports, args.compare_csv,
                            {layout.name: layout.slot_ids for layout in layouts})

    if batch.failed:
        logger.error(f"{len(batch.failed)} layout(s) could not be analyzed: {', '.join(batch.failed)}")
        return EXIT_COMPUTATION_ERROR

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
