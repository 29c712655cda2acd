#!/usr/bin/env python3
"""
CLI utilities for keyboard layout analysis.

Command-line argument parsing and the helpers that turn parsed arguments
into validated layouts and a corpus.
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional

from layout_metrics.corpus import Corpus, CorpusConfig, build_corpus
from layout_metrics.data_utils import (
    load_frequency_corpus, load_geometry_csv, load_layout_json, load_text_sources
)
from layout_metrics.errors import ComputationError, CorpusError, LayoutError
from layout_metrics.geometry import STANDARD_GEOMETRY, GeometryTable
from layout_metrics.layout_utils import (
    Layout, create_layout_mapping, layout_from_qwerty_string, validate_layout
)
from layout_metrics.output_utils import OUTPUT_FORMATS

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_COMPUTATION_ERROR = 3
EXIT_INTERRUPTED = 130


class StandardCLIParser:
    """
    Command-line argument parser for layout analysis.

    A layout comes from --letters/--positions, --qwerty or --layout-file; the
    corpus from --text, --text-file or precomputed frequency CSVs.
    """

    def __init__(self, prog: str = "analyze_layouts.py"):
        self.prog = prog
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog=self.prog,
            description="Keyboard layout metrics: effort, distance, same-finger bigrams, "
                        "scissors, lateral stretches, rolls, redirects and alternation.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._generate_epilog(),
        )
        self._add_layout_arguments(parser)
        self._add_corpus_arguments(parser)
        self._add_analysis_arguments(parser)
        self._add_output_arguments(parser)
        return parser

    def _add_layout_arguments(self, parser: argparse.ArgumentParser) -> None:
        layout_group = parser.add_argument_group('Layout Definition')

        layout_group.add_argument(
            '--letters', '--layout-letters',
            dest='letters',
            help="String of characters in the layout (e.g., 'etaoinshrlcu')"
        )
        layout_group.add_argument(
            '--positions', '--layout-positions', '--qwerty-keys',
            dest='positions',
            help="String of corresponding QWERTY positions (e.g., 'FDESGJWXRTYZ')"
        )
        layout_group.add_argument(
            '--qwerty',
            dest='qwerty',
            help="Layout characters listed in QWERTY key order (Q W E ... , . / [ ')"
        )
        layout_group.add_argument(
            '--layout-file',
            dest='layout_file',
            help="JSON file with one layout or a collection of named layouts"
        )
        layout_group.add_argument(
            '--name',
            dest='name',
            default='layout',
            help="Name of the layout given on the command line (default: layout)"
        )
        layout_group.add_argument(
            '--geometry',
            dest='geometry',
            help="CSV file with an alternative geometry table"
        )

    def _add_corpus_arguments(self, parser: argparse.ArgumentParser) -> None:
        corpus_group = parser.add_argument_group('Corpus')

        corpus_group.add_argument(
            '--text',
            dest='text',
            help="Text to analyze (alternative to --text-file)"
        )
        corpus_group.add_argument(
            '--text-file',
            dest='text_files',
            action='append',
            help="Path to a text file to analyze (repeat for several sources)"
        )
        corpus_group.add_argument(
            '--char-freq',
            dest='char_freq',
            help="CSV of precomputed character frequencies"
        )
        corpus_group.add_argument(
            '--bigram-freq',
            dest='bigram_freq',
            help="CSV of precomputed bigram frequencies (with --char-freq)"
        )
        corpus_group.add_argument(
            '--trigram-freq',
            dest='trigram_freq',
            help="CSV of precomputed trigram frequencies (with --char-freq)"
        )
        corpus_group.add_argument(
            '--cross-word',
            dest='cross_word',
            action='store_true',
            help="Count n-grams across word boundaries"
        )

    def _add_analysis_arguments(self, parser: argparse.ArgumentParser) -> None:
        analysis_group = parser.add_argument_group('Analysis Options')

        analysis_group.add_argument(
            '--config',
            dest='config',
            default=None,
            help="Path to configuration file (default: built-in settings)"
        )
        analysis_group.add_argument(
            '--effort-model',
            dest='effort_model',
            help="Named effort model from the configuration"
        )
        analysis_group.add_argument(
            '--workers',
            dest='workers',
            type=int,
            default=None,
            help="Worker processes for corpus counting and batch analysis"
        )

    def _add_output_arguments(self, parser: argparse.ArgumentParser) -> None:
        output_group = parser.add_argument_group('Output Options')

        output_group.add_argument(
            '--output-format',
            dest='output_format',
            choices=list(OUTPUT_FORMATS),
            default='detailed',
            help="Output format (default: detailed)"
        )
        output_group.add_argument(
            '--csv',
            dest='csv',
            action='store_true',
            help="Output in CSV format (same as --output-format csv)"
        )
        output_group.add_argument(
            '--score-only',
            dest='score_only',
            action='store_true',
            help="Output only metric values (same as --output-format score_only)"
        )
        output_group.add_argument(
            '--compare-csv',
            dest='compare_csv',
            help="Save a comparison table of all analyzed layouts to this CSV file"
        )
        output_group.add_argument(
            '--sort-by',
            dest='sort_by',
            help="Metric used to rank layouts in comparison output"
        )
        output_group.add_argument(
            '--quiet',
            dest='quiet',
            action='store_true',
            help="Suppress informational log output"
        )
        output_group.add_argument(
            '--verbose',
            dest='verbose',
            action='store_true',
            help="Show debug log output"
        )

    def _generate_epilog(self) -> str:
        basic_cmd = f"python {self.prog} --qwerty 'qwertyuiopasdfghjkl;zxcvbnm,./' --text-file corpus.txt"
        lines = [
            "Examples:",
            "  # Analyze QWERTY against a text file",
            f"  {basic_cmd}",
            "",
            "  # CSV output",
            f"  {basic_cmd} --csv",
            "",
            "  # Compare every layout in a JSON file using precomputed frequencies",
            f"  python {self.prog} --layout-file layouts.json --char-freq chars.csv "
            "--bigram-freq bigrams.csv --trigram-freq trigrams.csv --compare-csv comparison.csv",
        ]
        return "\n".join(lines)

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command-line arguments with validation.

        Args:
            args: List of arguments (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        parsed_args = self.parser.parse_args(args)

        if parsed_args.csv:
            parsed_args.output_format = 'csv'
        elif parsed_args.score_only:
            parsed_args.output_format = 'score_only'

        has_pair = parsed_args.letters is not None or parsed_args.positions is not None
        sources = [has_pair, parsed_args.qwerty is not None, parsed_args.layout_file is not None]
        if sum(sources) != 1:
            self.parser.error("Specify exactly one of --letters/--positions, --qwerty or --layout-file")
        if has_pair and (parsed_args.letters is None or parsed_args.positions is None):
            self.parser.error("--letters and --positions must be given together")

        corpus_sources = [parsed_args.text is not None, bool(parsed_args.text_files),
                          parsed_args.char_freq is not None]
        if sum(corpus_sources) != 1:
            self.parser.error("Specify exactly one corpus source: --text, --text-file or --char-freq")
        if (parsed_args.bigram_freq or parsed_args.trigram_freq) and not parsed_args.char_freq:
            self.parser.error("--bigram-freq and --trigram-freq require --char-freq")

        if parsed_args.workers is not None and parsed_args.workers < 1:
            self.parser.error("--workers must be at least 1")

        return parsed_args


def get_geometry_from_args(args: argparse.Namespace) -> GeometryTable:
    if getattr(args, 'geometry', None):
        return load_geometry_csv(args.geometry)
    return STANDARD_GEOMETRY


def get_layouts_from_args(args: argparse.Namespace,
                          geometry: GeometryTable,
                          layout_config: Optional[Dict[str, Any]] = None) -> List[Layout]:
    """
    Build validated layouts from parsed arguments.

    Raises:
        LayoutError: If a layout fails validation
    """
    layout_config = layout_config or {}
    required = layout_config.get('required_chars', 'abcdefghijklmnopqrstuvwxyz')
    optional = layout_config.get('optional_chars', ";,./'[-")

    if args.layout_file:
        mappings = load_layout_json(args.layout_file)
    elif args.qwerty is not None:
        mappings = {args.name: layout_from_qwerty_string(args.qwerty)}
    else:
        mappings = {args.name: create_layout_mapping(args.letters, args.positions)}

    return [validate_layout(mapping, geometry, required, optional, name=name)
            for name, mapping in mappings.items()]


def get_corpus_from_args(args: argparse.Namespace,
                         corpus_config: Optional[Dict[str, Any]] = None) -> Corpus:
    """
    Build the corpus from parsed arguments.

    Raises:
        CorpusError: If the corpus is empty or a frequency table is invalid
    """
    config = CorpusConfig.from_config(corpus_config)
    if getattr(args, 'cross_word', False):
        config = replace(config, cross_word_ngrams=True)
    if getattr(args, 'workers', None):
        config = replace(config, workers=args.workers)

    if args.char_freq:
        return load_frequency_corpus(args.char_freq, args.bigram_freq, args.trigram_freq)
    if args.text is not None:
        return build_corpus(args.text, config, name="text")
    return build_corpus(load_text_sources(args.text_files), config, name="text_files")


def handle_common_errors(func):
    """
    Decorator to handle common CLI errors gracefully.

    Args:
        func: Function to wrap (typically main())

    Returns:
        Wrapped function returning a process exit code on error
    """
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            print("\nOperation cancelled by user.", file=sys.stderr)
            return EXIT_INTERRUPTED
        except (LayoutError, CorpusError) as e:
            print(f"Invalid input: {e}", file=sys.stderr)
            return EXIT_INVALID_INPUT
        except ComputationError as e:
            print(f"Computation error: {e}", file=sys.stderr)
            return EXIT_COMPUTATION_ERROR
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_ERROR
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_ERROR
        except PermissionError as e:
            print(f"Permission error: {e}", file=sys.stderr)
            return EXIT_ERROR

    return wrapper
