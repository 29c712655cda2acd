# layout_metrics/__init__.py
"""
Keyboard Layout Metrics Engine

Corpus building, layout validation, and frequency-weighted biomechanical
and flow metrics for keyboard layouts.
"""

__version__ = "1.0.0"

# Import main classes for easy access
from .analyzer import LayoutAnalyzer, analyze_layout
from .batch import BatchResult, analyze_layouts
from .config_loader import ConfigLoader, load_config
from .corpus import Corpus, CorpusConfig, build_corpus
from .effort_model import EffortModel
from .errors import (
    ComputationError, CorpusError, DuplicateAssignmentError, EmptyCorpusError, InvalidSlotError,
    LayoutError, LayoutMetricsError, MissingRequiredCharacterError
)
from .geometry import STANDARD_GEOMETRY, GeometryTable, KeySlot
from .layout_utils import Layout, validate_layout
from .report import MetricReport

__all__ = [
    'LayoutAnalyzer',
    'analyze_layout',
    'BatchResult',
    'analyze_layouts',
    'ConfigLoader',
    'load_config',
    'Corpus',
    'CorpusConfig',
    'build_corpus',
    'EffortModel',
    'LayoutMetricsError',
    'CorpusError',
    'EmptyCorpusError',
    'LayoutError',
    'DuplicateAssignmentError',
    'InvalidSlotError',
    'MissingRequiredCharacterError',
    'ComputationError',
    'STANDARD_GEOMETRY',
    'GeometryTable',
    'KeySlot',
    'Layout',
    'validate_layout',
    'MetricReport',
]
