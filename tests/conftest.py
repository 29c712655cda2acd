import logging

import pytest

from layout_metrics.analyzer import LayoutAnalyzer
from layout_metrics.corpus import CorpusConfig, build_corpus
from layout_metrics.geometry import STANDARD_GEOMETRY
from layout_metrics.layout_utils import layout_from_qwerty_string, qwerty_mapping, validate_layout

SAMPLE_TEXT = (
    "The quick brown fox jumps over the lazy dog. "
    "Keyboard layouts are judged by how often the same finger types two keys in a row, "
    "how far the fingers travel, and how evenly the work is shared between both hands. "
    "There is nothing quite like a layout that keeps the typist in the home row."
)

DVORAK_QWERTY_ORDER = "',.pyfgcrlaoeuidhtns;qjkxbmwvz"


@pytest.fixture
def qwerty_layout():
    return validate_layout(qwerty_mapping(), name="qwerty")


@pytest.fixture
def dvorak_layout():
    return validate_layout(layout_from_qwerty_string(DVORAK_QWERTY_ORDER), name="dvorak")


@pytest.fixture
def sample_corpus():
    return build_corpus(SAMPLE_TEXT, CorpusConfig(), name="sample")


@pytest.fixture
def analyzer(sample_corpus):
    return LayoutAnalyzer(sample_corpus)


@pytest.fixture
def slots():
    """Standard geometry slots by QWERTY label."""
    return STANDARD_GEOMETRY.slots


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging() replaces the root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
