#!/usr/bin/env python3
"""
Corpus builder for keyboard layout analysis.

Turns one or more raw text sources into normalized character, bigram and
trigram frequency tables. Counting is a map-reduce over integer counters:
the normalized stream is split into chunks, each chunk is counted on its
own (optionally in a worker pool), the counters are summed and a single
final pass divides every count by its category total.
"""

import hashlib
import logging
import math
import multiprocessing
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from layout_metrics.errors import CorpusError, EmptyCorpusError
from layout_metrics.geometry import read_only, writable
from layout_metrics.text_utils import (
    DEFAULT_ALPHABET, NgramCounts, count_chunk, extract_segments, generate_text_summary, plan_chunks
)

logger = logging.getLogger(__name__)

Bigram = Tuple[str, str]
Trigram = Tuple[str, str, str]

FREQUENCY_TABLES = ('char_freq', 'bigram_freq', 'trigram_freq')
NGRAM_TABLES = {'char': 'chars', 'bigram': 'bigrams', 'trigram': 'trigrams'}


@dataclass(frozen=True)
class CorpusConfig:
    """Options controlling text normalization and counting."""

    lowercase: bool = True
    strip_non_alphabetic: bool = True
    cross_word_ngrams: bool = False
    alphabet: str = DEFAULT_ALPHABET
    consistency_threshold: Optional[float] = 0.20
    consistency_min_frequency: float = 0.001
    chunk_chars: int = 65536
    workers: int = 1

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> 'CorpusConfig':
        """Build from the 'corpus' configuration section, ignoring unknown keys."""
        if not config:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in config.items() if key in known})

    def fingerprint_fields(self) -> str:
        # Options that change counts; chunking and worker count never do
        return (f"lowercase={self.lowercase};strip={self.strip_non_alphabetic};"
                f"cross={self.cross_word_ngrams};alphabet={self.alphabet}")


@dataclass(frozen=True)
class ConsistencyFlag:
    """An n-gram whose frequency differs too much between sources."""

    kind: str
    ngram: str
    frequency: float
    min_frequency: float
    max_frequency: float
    deviation: float


@dataclass(frozen=True)
class Corpus:
    """
    Immutable frequency tables for one corpus version.

    Frequencies are probabilities within their category. Totals are the
    integer window counts the probabilities were derived from (0 when the
    corpus was built from precomputed frequency tables).
    """

    char_freq: Mapping[str, float]
    bigram_freq: Mapping[Bigram, float]
    trigram_freq: Mapping[Trigram, float]
    total_chars: int
    total_bigrams: int
    total_trigrams: int
    version: str
    name: str = "corpus"
    consistency: Tuple[ConsistencyFlag, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for name in FREQUENCY_TABLES:
            object.__setattr__(self, name, read_only(getattr(self, name)))
        object.__setattr__(self, 'consistency', tuple(self.consistency))

    def __getstate__(self):
        return {name: writable(value) for name, value in self.__dict__.items()}

    def __setstate__(self, state):
        for name, value in state.items():
            object.__setattr__(self, name, value)
        self.__post_init__()

    @classmethod
    def from_counts(cls, counts: NgramCounts,
                    config: Optional[CorpusConfig] = None,
                    name: str = "corpus",
                    consistency: Sequence[ConsistencyFlag] = ()) -> 'Corpus':
        """
        Normalize merged integer counts into a Corpus.

        Raises:
            EmptyCorpusError: If no characters were counted
        """
        if counts.is_empty():
            raise EmptyCorpusError()

        config = config or CorpusConfig()
        total_chars = counts.total_chars
        total_bigrams = counts.total_bigrams
        total_trigrams = counts.total_trigrams

        return cls(
            char_freq=_normalize(counts.chars, total_chars),
            bigram_freq=_normalize(counts.bigrams, total_bigrams),
            trigram_freq=_normalize(counts.trigrams, total_trigrams),
            total_chars=total_chars,
            total_bigrams=total_bigrams,
            total_trigrams=total_trigrams,
            version=_counts_version(counts, config),
            name=name,
            consistency=tuple(consistency),
        )

    @classmethod
    def from_frequencies(cls,
                         char_freq: Mapping[str, float],
                         bigram_freq: Optional[Mapping[Union[str, Bigram], float]] = None,
                         trigram_freq: Optional[Mapping[Union[str, Trigram], float]] = None,
                         name: str = "frequency_tables",
                         lowercase: bool = True) -> 'Corpus':
        """
        Build a Corpus from precomputed frequency tables.

        Values may be raw counts or probabilities; each table is renormalized
        to sum to 1. Bigram and trigram keys may be strings ('th') or tuples.

        Raises:
            CorpusError: If a frequency is negative or not finite, or a key has the wrong length
            EmptyCorpusError: If the character table has no positive mass
        """
        chars = _coerce_table(char_freq, 1, lowercase)
        bigrams = _coerce_table(bigram_freq or {}, 2, lowercase)
        trigrams = _coerce_table(trigram_freq or {}, 3, lowercase)

        if not chars:
            raise EmptyCorpusError("Character frequency table has no positive entries")

        digest = hashlib.sha256()
        for table in (chars, bigrams, trigrams):
            for key in sorted(table):
                digest.update(f"{''.join(key)}={table[key]!r};".encode('utf-8'))
            digest.update(b"|")

        return cls(
            char_freq={key[0]: value for key, value in _normalize(chars, sum(chars.values())).items()},
            bigram_freq=_normalize(bigrams, sum(bigrams.values())),
            trigram_freq=_normalize(trigrams, sum(trigrams.values())),
            total_chars=0,
            total_bigrams=0,
            total_trigrams=0,
            version=digest.hexdigest(),
            name=name,
        )

    def summary(self) -> str:
        lines = [
            f"Corpus: {self.name} (version {self.version[:12]})",
            f"  Characters: {self.total_chars:,} ({len(self.char_freq)} distinct)",
            f"  Bigrams: {self.total_bigrams:,} ({len(self.bigram_freq)} distinct)",
            f"  Trigrams: {self.total_trigrams:,} ({len(self.trigram_freq)} distinct)",
        ]
        if self.consistency:
            lines.append(f"  Consistency flags: {len(self.consistency)}")
        return "\n".join(lines)


def _normalize(counts: Mapping[Any, float], total: float) -> Dict[Any, float]:
    if total <= 0:
        return {}
    return {key: value / total for key, value in sorted(counts.items()) if value > 0}


def _counts_version(counts: NgramCounts, config: CorpusConfig) -> str:
    """SHA-256 over the sorted integer counts and the count-affecting options."""
    digest = hashlib.sha256(config.fingerprint_fields().encode('utf-8'))
    for table in (counts.chars, counts.bigrams, counts.trigrams):
        for key in sorted(table):
            ngram = key if isinstance(key, str) else ''.join(key)
            digest.update(f"{ngram}={table[key]};".encode('utf-8'))
        digest.update(b"|")
    return digest.hexdigest()


def _coerce_table(table: Mapping[Any, float], order: int, lowercase: bool) -> Dict[Tuple[str, ...], float]:
    coerced: Dict[Tuple[str, ...], float] = {}
    for key, value in table.items():
        ngram = tuple(key) if not isinstance(key, tuple) else key
        if lowercase:
            ngram = tuple(c.lower() for c in ngram)
        if len(ngram) != order:
            raise CorpusError(f"Expected {order}-character key, got {key!r}")

        weight = float(value)
        if not math.isfinite(weight) or weight < 0:
            raise CorpusError(f"Invalid frequency {value!r} for {key!r}")
        if weight > 0:
            coerced[ngram] = coerced.get(ngram, 0.0) + weight
    return coerced


def count_text(text: str, config: CorpusConfig,
               mapper: Callable = map) -> NgramCounts:
    """
    Count the n-grams of one text source.

    Args:
        text: Raw text
        config: Normalization and chunking options
        mapper: map-like callable used to count chunks (builtin map or Pool.map)
    """
    segments = extract_segments(
        text,
        lowercase=config.lowercase,
        strip_non_alphabetic=config.strip_non_alphabetic,
        alphabet=config.alphabet,
        cross_word_ngrams=config.cross_word_ngrams,
    )
    chunks = plan_chunks(segments, config.chunk_chars)

    total = NgramCounts()
    for chunk_counts in mapper(count_chunk, chunks):
        total.update(chunk_counts)
    return total


def check_consistency(source_counts: Sequence[NgramCounts],
                      threshold: float,
                      min_frequency: float = 0.0) -> List[ConsistencyFlag]:
    """
    Compare per-source character, bigram and trigram frequencies.

    An n-gram is flagged when its merged frequency f is at least min_frequency
    and max over sources of |f_s - f| / f exceeds threshold. Sources with no
    windows of a kind are left out of that kind's comparison.

    Returns:
        Flags sorted by decreasing deviation
    """
    flags: List[ConsistencyFlag] = []

    for kind in ('char', 'bigram', 'trigram'):
        tables = [getattr(counts, NGRAM_TABLES[kind]) for counts in source_counts]
        tables = [table for table in tables if sum(table.values()) > 0]
        if len(tables) < 2:
            continue

        frame = pd.DataFrame(
            {f"source_{i}": {_ngram_label(k): v for k, v in table.items()} for i, table in enumerate(tables)}
        ).fillna(0.0)
        merged = frame.sum(axis=1) / frame.to_numpy().sum()
        per_source = frame / frame.sum(axis=0)

        deviation = per_source.sub(merged, axis=0).abs().max(axis=1) / merged
        mask = (merged >= min_frequency) & (deviation > threshold)

        for ngram in frame.index[mask.to_numpy()]:
            row = per_source.loc[ngram].to_numpy()
            flags.append(ConsistencyFlag(
                kind=kind,
                ngram=str(ngram),
                frequency=float(merged[ngram]),
                min_frequency=float(np.min(row)),
                max_frequency=float(np.max(row)),
                deviation=float(deviation[ngram]),
            ))

    flags.sort(key=lambda flag: (-flag.deviation, flag.kind, flag.ngram))
    return flags


def _ngram_label(key: Any) -> str:
    return key if isinstance(key, str) else ''.join(key)


def build_corpus(sources: Union[str, Iterable[str]],
                 config: Optional[CorpusConfig] = None,
                 name: str = "corpus") -> Corpus:
    """
    Build a Corpus from one or more raw text sources.

    Args:
        sources: A text string or an iterable of text strings
        config: Builder options (defaults to CorpusConfig())
        name: Label carried on the corpus

    Returns:
        Immutable Corpus

    Raises:
        EmptyCorpusError: If no valid tokens remain after filtering
    """
    config = config or CorpusConfig()
    texts = [sources] if isinstance(sources, str) else list(sources)

    logger.info(f"Building corpus '{name}' from {len(texts)} source(s)")

    if config.workers > 1:
        with multiprocessing.Pool(config.workers) as pool:
            source_counts = [count_text(text, config, pool.map) for text in texts]
    else:
        source_counts = [count_text(text, config) for text in texts]

    for text, counts in zip(texts, source_counts):
        logger.debug(f"  {generate_text_summary(text)!r}: {counts.total_chars} characters")

    merged = NgramCounts()
    for counts in source_counts:
        merged.update(counts)

    if merged.is_empty():
        raise EmptyCorpusError()

    flags: List[ConsistencyFlag] = []
    if config.consistency_threshold is not None and len(texts) > 1:
        flags = check_consistency(source_counts, config.consistency_threshold,
                                  config.consistency_min_frequency)
        if flags:
            worst = flags[0]
            logger.warning(
                f"Corpus sources disagree on {len(flags)} n-gram frequencies "
                f"(largest deviation: {worst.kind} '{worst.ngram}' {worst.deviation:.1%})"
            )

    corpus = Corpus.from_counts(merged, config, name=name, consistency=flags)
    logger.info(f"Corpus '{name}' built: {corpus.total_chars:,} characters, "
                f"{corpus.total_bigrams:,} bigrams, {corpus.total_trigrams:,} trigrams")
    return corpus
