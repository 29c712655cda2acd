#!/usr/bin/env python3
"""
Text utilities for keyboard layout analysis.

Common functions for cleaning text and counting character, bigram and
trigram occurrences. Counting works on chunks of the normalized token
stream with integer counters so that chunk results can be summed in any
order (and in any process) without changing the final counts.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple


DEFAULT_ALPHABET = 'abcdefghijklmnopqrstuvwxyz'

# Characters of look-ahead a chunk carries so trigrams starting near its end are complete
NGRAM_OVERLAP = 2

# A chunk is a list of (piece, n_starts): count windows starting at piece[:n_starts]
ChunkTask = List[Tuple[str, int]]


def clean_text_for_analysis(text: str,
                            lowercase: bool = True,
                            strip_non_alphabetic: bool = True,
                            alphabet: str = DEFAULT_ALPHABET) -> str:
    """
    Clean text for keyboard layout analysis.

    Args:
        text: Input text to clean
        lowercase: If True, case-fold the text
        strip_non_alphabetic: If True, drop every character outside the alphabet
        alphabet: Characters kept when strip_non_alphabetic is True

    Returns:
        Words separated by single spaces. Dropped characters and all
        whitespace act as word boundaries.
    """
    if not text:
        return ""

    cleaned = text.lower() if lowercase else text
    keep_chars = set(alphabet)

    filtered_chars = []
    for char in cleaned:
        if char.isspace():
            keep = False
        elif strip_non_alphabetic:
            keep = char in keep_chars or (not lowercase and char.lower() in keep_chars)
        else:
            keep = True

        if keep:
            filtered_chars.append(char)
        elif filtered_chars and filtered_chars[-1] != ' ':
            # Replace non-kept characters with space to maintain word boundaries
            filtered_chars.append(' ')

    return ''.join(filtered_chars).strip()


def extract_segments(text: str,
                     lowercase: bool = True,
                     strip_non_alphabetic: bool = True,
                     alphabet: str = DEFAULT_ALPHABET,
                     cross_word_ngrams: bool = False) -> List[str]:
    """
    Split text into the segments n-grams may be drawn from.

    Args:
        text: Raw input text
        cross_word_ngrams: If False every word is its own segment, so no
            n-gram spans a word boundary. If True the words are joined into a
            single segment and n-grams run across them.

    Returns:
        List of non-empty segments
    """
    words = clean_text_for_analysis(text, lowercase, strip_non_alphabetic, alphabet).split()
    if cross_word_ngrams:
        return [''.join(words)] if words else []
    return words


@dataclass
class NgramCounts:
    """Integer occurrence counts for characters, bigrams and trigrams."""

    chars: Counter = field(default_factory=Counter)
    bigrams: Counter = field(default_factory=Counter)
    trigrams: Counter = field(default_factory=Counter)

    def update(self, other: 'NgramCounts') -> 'NgramCounts':
        """Add another set of counts into this one (in place)."""
        self.chars.update(other.chars)
        self.bigrams.update(other.bigrams)
        self.trigrams.update(other.trigrams)
        return self

    @property
    def total_chars(self) -> int:
        return sum(self.chars.values())

    @property
    def total_bigrams(self) -> int:
        return sum(self.bigrams.values())

    @property
    def total_trigrams(self) -> int:
        return sum(self.trigrams.values())

    def is_empty(self) -> bool:
        return not self.chars


def count_piece(piece: str, n_starts: int, counts: NgramCounts) -> None:
    """
    Count the n-grams whose first character lies in piece[:n_starts].

    Characters after n_starts are look-ahead only and are counted by the
    chunk that owns them.
    """
    length = len(piece)
    for i in range(min(n_starts, length)):
        counts.chars[piece[i]] += 1
        if i + 2 <= length:
            counts.bigrams[(piece[i], piece[i + 1])] += 1
        if i + 3 <= length:
            counts.trigrams[(piece[i], piece[i + 1], piece[i + 2])] += 1


def count_chunk(task: ChunkTask) -> NgramCounts:
    """Count one chunk. Module-level so it can run in a worker process."""
    counts = NgramCounts()
    for piece, n_starts in task:
        count_piece(piece, n_starts, counts)
    return counts


def plan_chunks(segments: Sequence[str], chunk_chars: int = 65536) -> List[ChunkTask]:
    """
    Partition segments into chunks of roughly chunk_chars window starts.

    Long segments are split; each split piece carries NGRAM_OVERLAP characters
    of the following text so that every window is counted exactly once.

    Raises:
        ValueError: If chunk_chars is not positive
    """
    if chunk_chars < 1:
        raise ValueError(f"chunk_chars must be positive, got {chunk_chars}")

    chunks: List[ChunkTask] = []
    current: ChunkTask = []
    size = 0

    for segment in segments:
        start = 0
        while start < len(segment):
            stop = min(len(segment), start + (chunk_chars - size))
            current.append((segment[start:stop + NGRAM_OVERLAP], stop - start))
            size += stop - start
            start = stop

            if size >= chunk_chars:
                chunks.append(current)
                current = []
                size = 0

    if current:
        chunks.append(current)

    return chunks


def generate_text_summary(text: str, max_length: int = 60) -> str:
    """
    Generate a brief one-line summary of a text source for log messages.

    Args:
        text: Input text to summarize
        max_length: Maximum length of summary
    """
    if not text:
        return "Empty text"

    cleaned = ' '.join(text.split())
    if len(cleaned) <= max_length:
        return cleaned

    truncated = cleaned[:max_length]
    last_space = truncated.rfind(' ')
    if last_space > max_length * 0.8:
        truncated = truncated[:last_space]

    return truncated + "..."
