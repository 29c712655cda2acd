#!/usr/bin/env python3
"""
Data utilities for keyboard layout analysis.

Common functions for loading and validating input files: corpus text,
precomputed n-gram frequency tables, geometry tables and layout
definitions. All loading happens here, before any metric is computed.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from layout_metrics.corpus import Corpus
from layout_metrics.geometry import Finger, GeometryTable, KeySlot, Row, normalize_slot_id

logger = logging.getLogger(__name__)

NGRAM_COLUMN_CANDIDATES = ['ngram', 'bigram', 'trigram', 'char', 'character', 'letter',
                           'letter_pair', 'pair', 'sequence', 'letters']
FREQUENCY_COLUMN_CANDIDATES = ['frequency', 'freq', 'probability', 'prob', 'weight', 'count']


def load_csv_with_validation(filepath: Union[str, Path],
                             required_columns: List[str],
                             optional_columns: Optional[List[str]] = None,
                             dtype_map: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """
    Load CSV file with column validation and optional data type specification.

    Args:
        filepath: Path to CSV file
        required_columns: List of column names that must be present
        optional_columns: List of optional column names
        dtype_map: Dict mapping column names to pandas dtypes

    Returns:
        Loaded DataFrame

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If required columns are missing or data is invalid
    """
    file_path = Path(filepath)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {filepath}")

    if file_path.suffix.lower() not in ['.csv', '.tsv', '.txt']:
        raise ValueError(f"Unsupported file format: {file_path.suffix}")

    delimiter = '\t' if file_path.suffix.lower() == '.tsv' else ','

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            df = pd.read_csv(f, delimiter=delimiter, dtype=dtype_map, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValueError(f"Error reading CSV file {filepath}: {e}")

    if df.empty:
        raise ValueError(f"CSV file is empty: {filepath}")

    missing_columns = [col for col in required_columns if col not in df.columns]
    if missing_columns:
        raise ValueError(
            f"Missing required columns in {filepath}: {missing_columns}. "
            f"Available columns: {list(df.columns)}"
        )

    if optional_columns:
        missing_optional = [col for col in optional_columns if col not in df.columns]
        if missing_optional:
            logger.debug(f"Optional columns not found in {filepath}: {missing_optional}")

    return df


def _detect_column(columns: List[str], candidates: List[str], what: str, filepath: Union[str, Path]) -> str:
    for candidate in candidates:
        if candidate in columns:
            return candidate
    raise ValueError(
        f"Could not find {what} column in {filepath}. "
        f"Available columns: {columns}. "
        f"Expected one of: {candidates}"
    )


def load_ngram_frequencies(filepath: Union[str, Path],
                           order: int,
                           ngram_col: Optional[str] = None,
                           frequency_col: Optional[str] = None) -> Dict[str, float]:
    """
    Load n-gram frequencies from CSV file with automatic column detection.

    Args:
        filepath: Path to CSV file
        order: Expected n-gram length (1 = characters, 2 = bigrams, 3 = trigrams)
        ngram_col: Name of n-gram column (auto-detected if None)
        frequency_col: Name of frequency column (auto-detected if None)

    Returns:
        Dict mapping lowercase n-gram strings to their (summed) frequencies

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If required columns can't be found or no valid rows remain
    """
    df = load_csv_with_validation(filepath, [], dtype_map=None)
    columns = [str(col) for col in df.columns]

    ngram_col = ngram_col or _detect_column(columns, NGRAM_COLUMN_CANDIDATES, "n-gram", filepath)
    frequency_col = frequency_col or _detect_column(columns, FREQUENCY_COLUMN_CANDIDATES,
                                                    "frequency", filepath)

    ngrams = df[ngram_col].astype(str).str.strip().str.lower()
    frequencies = pd.to_numeric(df[frequency_col], errors='coerce')

    valid = (ngrams.str.len() == order) & frequencies.notna()
    skipped = int((~valid).sum())
    if skipped:
        logger.warning(f"Skipping {skipped} invalid rows in {filepath}")

    table = frequencies[valid].groupby(ngrams[valid]).sum()
    if table.empty:
        raise ValueError(f"No valid {order}-gram frequency rows found in {filepath}")

    logger.info(f"Loaded {len(table)} {order}-gram frequencies from {filepath}")
    return {str(ngram): float(value) for ngram, value in table.items()}


def load_frequency_corpus(char_path: Union[str, Path],
                          bigram_path: Optional[Union[str, Path]] = None,
                          trigram_path: Optional[Union[str, Path]] = None,
                          name: Optional[str] = None) -> Corpus:
    """
    Build a Corpus from precomputed frequency CSV files.

    Args:
        char_path: CSV of character frequencies
        bigram_path: CSV of bigram frequencies (optional)
        trigram_path: CSV of trigram frequencies (optional)
        name: Corpus label (defaults to the character file stem)
    """
    return Corpus.from_frequencies(
        load_ngram_frequencies(char_path, 1),
        load_ngram_frequencies(bigram_path, 2) if bigram_path else None,
        load_ngram_frequencies(trigram_path, 3) if trigram_path else None,
        name=name or Path(char_path).stem,
    )


def load_text_sources(paths: List[Union[str, Path]], encoding: str = 'utf-8') -> List[str]:
    """
    Read corpus text files.

    Raises:
        FileNotFoundError: If any file doesn't exist
    """
    texts = []
    for path in paths:
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Text file not found: {path}")
        with open(file_path, 'r', encoding=encoding, errors='replace') as f:
            texts.append(f.read())
        logger.debug(f"Read {len(texts[-1]):,} characters from {path}")
    return texts


def load_geometry_csv(filepath: Union[str, Path], name: Optional[str] = None) -> GeometryTable:
    """
    Load an alternative geometry table.

    Expected columns: slot, row, column, finger, x, y and optionally home.
    Rows and fingers may be given by number (row 0-3, finger 1-4/7-10) or
    by name (TOP, LEFT_INDEX, ...).

    Raises:
        ValueError: If a row cannot be parsed
    """
    df = load_csv_with_validation(filepath, ['slot', 'row', 'column', 'finger', 'x', 'y'],
                                  optional_columns=['home'], dtype_map={'slot': str})

    slots: Dict[str, KeySlot] = {}
    for index, record in df.iterrows():
        try:
            slot_id = normalize_slot_id(record['slot'])
            row_value = str(record['row']).strip()
            finger_value = str(record['finger']).strip()
            home_value = str(record.get('home', '')).strip().lower()

            slots[slot_id] = KeySlot(
                slot_id=slot_id,
                row=Row(int(row_value)) if row_value.isdigit() else Row[row_value.upper()],
                column=int(record['column']),
                finger=Finger(int(finger_value)) if finger_value.isdigit() else Finger[finger_value.upper()],
                coord=(float(record['x']), float(record['y'])),
                is_home=home_value in ('1', 'true', 'yes', 'y'),
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid geometry row {index + 2} in {filepath}: {e}")

    return GeometryTable(slots, name=name or Path(filepath).stem)


def load_layout_json(filepath: Union[str, Path]) -> Dict[str, Dict[str, str]]:
    """
    Load layout definitions from a JSON file.

    Accepts either a single layout ({"a": "A", "b": "N", ...}), a named
    collection ({"qwerty": {...}, "dvorak": {...}}), or a list of objects
    with "name" and "mapping" keys.

    Returns:
        Dict mapping layout names to char -> slot identifier mappings

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the JSON structure is not recognized
    """
    file_path = Path(filepath)
    if not file_path.exists():
        raise FileNotFoundError(f"Layout file not found: {filepath}")

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {filepath}: {e}")

    if isinstance(data, list):
        if not data:
            raise ValueError(f"Layout file contains an empty list: {filepath}")
        layouts = {}
        for i, entry in enumerate(data):
            if not isinstance(entry, dict) or not isinstance(entry.get('mapping'), dict):
                raise ValueError(f"Layout entry {i} in {filepath} needs a 'mapping' object")
            layouts[str(entry.get('name', f"layout_{i + 1}"))] = {
                str(k): str(v) for k, v in entry['mapping'].items()
            }
        return layouts

    if not isinstance(data, dict) or not data:
        raise ValueError(f"Layout file must contain a non-empty JSON object: {filepath}")

    if all(isinstance(value, dict) for value in data.values()):
        return {str(name): {str(k): str(v) for k, v in mapping.items()} for name, mapping in data.items()}

    if all(isinstance(value, str) for value in data.values()):
        return {file_path.stem: {str(k): v for k, v in data.items()}}

    raise ValueError(f"Unrecognized layout structure in {filepath}")
