#!/usr/bin/env python3
"""
Configuration loader for keyboard layout analysis.

Provides unified configuration management using YAML files.
Built-in defaults are merged with the settings found in the YAML file, so
the engine also runs without any configuration file. All numeric thresholds
(center columns, lateral stretch table, effort tables, report precision)
live here as reference data.
"""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List


DEFAULT_CONFIG: Dict[str, Any] = {
    'corpus': {
        'lowercase': True,
        'strip_non_alphabetic': True,
        'cross_word_ngrams': False,
        'alphabet': 'abcdefghijklmnopqrstuvwxyz',
        'consistency_threshold': 0.20,
        'consistency_min_frequency': 0.001,
        'chunk_chars': 65536,
        'workers': 1,
    },
    'layout': {
        'required_chars': 'abcdefghijklmnopqrstuvwxyz',
        'optional_chars': ";,./'[-",
    },
    'default_effort_model': 'standard',
    'effort_models': {
        'standard': {
            'version': 'standard-1',
            'finger_strength': {
                'LEFT_PINKY': 1.8, 'LEFT_RING': 1.5, 'LEFT_MIDDLE': 1.2, 'LEFT_INDEX': 1.0,
                'RIGHT_INDEX': 1.0, 'RIGHT_MIDDLE': 1.2, 'RIGHT_RING': 1.5, 'RIGHT_PINKY': 1.8,
            },
            'row_difficulty': {
                'NUMBER': 1.8, 'TOP': 1.3, 'HOME': 1.0, 'BOTTOM': 1.2,
            },
            'center_column_penalty': 1.4,
        },
    },
    'classifier': {
        'center_columns': [5, 6],
        'row_jump_threshold': 2,
        'lateral_stretch': {
            'same_row_multiplier': 1.3,
            'patterns': [
                {'columns': [3, 5], 'severity': 2.5},
                {'columns': [2, 5], 'severity': 3.0},
                {'columns': [8, 6], 'severity': 2.5},
                {'columns': [9, 6], 'severity': 3.0},
            ],
        },
    },
    'report': {
        'precision': 2,
        'metrics': None,
    },
    'output_formats': {
        'detailed': {'show_breakdown': True, 'show_diagnostics': True},
        'csv': {'delimiter': ',', 'precision': 6, 'include_headers': True},
        'score_only': {'precision': 2, 'separator': ' '},
    },
    'logging': {
        'console_level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
}


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Values from override take precedence; nested dictionaries are merged
    rather than replaced. Neither input is modified.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigLoader:
    """Handles loading and processing of YAML configuration files."""

    SECTIONS = ('corpus', 'layout', 'effort_models', 'classifier', 'report',
                'output_formats', 'logging')

    def __init__(self, config_path: Optional[str] = "config.yaml"):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to the YAML configuration file (None = defaults only)
        """
        self.config_path = Path(config_path) if config_path else None
        self._config_cache: Optional[Dict[str, Any]] = None

    def load_config(self) -> Dict[str, Any]:
        """
        Load YAML configuration file merged over the built-in defaults.

        Returns:
            Full configuration dictionary

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if self._config_cache is not None:
            return self._config_cache

        if self.config_path is None:
            self._config_cache = copy.deepcopy(DEFAULT_CONFIG)
            return self._config_cache

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML configuration: {e}")

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")

        self._config_cache = merge_config(DEFAULT_CONFIG, config)
        return self._config_cache

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get one top-level configuration section.

        Raises:
            ValueError: If the section is unknown
        """
        full_config = self.load_config()
        if section not in full_config:
            raise ValueError(
                f"Section '{section}' not found in configuration. "
                f"Available sections: {sorted(full_config.keys())}"
            )
        return copy.deepcopy(full_config[section])

    def get_effort_model_config(self, name: Optional[str] = None) -> Dict[str, Any]:
        """
        Get the tables of a named effort model.

        Args:
            name: Effort model name (None = default_effort_model)

        Raises:
            ValueError: If the model is not defined
        """
        full_config = self.load_config()
        name = name or full_config.get('default_effort_model', 'standard')
        models = full_config.get('effort_models', {})
        if name not in models:
            raise ValueError(f"Effort model '{name}' not found. Available: {sorted(models)}")
        model_config = copy.deepcopy(models[name])
        model_config.setdefault('name', name)
        return model_config

    def get_output_format_config(self, format_name: str) -> Dict[str, Any]:
        """
        Get output format configuration.

        Args:
            format_name: Name of output format (csv, detailed, score_only)
        """
        full_config = self.load_config()
        return copy.deepcopy(full_config.get('output_formats', {}).get(format_name, {}))

    def validate_config(self) -> List[str]:
        """
        Validate the configuration and return any issues found.

        Returns:
            List of validation error messages (empty if valid)
        """
        try:
            config = self.load_config()
        except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
            return [f"Configuration error: {e}"]

        issues = []

        for section in self.SECTIONS:
            if section not in config:
                issues.append(f"Missing required section: {section}")

        threshold = config.get('corpus', {}).get('consistency_threshold')
        if threshold is not None and (not isinstance(threshold, (int, float)) or threshold < 0):
            issues.append(f"corpus.consistency_threshold must be a non-negative number, got {threshold!r}")

        default_model = config.get('default_effort_model')
        if default_model not in config.get('effort_models', {}):
            issues.append(f"default_effort_model '{default_model}' is not defined in effort_models")

        for pattern in config.get('classifier', {}).get('lateral_stretch', {}).get('patterns', []):
            columns = pattern.get('columns', [])
            if len(columns) != 2 or 'severity' not in pattern:
                issues.append(f"Invalid lateral stretch pattern: {pattern}")

        precision = config.get('report', {}).get('precision')
        if not isinstance(precision, int) or precision < 0:
            issues.append(f"report.precision must be a non-negative integer, got {precision!r}")

        return issues


# Global configuration loader instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader(config_path: Optional[str] = "config.yaml") -> ConfigLoader:
    """
    Get global configuration loader instance (singleton pattern).

    Args:
        config_path: Path to configuration file
    """
    global _config_loader

    requested = Path(config_path) if config_path else None
    if _config_loader is None or _config_loader.config_path != requested:
        _config_loader = ConfigLoader(config_path)

    return _config_loader


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Convenience function to load the full configuration.

    Args:
        config_path: Path to configuration file (None = built-in defaults)
    """
    return get_config_loader(config_path).load_config()
