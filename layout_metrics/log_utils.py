#!/usr/bin/env python3
"""
Logging setup for command-line use.

The library modules only create module-level loggers; handlers are
configured once, by the entry point, through setup_logging().
"""

import logging
import sys
import traceback
from typing import Any, Dict, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _create_console_handler(level: str, log_format: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(logging.Formatter(log_format))
    return handler


def setup_logging(config: Optional[Dict[str, Any]] = None,
                  quiet: bool = False,
                  verbose: bool = False) -> None:
    """
    Configure the root logger with a console handler.

    Args:
        config: The 'logging' configuration section (console_level, format)
        quiet: Only show warnings and errors
        verbose: Show debug messages
    """
    config = config or {}
    level = config.get('console_level', 'INFO')
    if quiet:
        level = 'WARNING'
    elif verbose:
        level = 'DEBUG'

    try:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.handlers.clear()
        root_logger.addHandler(_create_console_handler(level, config.get('format', DEFAULT_FORMAT)))
    except (AttributeError, TypeError, ValueError) as e:
        # Fallback to basic configuration
        logging.basicConfig(level=logging.INFO, format=DEFAULT_FORMAT)
        logger = logging.getLogger(__name__)
        logger.error(f"Error setting up logging: {e}")
        logger.debug(traceback.format_exc())


def handle_error(e: Exception, context: str = "", logger: Optional[logging.Logger] = None) -> None:
    """Standardized error logging with the traceback at debug level."""
    if logger is None:
        logger = logging.getLogger(__name__)

    error_msg = f"{context}: {e}" if context else str(e)
    logger.error(error_msg)
    logger.debug(traceback.format_exc())
