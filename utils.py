# utils.py
"""
Utility functions for the galaxy application.

This module provides helper functions, such as logging setup, config
loading and color parsing, that are used across different parts of the
application but do not belong to a specific domain like generation or
rendering.
"""
import logging
import logging.handlers
import json
import os
from typing import Dict, Any, Sequence, Tuple, Union

import pygame

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys.
#   - Outputs: None
#   - Side Effects: Configures the root Python logger. Creates a log
#     directory if it doesn't exist. Sets up a console handler and a
#     rotating file handler.
#   - Invariants: After this function runs, the logging system is
#     initialized and ready for use throughout the application.
#
# parse_color(value: str | Sequence[float]) -> Tuple[float, float, float]:
#   - Inputs: "#rrggbb" hex string, color name, or 0-255 RGB sequence.
#   - Outputs: RGB triplet normalized to [0, 1].
#   - Raises: ValueError if the value cannot be interpreted as a color.

ColorSpec = Union[str, Sequence[float]]


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/galaxy.log')

    # Ensure the log directory exists
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotates when the log reaches 1MB, keeps 5 backup logs.
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path}")


def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise


def parse_color(value: ColorSpec) -> Tuple[float, float, float]:
    """Converts a hex string or 0-255 RGB list into a normalized RGB triplet."""
    try:
        if isinstance(value, str):
            color = pygame.Color(value)
        else:
            color = pygame.Color(*[int(round(c)) for c in value][:3])
    except (ValueError, TypeError) as e:
        raise ValueError(f"Cannot interpret {value!r} as a color: {e}") from e
    return (color.r / 255.0, color.g / 255.0, color.b / 255.0)


def color_to_hex(rgb: Sequence[float]) -> str:
    """Formats a normalized RGB triplet as "#rrggbb"."""
    return "#" + "".join(f"{int(round(max(0.0, min(1.0, c)) * 255)):02x}" for c in rgb)


def shift_hue(rgb: Sequence[float], degrees: float) -> Tuple[float, float, float]:
    """Rotates the hue of a normalized RGB triplet, keeping saturation and value."""
    color = pygame.Color(*[int(round(max(0.0, min(1.0, c)) * 255)) for c in rgb])
    h, s, v, a = color.hsva
    color.hsva = ((h + degrees) % 360.0, s, v, a)
    return (color.r / 255.0, color.g / 255.0, color.b / 255.0)
