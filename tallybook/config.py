"""
Configuration module for Tallybook.

Contains constants, settings, and configuration values used throughout the application.
"""

import os
from pathlib import Path

# Version
VERSION = "0.1.0"

# Application paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOG_DIR = PROJECT_ROOT / "logs"

# Database configuration
DB_NAME = "tallybook.db"
DEFAULT_DB_PATH = Path(os.getenv("TALLYBOOK_DB_PATH", str(DATA_DIR / DB_NAME)))
DB_TIMEOUT = 10.0  # seconds
DB_BUSY_TIMEOUT_MS = 5000

# Validation constraints
MAX_STRING_LENGTH = 100
MAX_SAFE_INTEGER = 2**53 - 1
MIN_YEAR = 2000
MAX_YEAR = 2100
MIN_RECURRING_DAY = 1
MAX_RECURRING_DAY = 31

# Recurrence
RECURRENCE_INTERVAL_HOURS = float(os.getenv("RECURRENCE_INTERVAL_HOURS", "1"))

# Notifications
BUDGET_THRESHOLD_KEY = "budget_threshold"
CURRENCY_LABEL = os.getenv("TALLYBOOK_CURRENCY", "NGN")

# Chart generation
CHART_DPI = 150
CHART_FORMAT = "png"
CHART_WIDTH = 10
CHART_HEIGHT = 6

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = LOG_DIR / "tallybook.log"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Error messages
ERROR_MESSAGES = {
    "database_error": "An unexpected error occurred. Please try again.",
    "init_failed": "Failed to initialize the database. Please restart the app.",
    "validation_error": "Invalid input. Please check your values and try again.",
    "not_found": "The requested item was not found.",
    "already_bought": "This item has already been marked as bought.",
    "duplicate_expense": "This expense has already been recorded.",
}


def ensure_directories():
    """Ensure required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def get_log_level():
    """Get the configured log level."""
    import logging

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(LOG_LEVEL.upper(), logging.INFO)
