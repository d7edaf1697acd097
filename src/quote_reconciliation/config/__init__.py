"""Configuration module for quote reconciliation."""

from quote_reconciliation.config.logging import configure_logging, get_logger, quote_context
from quote_reconciliation.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging", "get_logger", "quote_context"]
