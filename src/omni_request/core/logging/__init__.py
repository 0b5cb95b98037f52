"""
Structured request logging.

Example:
    >>> from omni_request import ClientConfig, RequestClient
    >>> from omni_request.core.logging import LoggingConfig
    >>>
    >>> client = RequestClient(ClientConfig.create(
    ...     prefix="https://api.example.com",
    ...     logging=LoggingConfig.create(level="DEBUG", format="colored"),
    ... ))
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import RequestLogger
from .formatters import JSONFormatter, TextFormatter, ColoredFormatter, get_formatter
from .filters import (
    CorrelationIdFilter,
    ExtraFieldsFilter,
    set_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    clear_correlation_id,
)
from .handlers import create_console_handler, create_file_handler

__all__ = [
    # Config
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    # Logger
    "RequestLogger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "ColoredFormatter",
    "get_formatter",
    # Filters
    "CorrelationIdFilter",
    "ExtraFieldsFilter",
    "set_correlation_id",
    "get_correlation_id",
    "reset_correlation_id",
    "clear_correlation_id",
    # Handlers
    "create_console_handler",
    "create_file_handler",
]
