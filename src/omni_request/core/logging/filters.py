"""
Log filters: correlation id and static extra fields.

The correlation id lives in a ContextVar, so every asyncio task (and
every request running in it) sees its own value.
"""

import logging
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_correlation_id: ContextVar[Optional[str]] = ContextVar('omni_request_correlation_id', default=None)


def set_correlation_id(correlation_id: str) -> Token:
    """
    Set correlation id for the current context.

    Returns:
        Token for reset_correlation_id()

    Example:
        >>> token = set_correlation_id("req-12345")
        >>> get_correlation_id()
        'req-12345'
    """
    return _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def reset_correlation_id(token: Token) -> None:
    """Restore the value that was current before set_correlation_id()."""
    _correlation_id.reset(token)


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """
    Add correlation_id to records.

    A correlation_id passed explicitly through `extra` wins.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, 'correlation_id', None) is None:
            correlation_id = get_correlation_id()
            if correlation_id:
                record.correlation_id = correlation_id
        return True


class ExtraFieldsFilter(logging.Filter):
    """
    Add static fields (service, environment, ...) to every record.

    Example:
        >>> handler.addFilter(ExtraFieldsFilter({"service": "billing"}))
    """

    def __init__(self, extra_fields: Dict[str, Any]):
        super().__init__()
        self.extra_fields = dict(extra_fields)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.extra_fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
