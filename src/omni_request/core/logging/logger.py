"""
Request logger.

Wraps a stdlib logger with handlers built from LoggingConfig and offers
one method per request lifecycle event. URLs, headers and extra fields
are masked before they reach any handler.
"""

import logging
from typing import Any, List, Mapping, Optional

from ...utils.sanitizer import mask_headers, mask_sensitive_data, mask_url
from .config import LoggingConfig, LogLevel
from .filters import CorrelationIdFilter, ExtraFieldsFilter
from .formatters import get_formatter
from .handlers import create_console_handler, create_file_handler

DEFAULT_LOGGER_NAME = "omni_request.requests"

# Метка handlers, установленных RequestLogger
OWNER_ATTR = "_omni_request_owned"


class RequestLogger:
    """
    Logger for request lifecycle events.

    Example:
        >>> logger = RequestLogger(LoggingConfig.create(level="DEBUG", format="json"))
        >>> logger.request_started("GET", "https://api.example.com/users", "xhr")
        >>> logger.close()
    """

    def __init__(self, config: Optional[LoggingConfig] = None, name: str = DEFAULT_LOGGER_NAME):
        self.config = config or LoggingConfig()
        self.name = name
        self._closed = False

        level = self._get_level(self.config.level)
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self._logger.propagate = False

        # Повторная инициализация с тем же именем заменяет наши handlers; чужие не трогаем
        for handler in self._logger.handlers[:]:
            if getattr(handler, OWNER_ATTR, False):
                handler.close()
                self._logger.removeHandler(handler)

        filters = []
        if self.config.enable_correlation_id:
            filters.append(CorrelationIdFilter())
        if self.config.extra_fields:
            filters.append(ExtraFieldsFilter(self.config.extra_fields))

        formatter = get_formatter(self.config.format.value)

        self._handlers: List[logging.Handler] = []
        if self.config.enable_console:
            self._handlers.append(create_console_handler(level, formatter, filters))

        if self.config.enable_file and self.config.file_path:
            self._handlers.append(create_file_handler(
                file_path=self.config.file_path,
                level=level,
                formatter=formatter,
                max_bytes=self.config.max_bytes,
                backup_count=self.config.backup_count,
                filters=filters
            ))

        for handler in self._handlers:
            setattr(handler, OWNER_ATTR, True)
            self._logger.addHandler(handler)

    @staticmethod
    def _get_level(level: LogLevel) -> int:
        return getattr(logging, LogLevel(level).value)

    @property
    def closed(self) -> bool:
        return self._closed

    # ━━━ события запроса ━━━

    def request_started(
        self,
        method: str,
        url: str,
        transport: str,
        headers: Optional[Mapping[str, str]] = None,
        abort_id: Optional[str] = None
    ) -> None:
        fields: dict = {"method": method, "url": mask_url(url), "transport": transport}
        if abort_id:
            fields["abort_id"] = abort_id
        if headers is not None and self.config.log_headers:
            fields["headers"] = mask_headers(headers)
        self.info("Request started", **fields)

    def request_completed(self, method: str, url: str, status: int, duration_ms: float) -> None:
        fields = {
            "method": method,
            "url": mask_url(url),
            "status": status,
            "duration_ms": round(duration_ms, 2),
        }
        if 200 <= status < 400:
            self.info("Request completed", **fields)
        else:
            self.warning("Request failed", **fields)

        slow = self.config.slow_request_ms
        if slow is not None and duration_ms > slow:
            self.warning("Slow request", threshold_ms=slow, **fields)

    def request_aborted(self, method: str, url: str, abort_id: str) -> None:
        self.info("Request aborted", method=method, url=mask_url(url), abort_id=abort_id)

    def transport_error(self, method: str, url: str, error: BaseException, duration_ms: float) -> None:
        self.error(
            "Transport error",
            method=method,
            url=mask_url(url),
            error_type=type(error).__name__,
            error=str(error),
            duration_ms=round(duration_ms, 2),
        )

    # ━━━ прокси к logging.Logger ━━━

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, extra=mask_sensitive_data(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, extra=mask_sensitive_data(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, extra=mask_sensitive_data(kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(message, extra=mask_sensitive_data(kwargs))

    def close(self) -> None:
        """Flush and close handlers. Idempotent."""
        if self._closed:
            return

        for handler in self._handlers:
            try:
                handler.flush()
                handler.close()
            except (OSError, ValueError):
                # файл мог быть уже закрыт
                pass
            self._logger.removeHandler(handler)
        self._handlers = []

        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
