"""omni-request - один интерфейс запросов поверх XHR-, fetch- и socket-транспортов."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .api import request, request_sync, extend, cancel_request, get_default_client
from .core.client import RequestClient
from .core.config import (
    Method,
    ResponseType,
    Credentials,
    TransportKind,
    AbortIdPolicy,
    RequestOption,
    ClientConfig,
)
from .core.exceptions import (
    RequestCoreException,
    TransportError,
    ConnectionError,
    TimeoutError,
    DNSError,
    TLSError,
    TooManyRedirectsError,
    InvalidResponseError,
    ResponseParseError,
    HTTPStatusError,
    ConfigurationError,
    AbortIdInUseError,
)
from .core.abort import AbortEvent
from .core.codec import FormData
from .core.interceptors import Interceptor, FunctionInterceptor
from .core.logging import LoggingConfig
from .core.response import NormalizedResponse, PageData

# NullHandler, чтобы не было "No handler found"; настройка - через logging.getLogger('omni_request')
logging.getLogger('omni_request').addHandler(logging.NullHandler())

try:
    __version__ = version("omni-request")
except PackageNotFoundError:
    # Пакет не установлен (development mode)
    __version__ = "0.0.0-dev"

__license__ = "MIT"

__all__ = [
    # API
    "request",
    "request_sync",
    "extend",
    "cancel_request",
    "get_default_client",
    "RequestClient",

    # Config
    "Method",
    "ResponseType",
    "Credentials",
    "TransportKind",
    "AbortIdPolicy",
    "RequestOption",
    "ClientConfig",
    "LoggingConfig",

    # Exceptions
    "RequestCoreException",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "DNSError",
    "TLSError",
    "TooManyRedirectsError",
    "InvalidResponseError",
    "ResponseParseError",
    "HTTPStatusError",
    "ConfigurationError",
    "AbortIdInUseError",

    # Body / response
    "AbortEvent",
    "FormData",
    "Interceptor",
    "FunctionInterceptor",
    "NormalizedResponse",
    "PageData",
]
