"""Core omni-request модули."""

from .config import (
    Method,
    ResponseType,
    Credentials,
    TransportKind,
    AbortIdPolicy,
    RequestOption,
    ClientConfig,
)
from .exceptions import (
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
    classify_transport_exception,
)
from .abort import AbortEvent, AbortHandle, AbortRegistry, default_registry
from .codec import FormData
from .interceptors import Interceptor, FunctionInterceptor
from .response import NormalizedResponse, PageData
from .status import is_http_success
from .client import RequestClient

__all__ = [
    # Config
    "Method",
    "ResponseType",
    "Credentials",
    "TransportKind",
    "AbortIdPolicy",
    "RequestOption",
    "ClientConfig",
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
    "classify_transport_exception",
    # Abort
    "AbortEvent",
    "AbortHandle",
    "AbortRegistry",
    "default_registry",
    # Body / response
    "FormData",
    "NormalizedResponse",
    "PageData",
    "is_http_success",
    # Interceptors
    "Interceptor",
    "FunctionInterceptor",
    # Client
    "RequestClient",
]
