"""Транспорты: XHR (requests), fetch (httpx), socket (http.client)."""

from .base import Transport, bind_progress
from .selector import (
    Capabilities,
    default_transports,
    detect_capabilities,
    get_transport,
    select_transport,
)
from .socket import SocketTransport
from .xhr import XhrTransport

__all__ = [
    'Transport',
    'bind_progress',
    'Capabilities',
    'default_transports',
    'detect_capabilities',
    'get_transport',
    'select_transport',
    'SocketTransport',
    'XhrTransport',
]
