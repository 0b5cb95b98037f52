"""
Иерархия исключений omni-request.

Классификация:
- TransportError - транспорт не смог выполнить обмен (сеть, DNS, TLS, редиректы)
- InvalidResponseError - ответ получен, но не разбирается
- HTTPStatusError - неуспешный статус (только через raise_for_error())
- ConfigurationError / AbortIdInUseError - ошибки вызывающего кода
"""

import builtins
import http.client
import socket
import ssl
from typing import Optional

import requests

try:
    import httpx
except ImportError:
    httpx = None

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class RequestCoreException(Exception):
    """Базовое исключение omni-request."""

    def __init__(self, message: str, **kwargs):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ОШИБКИ ТРАНСПОРТА
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TransportError(RequestCoreException):
    """
    Транспорт не завершил обмен.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
    """

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        full_message = message
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)


class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - Network unreachable
    """
    pass


class TimeoutError(TransportError):
    """Таймаут подключения или чтения."""

    def __init__(self, message: str, url: Optional[str] = None, timeout: Optional[float] = None):
        self.timeout = timeout
        msg = message
        if timeout:
            msg += f" (timeout: {timeout}s)"
        super().__init__(msg, url)


class DNSError(ConnectionError):
    """DNS resolution failed."""
    pass


class TLSError(ConnectionError):
    """TLS handshake or certificate verification failed."""
    pass


class TooManyRedirectsError(TransportError):
    """Превышен лимит редиректов."""

    def __init__(self, max_redirects: int, url: Optional[str] = None):
        self.max_redirects = max_redirects
        super().__init__(f"Exceeded {max_redirects} redirects", url)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ОШИБКИ ОТВЕТА
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class InvalidResponseError(RequestCoreException):
    """
    Невалидный ответ.

    Примеры:
    - Битый JSON
    - Невалидная кодировка
    """
    pass


class ResponseParseError(InvalidResponseError):
    """
    Тело ответа не соответствует response_type.

    Args:
        response_type: Ожидаемый тип ответа
        reason: Причина
    """

    def __init__(self, response_type: str, reason: str):
        self.response_type = response_type
        self.reason = reason
        super().__init__(f"Cannot decode response as {response_type!r}: {reason}")


class HTTPStatusError(RequestCoreException):
    """
    Неуспешный HTTP статус.

    Args:
        status: HTTP статус
        url: URL
        message: Сообщение (reason phrase или message из тела)
    """

    def __init__(self, status: int, url: Optional[str] = None, message: str = ""):
        self.status = status
        self.url = url

        msg = f"HTTP {status} error"
        if url:
            msg += f" for {url}"
        if message:
            msg += f": {message}"
        super().__init__(msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ОШИБКИ ВЫЗЫВАЮЩЕГО КОДА
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ConfigurationError(RequestCoreException):
    """Ошибка конфигурации."""
    pass


class AbortIdInUseError(RequestCoreException):
    """abort_id уже принадлежит запросу в полёте."""

    def __init__(self, abort_id: str):
        self.abort_id = abort_id
        super().__init__(f"abort_id {abort_id!r} is already used by an in-flight request")

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def classify_transport_exception(exc: BaseException, url: Optional[str] = None) -> RequestCoreException:
    """
    Конвертировать исключения requests/httpx/http.client в наши.

    Args:
        exc: Исключение транспорта
        url: URL запроса

    Returns:
        Наше исключение с правильной классификацией

    Examples:
        >>> err = classify_transport_exception(requests.exceptions.ConnectTimeout(), "https://x")
        >>> assert isinstance(err, TimeoutError)
    """
    if isinstance(exc, RequestCoreException):
        return exc

    # requests
    if isinstance(exc, requests.exceptions.Timeout):
        return TimeoutError("Request timeout", url)
    if isinstance(exc, requests.exceptions.SSLError):
        return TLSError(f"TLS error: {exc}", url)
    if isinstance(exc, requests.exceptions.TooManyRedirects):
        return TransportError(f"Too many redirects: {exc}", url)
    if isinstance(exc, requests.exceptions.ConnectionError):
        if _looks_like_dns_failure(exc):
            return DNSError(f"DNS resolution failed: {exc}", url)
        return ConnectionError(f"Connection error: {exc}", url)
    if isinstance(exc, requests.exceptions.RequestException):
        return TransportError(str(exc) or exc.__class__.__name__, url)

    # httpx
    if httpx is not None and isinstance(exc, httpx.HTTPError):
        if isinstance(exc, httpx.TimeoutException):
            return TimeoutError("Request timeout", url)
        if isinstance(exc, httpx.TooManyRedirects):
            return TransportError(f"Too many redirects: {exc}", url)
        if isinstance(exc, httpx.ConnectError):
            if _looks_like_ssl_failure(exc):
                return TLSError(f"TLS error: {exc}", url)
            if _looks_like_dns_failure(exc):
                return DNSError(f"DNS resolution failed: {exc}", url)
            return ConnectionError(f"Connection error: {exc}", url)
        return TransportError(str(exc) or exc.__class__.__name__, url)

    # sockets
    if isinstance(exc, socket.gaierror):
        return DNSError(f"DNS resolution failed: {exc}", url)
    if isinstance(exc, ssl.SSLError):
        return TLSError(f"TLS error: {exc}", url)
    if isinstance(exc, (socket.timeout, builtins.TimeoutError)):
        return TimeoutError("Request timeout", url)
    if isinstance(exc, http.client.HTTPException):
        return TransportError(f"Protocol error: {exc!r}", url)
    if isinstance(exc, OSError):
        return ConnectionError(f"Connection error: {exc}", url)

    return RequestCoreException(str(exc) or exc.__class__.__name__)


def _looks_like_dns_failure(exc: BaseException) -> bool:
    """Walk the cause chain looking for a resolver failure."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        text = str(current)
        if "Name or service not known" in text or "nodename nor servname" in text \
                or "getaddrinfo failed" in text or "NameResolutionError" in text:
            return True
        current = current.__cause__ or current.__context__
    return False


def _looks_like_ssl_failure(exc: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLError):
            return True
        current = current.__cause__ or current.__context__
    return False


def transport_exception_types() -> tuple:
    """
    Исключения, которые означают сбой обмена (а не ошибку в коде).

    Только они превращаются в status=500 ответ; всё остальное
    пробрасывается вызывающему коду.
    """
    types = [TransportError, requests.exceptions.RequestException, http.client.HTTPException, OSError]
    if httpx is not None:
        types.append(httpx.HTTPError)
    return tuple(types)
