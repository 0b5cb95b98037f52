"""
Низкоуровневый транспорт на http.client.

Используется, когда нет ни requests, ни httpx, или когда его выбрали явно.
Редиректы 301/302 обрабатываются вручную (тот же метод и то же тело),
тело ответа читается кусками с отчётом о прогрессе. Отмена делает
shutdown сокета, блокирующее чтение в executor'е сразу прерывается.
"""

import gzip
import http.client
import logging
import socket
import ssl
import urllib.request
import zlib
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from requests.structures import CaseInsensitiveDict

from ..core.abort import AbortHandle
from ..core.codec import FormData, is_file_like
from ..core.config import TransportKind
from ..core.context import PreparedRequest, RawResponse
from ..core.exceptions import TooManyRedirectsError
from ..core.normalizer import drop_header
from .base import CHUNK_SIZE, Transport, content_length, run_blocking

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302})


class SocketTransport(Transport):
    """
    Транспорт http.client.HTTP(S)Connection.

    Example:
        >>> transport = SocketTransport()
        >>> raw = await transport.send(prepared)
    """

    kind = TransportKind.SOCKET

    def __init__(self, ssl_context_factory: Optional[Callable[[bool], ssl.SSLContext]] = None):
        self._ssl_context_factory = ssl_context_factory or _default_ssl_context

    async def send(self, request: PreparedRequest, abort: Optional[AbortHandle] = None) -> RawResponse:
        return await run_blocking(self._send_blocking, request, abort)

    def _send_blocking(self, request: PreparedRequest, abort: Optional[AbortHandle]) -> RawResponse:
        headers = dict(request.headers)
        body = request.body
        if isinstance(body, FormData):
            body, content_type = body.encode()
            headers = drop_header(headers, 'Content-Type')
            headers['Content-Type'] = content_type
        elif is_file_like(body):
            # тело нужно повторно отправить при редиректе
            body = body.read()

        url = request.url
        redirects = 0
        while True:
            connection, response = self._exchange(request, url, headers, body, abort)
            location = response.getheader('Location')
            if response.status not in REDIRECT_STATUSES or not location:
                break

            connection.close()
            redirects += 1
            if redirects > request.max_redirects:
                raise TooManyRedirectsError(request.max_redirects, request.url)
            url = urljoin(url, location)
            logger.debug("Following %d redirect to %s", response.status, url)

        try:
            content = self._read_body(response, request, abort)
        finally:
            connection.close()

        return RawResponse(
            status=response.status,
            reason=response.reason or '',
            headers=_collect_headers(response.getheaders()),
            content=_decompress(content, response.getheader('Content-Encoding')),
            url=url,
            handle=response,
        )

    def _exchange(
        self,
        request: PreparedRequest,
        url: str,
        headers: dict,
        body,
        abort: Optional[AbortHandle]
    ) -> Tuple[http.client.HTTPConnection, http.client.HTTPResponse]:
        parts = urlsplit(url)
        if parts.scheme == 'https':
            connection: http.client.HTTPConnection = http.client.HTTPSConnection(
                parts.hostname,
                parts.port,
                timeout=request.timeout,
                context=self._ssl_context_factory(request.verify_ssl),
            )
        else:
            connection = http.client.HTTPConnection(parts.hostname, parts.port, timeout=request.timeout)

        if abort is not None:
            abort.add_cleanup(lambda: _shutdown(connection))

        outgoing = dict(headers)
        cookie_request = urllib.request.Request(url, method=request.method)
        if request.cookies is not None:
            request.cookies.add_cookie_header(cookie_request)
            cookie = cookie_request.get_header('Cookie')
            if cookie:
                outgoing['Cookie'] = cookie

        target = parts.path or '/'
        if parts.query:
            target += '?' + parts.query

        connection.request(request.method, target, body=body, headers=outgoing)
        response = connection.getresponse()
        if request.cookies is not None:
            request.cookies.extract_cookies(response, cookie_request)
        return connection, response

    def _read_body(
        self,
        response: http.client.HTTPResponse,
        request: PreparedRequest,
        abort: Optional[AbortHandle]
    ) -> bytes:
        if request.method == 'HEAD':
            return b''

        total = content_length(response.getheader('Content-Length'))
        loaded = 0
        chunks: List[bytes] = []
        while True:
            if abort is not None and abort.aborted:
                break
            chunk = response.read(CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
            loaded += len(chunk)
            if request.on_progress is not None:
                request.on_progress(loaded, total)
        return b''.join(chunks)


def _default_ssl_context(verify: bool) -> ssl.SSLContext:
    if verify:
        return ssl.create_default_context()
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def _shutdown(connection: http.client.HTTPConnection) -> None:
    sock = connection.sock
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # уже закрыт
            pass
    connection.close()


def _collect_headers(pairs: List[Tuple[str, str]]) -> CaseInsensitiveDict:
    """Повторяющиеся заголовки склеиваются через ", " (кроме Set-Cookie, там последний)."""
    headers = CaseInsensitiveDict()
    for name, value in pairs:
        if name in headers and name.lower() != 'set-cookie':
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value
    return headers


def _decompress(content: bytes, encoding: Optional[str]) -> bytes:
    """http.client не распаковывает тело сам."""
    if not content or not encoding:
        return content
    encoding = encoding.strip().lower()
    try:
        if encoding == 'gzip':
            return gzip.decompress(content)
        if encoding == 'deflate':
            try:
                return zlib.decompress(content)
            except zlib.error:
                return zlib.decompress(content, -zlib.MAX_WBITS)
    except (OSError, EOFError, zlib.error) as e:
        raise http.client.HTTPException(f"Cannot decode {encoding} body: {e}") from e
    return content
