"""
fetch-подобный транспорт на базе httpx.AsyncClient.

Полностью асинхронный: отмена - это отмена задачи отправки (аналог
AbortController), httpx сам закрывает соединение при CancelledError.
"""

from typing import Optional

try:
    import httpx
except ImportError:
    raise ImportError(
        "httpx is required for FetchTransport. "
        "Install with: pip install omni-request[async]"
    )

from requests.structures import CaseInsensitiveDict

from ..core.abort import AbortHandle
from ..core.codec import FormData, is_file_like
from ..core.config import TransportKind
from ..core.context import PreparedRequest, RawResponse
from .base import Transport, content_length


class FetchTransport(Transport):
    """
    Транспорт httpx.AsyncClient.

    Example:
        >>> transport = FetchTransport()
        >>> raw = await transport.send(prepared)
    """

    kind = TransportKind.FETCH

    async def send(self, request: PreparedRequest, abort: Optional[AbortHandle] = None) -> RawResponse:
        headers = dict(request.headers)
        content = request.body
        if isinstance(content, FormData):
            content, headers['Content-Type'] = content.encode()
        elif is_file_like(content):
            # AsyncClient не принимает синхронные потоки
            content = content.read()

        async with httpx.AsyncClient(
            cookies=request.cookies,
            verify=request.verify_ssl,
            follow_redirects=True,
            max_redirects=request.max_redirects,
            timeout=httpx.Timeout(request.timeout),
        ) as client:
            outgoing = client.build_request(
                request.method,
                request.url,
                headers=headers,
                content=content,
            )
            response = await client.send(outgoing, stream=True)
            try:
                total = content_length(response.headers.get('content-length'))
                loaded = 0
                chunks = []
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
                    loaded += len(chunk)
                    if request.on_progress is not None:
                        request.on_progress(loaded, total)
            finally:
                await response.aclose()

        return RawResponse(
            status=response.status_code,
            reason=response.reason_phrase or '',
            headers=CaseInsensitiveDict(response.headers.items()),
            content=b''.join(chunks),
            url=str(response.url),
            handle=response,
        )
