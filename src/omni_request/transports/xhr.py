"""
XHR-подобный транспорт на базе requests.

Событийная модель XMLHttpRequest воспроизводится потоковым чтением тела
(stream=True + iter_content): после каждого куска вызывается on_progress.
Блокирующий вызов выполняется в executor'е, отмена закрывает сессию и ответ.
"""

from typing import Callable, Optional

import requests
from requests.cookies import RequestsCookieJar
from requests.structures import CaseInsensitiveDict

from ..core.abort import AbortHandle
from ..core.codec import FormData
from ..core.config import TransportKind
from ..core.context import PreparedRequest, RawResponse
from .base import CHUNK_SIZE, Transport, content_length, run_blocking


class XhrTransport(Transport):
    """
    Транспорт requests.Session с отчётом о прогрессе.

    Каждый запрос получает свою сессию (без пула соединений); cookies
    берутся из jar запроса, если политика credentials это разрешает.

    Example:
        >>> transport = XhrTransport()
        >>> raw = await transport.send(prepared)
    """

    kind = TransportKind.XHR

    def __init__(self, session_factory: Callable[[], requests.Session] = requests.Session):
        self._session_factory = session_factory

    async def send(self, request: PreparedRequest, abort: Optional[AbortHandle] = None) -> RawResponse:
        return await run_blocking(self._send_blocking, request, abort)

    def _send_blocking(self, request: PreparedRequest, abort: Optional[AbortHandle]) -> RawResponse:
        session = self._session_factory()
        session.max_redirects = request.max_redirects
        session.cookies = request.cookies if request.cookies is not None else RequestsCookieJar()
        if abort is not None:
            abort.add_cleanup(session.close)

        data = request.body
        files = None
        if isinstance(data, FormData):
            files = data.as_requests_files()
            data = None

        try:
            response = session.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                data=data,
                files=files,
                stream=True,
                timeout=request.timeout,
                verify=request.verify_ssl,
                allow_redirects=True,
            )
            if abort is not None:
                abort.add_cleanup(response.close)

            total = content_length(response.headers.get('Content-Length'))
            loaded = 0
            chunks = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if abort is not None and abort.aborted:
                    break
                if not chunk:
                    continue
                chunks.append(chunk)
                loaded += len(chunk)
                if request.on_progress is not None:
                    request.on_progress(loaded, total)

            return RawResponse(
                status=response.status_code,
                reason=response.reason or '',
                headers=CaseInsensitiveDict(response.headers),
                content=b''.join(chunks),
                url=response.url,
                handle=response,
            )
        finally:
            session.close()
