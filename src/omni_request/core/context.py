"""Контракт между оркестратором и транспортами."""

import uuid
from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Any, Dict, Optional

from requests.structures import CaseInsensitiveDict

from .config import ProgressCallback, ResponseType


@dataclass
class PreparedRequest:
    """Fully normalized request handed to a transport.

    Attributes:
        method: HTTP method (upper case)
        url: Absolute URL with query string
        headers: Final request headers
        body: bytes, file-like, FormData or None
        response_type: How the orchestrator will decode the body
        cookies: Cookie jar to use, None when credentials are omitted
        on_progress: Progress callback (loaded, total), already bound to the event loop
        timeout: Seconds, None for no timeout
        verify_ssl: Verify TLS certificates
        max_redirects: Redirect limit for transports that follow manually
        request_id: Unique identifier, also used as log correlation id
    """

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    response_type: ResponseType = ResponseType.JSON
    cookies: Optional[CookieJar] = None
    on_progress: Optional[ProgressCallback] = None
    timeout: Optional[float] = None
    verify_ssl: bool = True
    max_redirects: int = 30
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class RawResponse:
    """What a transport returns once the exchange completes.

    `handle` is the transport's own response object (requests.Response,
    httpx.Response or http.client.HTTPResponse). It is a back-reference only;
    the body has already been read into `content`.
    """

    status: int
    reason: str = ''
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    content: bytes = b''
    url: str = ''
    handle: Any = None
