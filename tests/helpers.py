"""
Test helpers shared by unit and integration tests.
"""

import asyncio
import json
from typing import Callable, List, Optional

from requests.structures import CaseInsensitiveDict

from omni_request.core.config import TransportKind
from omni_request.core.context import PreparedRequest, RawResponse
from omni_request.transports.base import Transport


def json_response(payload, status: int = 200, headers: Optional[dict] = None) -> RawResponse:
    merged = CaseInsensitiveDict({"Content-Type": "application/json"})
    merged.update(headers or {})
    return RawResponse(
        status=status,
        reason="OK" if status < 400 else "Error",
        headers=merged,
        content=json.dumps(payload).encode("utf-8"),
    )


class StubTransport(Transport):
    """
    In-memory transport.

    responder(prepared) returns a RawResponse or raises; hang=True keeps
    the exchange pending until the task is cancelled.
    """

    def __init__(
        self,
        kind: TransportKind = TransportKind.FETCH,
        responder: Optional[Callable[[PreparedRequest], RawResponse]] = None,
        hang: bool = False,
    ):
        self.kind = kind
        self.responder = responder or (lambda prepared: json_response({"ok": True}))
        self.hang = hang
        self.sent: List[PreparedRequest] = []

    async def send(self, request, abort=None):
        self.sent.append(request)
        if self.hang:
            await asyncio.sleep(3600)
        raw = self.responder(request)
        if not raw.url:
            raw.url = request.url
        return raw
