"""
Модульный API: request / extend / cancel_request.

Один клиент по умолчанию на процесс. extend() атомарно заменяет его
клиентом с новой конфигурацией; каждый вызов request() читает текущий
клиент один раз, в начале.

Example:
    >>> from omni_request import request, extend, cancel_request
    >>> extend(prefix="https://api.example.com", headers={"Authorization": "Bearer x"})
    >>> resp = await request("/users", params={"page": 1}, abort_id="users")
    >>> cancel_request("users")
"""

import asyncio
import threading
from typing import Any, Optional

from .core.abort import default_registry
from .core.client import OptionLike, RequestClient
from .core.config import ClientConfig
from .core.response import NormalizedResponse

_lock = threading.Lock()
_default_client: Optional[RequestClient] = None


def get_default_client() -> RequestClient:
    """Клиент по умолчанию (создаётся при первом обращении)."""
    global _default_client
    with _lock:
        if _default_client is None:
            _default_client = RequestClient()
        return _default_client


async def request(url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
    """
    Выполнить запрос клиентом по умолчанию.

    См. RequestClient.request().
    """
    return await get_default_client().request(url, option, **fields)


def extend(config: Optional[ClientConfig] = None, **fields: Any):
    """
    Обновить глобальную конфигурацию и вернуть request.

    Переданные поля заменяют предыдущие значения целиком (last writer wins);
    ClientConfig заменяет всю конфигурацию. Запросы в полёте продолжают
    работать со старым снимком.

    Example:
        >>> api = extend(prefix="/api", with_credentials=False)
        >>> resp = await api("/users")
    """
    global _default_client
    current = get_default_client()
    with _lock:
        base = _default_client or current
        _default_client = base.extend(config, **fields)
    return request


def cancel_request(abort_id: str) -> None:
    """
    Отменить запрос по abort_id.

    Неизвестный или уже завершённый abort_id - no-op.
    """
    default_registry.cancel(abort_id)


def request_sync(url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
    """
    Синхронная обёртка над request() для кода без event loop.

    Raises:
        RuntimeError: вызвана из работающего event loop
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError("request_sync() cannot be called from a running event loop; use await request()")
    return asyncio.run(request(url, option, **fields))


def reset() -> None:
    """Вернуть клиент по умолчанию к начальной конфигурации."""
    global _default_client
    with _lock:
        previous, _default_client = _default_client, None
    if previous is not None:
        previous.close()
