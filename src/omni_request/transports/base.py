"""
Базовый класс транспорта.

Транспорт получает полностью подготовленный PreparedRequest и возвращает
RawResponse. Каждый транспорт сам выставляет заголовки, передаёт тело,
определяет завершение обмена, сообщает прогресс и подключает отмену к
AbortHandle.
"""

import asyncio
import functools
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..core.abort import AbortHandle
from ..core.config import ProgressCallback, TransportKind
from ..core.context import PreparedRequest, RawResponse

CHUNK_SIZE = 64 * 1024


class Transport(ABC):
    """
    Базовый класс для транспортов.

    Attributes:
        kind: Какой транспорт реализует класс
    """

    kind: TransportKind

    @abstractmethod
    async def send(self, request: PreparedRequest, abort: Optional[AbortHandle] = None) -> RawResponse:
        """
        Выполнить обмен.

        Raises:
            Исключения библиотеки транспорта; оркестратор классифицирует их
            через classify_transport_exception().
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def bind_progress(
    loop: asyncio.AbstractEventLoop,
    callback: Optional[ProgressCallback]
) -> Optional[ProgressCallback]:
    """
    Обернуть колбэк прогресса так, чтобы он выполнялся на event loop.

    Блокирующие транспорты читают тело в потоке executor'а; колбэк
    пользователя при этом всё равно вызывается в потоке event loop.
    Async колбэки планируются как задачи.
    """
    if callback is None:
        return None

    def deliver(loaded: int, total: int) -> None:
        result = callback(loaded, total)
        if inspect.isawaitable(result):
            asyncio.ensure_future(result)

    def report(loaded: int, total: int) -> None:
        loop.call_soon_threadsafe(deliver, loaded, total)

    return report


def content_length(value: Optional[str]) -> int:
    """Content-Length как int; 0 если заголовка нет или он битый."""
    if not value:
        return 0
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


async def run_blocking(func: Callable[..., Any], *args: Any) -> Any:
    """Выполнить блокирующий вызов в executor'е по умолчанию."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))
