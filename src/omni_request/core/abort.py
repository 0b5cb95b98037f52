"""
Реестр отмены запросов.

abort_id (строка, которую выбирает вызывающий код) -> AbortHandle запроса в
полёте. cancel_request(abort_id) находит handle, отменяет транспорт и
удаляет запись. Записи удаляются и при естественном завершении запроса.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .config import AbortIdPolicy
from .exceptions import AbortIdInUseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AbortEvent:
    """Передаётся в on_abort."""
    abort_id: str
    url: str
    transport: str


class AbortHandle:
    """
    Handle отмены одного запроса.

    Транспорт регистрирует свои действия отмены через add_cleanup()
    (закрыть сокет, закрыть ответ requests). cancel() выполняет их и
    отменяет задачу отправки на event loop.

    Thread-safe: cancel() можно вызвать из любого потока.
    """

    def __init__(self, abort_id: str, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.abort_id = abort_id
        self._loop = loop
        self._task: Optional[asyncio.Future] = None
        self._cleanups: List[Callable[[], None]] = []
        self._aborted = threading.Event()
        self._lock = threading.Lock()

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def attach_task(self, task: asyncio.Future) -> None:
        """Привязать задачу отправки (её отменит cancel())."""
        with self._lock:
            self._task = task
            if self._loop is None:
                self._loop = task.get_loop()
            aborted = self.aborted
        if aborted:
            self._cancel_task(task)

    def add_cleanup(self, callback: Callable[[], None]) -> None:
        """Зарегистрировать действие отмены; если уже отменён - выполнить сразу."""
        with self._lock:
            if not self.aborted:
                self._cleanups.append(callback)
                return
        self._run_cleanup(callback)

    def cancel(self) -> bool:
        """
        Отменить запрос.

        Returns:
            False если handle уже был отменён
        """
        with self._lock:
            if self.aborted:
                return False
            self._aborted.set()
            cleanups, self._cleanups = self._cleanups, []
            task = self._task

        for callback in cleanups:
            self._run_cleanup(callback)
        if task is not None:
            self._cancel_task(task)
        return True

    def _run_cleanup(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            # Сокет мог уже закрыться сам
            logger.debug("Abort cleanup failed for %r", self.abort_id, exc_info=True)

    def _cancel_task(self, task: asyncio.Future) -> None:
        if task.done():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and running is self._loop:
            task.cancel()
        elif self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(task.cancel)

    def __repr__(self) -> str:
        return f"AbortHandle({self.abort_id!r}, aborted={self.aborted})"


class AbortRegistry:
    """
    Процессный реестр abort_id -> AbortHandle.

    Example:
        >>> registry = AbortRegistry()
        >>> registry.register("upload", handle)
        >>> registry.cancel("upload")
        True
        >>> registry.cancel("upload")  # уже нет - no-op
        False
    """

    def __init__(self):
        self._entries: Dict[str, AbortHandle] = {}
        self._lock = threading.Lock()

    def register(
        self,
        abort_id: str,
        handle: AbortHandle,
        policy: AbortIdPolicy = AbortIdPolicy.REPLACE
    ) -> None:
        """
        Добавить handle.

        Raises:
            AbortIdInUseError: policy=REJECT и id занят запросом в полёте
        """
        with self._lock:
            existing = self._entries.get(abort_id)
            if existing is not None and existing is not handle and not existing.aborted:
                if policy == AbortIdPolicy.REJECT:
                    raise AbortIdInUseError(abort_id)
                logger.debug("Replacing in-flight abort handle %r", abort_id)
            self._entries[abort_id] = handle

    def cancel(self, abort_id: str) -> bool:
        """Отменить и удалить запись. Отсутствующий id - no-op."""
        with self._lock:
            handle = self._entries.pop(abort_id, None)
        if handle is None:
            return False
        return handle.cancel()

    def discard(self, abort_id: str, handle: Optional[AbortHandle] = None) -> None:
        """Удалить запись без отмены (только если она принадлежит handle)."""
        with self._lock:
            current = self._entries.get(abort_id)
            if current is not None and (handle is None or current is handle):
                del self._entries[abort_id]

    def get(self, abort_id: str) -> Optional[AbortHandle]:
        with self._lock:
            return self._entries.get(abort_id)

    def cancel_all(self) -> int:
        """Отменить все запросы в полёте; вернуть количество."""
        with self._lock:
            handles = list(self._entries.values())
            self._entries.clear()
        return sum(1 for handle in handles if handle.cancel())

    def __contains__(self, abort_id: object) -> bool:
        with self._lock:
            return abort_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Общий для всех клиентов реестр
default_registry = AbortRegistry()
