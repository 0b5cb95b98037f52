"""
Интерцепторы запросов.

Три точки расширения, каждая опциональна, каждая может быть sync или async:
- request(option) - перед отправкой, может вернуть изменённые настройки
- response(body, handle) - на каждый завершённый обмен, до нормализации
- http_error(handle_or_error) - неуспешный статус или ошибка транспорта

Исключения интерцепторов не перехватываются и доходят до вызывающего кода.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from .config import RequestOption

RequestPatch = Union[RequestOption, Mapping[str, Any], None]


class Interceptor:
    """
    Базовый класс интерцептора. Переопределите нужные методы.

    Example:
        >>> class AuthInterceptor(Interceptor):
        ...     async def request(self, option):
        ...         token = await load_token()
        ...         return {"headers": {"Authorization": f"Bearer {token}"}}
        ...
        ...     def http_error(self, handle_or_error):
        ...         if getattr(handle_or_error, "status_code", None) == 401:
        ...             logout()
    """

    def request(self, option: RequestOption) -> Union[RequestPatch, Awaitable[RequestPatch]]:
        """Вызывается перед отправкой. None - без изменений."""
        return None

    def response(self, body: Any, handle: Any) -> Optional[Awaitable[None]]:
        """Вызывается на каждый завершённый обмен, независимо от статуса."""
        return None

    def http_error(self, handle_or_error: Any) -> Optional[Awaitable[None]]:
        """Вызывается при неуспешном статусе (handle) или ошибке транспорта (исключение)."""
        return None


class FunctionInterceptor(Interceptor):
    """
    Интерцептор из обычных функций.

    Example:
        >>> interceptor = FunctionInterceptor(
        ...     request=lambda option: {"headers": {"X-Trace": "1"}},
        ...     http_error=lambda err: print("failed", err),
        ... )
    """

    def __init__(
        self,
        request: Optional[Callable[[RequestOption], Any]] = None,
        response: Optional[Callable[[Any, Any], Any]] = None,
        http_error: Optional[Callable[[Any], Any]] = None,
    ):
        self._request = request
        self._response = response
        self._http_error = http_error

    def request(self, option):
        if self._request is None:
            return None
        return self._request(option)

    def response(self, body, handle):
        if self._response is None:
            return None
        return self._response(body, handle)

    def http_error(self, handle_or_error):
        if self._http_error is None:
            return None
        return self._http_error(handle_or_error)

    def __repr__(self) -> str:
        hooks = [name for name, fn in (
            ("request", self._request), ("response", self._response), ("http_error", self._http_error)
        ) if fn is not None]
        return f"FunctionInterceptor({', '.join(hooks)})"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class InterceptorPipeline:
    """Запускает хуки одного интерцептора в нужных состояниях запроса."""

    def __init__(self, interceptor: Optional[Interceptor] = None):
        self.interceptor = interceptor

    async def run_request(self, option: RequestOption) -> RequestOption:
        """Вызвать request-хук и наложить результат на option."""
        if self.interceptor is None:
            return option
        patch = await _maybe_await(self.interceptor.request(option))
        return option.merge(patch)

    async def run_response(self, body: Any, handle: Any, failed: bool) -> None:
        """
        Вызвать response-хук и, если статус неуспешен, http_error.

        Хуки ожидаются вместе, порядок между ними не определён.
        """
        if self.interceptor is None:
            return
        hooks = [_maybe_await(self.interceptor.response(body, handle))]
        if failed:
            hooks.append(_maybe_await(self.interceptor.http_error(handle)))
        await asyncio.gather(*hooks)

    async def run_transport_error(self, error: BaseException) -> None:
        """Ошибка транспорта: обмена не было, вызывается только http_error."""
        if self.interceptor is None:
            return
        await _maybe_await(self.interceptor.http_error(error))
