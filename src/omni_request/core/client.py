"""
RequestClient - оркестратор запроса.

Жизненный цикл одного вызова:

    BUILDING -> INTERCEPTING_REQUEST -> SERIALIZING -> DISPATCHED
        -> (COMPLETED -> CLASSIFYING -> INTERCEPTING_RESPONSE -> NORMALIZING)
        |  (FAILED    -> http_error(err)            -> status=500 ответ)
        |  (ABORTED   -> on_abort(event)            -> status=0 ответ)
        -> RESOLVED

Вызов всегда завершается значением NormalizedResponse. Исключения
бросают только интерцепторы/колбэки пользователя и ошибки конфигурации.
"""

import asyncio
import logging
import time
from http.cookiejar import CookieJar
from typing import Any, Dict, Mapping, Optional, Union

from requests.cookies import RequestsCookieJar

from ..transports.base import Transport, bind_progress
from ..transports.selector import (
    Capabilities,
    default_transports,
    get_transport,
    select_transport,
)
from ..utils.sanitizer import mask_url
from .abort import AbortEvent, AbortHandle, AbortRegistry, default_registry
from .codec import encode_request_body
from .config import ClientConfig, Credentials, RequestOption, TransportKind, resolve_credentials
from .context import PreparedRequest, RawResponse
from .exceptions import ConfigurationError, classify_transport_exception, transport_exception_types
from .interceptors import InterceptorPipeline, _maybe_await
from .logging import RequestLogger, reset_correlation_id, set_correlation_id
from .normalizer import (
    DEFAULT_HEADERS,
    append_query,
    ensure_scheme,
    is_absolute_url,
    join_url,
    merge_headers,
    origin_of,
    resolve_prefix,
    serialize_params,
)
from .response import NormalizedResponse, decode_raw, failure_response, normalize_response
from .status import is_http_success

logger = logging.getLogger(__name__)

ABORTED_MESSAGE = "Request aborted"

OptionLike = Union[RequestOption, Mapping[str, Any], None]


class RequestClient:
    """
    Асинхронный HTTP клиент с единым интерфейсом над тремя транспортами.

    Args:
        config: Глобальная конфигурация (или keyword-аргументы ClientConfig.create)
        transports: Экземпляры транспортов по виду (по умолчанию - все доступные)
        capabilities: Что считается доступным при автоматическом выборе
        registry: Реестр abort_id (по умолчанию общий для процесса)
        cookies: Cookie jar для credentials include/same-origin

    Example:
        >>> client = RequestClient(prefix="https://api.example.com")
        >>> resp = await client.request("/users", params={"page": 1})
        >>> if resp.success:
        ...     print(resp.result)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transports: Optional[Mapping[TransportKind, Transport]] = None,
        capabilities: Optional[Capabilities] = None,
        registry: Optional[AbortRegistry] = None,
        cookies: Optional[CookieJar] = None,
        **config_kwargs: Any
    ):
        if config is None:
            config = ClientConfig.create(**config_kwargs)
        elif config_kwargs:
            config = config.merge(**config_kwargs)

        self._config = config
        self._transports: Dict[TransportKind, Transport] = (
            dict(transports) if transports is not None else default_transports()
        )
        self._capabilities = capabilities or Capabilities.from_transports(self._transports)
        self._registry = registry if registry is not None else default_registry
        self._cookies = cookies if cookies is not None else RequestsCookieJar()
        self._logger: Optional[RequestLogger] = RequestLogger(config.logging) if config.logging else None

    # ━━━ свойства ━━━

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def registry(self) -> AbortRegistry:
        return self._registry

    @property
    def cookies(self) -> CookieJar:
        return self._cookies

    @property
    def capabilities(self) -> Capabilities:
        return self._capabilities

    def extend(self, config: Optional[ClientConfig] = None, **fields: Any) -> 'RequestClient':
        """
        Новый клиент с обновлённой конфигурацией.

        Переданные поля заменяют старые целиком; транспорты, реестр
        отмены и cookie jar общие с исходным клиентом.

        Example:
            >>> admin = client.extend(headers={"Authorization": "Bearer x"})
        """
        new_config = config if config is not None else self._config
        if fields:
            new_config = new_config.merge(**fields)
        return RequestClient(
            new_config,
            transports=self._transports,
            capabilities=self._capabilities,
            registry=self._registry,
            cookies=self._cookies,
        )

    def cancel_request(self, abort_id: str) -> bool:
        """Отменить запрос по abort_id. Неизвестный id - no-op (False)."""
        return self._registry.cancel(abort_id)

    # ━━━ основной вызов ━━━

    async def request(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        """
        Выполнить запрос.

        Args:
            url: Абсолютный URL, протокол-относительный (//host/...) или путь
            option: RequestOption или dict с настройками
            **fields: Поля RequestOption (перекрывают option)

        Returns:
            NormalizedResponse; при ошибке транспорта status=500, при отмене status=0

        Raises:
            ConfigurationError: невалидные настройки или относительный URL без префикса
            AbortIdInUseError: abort_id уже занят (политика REJECT)
            Исключения интерцепторов и колбэков пользователя
        """
        # Снимок конфигурации на весь вызов
        config = self._config
        pipeline = InterceptorPipeline(config.interceptor)

        option = self._build_option(url, RequestOption.create(option, **fields), config)
        option = await pipeline.run_request(option)

        loop = asyncio.get_running_loop()
        prepared = self._prepare(option, config, loop)

        kind = select_transport(
            self._capabilities,
            forced=option.transport or config.transport,
            wants_progress=option.on_progress is not None,
        )
        transport = get_transport(self._transports, kind)
        logger.debug("Selected %s transport for %s %s", kind.value, prepared.method, mask_url(prepared.url))

        abort: Optional[AbortHandle] = None
        if option.abort_id:
            abort = AbortHandle(option.abort_id, loop)
            self._registry.register(option.abort_id, abort, config.abort_id_policy)

        token = set_correlation_id(prepared.request_id)
        started = time.time()
        try:
            if self._logger:
                self._logger.request_started(
                    prepared.method, prepared.url, kind.value, prepared.headers, option.abort_id
                )
            return await self._dispatch(option, prepared, transport, pipeline, abort, started)
        finally:
            if abort is not None:
                self._registry.discard(option.abort_id, abort)
            reset_correlation_id(token)

    async def _dispatch(
        self,
        option: RequestOption,
        prepared: PreparedRequest,
        transport: Transport,
        pipeline: InterceptorPipeline,
        abort: Optional[AbortHandle],
        started: float
    ) -> NormalizedResponse:
        task = asyncio.ensure_future(transport.send(prepared, abort))
        if abort is not None:
            abort.attach_task(task)

        try:
            raw: RawResponse = await task
        except asyncio.CancelledError:
            if abort is None or not abort.aborted:
                raise
            return await self._aborted(option, prepared, transport, abort)
        except transport_exception_types() as exc:
            if abort is not None and abort.aborted:
                # сокет закрыли из-под транспорта
                return await self._aborted(option, prepared, transport, abort)
            error = classify_transport_exception(exc, prepared.url)
            if self._logger:
                self._logger.transport_error(
                    prepared.method, prepared.url, error, (time.time() - started) * 1000
                )
            await pipeline.run_transport_error(error)
            return failure_response(500, error.message, url=prepared.url, error=error)

        if abort is not None and abort.aborted:
            return await self._aborted(option, prepared, transport, abort)

        success = is_http_success(raw.status)
        body, parse_error = decode_raw(raw, prepared.response_type)

        await pipeline.run_response(body, raw.handle, failed=not success)

        response = normalize_response(raw, prepared.response_type, success, body, parse_error)
        if self._logger:
            self._logger.request_completed(
                prepared.method, prepared.url, response.status, (time.time() - started) * 1000
            )
        return response

    async def _aborted(
        self,
        option: RequestOption,
        prepared: PreparedRequest,
        transport: Transport,
        abort: AbortHandle
    ) -> NormalizedResponse:
        if self._logger:
            self._logger.request_aborted(prepared.method, prepared.url, abort.abort_id)
        if option.on_abort is not None:
            event = AbortEvent(abort_id=abort.abort_id, url=prepared.url, transport=transport.kind.value)
            await _maybe_await(option.on_abort(event))
        return failure_response(0, ABORTED_MESSAGE, url=prepared.url, aborted=True)

    # ━━━ подготовка ━━━

    def _build_option(self, url: str, option: RequestOption, config: ClientConfig) -> RequestOption:
        """Слить заголовки и выбрать префикс."""
        if not isinstance(url, str) or not url:
            raise ConfigurationError("url must be a non-empty string")

        return option.merge({
            'url': url,
            'headers': merge_headers(DEFAULT_HEADERS, config.headers, option.headers),
            'prefix': resolve_prefix(url, config.prefix, option.prefix),
        })

    def _prepare(
        self,
        option: RequestOption,
        config: ClientConfig,
        loop: asyncio.AbstractEventLoop
    ) -> PreparedRequest:
        """Собрать финальный URL и тело (состояние SERIALIZING)."""
        encoded = encode_request_body(
            option.method,
            option.data,
            dict(option.headers),
            params=option.params,
            compressed_type=option.compressed_type,
        )

        relative = not is_absolute_url(option.url)
        prefix = (option.prefix or '') if relative else ''
        url = ensure_scheme(join_url(prefix, option.url), prefix)
        url = append_query(url, serialize_params(option.params if option.params else encoded.query))

        if origin_of(url) is None:
            raise ConfigurationError(
                f"Cannot send request to relative URL {url!r}: set an absolute prefix"
            )

        return PreparedRequest(
            method=option.method,
            url=url,
            headers=encoded.headers,
            body=encoded.body,
            response_type=option.response_type,
            cookies=self._cookies if self._sends_cookies(option, config, url, relative) else None,
            on_progress=bind_progress(loop, option.on_progress),
            timeout=option.timeout,
            verify_ssl=config.verify_ssl,
            max_redirects=config.max_redirects,
        )

    @staticmethod
    def _sends_cookies(option: RequestOption, config: ClientConfig, url: str, relative: bool) -> bool:
        credentials = (
            resolve_credentials(option.credentials, option.with_credentials)
            or config.effective_credentials
        )
        if credentials == Credentials.INCLUDE:
            return True
        if credentials == Credentials.OMIT:
            return False
        # same-origin: относительно глобального префикса
        if relative and not is_absolute_url(config.prefix or ''):
            return True
        return origin_of(url) == origin_of(config.prefix or '')

    # ━━━ короткие методы ━━━

    async def get(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        return await self.request(url, option, **{**fields, 'method': 'GET'})

    async def post(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        return await self.request(url, option, **{**fields, 'method': 'POST'})

    async def put(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        return await self.request(url, option, **{**fields, 'method': 'PUT'})

    async def patch(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        return await self.request(url, option, **{**fields, 'method': 'PATCH'})

    async def delete(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        return await self.request(url, option, **{**fields, 'method': 'DELETE'})

    async def head(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        return await self.request(url, option, **{**fields, 'method': 'HEAD'})

    async def options(self, url: str, option: OptionLike = None, **fields: Any) -> NormalizedResponse:
        return await self.request(url, option, **{**fields, 'method': 'OPTIONS'})

    # ━━━ ресурсы ━━━

    def close(self) -> None:
        """Закрыть handlers логирования. Запросы в полёте не отменяются."""
        if self._logger is not None:
            self._logger.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return (
            f"RequestClient(prefix={self._config.prefix!r}, "
            f"transports={sorted(k.value for k in self._transports)})"
        )
