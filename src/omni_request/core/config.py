"""
Система конфигурации omni-request.

ClientConfig - неизменяемый снимок глобальных настроек (заголовки, префикс,
credentials, интерцептор). RequestOption - настройки одного вызова.
Оба класса - frozen dataclasses: изменение происходит только через merge(),
который возвращает новый объект.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union, TYPE_CHECKING

from .exceptions import ConfigurationError
from .normalizer import merge_headers

if TYPE_CHECKING:
    from .abort import AbortEvent
    from .interceptors import Interceptor
    from .logging import LoggingConfig

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ENUMS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class Method(str, Enum):
    """HTTP методы, включая WebDAV и туннельные."""
    GET = "GET"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    PURGE = "PURGE"
    LINK = "LINK"
    UNLINK = "UNLINK"
    PROPFIND = "PROPFIND"
    PROPPATCH = "PROPPATCH"
    MKCOL = "MKCOL"
    COPY = "COPY"
    MOVE = "MOVE"
    LOCK = "LOCK"
    UNLOCK = "UNLOCK"
    REPORT = "REPORT"
    SEARCH = "SEARCH"
    CONNECT = "CONNECT"
    TRACE = "TRACE"


class ResponseType(str, Enum):
    """Как декодировать тело ответа."""
    JSON = "json"
    TEXT = "text"
    BLOB = "blob"
    ARRAYBUFFER = "arraybuffer"
    FORM_DATA = "form-data"
    BYTES = "bytes"
    DOCUMENT = "document"
    DEFAULT = ""


class Credentials(str, Enum):
    """Политика отправки cookies."""
    INCLUDE = "include"
    SAME_ORIGIN = "same-origin"
    OMIT = "omit"


class TransportKind(str, Enum):
    """Закрытый набор транспортов."""
    XHR = "xhr"
    FETCH = "fetch"
    SOCKET = "socket"


class AbortIdPolicy(str, Enum):
    """
    Что делать, если abort_id уже занят запросом в полёте.

    REJECT - бросить AbortIdInUseError до отправки запроса.
    REPLACE - молча заменить старый handle (старый запрос больше нельзя отменить по id).
    """
    REJECT = "reject"
    REPLACE = "replace"


ProgressCallback = Callable[[int, int], Any]
AbortCallback = Callable[["AbortEvent"], Any]

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HELPERS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _freeze_headers(headers: Optional[Mapping[str, Any]]) -> Mapping[str, str]:
    """Copy headers into a read-only mapping with string values."""
    if not headers:
        return MappingProxyType({})
    return MappingProxyType({str(k): str(v) for k, v in headers.items()})


def _coerce_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value.lower() if isinstance(value, str) else value)
    except ValueError:
        allowed = ", ".join(repr(m.value) for m in enum_cls)
        raise ConfigurationError(f"Invalid {field_name} {value!r} (allowed: {allowed})")


def resolve_credentials(
    credentials: Optional[Credentials],
    with_credentials: Optional[bool],
) -> Optional[Credentials]:
    """
    Привести пару credentials/with_credentials к одной политике.

    Явный credentials важнее флага with_credentials.
    """
    if credentials is not None:
        return credentials
    if with_credentials is not None:
        return Credentials.INCLUDE if with_credentials else Credentials.OMIT
    return None

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REQUEST OPTION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class RequestOption:
    """
    Настройки одного запроса.

    Args:
        method: HTTP метод (по умолчанию GET)
        response_type: Тип ответа (json, text, blob, arraybuffer, form-data, bytes, document, "")
        headers: Заголовки этого вызова (перекрывают глобальные)
        data: Тело запроса (dict/list -> JSON, bytes/str/FormData/файл - как есть)
        params: Query параметры
        credentials: Политика cookies (include, same-origin, omit)
        with_credentials: Короткая форма credentials (True -> include, False -> omit)
        abort_id: Идентификатор для cancel_request()
        prefix: Префикс URL, перекрывает глобальный
        on_progress: Колбэк прогресса (loaded, total)
        on_abort: Колбэк отмены, получает AbortEvent
        compressed_type: Сжать тело ("gzip" или "deflate")
        timeout: Таймаут в секундах (None - без таймаута)
        transport: Принудительный выбор транспорта
        url: Заполняется клиентом перед вызовом request-интерцептора

    Examples:
        >>> RequestOption(method="POST", data={"name": "alice"})
        >>> RequestOption(params={"page": 1}, abort_id="users-list")
    """
    method: str = "GET"
    response_type: ResponseType = ResponseType.JSON
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    data: Any = None
    params: Any = None
    credentials: Optional[Credentials] = None
    with_credentials: Optional[bool] = None
    abort_id: Optional[str] = None
    prefix: Optional[str] = None
    on_progress: Optional[ProgressCallback] = field(default=None, compare=False)
    on_abort: Optional[AbortCallback] = field(default=None, compare=False)
    compressed_type: Optional[str] = None
    timeout: Optional[float] = None
    transport: Optional[TransportKind] = None
    url: str = ""

    def __post_init__(self):
        """Нормализация и валидация."""
        method = str(self.method.value if isinstance(self.method, Method) else self.method).upper()
        if method not in Method.__members__:
            raise ConfigurationError(f"Unsupported HTTP method: {self.method!r}")
        object.__setattr__(self, 'method', method)

        response_type = self.response_type
        if response_type is None:
            response_type = ResponseType.JSON
        object.__setattr__(
            self, 'response_type', _coerce_enum(ResponseType, response_type, 'response_type')
        )
        object.__setattr__(self, 'credentials', _coerce_enum(Credentials, self.credentials, 'credentials'))
        object.__setattr__(self, 'transport', _coerce_enum(TransportKind, self.transport, 'transport'))

        if not isinstance(self.headers, MappingProxyType):
            object.__setattr__(self, 'headers', _freeze_headers(self.headers))

        if self.compressed_type is not None:
            compressed = self.compressed_type.lower()
            if compressed not in ("gzip", "deflate"):
                raise ConfigurationError(f"Unsupported compressed_type: {self.compressed_type!r}")
            object.__setattr__(self, 'compressed_type', compressed)

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")

    @classmethod
    def create(
        cls,
        option: Union['RequestOption', Mapping[str, Any], None] = None,
        **fields: Any
    ) -> 'RequestOption':
        """
        Собрать RequestOption из объекта, словаря и/или keyword-аргументов.

        Example:
            >>> RequestOption.create({"method": "post"}, data={"a": 1})
        """
        if option is None:
            base = cls()
        elif isinstance(option, RequestOption):
            base = option
        elif isinstance(option, Mapping):
            base = cls()
            fields = {**option, **fields}
        else:
            raise ConfigurationError(f"Unsupported option type: {type(option).__name__}")

        if not fields:
            return base
        return base.merge(fields)

    def merge(self, patch: Union['RequestOption', Mapping[str, Any], None]) -> 'RequestOption':
        """
        Наложить изменения поверх текущих настроек.

        Словарь сливается поверх (заголовки - по ключам). У RequestOption
        накладываются только поля, отличные от значений по умолчанию.
        None - без изменений.
        """
        if patch is None:
            return self
        if isinstance(patch, RequestOption):
            defaults = RequestOption()
            patch = {
                f.name: getattr(patch, f.name)
                for f in dataclasses.fields(patch)
                if getattr(patch, f.name) != getattr(defaults, f.name)
            }
        if not isinstance(patch, Mapping):
            raise ConfigurationError(f"Cannot merge {type(patch).__name__} into RequestOption")

        changes: Dict[str, Any] = dict(patch)
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown request option(s): {', '.join(sorted(unknown))}")

        if 'headers' in changes:
            changes['headers'] = merge_headers(self.headers, changes['headers'])
        return dataclasses.replace(self, **changes)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CLIENT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class ClientConfig:
    """
    Глобальная конфигурация клиента (immutable snapshot).

    Args:
        headers: Общие заголовки для всех запросов
        prefix: Префикс для относительных URL
        credentials: Политика cookies (по умолчанию include)
        with_credentials: Короткая форма credentials
        interceptor: Интерцептор запросов/ответов
        transport: Принудительный транспорт (None - автоматический выбор)
        max_redirects: Максимум редиректов для socket транспорта
        verify_ssl: Проверять SSL сертификаты
        abort_id_policy: Поведение при повторном abort_id
        logging: Конфигурация логирования (None - без логирования)

    Examples:
        >>> config = ClientConfig(prefix="https://api.example.com")
        >>> config = ClientConfig.create(headers={"Authorization": "Bearer x"})
    """
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    prefix: Optional[str] = None
    credentials: Optional[Credentials] = None
    with_credentials: Optional[bool] = None
    interceptor: Optional['Interceptor'] = None
    transport: Optional[TransportKind] = None
    max_redirects: int = 30
    verify_ssl: bool = True
    abort_id_policy: AbortIdPolicy = AbortIdPolicy.REJECT
    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Freeze headers and validate."""
        if not isinstance(self.headers, MappingProxyType):
            object.__setattr__(self, 'headers', _freeze_headers(self.headers))

        object.__setattr__(self, 'credentials', _coerce_enum(Credentials, self.credentials, 'credentials'))
        object.__setattr__(self, 'transport', _coerce_enum(TransportKind, self.transport, 'transport'))
        object.__setattr__(
            self, 'abort_id_policy', _coerce_enum(AbortIdPolicy, self.abort_id_policy, 'abort_id_policy')
        )

        if self.max_redirects < 0:
            raise ConfigurationError("max_redirects must be non-negative")

    @classmethod
    def create(
        cls,
        headers: Optional[Mapping[str, Any]] = None,
        prefix: Optional[str] = None,
        interceptor: Optional['Interceptor'] = None,
        **kwargs: Any
    ) -> 'ClientConfig':
        """
        Удобный конструктор конфигурации.

        Example:
            >>> ClientConfig.create(prefix="/api", with_credentials=False)
        """
        try:
            return cls(headers=headers or {}, prefix=prefix, interceptor=interceptor, **kwargs)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e

    @property
    def effective_credentials(self) -> Credentials:
        """Политика cookies с учётом with_credentials; по умолчанию include."""
        return resolve_credentials(self.credentials, self.with_credentials) or Credentials.INCLUDE

    def merge(self, **fields: Any) -> 'ClientConfig':
        """
        Создать новый снимок, в котором переданные поля заменены целиком.

        Last writer wins: заголовки не сливаются с предыдущими.

        Example:
            >>> new_config = config.merge(prefix="/v2", headers={"X-Env": "stage"})
        """
        try:
            return dataclasses.replace(self, **fields)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e
