"""
Нормализованный ответ.

NormalizedResponse - единая форма ответа для всех транспортов. Сырые
заголовки и объект ответа транспорта прикреплены как вложения: они не
являются полями dataclass, поэтому не попадают в repr(), сравнение,
dataclasses.asdict() и to_dict().
"""

import re
from dataclasses import InitVar, dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import unquote

from requests.structures import CaseInsensitiveDict

from .codec import decode_body
from .config import ResponseType
from .context import RawResponse
from .exceptions import HTTPStatusError, ResponseParseError

CONTENT_DISPOSITION_RE = re.compile(r'filename[^;=\n]*=(([\'"]).*?\2|[^;\n]*)', re.IGNORECASE)
_FILENAME_NOISE_RE = re.compile(r'(^UTF-8|)[\'"]', re.IGNORECASE)


def extract_filename(content_disposition: Optional[str]) -> Optional[str]:
    """
    Достать имя файла из Content-Disposition.

    Examples:
        >>> extract_filename('attachment; filename="report 2024.csv"')
        'report 2024.csv'
        >>> extract_filename("attachment; filename*=UTF-8''r%C3%A9sum%C3%A9.pdf")
        'résumé.pdf'
    """
    if not content_disposition:
        return None
    match = CONTENT_DISPOSITION_RE.search(content_disposition)
    if not match or not match.group(1):
        return None
    filename = _FILENAME_NOISE_RE.sub('', unquote(match.group(1).strip()))
    return filename or None


def parse_header_string(raw: str) -> CaseInsensitiveDict:
    """
    Разобрать блок заголовков "Name: value\\r\\n..." в словарь.

    Строки без ": " пропускаются (например, статусная строка).
    """
    headers = CaseInsensitiveDict()
    for line in raw.split('\r\n'):
        name, sep, value = line.partition(': ')
        if sep and name:
            headers[name] = value
    return headers


@dataclass
class PageData:
    """Страница из ответа вида {"result": {"current", "pageSize", "totalPage", "total", "data"}}."""
    current: int
    page_size: int
    total_page: int
    total: int
    data: List[Any] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> 'PageData':
        return cls(
            current=int(payload.get('current', 1)),
            page_size=int(payload.get('pageSize', payload.get('page_size', 0))),
            total_page=int(payload.get('totalPage', payload.get('total_page', 0))),
            total=int(payload.get('total', 0)),
            data=list(payload.get('data') or []),
        )


@dataclass
class NormalizedResponse:
    """
    Результат запроса.

    Attributes:
        status: HTTP статус (0 - отмена, 500 - ошибка транспорта)
        success: Результат классификации статуса
        message: Reason phrase или сообщение об ошибке
        body: Декодированное тело
        filename: Имя файла из Content-Disposition (для blob)
        url: Итоговый URL
        aborted: Запрос отменён через cancel_request()
        error: Исключение транспорта или разбора тела

    Вложения (не сериализуются):
        headers: Сырые заголовки ответа (CaseInsensitiveDict)
        raw: Объект ответа транспорта (requests.Response, httpx.Response, HTTPResponse)

    Example:
        >>> resp = await request("/users")
        >>> resp.success, resp.result
        (True, [{'id': 1}])
        >>> resp.headers["content-type"]
        'application/json'
    """
    status: int
    success: bool
    message: str = ''
    body: Any = None
    filename: Optional[str] = None
    url: str = ''
    aborted: bool = False
    error: Optional[BaseException] = field(default=None, compare=False)
    raw_headers: InitVar[Optional[Mapping[str, str]]] = None
    raw_handle: InitVar[Any] = None

    def __post_init__(self, raw_headers, raw_handle):
        self._headers = CaseInsensitiveDict(raw_headers or {})
        self._raw = raw_handle

    @property
    def headers(self) -> CaseInsensitiveDict:
        return self._headers

    @property
    def raw(self) -> Any:
        return self._raw

    @property
    def result(self) -> Any:
        """Поле result конверта ответа, либо всё тело, если конверта нет."""
        if isinstance(self.body, Mapping) and 'result' in self.body:
            return self.body['result']
        return self.body

    def __getitem__(self, key: str) -> Any:
        if not isinstance(self.body, Mapping):
            raise TypeError(f"Response body is {type(self.body).__name__}, not a mapping")
        return self.body[key]

    def __contains__(self, key: object) -> bool:
        return isinstance(self.body, Mapping) and key in self.body

    def get(self, key: str, default: Any = None) -> Any:
        if isinstance(self.body, Mapping):
            return self.body.get(key, default)
        return default

    def page(self) -> PageData:
        """Разобрать пагинированный result."""
        payload = self.result
        if not isinstance(payload, Mapping):
            raise ResponseParseError('json', "result is not a paginated object")
        return PageData.from_mapping(payload)

    def to_dict(self) -> Dict[str, Any]:
        """Сериализуемая форма без вложений."""
        data: Dict[str, Any] = {
            'status': self.status,
            'success': self.success,
            'message': self.message,
            'body': self.body,
        }
        if self.filename is not None:
            data['filename'] = self.filename
        if self.aborted:
            data['aborted'] = True
        return data

    def raise_for_error(self) -> 'NormalizedResponse':
        """
        Бросить исключение, если запрос неуспешен.

        Raises:
            TransportError / ResponseParseError: если они были причиной
            HTTPStatusError: неуспешный HTTP статус
        """
        if self.success:
            return self
        if self.error is not None:
            raise self.error
        raise HTTPStatusError(self.status, self.url, self.message)


def failure_shape(status: int, message: str) -> Dict[str, Any]:
    return {'status': status, 'message': message, 'success': False}


def failure_response(
    status: int,
    message: str,
    *,
    url: str = '',
    error: Optional[BaseException] = None,
    aborted: bool = False,
    raw_headers: Optional[Mapping[str, str]] = None,
    raw_handle: Any = None,
) -> NormalizedResponse:
    """Синтезировать ответ для ошибки транспорта или отмены."""
    return NormalizedResponse(
        status=status,
        success=False,
        message=message,
        body=failure_shape(status, message),
        url=url,
        aborted=aborted,
        error=error,
        raw_headers=raw_headers,
        raw_handle=raw_handle,
    )


def normalize_response(
    raw: RawResponse,
    response_type: ResponseType,
    success: bool,
    body: Any = None,
    parse_error: Optional[ResponseParseError] = None,
) -> NormalizedResponse:
    """
    Обернуть ответ транспорта в NormalizedResponse.

    Args:
        raw: Ответ транспорта
        response_type: Тип ответа запроса
        success: Результат классификатора статуса
        body: Уже декодированное тело
        parse_error: Ошибка декодирования, если была

    Тело не изменяется: для неуспешного ответа с dict-телом строится новый
    dict {status, message, success: False, **body}.
    """
    message = raw.reason or ''
    filename = None

    if parse_error is not None:
        if success:
            return NormalizedResponse(
                status=raw.status,
                success=False,
                message=parse_error.message,
                body=None,
                url=raw.url,
                error=parse_error,
                raw_headers=raw.headers,
                raw_handle=raw.handle,
            )
        body = None

    if not success:
        if isinstance(body, Mapping):
            body = {**failure_shape(raw.status, message), **body}
            if isinstance(body.get('message'), str) and body['message']:
                message = body['message']
        elif body is None or body == '' or body == b'':
            body = failure_shape(raw.status, message)

    if response_type == ResponseType.BLOB:
        filename = extract_filename(raw.headers.get('Content-Disposition'))

    return NormalizedResponse(
        status=raw.status,
        success=success,
        message=message,
        body=body,
        filename=filename,
        url=raw.url,
        raw_headers=raw.headers,
        raw_handle=raw.handle,
    )


def decode_raw(raw: RawResponse, response_type: ResponseType):
    """Декодировать тело; вернуть (body, parse_error)."""
    try:
        return decode_body(raw.content, response_type, raw.headers), None
    except ResponseParseError as e:
        return None, e
