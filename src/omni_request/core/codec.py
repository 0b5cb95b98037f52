"""
Кодек тела запроса и ответа.

Запрос:
    bytes / str / файл / FormData - без изменений (str -> UTF-8)
    остальное (dict, list, числа) - JSON
    Content-Encoding: gzip|deflate - сжатие уже сериализованного тела

Ответ:
    decode_body() по response_type (json, text, blob, arraybuffer, form-data, bytes, document)
"""

import email.parser
import email.policy
import gzip
import json
import re
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl

from urllib3 import encode_multipart_formdata

from .config import ResponseType
from .exceptions import ConfigurationError, ResponseParseError
from .normalizer import drop_header, get_header

# Методы, для которых dict из data уходит в query string
BODYLESS_METHODS = frozenset({'GET', 'HEAD', 'OPTIONS', 'TRACE'})

SUPPORTED_ENCODINGS = ('gzip', 'deflate')

_CHARSET_RE = re.compile(r'charset\s*=\s*"?([^";\s]+)"?', re.IGNORECASE)

BINARY_RESPONSE_TYPES = frozenset({ResponseType.BLOB, ResponseType.ARRAYBUFFER, ResponseType.BYTES})


class FormData:
    """
    Multipart тело запроса.

    Content-Type с boundary выставляет транспорт, поэтому заголовок
    Content-Type из запроса удаляется.

    Example:
        >>> form = FormData({"title": "report"})
        >>> form.append("file", b"a,b\\n1,2", filename="report.csv", content_type="text/csv")
    """

    def __init__(self, fields: Optional[Mapping[str, Any]] = None):
        self._entries: List[Tuple[str, Any, Optional[str], Optional[str]]] = []
        for name, value in (fields or {}).items():
            self.append(name, value)

    def append(
        self,
        name: str,
        value: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None
    ) -> None:
        """Добавить поле или файл."""
        if filename is None and not isinstance(value, (bytes, bytearray)):
            value = str(value)
        self._entries.append((name, value, filename, content_type))

    def entries(self) -> List[Tuple[str, Any, Optional[str], Optional[str]]]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"FormData({[e[0] for e in self._entries]!r})"

    def as_requests_files(self) -> List[Tuple[str, tuple]]:
        """Представление для requests: filename=None даёт обычное поле multipart."""
        files = []
        for name, value, filename, content_type in self._entries:
            if content_type:
                files.append((name, (filename, value, content_type)))
            else:
                files.append((name, (filename, value)))
        return files

    def encode(self) -> Tuple[bytes, str]:
        """Закодировать в multipart/form-data; вернуть (body, content_type)."""
        fields = []
        for name, value, filename, content_type in self._entries:
            if filename is None:
                fields.append((name, value))
            elif content_type:
                fields.append((name, (filename, value, content_type)))
            else:
                fields.append((name, (filename, value)))
        return encode_multipart_formdata(fields)


@dataclass
class EncodedBody:
    """Результат сериализации тела запроса."""
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    query: Any = None


def is_file_like(value: Any) -> bool:
    return hasattr(value, 'read') and callable(value.read)


def encode_request_body(
    method: str,
    data: Any,
    headers: Dict[str, str],
    params: Any = None,
    compressed_type: Optional[str] = None,
) -> EncodedBody:
    """
    Сериализовать тело запроса.

    Args:
        method: HTTP метод (в верхнем регистре)
        data: Данные запроса
        headers: Уже слитые заголовки
        params: Query параметры вызова (нужны, чтобы решить, уходит ли data в query)
        compressed_type: Желаемое сжатие, если Content-Encoding не задан явно

    Returns:
        EncodedBody с телом, заголовками и (опционально) query из data

    Example:
        >>> encode_request_body("POST", {"a": 1}, {}).body
        b'{"a": 1}'
    """
    headers = dict(headers)

    if isinstance(data, FormData):
        return EncodedBody(body=data, headers=drop_header(headers, 'Content-Type'))

    if data is None:
        return EncodedBody(body=None, headers=headers)

    if method in BODYLESS_METHODS and isinstance(data, Mapping) and not params:
        return EncodedBody(body=None, headers=headers, query=dict(data) if data else None)

    if isinstance(data, (bytes, bytearray, memoryview)):
        body: Any = bytes(data)
    elif isinstance(data, str):
        body = data.encode('utf-8')
    elif is_file_like(data):
        return EncodedBody(body=data, headers=headers)
    else:
        try:
            body = json.dumps(data, ensure_ascii=False).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Request data is not JSON serializable: {e}") from e

    if compressed_type and get_header(headers, 'Content-Encoding') is None:
        headers['Content-Encoding'] = compressed_type

    encoding = get_header(headers, 'Content-Encoding')
    if encoding:
        body = compress(body, encoding)

    return EncodedBody(body=body, headers=headers)


def compress(body: bytes, encoding: str) -> bytes:
    """
    Сжать тело по Content-Encoding.

    Неизвестная кодировка оставляет тело как есть: её мог выставить
    вызывающий код, который сжал данные сам.
    """
    encoding = encoding.strip().lower()
    if encoding == 'gzip':
        return gzip.compress(body)
    if encoding == 'deflate':
        return zlib.compress(body)
    return body


def charset_from_headers(headers: Mapping[str, str], default: str = 'utf-8') -> str:
    content_type = get_header(headers, 'Content-Type') or ''
    match = _CHARSET_RE.search(content_type)
    return match.group(1) if match else default


def decode_body(
    content: bytes,
    response_type: Union[ResponseType, str],
    headers: Mapping[str, str],
) -> Any:
    """
    Декодировать тело ответа по response_type.

    Raises:
        ResponseParseError: тело не разбирается как JSON / текст
    """
    response_type = ResponseType(response_type)

    if response_type in BINARY_RESPONSE_TYPES:
        return bytes(content)

    if response_type == ResponseType.FORM_DATA:
        return _decode_form(content, headers)

    charset = charset_from_headers(headers)
    try:
        text = content.decode(charset)
    except (LookupError, UnicodeDecodeError) as e:
        raise ResponseParseError(response_type.value, str(e)) from e

    if response_type == ResponseType.JSON:
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise ResponseParseError(response_type.value, str(e)) from e

    return text


def _decode_form(content: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
    """Разобрать urlencoded или multipart тело в словарь."""
    content_type = get_header(headers, 'Content-Type') or ''
    result: Dict[str, Any] = {}

    def put(name: str, value: Any) -> None:
        if name in result:
            existing = result[name]
            result[name] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            result[name] = value

    if content_type.lower().startswith('multipart/'):
        raw = b'Content-Type: ' + content_type.encode('latin-1') + b'\r\n\r\n' + content
        message = email.parser.BytesParser(policy=email.policy.HTTP).parsebytes(raw)
        if not message.is_multipart():
            raise ResponseParseError(ResponseType.FORM_DATA.value, "malformed multipart body")
        for part in message.iter_parts():
            name = part.get_param('name', header='content-disposition')
            if name is None:
                continue
            payload = part.get_payload(decode=True) or b''
            if part.get_filename() is None:
                payload = payload.decode(part.get_content_charset() or 'utf-8')
            put(name, payload)
        return result

    try:
        text = content.decode(charset_from_headers(headers))
    except (LookupError, UnicodeDecodeError) as e:
        raise ResponseParseError(ResponseType.FORM_DATA.value, str(e)) from e
    for name, value in parse_qsl(text, keep_blank_values=True):
        put(name, value)
    return result
