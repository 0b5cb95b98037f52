"""
Нормализация заголовков и URL.

- merge_headers: дефолтные -> глобальные -> заголовки вызова (поздний слой побеждает)
- resolve_prefix / join_url: префикс + путь без дублирующихся "/"
- serialize_params / append_query: query string
"""

import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode, urlsplit

from .exceptions import ConfigurationError

DEFAULT_HEADERS: Mapping[str, str] = {
    'Content-Type': 'application/json; charset=utf-8',
    'X-Requested-With': 'XMLHttpRequest',
}

ABSOLUTE_URL_RE = re.compile(r'^(https?://)|^(//)', re.IGNORECASE)
_SCHEME_AUTHORITY_RE = re.compile(r'^([a-z][a-z0-9+.-]*:)?//[^/?#]+', re.IGNORECASE)
_SEPARATORS_RE = re.compile(r'/+')


def merge_headers(*layers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Слить слои заголовков; более поздний слой перекрывает ранний.

    Имена сравниваются без учёта регистра, сохраняется написание из
    последнего слоя.

    Example:
        >>> merge_headers({"A": "1"}, {"A": "2", "B": "1"}, {"B": "2"})
        {'A': '2', 'B': '2'}
    """
    merged: Dict[str, str] = {}
    names: Dict[str, str] = {}

    for layer in layers:
        if not layer:
            continue
        for name, value in layer.items():
            key = name.lower()
            if key in names:
                del merged[names[key]]
            names[key] = name
            merged[name] = str(value)
    return merged


def drop_header(headers: Dict[str, str], name: str) -> Dict[str, str]:
    """Return a copy of headers without `name` (case-insensitive)."""
    lowered = name.lower()
    return {k: v for k, v in headers.items() if k.lower() != lowered}


def get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def is_absolute_url(url: str) -> bool:
    """http://, https:// или протокол-относительный //."""
    return bool(ABSOLUTE_URL_RE.match(url))


def resolve_prefix(url: str, config_prefix: Optional[str], call_prefix: Optional[str]) -> str:
    """
    Выбрать префикс для URL.

    Абсолютный URL не получает префикс. Иначе префикс вызова важнее
    глобального.
    """
    if is_absolute_url(url):
        return ''
    if call_prefix:
        return call_prefix
    return config_prefix or ''


def join_url(prefix: str, path: str) -> str:
    """
    Склеить префикс и путь, схлопнув повторяющиеся "/".

    Разделитель "scheme://" и одиночный ведущий "/" сохраняются.

    Examples:
        >>> join_url("/api/", "/v1//users")
        '/api/v1/users'
        >>> join_url("https://api.example.com/", "users")
        'https://api.example.com/users'
        >>> join_url("/", "/users")
        '/users'
    """
    uri = f"{prefix}/{path}" if prefix else path

    # "//" в начале - authority, только если он уже был в префиксе (или в пути без префикса)
    match = _SCHEME_AUTHORITY_RE.match(uri) if _SCHEME_AUTHORITY_RE.match(prefix or path) else None
    head = ''
    if match:
        head = match.group(0)
        uri = uri[len(head):]

    # query string не трогаем
    path_part, sep, query = uri.partition('?')
    return head + _SEPARATORS_RE.sub('/', path_part) + sep + query


def ensure_scheme(url: str, prefix: str = '') -> str:
    """Give protocol-relative URLs the prefix scheme, or https."""
    if not url.startswith('//'):
        return url
    scheme = urlsplit(prefix).scheme if prefix else ''
    return f"{scheme or 'https'}:{url}"


def serialize_params(params: Any) -> str:
    """
    Сериализовать query параметры.

    Поддерживаются: dict, список пар, готовая строка.
    None и пустые значения дают пустую строку.

    Example:
        >>> serialize_params({"page": 1, "tag": ["a", "b"]})
        'page=1&tag=a&tag=b'
    """
    if params is None:
        return ''
    if isinstance(params, bytes):
        params = params.decode('utf-8')
    if isinstance(params, str):
        return params.lstrip('?')
    if isinstance(params, Mapping):
        if not params:
            return ''
        items = params.items()
    else:
        try:
            items = list(params)
        except TypeError:
            raise ConfigurationError(f"Unsupported params type: {type(params).__name__}")
        if not items:
            return ''
    return urlencode([(k, _param_value(v)) for k, v in items], doseq=True)


def _param_value(value: Any) -> Any:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return [_param_value(v) for v in value]
    return value


def append_query(url: str, query: str) -> str:
    """Append query string with "?" (or "&" if URL already has a query)."""
    if not query:
        return url
    fragment = ''
    if '#' in url:
        url, fragment = url.split('#', 1)
        fragment = '#' + fragment
    sep = '&' if '?' in url else '?'
    return f"{url}{sep}{query}{fragment}"


def origin_of(url: str) -> Optional[str]:
    """scheme://host[:port] или None для относительного URL."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"
