"""
Выбор транспорта.

Порядок:
1. Транспорт, явно заданный в запросе или в конфиге
2. Нужен прогресс и доступен XHR -> XHR
3. Доступен fetch -> FETCH
4. Доступен XHR -> XHR
5. Иначе SOCKET (доступен всегда)
"""

import importlib.util
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from ..core.config import TransportKind
from ..core.exceptions import ConfigurationError
from .base import Transport


@dataclass(frozen=True)
class Capabilities:
    """Какие транспорты доступны в окружении."""
    xhr: bool = False
    fetch: bool = False

    @classmethod
    def from_transports(cls, transports: Mapping[TransportKind, Transport]) -> 'Capabilities':
        return cls(xhr=TransportKind.XHR in transports, fetch=TransportKind.FETCH in transports)


def detect_capabilities() -> Capabilities:
    """Проверить, какие библиотеки транспорта установлены."""
    return Capabilities(
        xhr=importlib.util.find_spec('requests') is not None,
        fetch=importlib.util.find_spec('httpx') is not None,
    )


def select_transport(
    capabilities: Capabilities,
    forced: Optional[TransportKind] = None,
    wants_progress: bool = False
) -> TransportKind:
    """
    Выбрать транспорт. Чистая функция от возможностей и настроек запроса.

    Examples:
        >>> select_transport(Capabilities(xhr=True, fetch=True), wants_progress=True)
        <TransportKind.XHR: 'xhr'>
        >>> select_transport(Capabilities(xhr=True, fetch=True))
        <TransportKind.FETCH: 'fetch'>
        >>> select_transport(Capabilities())
        <TransportKind.SOCKET: 'socket'>
    """
    if forced is not None:
        return TransportKind(forced)
    if wants_progress and capabilities.xhr:
        return TransportKind.XHR
    if capabilities.fetch:
        return TransportKind.FETCH
    if capabilities.xhr:
        return TransportKind.XHR
    return TransportKind.SOCKET


def default_transports(capabilities: Optional[Capabilities] = None) -> Dict[TransportKind, Transport]:
    """Создать экземпляры всех доступных транспортов."""
    from .socket import SocketTransport

    capabilities = capabilities or detect_capabilities()
    transports: Dict[TransportKind, Transport] = {TransportKind.SOCKET: SocketTransport()}
    if capabilities.xhr:
        from .xhr import XhrTransport
        transports[TransportKind.XHR] = XhrTransport()
    if capabilities.fetch:
        from .fetch import FetchTransport
        transports[TransportKind.FETCH] = FetchTransport()
    return transports


def get_transport(transports: Mapping[TransportKind, Transport], kind: TransportKind) -> Transport:
    """
    Raises:
        ConfigurationError: транспорт недоступен в этом окружении
    """
    try:
        return transports[kind]
    except KeyError:
        raise ConfigurationError(
            f"Transport {kind.value!r} is not available "
            f"(available: {', '.join(sorted(k.value for k in transports))})"
        )
