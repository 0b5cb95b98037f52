"""Классификация HTTP статусов."""

# 304 - Not Modified (кеш), 1223 - IE отдаёт так 204
SPECIAL_SUCCESS_STATUSES = frozenset({304, 1223})


def is_http_success(status: int) -> bool:
    """
    Успешен ли обмен с данным статусом.

    0 - сетевая ошибка или блокировка cross-origin, никогда не успех.

    Examples:
        >>> is_http_success(204)
        True
        >>> is_http_success(0)
        False
    """
    if status == 0:
        return False
    if 200 <= status < 300:
        return True
    return status in SPECIAL_SUCCESS_STATUSES
