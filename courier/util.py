from typing import Any, Iterable, Mapping, Optional, Tuple, Union


Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]


def clamp(value, min, max):
    return sorted((min, value, max))[1]


def normalize_params(params: Params) -> Tuple[Tuple[str, str], ...]:
    """
    Turn a mapping or a sequence of pairs into a tuple of string pairs,
    preserving order. A `None` value drops its key, and a list value expands
    into repeated keys.
    """
    if params is None:
        return ()
    if isinstance(params, Mapping):
        params = params.items()

    result = []
    for key, value in params:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            result.extend((str(key), _to_str(item)) for item in value)
        else:
            result.append((str(key), _to_str(value)))
    return tuple(result)


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def join_url(base: Optional[str], url: str) -> str:
    if not base or '://' in url:
        return url
    return '{}/{}'.format(base.rstrip('/'), url.lstrip('/'))
