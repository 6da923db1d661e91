"""
Defines the values that flow through a dispatch.

Requests and responses are immutable once built. Interceptors work on a
`RequestDraft`, which is frozen back into a `Request` before it reaches the
transport. The result of a dispatch is always one of the `Outcome` variants,
never an exception.
"""

from dataclasses import dataclass, field
from enum import Enum
import json
import threading
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple, Union

from requests.structures import CaseInsensitiveDict

from .util import normalize_params


METHODS = frozenset({'GET', 'POST', 'PUT', 'DELETE', 'PATCH'})


class CancellationToken:
    """
    A signal the caller can raise to abandon an in-flight request.

    The transport checks it before sending and between body chunks, and the
    dispatcher checks it between retry attempts.
    """

    def __init__(self) -> None:
        self.__event = threading.Event()
        self.__reason = None

    def cancel(self, reason: str = 'Cancelled by caller') -> None:
        if not self.__event.is_set():
            self.__reason = reason
            self.__event.set()

    @property
    def cancelled(self) -> bool:
        return self.__event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self.__reason

    def wait(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, waking early if cancelled.

        @return
          `True` if the token was cancelled while waiting.
        """
        return self.__event.wait(seconds)


def _check_method(method: str) -> str:
    method = method.upper()
    if method not in METHODS:
        raise ValueError('Unsupported HTTP method: {}'.format(method))
    return method


@dataclass(frozen=True)
class Request:
    """
    A request as it is handed to the transport.
    """

    method: str
    """
    The HTTP method of the request. E.g., "GET".
    """

    url: str

    headers: Mapping[str, str] = field(default_factory=dict)
    """
    A read-only view of the headers being sent with the request.
    """

    body: Any = None
    """
    Bytes or text are sent verbatim. Anything else is sent as JSON.
    """

    params: Tuple[Tuple[str, str], ...] = ()
    """
    Query parameters, in the order they will be sent.
    """

    timeout: Optional[float] = None
    """
    Seconds to wait for the whole response. `None` defers to the dispatcher.
    """

    cancellation: Optional[CancellationToken] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'method', _check_method(self.method))
        object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))
        object.__setattr__(self, 'params', normalize_params(self.params))

    @property
    def cancelled(self) -> bool:
        return self.cancellation is not None and self.cancellation.cancelled

    def draft(self) -> 'RequestDraft':
        return RequestDraft(method=self.method,
                            url=self.url,
                            headers=dict(self.headers),
                            body=self.body,
                            params=list(self.params),
                            timeout=self.timeout,
                            cancellation=self.cancellation)


@dataclass
class RequestDraft:
    """
    The mutable working copy that request interceptors receive.
    """

    method: str
    url: str
    headers: dict = field(default_factory=dict)
    body: Any = None
    params: List[Tuple[str, str]] = field(default_factory=list)
    timeout: Optional[float] = None
    cancellation: Optional[CancellationToken] = field(default=None, compare=False)

    def build(self) -> Request:
        return Request(method=self.method,
                       url=self.url,
                       headers=self.headers,
                       body=self.body,
                       params=tuple(self.params),
                       timeout=self.timeout,
                       cancellation=self.cancellation)


@dataclass(frozen=True)
class Response:
    """
    A fully read response.
    """

    status: int
    reason: str
    headers: CaseInsensitiveDict
    body: bytes = field(compare=False)
    request: Optional[Request] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'headers', CaseInsensitiveDict(self.headers))

    @property
    def ok(self) -> bool:
        return self.status < 400

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')

    def json(self) -> Any:
        return json.loads(self.body)


class ErrorKind(Enum):
    NETWORK = 'network'
    TIMEOUT = 'timeout'
    HTTP_STATUS = 'http_status'
    INTERCEPTOR_REJECTED = 'interceptor_rejected'


@dataclass(frozen=True)
class Success:
    response: Response
    from_cache: bool = False


@dataclass(frozen=True)
class TransportError:
    """
    A dispatch that ended without a usable response.

    For `ErrorKind.HTTP_STATUS` the server did answer, and `status` and
    `response` carry what it said.
    """

    kind: ErrorKind
    message: str
    status: Optional[int] = None
    response: Optional[Response] = field(default=None, compare=False)


@dataclass(frozen=True)
class Cancelled:
    reason: str = 'Cancelled by caller'


Outcome = Union[Success, TransportError, Cancelled]

OUTCOME_TYPES = (Success, TransportError, Cancelled)


@dataclass
class CacheEntry:
    """
    A cached response body along with the status line and headers it came
    with.
    """

    status: int
    reason: str
    headers: Mapping[str, str]
    body: bytes = field(compare=False)
    created: float = field(default=0.0, compare=False)
    """
    When the entry was stored, on the cache's clock.
    """

    @classmethod
    def from_response(cls, response: Response, created: float = 0.0) -> 'CacheEntry':
        return cls(status=response.status,
                   reason=response.reason,
                   headers=dict(response.headers),
                   body=response.body,
                   created=created)

    def to_response(self, request: Request) -> Response:
        return Response(status=self.status,
                        reason=self.reason,
                        headers=self.headers,
                        body=self.body,
                        request=request)


@dataclass
class RetryState:
    """
    Bookkeeping for a single logical request across transport attempts.
    """

    request: Request
    attempt: int = 1
    last_outcome: Optional[Outcome] = None
