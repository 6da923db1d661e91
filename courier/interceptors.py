"""
Hooks that run around the transport.

Request interceptors take a `RequestDraft` and return it (or `None`) to carry
on, or return an `Outcome` to stop the dispatch before anything is sent.
Response interceptors take an `Outcome` and return an `Outcome`.
An interceptor that raises is turned into an `INTERCEPTOR_REJECTED` error.
"""

import logging
from typing import Callable, List, Mapping, Optional, Union

from .model import OUTCOME_TYPES, ErrorKind, Outcome, RequestDraft, Success, TransportError
from .util import join_url


logger = logging.getLogger(__name__)


RequestInterceptor = Callable[[RequestDraft], Union[RequestDraft, Outcome, None]]
ResponseInterceptor = Callable[[Outcome], Outcome]


class InterceptorChain:
    def __init__(self) -> None:
        self.__request_interceptors: List[RequestInterceptor] = []
        self.__response_interceptors: List[ResponseInterceptor] = []

    def add_request(self, interceptor: RequestInterceptor) -> RequestInterceptor:
        self.__request_interceptors.append(interceptor)
        return interceptor

    def add_response(self, interceptor: ResponseInterceptor) -> ResponseInterceptor:
        self.__response_interceptors.append(interceptor)
        return interceptor

    def run_request(self, draft: RequestDraft) -> Union[RequestDraft, Outcome]:
        for interceptor in self.__request_interceptors:
            try:
                result = interceptor(draft)
            except Exception as e:
                logger.exception('Request interceptor {} failed.'.format(_name(interceptor)))
                return reject('Request interceptor {} failed: {}'.format(_name(interceptor), e))
            if result is None:
                continue
            if isinstance(result, OUTCOME_TYPES):
                logger.info('Request interceptor {} short-circuited the dispatch.'.format(_name(interceptor)))
                return result
            if not isinstance(result, RequestDraft):
                raise TypeError('Request interceptor {} returned {!r}'.format(_name(interceptor), result))
            draft = result
        return draft

    def run_response(self, outcome: Outcome) -> Outcome:
        for interceptor in self.__response_interceptors:
            try:
                outcome = interceptor(outcome)
            except Exception as e:
                logger.exception('Response interceptor {} failed.'.format(_name(interceptor)))
                outcome = reject('Response interceptor {} failed: {}'.format(_name(interceptor), e))
                continue
            if not isinstance(outcome, OUTCOME_TYPES):
                raise TypeError('Response interceptor {} returned {!r}'.format(_name(interceptor), outcome))
        return outcome


def _name(interceptor) -> str:
    return getattr(interceptor, '__name__', type(interceptor).__name__)


def reject(message: str) -> TransportError:
    return TransportError(ErrorKind.INTERCEPTOR_REJECTED, message)


# region Stock interceptors

def default_headers(headers: Mapping[str, str]) -> RequestInterceptor:
    """
    Add headers the request does not already carry.
    """
    def add_default_headers(draft: RequestDraft) -> RequestDraft:
        for name, value in headers.items():
            if not any(existing.lower() == name.lower() for existing in draft.headers):
                draft.headers[name] = value
        return draft
    return add_default_headers


def bearer_token(token: Union[str, Callable[[], Optional[str]]]) -> RequestInterceptor:
    """
    Send `Authorization: Bearer <token>`.

    `token` may be a callable so that a refreshed token is picked up on each
    dispatch. A request is rejected when no token is available.
    """
    def add_bearer_token(draft: RequestDraft) -> Union[RequestDraft, Outcome]:
        value = token() if callable(token) else token
        if not value:
            return reject('No bearer token available for {} {}'.format(draft.method, draft.url))
        draft.headers['Authorization'] = 'Bearer {}'.format(value)
        return draft
    return add_bearer_token


def base_url(url: str) -> RequestInterceptor:
    """
    Resolve relative request URLs against `url`.
    """
    def resolve_url(draft: RequestDraft) -> RequestDraft:
        draft.url = join_url(url, draft.url)
        return draft
    return resolve_url


def log_request(draft: RequestDraft) -> None:
    logger.info('Request: {} {}'.format(draft.method, draft.url))


def log_outcome(outcome: Outcome) -> Outcome:
    if isinstance(outcome, Success):
        logger.info('Response: {} {}{}'.format(outcome.response.status, outcome.response.reason,
                                                ' (cached)' if outcome.from_cache else ''))
    elif isinstance(outcome, TransportError):
        logger.warning('Request failed ({}): {}'.format(outcome.kind.value, outcome.message))
    else:
        logger.info('Request cancelled: {}'.format(outcome.reason))
    return outcome

# endregion
