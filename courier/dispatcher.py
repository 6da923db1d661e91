from dataclasses import replace
import logging
import time
from typing import Any, Callable, Iterator, Optional

from .cache import Cache, HttpAwareCache, MemoryCache, fingerprint
from .config import Settings
from .interceptors import InterceptorChain, base_url, default_headers
from .model import CacheEntry, Cancelled, Outcome, Request, RequestDraft, Response, RetryState, Success
from .retry import DefaultRetryPolicy, RetryPolicy
from .transport import RequestsTransport, Transport
from .util import Params


logger = logging.getLogger(__name__)


def _json_items(response: Response) -> Any:
    # Only a JSON array counts as a page of items.
    try:
        items = response.json()
    except ValueError:
        logger.warning('Page body is not JSON. Stopping pagination.')
        return None
    return items if isinstance(items, list) else None


class Dispatcher:
    """
    Sends requests through the cache, the interceptors, the transport and the
    retry policy.

    A dispatcher owns its cache. It may be shared between threads; each `send`
    keeps its own state and only the cache is shared.
    """

    cacheable_methods = {'GET'}

    def __init__(self, transport: Transport, cache: Optional[Cache] = None,
                 retry_policy: Optional[RetryPolicy] = None, interceptors: Optional[InterceptorChain] = None,
                 timeout: Optional[float] = None, sleep: Callable[[float], None] = time.sleep) -> None:
        self.__transport = transport
        self.__cache = cache if cache is not None else MemoryCache()
        self.__retry_policy = retry_policy if retry_policy is not None else DefaultRetryPolicy()
        self.interceptors = interceptors if interceptors is not None else InterceptorChain()
        self.__timeout = timeout
        self.__sleep = sleep

    def send(self, request: Request) -> Outcome:
        """
        Send a request and return its final outcome.

        Steps:
        1. A cacheable request with a cached body is answered from the cache.
        2. Request interceptors run once, on a working copy of the request.
        3. The transport is called, and called again while the retry policy
           asks for it.
        4. Response interceptors see the final outcome, whether it succeeded
           or not.
        5. A successful cacheable response is stored.

        Failures, cancellations and interceptor errors come back as outcomes.
        Only an interceptor returning something other than a draft, an
        outcome or `None` raises, with a `TypeError`.
        """
        if request.cancelled:
            return Cancelled(request.cancellation.reason)

        key = None
        if request.method in self.cacheable_methods:
            key = fingerprint(request.method, request.url, request.params)
            entry = self.__cache.get(key)
            if entry is not None:
                logger.info('Cache hit for {} {}'.format(request.method, request.url))
                return Success(entry.to_response(request), from_cache=True)

        result = self.interceptors.run_request(request.draft())
        transported = None
        if isinstance(result, RequestDraft):
            transported = self._send_with_retry(result.build())
            outcome = transported
        else:
            outcome = result

        outcome = self.interceptors.run_response(outcome)

        if isinstance(outcome, Success) and isinstance(transported, Success) and not request.cancelled:
            if key is not None:
                logger.info('Caching response for {} {}'.format(request.method, request.url))
                self.__cache.put(key, CacheEntry.from_response(outcome.response))
            else:
                self.__cache.invalidate(fingerprint('GET', request.url))

        return outcome

    def _send_with_retry(self, request: Request) -> Outcome:
        timeout = request.timeout if request.timeout is not None else self.__timeout
        state = RetryState(request=request)
        while True:
            outcome = self.__transport.execute(request, timeout)
            state.last_outcome = outcome

            if isinstance(outcome, Cancelled):
                return outcome
            if not self.__retry_policy.should_retry(outcome, state.attempt, request):
                return outcome

            logger.info('Retrying {} {} after attempt {}'.format(request.method, request.url, state.attempt))
            delay = self.__retry_policy.delay(state.attempt)
            if request.cancellation is not None:
                if request.cancellation.wait(delay):
                    return Cancelled(request.cancellation.reason)
            elif delay > 0:
                self.__sleep(delay)
            state.attempt += 1

    # region Conveniences

    def get(self, url: str, **fields) -> Outcome:
        return self.send(Request('GET', url, **fields))

    def post(self, url: str, **fields) -> Outcome:
        return self.send(Request('POST', url, **fields))

    def put(self, url: str, **fields) -> Outcome:
        return self.send(Request('PUT', url, **fields))

    def patch(self, url: str, **fields) -> Outcome:
        return self.send(Request('PATCH', url, **fields))

    def delete(self, url: str, **fields) -> Outcome:
        return self.send(Request('DELETE', url, **fields))

    def pages(self, request: Request, page_param: str = 'page', first_page: int = 1,
              max_pages: Optional[int] = None, items: Callable[[Response], Any] = _json_items) -> Iterator[Outcome]:
        """
        Walk a paginated collection, one outcome per page.

        Iteration stops after the first outcome that is not a `Success`, or
        the first page for which `items` returns nothing.
        By default a page's items are its body decoded as a JSON array; any
        other body ends the walk. Pass `items` to unwrap enveloped pages.
        """
        page = first_page
        fetched = 0
        while max_pages is None or fetched < max_pages:
            params = tuple(pair for pair in request.params if pair[0] != page_param) + ((page_param, str(page)),)
            outcome = self.send(replace(request, params=params))
            yield outcome
            fetched += 1
            if not isinstance(outcome, Success) or not items(outcome.response):
                return
            page += 1

    def invalidate(self, method: Optional[str] = None, url: Optional[str] = None, params: Params = None) -> None:
        """
        Drop the cached body for one request, or everything when `url` is not given.
        """
        if url is None:
            self.__cache.invalidate()
        else:
            self.__cache.invalidate(fingerprint(method or 'GET', url, params))

    # endregion

    def close(self):
        self.__cache.close()
        self.__transport.close()

    def __enter__(self) -> 'Dispatcher':
        return self

    def __exit__(self, *args) -> None:
        self.close()


def create(settings: Optional[Settings] = None, transport: Optional[Transport] = None) -> Dispatcher:
    settings = settings if settings is not None else Settings()

    interceptors = InterceptorChain()
    if settings.base_url:
        interceptors.add_request(base_url(settings.base_url))
    if settings.headers:
        interceptors.add_request(default_headers(settings.headers))

    return Dispatcher(
        transport=transport if transport is not None else RequestsTransport(),
        cache=HttpAwareCache(MemoryCache(settings.cache_max_entries, settings.cache_max_age)),
        retry_policy=DefaultRetryPolicy(ceiling=settings.retry_ceiling,
                                        retry_non_idempotent=settings.retry_non_idempotent,
                                        retry_network_errors=settings.retry_network_errors,
                                        backoff=settings.retry_backoff),
        interceptors=interceptors,
        timeout=settings.timeout,
    )
