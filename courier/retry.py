from abc import ABC, abstractmethod
import logging
from typing import Iterable

from .model import ErrorKind, Outcome, Request, TransportError


logger = logging.getLogger(__name__)


IDEMPOTENT_METHODS = frozenset({'GET', 'PUT', 'DELETE'})


class RetryPolicy(ABC):
    """
    Decides whether a failed transport attempt should be repeated.

    Policies hold no per-request state. The dispatcher passes in everything
    they need on each call.
    """

    @abstractmethod
    def should_retry(self, outcome: Outcome, attempt: int, request: Request) -> bool:
        """
        @param outcome
          The outcome of the attempt that just finished.
        @param attempt
          How many transport attempts have been made so far, starting at 1.
        @param request
          The request as it was handed to the transport.
        """

    def delay(self, attempt: int) -> float:
        """
        Seconds to wait before making attempt number `attempt + 1`.
        """
        return 0.0


class NoRetry(RetryPolicy):
    def should_retry(self, outcome: Outcome, attempt: int, request: Request) -> bool:
        return False


class DefaultRetryPolicy(RetryPolicy):
    """
    Retries server errors a fixed number of times.

    Client errors, cancellations and interceptor rejections are never retried.
    POST and PATCH are only retried when `retry_non_idempotent` is set.
    """

    def __init__(self, ceiling: int = 1, statuses: Iterable[int] = range(500, 600),
                 retry_non_idempotent: bool = False, retry_network_errors: bool = False,
                 backoff: float = 0.0) -> None:
        if ceiling < 0:
            raise ValueError('ceiling must not be negative, got {}'.format(ceiling))
        if backoff < 0:
            raise ValueError('backoff must not be negative, got {}'.format(backoff))
        self.ceiling = ceiling
        self.statuses = frozenset(statuses)
        self.retry_non_idempotent = retry_non_idempotent
        self.retry_network_errors = retry_network_errors
        self.backoff = backoff

    def should_retry(self, outcome: Outcome, attempt: int, request: Request) -> bool:
        if not isinstance(outcome, TransportError):
            return False
        if attempt > self.ceiling:
            logger.info('Giving up on {} {} after {} attempts.'.format(request.method, request.url, attempt))
            return False
        if request.method not in IDEMPOTENT_METHODS and not self.retry_non_idempotent:
            logger.info('Not retrying non-idempotent {} {}.'.format(request.method, request.url))
            return False

        if outcome.kind is ErrorKind.HTTP_STATUS:
            return outcome.status in self.statuses
        if outcome.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
            return self.retry_network_errors
        return False

    def delay(self, attempt: int) -> float:
        return self.backoff * 2 ** (attempt - 1)
