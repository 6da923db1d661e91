from abc import ABC, abstractmethod
import logging
import time
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import ReadTimeoutError

from .model import Cancelled, ErrorKind, Outcome, Request, Response, Success, TransportError


logger = logging.getLogger(__name__)


class Transport(ABC):
    """
    Performs a single network call.
    """

    @abstractmethod
    def execute(self, request: Request, timeout: Optional[float] = None) -> Outcome:
        """
        Send `request` once.

        @param request
          The request to send. It must not be modified.
        @param timeout
          Seconds to wait for the complete response, or `None` to wait forever.
        @return
          `Success` for a response with status below 400, `TransportError` for a
          failed call or an error status, and `Cancelled` if the request's
          cancellation token was raised before the response was fully read.
        """

    def close(self):
        """
        Release any connections held by the transport.
        """


class RequestsTransport(Transport):
    """
    A transport backed by a `requests.Session`.

    The body is streamed so that cancellation and the overall deadline can be
    checked between chunks. `requests` only enforces its timeout per socket
    operation.
    """

    def __init__(self, session: Optional[requests.Session] = None, chunk_size: int = 8192,
                 pool_maxsize: int = 10) -> None:
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_maxsize=pool_maxsize)
            session.mount('http://', adapter)
            session.mount('https://', adapter)
        self.__session = session
        self.__chunk_size = chunk_size

    def execute(self, request: Request, timeout: Optional[float] = None) -> Outcome:
        if request.cancelled:
            logger.info('Request was cancelled before it was sent.')
            return Cancelled(request.cancellation.reason)

        deadline = None if timeout is None else time.monotonic() + timeout

        logger.info('Sending {} {}'.format(request.method, request.url))
        try:
            requests_response = self.__session.request(request.method,
                                                       request.url,
                                                       headers=dict(request.headers),
                                                       params=list(request.params),
                                                       timeout=timeout,
                                                       stream=True,
                                                       **self._body_arguments(request.body))
        except requests.Timeout as e:
            logger.warning('Timed out waiting for {} {}'.format(request.method, request.url))
            return TransportError(ErrorKind.TIMEOUT, str(e))
        except requests.RequestException as e:
            logger.warning('Network failure for {} {}: {}'.format(request.method, request.url, e))
            return TransportError(ErrorKind.NETWORK, str(e))

        try:
            chunks = []
            for chunk in requests_response.iter_content(self.__chunk_size):
                if request.cancelled:
                    logger.info('Request was cancelled while reading the response body.')
                    return Cancelled(request.cancellation.reason)
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning('Deadline passed while reading the response body.')
                    return TransportError(ErrorKind.TIMEOUT, 'Response not complete after {}s'.format(timeout))
                chunks.append(chunk)
        except requests.Timeout as e:
            return TransportError(ErrorKind.TIMEOUT, str(e))
        except requests.ConnectionError as e:
            if _is_read_timeout(e):
                logger.warning('Timed out reading the response body of {} {}'.format(request.method, request.url))
                return TransportError(ErrorKind.TIMEOUT, str(e))
            logger.warning('Network failure while reading the response body: {}'.format(e))
            return TransportError(ErrorKind.NETWORK, str(e))
        except requests.RequestException as e:
            logger.warning('Network failure while reading the response body: {}'.format(e))
            return TransportError(ErrorKind.NETWORK, str(e))
        finally:
            requests_response.close()

        if request.cancelled:
            return Cancelled(request.cancellation.reason)

        response = Response(status=requests_response.status_code,
                            reason=requests_response.reason or '',
                            headers=requests_response.headers,
                            body=b''.join(chunks),
                            request=request)

        if response.status >= 400:
            return TransportError(ErrorKind.HTTP_STATUS,
                                  '{} {}'.format(response.status, response.reason),
                                  status=response.status,
                                  response=response)
        return Success(response)

    def _body_arguments(self, body) -> dict:
        if body is None:
            return {}
        if isinstance(body, (bytes, str)):
            return {'data': body}
        return {'json': body}

    def close(self):
        self.__session.close()


def _is_read_timeout(error: requests.ConnectionError) -> bool:
    # `iter_content` re-raises urllib3's read timeout as a ConnectionError.
    cause = error.args[0] if error.args else None
    return isinstance(cause, ReadTimeoutError) or isinstance(error.__context__, ReadTimeoutError)
