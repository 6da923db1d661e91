from ddt import ddt, data, unpack
from unittest import TestCase

from courier.model import Cancelled, ErrorKind, Request, Response, Success, TransportError
from courier.retry import DefaultRetryPolicy, NoRetry


GET = Request('GET', 'http://api.test/items')
POST = Request('POST', 'http://api.test/items', body={'name': 'x'})


def status_error(status):
    return TransportError(ErrorKind.HTTP_STATUS, str(status), status=status)


@ddt
class TestDefaultRetryPolicy(TestCase):
    @data(
        (status_error(500), 1, GET, True),
        (status_error(503), 1, GET, True),
        # The ceiling of one retry has been reached.
        (status_error(500), 2, GET, False),
        # Client errors are never retried.
        (status_error(404), 1, GET, False),
        (status_error(429), 1, GET, False),
        (Cancelled(), 1, GET, False),
        (TransportError(ErrorKind.INTERCEPTOR_REJECTED, 'no'), 1, GET, False),
        # Network failures are not retried unless asked for.
        (TransportError(ErrorKind.NETWORK, 'refused'), 1, GET, False),
        (TransportError(ErrorKind.TIMEOUT, 'slow'), 1, GET, False),
        (Success(Response(200, 'OK', {}, b'')), 1, GET, False),
        # POST is not idempotent.
        (status_error(500), 1, POST, False),
    )
    @unpack
    def test_should_retry(self, outcome, attempt, request, expected):
        policy = DefaultRetryPolicy()
        self.assertEqual(expected, policy.should_retry(outcome, attempt, request))

    def test_retry_non_idempotent(self):
        policy = DefaultRetryPolicy(retry_non_idempotent=True)
        self.assertTrue(policy.should_retry(status_error(500), 1, POST))

    @data(
        (TransportError(ErrorKind.NETWORK, 'refused'), True),
        (TransportError(ErrorKind.TIMEOUT, 'slow'), True),
        (Cancelled(), False),
    )
    @unpack
    def test_retry_network_errors(self, outcome, expected):
        policy = DefaultRetryPolicy(retry_network_errors=True)
        self.assertEqual(expected, policy.should_retry(outcome, 1, GET))

    @data(1, 2, 3)
    def test_ceiling(self, ceiling):
        policy = DefaultRetryPolicy(ceiling=ceiling)
        self.assertTrue(policy.should_retry(status_error(502), ceiling, GET))
        self.assertFalse(policy.should_retry(status_error(502), ceiling + 1, GET))

    def test_custom_statuses(self):
        policy = DefaultRetryPolicy(statuses={429, 503})
        self.assertTrue(policy.should_retry(status_error(429), 1, GET))
        self.assertFalse(policy.should_retry(status_error(500), 1, GET))

    @data(
        (0.0, 1, 0.0),
        (0.5, 1, 0.5),
        (0.5, 2, 1.0),
        (0.5, 3, 2.0),
    )
    @unpack
    def test_delay(self, backoff, attempt, expected):
        self.assertEqual(expected, DefaultRetryPolicy(backoff=backoff).delay(attempt))

    @data({'ceiling': -1}, {'backoff': -0.1})
    def test_invalid_arguments(self, kwargs):
        with self.assertRaises(ValueError):
            DefaultRetryPolicy(**kwargs)


class TestNoRetry(TestCase):
    def test_never_retries(self):
        self.assertFalse(NoRetry().should_retry(status_error(500), 1, GET))
