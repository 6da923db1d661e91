from dataclasses import FrozenInstanceError
from unittest import TestCase

from courier.model import CacheEntry, CancellationToken, Request, Response


class TestRequest(TestCase):
    def test_method_is_normalized(self):
        request = Request('get', 'http://api.test/items')
        self.assertEqual('GET', request.method)

    def test_unknown_method_is_refused(self):
        with self.assertRaises(ValueError):
            Request('TRACE', 'http://api.test/items')

    def test_request_is_immutable(self):
        request = Request('GET', 'http://api.test/items', headers={'Accept': 'application/json'})
        with self.assertRaises(FrozenInstanceError):
            request.url = 'http://elsewhere.test'
        with self.assertRaises(TypeError):
            request.headers['Accept'] = 'text/plain'

    def test_headers_are_copied(self):
        headers = {'Accept': 'application/json'}
        request = Request('GET', 'http://api.test/items', headers=headers)
        headers['Accept'] = 'text/plain'
        self.assertEqual('application/json', request.headers['Accept'])

    def test_draft_changes_do_not_leak_into_the_request(self):
        request = Request('GET', 'http://api.test/items', headers={'Accept': 'application/json'},
                          params={'page': 1})
        draft = request.draft()
        draft.headers['X-Extra'] = 'yes'
        draft.params.append(('q', 'cats'))

        self.assertNotIn('X-Extra', request.headers)
        self.assertEqual((('page', '1'),), request.params)

        built = draft.build()
        self.assertEqual('yes', built.headers['X-Extra'])
        self.assertEqual((('page', '1'), ('q', 'cats')), built.params)

    def test_cancelled(self):
        token = CancellationToken()
        request = Request('GET', 'http://api.test/items', cancellation=token)
        self.assertFalse(request.cancelled)
        token.cancel('done')
        self.assertTrue(request.cancelled)
        self.assertEqual('done', token.reason)


class TestResponse(TestCase):
    def test_headers_are_case_insensitive(self):
        response = Response(status=200, reason='OK', headers={'Content-Type': 'application/json'}, body=b'{}')
        self.assertEqual('application/json', response.headers['content-type'])

    def test_json(self):
        response = Response(status=200, reason='OK', headers={}, body=b'{"id": 1}')
        self.assertEqual({'id': 1}, response.json())
        self.assertTrue(response.ok)

    def test_cache_entry_round_trip_keeps_status_line(self):
        request = Request('GET', 'http://api.test/items')
        response = Response(status=203, reason='Non-Authoritative', headers={'ETag': 'abc'}, body=b'[]')

        restored = CacheEntry.from_response(response).to_response(request)

        self.assertEqual(response, restored)
        self.assertEqual(b'[]', restored.body)
        self.assertIs(request, restored.request)
