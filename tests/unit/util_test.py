from ddt import ddt, data, unpack
from unittest import TestCase

from courier import util


@ddt
class TestClamp(TestCase):
    @data(
        (-1, 0, 3, 0),
        (0, 0, 3, 0),
        (1, 0, 3, 1),
        (2, 0, 3, 2),
        (3, 0, 3, 3),
        (4, 0, 3, 3),

        (0, -10, 10, 0),
        (-11, -10, 10, -10),
        (11, -10, 10, 10),
    )
    @unpack
    def test_clamp(self, value, min, max, expected):
        actual = util.clamp(value, min, max)
        self.assertEqual(expected, actual, 'The value should be clamped properly')


@ddt
class TestNormalizeParams(TestCase):
    @data(
        (None, ()),
        ({}, ()),
        ({'page': 2, 'q': 'cats'}, (('page', '2'), ('q', 'cats'))),
        ([('b', '1'), ('a', '2')], (('b', '1'), ('a', '2'))),
        # None values are dropped.
        ({'a': None, 'b': 'x'}, (('b', 'x'),)),
        # List values expand into repeated keys.
        ({'tag': ['x', 'y']}, (('tag', 'x'), ('tag', 'y'))),
        ({'flag': True}, (('flag', 'true'),)),
    )
    @unpack
    def test_normalize_params(self, params, expected):
        self.assertEqual(expected, util.normalize_params(params))


@ddt
class TestJoinUrl(TestCase):
    @data(
        (None, '/items', '/items'),
        ('http://api.test', '/items', 'http://api.test/items'),
        ('http://api.test/', 'items', 'http://api.test/items'),
        ('http://api.test/v1/', '/items', 'http://api.test/v1/items'),
        # Absolute URLs are left alone.
        ('http://api.test', 'https://other.test/x', 'https://other.test/x'),
    )
    @unpack
    def test_join_url(self, base, url, expected):
        self.assertEqual(expected, util.join_url(base, url))
