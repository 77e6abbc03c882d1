# -*- coding: utf-8 -*-

import doctest
import unittest
from unittest import mock

from settee import exceptions, streaming
from settee.streaming import Event, RowDecoder, RowStream
from settee.tests.testutil import make_response
from settee.views import Row

LINES = [
    '{"total_rows":2,"offset":0,"rows":[',
    '{"id":"a","key":"a","value":1},',
    '{"id":"b","key":"b","value":2}',
    ']}',
]


class RowDecoderTestCase(unittest.TestCase):

    def test_header_with_metadata(self):
        decoder = RowDecoder()
        self.assertEqual(decoder.feed('{"total_rows":2,"offset":0,"rows":['),
                         [Event('metadata', {'total_rows': 2, 'offset': 0})])

    def test_header_without_metadata(self):
        self.assertEqual(RowDecoder().feed('{"rows":['), [])

    def test_results_header(self):
        self.assertEqual(RowDecoder().feed('{"results":['), [])

    def test_header_with_spaces(self):
        self.assertEqual(RowDecoder().feed('{"total_rows": 1, "rows": ['),
                         [Event('metadata', {'total_rows': 1})])

    def test_noise(self):
        decoder = RowDecoder()
        for line in ['', ']}', '],']:
            self.assertEqual(decoder.feed(line), [])

    def test_trailing_metadata(self):
        self.assertEqual(RowDecoder().feed('"last_seq":42}'), [Event('metadata', {'last_seq': 42})])

    def test_row_separator_is_stripped(self):
        decoder = RowDecoder()
        self.assertEqual(decoder.feed('{"id":"a"},'), [Event('row', {'id': 'a'})])
        self.assertEqual(decoder.feed(b'{"id":"b"},\r'), [Event('row', {'id': 'b'})])

    def test_malformed_row(self):
        decoder = RowDecoder()
        with self.assertRaises(exceptions.DecodeError) as cm:
            decoder.feed('{"id":')
        self.assertEqual(cm.exception.line, '{"id":')
        self.assertIn('{"id":', str(cm.exception))
        self.assertTrue(decoder.done)
        self.assertEqual(decoder.feed('{"id":"a"}'), [])

    def test_closed_decoder_ignores_input(self):
        decoder = RowDecoder()
        decoder.close()
        self.assertEqual(decoder.feed('{"id":"a"}'), [])


class RowStreamTestCase(unittest.TestCase):

    def test_events_in_order(self):
        stream = RowStream(LINES)
        self.assertEqual(list(stream), [
            Event('metadata', {'total_rows': 2, 'offset': 0}),
            Event('row', {'id': 'a', 'key': 'a', 'value': 1}),
            Event('row', {'id': 'b', 'key': 'b', 'value': 2}),
        ])
        self.assertTrue(stream.done)

    def test_empty_result(self):
        stream = RowStream(['{"total_rows":0,"rows":[]}'])
        self.assertEqual(list(stream), [Event('metadata', {'total_rows': 0})])
        self.assertTrue(stream.done)

    def test_empty_result_without_metadata(self):
        self.assertEqual(list(RowStream(['{"rows":[]}'])), [])

    def test_metadata_after_rows(self):
        stream = RowStream(['{"results":[', '{"seq":1,"id":"a"}', '],', '"last_seq":1}'])
        self.assertEqual([event.kind for event in stream], ['row', 'metadata'])
        self.assertEqual(stream.metadata, {'last_seq': 1})

    def test_malformed_row_ends_stream(self):
        stream = RowStream(LINES[:2] + ['{"id":"b",', '{"id":"c"}', ']}'])
        self.assertEqual(next(stream).kind, 'metadata')
        self.assertEqual(next(stream).kind, 'row')
        with self.assertRaises(exceptions.DecodeError) as cm:
            next(stream)
        self.assertEqual(cm.exception.line, '{"id":"b",')
        self.assertTrue(stream.done)
        self.assertEqual(list(stream), [])

    def test_undecodable_line_ends_stream(self):
        stream = RowStream([b'{"rows":[', b'{"id":"\xff"},', b'{"id":"b"}', b']}'])
        with self.assertRaises(exceptions.DecodeError) as cm:
            next(stream)
        self.assertIn('\\xff', cm.exception.line)
        self.assertTrue(stream.done)
        self.assertEqual(list(stream), [])

    def test_lines_are_read_lazily(self):
        consumed = []

        def lines():
            for line in LINES:
                consumed.append(line)
                yield line

        stream = RowStream(lines())
        next(stream)
        self.assertEqual(consumed, LINES[:1])
        next(stream)
        self.assertEqual(consumed, LINES[:2])

    def test_prime_reads_first_event_only(self):
        consumed = []

        def lines():
            for line in ['', '{"rows":['] + LINES[1:]:
                consumed.append(line)
                yield line

        stream = RowStream(lines()).prime()
        self.assertEqual(len(consumed), 3)
        self.assertEqual(list(stream)[0], Event('row', {'id': 'a', 'key': 'a', 'value': 1}))

    def test_prime_raises_decode_error(self):
        stream = RowStream(['<html>'])
        self.assertRaises(exceptions.DecodeError, stream.prime)
        self.assertEqual(list(stream), [])

    def test_abort(self):
        stream = RowStream(LINES)
        next(stream)
        stream.abort()
        self.assertTrue(stream.aborted)
        self.assertEqual(list(stream), [])

    def test_abort_drops_primed_event(self):
        stream = RowStream(LINES).prime()
        stream.abort()
        self.assertEqual(list(stream), [])

    def test_context_manager_aborts(self):
        with RowStream(LINES) as stream:
            next(stream)
        self.assertTrue(stream.done)
        self.assertEqual(list(stream), [])

    def test_rows(self):
        stream = RowStream(LINES)
        self.assertEqual(list(stream.rows()), [Row('a', 'a', 1, None, None), Row('b', 'b', 2, None, None)])
        self.assertEqual(stream.metadata, {'total_rows': 2, 'offset': 0})

    def test_from_response(self):
        response = make_response(200, lines=LINES, headers={'ETag': '"abc"'})
        response.close = mock.Mock()
        stream = RowStream.from_response(response)
        self.assertEqual(stream.status_code, 200)
        self.assertEqual(stream.headers['etag'], '"abc"')
        self.assertEqual([event.kind for event in stream], ['metadata', 'row', 'row'])
        response.close.assert_called_once_with()


def suite():
    suite = unittest.TestSuite()
    suite.addTest(unittest.defaultTestLoader.loadTestsFromTestCase(RowDecoderTestCase))
    suite.addTest(unittest.defaultTestLoader.loadTestsFromTestCase(RowStreamTestCase))
    suite.addTest(doctest.DocTestSuite(streaming))
    return suite


if __name__ == '__main__':
    unittest.main(defaultTest='suite')
