"""Incremental decoding of view responses.

CouchDB writes view results one row per line::

    {"total_rows":2,"offset":0,"rows":[
    {"id":"a","key":"a","value":1},
    {"id":"b","key":"b","value":2}
    ]}

`RowDecoder` turns such lines into ``metadata`` and ``row`` events without
waiting for the rest of the body, and `RowStream` drives it from a response
so that rows can be consumed while the server is still sending them:

>>> stream = RowStream([
...     '{"total_rows":2,"offset":0,"rows":[',
...     '{"id":"a","key":"a","value":1},',
...     '{"id":"b","key":"b","value":2}',
...     ']}',
... ])
>>> [event.kind for event in stream]
['metadata', 'row', 'row']
>>> stream.metadata
{'total_rows': 2, 'offset': 0}
"""
import collections
import json
import logging
import re

import requests.exceptions

from settee import exceptions
from settee.views import Row

__all__ = ['Event', 'RowDecoder', 'RowStream']

log = logging.getLogger(__name__)

HEADER_RE = re.compile(r'^\{(.*)"(?:rows|results)":\s*\[(?:\]\}|)$')
TRAILER_RE = re.compile(r'^(".*)\}$')
ROW_SEPARATOR_RE = re.compile(r',\r?$')
HEADER_SEPARATOR_RE = re.compile(r',\s*$')
NOISE = frozenset(['', ']}', '],'])

METADATA = 'metadata'
ROW = 'row'


class Event(collections.namedtuple('Event', ['kind', 'data'])):
    """A decoded piece of a streamed view response."""
    __slots__ = ()


class RowDecoder(object):
    """Line-at-a-time parser for row-per-line JSON envelopes.

    `feed` returns the events produced by one line. After a line fails to
    parse, or after `close`, the decoder is done and ignores all input.
    """

    def __init__(self):
        self.done = False

    def feed(self, line):
        if self.done:
            return []
        if isinstance(line, bytes):
            try:
                line = line.decode('utf-8')
            except UnicodeDecodeError as exc:
                self.done = True
                log.error('Could not decode line of streamed view response: %r', line)
                raise exceptions.DecodeError(repr(line)) from exc

        match = HEADER_RE.match(line)
        if match:
            leading = HEADER_SEPARATOR_RE.sub('', match.group(1))
            if leading:
                return [Event(METADATA, self._parse('{' + leading + '}', line))]
            return []

        match = TRAILER_RE.match(line)
        if match:
            return [Event(METADATA, self._parse('{' + match.group(1) + '}', line))]

        if line in NOISE:
            return []

        return [Event(ROW, self._parse(ROW_SEPARATOR_RE.sub('', line), line))]

    def _parse(self, text, line):
        try:
            return json.loads(text)
        except ValueError as exc:
            self.done = True
            log.error('Could not parse line of streamed view response: %r', line)
            raise exceptions.DecodeError(line) from exc

    def close(self):
        self.done = True


class RowStream(object):
    """An in-progress streamed query.

    Iterating yields `Event` tuples in response order: ``metadata`` events
    (normally one, before the rows) and one ``row`` event per row. The
    iterator ends when the response does; a malformed line raises
    `DecodeError` instead. Either way the stream is then finished and yields
    nothing more, and the same holds after `abort`.

    :param lines: iterable of response lines, as `str` or `bytes`
    :param response: the `requests.Response` the lines come from, closed
                     when the stream finishes
    """

    def __init__(self, lines, response=None):
        self._lines = iter(lines)
        self._response = response
        self._decoder = RowDecoder()
        self._pending = collections.deque()
        self.metadata = {}
        self.done = False
        self.aborted = False

    @classmethod
    def from_response(cls, response):
        return cls(response.iter_lines(), response=response)

    @property
    def headers(self):
        if self._response is None:
            return {}
        return self._response.headers

    @property
    def status_code(self):
        if self._response is None:
            return None
        return self._response.status_code

    def __repr__(self):
        return '<%s %s>' % (type(self).__name__, 'done' if self.done else 'open')

    def __iter__(self):
        return self

    def __next__(self):
        if not self._fill():
            raise StopIteration
        event = self._pending.popleft()
        if event.kind == METADATA:
            self.metadata.update(event.data)
        return event

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.abort()

    def prime(self):
        """Read ahead until the first event is decoded or the stream ends.

        Errors surface here rather than from iteration, which lets the
        caller react to a failed response before handing the stream on.
        """
        self._fill()
        return self

    def _fill(self):
        while not self._pending:
            if self.done:
                return False
            try:
                line = next(self._lines)
            except StopIteration:
                self._finish()
                return False
            except requests.exceptions.RequestException as exc:
                self._finish()
                raise exceptions.RequestsException(str(exc)) from exc
            try:
                self._pending.extend(self._decoder.feed(line))
            except exceptions.DecodeError:
                self._finish()
                raise
        return True

    def _finish(self):
        self.done = True
        self._decoder.close()
        if self._response is not None:
            self._response.close()

    def rows(self):
        """Yield the rows only, as `settee.views.Row` tuples, collecting
        metadata into `metadata` along the way.
        """
        for event in self:
            if event.kind == ROW:
                yield Row.from_json(event.data) if isinstance(event.data, dict) else event.data

    def abort(self):
        """Stop the stream; no further events are delivered."""
        self.aborted = True
        self._pending.clear()
        if not self.done:
            self._finish()

    close = abort
