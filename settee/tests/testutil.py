# -*- coding: utf-8 -*-

import io
import json
from http.client import responses as reasons
from unittest import mock

import requests
from requests.structures import CaseInsensitiveDict
from requests_toolbelt import sessions


def make_response(status_code=200, body=None, headers=None, lines=None):
    """Build a `requests.Response` as if it had come off the wire.

    ``body`` may be JSON data, text or bytes; ``lines`` is joined with CRLF
    the way CouchDB writes streamed views.
    """
    headers = CaseInsensitiveDict(headers or {})
    if lines is not None:
        content = '\r\n'.join(lines).encode('utf-8')
        headers.setdefault('Content-Type', 'application/json')
    elif body is None:
        content = b''
    elif isinstance(body, bytes):
        content = body
    elif isinstance(body, str):
        content = body.encode('utf-8')
    else:
        content = json.dumps(body).encode('utf-8')
        headers.setdefault('Content-Type', 'application/json')
    response = requests.Response()
    response.status_code = status_code
    response.reason = reasons.get(status_code, '')
    response.headers = headers
    response.encoding = 'utf-8'
    response.raw = io.BytesIO(content)
    return response


class MockServer(object):
    """Answers requests made through any `BaseUrlSession` with queued
    responses, and keeps the prepared requests for inspection.

    A queued exception instance is raised instead of being returned.
    """

    def __init__(self, testcase, *responses):
        self.responses = list(responses)
        self.requests = []
        patcher = mock.patch.object(sessions.BaseUrlSession, 'request', side_effect=self._handle)
        patcher.start()
        testcase.addCleanup(patcher.stop)

    def _handle(self, method, url, **kwargs):
        prepared = requests.Request(
            method, url,
            params=kwargs.get('params'),
            headers=kwargs.get('headers'),
            data=kwargs.get('data'),
        ).prepare()
        self.requests.append(prepared)
        if not self.responses:
            raise AssertionError('Unexpected request: %s %s' % (method, prepared.url))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        response.url = prepared.url
        response.request = prepared
        return response

    @property
    def calls(self):
        return ['%s %s' % (r.method, r.url) for r in self.requests]

    def body(self, index):
        return json.loads(self.requests[index].body.decode('utf-8'))
