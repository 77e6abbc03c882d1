# -*- coding: utf-8 -*-
"""Python client for querying CouchDB views through versioned design documents.

The client owns one design document. It is installed under a name derived
from its content, ``_design/<fingerprint>``, the first time a query finds it
missing, and older versions are removed at the same time, so deploying new
view code needs no migration step:

>>> client = Client('http://localhost:5984/python-tests', design_document={
...     'views': {
...         'by_type': {'map': Source('function (doc) { emit(doc.type, null); }')},
...     },
... })
>>> client.init()                                           #doctest: +SKIP
>>> result = client.query_design_document('by_type', query={'key': 'City'}) #doctest: +SKIP
>>> [row.id for row in result]                              #doctest: +SKIP
['gotham']

The URL may contain placeholders, which are resolved per call from keyword
arguments and from the ``placeholders`` the client was created with:

>>> client = Client('http://{host}:5984/{database}', placeholders={'host': 'localhost'})
>>> client.resolve_url({'database': 'contacts'})
'http://localhost:5984/contacts'
"""
import json
import logging
import os
import re
from urllib.parse import urlencode

import furl
from requests.structures import CaseInsensitiveDict

from settee import exceptions
from settee.design import DesignDocument, Source, canonical_json
from settee.placeholders import PlaceholderResolver
from settee.session import Session
from settee.streaming import RowStream
from settee.views import ViewResult

__all__ = ['Client', 'Source', 'DEFAULT_BASE_URL']
__docformat__ = 'restructuredtext en'

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.environ.get('COUCHDB_URL', 'http://localhost:5984/')
JSON_CONTENT_TYPE_RE = re.compile(r'^application/json\b|\+json\b', re.I)
# Validator headers that must not be trusted for views unless asked to, see
# https://issues.apache.org/jira/browse/COUCHDB-909
VALIDATOR_HEADERS = ('If-None-Match', 'ETag')


def _jsons(data, indent=None):
    """Convert data into JSON string."""
    return json.dumps(data, ensure_ascii=False, indent=indent)


def encode_query(query):
    """Encode query string parameters the way CouchDB expects them.

    Each value is sent as JSON, a list or tuple value is sent as one
    parameter per item, and `None` values are left out. A string is taken to
    be a ready-made query string.

    >>> encode_query({'startkey': '_design/', 'limit': 10, 'skip': None})
    [('startkey', '"_design/"'), ('limit', '10')]
    """
    if query is None or isinstance(query, (str, bytes)):
        return query
    params = []
    for name, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            params.extend((name, _jsons(item)) for item in value)
        else:
            params.append((name, _jsons(value)))
    return params


def is_json_content_type(content_type):
    return bool(content_type and JSON_CONTENT_TYPE_RE.search(content_type))


def _path(*segments):
    """Build a relative path from segments; document IDs may contain slashes."""
    parts = []
    for segment in segments:
        parts.extend(segment.split('/'))
    return str(furl.Path(parts))


class Client(object):
    """A database on a CouchDB server, queried through a versioned design
    document.

    :param url: URL of the database; may contain ``{name}`` placeholders
    :param design_document: a `DesignDocument` or a mapping to build one from
    :param trust_view_etags: whether conditional view requests are allowed;
                             off by default because CouchDB reuses ETags when a
                             database is deleted and recreated
    :param placeholders: mapping of placeholder name to a value, or to a
                         callable ``resolver(options, name)``
    :param headers: extra headers to send with every request
    :param session: the `Session` to make requests with; the client leaves
                    its headers alone, so it can be shared
    """

    def __init__(self, url=DEFAULT_BASE_URL, design_document=None, trust_view_etags=False,
                 placeholders=None, headers=None, session=None):
        self._url = url
        self._placeholders = PlaceholderResolver(placeholders)
        if design_document is not None and not isinstance(design_document, DesignDocument):
            design_document = DesignDocument(design_document)
        self._design_document = design_document
        self._trust_view_etags = bool(trust_view_etags)
        self._session = session if session is not None else Session()
        self._headers = CaseInsensitiveDict(headers or {})
        self._headers['Accept'] = 'application/json'

    def __repr__(self):
        return '<%s %r>' % (type(self).__name__, self._url)

    @property
    def url(self):
        return self._url

    @property
    def session(self):
        return self._session

    @property
    def headers(self):
        """Headers sent with every request, on top of the session's own."""
        return self._headers

    @property
    def design_document(self):
        return self._design_document

    @property
    def design_document_version(self):
        """The fingerprint of the design document, or `None` without one."""
        if self._design_document is None:
            return None
        return self._design_document.fingerprint

    @property
    def trust_view_etags(self):
        return self._trust_view_etags

    def resolve_url(self, options=None):
        """Return the database URL with all placeholders substituted."""
        return self._placeholders.expand(self._url, options)

    def request(self, method='GET', path='', query=None, headers=None, body=None,
                stream_rows=False, **options):
        """Make a request relative to the database URL.

        :param method: the HTTP method
        :param path: path relative to the database URL
        :param query: query string parameters, see `encode_query`
        :param headers: extra request headers
        :param body: request body; `str` and `bytes` are sent as they are,
                     anything else as canonical JSON
        :param stream_rows: return a `RowStream` instead of the response
        :param options: placeholder values for this request
        :return: the `requests.Response`, or a `RowStream`
        """
        return self._request(method, path, options, query=query, headers=headers, body=body,
                             stream_rows=stream_rows)

    def _request(self, method, path, options, query=None, headers=None, body=None,
                 stream_rows=False):
        headers = self._request_headers(headers)
        kwargs = {}
        if body is not None:
            if isinstance(body, (str, bytes)):
                kwargs['data'] = body
            else:
                kwargs['data'] = canonical_json(body).encode('utf-8')
                headers.setdefault('Content-Type', 'application/json')
        response = self._session.request(
            method, path,
            base_url=self.resolve_url(options),
            params=encode_query(query),
            headers=headers,
            stream=stream_rows,
            **kwargs)
        if stream_rows:
            return RowStream.from_response(response)
        return response

    def init(self, **options):
        """Create the database unless it exists already."""
        url = self.resolve_url(options)
        try:
            self._session.request('PUT', url, headers=self._request_headers())
        except exceptions.HTTPPreconditionFailed:
            log.debug('Database %s exists already', url)

    def install_design_document(self, **options):
        """Install the current design document and remove all others.

        A ``409 Conflict`` on install means another client has just installed
        the same version, which counts as success; that client also takes care
        of removing old versions.

        :param options: placeholder values for the requests made
        :return: list of the IDs of removed design documents
        """
        design_document = self._require_design_document()
        log.debug('Installing design document %s', design_document.id)
        try:
            self._request('PUT', _path(design_document.id), options,
                          headers={'Content-Type': 'application/json'},
                          body=design_document.to_json().encode('utf-8'))
        except exceptions.HTTPConflict:
            log.debug('Design document %s was installed concurrently', design_document.id)
            return []

        data = self._request('GET', '_all_docs', options,
                             query={'startkey': '_design/', 'endkey': '_design/~'}).json()
        removed = []
        for row in data.get('rows') or []:
            doc_id = row['id']
            if not doc_id.startswith('_design/') or doc_id == design_document.id:
                continue
            log.debug('Removing stale design document %s', doc_id)
            self._request('DELETE', _path(doc_id), options,
                          query=urlencode({'rev': row['value']['rev']}))
            removed.append(doc_id)
        return removed

    def query_design_document(self, view_name, list_name=None, query=None,
                              conditional_headers=None, stream_rows=False,
                              temporary=False, **options):
        """Query a view of the design document, optionally through a list
        function.

        If the server does not know the current version of the design
        document, it is installed and the query is made once more.

        :param view_name: name of the view in the design document
        :param list_name: name of a list function to format the view with
        :param query: query string parameters, see `encode_query`
        :param conditional_headers: headers such as ``If-None-Match``; dropped
                                    unless the client trusts view ETags
        :param stream_rows: return a `RowStream` instead of a `ViewResult`
        :param temporary: run the view as a temporary view instead
        :param options: placeholder values for the requests made
        :raise InvalidQuery: for unknown views or lists, or a list function
                             combined with a temporary view
        """
        design_document = self._require_design_document()
        view = design_document.view(view_name)
        if list_name is not None and list_name not in design_document.lists:
            raise exceptions.InvalidQuery('%s not found in design document' % list_name)

        if temporary:
            if list_name is not None:
                raise exceptions.InvalidQuery('list_name is not supported when querying a temporary view')
            return self.query_temporary_view(view, query=query,
                                             conditional_headers=conditional_headers,
                                             stream_rows=stream_rows, **options)

        if list_name is not None:
            path = _path(design_document.id, '_list', list_name, view_name)
        else:
            path = _path(design_document.id, '_view', view_name)
        headers = self._conditional_headers(conditional_headers)

        def perform():
            result = self._request('GET', path, options, query=query, headers=headers,
                                   stream_rows=stream_rows)
            if stream_rows:
                return result.prime()
            return result

        try:
            result = perform()
        except exceptions.HTTPNotFound:
            log.debug('Design document %s is missing, installing it and retrying', design_document.id)
            self.install_design_document(**options)
            result = perform()
        return self._view_result(result)

    def query_temporary_view(self, view, query=None, conditional_headers=None,
                             stream_rows=False, language='javascript', **options):
        """Run an ad-hoc view.

        :param view: mapping with a ``map`` and optionally a ``reduce`` function
        :return: a `ViewResult`, or a `RowStream` if ``stream_rows`` is set
        """
        body = {'language': language}
        body.update(view)
        result = self._request('POST', '_temp_view', options, query=query,
                               headers=self._conditional_headers(conditional_headers),
                               body=body, stream_rows=stream_rows)
        if stream_rows:
            result.prime()
        return self._view_result(result)

    def _request_headers(self, headers=None):
        merged = CaseInsensitiveDict(self._headers)
        merged.update(headers or {})
        return merged

    def _require_design_document(self):
        if self._design_document is None:
            raise exceptions.InvalidQuery('No design document configured')
        return self._design_document

    def _conditional_headers(self, headers):
        headers = CaseInsensitiveDict(headers or {})
        if not self._trust_view_etags:
            for name in VALIDATOR_HEADERS:
                headers.pop(name, None)
        return headers

    def _view_result(self, result):
        if isinstance(result, RowStream):
            if not self._trust_view_etags:
                result.headers.pop('ETag', None)
            return result
        headers = CaseInsensitiveDict(result.headers)
        if not self._trust_view_etags:
            headers.pop('ETag', None)
        if result.status_code == 304:
            body = None
        elif is_json_content_type(headers.get('Content-Type')):
            body = result.json()
        else:
            body = result.text
        return ViewResult(result.status_code, headers, body)
