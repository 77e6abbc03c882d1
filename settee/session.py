"""HTTP transport used by the client.

A thin wrapper around ``requests_toolbelt``'s ``BaseUrlSession`` that joins
request paths onto a base URL and turns HTTP error statuses and ``requests``
failures into the exceptions defined in `settee.exceptions`.
"""
from urllib.parse import urljoin

import requests.exceptions
from requests_toolbelt import sessions

from settee import exceptions

__all__ = ['Session', 'as_directory']


def as_directory(url):
    """Return ``url`` with a trailing slash, so that relative paths are
    resolved beneath its last segment rather than replacing it.

    >>> as_directory('http://localhost:5984/hey/there')
    'http://localhost:5984/hey/there/'
    """
    url = str(url)
    if not url.endswith('/'):
        url += '/'
    return url


class Session(object):
    """Wrapper around BaseUrlSession that automatically wraps certain exceptions when making requests"""

    def __init__(self, base_url=None, headers=None):
        self._base_session = sessions.BaseUrlSession(base_url=base_url)
        if headers:
            self._base_session.headers.update(headers)

    @property
    def base_url(self):
        return self._base_session.base_url

    @base_url.setter
    def base_url(self, url):
        self._base_session.base_url = url

    @property
    def headers(self):
        return self._base_session.headers

    def create_url(self, url, base_url=None):
        """Join ``url`` onto ``base_url``, or onto the session's own base URL
        when none is given.
        """
        if base_url is None:
            return self._base_session.create_url(str(url))
        return urljoin(as_directory(base_url), str(url))

    def request(self, method, url, base_url=None, **kwargs):
        url = self.create_url(url, base_url)
        try:
            resp = self._base_session.request(method, url, **kwargs)
        except requests.exceptions.Timeout as exc:
            raise exceptions.Timeout(str(exc)) from exc
        except requests.exceptions.RequestException as exc:
            raise exceptions.RequestsException(str(exc)) from exc
        try:
            resp.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            resp.close()
            raise exceptions.http_error_lookup(exc.response.status_code, exc.response.reason) from exc
        return resp

    def head(self, url, **kwargs):
        return self.request("HEAD", url, **kwargs)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def put(self, url, data=None, **kwargs):
        return self.request("PUT", url, data=data, **kwargs)

    def post(self, url, data=None, json=None, **kwargs):
        return self.request("POST", url, data=data, json=json, **kwargs)

    def delete(self, url, **kwargs):
        return self.request("DELETE", url, **kwargs)
