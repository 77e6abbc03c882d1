"""Design documents and their content fingerprints.

A design document is a tree of JSON values whose leaves may also be
server-side functions. Functions are written either as `Source` strings or,
for the Python view server, as Python functions whose source text is looked
up with `inspect`:

>>> doc = DesignDocument({'views': {'all': {'map': Source('function (doc) { emit(doc._id); }')}}})
>>> doc.fingerprint
'33fce5aaf5f99a1c3299d16246be6cb7'
>>> doc.id
'_design/33fce5aaf5f99a1c3299d16246be6cb7'

The fingerprint is the MD5 of the canonical JSON form, so it changes
whenever any function body changes, and the client uses it as the design
document's name on the server.
"""
import copy
import hashlib
import json
from inspect import getsource
from textwrap import dedent
from types import FunctionType

from settee import exceptions

__all__ = ['Source', 'DesignDocument', 'canonical_json', 'fingerprint']
__docformat__ = 'restructuredtext en'


class Source(str):
    """Source code of a server-side function, sent to the server verbatim."""

    def __repr__(self):
        return '%s(%s)' % (type(self).__name__, str.__repr__(self))


def function_source(fun):
    """Return the dedented source text of a Python function."""
    return Source(dedent(getsource(fun)).rstrip('\n'))


def _default(obj):
    if isinstance(obj, FunctionType):
        return function_source(obj)
    raise TypeError('Object of type %s is not JSON serializable' % type(obj).__name__)


def canonical_json(obj):
    """Serialize ``obj`` to compact JSON, rendering functions as their source.

    Keys keep their insertion order and non-ASCII text is not escaped.

    >>> canonical_json({'map': Source('function (doc) {}'), 'n': [1, 'ø']})
    '{"map":"function (doc) {}","n":[1,"ø"]}'
    """
    return json.dumps(obj, default=_default, separators=(',', ':'), ensure_ascii=False)


def fingerprint(obj):
    """Return the lowercase hex MD5 digest of ``obj``'s canonical JSON form."""
    return hashlib.md5(canonical_json(obj).encode('utf-8')).hexdigest()


class DesignDocument(object):
    """An immutable design document with a cached fingerprint.

    :param doc: mapping with ``views`` and optionally ``lists`` and other
                design document members
    """

    def __init__(self, doc):
        if isinstance(doc, DesignDocument):
            doc = doc._doc
        self._doc = copy.deepcopy(dict(doc))
        self._json = canonical_json(self._doc)
        self._fingerprint = hashlib.md5(self._json.encode('utf-8')).hexdigest()

    def __repr__(self):
        return '<%s %r>' % (type(self).__name__, self.id)

    def __eq__(self, other):
        if not isinstance(other, DesignDocument):
            return NotImplemented
        return self._json == other._json

    def __hash__(self):
        return hash(self._json)

    @property
    def fingerprint(self):
        return self._fingerprint

    @property
    def id(self):
        """The document ID the design document is installed under."""
        return '_design/' + self._fingerprint

    @property
    def views(self):
        return self._doc.get('views') or {}

    @property
    def lists(self):
        return self._doc.get('lists') or {}

    def view(self, name):
        """Return the definition of view ``name``.

        :raise InvalidQuery: if the design document has no such view
        """
        if name not in self.views:
            raise exceptions.InvalidQuery('%s not found in design document' % name)
        return self.views[name]

    def to_json(self):
        """The canonical JSON text of the document, as sent on install."""
        return self._json

    def json(self):
        "Return a copy of the document with all functions rendered as source."
        return json.loads(self._json)
