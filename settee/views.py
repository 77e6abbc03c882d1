import collections


class ViewResult(object):
    """Result of a view or list query; contains rows, offset, total_rows.
    Instances of this class are not supposed to be created by client software.

    ``body`` is the decoded JSON body, or the response text when a list
    function answered with something other than JSON. A ``304 Not Modified``
    answer to a conditional request has ``not_modified`` set and no body.
    """

    def __init__(self, status_code, headers, body):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        if isinstance(body, dict):
            self.rows = [Row.from_json(r) if isinstance(r, dict) else r for r in body.get("rows", [])]
            self.offset = body.get("offset")
            self.total_rows = body.get("total_rows")
        else:
            self.rows = []
            self.offset = None
            self.total_rows = None

    @property
    def not_modified(self):
        return self.status_code == 304

    @property
    def etag(self):
        return self.headers.get("ETag")

    def __len__(self):
        return len(self.rows)

    def __getitem__(self, i):
        return self.rows[i]

    def __iter__(self):
        return iter(self.rows)

    def json(self):
        "Return data in a JSON-like representation."
        result = dict()
        result["total_rows"] = self.total_rows
        result["offset"] = self.offset
        return result


class Row(collections.namedtuple("Row", ["id", "key", "value", "error", "doc"])):
    """A single row of a view result."""
    __slots__ = ()

    @classmethod
    def from_json(cls, data):
        return cls(data.get("id"), data.get("key"), data.get("value"), data.get("error"), data.get("doc"))
