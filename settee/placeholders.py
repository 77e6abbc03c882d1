"""Substitution of ``{name}`` placeholders in URL templates.

A placeholder is looked up first among the options of the call being made,
then in the placeholder registry the client was configured with. Registry
entries may be plain values or callables; a callable is invoked as
``resolver(options, name)`` and may derive its value from other options:

>>> resolver = PlaceholderResolver({
...     'domainName': lambda options, name: options['owner'].split('@')[-1],
... })
>>> resolver.expand('http://{domainName}.contacts/foo/', {'owner': 'andreas@example.com'})
'http://example.com.contacts/foo/'

Placeholders that cannot be resolved are left in the URL as they are:

>>> resolver.expand('http://localhost/{database}', {'owner': 'x@y'})
'http://localhost/{database}'

and so are tokens that are neither a name nor a valid expression:

>>> resolver.expand('http://localhost/{}/{domain-name}', {})
'http://localhost/{}/{domain-name}'

A token whose body is not a bare name is an expression over other
placeholders. It supports literals, comparisons, ``&&``, ``||``, ``!``,
``+``, ``-``, parentheses and the ``?:`` conditional, which is enough to route
requests by partition:

>>> router = PlaceholderResolver({'partitionNumber': 1})
>>> router.expand('http://couchdb{{partitionNumber} === 0 ? 3 : 4}.example.com/', {})
'http://couchdb4.example.com/'
"""
import logging
import re

from settee import exceptions

__all__ = ['PlaceholderResolver', 'to_string']

log = logging.getLogger(__name__)

_NAME = r'[A-Za-z_$][\w$]*'
_TOKEN_RE = re.compile(r'\{((?:[^{}]|\{' + _NAME + r'\})*)\}')
_NAME_RE = re.compile(r'^' + _NAME + r'$')
_EXPRESSION_TOKEN_RE = re.compile(r'''
    \s*(?:
        \{(?P<ref>''' + _NAME + r''')\}
      | (?P<number>\d+(?:\.\d+)?)
      | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<word>''' + _NAME + r''')
      | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!?:()+-])
    )''', re.VERBOSE)
_KEYWORDS = {'true': True, 'false': False, 'null': None}


def to_string(value):
    """Coerce a placeholder value to the text that goes into the URL."""
    if value is True:
        return 'true'
    if value is False:
        return 'false'
    if value is None:
        return 'null'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class _Unresolved(Exception):
    """An expression referenced a placeholder that has no value."""


class PlaceholderResolver(object):
    """Resolve placeholders against call options and a fixed registry.

    :param placeholders: mapping of placeholder name to either a plain value
                         or a callable taking ``(options, name)``
    """

    def __init__(self, placeholders=None):
        self._placeholders = dict(placeholders or {})

    def __contains__(self, name):
        return name in self._placeholders

    def value(self, name, options):
        """Return the raw value of placeholder ``name``, or raise `KeyError`.

        A key present in ``options`` wins even when its value is falsy; only
        ``None`` counts as absent.
        """
        if options is not None and options.get(name) is not None:
            return options[name]
        if name in self._placeholders:
            value = self._placeholders[name]
            if callable(value):
                return value(options if options is not None else {}, name)
            return value
        raise KeyError(name)

    def resolve(self, name, options):
        try:
            return to_string(self.value(name, options))
        except KeyError:
            return '{' + name + '}'

    def expand(self, template, options=None):
        """Substitute every placeholder token in ``template``."""
        if options is None:
            options = {}

        def substitute(match):
            body = match.group(1)
            if _NAME_RE.match(body):
                return self.resolve(body, options)
            try:
                return to_string(_Expression(body, self, options).evaluate())
            except _Unresolved:
                return match.group(0)
            except exceptions.InvalidQuery as exc:
                log.warning('Leaving placeholder %s in place: %s', match.group(0), exc)
                return match.group(0)

        return _TOKEN_RE.sub(substitute, str(template))


class _Expression(object):
    """Recursive descent evaluator for placeholder expressions.

    Grammar, loosest binding first::

        conditional := or ('?' conditional ':' conditional)?
        or          := and ('||' and)*
        and         := comparison ('&&' comparison)*
        comparison  := additive (('===' | '!==' | '==' | '!=' | '<' | '>' | '<=' | '>=') additive)?
        additive    := unary (('+' | '-') unary)*
        unary       := ('!' | '-') unary | primary
        primary     := number | string | true | false | null | {name} | '(' conditional ')'
    """

    def __init__(self, text, resolver, options):
        self.text = text
        self.resolver = resolver
        self.options = options
        self.tokens = self._tokenize(text)
        self.pos = 0

    def _tokenize(self, text):
        tokens = []
        pos = 0
        text = text.rstrip()
        while pos < len(text):
            match = _EXPRESSION_TOKEN_RE.match(text, pos)
            if not match or match.end() == pos:
                raise exceptions.InvalidQuery(
                    'Invalid placeholder expression {0!r} at offset {1}'.format(text, pos))
            tokens.append((match.lastgroup, match.group(match.lastgroup)))
            pos = match.end()
        return tokens

    def _peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return (None, None)

    def _accept(self, *ops):
        kind, value = self._peek()
        if kind == 'op' and value in ops:
            self.pos += 1
            return value
        return None

    def _expect(self, op):
        if not self._accept(op):
            raise exceptions.InvalidQuery(
                'Expected {0!r} in placeholder expression {1!r}'.format(op, self.text))

    def evaluate(self):
        result = self._conditional()
        if self.pos != len(self.tokens):
            raise exceptions.InvalidQuery(
                'Unexpected {0!r} in placeholder expression {1!r}'.format(self._peek()[1], self.text))
        return result

    def _conditional(self):
        condition = self._or()
        if self._accept('?'):
            consequent = self._conditional()
            self._expect(':')
            alternative = self._conditional()
            return consequent if _truthy(condition) else alternative
        return condition

    def _or(self):
        left = self._and()
        while self._accept('||'):
            right = self._and()
            left = left if _truthy(left) else right
        return left

    def _and(self):
        left = self._comparison()
        while self._accept('&&'):
            right = self._comparison()
            left = right if _truthy(left) else left
        return left

    def _comparison(self):
        left = self._additive()
        op = self._accept('===', '!==', '==', '!=', '<=', '>=', '<', '>')
        if op is None:
            return left
        right = self._additive()
        if op in ('===', '=='):
            return _strict_equal(left, right)
        if op in ('!==', '!='):
            return not _strict_equal(left, right)
        try:
            if op == '<':
                return left < right
            if op == '>':
                return left > right
            if op == '<=':
                return left <= right
            return left >= right
        except TypeError:
            return False

    def _additive(self):
        left = self._unary()
        while True:
            op = self._accept('+', '-')
            if op is None:
                return left
            right = self._unary()
            if op == '+':
                if isinstance(left, str) or isinstance(right, str):
                    left = to_string(left) + to_string(right)
                else:
                    left = left + right
            else:
                left = left - right

    def _unary(self):
        if self._accept('!'):
            return not _truthy(self._unary())
        if self._accept('-'):
            return -self._unary()
        return self._primary()

    def _primary(self):
        if self._accept('('):
            value = self._conditional()
            self._expect(')')
            return value
        kind, value = self._peek()
        self.pos += 1
        if kind == 'number':
            return float(value) if '.' in value else int(value)
        if kind == 'string':
            return re.sub(r'\\(.)', r'\1', value[1:-1])
        if kind == 'word' and value in _KEYWORDS:
            return _KEYWORDS[value]
        if kind == 'ref':
            try:
                return self.resolver.value(value, self.options)
            except KeyError:
                raise _Unresolved(value)
        raise exceptions.InvalidQuery(
            'Unexpected {0!r} in placeholder expression {1!r}'.format(value, self.text))


def _truthy(value):
    return value not in (None, False, 0, '')


def _strict_equal(left, right):
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, str) != isinstance(right, str):
        return False
    return left == right
