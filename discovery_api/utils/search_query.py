"""
Search predicates over discovered hosts.

Discovery rules and the host listing both use a small query language::

    facts.somefact = abc and memory >= 2048
    facts.productname ~ "PowerEdge*" or not has facts.virtual
    organization ^ (Lab, "Data Center 1")

The query is parsed once into a tree of nodes and evaluated in Python against
a host object. Missing fields never satisfy a comparison, including negated
ones; use ``not`` or ``null?`` to select hosts lacking a value.
"""
import logging
import re
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from discovery_api.core.exceptions import InvalidSearchError

logger = logging.getLogger(__name__)


FACT_PREFIX = "facts."

# Plain host attributes available to searches
HOST_FIELDS: Dict[str, Callable[[Any], Any]] = {
    "name": lambda host: host.name,
    "mac": lambda host: host.mac,
    "ip": lambda host: host.ip,
    "memory": lambda host: host.memory,
    "cpu_count": lambda host: host.cpu_count,
    "disk_count": lambda host: host.disk_count,
    "disks_size": lambda host: host.disks_size,
    "organization": lambda host: host.organization_name,
    "location": lambda host: host.location_name,
    "hostgroup": lambda host: host.hostgroup_name,
}

COMPARISON_OPERATORS = ("!~", "!^", "!=", ">=", "<=", "=", "~", "^", ">", "<")

_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<op>!~|!\^|!=|>=|<=|&&|\|\||=|~|\^|>|<|!)
    |(?P<lparen>\()
    |(?P<rparen>\))
    |(?P<comma>,)
    |(?P<word>[^\s()=!~^<>&|,"']+)
    """,
    re.VERBOSE,
)


class Token:
    __slots__ = ("kind", "value", "position")

    def __init__(self, kind: str, value: str, position: int):
        self.kind = kind
        self.value = value
        self.position = position

    def __repr__(self):
        return f"Token({self.kind}, {self.value!r})"


def tokenize(query: str) -> List[Token]:
    """Split a search query into tokens."""
    tokens = []
    position = 0
    while position < len(query):
        match = _TOKEN_RE.match(query, position)
        if not match:
            raise InvalidSearchError(f"Invalid search query at position {position}: {query[position:]!r}")
        kind = match.lastgroup
        text = match.group(kind)
        if kind == "string":
            tokens.append(Token("value", _unquote(text), position))
        elif kind == "word":
            tokens.append(Token("word", text, position))
        elif kind != "space":
            tokens.append(Token(kind, text, position))
        position = match.end()
    return tokens


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def _wildcard_regex(pattern: str):
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$", re.IGNORECASE)


class Node:
    """Base class for query tree nodes."""

    def evaluate(self, host) -> bool:
        raise NotImplementedError


class FieldRef:
    """A reference to a host attribute or fact."""

    def __init__(self, name: str):
        lowered = name.lower()
        if lowered.startswith(FACT_PREFIX) and len(name) > len(FACT_PREFIX):
            self.fact = name[len(FACT_PREFIX):]
            self.getter = None
        elif lowered in HOST_FIELDS:
            self.fact = None
            self.getter = HOST_FIELDS[lowered]
        else:
            raise InvalidSearchError(f"Field '{name}' not recognized for searching")
        self.name = name

    def resolve(self, host) -> Any:
        if self.fact is not None:
            return (host.facts or {}).get(self.fact)
        return self.getter(host)


class Comparison(Node):
    def __init__(self, field: FieldRef, operator: str, values: List[str]):
        self.field = field
        self.operator = operator
        self.values = values

    def evaluate(self, host) -> bool:
        actual = self.field.resolve(host)
        if actual is None or actual == "":
            return False

        op = self.operator
        if op == "=":
            return self._equals(actual, self.values[0])
        if op == "!=":
            return not self._equals(actual, self.values[0])
        if op == "~":
            return self._like(actual, self.values[0])
        if op == "!~":
            return not self._like(actual, self.values[0])
        if op == "^":
            return any(self._equals(actual, v) for v in self.values)
        if op == "!^":
            return not any(self._equals(actual, v) for v in self.values)
        return self._ordered(actual, self.values[0], op)

    @staticmethod
    def _equals(actual: Any, expected: str) -> bool:
        left, right = _to_number(actual), _to_number(expected)
        if left is not None and right is not None:
            return left == right
        return str(actual).lower() == expected.lower()

    @staticmethod
    def _like(actual: Any, pattern: str) -> bool:
        if "*" in pattern:
            return bool(_wildcard_regex(pattern).match(str(actual)))
        return pattern.lower() in str(actual).lower()

    @staticmethod
    def _ordered(actual: Any, expected: str, op: str) -> bool:
        left, right = _to_number(actual), _to_number(expected)
        if left is None or right is None:
            left, right = str(actual).lower(), expected.lower()
        if op == ">":
            return left > right
        if op == "<":
            return left < right
        if op == ">=":
            return left >= right
        return left <= right


class Presence(Node):
    """``has field`` / ``null? field``"""

    def __init__(self, field: FieldRef, present: bool):
        self.field = field
        self.present = present

    def evaluate(self, host) -> bool:
        value = self.field.resolve(host)
        has_value = value is not None and value != ""
        return has_value if self.present else not has_value


class FreeText(Node):
    """A bare word matches hosts whose name contains it."""

    def __init__(self, text: str):
        self.text = text.lower()

    def evaluate(self, host) -> bool:
        return self.text in (host.name or "").lower()


class Not(Node):
    def __init__(self, child: Node):
        self.child = child

    def evaluate(self, host) -> bool:
        return not self.child.evaluate(host)


class And(Node):
    def __init__(self, children: List[Node]):
        self.children = children

    def evaluate(self, host) -> bool:
        return all(child.evaluate(host) for child in self.children)


class Or(Node):
    def __init__(self, children: List[Node]):
        self.children = children

    def evaluate(self, host) -> bool:
        return any(child.evaluate(host) for child in self.children)


class MatchAll(Node):
    def evaluate(self, host) -> bool:
        return True


class _Parser:
    """Recursive descent parser producing a Node tree."""

    def __init__(self, query: str):
        self.query = query
        self.tokens = tokenize(query)
        self.index = 0

    def parse(self) -> Node:
        if not self.tokens:
            return MatchAll()
        node = self._or()
        if self._peek() is not None:
            token = self._peek()
            raise InvalidSearchError(f"Unexpected '{token.value}' at position {token.position} in search '{self.query}'")
        return node

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise InvalidSearchError(f"Unexpected end of search '{self.query}'")
        self.index += 1
        return token

    def _is_keyword(self, token: Optional[Token], *keywords: str) -> bool:
        return token is not None and token.kind == "word" and token.value.lower() in keywords

    def _or(self) -> Node:
        children = [self._and()]
        while True:
            token = self._peek()
            if self._is_keyword(token, "or") or (token is not None and token.kind == "op" and token.value == "||"):
                self.index += 1
                children.append(self._and())
            else:
                break
        return children[0] if len(children) == 1 else Or(children)

    def _and(self) -> Node:
        children = [self._not()]
        while True:
            token = self._peek()
            if token is None or token.kind == "rparen":
                break
            if self._is_keyword(token, "or") or (token.kind == "op" and token.value == "||"):
                break
            if self._is_keyword(token, "and") or (token.kind == "op" and token.value == "&&"):
                self.index += 1
            # adjacent terms are implicitly joined with "and"
            children.append(self._not())
        return children[0] if len(children) == 1 else And(children)

    def _not(self) -> Node:
        token = self._peek()
        if self._is_keyword(token, "not") or (token is not None and token.kind == "op" and token.value == "!"):
            self.index += 1
            return Not(self._not())
        return self._primary()

    def _primary(self) -> Node:
        token = self._next()
        if token.kind == "lparen":
            node = self._or()
            closing = self._next()
            if closing.kind != "rparen":
                raise InvalidSearchError(f"Expected ')' at position {closing.position} in search '{self.query}'")
            return node

        if self._is_keyword(token, "has", "set?"):
            return Presence(FieldRef(self._expect_word().value), present=True)
        if self._is_keyword(token, "null?"):
            return Presence(FieldRef(self._expect_word().value), present=False)

        if token.kind not in ("word", "value"):
            raise InvalidSearchError(f"Unexpected '{token.value}' at position {token.position} in search '{self.query}'")

        following = self._peek()
        if following is None or following.kind != "op" or following.value not in COMPARISON_OPERATORS:
            return FreeText(token.value)

        field = FieldRef(token.value)
        operator = self._next().value
        if operator in ("^", "!^"):
            return Comparison(field, operator, self._value_list())
        return Comparison(field, operator, [self._value()])

    def _expect_word(self) -> Token:
        token = self._next()
        if token.kind != "word":
            raise InvalidSearchError(f"Expected a field name at position {token.position} in search '{self.query}'")
        return token

    def _value(self) -> str:
        token = self._next()
        if token.kind not in ("word", "value"):
            raise InvalidSearchError(f"Expected a value at position {token.position} in search '{self.query}'")
        return token.value

    def _value_list(self) -> List[str]:
        token = self._peek()
        if token is None or token.kind != "lparen":
            return [self._value()]
        self.index += 1
        values = [self._value()]
        while True:
            token = self._next()
            if token.kind == "rparen":
                return values
            if token.kind != "comma":
                raise InvalidSearchError(f"Expected ',' or ')' at position {token.position} in search '{self.query}'")
            values.append(self._value())


@lru_cache(maxsize=256)
def parse_search(query: Optional[str]) -> Node:
    """
    Parse a search query into an evaluable node tree.

    Raises:
        InvalidSearchError: if the query is not valid
    """
    return _Parser((query or "").strip()).parse()


def host_matches(query: Optional[str], host) -> bool:
    """Return True when the host satisfies the search query."""
    return parse_search(query).evaluate(host)


def validate_search(query: Optional[str]) -> str:
    """Parse the query, raising InvalidSearchError when it is malformed, and return it stripped."""
    parse_search(query)
    return (query or "").strip()
