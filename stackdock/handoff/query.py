"""jq-style path queries over parsed JSON documents.

Supports the subset the deployer output needs: ``.``, ``.key``, ``.a.b``,
``.["odd key"]`` and ``.list[0]`` (negative indexes count from the end).
Evaluation follows jq: indexing null or a missing key yields null, indexing
the wrong type is an error.
"""

import json
import re

from stackdock.handoff.errors import QueryPathError

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INDEX_RE = re.compile(r"-?[0-9]+")
_DECODER = json.JSONDecoder()


def parse_query(query: str) -> list[str | int]:
    """Split a query path into object keys (str) and array indexes (int)."""
    query = query.strip()
    if not query.startswith("."):
        raise QueryPathError(f"Query must start with '.': {query!r}")

    segments = []
    pos = 0
    n = len(query)
    while pos < n:
        ch = query[pos]
        if ch == ".":
            pos += 1
            if pos == n:
                if segments:
                    raise QueryPathError(f"Trailing '.' in query: {query!r}")
                break
            if query[pos] == "[":
                continue
            match = _IDENT_RE.match(query, pos)
            if not match:
                raise QueryPathError(f"Expected a key at position {pos} in query: {query!r}")
            segments.append(match.group(0))
            pos = match.end()
        elif ch == "[":
            start = pos + 1
            while start < n and query[start].isspace():
                start += 1
            if query.startswith('"', start):
                # the quoted key may itself contain ']'
                try:
                    key, key_end = _DECODER.raw_decode(query, start)
                except json.JSONDecodeError:
                    raise QueryPathError(f"Bad quoted key at position {start} in query: {query!r}") from None
                end = query.find("]", key_end)
                if end == -1 or query[key_end:end].strip():
                    raise QueryPathError(f"Unclosed '[' in query: {query!r}")
                segments.append(key)
                pos = end + 1
                continue
            end = query.find("]", pos)
            if end == -1:
                raise QueryPathError(f"Unclosed '[' in query: {query!r}")
            inner = query[pos + 1 : end].strip()
            if _INDEX_RE.fullmatch(inner):
                segments.append(int(inner))
            else:
                raise QueryPathError(f"Unsupported index [{inner}] in query: {query!r}")
            pos = end + 1
        else:
            raise QueryPathError(f"Unexpected {ch!r} at position {pos} in query: {query!r}")
    return segments


def evaluate(query: str, document):
    """Apply a query path to a parsed JSON document. Returns None for no match."""
    current = document
    for segment in parse_query(query):
        if current is None:
            return None
        if isinstance(segment, int):
            if not isinstance(current, list):
                raise QueryPathError(f"Cannot index {_type_name(current)} with number in {query!r}")
            if -len(current) <= segment < len(current):
                current = current[segment]
            else:
                return None
        else:
            if not isinstance(current, dict):
                raise QueryPathError(f"Cannot index {_type_name(current)} with \"{segment}\" in {query!r}")
            current = current.get(segment)
    return current


def render_raw(value) -> str:
    """Render a value the way ``jq -r`` prints it."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def _type_name(value) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"
