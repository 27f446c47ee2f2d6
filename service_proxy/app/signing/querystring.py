"""
Bracket-notation query string codec.

The upstream gateway parses query strings into nested structures
(``filter[status]=active`` -> ``{"filter": {"status": "active"}}``) and
re-serializes them before checking a signature, so the proxy must build the
exact same canonical string. Serialization keeps insertion order, writes
arrays with explicit indices (``ids[0]=a&ids[1]=b``) and performs no
percent-encoding; the signer encodes the whole URL afterwards.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Tuple, Union

MAX_DEPTH = 5
ARRAY_LIMIT = 20

_CHILD = re.compile(r"\[([^\[\]]*)\]")

Segment = Tuple[str, bool]


class _Node(dict):
    """Intermediate container; ``array`` nodes are keyed by integer index."""

    def __init__(self, array: bool = False):
        super().__init__()
        self.array = array

    def demote(self) -> None:
        """Turn an array node into an object node keyed by string indices."""
        if not self.array:
            return
        items = list(self.items())
        self.clear()
        for index, value in items:
            self[str(index)] = value
        self.array = False


def split_key(key: str, depth: int = MAX_DEPTH) -> List[Segment]:
    """Split ``a[b][c]`` into ``[("a", False), ("b", True), ("c", True)]``.

    Children beyond ``depth`` are kept as one literal segment.
    """
    first = _CHILD.search(key)
    parent = key[: first.start()] if first else key

    segments: List[Segment] = []
    if parent:
        segments.append((parent, False))
    if not first:
        return segments

    position = first.start()
    count = 0
    while count < depth:
        match = _CHILD.match(key, position)
        if not match:
            break
        segments.append((match.group(1), True))
        position = match.end()
        count += 1

    if position < len(key):
        segments.append((key[position:], True))
    return segments


def _is_append(segment: Segment) -> bool:
    name, bracketed = segment
    return bracketed and name == ""


def _array_index(segment: Segment) -> Union[int, None]:
    name, bracketed = segment
    if not bracketed or not name.isdigit() or str(int(name)) != name:
        return None
    index = int(name)
    return index if index <= ARRAY_LIMIT else None


def _is_array_segment(segment: Segment) -> bool:
    return _is_append(segment) or _array_index(segment) is not None


def _slot(node: _Node, segment: Segment):
    if _is_append(segment):
        numeric = [k for k in node if isinstance(k, int) or (isinstance(k, str) and k.isdigit())]
        next_index = max((int(k) for k in numeric), default=-1) + 1
        return next_index if node.array else str(next_index)

    index = _array_index(segment)
    if index is not None:
        return index if node.array else str(index)

    node.demote()
    return segment[0]


def _store(node: _Node, key, value: Any) -> None:
    if key not in node:
        node[key] = value
        return

    existing = node[key]
    if isinstance(existing, _Node):
        if existing.array:
            existing[_slot(existing, ("", True))] = value
        return
    if isinstance(existing, list):
        existing.append(value)
    else:
        node[key] = [existing, value]


def _assign(root: _Node, segments: List[Segment], value: Any) -> None:
    node = root
    for position, segment in enumerate(segments):
        key = _slot(node, segment)
        if position == len(segments) - 1:
            _store(node, key, value)
            return

        child = node.get(key)
        if not isinstance(child, _Node):
            child = _Node(array=_is_array_segment(segments[position + 1]))
            node[key] = child
        node = child


def _finalize(value: Any) -> Any:
    if isinstance(value, _Node):
        if value.array:
            return [_finalize(value[index]) for index in sorted(value)]
        return {key: _finalize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_finalize(item) for item in value]
    return value


def parse_nested(pairs: Iterable[Tuple[str, str]], depth: int = MAX_DEPTH) -> Dict[str, Any]:
    """Build a nested structure from decoded ``(key, value)`` pairs, in order."""
    root = _Node()
    for key, value in pairs:
        segments = split_key(key, depth)
        if not segments:
            continue
        _assign(root, segments, value)
    return _finalize(root)


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def _walk(prefix: str, value: Any, out: List[str]) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            _walk(f"{prefix}[{key}]", item, out)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _walk(f"{prefix}[{index}]", item, out)
    else:
        out.append(f"{prefix}={_scalar(value)}")


def stringify(params: Dict[str, Any]) -> str:
    """Serialize a nested structure without escaping reserved characters."""
    out: List[str] = []
    for key, value in params.items():
        _walk(str(key), value, out)
    return "&".join(out)
