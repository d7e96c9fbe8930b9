"""
Label value escaping for PromQL string literals.

Every resource-identifying value (namespace, pod name, node name) is passed
through escape_label_value() before it is interpolated into a query.
"""

from __future__ import annotations


def escape_label_value(value: str) -> str:
    """Escape backslashes and double quotes for a double-quoted label literal."""
    # Backslashes first, so the quote escapes are not doubled.
    return value.replace("\\", "\\\\").replace('"', '\\"')


def unescape_label_value(value: str) -> str:
    """Inverse of escape_label_value()."""
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, None)
            if nxt is None:
                out.append(ch)
            else:
                out.append(nxt)
        else:
            out.append(ch)
    return "".join(out)


def label_matcher(name: str, value: str, op: str = "=") -> str:
    """Render a single `name<op>"value"` matcher with the value escaped."""
    return f'{name}{op}"{escape_label_value(value)}"'
