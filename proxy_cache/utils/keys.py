"""Cache key derivation for wrapped method calls.

The default scheme joins the method name and the stringified arguments with
``:``. It does not tag argument types, so ``1`` and ``"1"`` map to the same
key, and an argument that itself contains ``:`` can collide with a longer
argument list. Callers that need distinct keys for such inputs can opt into
:func:`make_typed_key`.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Sequence

SEPARATOR = ":"


def make_key(
    method: str, args: Sequence[Any], kwargs: Optional[Mapping[str, Any]] = None
) -> str:
    """Return the joined key for a call of `method` with `args`.

    Keyword arguments are appended as ``name=value`` in name order.
    """
    parts = [method, *(str(arg) for arg in args)]
    if kwargs:
        parts.extend(f"{name}={kwargs[name]}" for name in sorted(kwargs))
    return SEPARATOR.join(parts)


def _tagged(value: Any) -> list[str]:
    return [type(value).__qualname__, repr(value)]


def make_typed_key(
    method: str, args: Sequence[Any], kwargs: Optional[Mapping[str, Any]] = None
) -> str:
    """Return a key that keeps argument types and boundaries apart.

    Each argument is encoded as its type name and ``repr`` inside a JSON
    document, so neither type conflation nor separator characters can make two
    different calls share a key.
    """
    payload = [
        method,
        [_tagged(arg) for arg in args],
        {name: _tagged(value) for name, value in (kwargs or {}).items()},
    ]
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))
