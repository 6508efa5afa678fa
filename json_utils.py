"""
Optimized JSON utilities using orjson for the Z.AI reasoning transformer
=======================================================================

Provides a high-performance JSON interface using orjson while keeping the
standard json library calling conventions. Adds ``safe_dumps`` for the
diagnostic trace, which must never fail on circular or exotic payloads.
"""

import orjson
from typing import Any, Optional


CIRCULAR_MARKER = "[Circular Reference]"


def dumps(obj: Any, ensure_ascii: bool = True, indent: Optional[int] = None, default: callable = None) -> str:
    """
    Serialize obj to JSON string using orjson (optimized)

    Args:
        obj: Object to serialize
        ensure_ascii: Kept for json-module compatibility (orjson always emits UTF-8)
        indent: Indentation level for pretty printing (orjson only supports 2)
        default: Callable for objects that cannot be serialized (e.g., default=str)

    Returns:
        JSON string

    Note:
        orjson.dumps returns bytes, this function returns str for compatibility
    """
    option = orjson.OPT_SERIALIZE_UUID

    if indent is not None:
        option |= orjson.OPT_INDENT_2

    if not ensure_ascii:
        option |= orjson.OPT_NON_STR_KEYS

    return orjson.dumps(obj, default=default, option=option).decode('utf-8')


def loads(s: Any) -> Any:
    """
    Deserialize JSON string (or bytes) to Python object using orjson

    Args:
        s: JSON string to deserialize

    Returns:
        Python object
    """
    return orjson.loads(s)


def _break_cycles(obj: Any, max_depth: int, _stack: Optional[set] = None, _depth: int = 0) -> Any:
    """Return a copy of ``obj`` with circular references and deep nesting replaced by markers."""
    if _stack is None:
        _stack = set()

    if isinstance(obj, (dict, list, tuple)):
        marker = id(obj)
        if marker in _stack:
            return CIRCULAR_MARKER
        if _depth >= max_depth:
            return f"[{type(obj).__name__}]"
        _stack.add(marker)
        try:
            if isinstance(obj, dict):
                return {
                    str(key): _break_cycles(value, max_depth, _stack, _depth + 1)
                    for key, value in obj.items()
                }
            return [_break_cycles(item, max_depth, _stack, _depth + 1) for item in obj]
        finally:
            _stack.discard(marker)

    return obj


def safe_dumps(obj: Any, max_depth: int = 8, indent: str = "") -> str:
    """
    Serialize anything for the diagnostic log without ever raising.

    Circular references become ``[Circular Reference]``, containers nested
    deeper than ``max_depth`` become ``[dict]``/``[list]``, and values orjson
    cannot handle fall back to ``str()``. When ``indent`` is given, every line
    after the first is prefixed with it so the dump lines up under its label.

    Returns:
        Pretty JSON text, ``"undefined"`` for None, or a serialization error marker
    """
    if obj is None:
        return "undefined"

    try:
        text = dumps(_break_cycles(obj, max_depth), indent=2, default=str)
    except Exception as exc:
        return f"[Serialization Error: {exc}]"

    if indent:
        lines = text.split("\n")
        return "\n".join([lines[0]] + [indent + line for line in lines[1:]])
    return text


# Provide compatibility constants
JSONDecodeError = orjson.JSONDecodeError
