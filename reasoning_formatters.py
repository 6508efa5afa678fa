"""
Provider-specific reasoning formatters.

A formatter receives the outbound body (already a copy owned by the mutator)
and the model name, and adds the structural field the provider expects when
reasoning is enabled.
"""

from typing import Any, Callable, Dict, Mapping, Optional

ReasoningFormatter = Callable[[Dict[str, Any], str], None]


def format_zai(body: Dict[str, Any], model_name: str) -> None:
    """Z.AI expects ``thinking: {type: "enabled"}`` next to the generic field."""
    body["thinking"] = {"type": "enabled"}


DEFAULT_REASONING_FORMATTERS: Dict[str, ReasoningFormatter] = {
    "Z.AI": format_zai,
}


def build_formatter_registry(
    formatters: Optional[Mapping[str, ReasoningFormatter]] = None,
) -> Dict[str, ReasoningFormatter]:
    """Registry used by a transformer instance. An injected mapping replaces the defaults."""
    if formatters is None:
        return dict(DEFAULT_REASONING_FORMATTERS)
    return dict(formatters)
