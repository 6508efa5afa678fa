"""
Data Models for the Z.AI reasoning transformer
==============================================

Enumerations and internal records shared by the scanner, the precedence
resolver, the request mutator and the diagnostic trace.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from model_catalog import ModelConfig


class ReasoningEffort(str, Enum):
    """Coarse reasoning intensity passed to the provider."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_tag(cls, value: str) -> "ReasoningEffort":
        return cls(value.lower())


class ThinkingMode(str, Enum):
    """Value of a ``<Thinking:...>`` user tag."""
    ON = "on"
    OFF = "off"

    @classmethod
    def from_tag(cls, value: str) -> "ThinkingMode":
        return cls(value.lower())


class ReasoningSource(str, Enum):
    """Where the outbound ``reasoning`` field came from."""
    OVERRIDE = "override"        # levels 0-3, decided by the user or operator
    MODEL = "model"              # level 4, model configuration
    PASSTHROUGH = "passthrough"  # level 5, the client's own field
    OMITTED = "omitted"          # level 5 with nothing to pass through


@dataclass(frozen=True)
class ParsedSignals:
    """Control signals found while scanning the user messages of one request."""

    ultrathink_detected: bool = False
    thinking_tag: Optional[ThinkingMode] = None
    effort_tag: Optional[ReasoningEffort] = None
    keywords_detected: bool = False

    # Trace-only details (message indices and the tag spelling used by the user)
    ultrathink_index: Optional[int] = None
    thinking_tag_index: Optional[int] = None
    effort_tag_index: Optional[int] = None
    keyword_index: Optional[int] = None
    thinking_tag_text: Optional[str] = None
    effort_tag_text: Optional[str] = None
    skipped_reminders: Tuple[int, ...] = ()

    @property
    def has_tags(self) -> bool:
        return self.thinking_tag is not None or self.effort_tag is not None


@dataclass(frozen=True)
class ReasoningDecision:
    """Single resolved reasoning decision for a request."""

    enabled: bool
    effort: ReasoningEffort
    level: int
    rule: str
    authoritative: bool
    detail: str = ""

    def as_reasoning_field(self) -> Dict[str, Any]:
        """Generic ``reasoning`` field for the outbound body."""
        if not self.enabled:
            return {"enabled": False}
        return {"enabled": True, "effort": self.effort.value}


@dataclass
class MutationResult:
    """Outbound body plus everything the diagnostic trace needs to explain it."""

    body: Dict[str, Any]
    model_name: str
    model_config: ModelConfig
    signals: ParsedSignals
    decision: ReasoningDecision
    reasoning_source: ReasoningSource
    thinking_applied: bool = False
    keyword_detection_enabled: bool = False
    stripped_indices: Tuple[int, ...] = ()
    enhanced_index: Optional[int] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def messages_replaced(self) -> bool:
        return bool(self.stripped_indices) or self.enhanced_index is not None
