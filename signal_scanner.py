"""
Tag and keyword scanner.

Walks the user messages of a request and reports the in-band control signals:
the ``ultrathink`` keyword, ``<Thinking:On|Off>`` and ``<Effort:Low|Medium|High>``
tags, and analytical keywords that trigger prompt augmentation.
"""

import re
from typing import Any, Dict, Iterable, List, Optional

from config import DEFAULT_KEYWORDS
from message_utils import extract_message_text, is_system_reminder, is_user_message
from models import ParsedSignals, ReasoningEffort, ThinkingMode

ULTRATHINK_PATTERN = re.compile(r"\bultrathink\b", re.IGNORECASE)
THINKING_TAG_PATTERN = re.compile(r"<Thinking:(On|Off)>", re.IGNORECASE)
EFFORT_TAG_PATTERN = re.compile(r"<Effort:(Low|Medium|High)>", re.IGNORECASE)


def normalize_keywords(keywords: Iterable[Any]) -> List[str]:
    """Lower-case keywords and drop empty or non-string entries."""
    normalized = []
    for keyword in keywords:
        if not isinstance(keyword, str):
            continue
        value = keyword.strip().lower()
        if value:
            normalized.append(value)
    return normalized


def find_enhancement_target(messages: Any) -> Optional[int]:
    """Index of the last user message that is not a system reminder."""
    if not isinstance(messages, list):
        return None
    for index in range(len(messages) - 1, -1, -1):
        message = messages[index]
        if not is_user_message(message):
            continue
        if is_system_reminder(extract_message_text(message)):
            continue
        return index
    return None


class SignalScanner:
    """Stateless scanner; a single instance can be shared across requests."""

    def __init__(self, keywords: Optional[Iterable[str]] = None):
        self.keywords = normalize_keywords(DEFAULT_KEYWORDS if keywords is None else keywords)

    def has_keywords(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.keywords)

    def matching_keywords(self, text: str) -> List[str]:
        lowered = text.lower()
        return [keyword for keyword in self.keywords if keyword in lowered]

    def scan(self, messages: Any) -> ParsedSignals:
        if not isinstance(messages, list):
            return ParsedSignals()

        found: Dict[str, Any] = {
            "ultrathink_detected": False,
            "keywords_detected": False,
        }
        skipped = []

        for index, message in enumerate(messages):
            if not is_user_message(message):
                continue

            text = extract_message_text(message)
            if is_system_reminder(text):
                skipped.append(index)
                continue

            if not found["ultrathink_detected"] and ULTRATHINK_PATTERN.search(text):
                found["ultrathink_detected"] = True
                found["ultrathink_index"] = index

            # Last message with a tag wins; within a message the first match counts
            thinking = THINKING_TAG_PATTERN.search(text)
            if thinking:
                found["thinking_tag"] = ThinkingMode.from_tag(thinking.group(1))
                found["thinking_tag_index"] = index
                found["thinking_tag_text"] = thinking.group(0)

            effort = EFFORT_TAG_PATTERN.search(text)
            if effort:
                found["effort_tag"] = ReasoningEffort.from_tag(effort.group(1))
                found["effort_tag_index"] = index
                found["effort_tag_text"] = effort.group(0)

            if not found["keywords_detected"] and self.has_keywords(text):
                found["keywords_detected"] = True
                found["keyword_index"] = index

        return ParsedSignals(skipped_reminders=tuple(skipped), **found)
