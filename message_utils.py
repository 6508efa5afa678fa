"""
Message helpers shared by the scanner and the request mutator.

Chat messages follow the OpenAI shape: ``{"role": ..., "content": ...}`` where
content is either a plain string or a list of typed blocks. Anything else is
treated as empty text.
"""

import re
from typing import Any, Optional, Tuple

from config import SYSTEM_REMINDER_MARKER

# Control tags removed from user text before it reaches the model
CONTROL_TAG_PATTERN = re.compile(r"<(?:Effort:(?:Low|Medium|High)|Thinking:(?:On|Off))>", re.IGNORECASE)


def extract_message_text(message: Any) -> str:
    """
    Return the text of a chat message.

    String content is returned as is. For a list of blocks, the ``text`` of
    every ``{"type": "text"}`` block with a non-empty string value is joined
    with single spaces. Every other shape yields an empty string.
    """
    if not isinstance(message, dict):
        return ""

    content = message.get("content")
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts = [
            block["text"]
            for block in content
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
            and block["text"]
        ]
        return " ".join(parts)

    return ""


def is_user_message(message: Any) -> bool:
    return isinstance(message, dict) and message.get("role") == "user"


def is_system_reminder(text: str) -> bool:
    """True for messages injected by the client as ``<system-reminder>`` blocks."""
    return text.strip().startswith(SYSTEM_REMINDER_MARKER)


def strip_control_tags(text: str) -> Tuple[str, bool]:
    """
    Remove every ``<Effort:...>`` and ``<Thinking:...>`` tag from ``text``.

    Returns the cleaned text and whether anything was removed. Text is only
    trimmed when a tag was removed, so running it twice is a no-op.
    """
    cleaned, count = CONTROL_TAG_PATTERN.subn("", text)
    if not count:
        return text, False
    return cleaned.strip(), True


def strip_message_tags(message: Any) -> Optional[dict]:
    """
    Return a cleaned copy of ``message`` or None when it has no control tags.

    The input message and its blocks are never modified.
    """
    if not isinstance(message, dict):
        return None

    content = message.get("content")
    if isinstance(content, str):
        cleaned, changed = strip_control_tags(content)
        if not changed:
            return None
        return {**message, "content": cleaned}

    if isinstance(content, list):
        changed_any = False
        blocks = []
        for block in content:
            if (
                isinstance(block, dict)
                and block.get("type") == "text"
                and isinstance(block.get("text"), str)
            ):
                cleaned, changed = strip_control_tags(block["text"])
                if changed:
                    changed_any = True
                    block = {**block, "text": cleaned}
            blocks.append(block)
        if not changed_any:
            return None
        return {**message, "content": blocks}

    return None


def prefix_message_text(message: dict, prefix: str) -> Optional[dict]:
    """
    Return a copy of ``message`` with ``prefix`` prepended to its text.

    String content is prefixed directly; for a block list every non-empty
    text block is prefixed. Returns None when there is no text to prefix.
    """
    content = message.get("content")
    if isinstance(content, str):
        return {**message, "content": prefix + content}

    if isinstance(content, list):
        blocks = []
        prefixed = False
        for block in content:
            if (
                isinstance(block, dict)
                and block.get("type") == "text"
                and isinstance(block.get("text"), str)
                and block["text"]
            ):
                block = {**block, "text": prefix + block["text"]}
                prefixed = True
            blocks.append(block)
        if prefixed:
            return {**message, "content": blocks}

    return None
