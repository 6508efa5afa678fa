"""
Request mutator.

Builds the outbound chat-completion body from the client request: real
``max_tokens`` limit, forced sampling parameters, the resolved reasoning
fields, cleaned user messages and the optional reasoning instruction. The
caller's request is never modified; unchanged messages are shared with it.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from config import (
    STANDARD_REASONING_INSTRUCTION,
    ULTRATHINK_REASONING_INSTRUCTION,
    GlobalOverrides,
)
from message_utils import is_user_message, prefix_message_text, strip_message_tags
from model_catalog import UNKNOWN_MODEL_NAME, ModelCatalog, ModelConfig
from models import MutationResult, ReasoningDecision, ReasoningSource
from reasoning_formatters import ReasoningFormatter, build_formatter_registry
from reasoning_resolver import ReasoningResolver
from signal_scanner import SignalScanner, find_enhancement_target

logger = logging.getLogger(__name__)


class RequestMutator:
    """Pure, synchronous request rewriting. Safe to share across concurrent requests."""

    def __init__(
        self,
        catalog: Optional[ModelCatalog] = None,
        overrides: Optional[GlobalOverrides] = None,
        scanner: Optional[SignalScanner] = None,
        resolver: Optional[ReasoningResolver] = None,
        formatters: Optional[Mapping[str, ReasoningFormatter]] = None,
    ):
        self.catalog = catalog or ModelCatalog()
        self.overrides = overrides or GlobalOverrides()
        self.scanner = scanner or SignalScanner()
        self.resolver = resolver or ReasoningResolver(override_reasoning=self.overrides.reasoning)
        self.formatters = dict(formatters) if formatters is not None else build_formatter_registry()

    def mutate(self, request: Any) -> MutationResult:
        source: Dict[str, Any] = dict(request) if isinstance(request, Mapping) else {}
        body = dict(source)

        model_name = source.get("model") or UNKNOWN_MODEL_NAME
        if not isinstance(model_name, str):
            model_name = UNKNOWN_MODEL_NAME
        model_config = self.catalog.get(model_name)

        messages = source.get("messages")
        signals = self.scanner.scan(messages)
        decision = self.resolver.resolve(signals, model_config)

        body["max_tokens"] = (
            self.overrides.max_tokens if self.overrides.max_tokens is not None else model_config.max_tokens
        )

        new_messages: Optional[List[Any]] = None
        stripped = []
        if isinstance(messages, list):
            for index, message in enumerate(messages):
                if not is_user_message(message):
                    continue
                cleaned = strip_message_tags(message)
                if cleaned is None:
                    continue
                if new_messages is None:
                    new_messages = list(messages)
                new_messages[index] = cleaned
                stripped.append(index)

        reasoning_source, thinking_applied = self._apply_reasoning(
            body, source, decision, model_config, model_name
        )

        temperature = (
            self.overrides.temperature if self.overrides.temperature is not None else model_config.temperature
        )
        if temperature is not None:
            body["temperature"] = temperature

        top_p = self.overrides.top_p if self.overrides.top_p is not None else model_config.top_p
        if top_p is not None:
            body["top_p"] = top_p

        body["do_sample"] = True

        keyword_detection = (
            self.overrides.keyword_detection
            if self.overrides.keyword_detection is not None
            else model_config.keyword_detection
        )

        enhanced_index = None
        if isinstance(messages, list) and decision.enabled and (
            signals.ultrathink_detected or (signals.keywords_detected and keyword_detection)
        ):
            working = new_messages if new_messages is not None else messages
            # Reminder check runs on the text as the user sent it
            target = find_enhancement_target(messages)
            if target is not None:
                instruction = (
                    ULTRATHINK_REASONING_INSTRUCTION
                    if signals.ultrathink_detected
                    else STANDARD_REASONING_INSTRUCTION
                )
                enhanced = prefix_message_text(working[target], instruction)
                if enhanced is not None:
                    if new_messages is None:
                        new_messages = list(messages)
                    new_messages[target] = enhanced
                    enhanced_index = target

        if new_messages is not None:
            body["messages"] = new_messages

        logger.debug(
            "Model %s: reasoning level %s (%s) enabled=%s effort=%s",
            model_name, decision.level, decision.rule, decision.enabled, decision.effort.value,
        )

        return MutationResult(
            body=body,
            model_name=model_name,
            model_config=model_config,
            signals=signals,
            decision=decision,
            reasoning_source=reasoning_source,
            thinking_applied=thinking_applied,
            keyword_detection_enabled=bool(keyword_detection),
            stripped_indices=tuple(stripped),
            enhanced_index=enhanced_index,
        )

    def _apply_formatter(self, body: Dict[str, Any], model_config: ModelConfig, model_name: str) -> bool:
        formatter = self.formatters.get(model_config.provider)
        if formatter is None:
            return False
        formatter(body, model_name)
        return True

    def _apply_reasoning(
        self,
        body: Dict[str, Any],
        source: Dict[str, Any],
        decision: ReasoningDecision,
        model_config: ModelConfig,
        model_name: str,
    ):
        """Set the ``reasoning`` field. Returns (source, provider formatter applied)."""
        if decision.authoritative:
            body["reasoning"] = decision.as_reasoning_field()
            applied = decision.enabled and self._apply_formatter(body, model_config, model_name)
            return ReasoningSource.OVERRIDE, applied

        if decision.rule == "model_config":
            body["reasoning"] = {"enabled": True, "effort": decision.effort.value}
            return ReasoningSource.MODEL, self._apply_formatter(body, model_config, model_name)

        caller_reasoning = source.get("reasoning")
        # Empty containers still count as a field the caller sent
        if caller_reasoning is None or (
            not caller_reasoning and not isinstance(caller_reasoning, (Mapping, list))
        ):
            body.pop("reasoning", None)
            return ReasoningSource.OMITTED, False

        body["reasoning"] = caller_reasoning
        applied = False
        if isinstance(caller_reasoning, Mapping) and caller_reasoning.get("enabled") is True:
            applied = self._apply_formatter(body, model_config, model_name)
        return ReasoningSource.PASSTHROUGH, applied
