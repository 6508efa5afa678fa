"""
Z.AI reasoning transformer
==========================

Entry points used by the host router:

- ``ReasoningTransformer`` (``zai``): rewrites every outbound chat request
  with the real output limit, forced sampling parameters, the resolved
  reasoning fields and cleaned user messages.
- ``DebugReasoningTransformer`` (``zai-debug``): same decisions, plus a full
  trace of every stage in the session log and a background preview of the
  provider's streaming response.

Both builds share the same pure pipeline (scanner -> resolver -> mutator); the
debug build only reads the ``MutationResult`` it produces.
"""

import asyncio
import hashlib
import logging
import weakref
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import json_utils as json
from config import TransformerOptions
from debug_logger import DebugLogger
from logging_utils import BANNER_BOTTOM, Stage, stage_banner
from message_utils import extract_message_text, is_system_reminder, is_user_message
from model_catalog import ModelCatalog, ModelConfig
from models import MutationResult, ReasoningSource
from reasoning_formatters import ReasoningFormatter, build_formatter_registry
from reasoning_resolver import ReasoningResolver
from request_mutator import RequestMutator
from response_preview import (
    PreviewClone,
    ResponsePreviewer,
    clone_response,
    describe_response,
    is_response_object,
)
from signal_scanner import SignalScanner

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_CHARS = 50
ENHANCED_PREVIEW_CHARS = 100
MAX_LISTED_TOOLS = 10

KNOWN_INPUT_FIELDS = (
    "model", "max_tokens", "temperature", "stream", "messages",
    "tools", "tool_choice", "reasoning",
)
KNOWN_OUTPUT_FIELDS = (
    "model", "max_tokens", "temperature", "top_p", "do_sample",
    "thinking", "stream", "messages", "tools", "tool_choice",
)


class ReasoningTransformer:
    """Production build: request rewriting without diagnostics."""

    name = "zai"

    def __init__(
        self,
        options: Any = None,
        model_configurations: Optional[Mapping[str, Any]] = None,
        reasoning_formatters: Optional[Mapping[str, ReasoningFormatter]] = None,
    ):
        self.options = TransformerOptions.coerce(options)
        self.global_overrides = self.options.global_overrides()
        self.catalog = ModelCatalog(model_configurations)
        self.reasoning_formatters = build_formatter_registry(reasoning_formatters)
        self.scanner = SignalScanner(self.options.keyword_list())
        self.resolver = ReasoningResolver(
            force_permanent_thinking=self.options.force_permanent_thinking,
            override_reasoning=self.global_overrides.reasoning,
        )
        self.mutator = RequestMutator(
            catalog=self.catalog,
            overrides=self.global_overrides,
            scanner=self.scanner,
            resolver=self.resolver,
            formatters=self.reasoning_formatters,
        )

    @property
    def keywords(self) -> List[str]:
        return list(self.scanner.keywords)

    def get_model_configuration(self, model_name: Optional[str]) -> ModelConfig:
        return self.catalog.get(model_name)

    async def transform_request_in(
        self,
        request: Any,
        provider: Any = None,
        context: Any = None,
    ) -> Dict[str, Any]:
        """Return the optimized request body for the provider."""
        return self.mutator.mutate(request).body

    async def transform_response_out(self, response: Any) -> Any:
        """Responses are returned unmodified."""
        return response


# ----------------------------------------------------------------------
# Trace helpers
# ----------------------------------------------------------------------

def _display(value: Any) -> str:
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _field(obj: Any, *names: str) -> Any:
    """Read the first present attribute or key among ``names``."""
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    return None


def _as_mapping(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "__dict__"):
        return {key: value for key, value in vars(obj).items() if not key.startswith("_")}
    return {}


def _transformer_names(use: Any) -> List[str]:
    if isinstance(use, (list, tuple)):
        names = []
        for entry in use:
            if isinstance(entry, str):
                names.append(entry)
            else:
                names.append(_field(entry, "name") or "unknown")
        return names
    return [use]


def _preview(text: str, limit: int, newline: str = " ") -> str:
    preview = text[:limit].replace("\n", newline)
    return f"{preview}..." if len(text) > limit else preview


def _message_lines(messages: Any) -> List[str]:
    if not isinstance(messages, list) or not messages:
        return ["   messages: undefined"]

    lines = [f"   messages: {len(messages)} messages"]
    for index, message in enumerate(messages):
        role = _field(message, "role") or "unknown"
        text = extract_message_text(message)
        lines.append(f'    [{index}] {role}: {len(text)} chars - "{_preview(text, MESSAGE_PREVIEW_CHARS)}"')
    return lines


def _tool_lines(tools: Any) -> List[str]:
    if not isinstance(tools, list):
        return ["   tools: undefined"]

    names = []
    for index, tool in enumerate(tools):
        function = _field(tool, "function")
        name = _field(function, "name") if function is not None else None
        names.append(name or _field(tool, "name") or f"tool_{index}")

    listed = ", ".join(str(name) for name in names[:MAX_LISTED_TOOLS])
    if len(names) > MAX_LISTED_TOOLS:
        listed += f", ... +{len(names) - MAX_LISTED_TOOLS} more"
    return [f"   tools: {len(tools)} tools", f"    └─ [{listed}]"]


def message_hash(text: str) -> str:
    """Short fingerprint used to identify a message in the trace."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:8].upper()


class DebugReasoningTransformer(ReasoningTransformer):
    """Diagnostic build: same decisions as ``zai``, fully traced to the session log."""

    name = "zai-debug"

    def __init__(
        self,
        options: Any = None,
        model_configurations: Optional[Mapping[str, Any]] = None,
        reasoning_formatters: Optional[Mapping[str, ReasoningFormatter]] = None,
        debug_logger: Optional[DebugLogger] = None,
    ):
        super().__init__(options, model_configurations, reasoning_formatters)
        self.debug_logger = debug_logger or DebugLogger(
            log_directory=self.options.log_directory,
            max_log_size=self.options.max_log_size,
        )
        self.previewer = ResponsePreviewer()
        self._processed_responses: "weakref.WeakSet[Any]" = weakref.WeakSet()
        self._preview_tasks: Set[asyncio.Task] = set()

        self._log("[START] Z.ai Transformer (Debug) initialized")
        self._log(f"[CONFIG] Log file: {self.debug_logger.log_file}")
        self._log(
            f"[CONFIG] Maximum size per file: {self.debug_logger.max_log_size / 1024 / 1024:.1f} MB"
        )

    def _log(self, message: str = "") -> None:
        self.debug_logger.log(message)

    def _log_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.debug_logger.log(line)

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    async def transform_request_in(
        self,
        request: Any,
        provider: Any = None,
        context: Any = None,
    ) -> Dict[str, Any]:
        request_id = self.debug_logger.next_request_id()
        source = request if isinstance(request, Mapping) else {}

        self._log()
        self._log_lines(stage_banner(Stage.REQUEST_INPUT, request_id))
        self._trace_provider(provider)
        self._trace_context(context)
        self._trace_input(source)

        result = self.mutator.mutate(request)

        self._trace_max_tokens(source, result)
        self._trace_tags(result)
        self._trace_reasoning(result)
        self._trace_cleanup(source, result)
        self._trace_reasoning_field(source, result)
        self._trace_keywords(source, result)
        self._log(BANNER_BOTTOM)

        self._log()
        self._log()
        self._log_lines(stage_banner(Stage.REQUEST_OUTPUT, request_id))
        self._trace_output(result.body)
        self._log(BANNER_BOTTOM)
        self._log()

        self.debug_logger.flush()
        return result.body

    def _trace_provider(self, provider: Any) -> None:
        self._log()
        self._log("   [PROVIDER] LLM destination information:")
        if provider is None:
            self._log("    [NOT PROVIDED]")
            return

        self._log(f'   name: "{_display(_field(provider, "name"))}"')
        self._log(f'   baseUrl: "{_display(_field(provider, "baseUrl", "base_url", "api_base_url"))}"')
        self._log(f"   models: {json.safe_dumps(_field(provider, 'models'), indent='   ')}")

        transformer = _field(provider, "transformer")
        use = _field(transformer, "use") if transformer is not None else None
        if use:
            self._log(f"   transformer: {json.safe_dumps(_transformer_names(use), indent='   ')}")

    def _trace_context(self, context: Any) -> None:
        self._log()
        self._log("   [CONTEXT] HTTP request from client:")
        values = _as_mapping(context) if context is not None else {}
        if not values:
            self._log("   [EMPTY]")
            return

        for key, value in values.items():
            if isinstance(value, (str, int, float, bool)):
                self._log(f"   {key}: {_display(value)}")
            elif value is not None:
                self._log(f"   {key}: [{type(value).__name__}]")

    def _trace_input(self, request: Mapping[str, Any]) -> None:
        self._log()
        self._log("   [INPUT] Request received from client:")
        self._log(f'   model: "{_display(request.get("model"))}"')
        self._log(f"   max_tokens: {_display(request.get('max_tokens'))}")
        self._log(f"   stream: {_display(request.get('stream'))}")
        self._log_lines(_message_lines(request.get("messages")))
        self._log_lines(_tool_lines(request.get("tools")))
        self._log(f"   tool_choice: {_display(request.get('tool_choice'))}")
        self._log(f"   reasoning: {json.safe_dumps(request.get('reasoning'), indent='   ')}")
        self._log()

        extras = [key for key in request if key not in KNOWN_INPUT_FIELDS]
        if extras:
            self._log(f"   [EXTRAS]: {json.safe_dumps(extras, indent='   ')}")

    def _trace_max_tokens(self, request: Mapping[str, Any], result: MutationResult) -> None:
        final = result.body.get("max_tokens")
        if self.global_overrides.max_tokens is not None:
            self._log(f"   [GLOBAL OVERRIDE] max_tokens: {final} (overrides model default)")
        elif request.get("max_tokens") != result.model_config.max_tokens:
            self._log(
                f"   [OVERRIDE] Original max_tokens: {_display(request.get('max_tokens'))} -> Override to {final}"
            )

    def _trace_tags(self, result: MutationResult) -> None:
        signals = result.signals
        self._log()
        self._log("   [CUSTOM TAGS] Searching for tags in user messages...")

        for index in signals.skipped_reminders:
            self._log(f"   [SYSTEM] Message {index} ignored (system-reminder)")
        if signals.ultrathink_detected:
            self._log(
                f"   [TAG DETECTED] Ultrathink found in message {signals.ultrathink_index} (will be KEPT in message)"
            )
        if signals.thinking_tag is not None:
            self._log(f"   [TAG DETECTED] {signals.thinking_tag_text} in message {signals.thinking_tag_index}")
        if signals.effort_tag is not None:
            self._log(f"   [TAG DETECTED] {signals.effort_tag_text} in message {signals.effort_tag_index}")

        if not signals.ultrathink_detected and not signals.has_tags:
            self._log("   [INFO] No custom tags detected in messages")

    def _trace_reasoning(self, result: MutationResult) -> None:
        decision = result.decision
        self._log()
        self._log("   [REASONING] Determining effective configuration...")

        if decision.level == 5:
            self._log(
                f"   [DEFAULT] No tags, no global override, model config "
                f"reasoning={_display(result.model_config.reasoning)} -> reasoning=false"
            )
        else:
            self._log(
                f"   [PRIORITY {decision.level}] {decision.detail} -> "
                f"reasoning={_display(decision.enabled)}, effort={decision.effort.value}"
            )
            if decision.rule == "user_tags" and result.signals.effort_tag is None:
                self._log(f"   No Effort tag, using default: {decision.effort.value}")

        self._log(
            f"   [RESULT] Effective reasoning={_display(decision.enabled)}, effort level={decision.effort.value}"
        )

    def _trace_cleanup(self, request: Mapping[str, Any], result: MutationResult) -> None:
        self._log()
        self._log("   [CLEANUP] Removing tags from messages...")
        if not result.stripped_indices:
            self._log("   [INFO] No tags found to remove")
            return

        messages = request.get("messages")
        for index in result.stripped_indices:
            suffix = " (array content)" if isinstance(_field(messages[index], "content"), list) else ""
            self._log(f"   Message {index}: Tags removed{suffix}")
        self._log(f"   [COMPLETED] {len(result.stripped_indices)} message(s) modified")

    def _trace_reasoning_field(self, request: Mapping[str, Any], result: MutationResult) -> None:
        body = result.body
        provider = result.model_config.provider
        self._log()
        self._log("   [REASONING FIELD] Adding reasoning field to request...")

        if result.reasoning_source == ReasoningSource.OVERRIDE:
            self._log("   [INFO] User conditions detected (Levels 0-3), overriding reasoning")
        elif result.reasoning_source == ReasoningSource.MODEL:
            self._log("   [INFO] No user conditions, using model configuration (Level 4)")
        elif result.reasoning_source == ReasoningSource.PASSTHROUGH:
            self._log("   [INFO] No user conditions and no model config, passing client reasoning (Level 5)")
            self._log(f"   reasoning = {json.safe_dumps(request.get('reasoning'))}")
        else:
            self._log("   [INFO] No conditions and no original reasoning (Level 5), field not added")
            return

        reasoning = body.get("reasoning")
        if result.reasoning_source != ReasoningSource.PASSTHROUGH and isinstance(reasoning, Mapping):
            self._log(f"   reasoning.enabled = {_display(reasoning.get('enabled'))}")
            if "effort" in reasoning:
                self._log(f'   reasoning.effort = "{reasoning["effort"]}"')

        reasoning_enabled = isinstance(reasoning, Mapping) and reasoning.get("enabled") is True
        if result.thinking_applied:
            self._log(f"   [THINKING] {provider} format applied")
        elif reasoning_enabled:
            self._log(f"   [OMISSION] thinking NOT added (no formatter for {provider})")

    def _trace_keywords(self, request: Mapping[str, Any], result: MutationResult) -> None:
        signals = result.signals
        self._log()
        self._log("   [KEYWORDS] Checking for analytical keywords in ALL user messages...")

        messages = request.get("messages")
        if isinstance(messages, list):
            for index, message in enumerate(messages):
                if not is_user_message(message):
                    continue
                text = extract_message_text(message)
                if is_system_reminder(text):
                    self._log(f"   [MESSAGE {index}] system-reminder ignored")
                    continue
                preview = _preview(text, MESSAGE_PREVIEW_CHARS, newline="↕")
                if index == signals.keyword_index:
                    matched = ", ".join(self.scanner.matching_keywords(text))
                    self._log(f'   [MESSAGE {index}] USER - Keywords DETECTED ({matched}): "{preview}"')
                    break
                self._log(f'   [MESSAGE {index}] USER - No keywords: "{preview}"')

        if signals.keywords_detected:
            self._log(f"   [RESULT] Keywords detected in message {signals.keyword_index}")
        else:
            self._log("   [RESULT] No keywords detected in any message")

        if not (signals.keywords_detected or signals.ultrathink_detected) or not isinstance(messages, list):
            return

        scope = " (GLOBAL)" if self.global_overrides.keyword_detection is not None else ""
        self._log(
            f"   [CONFIGURATION] reasoning={_display(result.decision.enabled)} | "
            f"keywordDetection={_display(result.keyword_detection_enabled)}{scope}"
        )

        if result.enhanced_index is not None:
            index = result.enhanced_index
            text = extract_message_text(messages[index])
            trigger = "ultrathink" if signals.ultrathink_detected else "keywords"
            self._log(f"   [ENHANCEMENT] Conditions met ({trigger}), enhancing last valid message...")
            self._log(f"   [LAST USER MESSAGE] Message {index} - Hash: {message_hash(text)}")
            self._log(f'   "{_preview(text, ENHANCED_PREVIEW_CHARS, newline="↕")}"')
            self._log("   [COMPLETED] Reasoning instructions added to the last message prompt")
        elif not result.decision.enabled:
            self._log("   [SKIPPED] NOT enhancing prompt: reasoning disabled")
        elif not result.keyword_detection_enabled and not signals.ultrathink_detected:
            self._log("   [SKIPPED] NOT enhancing prompt: keywordDetection=false")
        else:
            self._log("   [SKIPPED] NOT enhancing prompt: no user message with text to enhance")

    def _trace_output(self, body: Mapping[str, Any]) -> None:
        self._log()
        self._log("   [OUTPUT] Body to be sent to provider:")
        self._log(f'   model: "{_display(body.get("model"))}"')
        self._log(f"   max_tokens: {_display(body.get('max_tokens'))}")
        self._log(f"   temperature: {_display(body.get('temperature'))}")
        self._log(f"   top_p: {_display(body.get('top_p'))}")
        self._log(f"   do_sample: {_display(body.get('do_sample'))}")
        self._log(f"   stream: {_display(body.get('stream'))}")
        self._log_lines(_message_lines(body.get("messages")))
        self._log_lines(_tool_lines(body.get("tools")))
        self._log(f"   tool_choice: {_display(body.get('tool_choice'))}")
        self._log(f"   thinking: {json.safe_dumps(body.get('thinking'), indent='   ')}")

        extras = [key for key in body if key not in KNOWN_OUTPUT_FIELDS]
        if extras:
            self._log(f"   [EXTRAS]: {', '.join(extras)}")
            for key in extras:
                value = body[key]
                if isinstance(value, (dict, list, tuple)):
                    self._log(f"    └─ {key}: {json.safe_dumps(value, max_depth=2, indent='       ')}")
                elif value is not None:
                    self._log(f"    └─ {key}: {_display(value)}")

    # ------------------------------------------------------------------
    # Response
    # ------------------------------------------------------------------

    def _mark_processed(self, response: Any) -> bool:
        """Record ``response``; False when it was already previewed."""
        try:
            if response in self._processed_responses:
                return False
            self._processed_responses.add(response)
        except TypeError:
            # Not weak-referenceable; preview it every time
            pass
        return True

    async def transform_response_out(self, response: Any) -> Any:
        # The router calls this again for every parsed chunk; those pass through silently
        if not is_response_object(response) or not self._mark_processed(response):
            return response

        request_id = self.debug_logger.current_request_id
        response_id = self.debug_logger.next_response_id()

        self._log()
        self._log_lines(stage_banner(Stage.RESPONSE, request_id))
        self._log()
        self._log(f"   [INFO] Response for Request #{request_id} | Response Object ID: {response_id}")
        self._log()
        self._log("   [RESPONSE OBJECT DETECTED]")
        self._log_lines(describe_response(response))

        clone = clone_response(response)
        if clone is None:
            self._log("   [INFO] Response body already consumed, preview skipped")
            self.debug_logger.flush()
            return response

        self._log()
        self._log_lines(stage_banner(Stage.STREAMING))
        self._log()

        task = asyncio.create_task(self._run_preview(clone))
        self._preview_tasks.add(task)
        task.add_done_callback(self._preview_finished)
        return response

    async def _run_preview(self, clone: PreviewClone) -> None:
        try:
            lines = await self.previewer.preview(clone)
        except Exception as exc:
            self._log(f"   [ERROR] Reading stream: {exc}")
        else:
            self._log_lines(lines)
        self._log(BANNER_BOTTOM)
        self._log()
        self.debug_logger.flush()

    def _preview_finished(self, task: asyncio.Task) -> None:
        self._preview_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Response preview task failed: %s", exc)

    async def drain(self) -> None:
        """Wait for pending response previews and write the buffered log."""
        while self._preview_tasks:
            await asyncio.gather(*list(self._preview_tasks), return_exceptions=True)
        await asyncio.to_thread(self.debug_logger.flush, True)

    def close(self) -> None:
        self.debug_logger.close()
