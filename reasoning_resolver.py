"""
Reasoning precedence resolver.

Six precedence levels decide whether reasoning is enabled for a request and
at which effort. Each level is a ``ReasoningRule``; the resolver evaluates the
ordered rule list and returns the decision of the first rule that applies.

    0  force_permanent_thinking   operator option, always high effort
    1  ultrathink                 user keyword, always high effort
    2  user_tags                  <Thinking:On|Off> / <Effort:...>
    3  global_override            override_reasoning option
    4  model_config               model supports reasoning
    5  client_passthrough         caller's own reasoning field (if any)

Levels 0-3 are "user conditions": the mutator treats their decision as
authoritative and overrides the caller's reasoning field.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from model_catalog import ModelConfig
from models import ParsedSignals, ReasoningDecision, ReasoningEffort, ThinkingMode

AUTHORITATIVE_MAX_LEVEL = 3


@dataclass(frozen=True)
class ResolutionContext:
    signals: ParsedSignals
    model_config: ModelConfig
    force_permanent_thinking: bool
    override_reasoning: Optional[bool]


@dataclass(frozen=True)
class ReasoningRule:
    level: int
    name: str
    applies: Callable[[ResolutionContext], bool]
    decide: Callable[[ResolutionContext], Tuple[bool, ReasoningEffort, str]]


def _decide_user_tags(ctx: ResolutionContext) -> Tuple[bool, ReasoningEffort, str]:
    signals = ctx.signals
    effort = signals.effort_tag or ReasoningEffort.HIGH

    if signals.thinking_tag == ThinkingMode.OFF:
        if signals.effort_tag is not None:
            return True, effort, "Effort tag overrides <Thinking:Off>"
        return False, effort, "<Thinking:Off> disables reasoning"
    if signals.thinking_tag == ThinkingMode.ON:
        return True, effort, "<Thinking:On> enables reasoning"
    return True, effort, "Effort tag enables reasoning"


DEFAULT_RULES: Tuple[ReasoningRule, ...] = (
    ReasoningRule(
        level=0,
        name="force_permanent_thinking",
        applies=lambda ctx: ctx.force_permanent_thinking,
        decide=lambda ctx: (True, ReasoningEffort.HIGH, "forcePermanentThinking is enabled"),
    ),
    ReasoningRule(
        level=1,
        name="ultrathink",
        applies=lambda ctx: ctx.signals.ultrathink_detected,
        decide=lambda ctx: (True, ReasoningEffort.HIGH, "Ultrathink keyword detected"),
    ),
    ReasoningRule(
        level=2,
        name="user_tags",
        applies=lambda ctx: ctx.signals.has_tags,
        decide=_decide_user_tags,
    ),
    ReasoningRule(
        level=3,
        name="global_override",
        applies=lambda ctx: ctx.override_reasoning is not None,
        decide=lambda ctx: (
            bool(ctx.override_reasoning),
            ReasoningEffort.HIGH,
            f"Global override reasoning={ctx.override_reasoning}",
        ),
    ),
    ReasoningRule(
        level=4,
        name="model_config",
        applies=lambda ctx: ctx.model_config.reasoning,
        decide=lambda ctx: (True, ReasoningEffort.HIGH, "Model configuration enables reasoning"),
    ),
    ReasoningRule(
        level=5,
        name="client_passthrough",
        applies=lambda ctx: True,
        decide=lambda ctx: (False, ReasoningEffort.HIGH, "No conditions matched, caller's field passes through"),
    ),
)


def has_user_conditions(
    signals: ParsedSignals,
    force_permanent_thinking: bool,
    override_reasoning: Optional[bool],
) -> bool:
    return (
        force_permanent_thinking
        or signals.ultrathink_detected
        or signals.has_tags
        or override_reasoning is not None
    )


class ReasoningResolver:
    """Resolve the reasoning decision from signals, operator options and model config."""

    def __init__(
        self,
        force_permanent_thinking: bool = False,
        override_reasoning: Optional[bool] = None,
        rules: Tuple[ReasoningRule, ...] = DEFAULT_RULES,
    ):
        self.force_permanent_thinking = force_permanent_thinking
        self.override_reasoning = override_reasoning
        self.rules = tuple(sorted(rules, key=lambda rule: rule.level))

    def resolve(self, signals: ParsedSignals, model_config: ModelConfig) -> ReasoningDecision:
        ctx = ResolutionContext(
            signals=signals,
            model_config=model_config,
            force_permanent_thinking=self.force_permanent_thinking,
            override_reasoning=self.override_reasoning,
        )
        for rule in self.rules:
            if rule.applies(ctx):
                enabled, effort, detail = rule.decide(ctx)
                return ReasoningDecision(
                    enabled=enabled,
                    effort=effort,
                    level=rule.level,
                    rule=rule.name,
                    authoritative=rule.level <= AUTHORITATIVE_MAX_LEVEL,
                    detail=detail,
                )
        raise LookupError("No reasoning rule applied; the rule list must end with a catch-all rule")

    def has_user_conditions(self, signals: ParsedSignals) -> bool:
        return has_user_conditions(signals, self.force_permanent_thinking, self.override_reasoning)
