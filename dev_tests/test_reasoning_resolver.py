"""
Tests for reasoning_resolver.py - Six-level precedence chain.
"""

import pytest

from model_catalog import ModelCatalog
from models import ParsedSignals, ReasoningEffort, ThinkingMode
from reasoning_resolver import DEFAULT_RULES, ReasoningResolver, has_user_conditions

GLM = ModelCatalog().get("glm-4.6")
UNKNOWN = ModelCatalog().get("foo-bar")


class TestRuleOrder:
    def test_rules_cover_all_levels(self):
        assert [rule.level for rule in DEFAULT_RULES] == [0, 1, 2, 3, 4, 5]
        assert DEFAULT_RULES[-1].name == "client_passthrough"


class TestLevels:
    """Each precedence level decides when nothing above it applies."""

    def test_level_0_force_beats_everything(self):
        """
        Given: forcePermanentThinking with <Thinking:Off> and a False override
        When: The decision is resolved
        Then: Reasoning is enabled at high effort by level 0
        """
        signals = ParsedSignals(thinking_tag=ThinkingMode.OFF, effort_tag=ReasoningEffort.LOW)
        decision = ReasoningResolver(force_permanent_thinking=True, override_reasoning=False).resolve(signals, UNKNOWN)

        assert decision.enabled is True
        assert decision.effort == ReasoningEffort.HIGH
        assert decision.level == 0
        assert decision.rule == "force_permanent_thinking"
        assert decision.authoritative is True

    def test_level_1_ultrathink_beats_tags(self):
        signals = ParsedSignals(ultrathink_detected=True, thinking_tag=ThinkingMode.OFF)
        decision = ReasoningResolver(override_reasoning=False).resolve(signals, GLM)

        assert decision.enabled is True
        assert decision.effort == ReasoningEffort.HIGH
        assert decision.level == 1

    def test_level_2_thinking_off_alone_disables(self):
        decision = ReasoningResolver().resolve(ParsedSignals(thinking_tag=ThinkingMode.OFF), GLM)
        assert decision.enabled is False
        assert decision.level == 2
        assert decision.authoritative is True

    def test_level_2_effort_outranks_thinking_off(self):
        signals = ParsedSignals(thinking_tag=ThinkingMode.OFF, effort_tag=ReasoningEffort.MEDIUM)
        decision = ReasoningResolver().resolve(signals, GLM)
        assert decision.enabled is True
        assert decision.effort == ReasoningEffort.MEDIUM

    def test_level_2_thinking_on_defaults_to_high(self):
        decision = ReasoningResolver().resolve(ParsedSignals(thinking_tag=ThinkingMode.ON), UNKNOWN)
        assert decision.enabled is True
        assert decision.effort == ReasoningEffort.HIGH

    def test_level_2_effort_alone_enables(self):
        decision = ReasoningResolver().resolve(ParsedSignals(effort_tag=ReasoningEffort.LOW), UNKNOWN)
        assert decision.enabled is True
        assert decision.effort == ReasoningEffort.LOW

    def test_level_2_tags_beat_global_override(self):
        decision = ReasoningResolver(override_reasoning=False).resolve(
            ParsedSignals(thinking_tag=ThinkingMode.ON), GLM
        )
        assert decision.enabled is True
        assert decision.level == 2

    @pytest.mark.parametrize("override", [True, False])
    def test_level_3_global_override(self, override):
        decision = ReasoningResolver(override_reasoning=override).resolve(ParsedSignals(), GLM)
        assert decision.enabled is override
        assert decision.effort == ReasoningEffort.HIGH
        assert decision.level == 3
        assert decision.authoritative is True

    def test_level_4_model_config(self):
        decision = ReasoningResolver().resolve(ParsedSignals(keywords_detected=True), GLM)
        assert decision.enabled is True
        assert decision.effort == ReasoningEffort.HIGH
        assert decision.level == 4
        assert decision.authoritative is False

    def test_level_5_passthrough(self):
        decision = ReasoningResolver().resolve(ParsedSignals(keywords_detected=True), UNKNOWN)
        assert decision.enabled is False
        assert decision.level == 5
        assert decision.rule == "client_passthrough"
        assert decision.authoritative is False


class TestUserConditions:
    @pytest.mark.parametrize(
        "signals,force,override,expected",
        [
            (ParsedSignals(), False, None, False),
            (ParsedSignals(keywords_detected=True), False, None, False),
            (ParsedSignals(), True, None, True),
            (ParsedSignals(ultrathink_detected=True), False, None, True),
            (ParsedSignals(thinking_tag=ThinkingMode.OFF), False, None, True),
            (ParsedSignals(effort_tag=ReasoningEffort.LOW), False, None, True),
            (ParsedSignals(), False, False, True),
        ],
    )
    def test_has_user_conditions(self, signals, force, override, expected):
        assert has_user_conditions(signals, force, override) is expected
        resolver = ReasoningResolver(force_permanent_thinking=force, override_reasoning=override)
        assert resolver.has_user_conditions(signals) is expected
        assert resolver.resolve(signals, GLM).authoritative is expected


class TestDecisionField:
    def test_enabled_field(self):
        decision = ReasoningResolver().resolve(ParsedSignals(effort_tag=ReasoningEffort.MEDIUM), GLM)
        assert decision.as_reasoning_field() == {"enabled": True, "effort": "medium"}

    def test_disabled_field_has_no_effort(self):
        decision = ReasoningResolver().resolve(ParsedSignals(thinking_tag=ThinkingMode.OFF), GLM)
        assert decision.as_reasoning_field() == {"enabled": False}


class TestCustomRules:
    def test_missing_catch_all_raises(self):
        resolver = ReasoningResolver(rules=DEFAULT_RULES[:1])
        with pytest.raises(LookupError):
            resolver.resolve(ParsedSignals(), UNKNOWN)
