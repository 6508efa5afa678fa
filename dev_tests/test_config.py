"""
Tests for config.py - Transformer options, overrides and service settings.

Test Areas:
1. TransformerOptions parsing (snake_case, camelCase, validation)
2. Keyword list composition
3. Environment loading
4. Service Config
"""

import os

import pytest
from pydantic import ValidationError
from unittest.mock import patch

from config import (
    DEFAULT_KEYWORDS,
    DEFAULT_MAX_LOG_SIZE,
    Config,
    GlobalOverrides,
    TransformerOptions,
)


class TestTransformerOptions:
    """Tests for the constructor options record."""

    def test_defaults(self):
        """
        Given: No options
        When: TransformerOptions.coerce(None) is called
        Then: Every override defers and the log size is 10 MB
        """
        options = TransformerOptions.coerce(None)

        assert options.force_permanent_thinking is False
        assert options.override_max_tokens is None
        assert options.override_reasoning is None
        assert options.custom_keywords == []
        assert options.max_log_size == DEFAULT_MAX_LOG_SIZE

    def test_accepts_camel_case_router_keys(self):
        """
        Given: Options written the way router configuration files spell them
        When: They are coerced
        Then: The snake_case fields are populated
        """
        options = TransformerOptions.coerce({
            "forcePermanentThinking": True,
            "overrideMaxTokens": 0,
            "overrideTemperature": 0.2,
            "overrideTopP": 0.5,
            "overrideReasoning": False,
            "overrideKeywordDetection": True,
            "customKeywords": ["refactor"],
            "overrideKeywords": True,
            "maxLogSize": 2048,
        })

        assert options.force_permanent_thinking is True
        assert options.override_max_tokens == 0
        assert options.override_temperature == 0.2
        assert options.override_top_p == 0.5
        assert options.override_reasoning is False
        assert options.override_keyword_detection is True
        assert options.custom_keywords == ["refactor"]
        assert options.override_keywords is True
        assert options.max_log_size == 2048

    def test_accepts_snake_case_keys(self):
        options = TransformerOptions.coerce({"override_max_tokens": 4096})
        assert options.override_max_tokens == 4096

    def test_unknown_keys_are_ignored(self):
        options = TransformerOptions.coerce({"somethingElse": 1})
        assert options.force_permanent_thinking is False

    def test_existing_instance_is_returned(self):
        options = TransformerOptions(force_permanent_thinking=True)
        assert TransformerOptions.coerce(options) is options

    def test_invalid_type_raises(self):
        """
        Given: A non-numeric max token override
        When: Options are coerced
        Then: pydantic.ValidationError is raised at construction time
        """
        with pytest.raises(ValidationError):
            TransformerOptions.coerce({"overrideMaxTokens": "lots"})

    def test_log_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            TransformerOptions.coerce({"maxLogSize": 0})

    def test_global_overrides_keep_zero_and_false(self):
        """
        Given: Overrides set to 0 and False
        When: global_overrides() is built
        Then: They are kept as set values, not treated as missing
        """
        overrides = TransformerOptions.coerce({
            "overrideMaxTokens": 0,
            "overrideReasoning": False,
        }).global_overrides()

        assert isinstance(overrides, GlobalOverrides)
        assert overrides.max_tokens == 0
        assert overrides.reasoning is False
        assert overrides.temperature is None


class TestKeywordList:
    """Tests for keyword_list()."""

    def test_custom_keywords_extend_defaults(self):
        keywords = TransformerOptions.coerce({"customKeywords": ["refactor"]}).keyword_list()
        assert keywords[: len(DEFAULT_KEYWORDS)] == DEFAULT_KEYWORDS
        assert keywords[-1] == "refactor"

    def test_override_keywords_replaces_defaults(self):
        keywords = TransformerOptions.coerce({
            "customKeywords": ["refactor"],
            "overrideKeywords": True,
        }).keyword_list()
        assert keywords == ["refactor"]

    def test_ultrathink_is_not_a_keyword(self):
        assert "ultrathink" not in DEFAULT_KEYWORDS


class TestEnvironmentLoading:
    """Tests for TransformerOptions.from_environment()."""

    def test_reads_overrides(self, clean_env):
        """
        Given: ZAI_* variables in the environment
        When: from_environment() is called
        Then: Each variable lands in its option
        """
        env = {
            "ZAI_FORCE_PERMANENT_THINKING": "true",
            "ZAI_OVERRIDE_MAX_TOKENS": "8192",
            "ZAI_OVERRIDE_TEMPERATURE": "0.3",
            "ZAI_OVERRIDE_TOP_P": "0.8",
            "ZAI_OVERRIDE_REASONING": "off",
            "ZAI_OVERRIDE_KEYWORD_DETECTION": "0",
            "ZAI_CUSTOM_KEYWORDS": "refactor, , audit",
            "ZAI_OVERRIDE_KEYWORDS": "yes",
            "ZAI_TRANSFORMER_LOG_DIR": "/tmp/zai-logs",
            "ZAI_TRANSFORMER_MAX_LOG_SIZE": "1024",
        }
        with patch.dict(os.environ, env):
            options = TransformerOptions.from_environment()

        assert options.force_permanent_thinking is True
        assert options.override_max_tokens == 8192
        assert options.override_temperature == 0.3
        assert options.override_top_p == 0.8
        assert options.override_reasoning is False
        assert options.override_keyword_detection is False
        assert options.custom_keywords == ["refactor", "audit"]
        assert options.override_keywords is True
        assert options.log_directory == "/tmp/zai-logs"
        assert options.max_log_size == 1024

    def test_invalid_numbers_are_ignored(self, clean_env):
        with patch.dict(os.environ, {"ZAI_OVERRIDE_MAX_TOKENS": "many", "ZAI_OVERRIDE_TOP_P": "x"}):
            options = TransformerOptions.from_environment()

        assert options.override_max_tokens is None
        assert options.override_top_p is None

    def test_unrecognized_boolean_defers(self, clean_env):
        with patch.dict(os.environ, {"ZAI_OVERRIDE_REASONING": "maybe"}):
            options = TransformerOptions.from_environment()
        assert options.override_reasoning is None

    def test_environment_beats_defaults(self, clean_env):
        with patch.dict(os.environ, {"ZAI_OVERRIDE_MAX_TOKENS": "100"}):
            options = TransformerOptions.from_environment(override_max_tokens=5, override_top_p=0.1)
        assert options.override_max_tokens == 100
        assert options.override_top_p == 0.1


class TestServiceConfig:
    """Tests for the sidecar Config."""

    def test_defaults(self, clean_env):
        settings = Config()
        assert settings.APP_HOST == "127.0.0.1"
        assert settings.APP_PORT == 3457
        assert settings.DEBUG_TRANSFORMER is False
        assert settings.LOG_LEVEL == "INFO"

    def test_environment_overrides(self, clean_env):
        env = {
            "APP_HOST": "0.0.0.0",
            "APP_PORT": "9000",
            "LOG_LEVEL": "debug",
            "ZAI_TRANSFORMER_DEBUG": "1",
            "ZAI_OVERRIDE_REASONING": "true",
        }
        with patch.dict(os.environ, env):
            settings = Config()

        assert settings.APP_HOST == "0.0.0.0"
        assert settings.APP_PORT == 9000
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.DEBUG_TRANSFORMER is True
        assert settings.TRANSFORMER_OPTIONS.override_reasoning is True

    def test_invalid_port_keeps_default(self, clean_env):
        with patch.dict(os.environ, {"APP_PORT": "not-a-port"}):
            settings = Config()
        assert settings.APP_PORT == 3457
