"""Shared pytest fixtures for the Z.AI reasoning transformer tests."""

import pytest
from unittest.mock import patch
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


ZAI_ENV_VARS = [
    "APP_HOST", "APP_PORT", "APP_RELOAD", "LOG_LEVEL",
    "ZAI_TRANSFORMER_DEBUG", "ZAI_TRANSFORMER_LOG_DIR", "ZAI_TRANSFORMER_MAX_LOG_SIZE",
    "ZAI_FORCE_PERMANENT_THINKING", "ZAI_OVERRIDE_MAX_TOKENS", "ZAI_OVERRIDE_TEMPERATURE",
    "ZAI_OVERRIDE_TOP_P", "ZAI_OVERRIDE_REASONING", "ZAI_OVERRIDE_KEYWORD_DETECTION",
    "ZAI_CUSTOM_KEYWORDS", "ZAI_OVERRIDE_KEYWORDS",
]


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def clean_env():
    """Provide an environment without any transformer settings."""
    with patch.dict(os.environ, {}, clear=False):
        for key in ZAI_ENV_VARS:
            os.environ.pop(key, None)
        yield


# ============================================================================
# Request Fixtures
# ============================================================================

def user(content):
    return {"role": "user", "content": content}


def assistant(content):
    return {"role": "assistant", "content": content}


@pytest.fixture
def glm_request():
    """Plain request for glm-4.6 with one analytical user message."""
    return {
        "model": "glm-4.6",
        "max_tokens": 32000,
        "stream": True,
        "messages": [user("How many characters are in this string?")],
    }


@pytest.fixture
def reminder_message():
    return user("<system-reminder>\nThe user opened file main.py\n</system-reminder>")


@pytest.fixture
def zai_provider():
    return {
        "name": "zai",
        "baseUrl": "https://api.z.ai/api/coding/paas/v4/chat/completions",
        "models": ["glm-4.6", "glm-4.5"],
        "transformer": {"use": ["zai-debug", {"name": "maxtoken"}]},
    }


# ============================================================================
# Logger Fixtures
# ============================================================================

@pytest.fixture
def debug_logger(tmp_path):
    """Quiet debug logger writing into a temporary directory."""
    from debug_logger import DebugLogger

    instance = DebugLogger(log_directory=tmp_path, echo=False, session_timestamp="2025-01-01T00-00-00")
    yield instance
    instance.close()
