"""
Configuration for the Z.AI reasoning transformer
================================================

Transformer options (the record the host router passes to the constructor),
the global overrides derived from them, the keyword list and reasoning
instructions used for prompt augmentation, and the settings of the optional
HTTP sidecar. Values can be provided through environment variables (a local
.env file is honoured).
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from .env file
load_dotenv()

TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}
FALSY_ENV_VALUES = {"0", "false", "no", "off"}

DEFAULT_MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
DEFAULT_LOG_DIRECTORY = str(Path.home() / ".claude-code-router" / "logs")

SYSTEM_REMINDER_MARKER = "<system-reminder>"

# Keywords that trigger automatic prompt enhancement for analytical requests.
# Plain substring matches; "ultrathink" is handled separately with word boundaries.
DEFAULT_KEYWORDS: List[str] = [
    # Counting questions
    "how many", "how much", "count", "number of", "total of", "amount of",

    # Analysis and reasoning
    "analyze", "analysis", "reason", "reasoning", "think", "thinking",
    "deduce", "deduction", "infer", "inference",

    # Calculations and problem-solving
    "calculate", "calculation", "solve", "solution", "determine",

    # Detailed explanations
    "explain", "explanation", "demonstrate", "demonstration",
    "detail", "detailed", "step by step", "step-by-step",

    # Identification and search
    "identify", "find", "search", "locate", "enumerate", "list",

    # Precision-requiring words
    "letters", "characters", "digits", "numbers", "figures",
    "positions", "position", "index", "indices",

    # Comparisons and evaluations
    "compare", "comparison", "evaluate", "evaluation",
    "verify", "verification", "check",
]

STANDARD_REASONING_INSTRUCTION = (
    "\n\n[IMPORTANT: This question requires careful analysis. Think step by step "
    "and show your detailed reasoning before answering.]\n\n"
)

ULTRATHINK_REASONING_INSTRUCTION = (
    "\n\n[IMPORTANT: ULTRATHINK mode activated. (ULTRATHINK is the user's keyword "
    "requesting exceptionally thorough analysis from you as an AI model.) This means: "
    "DO NOT rely on your memory or assumptions - read and analyze everything carefully "
    "as if seeing it for the first time. Break down the problem step by step showing "
    "your complete reasoning, analyze each aspect meticulously by reading the actual "
    "current content (things may have changed since you last saw them), consider "
    "multiple perspectives and alternative approaches, verify logic coherence at each "
    "stage, and present well-founded conclusions with maximum level of detail based on "
    "what you actually read, not what you remember.]\n\n"
)


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in TRUTHY_ENV_VALUES:
        return True
    if value in FALSY_ENV_VALUES:
        return False
    return None


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class GlobalOverrides(BaseModel):
    """Operator overrides applied to every model. ``None`` defers to the model configuration."""

    model_config = ConfigDict(frozen=True)

    max_tokens: Optional[int] = Field(default=None, description="Override max_tokens for all models")
    temperature: Optional[float] = Field(default=None, description="Override temperature for all models")
    top_p: Optional[float] = Field(default=None, description="Override top_p for all models")
    reasoning: Optional[bool] = Field(default=None, description="Override reasoning on/off for all models")
    keyword_detection: Optional[bool] = Field(
        default=None,
        description="Override automatic prompt enhancement on/off for all models",
    )


class TransformerOptions(BaseModel):
    """
    Constructor options of the transformer.

    Accepts the snake_case field names or the camelCase keys used in router
    configuration files (``forcePermanentThinking``, ``overrideMaxTokens``...).
    Unknown keys are kept but ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    force_permanent_thinking: bool = Field(
        default=False,
        alias="forcePermanentThinking",
        description="Force reasoning=true + effort=high on every request (maximum priority)",
    )
    override_max_tokens: Optional[int] = Field(default=None, alias="overrideMaxTokens")
    override_temperature: Optional[float] = Field(default=None, alias="overrideTemperature")
    override_top_p: Optional[float] = Field(default=None, alias="overrideTopP")
    override_reasoning: Optional[bool] = Field(default=None, alias="overrideReasoning")
    override_keyword_detection: Optional[bool] = Field(default=None, alias="overrideKeywordDetection")
    custom_keywords: List[str] = Field(
        default_factory=list,
        alias="customKeywords",
        description="Keywords added to (or replacing) the default keyword list",
    )
    override_keywords: bool = Field(
        default=False,
        alias="overrideKeywords",
        description="If true, ONLY custom_keywords are used; otherwise they extend the defaults",
    )
    max_log_size: int = Field(
        default=DEFAULT_MAX_LOG_SIZE,
        gt=0,
        alias="maxLogSize",
        description="Maximum log file size in bytes before rotation (debug build only)",
    )
    log_directory: str = Field(
        default=DEFAULT_LOG_DIRECTORY,
        alias="logDirectory",
        description="Directory for diagnostic log files (debug build only)",
    )

    @classmethod
    def coerce(cls, options: Any) -> "TransformerOptions":
        """Build options from None, a mapping, or an existing instance."""
        if isinstance(options, cls):
            return options
        return cls.model_validate(dict(options or {}))

    @classmethod
    def from_environment(cls, **defaults: Any) -> "TransformerOptions":
        """Load options from ZAI_* environment variables on top of ``defaults``."""
        values: Dict[str, Any] = dict(defaults)

        force = _env_bool("ZAI_FORCE_PERMANENT_THINKING")
        if force is not None:
            values["force_permanent_thinking"] = force

        max_tokens = _env_int("ZAI_OVERRIDE_MAX_TOKENS")
        if max_tokens is not None:
            values["override_max_tokens"] = max_tokens

        temperature = _env_float("ZAI_OVERRIDE_TEMPERATURE")
        if temperature is not None:
            values["override_temperature"] = temperature

        top_p = _env_float("ZAI_OVERRIDE_TOP_P")
        if top_p is not None:
            values["override_top_p"] = top_p

        reasoning = _env_bool("ZAI_OVERRIDE_REASONING")
        if reasoning is not None:
            values["override_reasoning"] = reasoning

        keyword_detection = _env_bool("ZAI_OVERRIDE_KEYWORD_DETECTION")
        if keyword_detection is not None:
            values["override_keyword_detection"] = keyword_detection

        custom_keywords = os.getenv("ZAI_CUSTOM_KEYWORDS")
        if custom_keywords:
            values["custom_keywords"] = [kw.strip() for kw in custom_keywords.split(",") if kw.strip()]

        override_keywords = _env_bool("ZAI_OVERRIDE_KEYWORDS")
        if override_keywords is not None:
            values["override_keywords"] = override_keywords

        log_dir = os.getenv("ZAI_TRANSFORMER_LOG_DIR")
        if log_dir:
            values["log_directory"] = log_dir

        max_log_size = _env_int("ZAI_TRANSFORMER_MAX_LOG_SIZE")
        if max_log_size is not None and max_log_size > 0:
            values["max_log_size"] = max_log_size

        return cls.model_validate(values)

    def global_overrides(self) -> GlobalOverrides:
        return GlobalOverrides(
            max_tokens=self.override_max_tokens,
            temperature=self.override_temperature,
            top_p=self.override_top_p,
            reasoning=self.override_reasoning,
            keyword_detection=self.override_keyword_detection,
        )

    def keyword_list(self) -> List[str]:
        """Final keyword list honouring ``override_keywords``."""
        if self.override_keywords:
            return list(self.custom_keywords)
        return DEFAULT_KEYWORDS + list(self.custom_keywords)


class Config(BaseModel):
    """Settings of the HTTP sidecar that exposes the transformer."""

    APP_HOST: str = Field(default="127.0.0.1", description="FastAPI host")
    APP_PORT: int = Field(default=3457, description="FastAPI port")
    APP_RELOAD: bool = Field(default=False, description="FastAPI reload mode")
    LOG_LEVEL: str = Field(default="INFO", description="Console log level")
    DEBUG_TRANSFORMER: bool = Field(
        default=False,
        description="Serve the diagnostic build (zai-debug) instead of the production build",
    )
    TRANSFORMER_OPTIONS: TransformerOptions = Field(
        default_factory=TransformerOptions,
        description="Options handed to the transformer instance",
    )

    def __init__(self, **data: Any):
        super().__init__(**data)
        self.load_from_environment()

    def load_from_environment(self):
        """Load configuration from environment variables."""
        self.APP_HOST = os.getenv("APP_HOST", self.APP_HOST)

        port_override = os.getenv("APP_PORT")
        if port_override:
            try:
                self.APP_PORT = int(port_override)
            except ValueError:
                pass

        reload_override = _env_bool("APP_RELOAD")
        if reload_override is not None:
            self.APP_RELOAD = reload_override

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()

        debug_override = _env_bool("ZAI_TRANSFORMER_DEBUG")
        if debug_override is not None:
            self.DEBUG_TRANSFORMER = debug_override

        self.TRANSFORMER_OPTIONS = TransformerOptions.from_environment(
            **self.TRANSFORMER_OPTIONS.model_dump(exclude_unset=True)
        )


# Global configuration instance
config = Config()
