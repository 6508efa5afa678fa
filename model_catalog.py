"""
Model configuration table.

Per-model output limits, sampling defaults and reasoning capabilities. The
table is fixed once a catalog is built but can be injected through the
constructor, so new models can be supported without code changes.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_TOKENS = 128 * 1024  # 131,072 (128K)
UNKNOWN_PROVIDER = "Unknown"
UNKNOWN_MODEL_NAME = "UNKNOWN"


class ModelConfig(BaseModel):
    """Model-specific configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_tokens: int = Field(..., alias="maxTokens", description="Maximum output tokens")
    context_window: Optional[int] = Field(
        default=None, alias="contextWindow", description="Maximum input tokens (context)"
    )
    temperature: Optional[float] = Field(default=None, description="Randomness control (0.0-2.0)")
    top_p: Optional[float] = Field(default=None, alias="topP", description="Nucleus sampling (0.0-1.0)")
    reasoning: bool = Field(
        default=False,
        description="Whether the model supports native reasoning (model decides when to use it)",
    )
    keyword_detection: bool = Field(
        default=False,
        alias="keywordDetection",
        description="Enable automatic prompt enhancement when analytical keywords are detected",
    )
    provider: str = Field(default=UNKNOWN_PROVIDER, description="Model provider")


DEFAULT_MODEL_CONFIGURATIONS: Dict[str, ModelConfig] = {
    # GLM 4.6 - Advanced reasoning with extended context
    "glm-4.6": ModelConfig(
        max_tokens=128 * 1024,
        context_window=200 * 1024,
        temperature=1.0,
        top_p=0.95,
        reasoning=True,
        keyword_detection=True,
        provider="Z.AI",
    ),
    # GLM 4.5 - General purpose with reasoning
    "glm-4.5": ModelConfig(
        max_tokens=96 * 1024,
        context_window=128 * 1024,
        temperature=0.6,
        top_p=0.95,
        reasoning=True,
        keyword_detection=True,
        provider="Z.AI",
    ),
    # GLM 4.5-air - Lightweight and fast version
    "glm-4.5-air": ModelConfig(
        max_tokens=96 * 1024,
        context_window=128 * 1024,
        temperature=0.6,
        top_p=0.95,
        reasoning=True,
        keyword_detection=True,
        provider="Z.AI",
    ),
    # GLM 4.5v - Vision and multimodal
    "glm-4.5v": ModelConfig(
        max_tokens=16 * 1024,
        context_window=128 * 1024,
        temperature=0.6,
        top_p=0.95,
        reasoning=True,
        keyword_detection=True,
        provider="Z.AI",
    ),
}


class ModelCatalog:
    """Immutable lookup of model configurations with a safe default for unknown models."""

    def __init__(
        self,
        configurations: Optional[Mapping[str, Union[ModelConfig, Mapping[str, Any]]]] = None,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        source = DEFAULT_MODEL_CONFIGURATIONS if configurations is None else configurations
        self._configurations: Dict[str, ModelConfig] = {
            name: entry if isinstance(entry, ModelConfig) else ModelConfig.model_validate(dict(entry))
            for name, entry in source.items()
        }
        self._default = ModelConfig(
            max_tokens=default_max_tokens,
            reasoning=False,
            keyword_detection=False,
            provider=UNKNOWN_PROVIDER,
        )

    @property
    def default(self) -> ModelConfig:
        """Configuration used for models missing from the table."""
        return self._default

    def get(self, model_name: Optional[str]) -> ModelConfig:
        if not isinstance(model_name, str):
            return self._default
        return self._configurations.get(model_name, self._default)

    def names(self) -> List[str]:
        return list(self._configurations)

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        """Serializable view of the table (used by the HTTP sidecar)."""
        return {name: cfg.model_dump() for name, cfg in self._configurations.items()}

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._configurations

    def __len__(self) -> int:
        return len(self._configurations)
