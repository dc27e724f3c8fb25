"""kpi-engine configuration built on Pydantic v2 + YAML.

Loads and validates engine settings from a YAML file and gives typed access
to the remote evaluator, local detection, training and evaluation options.
"""

from __future__ import annotations

import importlib.resources
import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Top-level project metadata."""

    name: str = Field("kpi-engine", min_length=1)
    default_language: Literal["fi", "en"] = "fi"


class RemoteConfig(BaseModel):
    """OpenAI-compatible chat-completion service used for remote evaluation."""

    enabled: bool = True
    model: str = Field("gpt-4o-mini", min_length=1)
    api_base: str = Field("https://api.openai.com", min_length=1)
    api_key: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    temperature: float = 0.1
    max_tokens: int = 800
    timeout: float = 30.0
    max_attempts: int = 3
    backoff_base: float = 2.0
    json_mode: bool = True
    max_concurrency: int = 4

    @model_validator(mode="after")
    def _check_remote_params(self) -> "RemoteConfig":
        """Validate retry and sampling ranges."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts({self.max_attempts}) must be at least 1")
        if self.backoff_base < 0:
            raise ValueError(f"backoff_base({self.backoff_base}) must not be negative")
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(f"temperature({self.temperature}) must be between 0 and 2")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens({self.max_tokens}) must be positive")
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency({self.max_concurrency}) must be at least 1")
        return self

    def resolve_api_key(self) -> str | None:
        """Return the configured credential, falling back to the environment.

        Never touches the network, so a missing key is known up front.
        """
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env) or None
        return None


class DetectionConfig(BaseModel):
    """Local keyword detector tuning."""

    partial_match_ratio: float = 0.6
    min_kpi_word_length: int = 3

    @model_validator(mode="after")
    def _check_ratio(self) -> "DetectionConfig":
        if not (0.0 < self.partial_match_ratio <= 1.0):
            raise ValueError(
                f"partial_match_ratio({self.partial_match_ratio}) must be in (0, 1]"
            )
        return self


class TrainingConfig(BaseModel):
    """Pattern-learning settings."""

    min_word_length: int = 4
    min_phrase_length: int = 6
    max_phrase_words: int = 4
    patterns_file: str = "patterns.json"

    @model_validator(mode="after")
    def _check_phrase_words(self) -> "TrainingConfig":
        if self.max_phrase_words < 2:
            raise ValueError(
                f"max_phrase_words({self.max_phrase_words}) must be at least 2"
            )
        return self


class EvaluationConfig(BaseModel):
    """Evaluation rules appended to every remote prompt."""

    extra_criteria: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


class EngineConfig(BaseModel):
    """Root configuration object of kpi-engine.

    Mirrors the full ``engine.yaml`` schema. Instantiated through
    :func:`load_config` or directly from a dict.
    """

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    training: TrainingConfig = Field(default_factory=TrainingConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)

    @model_validator(mode="before")
    @classmethod
    def _strip_none_sections(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Drop top-level keys whose value is ``None`` so defaults apply."""
        if isinstance(values, dict):
            return {k: v for k, v in values.items() if v is not None}
        return values


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

_TEMPLATE_PATH = "templates/engine.yaml"


def load_config(path: str | Path) -> EngineConfig:
    """Load and validate an engine YAML configuration file.

    Parameters
    ----------
    path:
        Filesystem path of the ``engine.yaml`` file.

    Returns
    -------
    EngineConfig
        Fully validated configuration object. A relative
        ``training.patterns_file`` is resolved against the config directory.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    yaml.YAMLError
        If the file is not valid YAML.
    pydantic.ValidationError
        If the YAML content does not match the schema.
    """
    filepath = Path(path).resolve()
    if not filepath.is_file():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    raw = yaml.safe_load(filepath.read_text(encoding="utf-8")) or {}
    config = EngineConfig.model_validate(raw)

    patterns = Path(config.training.patterns_file)
    if not patterns.is_absolute():
        config.training.patterns_file = str((filepath.parent / patterns).resolve())

    return config


def create_default_config() -> str:
    """Return the default YAML template as a string.

    Reads ``templates/engine.yaml`` next to the source tree, then tries the
    installed package resources, and finally dumps the built-in defaults.
    """
    pkg_root = Path(__file__).resolve().parent.parent.parent
    template = pkg_root / _TEMPLATE_PATH
    if template.is_file():
        return template.read_text(encoding="utf-8")

    try:
        ref = importlib.resources.files("kpi_engine").joinpath(
            "../../" + _TEMPLATE_PATH
        )
        return ref.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError) as e:
        logging.getLogger("kpi_engine.config").debug(
            "Could not load template from package resources: %s", e
        )

    return yaml.safe_dump(EngineConfig().model_dump(mode="json"), sort_keys=False)
