"""Shared fixtures for the kpi-engine test suite."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest


@pytest.fixture(autouse=True)
def _no_ambient_api_key(monkeypatch):
    """Keep a developer's OPENAI_API_KEY from leaking into tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_config():
    """Factory fixture building EngineConfig instances.

    Usage::
        cfg = make_config(remote={"enabled": False})
    """
    from kpi_engine.config import EngineConfig

    def _factory(**overrides) -> EngineConfig:
        return EngineConfig(**overrides)

    return _factory


@pytest.fixture
def local_engine(make_config):
    """Engine with the remote evaluator disabled."""
    from kpi_engine.engine import EvaluationEngine

    return EvaluationEngine(make_config(remote={"enabled": False}))


@pytest.fixture
def remote_engine(make_config):
    """Engine with a credential and zero backoff so retries run instantly."""
    from kpi_engine.engine import EvaluationEngine

    return EvaluationEngine(
        make_config(remote={"api_key": "sk-test", "backoff_base": 0.0})
    )


@pytest.fixture
def make_training_example():
    """Factory fixture building TrainingExample instances."""
    from kpi_engine.models import TrainingExample

    def _factory(
        answer_text: str = "Tracked cpi and spi weekly with the sponsor",
        detected_kpis: list[str] | None = None,
        question_id: str = "q1",
        quality_rating: int = 3,
    ) -> TrainingExample:
        return TrainingExample(
            answer_text=answer_text,
            question_id=question_id,
            detected_kpis=detected_kpis if detected_kpis is not None else ["Earned Value"],
            quality_rating=quality_rating,
        )

    return _factory


@pytest.fixture
def chat_response():
    """Factory for mocked httpx responses with a chat-completion envelope."""

    def _factory(content: str | dict | None = None, status_code: int = 200) -> MagicMock:
        if isinstance(content, dict):
            content = json.dumps(content)
        resp = MagicMock()
        resp.status_code = status_code
        resp.text = content or ""
        resp.json.return_value = {"choices": [{"message": {"content": content}}]}
        return resp

    return _factory


@pytest.fixture
def tmp_yaml_config(tmp_path: Path) -> Path:
    """Minimal engine.yaml."""
    f = tmp_path / "engine.yaml"
    f.write_text(
        """\
project:
  name: "test-engine"
  default_language: "en"

remote:
  enabled: false

training:
  patterns_file: "patterns.json"
""",
        encoding="utf-8",
    )
    return f
