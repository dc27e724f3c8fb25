"""Core data models shared across the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

MAX_SCORE = 3


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, so both snake_case and camelCase payloads load."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _as_list(value: Any, field_name: str) -> list[str]:
    """Accept a list of names or a lone name; reject anything else."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise TypeError(f"{field_name} must be a list of KPI names, got {type(value).__name__}")


@dataclass
class EvaluationResult:
    """Outcome of evaluating one answer against its KPIs."""

    detected_kpis: list[str] = field(default_factory=list)
    """KPI names judged present, in the order they were requested."""

    missing_kpis: list[str] = field(default_factory=list)
    """Requested KPI names that were not detected."""

    score: int = 0
    """Rubric score in ``0..3``."""

    feedback: str = ""
    """Coaching text in the requested language."""

    source: Literal["remote", "local"] = "local"
    """Which evaluation path produced the result."""

    max_score: int = MAX_SCORE


@dataclass
class SampleAnswer:
    """A curated model answer for a question."""
    answer_text: str
    question_id: str
    quality_rating: int = 0
    detected_kpis: list[str] = field(default_factory=list)
    feedback: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SampleAnswer:
        return cls(
            answer_text=_pick(data, "answer_text", "answerText", default=""),
            question_id=str(_pick(data, "question_id", "questionId", default="")),
            quality_rating=int(_pick(data, "quality_rating", "qualityRating", default=0)),
            detected_kpis=_as_list(
                _pick(data, "detected_kpis", "detectedKPIs", default=[]), "detected_kpis"
            ),
            feedback=_pick(data, "feedback", default=""),
        )


@dataclass
class TrainingExample:
    """A graded answer whose KPI labels teach the pattern store."""
    answer_text: str
    question_id: str
    detected_kpis: list[str] = field(default_factory=list)
    quality_rating: int = 0
    feedback: str = ""
    example_type: Literal["grading", "evaluation", "training"] = "training"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrainingExample:
        return cls(
            answer_text=_pick(data, "answer_text", "answerText", default=""),
            question_id=str(_pick(data, "question_id", "questionId", default="")),
            detected_kpis=_as_list(
                _pick(data, "detected_kpis", "detectedKPIs", default=[]), "detected_kpis"
            ),
            quality_rating=int(_pick(data, "quality_rating", "qualityRating", default=0)),
            feedback=_pick(data, "feedback", default=""),
            example_type=_pick(data, "example_type", "exampleType", default="training"),
        )


@dataclass
class EvaluationRule:
    """Admin-authored scoring rule forwarded to the remote evaluator."""
    description: str
    points: int
    kpi_count: int
    condition: Literal["exactly", "at_least", "at_most"] = "exactly"

    def as_instruction(self) -> str:
        """Render the rule as one prompt line."""
        condition = self.condition.replace("_", " ")
        return (
            f"{self.description} ({condition} {self.kpi_count} KPIs = {self.points} points)"
        )


@dataclass
class ModelStatus:
    """Read-only snapshot of the learned model."""
    is_trained: bool
    patterns_count: int
    feedback_templates_count: int
    learned_kpis: list[str] = field(default_factory=list)


@dataclass
class TrainingReport:
    """Summary of a single training run."""
    samples_used: int = 0
    examples_used: int = 0
    fragments_added: int = 0
    kpis_updated: list[str] = field(default_factory=list)


@dataclass
class ExamItem:
    """One answered question of an exam attempt."""
    question_id: str
    answer_text: str
    kpis: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamItem:
        return cls(
            question_id=str(_pick(data, "question_id", "questionId", default="")),
            answer_text=_pick(data, "answer_text", "answerText", "answer", default=""),
            kpis=_as_list(_pick(data, "kpis", "connectedKPIs", default=[]), "kpis"),
        )


@dataclass
class AttemptSummary:
    """Aggregated outcome of evaluating a whole exam attempt."""
    results: dict[str, EvaluationResult] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def total_score(self) -> int:
        return sum(r.score for r in self.results.values())

    @property
    def max_score(self) -> int:
        return sum(r.max_score for r in self.results.values())
