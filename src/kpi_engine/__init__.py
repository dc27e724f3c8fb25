"""kpi-engine: KPI detection and scoring for open-ended certification exam answers."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    # Core
    "EvaluationEngine",
    "EngineConfig",
    # Data models
    "EvaluationResult",
    "EvaluationRule",
    "SampleAnswer",
    "TrainingExample",
    "ModelStatus",
    "ExamItem",
    "AttemptSummary",
    # Components
    "LocalDetector",
    "PatternStore",
    "PatternTrainer",
    "RemoteEvaluator",
]


def __getattr__(name: str):
    """Lazy imports: modules are only loaded when first used."""
    _imports: dict[str, tuple[str, str]] = {
        "EvaluationEngine": (".engine", "EvaluationEngine"),
        "EngineConfig": (".config", "EngineConfig"),
        "EvaluationResult": (".models", "EvaluationResult"),
        "EvaluationRule": (".models", "EvaluationRule"),
        "SampleAnswer": (".models", "SampleAnswer"),
        "TrainingExample": (".models", "TrainingExample"),
        "ModelStatus": (".models", "ModelStatus"),
        "ExamItem": (".models", "ExamItem"),
        "AttemptSummary": (".models", "AttemptSummary"),
        "LocalDetector": (".detector", "LocalDetector"),
        "PatternStore": (".patterns", "PatternStore"),
        "PatternTrainer": (".trainer", "PatternTrainer"),
        "RemoteEvaluator": (".remote", "RemoteEvaluator"),
    }

    if name in _imports:
        module_path, attr = _imports[name]
        import importlib

        mod = importlib.import_module(module_path, __package__)
        val = getattr(mod, attr)
        globals()[name] = val  # cache so __getattr__ is not hit again
        return val

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
