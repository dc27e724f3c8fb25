"""Evaluation orchestrator: remote evaluation first, local fallback always.

Public entry point of the package. :meth:`EvaluationEngine.evaluate` never
raises for well-formed input; any remote failure degrades to the local
keyword detector.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Union

from .config import EngineConfig
from .detector import LocalDetector
from .errors import ConfigError, EngineError
from .feedback import generate_feedback, template_count
from .models import (
    AttemptSummary,
    EvaluationResult,
    ExamItem,
    ModelStatus,
    SampleAnswer,
    TrainingExample,
    TrainingReport,
)
from .patterns import PatternStore
from .remote import Criterion, RemoteEvaluator
from .scoring import score_for
from .trainer import PatternTrainer
from .utils import get_logger, unique_ordered

logger = get_logger("engine")


class EvaluationEngine:
    """Owns the pattern store and wires detector, trainer and remote evaluator.

    Parameters
    ----------
    config:
        Engine configuration; defaults are used when omitted.
    store:
        Existing :class:`PatternStore` to share. A fresh one is created
        otherwise.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        store: PatternStore | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store if store is not None else PatternStore()
        self.detector = LocalDetector(self.store, self.config.detection)
        self.trainer = PatternTrainer(self.store, self.config.training)
        self.remote = RemoteEvaluator(self.config.remote)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(answer_text: Any, target_kpis: Any) -> list[str]:
        """Type-check the boundary input and return deduplicated KPI names."""
        if not isinstance(answer_text, str):
            raise TypeError(f"answer_text must be str, got {type(answer_text).__name__}")
        if isinstance(target_kpis, str) or not isinstance(target_kpis, Iterable):
            raise TypeError("target_kpis must be a sequence of KPI names")
        kpis = list(target_kpis)
        for kpi in kpis:
            if not isinstance(kpi, str):
                raise TypeError(f"KPI names must be str, got {type(kpi).__name__}")
        return unique_ordered(kpis)

    def _criteria(self, extra_criteria: Sequence[Criterion] | None) -> list[Criterion]:
        return [*self.config.evaluation.extra_criteria, *(extra_criteria or [])]

    def _language(self, language: str | None) -> str:
        return language or self.config.project.default_language

    @staticmethod
    def _log_fallback(exc: BaseException) -> None:
        if isinstance(exc, ConfigError):
            logger.info("Remote evaluation not configured, using local evaluation")
        else:
            logger.warning("Remote evaluation unavailable (%s), falling back to local", exc)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_local(
        self,
        answer_text: str,
        target_kpis: Sequence[str],
        language: str | None = None,
    ) -> EvaluationResult:
        """Detector → scorer → feedback. Deterministic and network-free."""
        kpis = self._validate(answer_text, target_kpis)
        detected = self.detector.detect(answer_text, kpis)
        detected_set = set(detected)
        missing = [kpi for kpi in kpis if kpi not in detected_set]
        score = score_for(len(detected))
        return EvaluationResult(
            detected_kpis=detected,
            missing_kpis=missing,
            score=score,
            feedback=generate_feedback(detected, missing, score, self._language(language)),
            source="local",
        )

    def evaluate(
        self,
        answer_text: str,
        target_kpis: Sequence[str],
        language: str | None = None,
        extra_criteria: Sequence[Criterion] | None = None,
    ) -> EvaluationResult:
        """Evaluate an answer; remote first, local on any remote failure.

        Only ``TypeError`` for malformed input escapes this method.
        """
        kpis = self._validate(answer_text, target_kpis)
        lang = self._language(language)

        if self.config.remote.enabled:
            try:
                return self.remote.evaluate(answer_text, kpis, lang, self._criteria(extra_criteria))
            except EngineError as exc:
                self._log_fallback(exc)
            except Exception:
                logger.exception("Unexpected error in remote evaluation, falling back to local")

        return self.evaluate_local(answer_text, kpis, lang)

    async def aevaluate(
        self,
        answer_text: str,
        target_kpis: Sequence[str],
        language: str | None = None,
        extra_criteria: Sequence[Criterion] | None = None,
        timeout: float | None = None,
    ) -> EvaluationResult:
        """Async :meth:`evaluate`. *timeout* bounds the whole remote call."""
        kpis = self._validate(answer_text, target_kpis)
        lang = self._language(language)

        if self.config.remote.enabled:
            try:
                return await asyncio.wait_for(
                    self.remote.aevaluate(answer_text, kpis, lang, self._criteria(extra_criteria)),
                    timeout,
                )
            except (EngineError, asyncio.TimeoutError) as exc:
                self._log_fallback(exc)
            except Exception:
                logger.exception("Unexpected error in remote evaluation, falling back to local")

        return self.evaluate_local(answer_text, kpis, lang)

    async def aevaluate_attempt(
        self,
        items: Iterable[Union[ExamItem, dict]],
        language: str | None = None,
        extra_criteria: Sequence[Criterion] | None = None,
    ) -> AttemptSummary:
        """Evaluate every answered item of an exam attempt concurrently.

        Items with a blank answer are skipped and listed in
        :attr:`AttemptSummary.skipped`.

        Raises
        ------
        ValueError
            If two items share a ``question_id``.
        """
        exam_items = [ExamItem.from_dict(i) if isinstance(i, dict) else i for i in items]
        seen: set[str] = set()
        for item in exam_items:
            if item.question_id in seen:
                raise ValueError(f"Duplicate question_id in attempt: {item.question_id!r}")
            seen.add(item.question_id)
        summary = AttemptSummary()
        semaphore = asyncio.Semaphore(self.config.remote.max_concurrency)

        async def _bounded(item: ExamItem) -> tuple[str, EvaluationResult]:
            async with semaphore:
                result = await self.aevaluate(
                    item.answer_text, item.kpis, language, extra_criteria
                )
                return item.question_id, result

        answered = []
        for item in exam_items:
            if item.answer_text.strip():
                answered.append(item)
            else:
                summary.skipped.append(item.question_id)

        for question_id, result in await asyncio.gather(*(_bounded(i) for i in answered)):
            summary.results[question_id] = result

        logger.info(
            "Attempt evaluated: %d/%d points over %d answers (%d skipped)",
            summary.total_score, summary.max_score, len(summary.results), len(summary.skipped),
        )
        return summary

    def evaluate_attempt(
        self,
        items: Iterable[Union[ExamItem, dict]],
        language: str | None = None,
        extra_criteria: Sequence[Criterion] | None = None,
    ) -> AttemptSummary:
        """Synchronous wrapper around :meth:`aevaluate_attempt`."""
        return asyncio.run(self.aevaluate_attempt(items, language, extra_criteria))

    # ------------------------------------------------------------------
    # Training & status
    # ------------------------------------------------------------------

    def train(
        self,
        sample_answers: Iterable[Union[SampleAnswer, dict]],
        training_examples: Iterable[Union[TrainingExample, dict]],
    ) -> TrainingReport:
        """Learn patterns from curated answers (see :class:`PatternTrainer`)."""
        return self.trainer.train(sample_answers, training_examples)

    def get_model_status(self) -> ModelStatus:
        return ModelStatus(
            is_trained=self.store.is_trained,
            patterns_count=self.store.patterns_count,
            feedback_templates_count=template_count(),
            learned_kpis=self.store.learned_kpis,
        )

    def load_patterns(self, path: str | Path | None = None) -> bool:
        """Load learned patterns from *path* or ``training.patterns_file``."""
        return self.store.load(path or self.config.training.patterns_file)

    def save_patterns(self, path: str | Path | None = None) -> Path:
        target = Path(path or self.config.training.patterns_file)
        self.store.save(target)
        return target
