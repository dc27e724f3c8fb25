"""Offline pattern learning from curated answers."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .config import TrainingConfig

from .models import SampleAnswer, TrainingExample, TrainingReport
from .patterns import PatternStore
from .phrases import extract_phrases, extract_words
from .utils import get_logger

logger = get_logger("trainer")


def _coerce(items: Iterable[Any], cls: type) -> list[Any]:
    """Accept model instances or raw dicts from the curation workflow."""
    return [cls.from_dict(i) if isinstance(i, dict) else i for i in items]


class PatternTrainer:
    """Updates a :class:`PatternStore` from sample answers and training examples.

    Sample answers only feed the general frequency counter. Training examples
    associate every qualifying word and phrase of the answer with each KPI
    in the example's labels.
    """

    def __init__(self, store: PatternStore, config: TrainingConfig | None = None) -> None:
        self.store = store
        self.min_word_length = config.min_word_length if config else 4
        self.min_phrase_length = config.min_phrase_length if config else 6
        self.max_phrase_words = config.max_phrase_words if config else 4

    def _fragments(self, text: str) -> list[str]:
        words = extract_words(text, self.min_word_length)
        phrases = extract_phrases(
            text, min_length=self.min_phrase_length, max_words=self.max_phrase_words
        )
        return words + phrases

    def train(
        self,
        sample_answers: Iterable[Union[SampleAnswer, dict]],
        training_examples: Iterable[Union[TrainingExample, dict]],
    ) -> TrainingReport:
        """Run one training pass and mark the store as trained.

        Holds the store's writer lock for the whole run so concurrent training
        calls are serialized.
        """
        samples = _coerce(sample_answers, SampleAnswer)
        examples = _coerce(training_examples, TrainingExample)
        report = TrainingReport()
        updated: dict[str, None] = {}

        with self.store.lock:
            for sample in samples:
                if not (sample.answer_text and sample.question_id):
                    continue
                for fragment in self._fragments(sample.answer_text):
                    self.store.count_fragment(fragment)
                report.samples_used += 1

            for example in examples:
                if not (example.answer_text and example.detected_kpis):
                    continue
                fragments = self._fragments(example.answer_text)
                for kpi_name in example.detected_kpis:
                    for fragment in fragments:
                        if self.store.add_fragment(kpi_name, fragment):
                            report.fragments_added += 1
                            updated[kpi_name] = None
                report.examples_used += 1

            self.store.mark_trained()

        report.kpis_updated = list(updated)
        logger.info(
            "Pattern model trained with %d sample answers and %d training examples "
            "(%d new fragments across %d KPIs)",
            report.samples_used, report.examples_used,
            report.fragments_added, len(report.kpis_updated),
        )
        return report
