"""Deterministic, network-free KPI detection."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import DetectionConfig

from .patterns import PatternStore
from .synonyms import synonyms_for
from .utils import get_logger

logger = get_logger("detector")


class LocalDetector:
    """Decides which KPI names are present in a free-text answer.

    Rules, tried in order per KPI (first hit wins):
    1. exact: the whole KPI name is a substring of the answer
    2. partial: enough of the KPI's words occur in the answer
    3. synonym: a synonym from :mod:`kpi_engine.synonyms` occurs
    4. learned: a fragment learned for this KPI occurs

    All tests are case-insensitive raw substring checks without word
    boundaries. Recall is favoured over precision.
    """

    RULES = ("exact", "partial", "synonym", "learned")

    def __init__(self, store: PatternStore, config: DetectionConfig | None = None) -> None:
        self.store = store
        self.partial_match_ratio = config.partial_match_ratio if config else 0.6
        self.min_word_length = config.min_kpi_word_length if config else 3

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _exact_match(self, answer: str, kpi: str) -> bool:
        return kpi.lower() in answer

    def _partial_word_match(self, answer: str, kpi: str) -> bool:
        words = [w for w in kpi.lower().split() if len(w) >= self.min_word_length]
        if not words:
            return False
        required = math.ceil(self.partial_match_ratio * len(words))
        hits = sum(1 for w in words if w in answer)
        return hits >= required

    def _synonym_match(self, answer: str, kpi: str) -> bool:
        return any(s.lower() in answer for s in synonyms_for(kpi))

    def _learned_match(self, answer: str, kpi: str) -> bool:
        return any(f.lower() in answer for f in self.store.fragments_for(kpi))

    def match_rule(self, answer_text: str, kpi: str) -> str | None:
        """Name of the first rule that detects *kpi*, or ``None``."""
        if not kpi.strip():
            return None
        answer = answer_text.lower()
        checks = (
            self._exact_match,
            self._partial_word_match,
            self._synonym_match,
            self._learned_match,
        )
        for rule, check in zip(self.RULES, checks):
            if check(answer, kpi):
                return rule
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def explain(self, answer_text: str, target_kpis: Sequence[str]) -> dict[str, str]:
        """Map each detected KPI to the rule that detected it, in input order."""
        hits: dict[str, str] = {}
        for kpi in target_kpis:
            rule = self.match_rule(answer_text, kpi)
            if rule is not None:
                hits[kpi] = rule
                logger.debug("KPI %r detected by %s rule", kpi, rule)
        return hits

    def detect(self, answer_text: str, target_kpis: Sequence[str]) -> list[str]:
        """Subset of *target_kpis* judged present, preserving input order."""
        return list(self.explain(answer_text, target_kpis))
