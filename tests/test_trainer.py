"""PatternTrainer tests."""

from __future__ import annotations

import threading

from kpi_engine.config import TrainingConfig
from kpi_engine.models import SampleAnswer
from kpi_engine.patterns import PatternStore
from kpi_engine.trainer import PatternTrainer


class TestTrain:
    def test_example_fragments_learned_per_kpi(self, make_training_example):
        store = PatternStore()
        report = PatternTrainer(store).train(
            [], [make_training_example(detected_kpis=["Earned Value", "Reporting"])]
        )

        for kpi in ("Earned Value", "Reporting"):
            fragments = store.fragments_for(kpi)
            assert "tracked" in fragments
            assert "sponsor" in fragments
            assert "cpi and" in fragments
            # words under four characters are not learned on their own
            assert "cpi" not in fragments

        assert report.examples_used == 1
        assert report.kpis_updated == ["Earned Value", "Reporting"]
        assert store.is_trained is True

    def test_retraining_is_idempotent(self, make_training_example):
        store = PatternStore()
        trainer = PatternTrainer(store)
        example = make_training_example()

        first = trainer.train([], [example])
        before = store.fragments_for("Earned Value")
        second = trainer.train([], [example])

        assert store.fragments_for("Earned Value") == before
        assert first.fragments_added == len(before)
        assert second.fragments_added == 0
        assert second.kpis_updated == []

    def test_samples_only_feed_frequencies(self):
        store = PatternStore()
        sample = SampleAnswer(answer_text="Budget budget review", question_id="q1")
        report = PatternTrainer(store).train([sample], [])

        assert report.samples_used == 1
        assert store.frequencies["budget"] == 2
        assert store.learned_kpis == []
        assert store.is_trained is True

    def test_incomplete_inputs_skipped(self, make_training_example):
        store = PatternStore()
        report = PatternTrainer(store).train(
            [SampleAnswer(answer_text="", question_id="q1"),
             SampleAnswer(answer_text="some words here", question_id="")],
            [make_training_example(detected_kpis=[]),
             make_training_example(answer_text="")],
        )

        assert report.samples_used == 0
        assert report.examples_used == 0
        assert len(store) == 0
        assert store.is_trained is True

    def test_dict_input_with_camel_case_keys(self):
        store = PatternStore()
        PatternTrainer(store).train(
            [{"answerText": "Steering group meetings", "questionId": 7}],
            [{"answerText": "Kept the steering group informed", "detectedKPIs": ["Communication"]}],
        )
        assert "steering group" in store.fragments_for("Communication")
        assert store.frequencies["steering"] == 1

    def test_config_lengths_respected(self, make_training_example):
        store = PatternStore()
        config = TrainingConfig(min_word_length=7, max_phrase_words=2)
        PatternTrainer(store, config).train([], [make_training_example()])

        fragments = store.fragments_for("Earned Value")
        assert "tracked" in fragments
        assert "weekly" not in fragments
        assert "cpi and spi" not in fragments
        assert "cpi and" in fragments

    def test_concurrent_training_keeps_fragments_unique(self, make_training_example):
        store = PatternStore()
        trainer = PatternTrainer(store)
        example = make_training_example()

        threads = [
            threading.Thread(target=trainer.train, args=([], [example])) for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        fragments = store.fragments_for("Earned Value")
        assert len(fragments) == len(set(fragments))
