"""EvaluationEngine tests: local path, remote path and fallback."""

from __future__ import annotations

import asyncio

import pytest

from kpi_engine.engine import EvaluationEngine
from kpi_engine.models import ExamItem

ANSWER = "I lead cross-functional teams and resolve conflicts daily"
KPIS = ["leadership", "teamwork", "risk management"]


# ---------------------------------------------------------------------------
# Local evaluation
# ---------------------------------------------------------------------------


class TestEvaluateLocal:
    def test_end_to_end_finnish(self, local_engine):
        result = local_engine.evaluate(ANSWER, KPIS)

        assert result.detected_kpis == ["leadership", "teamwork"]
        assert result.missing_kpis == ["risk management"]
        assert result.score == 2
        assert result.source == "local"
        assert result.feedback.startswith("Hyvä yritys!")

    def test_language_override(self, local_engine):
        result = local_engine.evaluate(ANSWER, KPIS, language="en")
        assert result.feedback.startswith("Good effort!")
        assert "risk management" in result.feedback

    def test_detected_and_missing_partition_targets(self, local_engine):
        kpis = ["Leadership", "Budget Control", "Quality", "Earned Value"]
        result = local_engine.evaluate("I checked the cost and quality weekly", kpis)

        assert set(result.detected_kpis) | set(result.missing_kpis) == set(kpis)
        assert not set(result.detected_kpis) & set(result.missing_kpis)
        assert result.score == min(len(result.detected_kpis), 3)

    def test_duplicate_kpis_collapsed(self, local_engine):
        result = local_engine.evaluate("leadership", ["Leadership", "Leadership"])
        assert result.detected_kpis == ["Leadership"]
        assert result.missing_kpis == []
        assert result.score == 1

    def test_empty_answer_scores_zero(self, local_engine):
        result = local_engine.evaluate("", ["Leadership"])
        assert result.score == 0
        assert result.missing_kpis == ["Leadership"]

    def test_empty_kpis(self, local_engine):
        result = local_engine.evaluate("anything", [])
        assert result.detected_kpis == []
        assert result.missing_kpis == []
        assert result.score == 0
        assert result.feedback

    def test_score_capped_at_three(self, local_engine):
        answer = "leadership teamwork communication quality budget"
        kpis = ["Leadership", "Teamwork", "Communication", "Quality", "Budget"]
        result = local_engine.evaluate(answer, kpis)
        assert len(result.detected_kpis) == 5
        assert result.score == 3

    @pytest.mark.parametrize(
        ("answer", "kpis"),
        [
            (None, ["Leadership"]),
            (42, ["Leadership"]),
            ("text", "Leadership"),
            ("text", None),
            ("text", ["Leadership", 7]),
        ],
    )
    def test_malformed_input_raises_type_error(self, local_engine, answer, kpis):
        with pytest.raises(TypeError):
            local_engine.evaluate(answer, kpis)


# ---------------------------------------------------------------------------
# Remote path and fallback
# ---------------------------------------------------------------------------


class TestRemoteFallback:
    def test_remote_success(self, mocker, remote_engine, chat_response):
        post = mocker.patch(
            "httpx.post",
            return_value=chat_response(
                {
                    "detected_kpis": ["leadership", "teamwork", "risk management"],
                    "missing_kpis": [],
                    "score": 3,
                    "feedback": "Erinomaista!",
                }
            ),
        )
        result = remote_engine.evaluate(ANSWER, KPIS)

        assert result.source == "remote"
        assert result.score == 3
        assert result.feedback == "Erinomaista!"
        post.assert_called_once()
        prompt = post.call_args.kwargs["json"]["messages"][1]["content"]
        assert "feedback in Finnish" in prompt

    def test_rate_limited_falls_back_to_local(self, mocker, remote_engine, chat_response):
        post = mocker.patch("httpx.post", return_value=chat_response(status_code=429))
        result = remote_engine.evaluate(ANSWER, KPIS)

        assert post.call_count == 3
        assert result.source == "local"
        assert result.detected_kpis == ["leadership", "teamwork"]
        assert result.score == 2

    def test_missing_credential_skips_network(self, mocker, make_config):
        post = mocker.patch("httpx.post")
        engine = EvaluationEngine(make_config())

        result = engine.evaluate(ANSWER, KPIS)

        post.assert_not_called()
        assert result.source == "local"

    def test_disabled_remote_skips_network(self, mocker, local_engine):
        post = mocker.patch("httpx.post")
        local_engine.evaluate(ANSWER, KPIS)
        post.assert_not_called()

    def test_empty_kpis_fall_back_without_network(self, mocker, remote_engine):
        post = mocker.patch("httpx.post")
        result = remote_engine.evaluate(ANSWER, [])
        post.assert_not_called()
        assert result.source == "local"

    def test_configured_criteria_reach_prompt(self, mocker, make_config, chat_response):
        engine = EvaluationEngine(
            make_config(
                remote={"api_key": "sk-test"},
                evaluation={"extra_criteria": ["Mention a concrete deadline"]},
            )
        )
        post = mocker.patch("httpx.post", return_value=chat_response({"score": 1}))

        engine.evaluate(ANSWER, KPIS, extra_criteria=["Name the sponsor"])

        prompt = post.call_args.kwargs["json"]["messages"][1]["content"]
        assert "- Mention a concrete deadline" in prompt
        assert "- Name the sponsor" in prompt

    def test_schema_error_falls_back(self, mocker, remote_engine, chat_response):
        mocker.patch("httpx.post", return_value=chat_response('{"score": 9}'))
        result = remote_engine.evaluate(ANSWER, KPIS)
        assert result.source == "local"
        assert result.score == 2


# ---------------------------------------------------------------------------
# Async evaluation
# ---------------------------------------------------------------------------


class TestAevaluate:
    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_local(self, monkeypatch, remote_engine):
        async def _slow(*args, **kwargs):
            await asyncio.sleep(5)

        monkeypatch.setattr(remote_engine.remote, "aevaluate", _slow)

        result = await remote_engine.aevaluate(ANSWER, KPIS, timeout=0.01)

        assert result.source == "local"
        assert result.score == 2

    @pytest.mark.asyncio
    async def test_remote_result_returned(self, monkeypatch, remote_engine):
        from kpi_engine.models import EvaluationResult

        async def _fast(*args, **kwargs):
            return EvaluationResult(score=1, source="remote")

        monkeypatch.setattr(remote_engine.remote, "aevaluate", _fast)

        result = await remote_engine.aevaluate(ANSWER, KPIS)
        assert result.source == "remote"

    @pytest.mark.asyncio
    async def test_local_engine_async(self, local_engine):
        result = await local_engine.aevaluate(ANSWER, KPIS, language="en")
        assert result.score == 2


# ---------------------------------------------------------------------------
# Exam attempts
# ---------------------------------------------------------------------------


class TestEvaluateAttempt:
    def test_attempt_summary(self, local_engine):
        items = [
            ExamItem("q1", ANSWER, KPIS),
            {"questionId": "q2", "answerText": "   ", "connectedKPIs": ["Quality"]},
            {"question_id": "q3", "answer": "We kept quality high", "kpis": ["Quality"]},
        ]
        summary = local_engine.evaluate_attempt(items, language="en")

        assert list(summary.results) == ["q1", "q3"]
        assert summary.skipped == ["q2"]
        assert summary.results["q1"].score == 2
        assert summary.results["q3"].score == 1
        assert summary.total_score == 3
        assert summary.max_score == 6

    def test_empty_attempt(self, local_engine):
        summary = local_engine.evaluate_attempt([])
        assert summary.results == {}
        assert summary.total_score == 0


# ---------------------------------------------------------------------------
# Training and status
# ---------------------------------------------------------------------------


class TestModelStatus:
    def test_untrained_status(self, local_engine):
        status = local_engine.get_model_status()
        assert status.is_trained is False
        assert status.patterns_count == 0
        assert status.feedback_templates_count == 8

    def test_training_enables_learned_detection(self, local_engine, make_training_example):
        answer = "We monitored cpi and spi monthly"
        assert local_engine.evaluate(answer, ["Earned Value"]).score == 0

        local_engine.train([], [make_training_example()])

        result = local_engine.evaluate(answer, ["Earned Value"])
        assert result.detected_kpis == ["Earned Value"]
        status = local_engine.get_model_status()
        assert status.is_trained is True
        assert status.learned_kpis == ["Earned Value"]

    def test_patterns_roundtrip_through_file(self, tmp_path, make_config, make_training_example):
        path = tmp_path / "patterns.json"
        engine = EvaluationEngine(
            make_config(remote={"enabled": False}, training={"patterns_file": str(path)})
        )
        engine.train([], [make_training_example()])
        assert engine.save_patterns() == path

        fresh = EvaluationEngine(
            make_config(remote={"enabled": False}, training={"patterns_file": str(path)})
        )
        assert fresh.load_patterns() is True
        assert fresh.evaluate("cpi and spi", ["Earned Value"]).score == 1


def test_package_exports_engine_lazily():
    import kpi_engine

    assert kpi_engine.EvaluationEngine is EvaluationEngine
    assert kpi_engine.__version__ == "0.1.0"


# ---------------------------------------------------------------------------
# Remote failures outside the engine's error types
# ---------------------------------------------------------------------------


class TestUnexpectedRemoteFailures:
    def test_client_error_falls_back(self, mocker, remote_engine):
        mocker.patch("httpx.post", side_effect=RuntimeError("client blew up"))

        result = remote_engine.evaluate(ANSWER, KPIS)

        assert result.source == "local"
        assert result.score == 2

    def test_non_ascii_api_key_falls_back(self, make_config):
        engine = EvaluationEngine(
            make_config(remote={"api_key": "sk-tëst", "backoff_base": 0.0})
        )

        result = engine.evaluate(ANSWER, KPIS)

        assert result.source == "local"
        assert result.detected_kpis == ["leadership", "teamwork"]

    def test_bug_in_remote_evaluator_falls_back(self, monkeypatch, remote_engine):
        def _broken(*args, **kwargs):
            raise AttributeError("unexpected")

        monkeypatch.setattr(remote_engine.remote, "evaluate", _broken)

        assert remote_engine.evaluate(ANSWER, KPIS).source == "local"

    @pytest.mark.asyncio
    async def test_async_client_error_falls_back(self, mocker, remote_engine):
        from unittest.mock import AsyncMock

        client = AsyncMock()
        client.post.side_effect = RuntimeError("client blew up")
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        mocker.patch("httpx.AsyncClient", return_value=client)

        result = await remote_engine.aevaluate(ANSWER, KPIS)

        assert result.source == "local"
        assert result.score == 2

    @pytest.mark.asyncio
    async def test_async_bug_in_remote_evaluator_falls_back(self, monkeypatch, remote_engine):
        async def _broken(*args, **kwargs):
            raise AttributeError("unexpected")

        monkeypatch.setattr(remote_engine.remote, "aevaluate", _broken)

        result = await remote_engine.aevaluate(ANSWER, KPIS)
        assert result.source == "local"


class TestRemoteVerdictMatching:
    def test_unrequested_kpis_dropped(self, mocker, remote_engine, chat_response):
        mocker.patch(
            "httpx.post",
            return_value=chat_response(
                {"detected_kpis": ["Leadership", "Budgeting"], "missing_kpis": [], "score": 3}
            ),
        )

        result = remote_engine.evaluate(ANSWER, KPIS)

        assert result.source == "remote"
        assert result.detected_kpis == ["leadership"]
        assert result.missing_kpis == ["teamwork", "risk management"]
        assert set(result.detected_kpis) | set(result.missing_kpis) == set(KPIS)
        assert result.score == 1


def test_duplicate_question_ids_rejected(local_engine):
    items = [ExamItem("q1", ANSWER, KPIS), ExamItem("q1", "leadership", ["Leadership"])]
    with pytest.raises(ValueError, match="q1"):
        local_engine.evaluate_attempt(items)
