"""Remote KPI evaluation through an OpenAI-compatible chat-completion API."""

from __future__ import annotations

import asyncio
import json
import re
import time
from collections.abc import Sequence
from typing import Any, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .config import RemoteConfig
from .errors import (
    ConfigError,
    EmptyInputError,
    RateLimitError,
    RemoteError,
    RetryExhausted,
    SchemaError,
    TransportError,
)
from .models import EvaluationResult, EvaluationRule
from .scoring import score_for
from .utils import get_logger

logger = get_logger("remote")

Criterion = Union[str, EvaluationRule]

NO_FEEDBACK = "No feedback provided."

_LANGUAGE_NAMES = {"fi": "Finnish"}

_WORKED_EXAMPLES = """\
- Leadership / Johtajuus: "I guided the team through the reorganisation" or
  "ohjasin tiimin muutoksen läpi" demonstrates leadership even though the word
  "leadership" never appears.
- Communication / Viestintä: "I kept the steering group informed every week" or
  "tiedotin ohjausryhmää viikoittain" counts as communication.
- Teamwork / Tiimityö: "we solved it together with the developers" or
  "ratkaisimme ongelman yhdessä kehittäjien kanssa" counts as teamwork.
- Risk management / Riskienhallinta: "I listed what could go wrong and prepared a
  backup plan" or "tunnistin mahdolliset ongelmat ja laadin varasuunnitelman"
  counts as risk management.
- Problem solving / Ongelmanratkaisu: "I traced the delay to its root cause and
  fixed the process" or "selvitin viivästyksen juurisyyn ja korjasin prosessin"
  counts as problem solving.
- Stakeholder management / Sidosryhmien hallinta: "I negotiated the scope with the
  customer" or "sovin laajuudesta asiakkaan kanssa" counts as stakeholder
  management."""


def backoff_delay(attempt: int, base: float = 2.0) -> float:
    """Seconds to wait after failed *attempt* (1-based): 2, 4, 8 … for base 2."""
    return base * (2 ** (attempt - 1))


class RemoteVerdict(BaseModel):
    """Shape of the JSON object the model must return."""

    model_config = ConfigDict(extra="ignore")

    detected_kpis: list[str] = Field(default_factory=list)
    missing_kpis: list[str] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=3)
    feedback: str = NO_FEEDBACK

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Treat explicit ``null`` fields like absent ones."""
        if isinstance(values, dict):
            return {k: v for k, v in values.items() if v is not None}
        return values


class RemoteEvaluator:
    """Delegates detection, scoring and feedback to a remote language model.

    Parameters
    ----------
    config:
        :class:`RemoteConfig` with endpoint, credential and retry policy.
    """

    def __init__(self, config: RemoteConfig) -> None:
        self.config = config
        self.model: str = config.model
        self.api_base: str = config.api_base.rstrip("/")
        self.temperature: float = config.temperature
        self.max_tokens: int = config.max_tokens
        self.timeout: float = config.timeout
        self.max_attempts: int = config.max_attempts
        self.backoff_base: float = config.backoff_base

        logger.debug(
            "RemoteEvaluator initialised  model=%s  api_base=%s", self.model, self.api_base
        )

    @property
    def url(self) -> str:
        return f"{self.api_base}/v1/chat/completions"

    @property
    def is_configured(self) -> bool:
        """Whether a credential is available, checked without network I/O."""
        return self.config.resolve_api_key() is not None

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_prompt(
        self,
        answer_text: str,
        target_kpis: Sequence[str],
        language: str = "fi",
        extra_criteria: Sequence[Criterion] | None = None,
    ) -> str:
        """Build the single evaluation prompt sent to the model."""
        feedback_language = _LANGUAGE_NAMES.get(language, "English")
        kpi_lines = "\n".join(f"- {kpi}" for kpi in target_kpis)

        prompt = (
            "You are an examiner for a project management certification. Evaluate "
            "which of the listed KPIs (key competencies) the candidate's answer "
            "demonstrates.\n\n"
            "## How to evaluate\n"
            "Be as generous as possible. A KPI counts as present when the answer "
            "expresses its idea in any way: synonyms, paraphrases, related concepts "
            "and implicit references are as valuable as literal mentions. Never "
            "require the KPI name to be written out. Answers may be written in "
            "Finnish or English.\n\n"
            "## Worked examples\n"
            f"{_WORKED_EXAMPLES}\n\n"
            "## Scoring\n"
            "- 3 points: 3 or more KPIs detected\n"
            "- 2 points: 2 KPIs detected\n"
            "- 1 point: 1 KPI detected\n"
            "- 0 points: no KPIs detected\n\n"
            "## KPIs\n"
            f"{kpi_lines}\n\n"
            "## Answer\n"
            f"{answer_text}\n\n"
        )

        if extra_criteria:
            lines = "\n".join(
                f"- {c.as_instruction() if isinstance(c, EvaluationRule) else c}"
                for c in extra_criteria
            )
            prompt += f"## Additional evaluation criteria\n{lines}\n\n"

        prompt += (
            "## Response format\n"
            "Use the KPI names exactly as listed above. Write the feedback in "
            f"{feedback_language} as constructive coaching for the candidate.\n"
            "Respond with this JSON object only:\n"
            '{"detected_kpis": ["<KPI name>"], "missing_kpis": ["<KPI name>"], '
            '"score": <0-3>, "feedback": "<feedback text>"}'
        )
        return prompt

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    def _payload(self, prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": "You evaluate exam answers and reply in JSON."},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.config.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _prepare(
        self,
        answer_text: str,
        target_kpis: Sequence[str],
        language: str,
        extra_criteria: Sequence[Criterion] | None,
    ) -> tuple[dict[str, Any], dict[str, str]]:
        """Check preconditions and return ``(payload, headers)``."""
        api_key = self.config.resolve_api_key()
        if api_key is None:
            raise ConfigError(
                f"No API key for remote evaluation. Set remote.api_key or "
                f"${self.config.api_key_env}."
            )
        if not target_kpis:
            raise EmptyInputError("No target KPIs given for remote evaluation")

        prompt = self.build_prompt(answer_text, target_kpis, language, extra_criteria)
        return self._payload(prompt), self._headers(api_key)

    # ------------------------------------------------------------------
    # Response handling
    # ------------------------------------------------------------------

    def _check_status(self, resp: httpx.Response) -> None:
        if resp.status_code == 429:
            raise RateLimitError("Remote evaluation rate limited (HTTP 429)")
        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"Remote evaluation HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

    def parse_response(self, data: Any) -> EvaluationResult:
        """Map a chat-completion envelope to an :class:`EvaluationResult`.

        Raises
        ------
        SchemaError
            If the envelope or the message content is not the expected shape.
        """
        try:
            content: str = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SchemaError(f"Unexpected response envelope: {data!r:.300}") from exc
        if not isinstance(content, str):
            raise SchemaError(f"Message content is not text: {content!r:.100}")

        text = content.strip()
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaError(f"Response is not valid JSON: {text[:100]!r}") from exc
        if not isinstance(raw, dict):
            raise SchemaError(f"Response JSON is not an object: {text[:100]!r}")

        try:
            verdict = RemoteVerdict.model_validate(raw)
        except ValidationError as exc:
            raise SchemaError(f"Response JSON has the wrong shape: {exc}") from exc

        return EvaluationResult(
            detected_kpis=verdict.detected_kpis,
            missing_kpis=verdict.missing_kpis,
            score=verdict.score,
            feedback=verdict.feedback,
            source="remote",
        )

    def reconcile(self, result: EvaluationResult, target_kpis: Sequence[str]) -> EvaluationResult:
        """Map the model's KPI names back onto *target_kpis*.

        Names are matched case-insensitively and reported with the requested
        spelling in request order. Unknown names are dropped, ``missing_kpis``
        becomes the complement and the score is recomputed from the detected
        count.
        """
        returned = {name.strip().lower() for name in result.detected_kpis}
        detected = [kpi for kpi in target_kpis if kpi.strip().lower() in returned]

        known = {kpi.strip().lower() for kpi in target_kpis}
        unknown = sorted(returned - known)
        if unknown:
            logger.debug("Dropping KPIs not requested: %s", ", ".join(unknown))

        detected_set = set(detected)
        result.detected_kpis = detected
        result.missing_kpis = [kpi for kpi in target_kpis if kpi not in detected_set]
        result.score = score_for(len(detected))
        return result

    def _handle_response(
        self, resp: httpx.Response, target_kpis: Sequence[str]
    ) -> EvaluationResult:
        self._check_status(resp)
        try:
            data = resp.json()
        except ValueError as exc:
            raise SchemaError("Response body is not valid JSON") from exc
        return self.reconcile(self.parse_response(data), target_kpis)

    def _log_failure(self, attempt: int, exc: RemoteError) -> None:
        if attempt < self.max_attempts:
            logger.warning(
                "Remote evaluation failed (attempt %d/%d): %s, retrying in %.0fs",
                attempt, self.max_attempts, exc,
                backoff_delay(attempt, self.backoff_base),
            )
        else:
            logger.warning(
                "Remote evaluation failed (attempt %d/%d): %s",
                attempt, self.max_attempts, exc,
            )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(
        self,
        answer_text: str,
        target_kpis: Sequence[str],
        language: str = "fi",
        extra_criteria: Sequence[Criterion] | None = None,
    ) -> EvaluationResult:
        """Evaluate synchronously, retrying with exponential backoff.

        Raises
        ------
        ConfigError
            No credential configured. Raised before any network I/O.
        EmptyInputError
            *target_kpis* is empty.
        RetryExhausted
            Every attempt failed; ``last_error`` holds the final cause.
        """
        payload, headers = self._prepare(answer_text, target_kpis, language, extra_criteria)

        last_error: RemoteError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                try:
                    resp = httpx.post(
                        self.url, json=payload, headers=headers, timeout=self.timeout
                    )
                except Exception as exc:
                    raise TransportError(f"Request to {self.url} failed: {exc}") from exc
                return self._handle_response(resp, target_kpis)
            except RemoteError as exc:
                last_error = exc
                self._log_failure(attempt, exc)
            if attempt < self.max_attempts:
                time.sleep(backoff_delay(attempt, self.backoff_base))

        raise RetryExhausted(self.max_attempts, last_error)

    async def aevaluate(
        self,
        answer_text: str,
        target_kpis: Sequence[str],
        language: str = "fi",
        extra_criteria: Sequence[Criterion] | None = None,
    ) -> EvaluationResult:
        """Async variant of :meth:`evaluate` using ``httpx.AsyncClient``.

        Cancellation of the calling task propagates unchanged.
        """
        payload, headers = self._prepare(answer_text, target_kpis, language, extra_criteria)

        last_error: RemoteError | None = None
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    try:
                        resp = await client.post(self.url, json=payload, headers=headers)
                    except Exception as exc:
                        raise TransportError(f"Request to {self.url} failed: {exc}") from exc
                    return self._handle_response(resp, target_kpis)
                except RemoteError as exc:
                    last_error = exc
                    self._log_failure(attempt, exc)
                if attempt < self.max_attempts:
                    await asyncio.sleep(backoff_delay(attempt, self.backoff_base))

        raise RetryExhausted(self.max_attempts, last_error)
