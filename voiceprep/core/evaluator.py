"""
Answer Evaluator for VoicePrep

Scores a spoken answer with an external OpenAI-compatible chat
completions endpoint. Returns a structured Evaluation or raises an
EvaluationError; it never retries and never invents a fallback score,
the caller decides what a failed evaluation means.
"""

import json
import math
import logging
from typing import Any

import httpx
import pydantic

from voiceprep.config.settings import Settings, get_settings
from voiceprep.core.errors import (
    AnswerValidationError,
    ConfigurationError,
    ServiceError,
)
from voiceprep.models.evaluation import Evaluation
from voiceprep.prompts.evaluator import EvaluatorPrompts

logger = logging.getLogger(__name__)


class AnswerEvaluator:
    """
    Client for the external answer scoring service.

    Request: question, user answer, role and difficulty, sent as a chat
    prompt. Response: JSON with idealAnswer, score, strengths,
    missingConcepts and suggestions.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the evaluator.

        Args:
            settings: Settings override (defaults to cached settings)
            client: HTTP client override, mainly for tests
        """
        self.settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.evaluation_timeout_seconds,
        )
        self.prompts = EvaluatorPrompts()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return bool(self.settings.evaluation_api_key)

    # =========================================================================
    # EVALUATION
    # =========================================================================

    async def evaluate(
        self,
        *,
        question: str,
        answer: str,
        role: str,
        difficulty: str,
    ) -> Evaluation:
        """
        Evaluate an answer to an interview question.

        Args:
            question: The question text
            answer: The candidate's answer
            role: Target role
            difficulty: Question difficulty

        Returns:
            Evaluation with the score clamped to 0-10

        Raises:
            ConfigurationError: No API key configured
            AnswerValidationError: Empty answer
            ServiceError: Network, HTTP or response format failure
        """
        if not self.is_configured():
            raise ConfigurationError(
                "Evaluation API key is required. Set EVALUATION_API_KEY in your environment."
            )

        if not answer or not answer.strip():
            raise AnswerValidationError("Please provide an answer before evaluation.")

        payload = {
            "model": self.settings.evaluation_model,
            "messages": self.prompts.get_messages(question, answer, role, difficulty),
            "temperature": self.settings.evaluation_temperature,
            "max_tokens": self.settings.evaluation_max_tokens,
        }

        result = await self._post(payload)
        content = self._extract_content(result)
        if not content.strip():
            raise ServiceError("No content received from API")

        evaluation = self._parse_evaluation(content)
        logger.info(f"Evaluation complete: score={evaluation.score:.1f}")
        return evaluation

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send the chat request and return the decoded JSON body."""
        headers = {
            "Authorization": f"Bearer {self.settings.evaluation_api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self.client.post(
                self.settings.evaluation_api_url,
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Evaluation API error: {e}")
            raise ServiceError(f"Failed to evaluate answer: {e}") from e

        if response.is_error:
            raise ServiceError(self._error_message(response))

        try:
            return response.json()
        except ValueError as e:
            raise ServiceError("Evaluation API returned invalid JSON") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the remote error message over the bare status code."""
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
        return f"API request failed with status {response.status_code}"

    def _extract_content(self, result: Any) -> str:
        """Extract text content from API response, handling list/dict formats."""
        if not isinstance(result, dict):
            raise ServiceError("Unexpected response from evaluation API")

        choices = result.get("choices") or [{}]
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise ServiceError("Unexpected response from evaluation API")

        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise ServiceError("Unexpected response from evaluation API")
        content = message.get("content", "")

        # Handle case where content is a list (multi-part response)
        if isinstance(content, list):
            text_parts = []
            for part in content:
                if isinstance(part, str):
                    text_parts.append(part)
                elif isinstance(part, dict) and "text" in part:
                    text_parts.append(part["text"])
            content = "".join(text_parts)

        return content if isinstance(content, str) else str(content or "")

    def _parse_evaluation(self, content: str) -> Evaluation:
        """Parse the model output into an Evaluation."""
        cleaned = content.strip()
        if cleaned.startswith("```"):
            cleaned = cleaned.removeprefix("```json").removeprefix("```")
            cleaned = cleaned.removesuffix("```").strip()

        json_start = cleaned.find("{")
        json_end = cleaned.rfind("}") + 1
        if json_start < 0 or json_end <= json_start:
            raise ServiceError("Invalid evaluation format received from API")

        try:
            data = json.loads(cleaned[json_start:json_end])
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse evaluation JSON: {e}")
            raise ServiceError("Invalid evaluation format received from API") from e

        ideal_answer = data.get("idealAnswer")
        score = data.get("score")
        if (
            not isinstance(ideal_answer, str)
            or not ideal_answer
            or isinstance(score, bool)
            or not isinstance(score, (int, float))
            or not math.isfinite(score)
        ):
            raise ServiceError("Invalid evaluation format received from API")

        try:
            return Evaluation.model_validate(data)
        except pydantic.ValidationError as e:
            raise ServiceError(f"Invalid evaluation format received from API: {e}") from e
