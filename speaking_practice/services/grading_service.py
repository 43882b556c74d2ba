# speaking_practice/services/grading_service.py
import json
from typing import Any, List, Optional

import structlog
from google import genai
from google.genai import types
from pydantic import ValidationError

from speaking_practice.config import Settings, get_settings
from speaking_practice.domain.errors import GradingFailure, MalformedGradingResponse
from speaking_practice.domain.models import EvaluationResult
from speaking_practice.prompts.grading_prompts import (
    FEEDBACK_FIELDS, GRADING_SYSTEM_INSTRUCTION, OVERALL_FEEDBACK_FIELD, SCORE_FIELDS, create_grading_prompt,
)

logger = structlog.get_logger(__name__)


def clean_response_text(text: str) -> str:
    """Strip markdown code fences around a JSON body"""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class GradingService:
    """Scores a finished transcript against six criteria"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[genai.Client] = None):
        self.settings = settings or get_settings()
        self._client = client

        # Safety settings to avoid blocking educational content
        self.safety_settings = [
            types.SafetySetting(category=category, threshold="BLOCK_ONLY_HIGH")
            for category in (
                "HARM_CATEGORY_HARASSMENT",
                "HARM_CATEGORY_HATE_SPEECH",
                "HARM_CATEGORY_SEXUALLY_EXPLICIT",
                "HARM_CATEGORY_DANGEROUS_CONTENT",
            )
        ]

        self.generation_config = types.GenerateContentConfig(
            system_instruction=GRADING_SYSTEM_INSTRUCTION,
            temperature=self.settings.GRADING_TEMPERATURE,
            response_mime_type="application/json",
            safety_settings=self.safety_settings,
        )

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.settings.GEMINI_API_KEY:
                raise GradingFailure("GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=self.settings.GEMINI_API_KEY)
        return self._client

    async def grade(
        self,
        transcript: str,
        passage_content: str,
        question_texts: List[str]
    ) -> EvaluationResult:
        """
        Grade one conversation transcript

        Raises:
            GradingFailure: the grading service could not be reached
            MalformedGradingResponse: the answer was not the expected object
        """
        prompt = create_grading_prompt(transcript, passage_content, question_texts)
        logger.info("Submitting transcript for grading",
                   transcript_length=len(transcript),
                   question_count=len(question_texts))

        try:
            response = await self.client.aio.models.generate_content(
                model=self.settings.GRADING_MODEL,
                contents=prompt,
                config=self.generation_config,
            )
        except GradingFailure:
            raise
        except Exception as e:
            logger.error("Grading request failed", error=str(e))
            raise GradingFailure(f"Grading service request failed: {e}") from e

        evaluation = self.parse_evaluation(response.text)
        logger.info("Transcript graded", overall_score=evaluation.overall_score)
        return evaluation

    def parse_evaluation(self, response_text: Optional[str]) -> EvaluationResult:
        """Parse the grading answer; never substitutes default scores"""
        if not response_text or not response_text.strip():
            raise MalformedGradingResponse("Grading service returned an empty response", response_text)

        try:
            data: Any = json.loads(clean_response_text(response_text))
        except json.JSONDecodeError as e:
            logger.error("Grading response is not JSON", error=str(e), raw=response_text[:200])
            raise MalformedGradingResponse(f"Grading response is not valid JSON: {e}", response_text) from e

        if not isinstance(data, dict):
            raise MalformedGradingResponse("Grading response is not a JSON object", response_text)

        required = SCORE_FIELDS + FEEDBACK_FIELDS + [OVERALL_FEEDBACK_FIELD]
        missing = [key for key in required if data.get(key) is None]
        if missing:
            logger.error("Grading response missing fields", missing=missing)
            raise MalformedGradingResponse(
                f"Grading response missing fields: {', '.join(missing)}", response_text
            )

        try:
            return EvaluationResult.model_validate(data)
        except ValidationError as e:
            logger.error("Grading response failed validation", error=str(e))
            raise MalformedGradingResponse(f"Grading response has invalid values: {e}", response_text) from e
