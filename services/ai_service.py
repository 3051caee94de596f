import json
import httpx
from typing import List, Dict
from pydantic import ValidationError
from core.config import settings
from core.errors import GenerationError
from core.logger import logger
from schemas.quiz import GeneratedQuestion


SYSTEM_PROMPT = "You are a professional TOEIC test developer."

USER_PROMPT = """Generate {count} TOEIC Part 5 questions.

Return ONLY the following JSON format, nothing else:
{{
  "quiz": [
    {{
      "question": "Question text with a blank (____)",
      "question_translation": "Simplified Chinese translation of the question text",
      "options": [
        {{
          "option": "Option text",
          "option_translation": "Simplified Chinese translation of the option text",
          "option_explanation": "Explanation in simplified Chinese of why this option is correct or incorrect"
        }}
      ],
      "answer_index": 0,
      "explanation": "Explanation in simplified Chinese"
    }}
  ]
}}

Rules:
1. "quiz" MUST contain EXACTLY {count} questions.
2. Each question MUST have EXACTLY {options} options.
3. "answer_index" is the 0-based index of the correct option (0 to {max_index}).
4. Explanations must be simple enough for a primary school student."""


class AIService:
    """Service for AI-powered quiz generation using Groq API."""

    def __init__(self):
        self.api_key = settings.GROQ_API_KEY
        self.model = settings.GROQ_MODEL
        self.base_url = "https://api.groq.com/openai/v1/chat/completions"

    def _log_rate_limits(self, headers: httpx.Headers):
        """Extract and log Groq rate limit information."""
        remaining_requests = headers.get("x-ratelimit-remaining-requests")
        remaining_tokens = headers.get("x-ratelimit-remaining-tokens")

        if remaining_requests or remaining_tokens:
            logger.info(
                "Groq rate limits",
                rem_req=remaining_requests,
                rem_tok=remaining_tokens,
                reset_req=headers.get("x-ratelimit-reset-requests"),
                reset_tok=headers.get("x-ratelimit-reset-tokens")
            )

    async def generate_quiz(self, count: int) -> List[GeneratedQuestion]:
        """
        Generate a quiz of `count` questions.

        Raises GenerationError with status 502 when the model answers with
        something that is not a valid quiz, 500 for every other failure.
        """
        if not self.api_key:
            logger.error("GROQ_API_KEY is not configured")
            raise GenerationError()

        options = settings.OPTIONS_PER_QUESTION
        user_prompt = USER_PROMPT.format(count=count, options=options, max_index=options - 1)

        try:
            async with httpx.AsyncClient(timeout=settings.GROQ_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    self.base_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json"
                    },
                    json={
                        "model": self.model,
                        "messages": [
                            {"role": "system", "content": SYSTEM_PROMPT},
                            {"role": "user", "content": user_prompt}
                        ],
                        "response_format": {"type": "json_object"},
                        "service_tier": settings.GROQ_SERVICE_TIER,
                        "temperature": 0.8,
                        "max_completion_tokens": 8192
                    }
                )
        except httpx.HTTPError as e:
            logger.error("Groq request failed", error=str(e))
            raise GenerationError() from e

        self._log_rate_limits(response.headers)

        if response.status_code != 200:
            logger.error("Groq API error", status=response.status_code, error=response.text[:500])
            raise GenerationError()

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected Groq response", error=str(e))
            raise GenerationError("Failed to parse quiz response from model.", status_code=502) from e

        questions = self._parse_quiz(content, count, options)
        logger.info("AI quiz generated", total=len(questions))
        return questions

    def _parse_quiz(self, content: str, count: int, options: int) -> List[GeneratedQuestion]:
        """Parse and strictly validate the model output; no silent fixing."""
        try:
            raw = json.loads(content)
            items: List[Dict] = raw["quiz"] if isinstance(raw, dict) else raw
            questions = [GeneratedQuestion.model_validate(item) for item in items]
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.error("Failed to parse AI response", error=str(e), content=content[:500])
            raise GenerationError("Failed to parse quiz response from model.", status_code=502) from e

        if len(questions) != count or any(len(q.options) != options for q in questions):
            logger.error("AI response has wrong shape", expected=count, got=len(questions))
            raise GenerationError("Failed to parse quiz response from model.", status_code=502)

        return questions
