"""
Gemini Client for the screenshot solver.
Serves coding mode: screenshots go straight to a Gemini vision model.
"""

import base64
from typing import Any, Dict, List, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from core.config import API_TEMPERATURE, DEFAULT_GEMINI_MODEL
from core.errors import ApiError, ConfigError
from core.types import ConversationTurn, ExecutionPlan


GEMINI_MAX_OUTPUT_TOKENS = 32000


class GeminiClient:
    """
    Async wrapper over google-generativeai.

    History turns are replayed as user/model contents; images are sent as
    inline JPEG parts in queue order.
    """

    name = "Gemini"

    def __init__(self, api_key: str, temperature: float = API_TEMPERATURE,
                 max_output_tokens: int = GEMINI_MAX_OUTPUT_TOKENS):
        if not api_key:
            raise ConfigError("Gemini API key not configured. Please add your Gemini API key in settings.",
                              key="GEMINI_API_KEY")
        genai.configure(api_key=api_key)
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def build_contents(self, user_prompt: str, plan: ExecutionPlan,
                       history: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
        contents = []
        for turn in history:
            role = "model" if turn.role == "assistant" else "user"
            contents.append({"role": role, "parts": [turn.content]})

        if plan.use_vision:
            parts: List[Any] = [user_prompt]
            for image in plan.image_data:
                parts.append({"mime_type": "image/jpeg", "data": base64.b64decode(image)})
        else:
            parts = [f"{user_prompt}\n\nExtracted text from screenshots:\n{plan.extracted_text}"]

        contents.append({"role": "user", "parts": parts})
        return contents

    async def generate(self, model: str, system_prompt: str, user_prompt: str,
                       plan: ExecutionPlan, history: Sequence[ConversationTurn]) -> str:
        gemini_model = genai.GenerativeModel(
            model or DEFAULT_GEMINI_MODEL,
            system_instruction=system_prompt
        )
        contents = self.build_contents(user_prompt, plan, history)

        try:
            response = await gemini_model.generate_content_async(
                contents,
                generation_config=genai.types.GenerationConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens
                )
            )
        except google_exceptions.DeadlineExceeded as e:
            raise ApiError(f"Request timed out: {e.message}", self.name, status_code=None,
                           retryable=True, original_error=e)
        except google_exceptions.GoogleAPICallError as e:
            status = int(e.code) if e.code is not None else None
            raise ApiError(e.message or str(e), self.name, status_code=status, original_error=e)
        except google_exceptions.RetryError as e:
            raise ApiError(f"Network error: {e}", self.name, status_code=None, retryable=True, original_error=e)

        try:
            text = response.text
        except ValueError as e:
            # No candidates or a blocked candidate
            raise ApiError(f"Gemini API returned an invalid response: {e}", self.name,
                           status_code=None, retryable=False, original_error=e)

        if not text or not text.strip():
            raise ApiError("Gemini API returned empty text. Please try again.", self.name,
                           status_code=None, retryable=False)
        return text.strip()
