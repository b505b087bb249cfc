"""
Groq LLM Client for the screenshot solver.
Serves the MCQ-mode primary model (Llama 4 vision) and the text-only
fallback model behind one async interface.
"""

from typing import Dict, List, Optional, Sequence

import groq
from groq import AsyncGroq

from core.config import (
    API_MAX_TOKENS,
    API_TEMPERATURE,
    API_TIMEOUT_SECONDS,
    GROQ_MAX_IMAGES,
)
from core.errors import ApiError, ConfigError
from core.types import ConversationTurn, ExecutionPlan


class GroqClient:
    """
    Async Groq chat-completions client.

    SDK-level retries are disabled; retries and fallback are decided by the
    retry controller. Every SDK failure is re-raised as ApiError.
    """

    name = "Groq"

    def __init__(self, api_key: str, timeout: float = API_TIMEOUT_SECONDS,
                 max_tokens: int = API_MAX_TOKENS, temperature: float = API_TEMPERATURE):
        """
        Args:
            api_key: Groq API key
            timeout: Per-request timeout in seconds
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
        """
        if not api_key:
            raise ConfigError("Groq API key not configured. Please add your Groq API key in settings.",
                              key="GROQ_API_KEY")

        self.client = AsyncGroq(api_key=api_key, timeout=timeout, max_retries=0)
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_messages(self, system_prompt: str, user_prompt: str, plan: ExecutionPlan,
                       history: Sequence[ConversationTurn]) -> List[Dict]:
        messages = [{"role": "system", "content": system_prompt}]

        for turn in history:
            messages.append({"role": turn.role, "content": turn.content})

        if plan.use_vision:
            images = plan.image_data
            if len(images) > GROQ_MAX_IMAGES:
                print(f"⚠️ Groq accepts {GROQ_MAX_IMAGES} images per request, dropping {len(images) - GROQ_MAX_IMAGES}")
                images = images[:GROQ_MAX_IMAGES]

            content = [{"type": "text", "text": user_prompt}]
            for image in images:
                content.append({
                    "type": "image_url",
                    "image_url": {"url": f"data:image/jpeg;base64,{image}"}
                })
            messages.append({"role": "user", "content": content})
        else:
            messages.append({
                "role": "user",
                "content": f"{user_prompt}\n\nExtracted text from screenshots:\n{plan.extracted_text}"
            })

        return messages

    async def generate(self, model: str, system_prompt: str, user_prompt: str,
                       plan: ExecutionPlan, history: Sequence[ConversationTurn]) -> str:
        """
        Generate a completion.

        Returns:
            Response text

        Raises:
            ApiError: on any upstream failure or an empty response
        """
        messages = self.build_messages(system_prompt, user_prompt, plan, history)

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except groq.APIStatusError as e:
            raise ApiError(_error_message(e), self.name, status_code=e.status_code, original_error=e)
        except groq.APIConnectionError as e:
            # Covers APITimeoutError: network-level, always retryable
            raise ApiError(f"Network error: {e}", self.name, status_code=None, retryable=True, original_error=e)

        text = response.choices[0].message.content if response.choices else None
        if not text or not text.strip():
            raise ApiError("Groq API returned an empty response. Please try again.", self.name,
                           status_code=None, retryable=False)
        return text.strip()


def _error_message(error: "groq.APIStatusError") -> str:
    body: Optional[dict] = error.body if isinstance(error.body, dict) else None
    if body and isinstance(body.get("error"), dict) and body["error"].get("message"):
        return body["error"]["message"]
    return str(error)
