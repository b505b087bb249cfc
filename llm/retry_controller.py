"""
Retry Controller
Bounded retries with exponential backoff, one-shot escalation to the
text-only secondary model on a primary-model rate limit, and cooperative
cancellation of every attempt and every backoff sleep.
"""

import asyncio
from typing import Callable, Optional, Sequence

from core.cancellation import CancellationToken
from core.config import (
    API_MAX_RETRIES,
    API_RETRY_DELAY_BASE,
    API_RETRY_DELAY_MAX,
    API_TIMEOUT_SECONDS,
)
from core.errors import ApiError
from core.types import ConversationTurn, ExecutionPlan, ModelSelection, RawResponse, RetryState
from .prompts import with_ocr_warning, with_text_model_addendum


FALLBACK_NOTICE = "Primary model is rate limited. Using a text-only model, answers may be less accurate."


class _FallbackRequired(Exception):
    """Raised inside the attempt loop when a primary-model 429 should escalate."""

    def __init__(self, cause: ApiError):
        super().__init__(str(cause))
        self.cause = cause


class RetryController:
    """
    Wraps ProviderClient.call with the retry/fallback policy.

    Retryable failures (429, 503, network errors and timeouts) are retried up
    to ``max_retries`` attempts; anything else fails on the first attempt.
    The escalation attempt does not count against ``max_retries``.
    """

    def __init__(self, provider, planner, max_retries: int = API_MAX_RETRIES,
                 base_delay: float = API_RETRY_DELAY_BASE, max_delay: float = API_RETRY_DELAY_MAX,
                 request_timeout: float = API_TIMEOUT_SECONDS):
        self.provider = provider
        self.planner = planner
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.request_timeout = request_timeout

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds before attempt ``attempt + 1``."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    @staticmethod
    def prepare_system_prompt(system_prompt: str, selection: ModelSelection) -> str:
        if selection.is_fallback:
            system_prompt = with_ocr_warning(system_prompt)
        if selection.is_text_only:
            system_prompt = with_text_model_addendum(system_prompt)
        return system_prompt

    async def generate(self, system_prompt: str, user_prompt: str, plan: ExecutionPlan,
                       history: Sequence[ConversationTurn], token: CancellationToken,
                       selection: ModelSelection,
                       on_retry: Optional[Callable[[int, int, ApiError], None]] = None,
                       on_fallback: Optional[Callable[[str], None]] = None) -> RawResponse:
        """
        Produce a raw model response.

        Args:
            system_prompt: Mode or debug system prompt, undecorated
            user_prompt: Instruction sent with the screenshots
            plan: Vision or OCR+text payload
            history: Prior turns of this conversation
            token: Cancellation token of the current request
            selection: Model chosen for this request
            on_retry: Called as (attempt, max_retries, error) before each backoff
            on_fallback: Called with a degraded-quality notice on escalation

        Returns:
            RawResponse, flagged when the secondary model answered

        Raises:
            ApiError: non-retryable failure or retries exhausted
            RequestCancelled: the token fired
        """
        self.provider.check_credentials(selection)
        allow_escalation = self.provider.can_fall_back(selection)

        try:
            text = await self._attempt_loop(selection, system_prompt, user_prompt, plan, history,
                                            token, on_retry, allow_escalation)
            return RawResponse(text=text, used_fallback_model=selection.is_fallback,
                               model_id=selection.model_id)
        except _FallbackRequired as escalation:
            print(f"⚠️ {selection.model_id} rate limited ({escalation.cause.message}), escalating to fallback model")

        secondary = self.provider.fallback_selection()
        self.provider.enter_fallback()
        if on_fallback:
            on_fallback(FALLBACK_NOTICE)

        if plan.use_vision:
            plan = await self.planner.build_text_plan(plan.screenshot_paths, token)

        text = await self._attempt_loop(secondary, system_prompt, user_prompt, plan, history,
                                        token, on_retry, allow_escalation=False)
        return RawResponse(text=text, used_fallback_model=True, model_id=secondary.model_id)

    async def _attempt_loop(self, selection: ModelSelection, system_prompt: str, user_prompt: str,
                            plan: ExecutionPlan, history: Sequence[ConversationTurn],
                            token: CancellationToken, on_retry, allow_escalation: bool) -> str:
        prompt = self.prepare_system_prompt(system_prompt, selection)
        state = RetryState()

        while True:
            token.raise_if_cancelled()
            try:
                return await token.run(self._dispatch(selection, prompt, user_prompt, plan, history))
            except ApiError as e:
                state.last_error = e
                print(f"❌ API call attempt {state.attempt}/{self.max_retries} failed: {e}")

                if allow_escalation and e.is_rate_limited:
                    raise _FallbackRequired(e)
                if not e.retryable:
                    raise
                if state.attempt >= self.max_retries:
                    print(f"❌ Giving up after {state.attempt} attempts, last error: {state.last_error}")
                    raise

                delay = self.backoff_delay(state.attempt)
                print(f"🔁 Waiting {delay:.1f}s before retry...")
                if on_retry:
                    on_retry(state.attempt, self.max_retries, e)

                await token.sleep(delay)
                state.attempt += 1

    async def _dispatch(self, selection: ModelSelection, system_prompt: str, user_prompt: str,
                        plan: ExecutionPlan, history: Sequence[ConversationTurn]) -> str:
        try:
            return await asyncio.wait_for(
                self.provider.call(selection, system_prompt, user_prompt, plan, history),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ApiError(f"Request timed out after {self.request_timeout:.0f}s", selection.provider,
                           status_code=None, retryable=True, original_error=e)
