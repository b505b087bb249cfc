"""
Orchestrator
Runs one request at a time through plan -> generate -> classify and keeps
the conversation, screenshot queues and view state consistent.
"""

import asyncio
from typing import List, Optional, Sequence, Tuple

from core.cancellation import CancellationToken
from core.config import EnvConfigStore
from core.errors import (
    ApiError,
    NoScreenshotsError,
    RequestCancelled,
    ValidationError,
    handle_error,
)
from core.interfaces import (
    ConsoleSink,
    MILESTONE_ANALYZING,
    MILESTONE_CANCELLED,
    MILESTONE_COMPLETE,
    MILESTONE_GENERATING,
    MILESTONE_OCR,
    ScreenshotQueue,
)
from core.types import ConversationTurn, ProcessingMode, ProcessingRequest, ProcessingResult, RawResponse
from llm.prompts import build_debug_prompt, get_debug_system_prompt, get_system_prompt
from llm.provider_client import ProviderClient
from llm.retry_controller import RetryController
from memory.conversation_store import ConversationStore
from agents.planner_agent import PlannerAgent
from agents.router_agent import RouterAgent


VIEW_QUEUE = "queue"
VIEW_SOLUTIONS = "solutions"

INITIAL_USER_PROMPT = "Solve the question(s) shown in the screenshots."
INITIAL_STIMULUS = "Screenshots provided"


class SolverOrchestrator:
    """
    Pipeline entry points for the desktop shell.

    Only one request is in flight: a new request cancels the previous token
    and waits for that request to unwind before it touches any state. Every
    outcome, including failures, is reported to the sink so the shell can
    always clear its processing indicator.
    """

    def __init__(self, screenshots, config_store, sink, ocr, compressor,
                 provider: Optional[ProviderClient] = None,
                 planner: Optional[PlannerAgent] = None,
                 controller: Optional[RetryController] = None,
                 store: Optional[ConversationStore] = None,
                 router: Optional[RouterAgent] = None):
        """
        Args:
            screenshots: Main/extra screenshot queues
            config_store: Object with ``get() -> AppConfig``
            sink: Progress, solution and error receiver
            ocr: OCR extractor used by the text path
            compressor: Image compressor used by the vision path
        """
        self.screenshots = screenshots
        self.config_store = config_store
        self.sink = sink

        self.provider = provider or ProviderClient(config_store)
        self.planner = planner or PlannerAgent(ocr, compressor)
        self.controller = controller or RetryController(self.provider, self.planner)
        self.store = store or ConversationStore()
        self.router = router or RouterAgent()

        self.view = VIEW_QUEUE
        self._inflight: Optional[Tuple[CancellationToken, asyncio.Event]] = None
        # Requests still waiting for the previous one to unwind
        self._pending: List[CancellationToken] = []

        print("✓ Solver Orchestrator initialized")

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    @property
    def is_processing(self) -> bool:
        return self._inflight is not None or bool(self._pending)

    async def _begin(self) -> CancellationToken:
        """
        Cancel and drain the in-flight request, then register a new token.

        The token exists from the first await on, so ``cancel()`` reaches a
        request that is still draining. Callers check it before doing work.
        """
        token = CancellationToken()
        self._pending.append(token)
        try:
            while self._inflight is not None:
                previous, done = self._inflight
                previous.cancel()
                await done.wait()
        finally:
            self._pending.remove(token)

        self._inflight = (token, asyncio.Event())
        return token

    def _ensure_current(self, token: CancellationToken):
        """A superseded or cancelled request must not update any state."""
        token.raise_if_cancelled()
        if self._inflight is None or self._inflight[0] is not token:
            raise RequestCancelled("Request was superseded")

    def _finish(self, token: CancellationToken):
        if self._inflight is not None and self._inflight[0] is token:
            _, done = self._inflight
            self._inflight = None
            done.set()

    def cancel(self) -> bool:
        """
        Cancel the in-flight request and any request waiting to start.

        Returns:
            False when nothing was in flight (no-op)
        """
        if self._inflight is None and not self._pending:
            return False
        print("⚠️ Cancelling in-flight request")
        for token in self._pending:
            token.cancel()
        if self._inflight is not None:
            self._inflight[0].cancel()
        return True

    def _aborted(self, kind: str) -> ProcessingResult:
        """Tell the sink the request ended so the shell drops its indicator."""
        print(f"⚠️ {kind} processing cancelled")
        self.sink.on_progress(MILESTONE_CANCELLED, 0, "Processing cancelled")
        return ProcessingResult.aborted()

    def _reject(self, error: Exception, context: str) -> ProcessingResult:
        result = handle_error(error, context)
        self.sink.on_error(result)
        return ProcessingResult.failed(result)

    # ------------------------------------------------------------------
    # Shared solve step
    # ------------------------------------------------------------------

    async def _solve(self, token: CancellationToken, paths: Sequence[str], mode: ProcessingMode,
                     system_prompt: str, user_prompt: str, history: Sequence[ConversationTurn],
                     analyzing_message: str, generating_message: str) -> RawResponse:
        selection = self.provider.select_model(mode)
        # Missing credentials fail before OCR or any network call
        self.provider.check_credentials(selection)

        if selection.is_text_only:
            self.sink.on_progress(MILESTONE_OCR, 30, "Extracting text from screenshots...")
        else:
            self.sink.on_progress(MILESTONE_ANALYZING, 30, analyzing_message)

        plan = await self.planner.build(paths, selection, token)
        token.raise_if_cancelled()

        self.sink.on_progress(MILESTONE_GENERATING, 60, generating_message)

        def on_retry(attempt: int, max_retries: int, error: ApiError):
            self.sink.on_progress(
                MILESTONE_GENERATING, 60,
                f"API temporarily unavailable. Retrying ({attempt}/{max_retries})..."
            )

        def on_fallback(notice: str):
            self.sink.on_progress(MILESTONE_GENERATING, 60, notice)

        return await self.controller.generate(
            system_prompt, user_prompt, plan, history, token, selection,
            on_retry=on_retry, on_fallback=on_fallback
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def process_initial(self, request: Optional[ProcessingRequest] = None) -> ProcessingResult:
        """
        Answer a new question from the main screenshot queue.

        Args:
            request: Explicit request; built from the main queue and the
                current configuration when omitted

        Returns:
            ProcessingResult with the parsed solution, an ErrorResult, or a
            cancellation marker
        """
        if request is None:
            config = self.config_store.get()
            request = ProcessingRequest(
                screenshot_paths=self.screenshots.get_main_queue(),
                mode=config.mode,
                preferred_language=config.language,
            )

        if not request.screenshot_paths:
            return self._reject(NoScreenshotsError(), "process_initial")

        token = await self._begin()
        try:
            token.raise_if_cancelled()
            print(f"📷 Processing {len(request.screenshot_paths)} screenshot(s) in {request.mode.value} mode")
            self.store.reset()

            raw = await self._solve(
                token,
                request.screenshot_paths,
                request.mode,
                get_system_prompt(request.mode, request.preferred_language),
                INITIAL_USER_PROMPT,
                history=[],
                analyzing_message="Analyzing screenshots...",
                generating_message="Generating solution...",
            )
            self._ensure_current(token)

            self.store.record_exchange(INITIAL_STIMULUS, raw.text)
            solution = self.router.classify(raw.text)

            self.sink.on_progress(MILESTONE_COMPLETE, 100, "Complete!")
            self.sink.on_solution("initial", solution)

            self.screenshots.clear_main_queue()
            self.view = VIEW_SOLUTIONS
            print(f"✓ Solution generated ({solution.question_type}) by {raw.model_id}")
            return ProcessingResult.ok(solution)

        except RequestCancelled:
            return self._aborted("Initial")
        except Exception as e:
            if token.cancelled:
                return self._aborted("Initial")
            self.view = VIEW_QUEUE
            return self._reject(e, "process_initial")
        finally:
            self._finish(token)

    async def process_debug(self, request: Optional[ProcessingRequest] = None) -> ProcessingResult:
        """
        Ask the model to fix its previous answer using error screenshots.

        The view stays on "solutions" whatever the outcome, so the user keeps
        the previous answer when debugging fails.
        """
        if self.view != VIEW_SOLUTIONS:
            return self._reject(NoScreenshotsError("No error screenshots provided"), "process_debug")

        if request is None:
            config = self.config_store.get()
            request = ProcessingRequest(
                screenshot_paths=self.screenshots.get_extra_queue(),
                mode=config.mode,
                preferred_language=config.language,
            )

        if not request.screenshot_paths:
            return self._reject(NoScreenshotsError("No error screenshots provided"), "process_debug")

        if not self.store.has_previous_response:
            return self._reject(ValidationError("No previous solution to debug"), "process_debug")

        token = await self._begin()
        try:
            token.raise_if_cancelled()
            print(f"🔧 Debugging with {len(request.screenshot_paths)} error screenshot(s)")
            debug_prompt = build_debug_prompt(self.store.last_response)

            raw = await self._solve(
                token,
                request.screenshot_paths,
                request.mode,
                get_debug_system_prompt(),
                debug_prompt,
                history=self.store.turns,
                analyzing_message="Analyzing errors...",
                generating_message="Fixing errors...",
            )
            self._ensure_current(token)

            self.store.record_exchange(debug_prompt, raw.text)
            solution = self.router.classify(raw.text)

            self.sink.on_progress(MILESTONE_COMPLETE, 100, "Complete!")
            self.sink.on_solution("debug", solution)

            self.screenshots.clear_extra_queue()
            self.view = VIEW_SOLUTIONS
            print(f"✓ Debug solution generated ({solution.question_type}) by {raw.model_id}")
            return ProcessingResult.ok(solution)

        except RequestCancelled:
            return self._aborted("Debug")
        except Exception as e:
            if token.cancelled:
                return self._aborted("Debug")
            return self._reject(e, "process_debug")
        finally:
            self._finish(token)

    async def process_screenshots(self) -> ProcessingResult:
        """
        Shell entry point: a non-empty main queue starts a new question,
        otherwise extra screenshots debug the current solution.
        """
        if self.screenshots.get_main_queue():
            self.view = VIEW_QUEUE
            return await self.process_initial()

        if self.view == VIEW_SOLUTIONS and self.screenshots.get_extra_queue():
            return await self.process_debug()

        return self._reject(NoScreenshotsError(), "process_screenshots")


def build_default_orchestrator(screenshots=None, sink=None) -> SolverOrchestrator:
    """Wire the orchestrator with EasyOCR, Pillow compression and env configuration."""
    from ocr.ocr_engine import OCREngine
    from utils.image_compressor import ImageCompressor

    return SolverOrchestrator(
        screenshots=screenshots or ScreenshotQueue(),
        config_store=EnvConfigStore(),
        sink=sink or ConsoleSink(),
        ocr=OCREngine(),
        compressor=ImageCompressor(),
    )
