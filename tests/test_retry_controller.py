import asyncio

import pytest

from conftest import HANG, FakeOcr, ScriptedBackend, build_harness, make_config
from core.cancellation import CancellationToken
from core.config import DEFAULT_GROQ_MODEL, FALLBACK_MODEL
from core.errors import ApiError, ConfigError, RequestCancelled
from core.types import ExecutionPlan, ProcessingMode
from llm.retry_controller import FALLBACK_NOTICE, RetryController


PATHS = ("q1.png", "q2.png")


def vision_plan():
    return ExecutionPlan.vision(["b64:q1.png", "b64:q2.png"], screenshot_paths=PATHS)


def api_error(status, retryable=None):
    return ApiError(f"status {status}", "Groq", status_code=status, retryable=retryable)


def run_generate(harness, controller=None, plan=None, on_retry=None, on_fallback=None):
    controller = controller or harness.controller

    async def scenario():
        token = CancellationToken()
        selection = harness.provider.select_model()
        return await controller.generate(
            "system", "user", plan or vision_plan(), [], token, selection,
            on_retry=on_retry, on_fallback=on_fallback
        )

    return asyncio.run(scenario())


def test_backoff_delays():
    controller = RetryController(provider=None, planner=None, base_delay=1.0, max_delay=5.0)
    assert [controller.backoff_delay(k) for k in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_503_exhausts_exactly_max_retries():
    harness = build_harness(groq=ScriptedBackend([api_error(503)]))

    with pytest.raises(ApiError) as info:
        run_generate(harness)

    assert info.value.status_code == 503
    assert info.value.retryable is True
    assert len(harness.groq.calls) == 3


def test_transient_errors_then_success():
    harness = build_harness(groq=ScriptedBackend([api_error(503), api_error(None, retryable=True), "FINAL ANSWER: 4"]))
    retries = []

    raw = run_generate(harness, on_retry=lambda attempt, total, error: retries.append((attempt, total)))

    assert raw.text == "FINAL ANSWER: 4"
    assert raw.used_fallback_model is False
    assert raw.model_id == DEFAULT_GROQ_MODEL
    assert retries == [(1, 3), (2, 3)]
    assert len(harness.groq.calls) == 3


def test_non_retryable_error_fails_on_first_attempt():
    harness = build_harness(groq=ScriptedBackend([api_error(400)]))

    with pytest.raises(ApiError) as info:
        run_generate(harness)

    assert info.value.retryable is False
    assert len(harness.groq.calls) == 1


def test_primary_rate_limit_escalates_once():
    groq = ScriptedBackend(by_model={
        DEFAULT_GROQ_MODEL: [api_error(429)],
        FALLBACK_MODEL: ["FINAL ANSWER: option 2) 7"],
    })
    harness = build_harness(groq=groq)
    notices = []

    raw = run_generate(harness, on_fallback=notices.append)

    assert raw.used_fallback_model is True
    assert raw.model_id == FALLBACK_MODEL
    assert groq.models_called() == [DEFAULT_GROQ_MODEL, FALLBACK_MODEL]
    assert notices == [FALLBACK_NOTICE]

    # OCR ran once, in queue order, and the secondary got text plus the OCR warning
    assert harness.ocr.calls == [list(PATHS)]
    secondary_call = groq.calls[1]
    assert secondary_call.plan.use_vision is False
    assert "OCR" in secondary_call.system_prompt
    assert "FINAL ANSWER: option {number}) {your answer}" in secondary_call.system_prompt
    assert harness.provider.is_degraded()


def test_secondary_rate_limit_is_retried_without_second_escalation():
    groq = ScriptedBackend(by_model={
        DEFAULT_GROQ_MODEL: [api_error(429)],
        FALLBACK_MODEL: [api_error(429)],
    })
    harness = build_harness(groq=groq)

    with pytest.raises(ApiError) as info:
        run_generate(harness)

    assert info.value.status_code == 429
    assert groq.models_called() == [DEFAULT_GROQ_MODEL] + [FALLBACK_MODEL] * 3


def test_rate_limit_without_fallback_is_plain_retry():
    harness = build_harness(
        config=make_config(allow_fallback=False),
        groq=ScriptedBackend([api_error(429)]),
    )

    with pytest.raises(ApiError):
        run_generate(harness)

    assert harness.groq.models_called() == [DEFAULT_GROQ_MODEL] * 3
    assert harness.ocr.calls == []


def test_text_only_primary_rate_limit_is_plain_retry():
    groq = ScriptedBackend(by_model={
        "llama-3.3-70b-versatile": [api_error(429)],
        FALLBACK_MODEL: ["FINAL ANSWER: 4"],
    })
    harness = build_harness(config=make_config(model_id="llama-3.3-70b-versatile"), groq=groq)
    notices = []

    with pytest.raises(ApiError) as info:
        run_generate(harness, plan=ExecutionPlan.text("2+2=?", screenshot_paths=PATHS),
                     on_fallback=notices.append)

    assert info.value.status_code == 429
    assert groq.models_called() == ["llama-3.3-70b-versatile"] * 3
    assert notices == []
    assert harness.ocr.calls == []
    assert not harness.provider.is_degraded()


def test_exhausted_retries_log_the_last_error(capsys):
    harness = build_harness(config=make_config(allow_fallback=False),
                            groq=ScriptedBackend([api_error(429), api_error(503)]))

    with pytest.raises(ApiError):
        run_generate(harness)

    out = capsys.readouterr().out
    assert "Giving up after 3 attempts, last error: Groq [503]: status 503" in out


def test_text_only_model_gets_format_addendum():
    harness = build_harness(config=make_config(model_id=FALLBACK_MODEL))

    run_generate(harness, plan=ExecutionPlan.text("2+2=?"))

    prompt = harness.groq.calls[0].system_prompt
    assert prompt.startswith("system")
    assert "CRITICAL FOR ACCURACY AND FORMAT" in prompt
    assert "OCR" not in prompt


def test_missing_api_key_raises_config_error_before_any_call():
    harness = build_harness(config=make_config(api_key=""))

    with pytest.raises(ConfigError):
        run_generate(harness)

    assert harness.groq.calls == []


def test_request_timeout_is_retryable():
    harness = build_harness(groq=ScriptedBackend([HANG]))
    controller = RetryController(harness.provider, harness.orchestrator.planner,
                                 base_delay=0, max_delay=0, request_timeout=0.01)

    with pytest.raises(ApiError) as info:
        run_generate(harness, controller=controller)

    assert info.value.retryable is True
    assert info.value.status_code is None
    assert len(harness.groq.calls) == 3


def test_cancel_during_request():
    harness = build_harness(groq=ScriptedBackend([HANG]))

    async def scenario():
        token = CancellationToken()
        selection = harness.provider.select_model()
        task = asyncio.ensure_future(harness.controller.generate(
            "system", "user", vision_plan(), [], token, selection
        ))
        while not harness.groq.calls:
            await asyncio.sleep(0)
        token.cancel()
        return await task

    with pytest.raises(RequestCancelled):
        asyncio.run(scenario())

    assert len(harness.groq.calls) == 1


def test_cancel_during_backoff_stops_retrying():
    harness = build_harness(groq=ScriptedBackend([api_error(503)]))
    controller = RetryController(harness.provider, harness.orchestrator.planner,
                                 base_delay=30, max_delay=30)

    async def scenario():
        token = CancellationToken()
        selection = harness.provider.select_model()
        task = asyncio.ensure_future(controller.generate(
            "system", "user", vision_plan(), [], token, selection
        ))
        while not harness.groq.calls:
            await asyncio.sleep(0)
        await asyncio.sleep(0.01)
        token.cancel()
        return await asyncio.wait_for(task, timeout=5)

    with pytest.raises(RequestCancelled):
        asyncio.run(scenario())

    assert len(harness.groq.calls) == 1


def test_gemini_rate_limit_escalates_to_groq_secondary():
    gemini = ScriptedBackend([ApiError("quota", "Gemini", status_code=429)])
    groq = ScriptedBackend(["```python\nprint(1)\n```"])
    harness = build_harness(config=make_config(mode=ProcessingMode.CODING), gemini=gemini, groq=groq,
                            ocr=FakeOcr({"q1.png": "write print(1)"}))

    raw = run_generate(harness)

    assert raw.used_fallback_model is True
    assert len(gemini.calls) == 1
    assert groq.models_called() == [FALLBACK_MODEL]
    assert groq.calls[0].plan.extracted_text == "write print(1)"
