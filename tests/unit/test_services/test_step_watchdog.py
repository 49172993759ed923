"""Unit tests for the step watchdog."""

import asyncio
import logging
import time

import pytest

from kb_assist.api.services.step_watchdog import with_deadline
from kb_assist.errors import EmbeddingUnavailable, StepTimeout


@pytest.mark.asyncio
async def test_returns_result_and_records_timing(caplog):
    async def _step():
        await asyncio.sleep(0)
        return 42

    timings = {}
    with caplog.at_level(logging.INFO):
        result = await with_deadline("embed", 1.0, _step, request_id="abc", timings=timings)

    assert result == 42
    assert "embed" in timings
    assert "[abc] > embed start" in caplog.text
    assert "[abc] > embed ok" in caplog.text


@pytest.mark.asyncio
async def test_timeout_fails_within_deadline_plus_margin():
    cancelled = []

    async def _slow():
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    started = time.perf_counter()
    with pytest.raises(StepTimeout) as exc:
        await with_deadline("generate", 0.05, _slow)
    elapsed = time.perf_counter() - started
    await asyncio.sleep(0.01)

    assert exc.value.stage == "generate"
    assert exc.value.timeout == 0.05
    assert elapsed < 0.05 + 0.5
    assert cancelled == [True]


@pytest.mark.asyncio
async def test_late_failure_of_timed_out_step_is_not_surfaced():
    async def _slow_then_fail():
        try:
            await asyncio.sleep(1)
        finally:
            raise RuntimeError("late")

    with pytest.raises(StepTimeout):
        await with_deadline("search_org", 0.01, _slow_then_fail)
    await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_failure_is_logged_and_tagged_with_stage(caplog):
    async def _failing():
        raise EmbeddingUnavailable("connection refused")

    with caplog.at_level(logging.INFO):
        with pytest.raises(EmbeddingUnavailable) as exc:
            await with_deadline("embed", 1.0, _failing, request_id="r1")

    assert exc.value.stage == "embed"
    assert str(exc.value) == "[embed] connection refused"
    assert "[r1] > embed FAIL" in caplog.text


@pytest.mark.asyncio
async def test_existing_stage_is_kept():
    async def _failing():
        raise StepTimeout("embed", 1.0)

    with pytest.raises(StepTimeout) as exc:
        await with_deadline("outer", 1.0, _failing)

    assert exc.value.stage == "embed"


@pytest.mark.asyncio
async def test_plain_value_steps_are_supported():
    result = await with_deadline("build_prompt", 1.0, lambda: "prompt text")

    assert result == "prompt text"


@pytest.mark.asyncio
async def test_non_pipeline_errors_propagate_unchanged():
    async def _failing():
        raise ValueError("bad input")

    with pytest.raises(ValueError, match="bad input"):
        await with_deadline("search_domain", 1.0, _failing)
