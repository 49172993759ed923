"""
Step Watchdog

Wraps one orchestration step with a deadline and logs its start, success,
failure or timeout with the elapsed time.
"""
import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from ...errors import KbAssistError, StepTimeout

logger = logging.getLogger(__name__)


def _discard_outcome(task: asyncio.Future) -> None:
    # Retrieve the late result so asyncio does not report it as unhandled
    if not task.cancelled():
        task.exception()


async def with_deadline(
    label: str,
    timeout: float,
    fn: Callable[[], Union[Awaitable[Any], Any]],
    *,
    request_id: Optional[str] = None,
    timings: Optional[Dict[str, int]] = None,
) -> Any:
    """
    Run ``fn()`` and return its result, failing with StepTimeout after ``timeout`` seconds.

    A timed-out step is cancelled and whatever it produces afterwards is
    dropped. Errors of the step propagate unchanged; a KbAssistError without
    a stage is tagged with ``label``.

    Args:
        label: Stage name used in logs and on errors
        timeout: Deadline in seconds
        fn: Zero-argument callable returning an awaitable (or a plain value)
        request_id: Prefix for log lines
        timings: Optional dict receiving the elapsed milliseconds under ``label``
    """
    prefix = f"[{request_id}] " if request_id else ""
    started = time.perf_counter()

    def _elapsed_ms() -> int:
        return int((time.perf_counter() - started) * 1000)

    logger.info(f"{prefix}> {label} start")
    try:
        outcome = fn()
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            done, _ = await asyncio.wait({task}, timeout=timeout)
            if not done:
                task.cancel()
                task.add_done_callback(_discard_outcome)
                elapsed = _elapsed_ms()
                if timings is not None:
                    timings[label] = elapsed
                logger.warning(f"{prefix}> {label} TIMEOUT after {elapsed}ms")
                raise StepTimeout(label, timeout)
            result = task.result()
        else:
            result = outcome
    except StepTimeout:
        raise
    except Exception as e:
        elapsed = _elapsed_ms()
        if timings is not None:
            timings[label] = elapsed
        logger.warning(f"{prefix}> {label} FAIL {elapsed}ms: {e}")
        if isinstance(e, KbAssistError):
            e.tag_stage(label)
        raise

    elapsed = _elapsed_ms()
    if timings is not None:
        timings[label] = elapsed
    logger.info(f"{prefix}> {label} ok {elapsed}ms")
    return result
