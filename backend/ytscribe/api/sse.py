"""
Server-Sent Events streaming for transcript jobs.

The job runs as its own task and pushes events onto a queue; the response
generator drains the queue and yields one "data: {json}" frame per event.
If the client disconnects, the generator is torn down and the job is told
to stop at its next stage boundary; in-flight provider calls finish on
their own clock and cleanup still runs.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from typing import Any, Awaitable, Callable

from fastapi.responses import StreamingResponse

from ytscribe.services.pipeline import CancelCheck, EventSink

logger = logging.getLogger(__name__)

JobRunner = Callable[[EventSink, CancelCheck], Awaitable[Any]]

# Strong references to running jobs; the event loop only keeps weak ones
_running_jobs: set[asyncio.Task] = set()


def encode_event(payload: dict) -> str:
    """Encode one event as an SSE frame."""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def stream_job(run_job: JobRunner) -> AsyncGenerator[str, None]:
    """
    Run a job and yield its events as SSE frames.

    Args:
        run_job: Coroutine function taking (sink, is_cancelled)

    Yields:
        SSE frames in format "data: {...}\\n\\n", terminal event last
    """
    queue: asyncio.Queue[dict | None] = asyncio.Queue()
    disconnected = asyncio.Event()

    async def sink(payload: dict) -> None:
        if not disconnected.is_set():
            await queue.put(payload)

    async def run() -> None:
        try:
            await run_job(sink, disconnected.is_set)
        except Exception:
            logger.exception("Job task crashed")
        finally:
            await queue.put(None)

    task = asyncio.create_task(run())
    _running_jobs.add(task)
    task.add_done_callback(_running_jobs.discard)

    completed = False
    try:
        while True:
            event = await queue.get()
            if event is None:
                completed = True
                break
            yield encode_event(event)
    finally:
        if not completed:
            disconnected.set()
            logger.info("Client disconnected, job will stop at the next stage boundary")


def create_sse_response(generator: AsyncGenerator[str, None]) -> StreamingResponse:
    """Create SSE StreamingResponse with proper headers."""
    return StreamingResponse(
        generator,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
