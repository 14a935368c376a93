"""
Server-Sent Events for Content Generation

ProgressStream decouples the generation job from the HTTP response:

    stream = ProgressStream()
    stream.start(lambda: orchestrator.generate_content(
        request, on_progress=stream.progress, abort_event=stream.abort_event,
    ))
    return EventSourceResponse(stream.events(http_request))

Event names: progress, complete, aborted, error. Data is JSON.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from aeo.errors import AbortError

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 1.0


class ProgressStream:
    """
    Queue of SSE events with a closed flag.

    Args:
        abort_on_disconnect: Set abort_event when the client goes away.
            When False the job keeps running to completion in the background.
    """

    def __init__(self, abort_on_disconnect: bool = True, poll_interval: float = DISCONNECT_POLL_SECONDS):
        self.queue: "asyncio.Queue[Optional[Dict[str, str]]]" = asyncio.Queue()
        self.closed = False
        self.abort_event = asyncio.Event()
        self.abort_on_disconnect = abort_on_disconnect
        self.poll_interval = poll_interval
        self.task: Optional[asyncio.Task] = None

    async def send(self, event: str, data: Any) -> None:
        """Queue an event. No-op once the stream is closed."""
        if self.closed:
            return
        await self.queue.put({"event": event, "data": json.dumps(data, default=str)})

    async def progress(self, update) -> None:
        await self.send("progress", update.to_dict() if hasattr(update, "to_dict") else update)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self.queue.put(None)

    async def run(self, job: Callable[[], Awaitable[Any]]) -> None:
        """
        Run the job and translate its outcome into a terminal event.

        complete <- job result (its to_dict() when available)
        aborted  <- AbortError
        error    <- anything else
        """
        try:
            result = await job()
            await self.send("complete", result.to_dict() if hasattr(result, "to_dict") else result)
        except AbortError as e:
            logger.info(f"Content generation aborted: {e.message}")
            await self.send("aborted", {"phase": "aborted", "status": "error", "message": e.message})
        except Exception as e:
            logger.error(f"Content generation failed: {type(e).__name__}: {e}", exc_info=e)
            await self.send("error", {
                "phase": "error",
                "status": "error",
                "message": "Content generation failed",
                "details": str(e) or type(e).__name__,
            })
        finally:
            await self.close()

    def start(self, job: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """Run the job as a background task on the current loop."""
        self.task = asyncio.create_task(self.run(job))
        return self.task

    def abort(self) -> None:
        if not self.abort_event.is_set():
            logger.info("Client disconnected, aborting content generation")
            self.abort_event.set()

    async def events(self, request=None) -> AsyncIterator[Dict[str, str]]:
        """
        Yield queued events until the stream closes.

        Args:
            request: Starlette request, polled for client disconnect
        """
        finished = False
        try:
            while True:
                if request is not None and await request.is_disconnected():
                    break
                try:
                    item = await asyncio.wait_for(self.queue.get(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    continue
                if item is None:
                    finished = True
                    break
                yield item
        finally:
            if not finished and self.abort_on_disconnect:
                self.abort()
