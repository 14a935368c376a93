"""
Progress Stream Tests

Tests for SSE event translation, terminal events and abort on client
disconnect.
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from aeo.content import ContentOrchestrator, ContentRequest, ProgressStream, ProgressUpdate
from aeo.errors import AbortError, check_aborted
from aeo.integrations import ApiResult


# =============================================================================
# FIXTURES
# =============================================================================

class Result:
    def to_dict(self):
        return {"content": "# Done", "revisionCount": 0}


def disconnected_request():
    request = MagicMock()
    request.is_disconnected = AsyncMock(return_value=True)
    return request


async def collect(stream, request=None):
    return [(event["event"], json.loads(event["data"])) async for event in stream.events(request)]


# =============================================================================
# EVENTS
# =============================================================================

class TestProgressStream:
    """Tests for job outcome translation."""

    @pytest.mark.asyncio
    async def test_progress_then_complete(self):
        stream = ProgressStream(poll_interval=0.01)

        async def job():
            await stream.progress(ProgressUpdate("research", "in_progress", "Researching topic..."))
            return Result()

        stream.start(job)
        events = await collect(stream)

        assert events == [
            ("progress", {"phase": "research", "status": "in_progress", "message": "Researching topic..."}),
            ("complete", {"content": "# Done", "revisionCount": 0}),
        ]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_abort_error_becomes_aborted_event(self):
        stream = ProgressStream(poll_interval=0.01)

        async def job():
            raise AbortError("Operation aborted: before QA round 1")

        stream.start(job)
        events = await collect(stream)

        assert events == [("aborted", {
            "phase": "aborted", "status": "error", "message": "Operation aborted: before QA round 1",
        })]

    @pytest.mark.asyncio
    async def test_failure_becomes_error_event(self):
        stream = ProgressStream(poll_interval=0.01)

        async def job():
            raise RuntimeError("model overloaded")

        stream.start(job)
        events = await collect(stream)

        name, data = events[0]
        assert name == "error"
        assert data["message"] == "Content generation failed"
        assert data["details"] == "model overloaded"

    @pytest.mark.asyncio
    async def test_send_after_close_is_ignored(self):
        stream = ProgressStream()
        await stream.close()
        await stream.send("progress", {"phase": "late"})

        assert await collect(stream) == []


# =============================================================================
# DISCONNECT
# =============================================================================

class TestDisconnect:
    """Tests for client disconnect handling."""

    @pytest.mark.asyncio
    async def test_disconnect_aborts_job(self):
        stream = ProgressStream(poll_interval=0.01)

        async def job():
            await stream.abort_event.wait()
            check_aborted(stream.abort_event, "before writing")

        stream.start(job)
        events = await collect(stream, disconnected_request())
        await asyncio.wait_for(stream.task, timeout=1)

        assert events == []
        assert stream.abort_event.is_set()
        assert stream.closed

    @pytest.mark.asyncio
    async def test_disconnect_without_abort_keeps_running(self):
        stream = ProgressStream(abort_on_disconnect=False, poll_interval=0.01)
        finished = asyncio.Event()

        async def job():
            await asyncio.sleep(0)
            finished.set()
            return {"ok": True}

        stream.start(job)
        await collect(stream, disconnected_request())
        await asyncio.wait_for(stream.task, timeout=1)

        assert not stream.abort_event.is_set()
        assert finished.is_set()

    @pytest.mark.asyncio
    async def test_disconnect_mid_generation_queues_aborted(self):
        """A client leaving during the draft stops the pipeline and leaves an aborted event behind."""
        stream = ProgressStream(poll_interval=0.01)
        seen = []

        async def write(*args, **kwargs):
            await stream.abort_event.wait()
            return ApiResult.ok(SimpleNamespace(content="# Draft\n\nBody text."))

        llm = MagicMock()
        llm.default_provider = "anthropic"
        llm.complete = AsyncMock(side_effect=write)
        llm.complete_json = AsyncMock()
        orchestrator = ContentOrchestrator(llm)
        request = ContentRequest(topic="CRM for small teams", type="blog_post", keywords=["crm"])

        http_request = MagicMock()
        http_request.is_disconnected = AsyncMock(side_effect=lambda: bool(seen))

        stream.start(lambda: orchestrator.generate_content(
            request, on_progress=stream.progress, abort_event=stream.abort_event,
        ))
        async for event in stream.events(http_request):
            seen.append(event["event"])
        await asyncio.wait_for(stream.task, timeout=1)

        remaining = []
        while not stream.queue.empty():
            item = stream.queue.get_nowait()
            remaining.append(item["event"] if item else None)

        assert seen == ["progress"]
        assert remaining[-2:] == ["aborted", None]
        assert "complete" not in remaining
        llm.complete_json.assert_not_awaited()
        assert stream.closed
