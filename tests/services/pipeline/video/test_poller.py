"""
Tests for viralvibe.services.pipeline.video.poller
"""

import asyncio
from types import SimpleNamespace

import pytest

from viralvibe.config import PollSettings, RetryPolicy
from viralvibe.core.exceptions import (
    OperationFailedError,
    OperationTimeoutError,
    PipelineCancelledError,
    RetryExhaustedError,
    TransientIOError,
)
from viralvibe.services.infrastructure.orchestration import CancelToken
from viralvibe.services.pipeline.video.poller import OperationPoller, read_operation

POLL_RETRY = RetryPolicy(max_attempts=2, base_delay=0.0, jitter=0.0, transient_delay=0.0)


def settings(max_polls=5, cold_start=20.0, interval=12.0):
    return PollSettings(cold_start_seconds=cold_start, interval_seconds=interval, max_polls=max_polls)


def done_op(uri="https://video.example/out.mp4"):
    return {"done": True, "response": {"generated_videos": [{"video": {"uri": uri}}]}}


class ScriptedStatus:
    """Returns pending for the first ``pending`` queries, then ``final``."""

    def __init__(self, pending, final=None):
        self.pending = pending
        self.final = final if final is not None else done_op()
        self.calls = 0

    async def __call__(self, operation):
        self.calls += 1
        if self.calls <= self.pending:
            return {"done": False}
        return self.final


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class TestReadOperation:

    def test_dict_generated_videos(self):
        status = read_operation(done_op("https://x/1.mp4"))
        assert status.done
        assert status.uri == "https://x/1.mp4"
        assert status.error is None

    def test_dict_video_shape_and_camel_case(self):
        assert read_operation({"done": True, "response": {"video": {"uri": "u1"}}}).uri == "u1"
        camel = {"done": True, "response": {"generatedVideos": [{"video": {"uri": "u2"}}]}}
        assert read_operation(camel).uri == "u2"

    def test_error_message(self):
        status = read_operation({"done": True, "error": {"message": "safety filter"}})
        assert status.error == "safety filter"
        assert status.video is None

    def test_sdk_object(self):
        video = SimpleNamespace(uri="https://x/sdk.mp4")
        operation = SimpleNamespace(
            done=True,
            error=None,
            response=SimpleNamespace(generated_videos=[SimpleNamespace(video=video)]),
        )
        status = read_operation(operation)
        assert status.video is video
        assert status.uri == "https://x/sdk.mp4"

    def test_pending(self):
        assert not read_operation({"done": False}).done


@pytest.mark.asyncio
class TestOperationPoller:

    async def test_terminates_after_exactly_n_plus_one_queries(self):
        fetch = ScriptedStatus(pending=3)
        sleep = RecordingSleep()
        poller = OperationPoller(fetch, settings(max_polls=10), POLL_RETRY, sleep=sleep)

        video = await poller.poll({"done": False}, "initial video generation")

        assert fetch.calls == 4
        assert poller.queries == 4
        assert video.uri == "https://video.example/out.mp4"
        assert video.stage_label == "initial video generation"
        # cold start, then one interval between consecutive queries
        assert sleep.calls == [20.0, 12.0, 12.0, 12.0]

    async def test_done_on_entry_needs_no_query(self):
        fetch = ScriptedStatus(pending=0)
        sleep = RecordingSleep()
        poller = OperationPoller(fetch, settings(), POLL_RETRY, sleep=sleep)

        video = await poller.poll(done_op("https://x/ready.mp4"))

        assert video.uri == "https://x/ready.mp4"
        assert fetch.calls == 0
        assert sleep.calls == []

    async def test_timeout_after_max_polls(self):
        fetch = ScriptedStatus(pending=100)
        poller = OperationPoller(fetch, settings(max_polls=3), POLL_RETRY, sleep=RecordingSleep())

        with pytest.raises(OperationTimeoutError):
            await poller.poll({"done": False}, "video extension 1/2")

        assert fetch.calls == 3

    async def test_reported_error_fails(self):
        fetch = ScriptedStatus(pending=1, final={"done": True, "error": {"message": "blocked by policy"}})
        poller = OperationPoller(fetch, settings(), POLL_RETRY, sleep=RecordingSleep())

        with pytest.raises(OperationFailedError, match="blocked by policy"):
            await poller.poll({"done": False})

    async def test_error_without_done_fails_immediately(self):
        fetch = ScriptedStatus(pending=1, final={"done": False, "error": {"message": "quota policy violation"}})
        poller = OperationPoller(fetch, settings(max_polls=5), POLL_RETRY, sleep=RecordingSleep())

        with pytest.raises(OperationFailedError, match="quota policy violation"):
            await poller.poll({"done": False}, "video extension 2/2")

        assert fetch.calls == 2

    async def test_error_on_entry_needs_no_query(self):
        fetch = ScriptedStatus(pending=0)
        poller = OperationPoller(fetch, settings(), POLL_RETRY, sleep=RecordingSleep())

        with pytest.raises(OperationFailedError, match="rejected"):
            await poller.poll({"error": {"message": "rejected"}})

        assert fetch.calls == 0

    async def test_done_without_video_fails(self):
        fetch = ScriptedStatus(pending=0, final={"done": True, "response": {}})
        poller = OperationPoller(fetch, settings(), POLL_RETRY, sleep=RecordingSleep())

        with pytest.raises(OperationFailedError, match="without a video"):
            await poller.poll({"done": False})

    async def test_status_query_goes_through_retry(self):
        calls = {"count": 0}

        async def fetch(operation):
            calls["count"] += 1
            if calls["count"] == 1:
                raise TransientIOError("connection reset")
            return done_op()

        poller = OperationPoller(fetch, settings(), POLL_RETRY, sleep=RecordingSleep())
        video = await poller.poll({"done": False})

        assert video.uri == "https://video.example/out.mp4"
        assert calls["count"] == 2
        assert poller.queries == 1

    async def test_status_query_exhaustion_propagates(self):
        async def fetch(operation):
            raise TransientIOError("still down")

        poller = OperationPoller(fetch, settings(), POLL_RETRY, sleep=RecordingSleep())
        with pytest.raises(RetryExhaustedError):
            await poller.poll({"done": False})

    async def test_cancel_issues_final_query(self):
        token = CancelToken()
        fetch = ScriptedStatus(pending=100)
        messages = []

        def on_status(message):
            messages.append(message)
            if "check 2/" in message:
                token.cancel("user pressed stop")

        poller = OperationPoller(
            fetch, settings(max_polls=10), POLL_RETRY,
            cancel_token=token, on_status=on_status, sleep=RecordingSleep(),
        )

        with pytest.raises(PipelineCancelledError, match="user pressed stop"):
            await poller.poll({"done": False})

        # two regular queries plus the best-effort final one
        assert fetch.calls == 3

    async def test_cancel_during_real_sleep_wakes_immediately(self):
        token = CancelToken()
        fetch = ScriptedStatus(pending=100)
        poller = OperationPoller(fetch, settings(cold_start=60.0), POLL_RETRY, cancel_token=token)

        task = asyncio.create_task(poller.poll({"done": False}))
        await asyncio.sleep(0)
        token.cancel()

        with pytest.raises(PipelineCancelledError):
            await asyncio.wait_for(task, timeout=5)
        assert fetch.calls == 1

    async def test_final_query_errors_are_not_raised(self):
        token = CancelToken()
        token.cancel()

        async def fetch(operation):
            raise RuntimeError("network down")

        poller = OperationPoller(fetch, settings(), POLL_RETRY, cancel_token=token, sleep=RecordingSleep())
        with pytest.raises(PipelineCancelledError):
            await poller.poll({"done": False})
