"""Chat proxy forwarding and reply parsing."""
import asyncio
import json
import time

import httpx
import pytest

from tribe_api.coach import (
    COACHING,
    THERAPY,
    NOT_UNDERSTOOD_MESSAGE,
    UNAVAILABLE_MESSAGE,
    extract_result,
    forward_chat,
    normalize_reply,
    structured_result,
)
from tribe_api.clients.workflow_client import WorkflowClient
from helpers import run, workflow_client

PAYLOAD = {"message": "سلام", "user_id": "u-1", "timestamp": "2026-01-01T10:00:00+00:00"}


class TestNormalizeReply:
    def test_list_with_output(self):
        assert normalize_reply([{"output": "x"}]) == "x"

    def test_response_field(self):
        assert normalize_reply({"response": "y"}) == "y"

    def test_message_field(self):
        assert normalize_reply({"message": "z"}) == "z"

    @pytest.mark.parametrize("body", [{}, [], [{}], [{"output": ""}], "plain", None, {"other": 1}])
    def test_anything_else_falls_back(self, body):
        assert normalize_reply(body) == NOT_UNDERSTOOD_MESSAGE


class TestExtractResult:
    def test_trailing_block_is_stripped(self):
        text = 'جلسه خوبی بود.\n```json\n{"status":"done","result":"کوچینگ"}\n```'
        display, label = extract_result(text)
        assert display == "جلسه خوبی بود."
        assert label == COACHING

    def test_spacing_and_missing_language_tag(self):
        text = 'ممنون\n```\n{ "status": "done", "result": "تراپی" }\n```\n'
        assert extract_result(text) == ("ممنون", THERAPY)

    def test_block_not_at_end_is_ignored(self):
        text = '```json\n{"status":"done","result":"کوچینگ"}\n```\nادامه بدهیم؟'
        assert extract_result(text) == (text, None)

    def test_unknown_label_is_ignored(self):
        text = 'متن\n```json\n{"status":"done","result":"یوگا"}\n```'
        assert extract_result(text) == (text, None)

    def test_plain_text(self):
        assert extract_result("سلام") == ("سلام", None)


def test_structured_result():
    assert structured_result({"status": "done", "result": COACHING}) == COACHING
    assert structured_result({"status": "pending", "result": COACHING}) is None
    assert structured_result([{"output": "x"}]) is None


class TestForwardChat:
    def test_json_passes_through_with_upstream_status(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=[{"output": "پاسخ"}])

        status, body = run(forward_chat(PAYLOAD, workflow_client(handler)))
        assert status == 201
        assert body == [{"output": "پاسخ"}]
        assert seen["method"] == "PUT"
        assert seen["body"] == PAYLOAD

    def test_non_json_is_wrapped(self):
        handler = lambda request: httpx.Response(200, text="just text")
        status, body = run(forward_chat(PAYLOAD, workflow_client(handler)))
        assert status == 200
        assert body == [{"output": "just text"}]

    def test_upstream_error_degrades_to_fallback(self):
        handler = lambda request: httpx.Response(502, text="bad gateway")
        assert run(forward_chat(PAYLOAD, workflow_client(handler))) == (200, [{"output": UNAVAILABLE_MESSAGE}])

    @pytest.mark.parametrize("exc", [httpx.ConnectError, httpx.ReadTimeout])
    def test_network_failure_degrades_to_fallback(self, exc):
        def handler(request):
            raise exc("boom", request=request)

        assert run(forward_chat(PAYLOAD, workflow_client(handler))) == (200, [{"output": UNAVAILABLE_MESSAGE}])

    def test_slow_drip_upstream_is_cut_off(self):
        async def drip():
            for _ in range(40):
                await asyncio.sleep(0.05)
                yield b"x"

        def handler(request):
            return httpx.Response(200, content=drip())

        client = WorkflowClient("http://workflow.test/webhook/coach", timeout=0.2, transport=httpx.MockTransport(handler))

        async def timed():
            started = time.monotonic()
            result = await forward_chat(PAYLOAD, client)
            return result, time.monotonic() - started

        result, elapsed = run(timed())
        assert result == (200, [{"output": UNAVAILABLE_MESSAGE}])
        assert elapsed < 1.0
