"""Capture service client over an httpx mock transport."""

import json

import httpx
import pytest

from src.core.config.models import RetrievalConfig
from src.core.exceptions import RetrievalError
from src.retrieval.client import CaptureServiceClient, sanitize_search_query
from src.retrieval.notifications import DesktopNotifier


def test_sanitize_strips_search_operators():
    assert sanitize_search_query('"louis" OR (lou*)?') == "louis OR lou"


class TestQuery:
    @pytest.mark.asyncio
    async def test_search_params_and_audio_text_mapping(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json={"data": [
                {"type": "Audio", "content": {"transcription": "budget is final", "timestamp": "2024-03-01T12:00:00Z"}},
                {"type": "OCR", "content": {"text": "Budget.xlsx", "timestamp": "2024-03-01T12:01:00Z", "app_name": "Excel"}},
            ]})

        client = CaptureServiceClient(RetrievalConfig(), transport=httpx.MockTransport(handler))

        items = await client.query("louis OR lou", "all", start_time="2024-03-01T00:00:00Z", limit=5, min_length=10)

        assert seen["q"] == "louis OR lou"
        assert seen["content_type"] == "all"
        assert seen["limit"] == "5"
        assert seen["include_frames"] == "false"
        assert "end_time" not in seen
        assert [i.type for i in items] == ["audio", "ocr"]
        assert items[0].content.text == "budget is final"
        assert items[1].content.app_name == "Excel"

    @pytest.mark.asyncio
    async def test_error_status_raises_retrieval_error(self):
        client = CaptureServiceClient(RetrievalConfig(), transport=httpx.MockTransport(lambda r: httpx.Response(503, text="busy")))

        with pytest.raises(RetrievalError, match="503"):
            await client.query("x", "ocr")


class TestStreams:
    @pytest.mark.asyncio
    async def test_vision_stream_parses_data_lines(self):
        body = "\n".join([
            "data: " + json.dumps({"data": {"text": "hello", "app_name": "Slack"}}),
            "",
            ": keepalive",
            "data: not-json",
            "data: " + json.dumps({"text": "bye", "app_name": "Mail", "timestamp": "t"}),
            "",
        ])
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text=body, headers={"content-type": "text/event-stream"}))
        client = CaptureServiceClient(RetrievalConfig(), transport=transport)

        events = [e async for e in client.stream_vision()]

        assert [(e.text, e.app_name) for e in events] == [("hello", "Slack"), ("bye", "Mail")]

    @pytest.mark.asyncio
    async def test_transcription_stream_reads_choices_and_metadata(self):
        payload = {"choices": [{"text": "call me"}], "metadata": {"timestamp": "t1", "device": "mic", "isInput": True}}
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text=f"data: {json.dumps(payload)}\n\n"))
        client = CaptureServiceClient(RetrievalConfig(), transport=transport)

        events = [e async for e in client.stream_transcriptions()]

        assert events[0].text == "call me"
        assert events[0].device == "mic"
        assert events[0].is_input is True


class TestDesktopNotifier:
    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        notifier = DesktopNotifier("http://notify.local/notify", transport=httpx.MockTransport(handler))

        await notifier.send_desktop_notification("title", "body")

    @pytest.mark.asyncio
    async def test_actions_are_sent_when_given(self):
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return httpx.Response(200)

        notifier = DesktopNotifier("http://notify.local/notify", transport=httpx.MockTransport(handler))

        await notifier.send_desktop_notification("Doc", "ready", actions=[{"id": "view", "label": "View"}])

        assert sent == [{"title": "Doc", "body": "ready", "actions": [{"id": "view", "label": "View"}]}]
