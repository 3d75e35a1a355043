import asyncio
import unittest
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from openai import AsyncOpenAI

from mailcal.core.llm import _get_client, call_llm
from mailcal.services.extraction import (
    JSON_PARSE_ERROR_PREFIX,
    NO_FUNCTION_CALL_MESSAGE,
    ExtractionError,
    extract_event,
)


TODAY = date(2025, 6, 1)


def _tool_result(arguments, raw=None, name="extract_event_info"):
    return {
        "type": "tool",
        "tool_calls": [
            {"id": "call_1", "name": name, "arguments": arguments, "raw_arguments": raw or ""}
        ],
    }


class TestExtractEvent(unittest.TestCase):
    def test_returns_extracted_fields(self):
        async def run():
            llm_mock = AsyncMock(
                return_value=_tool_result(
                    {
                        "title": "会議",
                        "location": "東京",
                        "startTime": "2026-05-10T10:00:00",
                        "endTime": "2026-05-10T11:00:00",
                    }
                )
            )
            with patch("mailcal.services.extraction.call_llm", llm_mock):
                result = await extract_event("会議 on 5/10 at 10:00 in 東京", today=TODAY)

            self.assertEqual(
                result,
                {
                    "title": "会議",
                    "location": "東京",
                    "startTime": "2026-05-10T10:00:00",
                    "endTime": "2026-05-10T11:00:00",
                    "description": "",
                },
            )

            kwargs = llm_mock.await_args.kwargs
            self.assertEqual(
                kwargs["tool_choice"],
                {"type": "function", "function": {"name": "extract_event_info"}},
            )
            schema = kwargs["tools"][0]["function"]
            self.assertEqual(schema["name"], "extract_event_info")
            self.assertEqual(schema["parameters"]["required"], ["title", "startTime", "endTime"])

            messages = llm_mock.await_args.args[0]
            self.assertEqual(messages[0]["role"], "system")
            self.assertIn("2025-06-01", messages[0]["content"])
            self.assertIn("use 2026", messages[0]["content"])
            self.assertEqual(messages[1], {"role": "user", "content": "会議 on 5/10 at 10:00 in 東京"})

        asyncio.run(run())

    def test_null_fields_become_empty_strings(self):
        async def run():
            llm_mock = AsyncMock(return_value=_tool_result({"title": "x", "location": None}))
            with patch("mailcal.services.extraction.call_llm", llm_mock):
                result = await extract_event("x", today=TODAY)
            self.assertEqual(result["location"], "")
            self.assertEqual(result["startTime"], "")

        asyncio.run(run())

    def test_no_function_call(self):
        async def run():
            llm_mock = AsyncMock(return_value={"type": "message", "content": "I could not find an event."})
            with patch("mailcal.services.extraction.call_llm", llm_mock):
                result = await extract_event("hello", today=TODAY)
            self.assertEqual(result["title"], "")
            self.assertEqual(result["description"], NO_FUNCTION_CALL_MESSAGE)

        asyncio.run(run())

    def test_unparseable_arguments(self):
        async def run():
            llm_mock = AsyncMock(return_value=_tool_result(None, raw='{"title": "broken'))
            with patch("mailcal.services.extraction.call_llm", llm_mock):
                result = await extract_event("hello", today=TODAY)
            self.assertEqual(result["startTime"], "")
            self.assertEqual(result["description"], JSON_PARSE_ERROR_PREFIX + '{"title": "broken')

        asyncio.run(run())

    def test_llm_error_raises(self):
        async def run():
            llm_mock = AsyncMock(return_value={"type": "error", "error": "LLM_CALL_FAILED"})
            with patch("mailcal.services.extraction.call_llm", llm_mock):
                with self.assertRaises(ExtractionError):
                    await extract_event("hello", today=TODAY)

        asyncio.run(run())


def _fake_response(tool_calls=None, content=None):
    message = SimpleNamespace(tool_calls=tool_calls, content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestCallLlm(unittest.TestCase):
    def test_missing_api_key(self):
        with patch.dict("os.environ", {"OPENAI_API_KEY": ""}):
            result = asyncio.run(call_llm([{"role": "user", "content": "hi"}]))
        self.assertEqual(result["type"], "error")

    def test_tool_call_keeps_raw_arguments(self):
        call = SimpleNamespace(
            id="call_1",
            function=SimpleNamespace(name="extract_event_info", arguments='{"title": "x"'),
        )
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_fake_response(tool_calls=[call]))

        with patch("mailcal.core.llm._get_client", return_value=client):
            result = asyncio.run(
                call_llm(
                    [{"role": "user", "content": "hi"}],
                    tools=[{"type": "function", "function": {"name": "extract_event_info"}}],
                    tool_choice={"type": "function", "function": {"name": "extract_event_info"}},
                )
            )

        self.assertEqual(result["type"], "tool")
        parsed = result["tool_calls"][0]
        self.assertIsNone(parsed["arguments"])
        self.assertEqual(parsed["raw_arguments"], '{"title": "x"')
        create_kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(create_kwargs["tool_choice"]["function"]["name"], "extract_event_info")

    def test_plain_message(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_fake_response(content="hello"))

        with patch("mailcal.core.llm._get_client", return_value=client):
            result = asyncio.run(call_llm([{"role": "user", "content": "hi"}]))

        self.assertEqual(result, {"type": "message", "content": "hello"})
        self.assertNotIn("tools", client.chat.completions.create.call_args.kwargs)

    def test_api_failure(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("boom"))

        with patch("mailcal.core.llm._get_client", return_value=client):
            result = asyncio.run(call_llm([{"role": "user", "content": "hi"}]))

        self.assertEqual(result, {"type": "error", "error": "LLM_CALL_FAILED"})

    def test_client_is_async(self):
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            self.assertIsInstance(_get_client(), AsyncOpenAI)

    def test_other_tasks_run_while_waiting_for_model(self):
        async def run():
            other_ran = asyncio.Event()

            async def slow_create(**kwargs):
                await asyncio.wait_for(other_ran.wait(), timeout=1)
                return _fake_response(content="done")

            async def other_request():
                other_ran.set()

            client = MagicMock()
            client.chat.completions.create = AsyncMock(side_effect=slow_create)
            with patch("mailcal.core.llm._get_client", return_value=client):
                result, _ = await asyncio.gather(
                    call_llm([{"role": "user", "content": "hi"}]),
                    other_request(),
                )

            self.assertEqual(result, {"type": "message", "content": "done"})
            client.chat.completions.create.assert_awaited_once()

        asyncio.run(run())


if __name__ == "__main__":
    unittest.main()
