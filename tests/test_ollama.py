import http.client
import json
import sys
import tempfile
import unittest
import urllib.error
from pathlib import Path
from typing import Union
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from doc_organizer.ollama import OllamaClient, OllamaError  # noqa: E402


class _FakeResponse:
    def __init__(self, payload: Union[str, bytes]) -> None:
        self._payload = payload

    def read(self) -> bytes:
        if isinstance(self._payload, bytes):
            return self._payload
        return self._payload.encode("utf-8")

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


class OllamaFallbackTests(unittest.TestCase):
    def test_generate_uses_fallback_model(self) -> None:
        client = OllamaClient("http://localhost:11434", fallback_model="llama3")
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.side_effect = [
                urllib.error.URLError("boom"),
                _FakeResponse('{"response": "ok"}'),
            ]
            result = client.generate(model="gpt-oss:20b", prompt="hi")
            self.assertEqual(result, "ok")
            self.assertEqual(mocked.call_count, 2)
            second = json.loads(mocked.call_args_list[1][0][0].data)
            self.assertEqual(second["model"], "llama3")

    def test_error_without_fallback(self) -> None:
        client = OllamaClient("http://localhost:11434")
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.side_effect = urllib.error.URLError("refused")
            with self.assertRaises(OllamaError) as ctx:
                client.generate(model="llama3", prompt="hi")
            self.assertEqual(ctx.exception.error_type, "URLError")

    def test_invalid_json(self) -> None:
        client = OllamaClient("http://localhost:11434")
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.return_value = _FakeResponse("not json")
            with self.assertRaises(OllamaError):
                client.generate(model="llama3", prompt="hi")

    def test_missing_response_field(self) -> None:
        client = OllamaClient("http://localhost:11434")
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.return_value = _FakeResponse('{"done": true}')
            with self.assertRaises(OllamaError) as ctx:
                client.generate(model="llama3", prompt="hi")
            self.assertEqual(ctx.exception.error_type, "MissingResponseField")

    def test_non_utf8_body(self) -> None:
        client = OllamaClient("http://localhost:11434")
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.return_value = _FakeResponse(b"\xff\xfe not utf8")
            with self.assertRaises(OllamaError) as ctx:
                client.generate(model="llama3", prompt="hi")
            self.assertEqual(ctx.exception.error_type, "UnicodeDecodeError")

    def test_truncated_body(self) -> None:
        client = OllamaClient("http://localhost:11434")
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.return_value.__enter__.return_value.read.side_effect = (
                http.client.IncompleteRead(b"{\"resp")
            )
            with self.assertRaises(OllamaError) as ctx:
                client.generate(model="llama3", prompt="hi")
            self.assertEqual(ctx.exception.error_type, "IncompleteRead")


class OllamaPayloadTests(unittest.TestCase):
    def test_payload_carries_options_and_format(self) -> None:
        client = OllamaClient("http://localhost:11434/")
        schema = {"type": "object"}
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.return_value = _FakeResponse('{"response": "{}"}')
            client.generate(
                model="gpt-oss:20b",
                prompt="classify",
                system="expert",
                temperature=0.2,
                response_format=schema,
            )
            req = mocked.call_args[0][0]
            self.assertEqual(req.full_url, "http://localhost:11434/api/generate")
            payload = json.loads(req.data)
            self.assertEqual(payload["options"], {"temperature": 0.2})
            self.assertEqual(payload["format"], schema)
            self.assertEqual(payload["system"], "expert")
            self.assertEqual(payload["think"], "low")
            self.assertFalse(payload["stream"])

    def test_think_disabled(self) -> None:
        client = OllamaClient("http://localhost:11434", gpt_oss_think_level="off")
        with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
            mocked.return_value = _FakeResponse('{"response": "x"}')
            client.generate(model="gpt-oss:20b", prompt="p")
            payload = json.loads(mocked.call_args[0][0].data)
            self.assertNotIn("think", payload)

    def test_each_attempt_is_logged(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "ai.jsonl"
            client = OllamaClient(
                "http://localhost:11434", log_path=log_path, fallback_model="llama3"
            )
            with mock.patch("doc_organizer.ollama.urllib.request.urlopen") as mocked:
                mocked.side_effect = [
                    urllib.error.URLError("boom"),
                    _FakeResponse('{"response": "ok"}'),
                ]
                client.generate(
                    model="gpt-oss:20b",
                    prompt="hi",
                    response_format={"type": "object"},
                    log_context={"operation": "classify-document"},
                )
            entries = [json.loads(line) for line in log_path.read_text().splitlines()]
            self.assertEqual(len(entries), 2)
            self.assertFalse(entries[0]["success"])
            self.assertEqual(entries[0]["error_type"], "URLError")
            self.assertTrue(entries[1]["success"])
            self.assertEqual(entries[1]["event"], "ollama.classify")
            self.assertNotIn("response", entries[1])


if __name__ == "__main__":
    unittest.main()
