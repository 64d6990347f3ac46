import sys
import tempfile
import unittest
from pathlib import Path
from typing import Any, Dict, List

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from doc_organizer.ai_classifier import (  # noqa: E402
    OllamaClassifier,
    build_external_classifier,
    build_prompt,
    parse_classification,
)
from doc_organizer.classifier import Classification  # noqa: E402
from doc_organizer.config import build_config  # noqa: E402
from doc_organizer.fallback import build_request  # noqa: E402

CATEGORIES = ["features", "audits", "setup"]


class DummyClient:
    def __init__(self, response: str) -> None:
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    def generate(self, **kwargs: Any) -> str:
        self.calls.append(kwargs)
        return self.response


class ParseClassificationTests(unittest.TestCase):
    def test_parses_json_inside_text(self) -> None:
        raw = 'Sure: {"category": "features", "confidence": 0.82, "reason": "login flow"}'
        result = parse_classification(raw, CATEGORIES)
        self.assertIsNotNone(result)
        self.assertEqual(result.category, "features")
        self.assertEqual(result.confidence, 0.82)
        self.assertEqual(result.reason, "login flow")

    def test_unknown_category_is_no_result(self) -> None:
        raw = '{"category": "unknown", "confidence": 0.9, "reason": "?"}'
        self.assertIsNone(parse_classification(raw, CATEGORIES))

    def test_category_outside_offered_set(self) -> None:
        raw = '{"category": "recipes", "confidence": 0.9, "reason": "?"}'
        self.assertIsNone(parse_classification(raw, CATEGORIES))

    def test_confidence_is_clamped(self) -> None:
        raw = '{"category": "setup", "confidence": 1.7, "reason": "install"}'
        self.assertEqual(parse_classification(raw, CATEGORIES).confidence, 1.0)

    def test_missing_confidence(self) -> None:
        raw = '{"category": "setup", "reason": "install"}'
        self.assertIsNone(parse_classification(raw, CATEGORIES))

    def test_not_json(self) -> None:
        self.assertIsNone(parse_classification("features", CATEGORIES))

    def test_alternatives_filtered(self) -> None:
        raw = (
            '{"category": "setup", "confidence": 0.6, "reason": "r", '
            '"alternative_categories": [{"category": "audits", "confidence": 0.3}, '
            '{"category": "bogus", "confidence": 0.2}]}'
        )
        result = parse_classification(raw, CATEGORIES)
        self.assertEqual(result.alternatives, [("audits", 0.3)])


class OllamaClassifierTests(unittest.TestCase):
    def test_call_sends_structured_request(self) -> None:
        client = DummyClient('{"category": "audits", "confidence": 0.7, "reason": "findings"}')
        classifier = OllamaClassifier(client, "gpt-oss:20b", timeout=30, project_type="web-app")
        existing = Classification("features", 0.5, ["content match"])
        request = build_request("q3-findings.md", "q3-findings.md", "Findings", CATEGORIES, existing)

        result = classifier(request)

        self.assertEqual(result.category, "audits")
        call = client.calls[0]
        self.assertEqual(call["model"], "gpt-oss:20b")
        self.assertEqual(call["temperature"], 0.2)
        self.assertEqual(call["timeout"], 30)
        enum = call["response_format"]["properties"]["category"]["enum"]
        self.assertEqual(enum, CATEGORIES + ["unknown"])
        self.assertEqual(call["log_context"]["operation"], "classify-document")
        self.assertEqual(call["log_context"]["category"], "features")

    def test_prompt_lists_categories_and_previous_result(self) -> None:
        existing = Classification("features", 0.5, ["content match"])
        request = build_request("a.md", "docs/a.md", "Body text", CATEGORIES, existing)
        prompt = build_prompt(request)
        self.assertIn("- audits:", prompt)
        self.assertIn("Path: docs/a.md", prompt)
        self.assertIn("Confidence: 50%", prompt)
        self.assertIn("Body text", prompt)


class BuildExternalClassifierTests(unittest.TestCase):
    def test_disabled(self) -> None:
        self.assertIsNone(build_external_classifier(build_config(), Path("/tmp")))

    def test_missing_base_url(self) -> None:
        config = build_config({"ai": {"enabled": True, "ollama_base_url": ""}})
        self.assertIsNone(build_external_classifier(config, Path("/tmp")))

    def test_enabled(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            config = build_config({"use_ai": True, "ai": {"model_secondary": "llama3"}})
            classifier = build_external_classifier(config, root)
            self.assertIsInstance(classifier, OllamaClassifier)
            self.assertEqual(classifier.model, "gpt-oss:20b")
            self.assertEqual(classifier.client.fallback_model, "llama3")
            self.assertEqual(
                classifier.client.log_path,
                root / ".doc-organizer" / "ai-interactions.jsonl",
            )


if __name__ == "__main__":
    unittest.main()
