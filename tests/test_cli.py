import io
import json
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from doc_organizer.cli import build_parser, main  # noqa: E402


def _run(argv):
    buffer = io.StringIO()
    with redirect_stdout(buffer):
        code = main(argv)
    return code, buffer.getvalue()


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.dict("os.environ", {}, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_parser_defaults(self) -> None:
        args = build_parser().parse_args([])
        self.assertIsNone(args.dir)
        self.assertEqual(args.format, "text")
        self.assertFalse(args.apply)

    def test_dir_before_subcommand_is_kept(self) -> None:
        args = build_parser().parse_args(["--dir", "docs", "health", "--stale-days", "30"])
        self.assertEqual(args.dir, "docs")
        self.assertEqual(args.stale_days, 30)

    def test_missing_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, output = _run(["--dir", str(Path(tmp) / "missing")])
            self.assertEqual(code, 1)
            self.assertIn("Directory not found", output)

    def test_report(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "feature-login.md").write_text("", encoding="utf-8")
            code, output = _run(["--dir", tmp])
            self.assertEqual(code, 0)
            self.assertIn("DOCUMENTATION ORGANIZATION REPORT", output)
            self.assertIn("-> ai_docs/features/feature-login.md", output)
            self.assertIn("AUTO-APPLY PREVIEW", output)
            self.assertTrue((Path(tmp) / "feature-login.md").exists())

    def test_apply(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "feature-login.md").write_text("", encoding="utf-8")
            code, output = _run(["--dir", tmp, "--apply"])
            self.assertEqual(code, 0)
            self.assertIn("Applied 1 move(s), 0 failed.", output)
            self.assertTrue((Path(tmp) / "ai_docs/features/feature-login.md").exists())

    def test_json_output(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "feature-login.md").write_text("", encoding="utf-8")
            code, output = _run(["--dir", tmp, "--format", "json"])
            self.assertEqual(code, 0)
            payload = json.loads(output)
            self.assertEqual(payload["misplaced_files"], 1)
            self.assertEqual(payload["suggestions"][0]["confidence"], 0.9)

    def test_config_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / ".doc-organizer.json").write_text(
                json.dumps({"patterns": {"features": "^(feature"}}), encoding="utf-8"
            )
            code, output = _run(["--dir", tmp])
            self.assertEqual(code, 1)
            self.assertIn("Configuration error", output)

    def test_health_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, output = _run(["health", "--dir", tmp, "--format", "json"])
            self.assertEqual(code, 0)
            payload = json.loads(output)
            self.assertEqual(payload["health_score"], 100)
            self.assertEqual(payload["stale_days"], 90)

    def test_config_command(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, output = _run(["config", "--dir", tmp, "--project-type", "api"])
            self.assertEqual(code, 0)
            self.assertIn("Config source: built-in defaults", output)
            self.assertIn('"project_type": "api"', output)


if __name__ == "__main__":
    unittest.main()
