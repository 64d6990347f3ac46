import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from doc_organizer.config import build_config  # noqa: E402
from doc_organizer.placement import (  # noqa: E402
    is_correctly_placed,
    normalize_directory,
    resolve_directory,
    resolve_template,
    suggested_path,
)


class ResolveTemplateTests(unittest.TestCase):
    def test_substitutes_known_variables(self) -> None:
        self.assertEqual(
            resolve_template("{ai_docs}/features/", {"ai_docs": "docs"}), "docs/features/"
        )

    def test_unknown_placeholder_is_kept(self) -> None:
        self.assertEqual(resolve_template("{missing}/x", {"ai_docs": "docs"}), "{missing}/x")

    def test_idempotent(self) -> None:
        variables = {"ai_docs": "docs", "specs": "specs"}
        for template in ("{ai_docs}/setup/", "{specs}/", "{other}/a", "plain/dir"):
            once = resolve_template(template, variables)
            self.assertEqual(resolve_template(once, variables), once)


class NormalizeDirectoryTests(unittest.TestCase):
    def test_trailing_slash_is_ignored(self) -> None:
        self.assertEqual(normalize_directory("docs"), normalize_directory("docs/"))
        self.assertTrue(is_correctly_placed("docs", "docs/"))

    def test_different_directories(self) -> None:
        self.assertFalse(is_correctly_placed("docs", "doc"))

    def test_root_forms(self) -> None:
        for value in ("", ".", "./"):
            self.assertEqual(normalize_directory(value), ".")

    def test_leading_dot_slash(self) -> None:
        self.assertEqual(normalize_directory("./docs"), "docs/")


class SuggestedPathTests(unittest.TestCase):
    def test_custom_structure_variable(self) -> None:
        config = build_config(
            {
                "structure": {"aiDocs": "docs"},
                "destinations": {"features": "{aiDocs}/features/"},
            }
        )
        self.assertEqual(
            suggested_path("features", "feature-login.md", config),
            "docs/features/feature-login.md",
        )

    def test_root_destination(self) -> None:
        config = build_config()
        self.assertEqual(suggested_path("guides", "user-guide.md", config), "user-guide.md")
        self.assertEqual(normalize_directory(resolve_directory("guides", config)), ".")

    def test_category_without_destination_goes_to_root(self) -> None:
        config = build_config({"patterns": {"runbooks": "^runbook"}})
        self.assertEqual(suggested_path("runbooks", "runbook-db.md", config), "runbook-db.md")


if __name__ == "__main__":
    unittest.main()
