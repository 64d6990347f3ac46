"""doc-organizer MCP server.

Exposes the analyze, apply and health-check operations to MCP clients over
stdio. Each tool returns a JSON document; failures surface as tool errors.
"""

import json
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from . import tools

mcp = FastMCP(
    "doc-organizer",
    instructions=(
        "Documentation organization assistant. Call analyze_docs to see which "
        "markdown files are misplaced, apply_organization to move them, and "
        "health_check for an overall documentation health score."
    ),
)


def _dump(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2)


@mcp.tool()
def analyze_docs(
    directory: Optional[str] = None,
    project_type: Optional[str] = None,
    use_ai: bool = False,
    min_confidence: Optional[float] = None,
) -> str:
    """Scan documentation files and return organization suggestions.

    Args:
        directory: Root directory to scan. Defaults to the server's working directory.
        project_type: One of web-app, library, api, data-science, mobile.
        use_ai: Consult the language model for low-confidence classifications.
        min_confidence: Minimum confidence (0-1) for a suggestion. Defaults to 0.7.
    """
    return _dump(tools.analyze_docs(directory, project_type, use_ai, min_confidence))


@mcp.tool()
def apply_organization(
    directory: Optional[str] = None,
    suggestions: Optional[List[Dict[str, str]]] = None,
    min_confidence: Optional[float] = None,
    dry_run: bool = False,
) -> str:
    """Apply suggested file moves.

    Args:
        directory: Root directory. Defaults to the server's working directory.
        suggestions: Moves as {"current": ..., "suggested": ...} pairs relative to
                     the directory. When omitted, analysis runs first.
        min_confidence: Minimum confidence (0-1) to auto-apply. Defaults to 0.8.
        dry_run: Only report what would be moved.
    """
    return _dump(tools.apply_organization(directory, suggestions, min_confidence, dry_run))


@mcp.tool()
def health_check(directory: Optional[str] = None, stale_days: Optional[int] = None) -> str:
    """Check documentation health: stale files, orphans, naming and a 0-100 score.

    Args:
        directory: Root directory to check. Defaults to the server's working directory.
        stale_days: Days after which an unmodified file counts as stale. Defaults to 90.
    """
    return _dump(tools.health_check(directory, stale_days))


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
