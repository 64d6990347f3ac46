import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .ai_classifier import build_external_classifier
from .config import (
    PROJECT_TYPES,
    ConfigError,
    OrganizerConfig,
    apply_env_overrides,
    build_config,
    load_user_config,
)
from .engine import DocumentOrganizer
from .health import DEFAULT_STALE_DAYS, run_health_check
from .report import render_apply_result, render_report, report_payload
from .util import format_percent, log


def _resolve_root(value: Optional[str]) -> Optional[Path]:
    root = Path(value).expanduser().resolve() if value else Path.cwd()
    if not root.exists() or not root.is_dir():
        print(f"Directory not found: {root}")
        return None
    return root


def _load_config(
    args: argparse.Namespace, root: Path
) -> Tuple[Optional[OrganizerConfig], Optional[Path]]:
    user_config, source = load_user_config(root)
    overrides = apply_env_overrides(user_config)
    if args.project_type:
        overrides["project_type"] = args.project_type
    if getattr(args, "ai", False):
        overrides["use_ai"] = True
    try:
        config = build_config(overrides)
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        return None, source
    if source is not None:
        log(f"Loaded configuration from {source}")
    return config, source


def _auto_apply_preview(organizer: DocumentOrganizer) -> List[str]:
    high = organizer.high_confidence_suggestions()
    threshold = format_percent(organizer.config.thresholds.auto_apply)
    if not high:
        return [f"No moves at or above {threshold} confidence to apply automatically."]
    lines = [f"AUTO-APPLY PREVIEW ({len(high)} move(s) at >={threshold} confidence):"]
    lines.extend(f"   {s.current} -> {s.suggested}" for s in high)
    lines.append("Dry run. Use --apply to execute.")
    return lines


def cmd_organize(args: argparse.Namespace) -> int:
    root = _resolve_root(args.dir)
    if root is None:
        return 1
    config, _ = _load_config(args, root)
    if config is None:
        return 1
    organizer = DocumentOrganizer(root, config, build_external_classifier(config, root))
    stats = organizer.generate_suggestions()
    violations = organizer.check_naming_conventions()

    if args.format == "json":
        payload: Dict[str, Any] = report_payload(organizer, stats, violations)
        if args.apply:
            payload["applied"] = organizer.apply_moves().to_dict()
        print(json.dumps(payload, indent=2))
        return 0

    print(render_report(organizer, stats, violations))
    print("")
    if not args.apply:
        print("\n".join(_auto_apply_preview(organizer)))
        return 0
    result = organizer.apply_moves()
    for line in render_apply_result(result):
        log(line)
    return 0


def cmd_health(args: argparse.Namespace) -> int:
    root = _resolve_root(args.dir)
    if root is None:
        return 1
    config, _ = _load_config(args, root)
    if config is None:
        return 1
    report = run_health_check(root, config, stale_days=args.stale_days)
    if args.format == "json":
        payload = report.to_dict()
        payload["stale_days"] = args.stale_days
        print(json.dumps(payload, indent=2))
        return 0
    print(f"Health score: {report.health_score}/100 ({report.health_grade})")
    print(f"Total files: {report.total_files}")
    print(f"Misplaced files: {report.misplaced_files}")
    print(f"Stale files: {len(report.stale_files)}")
    print(f"Orphaned files: {len(report.orphaned_files)}")
    print(f"Naming violations: {len(report.naming_violations)}")
    if report.errors:
        print("Errors:")
        for error in report.errors:
            print(f"   {error}")
    if report.recommendations:
        print("Recommendations:")
        for item in report.recommendations:
            print(f"   - {item}")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    root = _resolve_root(args.dir)
    if root is None:
        return 1
    config, source = _load_config(args, root)
    if config is None:
        return 1
    print(f"Config source: {source or 'built-in defaults'}")
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def cmd_mcp(args: argparse.Namespace) -> int:
    from .mcp_server import main as mcp_main

    mcp_main()
    return 0


def _add_target_args(parser: argparse.ArgumentParser, suppress: bool) -> None:
    # Subcommand copies must not clobber values given before the subcommand.
    default = argparse.SUPPRESS if suppress else None
    parser.add_argument("--dir", type=str, default=default, help="Directory to organize")
    parser.add_argument(
        "--project-type",
        choices=PROJECT_TYPES,
        default=default,
        help="Project type preset",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default=argparse.SUPPRESS if suppress else "text",
        help="Output format",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doc-organize", description="Organize markdown documentation by category"
    )
    _add_target_args(parser, suppress=False)
    parser.add_argument("--ai", action="store_true", help="Use Ollama for uncertain files")
    parser.add_argument(
        "--apply", action="store_true", help="Move high-confidence files (default is report only)"
    )
    parser.set_defaults(func=cmd_organize)
    sub = parser.add_subparsers(dest="command")

    health = sub.add_parser("health", help="Documentation health check")
    _add_target_args(health, suppress=True)
    health.add_argument(
        "--stale-days",
        type=int,
        default=DEFAULT_STALE_DAYS,
        help="Days without changes before a file counts as stale",
    )
    health.set_defaults(func=cmd_health)

    config = sub.add_parser("config", help="Show resolved configuration")
    _add_target_args(config, suppress=True)
    config.set_defaults(func=cmd_config)

    mcp = sub.add_parser("mcp", help="Run the MCP server on stdio")
    mcp.set_defaults(func=cmd_mcp)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
