from typing import Any, Dict, List

from .engine import AnalysisStats, ApplyResult, DocumentOrganizer, NamingViolation
from .util import format_percent


def _header(title: str) -> List[str]:
    return [title, "=" * len(title)]


def _recommendations(organizer: DocumentOrganizer) -> List[str]:
    thresholds = organizer.config.thresholds
    high = organizer.high_confidence_suggestions()
    medium = organizer.medium_confidence_suggestions()
    lines = ["RECOMMENDATIONS:"]
    if not organizer.suggestions:
        lines.append("   Current organization looks good; no relocations needed.")
        return lines
    if high:
        lines.append(f"   High priority moves (>={format_percent(thresholds.auto_apply)} confidence):")
        lines.extend(f'   mv "{s.current}" "{s.suggested}"' for s in high)
    if medium:
        lines.append(
            f"   Review these moves ({format_percent(thresholds.suggest)}-"
            f"{format_percent(thresholds.auto_apply)} confidence):"
        )
        lines.extend(f'   # Consider: mv "{s.current}" "{s.suggested}"' for s in medium)
    lines.append("   Next steps: review the moves above, run with --apply for high-confidence")
    lines.append("   moves, then check for broken references.")
    return lines


def render_report(
    organizer: DocumentOrganizer,
    stats: AnalysisStats,
    violations: List[NamingViolation],
) -> str:
    config = organizer.config
    thresholds = config.thresholds
    lines = _header("DOCUMENTATION ORGANIZATION REPORT")
    lines.append(f"Project type: {config.project_type.upper()}")
    lines.append("")
    lines.append("SUMMARY:")
    lines.append(f"   Total files analyzed: {stats.files}")
    lines.append(f"   Files needing relocation: {stats.misplaced}")
    lines.append(f"   Protected files found: {len(organizer.protected_seen)}")
    lines.append(f"   Naming violations: {len(violations)}")
    lines.append(f"   Errors encountered: {len(organizer.errors)}")
    lines.append("")
    lines.append("CONFIGURATION:")
    for name, value in config.structure.items():
        lines.append(f"   {name}: {value}")
    lines.append(f"   Auto-apply threshold: {format_percent(thresholds.auto_apply)}")
    lines.append(f"   Suggestion threshold: {format_percent(thresholds.suggest)}")
    lines.append(f"   AI fallback: {'on' if organizer.classifier else 'off'}")
    lines.append("")

    if organizer.suggestions:
        lines.append("SUGGESTED RELOCATIONS:")
        for index, suggestion in enumerate(organizer.suggestions, start=1):
            ai_label = " (AI)" if suggestion.ai_enhanced else ""
            lines.append(f"{index}. {suggestion.current}")
            lines.append(f"   -> {suggestion.suggested}")
            lines.append(f"   Category: {suggestion.category}")
            lines.append(f"   Confidence: {format_percent(suggestion.confidence)}{ai_label}")
            lines.append(f"   Reason: {', '.join(suggestion.reasons)}")
    else:
        lines.append("No files need relocation.")
    lines.append("")

    if organizer.protected_seen:
        lines.append("PROTECTED FILES:")
        lines.extend(f"   {path}" for path in organizer.protected_seen)
        lines.append("")

    if violations:
        lines.append("NAMING CONVENTION VIOLATIONS:")
        for index, violation in enumerate(violations, start=1):
            lines.append(f"{index}. {violation.file}")
            lines.extend(f"   ! {issue}" for issue in violation.issues)
        lines.append("")

    if organizer.errors:
        lines.append("ERRORS:")
        lines.extend(f"   {error}" for error in organizer.errors)
        lines.append("")

    lines.extend(_recommendations(organizer))
    return "\n".join(lines)


def render_apply_result(result: ApplyResult) -> List[str]:
    if not result.moves:
        return ["No high-confidence moves to apply automatically."]
    lines: List[str] = []
    for index, move in enumerate(result.moves, start=1):
        if move.success:
            lines.append(f"{index}. Moved: {move.source} -> {move.destination}")
        else:
            lines.append(
                f"{index}. Failed: {move.source} -> {move.destination} ({move.error})"
            )
    lines.append(f"Applied {result.successful} move(s), {result.failed} failed.")
    return lines


def report_payload(
    organizer: DocumentOrganizer,
    stats: AnalysisStats,
    violations: List[NamingViolation],
) -> Dict[str, Any]:
    return {
        "root": str(organizer.root),
        "project_type": organizer.config.project_type,
        "total_files": stats.files,
        "misplaced_files": stats.misplaced,
        "suggestions": [s.to_dict() for s in organizer.suggestions],
        "protected_files": list(organizer.protected_seen),
        "naming_violations": [v.to_dict() for v in violations],
        "errors": list(organizer.errors),
    }
