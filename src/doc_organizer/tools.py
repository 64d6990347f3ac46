from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .ai_classifier import build_external_classifier
from .config import OrganizerConfig, apply_env_overrides, build_config, load_user_config
from .engine import DocumentOrganizer, Suggestion, execute_moves
from .health import DEFAULT_STALE_DAYS, run_health_check
from .util import format_percent

USER_PROVIDED_CATEGORY = "unknown"


def resolve_directory_arg(directory: Optional[str]) -> Path:
    root = Path(directory).expanduser() if directory else Path.cwd()
    root = root.resolve()
    if not root.is_dir():
        raise ValueError(f"Directory not found: {root}")
    return root


def load_config_for(
    root: Path, overrides: Optional[Mapping[str, Any]] = None
) -> OrganizerConfig:
    user_config, _ = load_user_config(root)
    merged = apply_env_overrides(user_config)
    for key, value in (overrides or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return build_config(merged)


def analyze_docs(
    directory: Optional[str] = None,
    project_type: Optional[str] = None,
    use_ai: bool = False,
    min_confidence: Optional[float] = None,
) -> Dict[str, Any]:
    root = resolve_directory_arg(directory)
    overrides: Dict[str, Any] = {}
    if project_type:
        overrides["project_type"] = project_type
    if use_ai:
        overrides["ai"] = {"enabled": True}
    if min_confidence is not None:
        overrides["thresholds"] = {"suggest": min_confidence}
    config = load_config_for(root, overrides)
    organizer = DocumentOrganizer(root, config, build_external_classifier(config, root))
    stats = organizer.generate_suggestions()
    return {
        "directory": str(root),
        "project_type": config.project_type,
        "total_files": stats.files,
        "misplaced_files": stats.misplaced,
        "suggestions": [
            {
                "current": s.current,
                "suggested": s.suggested,
                "category": s.category,
                "confidence": format_percent(s.confidence),
                "reasons": list(s.reasons),
                "ai_enhanced": s.ai_enhanced,
            }
            for s in organizer.suggestions
        ],
        "errors": list(organizer.errors),
    }


def _provided_suggestions(items: List[Mapping[str, Any]]) -> List[Suggestion]:
    suggestions: List[Suggestion] = []
    for item in items:
        current = item.get("current")
        suggested = item.get("suggested")
        if not isinstance(current, str) or not isinstance(suggested, str):
            raise ValueError("Each suggestion needs string 'current' and 'suggested' paths")
        suggestions.append(
            Suggestion(
                current=current,
                suggested=suggested,
                category=USER_PROVIDED_CATEGORY,
                confidence=1.0,
                reasons=["user-provided"],
            )
        )
    return suggestions


def apply_organization(
    directory: Optional[str] = None,
    suggestions: Optional[List[Mapping[str, Any]]] = None,
    min_confidence: Optional[float] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    root = resolve_directory_arg(directory)
    errors: List[str] = []
    if suggestions:
        moves = _provided_suggestions(suggestions)
    else:
        overrides: Dict[str, Any] = {}
        if min_confidence is not None:
            overrides["thresholds"] = {"auto_apply": min_confidence}
        config = load_config_for(root, overrides)
        organizer = DocumentOrganizer(root, config)
        organizer.generate_suggestions()
        moves = organizer.high_confidence_suggestions()
        errors = list(organizer.errors)
    result = execute_moves(root, moves, dry_run=dry_run)
    payload = result.to_dict()
    payload["directory"] = str(root)
    payload["errors"] = errors
    return payload


def health_check(
    directory: Optional[str] = None, stale_days: Optional[int] = None
) -> Dict[str, Any]:
    root = resolve_directory_arg(directory)
    days = stale_days if stale_days else DEFAULT_STALE_DAYS
    config = load_config_for(root)
    report = run_health_check(root, config, stale_days=days)
    payload = report.to_dict()
    payload["directory"] = str(root)
    payload["stale_days"] = days
    return payload
