import posixpath
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import OrganizerConfig
from .engine import DocumentOrganizer, NamingViolation

DEFAULT_STALE_DAYS = 90
SECONDS_PER_DAY = 24 * 60 * 60

_MISPLACED_WEIGHT = 30
_STALE_WEIGHT = 20
_ORPHAN_WEIGHT = 20
_NAMING_WEIGHT = 30


@dataclass
class HealthReport:
    total_files: int
    misplaced_files: int
    stale_files: List[str] = field(default_factory=list)
    orphaned_files: List[str] = field(default_factory=list)
    naming_violations: List[NamingViolation] = field(default_factory=list)
    health_score: int = 100
    health_grade: str = "A"
    recommendations: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "misplaced_files": self.misplaced_files,
            "stale_files": list(self.stale_files),
            "orphaned_files": list(self.orphaned_files),
            "naming_violations": [v.to_dict() for v in self.naming_violations],
            "health_score": self.health_score,
            "health_grade": self.health_grade,
            "recommendations": list(self.recommendations),
            "errors": list(self.errors),
        }


def health_grade(score: int) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def health_score(
    total: int, misplaced: int, stale: int, orphaned: int, violations: int
) -> int:
    files = max(total, 1)
    penalty = (
        misplaced / files * _MISPLACED_WEIGHT
        + stale / files * _STALE_WEIGHT
        + orphaned / files * _ORPHAN_WEIGHT
        + violations / files * _NAMING_WEIGHT
    )
    return max(0, round(100 - penalty))


def _recommendations(
    misplaced: int, stale: int, orphaned: int, violations: int, stale_days: int
) -> List[str]:
    lines: List[str] = []
    if misplaced:
        lines.append(f"Move {misplaced} misplaced files using apply_organization")
    if stale:
        lines.append(f"Review {stale} stale files (not updated in {stale_days} days)")
    if orphaned:
        lines.append(f"Check {orphaned} orphaned files (not referenced)")
    if violations:
        lines.append(f"Fix {violations} naming convention violations")
    return lines


def run_health_check(
    root: Path,
    config: OrganizerConfig,
    stale_days: int = DEFAULT_STALE_DAYS,
    now: Optional[float] = None,
) -> HealthReport:
    organizer = DocumentOrganizer(root, config)
    stats = organizer.generate_suggestions()
    violations = organizer.check_naming_conventions()
    documents = organizer.all_documents()

    cutoff = (time.time() if now is None else now) - stale_days * SECONDS_PER_DAY
    stale: List[str] = []
    contents: Dict[str, str] = {}
    for rel_path in documents:
        try:
            if (organizer.root / rel_path).stat().st_mtime < cutoff:
                stale.append(rel_path)
        except OSError:
            continue
        content = organizer.read_document(rel_path)
        if content is not None:
            contents[rel_path] = content

    protected = set(config.protected_files)
    orphaned: List[str] = []
    for rel_path in documents:
        name = posixpath.basename(rel_path)
        if posixpath.dirname(rel_path) or name in protected:
            continue
        referenced = any(
            name in content for other, content in contents.items() if other != rel_path
        )
        if not referenced:
            orphaned.append(rel_path)

    score = health_score(
        stats.files, stats.misplaced, len(stale), len(orphaned), len(violations)
    )
    return HealthReport(
        total_files=stats.files,
        misplaced_files=stats.misplaced,
        stale_files=stale,
        orphaned_files=orphaned,
        naming_violations=violations,
        health_score=score,
        health_grade=health_grade(score),
        recommendations=_recommendations(
            stats.misplaced, len(stale), len(orphaned), len(violations), stale_days
        ),
        errors=list(organizer.errors),
    )
