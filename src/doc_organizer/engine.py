"""Batch organisation of the markdown documents below a root directory.

A :class:`DocumentOrganizer` walks the root, classifies every document,
checks whether it already sits in the directory configured for its
category and collects relocation suggestions. Moves are executed only on
request and only for suggestions above the auto-apply threshold.

Nothing below a configuration error aborts a run: unreadable directories
and documents are recorded in :attr:`DocumentOrganizer.errors`, a failed
move is recorded on its :class:`MoveResult` and the batch carries on.
"""

import os
import posixpath
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .classifier import Classification, classify, document_stem, is_protected
from .config import OrganizerConfig
from .fallback import ExternalClassifier, build_request, maybe_enhance
from .placement import is_correctly_placed, resolve_directory, suggested_path
from .util import ensure_dir, is_markdown, relative_posix

VAGUE_NAMES = {"doc", "file", "guide"}
VAGUE_NAME_ISSUE = "Vague naming - be more specific"
FEATURE_NAME_ISSUE = "Feature files should use kebab-case with descriptive names"


@dataclass
class DocumentAnalysis:
    path: str
    name: str
    current_dir: str
    content_length: int
    classification: Classification
    suggested_path: Optional[str]


@dataclass
class Suggestion:
    current: str
    suggested: str
    category: str
    confidence: float
    reasons: List[str] = field(default_factory=list)
    ai_enhanced: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "suggested": self.suggested,
            "category": self.category,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "ai_enhanced": self.ai_enhanced,
        }


@dataclass
class AnalysisStats:
    files: int
    misplaced: int


@dataclass
class MoveResult:
    source: str
    destination: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "from": self.source,
            "to": self.destination,
            "success": self.success,
        }
        if self.error:
            entry["error"] = self.error
        return entry


@dataclass
class ApplyResult:
    successful: int = 0
    failed: int = 0
    moves: List[MoveResult] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successful": self.successful,
            "failed": self.failed,
            "moves": [move.to_dict() for move in self.moves],
            "dry_run": self.dry_run,
        }


@dataclass
class NamingViolation:
    file: str
    issues: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "issues": list(self.issues)}


def _inside(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def check_move(root: Path, source: str, destination: str) -> Tuple[Path, Path]:
    src = root / source
    dst = root / destination
    if not _inside(root, src) or not _inside(root, dst):
        raise ValueError("path escapes the target directory")
    if not src.is_file():
        raise FileNotFoundError(f"source not found: {source}")
    if dst.exists():
        raise FileExistsError(f"destination already exists: {destination}")
    return src, dst


def move_document(root: Path, source: str, destination: str) -> None:
    src, dst = check_move(root, source, destination)
    ensure_dir(dst.parent)
    shutil.move(str(src), str(dst))


def execute_moves(
    root: Path, suggestions: Iterable[Suggestion], dry_run: bool = False
) -> ApplyResult:
    result = ApplyResult(dry_run=dry_run)
    for suggestion in suggestions:
        move = MoveResult(
            source=suggestion.current, destination=suggestion.suggested, success=False
        )
        try:
            if dry_run:
                check_move(root, suggestion.current, suggestion.suggested)
            else:
                move_document(root, suggestion.current, suggestion.suggested)
            move.success = True
        except (OSError, shutil.Error, ValueError) as exc:
            move.error = str(exc)
        if move.success:
            result.successful += 1
        else:
            result.failed += 1
        result.moves.append(move)
    return result


class DocumentOrganizer:
    def __init__(
        self,
        root: Path,
        config: OrganizerConfig,
        classifier: Optional[ExternalClassifier] = None,
    ) -> None:
        self.root = Path(root)
        self.config = config
        self.classifier = classifier
        self.suggestions: List[Suggestion] = []
        self.errors: List[str] = []
        self.protected_seen: List[str] = []

    def _record_error(self, message: str) -> None:
        if message not in self.errors:
            self.errors.append(message)

    def _is_excluded(self, rel_path: str) -> bool:
        return any(pattern and pattern in rel_path for pattern in self.config.exclude_patterns)

    def _record_walk_error(self, exc: OSError) -> None:
        directory = exc.filename or str(self.root)
        try:
            directory = relative_posix(Path(directory), self.root)
        except ValueError:
            pass
        self._record_error(f"Error reading directory {directory}: {exc.strerror or exc}")

    def iter_documents(self) -> Iterator[str]:
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._record_walk_error):
            current = Path(dirpath)
            kept = []
            for dirname in sorted(dirnames):
                if self._is_excluded(relative_posix(current / dirname, self.root)):
                    continue
                kept.append(dirname)
            dirnames[:] = kept
            for filename in sorted(filenames):
                if not is_markdown(filename):
                    continue
                rel_path = relative_posix(current / filename, self.root)
                if self._is_excluded(rel_path):
                    continue
                yield rel_path

    def all_documents(self) -> List[str]:
        return list(self.iter_documents())

    def read_document(self, rel_path: str) -> Optional[str]:
        try:
            return (self.root / rel_path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            self._record_error(f"Error analyzing {rel_path}: {exc.strerror or exc}")
            return None

    def analyze_document(self, rel_path: str) -> Optional[DocumentAnalysis]:
        name = posixpath.basename(rel_path)
        if is_protected(name, rel_path, self.config.protected_files):
            self.protected_seen.append(rel_path)
            return None
        content = self.read_document(rel_path)
        if content is None:
            return None
        result = classify(name, content, self.config, path=rel_path)
        if self.classifier is not None:
            request = build_request(
                name,
                rel_path,
                content,
                self.config.categories,
                result,
                max_chars=self.config.ai.max_chars,
            )
            result = maybe_enhance(
                result, request, self.classifier, self.config.ai.fallback_threshold
            )
        target = suggested_path(result.category, name, self.config) if result.category else None
        return DocumentAnalysis(
            path=rel_path,
            name=name,
            current_dir=posixpath.dirname(rel_path),
            content_length=len(content),
            classification=result,
            suggested_path=target,
        )

    def is_correctly_placed(self, analysis: DocumentAnalysis) -> bool:
        category = analysis.classification.category
        if not category:
            return True
        return is_correctly_placed(analysis.current_dir, resolve_directory(category, self.config))

    def generate_suggestions(self) -> AnalysisStats:
        self.suggestions = []
        self.protected_seen = []
        files = 0
        for rel_path in self.iter_documents():
            files += 1
            analysis = self.analyze_document(rel_path)
            if analysis is None or analysis.suggested_path is None:
                continue
            result = analysis.classification
            if self.is_correctly_placed(analysis):
                continue
            if result.confidence < self.config.thresholds.suggest:
                continue
            self.suggestions.append(
                Suggestion(
                    current=analysis.path,
                    suggested=analysis.suggested_path,
                    category=result.category,
                    confidence=result.confidence,
                    reasons=list(result.reasons),
                    ai_enhanced=result.ai_enhanced,
                )
            )
        return AnalysisStats(files=files, misplaced=len(self.suggestions))

    def high_confidence_suggestions(self) -> List[Suggestion]:
        threshold = self.config.thresholds.auto_apply
        return [s for s in self.suggestions if s.confidence >= threshold]

    def medium_confidence_suggestions(self) -> List[Suggestion]:
        thresholds = self.config.thresholds
        return [
            s
            for s in self.suggestions
            if thresholds.suggest <= s.confidence < thresholds.auto_apply
        ]

    def apply_moves(self, dry_run: bool = False) -> ApplyResult:
        return execute_moves(self.root, self.high_confidence_suggestions(), dry_run=dry_run)

    def check_naming_conventions(self) -> List[NamingViolation]:
        features_dir = f"{self.config.structure.get('ai_docs', '')}/features"
        violations: List[NamingViolation] = []
        for rel_path in self.iter_documents():
            stem = document_stem(posixpath.basename(rel_path))
            issues: List[str] = []
            if stem in VAGUE_NAMES:
                issues.append(VAGUE_NAME_ISSUE)
            directory = posixpath.dirname(rel_path)
            if (
                features_dir in directory
                and "-" not in stem
                and stem != "README"
                and len(stem) > 3
            ):
                issues.append(FEATURE_NAME_ISSUE)
            if issues:
                violations.append(NamingViolation(file=rel_path, issues=issues))
        return violations
