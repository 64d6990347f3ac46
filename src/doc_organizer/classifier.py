from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from .config import AI_INSTRUCTIONS_CATEGORY, OrganizerConfig
from .util import MARKDOWN_EXT

CONTENT_PREFIX_CHARS = 200
FILENAME_MATCH = "filename match"
CONTENT_MATCH = "content match"

Rules = Sequence[Tuple[str, Pattern[str]]]


@dataclass
class Classification:
    category: Optional[str]
    confidence: float
    reasons: List[str] = field(default_factory=list)
    ai_enhanced: bool = False

    @classmethod
    def none(cls) -> "Classification":
        return cls(category=None, confidence=0.0, reasons=[])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "ai_enhanced": self.ai_enhanced,
        }


def document_stem(name: str) -> str:
    if name.endswith(MARKDOWN_EXT):
        return name[: -len(MARKDOWN_EXT)]
    return name


def is_protected(name: str, path: Optional[str], protected: Iterable[str]) -> bool:
    protected_set = set(protected)
    return name in protected_set or (path is not None and path in protected_set)


def match_rules(text: str, rules: Rules, skip: Iterable[str] = ()) -> Optional[str]:
    # First accepting rule wins; a broad rule listed early shadows later ones.
    skipped = set(skip)
    for category, pattern in rules:
        if category in skipped:
            continue
        if pattern.match(text):
            return category
    return None


def classify(
    name: str,
    content: str,
    config: OrganizerConfig,
    path: Optional[str] = None,
) -> Classification:
    if is_protected(name, path, config.protected_files):
        return Classification.none()

    category = match_rules(document_stem(name), config.patterns)
    if category:
        return Classification(
            category=category,
            confidence=config.thresholds.filename,
            reasons=[FILENAME_MATCH],
        )

    header = content[:CONTENT_PREFIX_CHARS]
    category = match_rules(header, config.patterns, skip=(AI_INSTRUCTIONS_CATEGORY,))
    if category:
        return Classification(
            category=category,
            confidence=config.thresholds.content,
            reasons=[CONTENT_MATCH],
        )
    return Classification.none()
