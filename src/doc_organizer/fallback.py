"""Low-confidence fallback: consult an external classifier and merge its answer.

The external classifier is any callable taking a :class:`ClassificationRequest`
and returning an :class:`AIClassification` (or ``None`` when it has nothing
usable to say). It may raise ``RuntimeError`` or ``OSError``; such failures
never abort a run and are only recorded as a reason on the result.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .classifier import Classification
from .util import format_percent

EXCERPT_CHARS = 2000
CONFIRMATION_BOOST = 0.1


@dataclass
class ClassificationRequest:
    name: str
    path: str
    excerpt: str
    categories: Sequence[str]
    existing: Classification


@dataclass
class AIClassification:
    category: str
    confidence: float
    reason: str
    alternatives: List[Tuple[str, float]] = field(default_factory=list)


ExternalClassifier = Callable[[ClassificationRequest], Optional[AIClassification]]


def build_request(
    name: str,
    path: str,
    content: str,
    categories: Sequence[str],
    existing: Classification,
    max_chars: int = EXCERPT_CHARS,
) -> ClassificationRequest:
    return ClassificationRequest(
        name=name,
        path=path,
        excerpt=content[: min(max_chars, EXCERPT_CHARS)],
        categories=list(categories),
        existing=existing,
    )


def merge_classification(
    existing: Classification, ai_result: AIClassification
) -> Classification:
    if ai_result.confidence > existing.confidence:
        return Classification(
            category=ai_result.category,
            confidence=ai_result.confidence,
            reasons=[f"AI: {ai_result.reason}", *existing.reasons],
            ai_enhanced=True,
        )
    if ai_result.category == existing.category:
        return Classification(
            category=existing.category,
            confidence=min(1.0, existing.confidence + CONFIRMATION_BOOST),
            reasons=[*existing.reasons, f"AI confirmed: {ai_result.reason}"],
            ai_enhanced=True,
        )
    note = f"AI suggested {ai_result.category} ({format_percent(ai_result.confidence)})"
    return Classification(
        category=existing.category,
        confidence=existing.confidence,
        reasons=[*existing.reasons, note],
        ai_enhanced=True,
    )


def maybe_enhance(
    existing: Classification,
    request: ClassificationRequest,
    external: Optional[ExternalClassifier],
    threshold: float,
) -> Classification:
    if external is None or existing.confidence >= threshold:
        return existing
    try:
        ai_result = external(request)
    except (RuntimeError, OSError) as exc:
        return Classification(
            category=existing.category,
            confidence=existing.confidence,
            reasons=[*existing.reasons, f"AI enhancement failed: {exc}"],
        )
    if ai_result is None:
        return existing
    return merge_classification(existing, ai_result)
