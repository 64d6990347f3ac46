from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .ai_log import resolve_log_path
from .config import OrganizerConfig
from .fallback import AIClassification, ClassificationRequest
from .ollama import OllamaClient
from .util import extract_json_object, format_percent, log, sanitize_note

UNKNOWN_CATEGORY = "unknown"

CATEGORY_PURPOSES = {
    "ai_instructions": "AI assistant instructions (CLAUDE.md, CURSOR.md, development guidelines)",
    "architecture": "System design, API specifications, tech stack documentation",
    "features": "Feature specifications, PRDs, user stories, functionality docs",
    "maintenance": "Refactoring guides, troubleshooting, deployment, operations",
    "setup": "Getting started guides, installation, configuration, onboarding",
    "guides": "Tutorials, how-to guides, walkthroughs, demos",
    "audits": "Audit reports, analysis documents, reviews",
    "specs": "Technical specifications, requirements, RFCs",
    "api": "API documentation, endpoint specs, OpenAPI/Swagger docs",
    "testing": "Test documentation, QA guides, testing strategies",
    "analysis": "Data analysis, models, datasets, experiments",
    "deployment": "Deployment, app store and release documentation",
    "endpoints": "Endpoint, route and schema documentation",
}

SYSTEM_PROMPT = (
    "You are a documentation classification expert. Categorize documentation files "
    "into the most appropriate category based on their filename and content.\n\n"
    "Guidelines:\n"
    "1. Prioritize filename patterns over content\n"
    "2. Consider the primary purpose of the document\n"
    "3. A high confidence (>0.8) means you are very certain\n"
    "4. Return alternative categories if the document could fit multiple\n"
    "5. Be concise in your reasoning"
)


def classification_schema(categories: List[str]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "category": {"type": "string", "enum": [*categories, UNKNOWN_CATEGORY]},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
            "reason": {"type": "string"},
            "alternative_categories": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "category": {"type": "string"},
                        "confidence": {"type": "number"},
                    },
                    "required": ["category", "confidence"],
                },
            },
        },
        "required": ["category", "confidence", "reason"],
    }


def build_prompt(request: ClassificationRequest) -> str:
    category_lines = "\n".join(
        f"- {category}: {CATEGORY_PURPOSES.get(category, 'Project-specific category')}"
        for category in request.categories
    )
    existing = request.existing
    previous = (
        "Previous analysis (pattern-based):\n"
        f"- Suggested category: {existing.category or 'none'}\n"
        f"- Confidence: {format_percent(existing.confidence)}\n"
        f"- Reasons: {', '.join(existing.reasons) or 'none'}\n"
    )
    return (
        "Classify this documentation file.\n\n"
        "Categories and their purposes:\n"
        f"{category_lines}\n"
        f"- {UNKNOWN_CATEGORY}: Use only when the document does not fit any category\n\n"
        f"Filename: {request.name}\n"
        f"Path: {request.path}\n\n"
        f"Content preview (first {len(request.excerpt)} characters):\n"
        f"{request.excerpt}\n\n"
        f"{previous}\n"
        "Return ONLY JSON: "
        '{"category": "...", "confidence": 0.0-1.0, "reason": "short", '
        '"alternative_categories": [{"category": "...", "confidence": 0.0}]}'
    )


def _confidence(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, min(1.0, number))


def _alternatives(raw: Any, categories: List[str]) -> List[Tuple[str, float]]:
    if not isinstance(raw, list):
        return []
    alternatives: List[Tuple[str, float]] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        category = item.get("category")
        confidence = _confidence(item.get("confidence"))
        if category in categories and confidence is not None:
            alternatives.append((category, confidence))
    return alternatives


def parse_classification(raw: str, categories: List[str]) -> Optional[AIClassification]:
    parsed = extract_json_object(raw)
    if not parsed:
        return None
    category = parsed.get("category")
    if isinstance(category, str):
        category = category.strip()
    if not category or category not in categories:
        return None
    confidence = _confidence(parsed.get("confidence"))
    if confidence is None:
        return None
    reason = str(parsed.get("reason") or "").strip() or "no reason given"
    return AIClassification(
        category=category,
        confidence=confidence,
        reason=sanitize_note(reason),
        alternatives=_alternatives(parsed.get("alternative_categories"), categories),
    )


class OllamaClassifier:
    def __init__(
        self,
        client: OllamaClient,
        model: str,
        *,
        timeout: Optional[float] = None,
        project_type: Optional[str] = None,
    ) -> None:
        self.client = client
        self.model = model
        self.timeout = timeout
        self.project_type = project_type

    def __call__(self, request: ClassificationRequest) -> Optional[AIClassification]:
        categories = list(request.categories)
        raw = self.client.generate(
            model=self.model,
            prompt=build_prompt(request),
            system=SYSTEM_PROMPT,
            temperature=0.2,
            timeout=self.timeout,
            response_format=classification_schema(categories),
            log_context={
                "operation": "classify-document",
                "category": request.existing.category,
                "project_type": self.project_type,
            },
        )
        return parse_classification(raw, categories)


def build_external_classifier(
    config: OrganizerConfig, root: Path
) -> Optional[OllamaClassifier]:
    if not config.ai.enabled:
        return None
    if not config.ai.ollama_base_url:
        log("AI fallback skipped: ollama base URL not configured.")
        return None
    client = OllamaClient(
        config.ai.ollama_base_url,
        log_path=resolve_log_path(config.ai.log_path, root),
        fallback_model=config.ai.model_secondary,
        gpt_oss_think_level=config.ai.think_level,
        log_include_response=config.ai.log_include_response,
    )
    return OllamaClassifier(
        client,
        config.ai.model,
        timeout=config.ai.timeout_seconds,
        project_type=config.project_type,
    )
