import copy
import json
import os
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from .util import log

PROJECT_TYPES = ("web-app", "library", "api", "data-science", "mobile")
ROOT_VARIABLE = "root"
AI_INSTRUCTIONS_CATEGORY = "ai_instructions"
CONFIG_FILENAMES = (".doc-organizer.json", "package.json", "pyproject.toml")

DEFAULT_CONFIG: Dict[str, Any] = {
    "project_type": "web-app",
    "structure": {
        "ai_docs": "ai_docs",
        "specs": "specs",
        "root": "./",
    },
    "patterns": {
        "ai_instructions": (
            r"^(CLAUDE|CURSOR|ai-|assistant-|development-guidelines|coding-standards)"
        ),
        "architecture": r"^(architecture|system-design|api-spec|tech-stack|design-doc)",
        "features": r"^(feature-|prd-|spec-|functionality-|user-story)",
        "maintenance": (
            r"^(refactor|troubleshoot|deploy|maintenance|operation|.*audit"
            r"|.*testing.*guide|mobile.*testing|cleanup.*summary|.*organization.*rules"
            r"|markdown.*organization|devops|ops-)"
        ),
        "setup": (
            r"^(setup|getting-started|project-overview|configuration|install"
            r"|onboard|quickstart)"
        ),
        "guides": r"^(.*guide|tutorial|demo.*guide|how-to|walkthrough)",
        "audits": r"^(.*audit|.*report|analysis|review)",
        "specs": r"^(spec|requirement|collapsible|sidebar.*spec|rfc)",
        "api": r"^(api-|endpoint|swagger|openapi)",
        "testing": r"^(test-|testing|qa|quality)",
    },
    "destinations": {
        "ai_instructions": "{ai_docs}/setup/",
        "architecture": "{ai_docs}/architecture/",
        "features": "{ai_docs}/features/",
        "maintenance": "{ai_docs}/maintenance/",
        "setup": "{ai_docs}/setup/",
        "guides": "{root}",
        "audits": "{root}",
        "specs": "{specs}/",
        "api": "{ai_docs}/architecture/",
        "testing": "{ai_docs}/maintenance/",
    },
    "protected_files": [
        "README.md",
        "CHANGELOG.md",
        "LICENSE.md",
        "CONTRIBUTING.md",
        "CODE_OF_CONDUCT.md",
    ],
    "thresholds": {
        "auto_apply": 0.8,
        "suggest": 0.7,
        "filename": 0.9,
        "content": 0.5,
    },
    "exclude_patterns": [
        "node_modules",
        ".git",
        ".next",
        "dist",
        "build",
        "__pycache__",
        ".venv",
    ],
    "ai": {
        "enabled": False,
        "model": "gpt-oss:20b",
        "model_secondary": None,
        "fallback_threshold": 0.8,
        "ollama_base_url": "http://localhost:11434",
        "timeout_seconds": 90,
        "max_chars": 2000,
        "think_level": "low",
        "log_path": ".doc-organizer/ai-interactions.jsonl",
        "log_include_response": False,
    },
}

PROJECT_PRESETS: Dict[str, Dict[str, Any]] = {
    "library": {
        "protected_files": ["API.md", "USAGE.md"],
        "patterns": {"api": r"^(api|usage|reference)"},
    },
    "data-science": {
        "protected_files": ["METHODOLOGY.md", "DATA.md"],
        "patterns": {"analysis": r"^(analysis|model|dataset|experiment)"},
        "destinations": {"analysis": "{ai_docs}/analysis/"},
    },
    "mobile": {
        "protected_files": ["DEPLOYMENT.md", "STORE.md"],
        "patterns": {"deployment": r"^(deploy|store|release|build)"},
    },
    "api": {
        "protected_files": ["ENDPOINTS.md", "SCHEMAS.md"],
        "patterns": {"endpoints": r"^(endpoint|route|schema|model)"},
    },
}

ENV_OVERRIDES = {
    "DOC_ORGANIZER_OLLAMA_BASE_URL": "ollama_base_url",
    "DOC_ORGANIZER_MODEL": "model",
    "DOC_ORGANIZER_AI_LOG_PATH": "log_path",
}

_THRESHOLD_KEYS = ("auto_apply", "suggest", "filename", "content")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Thresholds:
    auto_apply: float
    suggest: float
    filename: float
    content: float


@dataclass(frozen=True)
class AISettings:
    enabled: bool
    model: str
    model_secondary: Optional[str]
    fallback_threshold: float
    ollama_base_url: Optional[str]
    timeout_seconds: Optional[int]
    max_chars: int
    think_level: Optional[str]
    log_path: Optional[str]
    log_include_response: bool


@dataclass(frozen=True)
class OrganizerConfig:
    project_type: str
    structure: Mapping[str, str]
    patterns: Tuple[Tuple[str, Pattern[str]], ...]
    destinations: Mapping[str, str]
    protected_files: Tuple[str, ...]
    thresholds: Thresholds
    exclude_patterns: Tuple[str, ...]
    ai: AISettings

    @property
    def categories(self) -> List[str]:
        return [category for category, _ in self.patterns]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_type": self.project_type,
            "structure": dict(self.structure),
            "patterns": {category: pattern.pattern for category, pattern in self.patterns},
            "destinations": dict(self.destinations),
            "protected_files": list(self.protected_files),
            "thresholds": {key: getattr(self.thresholds, key) for key in _THRESHOLD_KEYS},
            "exclude_patterns": list(self.exclude_patterns),
            "ai": {
                "enabled": self.ai.enabled,
                "model": self.ai.model,
                "model_secondary": self.ai.model_secondary,
                "fallback_threshold": self.ai.fallback_threshold,
                "ollama_base_url": self.ai.ollama_base_url,
                "timeout_seconds": self.ai.timeout_seconds,
                "max_chars": self.ai.max_chars,
                "think_level": self.ai.think_level,
                "log_path": self.ai.log_path,
                "log_include_response": self.ai.log_include_response,
            },
        }


def _section(value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return dict(value)


def _string_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ConfigError(f"'{name}' must be a list of strings")
    items = list(value)
    if not all(isinstance(item, str) for item in items):
        raise ConfigError(f"'{name}' must be a list of strings")
    return items


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return tuple(seen)


def _merge_layer(merged: Dict[str, Any], layer: Mapping[str, Any]) -> None:
    for key in ("structure", "destinations", "thresholds", "ai"):
        if key in layer:
            merged[key].update(_section(layer[key], key))
    if "patterns" in layer:
        # existing keys keep their position, new keys are appended
        merged["patterns"].update(_section(layer["patterns"], "patterns"))
    if "protected_files" in layer:
        extra = _string_list(layer["protected_files"], "protected_files")
        merged["protected_files"] = list(_unique(merged["protected_files"] + extra))


def _compile_pattern(category: str, value: Any) -> Pattern[str]:
    if isinstance(value, re.Pattern):
        return value
    if not isinstance(value, str) or not value:
        raise ConfigError(f"Pattern for '{category}' must be a non-empty string")
    try:
        return re.compile(value, re.IGNORECASE)
    except re.error as exc:
        raise ConfigError(f"Invalid pattern for '{category}': {value!r} ({exc})") from exc


def _probability(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{name}' must be a number between 0 and 1")
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise ConfigError(f"'{name}' must be between 0 and 1, got {number}")
    return number


def _optional_str(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{name}' must be a string")
    return value.strip() or None


def _build_thresholds(raw: Mapping[str, Any]) -> Thresholds:
    values = {key: _probability(raw.get(key), f"thresholds.{key}") for key in _THRESHOLD_KEYS}
    return Thresholds(**values)


def _build_ai(raw: Mapping[str, Any]) -> AISettings:
    timeout = raw.get("timeout_seconds")
    if timeout is not None:
        try:
            timeout = int(timeout)
        except (TypeError, ValueError) as exc:
            raise ConfigError("'ai.timeout_seconds' must be an integer") from exc
        if timeout <= 0:
            timeout = None
    try:
        max_chars = int(raw.get("max_chars", 2000))
    except (TypeError, ValueError) as exc:
        raise ConfigError("'ai.max_chars' must be an integer") from exc
    if max_chars <= 0:
        raise ConfigError("'ai.max_chars' must be positive")
    model = _optional_str(raw.get("model"), "ai.model")
    if not model:
        raise ConfigError("'ai.model' must not be empty")
    return AISettings(
        enabled=bool(raw.get("enabled")),
        model=model,
        model_secondary=_optional_str(raw.get("model_secondary"), "ai.model_secondary"),
        fallback_threshold=_probability(raw.get("fallback_threshold"), "ai.fallback_threshold"),
        ollama_base_url=_optional_str(raw.get("ollama_base_url"), "ai.ollama_base_url"),
        timeout_seconds=timeout,
        max_chars=max_chars,
        think_level=_optional_str(raw.get("think_level"), "ai.think_level"),
        log_path=_optional_str(raw.get("log_path"), "ai.log_path"),
        log_include_response=bool(raw.get("log_include_response")),
    )


def build_config(
    overrides: Optional[Mapping[str, Any]] = None,
    defaults: Mapping[str, Any] = DEFAULT_CONFIG,
) -> OrganizerConfig:
    overrides = _section(overrides, "config")
    merged: Dict[str, Any] = copy.deepcopy(dict(defaults))
    for key in ("structure", "patterns", "destinations", "thresholds", "ai"):
        merged[key] = _section(merged.get(key), key)
    merged["protected_files"] = _string_list(merged.get("protected_files"), "protected_files")

    project_type = overrides.get("project_type") or merged.get("project_type")
    if project_type not in PROJECT_TYPES:
        raise ConfigError(
            f"Unknown project_type {project_type!r}; expected one of {', '.join(PROJECT_TYPES)}"
        )
    preset = PROJECT_PRESETS.get(project_type)
    if preset:
        _merge_layer(merged, preset)
    _merge_layer(merged, overrides)
    if overrides.get("use_ai"):
        merged["ai"]["enabled"] = True

    exclude = overrides.get("exclude_patterns", merged.get("exclude_patterns"))
    structure = merged["structure"]
    destinations = merged["destinations"]
    for label, mapping in (("structure", structure), ("destinations", destinations)):
        for key, value in mapping.items():
            if not isinstance(value, str):
                raise ConfigError(f"'{label}.{key}' must be a string")

    patterns = tuple(
        (category, _compile_pattern(category, value))
        for category, value in merged["patterns"].items()
    )
    return OrganizerConfig(
        project_type=project_type,
        structure=MappingProxyType(dict(structure)),
        patterns=patterns,
        destinations=MappingProxyType(dict(destinations)),
        protected_files=_unique(merged["protected_files"]),
        thresholds=_build_thresholds(merged["thresholds"]),
        exclude_patterns=tuple(_string_list(exclude, "exclude_patterns")),
        ai=_build_ai(merged["ai"]),
    )


def apply_env_overrides(
    overrides: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    updated = dict(overrides)
    ai_section = _section(updated.get("ai"), "ai")
    for env_key, cfg_key in ENV_OVERRIDES.items():
        value = environ.get(env_key)
        if value:
            ai_section[cfg_key] = value
    if ai_section:
        updated["ai"] = ai_section
    return updated


def _read_candidate(path: Path) -> Optional[Dict[str, Any]]:
    if path.suffix == ".toml":
        with path.open("rb") as fh:
            data = tomllib.load(fh)
        section = data.get("tool", {}).get("doc-organizer")
    else:
        data = json.loads(path.read_text(encoding="utf-8"))
        if path.name == "package.json":
            section = data.get("docOrganizer") if isinstance(data, dict) else None
        else:
            section = data
            if not isinstance(section, dict):
                raise ValueError("top-level value must be an object")
    if isinstance(section, dict):
        return section
    return None


def load_user_config(root: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
    for filename in CONFIG_FILENAMES:
        path = root / filename
        if not path.is_file():
            continue
        try:
            section = _read_candidate(path)
        except (OSError, ValueError, tomllib.TOMLDecodeError) as exc:
            log(f"Warning: could not load config from {path}: {exc}")
            continue
        if section is not None:
            return section, path
    return {}, None
