import posixpath
import re
from typing import Mapping

from .config import ROOT_VARIABLE, OrganizerConfig

ROOT_MARKER = "."
_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def resolve_template(template: str, variables: Mapping[str, str]) -> str:
    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            return variables[name]
        return match.group(0)

    return _PLACEHOLDER_RE.sub(substitute, template)


def destination_template(category: str, config: OrganizerConfig) -> str:
    return config.destinations.get(category) or "{" + ROOT_VARIABLE + "}"


def resolve_directory(category: str, config: OrganizerConfig) -> str:
    return resolve_template(destination_template(category, config), config.structure)


def suggested_path(category: str, name: str, config: OrganizerConfig) -> str:
    directory = resolve_directory(category, config)
    if not directory:
        return name
    return posixpath.normpath(posixpath.join(directory, name))


def normalize_directory(directory: str) -> str:
    normalized = directory[2:] if directory.startswith("./") else directory
    if normalized in ("", ROOT_MARKER, "./"):
        return ROOT_MARKER
    return normalized.rstrip("/") + "/"


def is_correctly_placed(current_dir: str, expected_dir: str) -> bool:
    return normalize_directory(current_dir) == normalize_directory(expected_dir)
