import json
import os
import time
from pathlib import Path
from typing import Optional

MARKDOWN_EXT = ".md"


def log(message: str) -> None:
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")


def ensure_dir(path: Path) -> None:
    os.makedirs(path, exist_ok=True)


def extract_json_object(text: str) -> Optional[dict]:
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(text[start : i + 1])
                except json.JSONDecodeError:
                    return None
    return None


def to_posix(path: str) -> str:
    return path.replace(os.sep, "/") if os.sep != "/" else path


def relative_posix(path: Path, root: Path) -> str:
    return to_posix(os.path.relpath(path, root))


def is_markdown(name: str) -> bool:
    return name.endswith(MARKDOWN_EXT)


def format_percent(value: float) -> str:
    return f"{round(value * 100)}%"


def sanitize_note(text: str, max_len: int = 120) -> str:
    cleaned = " ".join(text.split())
    if len(cleaned) > max_len:
        cleaned = cleaned[:max_len].rstrip() + "..."
    return cleaned
