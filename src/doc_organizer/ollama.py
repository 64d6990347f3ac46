import http.client
import json
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .ai_log import append_ai_log, build_log_entry

DEFAULT_TIMEOUT_SECONDS = 120
_DEFAULT_GPT_OSS_THINK_LEVEL = "low"
_VALID_THINK_LEVELS = {"low", "medium", "high"}

ResponseFormat = Union[str, Dict[str, Any]]


def _resolve_think_level(value: Optional[str]) -> Optional[str]:
    if value is None or not isinstance(value, str):
        return _DEFAULT_GPT_OSS_THINK_LEVEL
    level = value.strip().lower()
    if level in {"", "off", "none", "disable", "disabled"}:
        return None
    if level in _VALID_THINK_LEVELS:
        return level
    return _DEFAULT_GPT_OSS_THINK_LEVEL


class OllamaError(RuntimeError):
    def __init__(self, message: str, error_type: str) -> None:
        super().__init__(message)
        self.error_type = error_type


class OllamaClient:
    def __init__(
        self,
        base_url: str,
        log_path: Optional[Path] = None,
        *,
        fallback_model: Optional[str] = None,
        gpt_oss_think_level: Optional[str] = None,
        log_include_response: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.log_path = log_path
        self.fallback_model = fallback_model
        self.gpt_oss_think_level = _resolve_think_level(gpt_oss_think_level)
        self.log_include_response = log_include_response

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        response_format: Optional[ResponseFormat] = None,
        log_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        fallback = self.fallback_model
        if fallback == model:
            fallback = None
        request = {
            "prompt": prompt,
            "system": system,
            "temperature": temperature,
            "timeout": timeout,
            "response_format": response_format,
            "log_context": log_context,
        }
        try:
            return self._generate_once(model=model, **request)
        except OllamaError as exc:
            if not fallback:
                raise
            try:
                return self._generate_once(model=fallback, **request)
            except OllamaError as fallback_exc:
                message = (
                    f"Ollama failed for model '{model}' and fallback '{fallback}': "
                    f"{exc}; {fallback_exc}"
                )
                raise OllamaError(message, fallback_exc.error_type) from fallback_exc

    def _build_payload(
        self,
        model: str,
        prompt: str,
        system: Optional[str],
        temperature: Optional[float],
        response_format: Optional[ResponseFormat],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
        }
        think_level = self._think_level_for_model(model)
        if think_level:
            payload["think"] = think_level
        if system:
            payload["system"] = system
        if temperature is not None:
            payload["options"] = {"temperature": temperature}
        if response_format is not None:
            payload["format"] = response_format
        return payload

    def _generate_once(
        self,
        *,
        model: str,
        prompt: str,
        system: Optional[str],
        temperature: Optional[float],
        timeout: Optional[float],
        response_format: Optional[ResponseFormat],
        log_context: Optional[Dict[str, Any]],
    ) -> str:
        payload = self._build_payload(model, prompt, system, temperature, response_format)
        req = urllib.request.Request(
            f"{self.base_url}/api/generate",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        start = time.perf_counter()
        response_text = ""
        error: Optional[OllamaError] = None
        request_timeout = DEFAULT_TIMEOUT_SECONDS if timeout is None else timeout
        try:
            response_text = self._send(req, request_timeout)
        except OllamaError as exc:
            error = exc
        self._log_interaction(
            model=model,
            prompt=prompt,
            system=system,
            response_text=response_text,
            start=start,
            error_type=error.error_type if error else None,
            structured=response_format is not None,
            context=log_context,
        )
        if error:
            raise error
        return response_text

    @staticmethod
    def _send(req: urllib.request.Request, timeout: float) -> str:
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                raw = resp.read().decode("utf-8")
        except (urllib.error.URLError, TimeoutError, http.client.HTTPException) as exc:
            raise OllamaError(f"Ollama request failed: {exc}", type(exc).__name__) from exc
        except UnicodeDecodeError as exc:
            raise OllamaError("Ollama returned a non UTF-8 body", type(exc).__name__) from exc
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise OllamaError("Ollama returned invalid JSON", type(exc).__name__) from exc
        if not isinstance(parsed, dict) or "response" not in parsed:
            raise OllamaError("Ollama response missing 'response' field", "MissingResponseField")
        return str(parsed["response"])

    def _log_interaction(
        self,
        *,
        model: str,
        prompt: str,
        system: Optional[str],
        response_text: str,
        start: float,
        error_type: Optional[str],
        structured: bool,
        context: Optional[Dict[str, Any]],
    ) -> None:
        if not self.log_path:
            return
        duration_ms = int((time.perf_counter() - start) * 1000)
        entry = build_log_entry(
            model=model,
            prompt_chars=len(prompt),
            system_chars=len(system) if system else 0,
            response_chars=len(response_text),
            duration_ms=duration_ms,
            error_type=error_type,
            context=context,
            structured=structured,
            response_text=response_text,
            include_response=self.log_include_response,
        )
        append_ai_log(self.log_path, entry)

    def _think_level_for_model(self, model: str) -> Optional[str]:
        if model.lower().startswith("gpt-oss"):
            return self.gpt_oss_think_level
        return None
