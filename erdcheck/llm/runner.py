"""Chat-completion adapter used to generate ER diagrams."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..config import DEFAULT_BASE_URL
from ..prompting.constants import DIAGRAM_KEYWORD, SENTINEL

# A word on the fence line is a language tag only when a newline follows it and
# it is not the body itself (```NO_CHANGE``` or ```erDiagram\n...).
_FENCE_OPEN = (
    r"^```(?:(?!(?i:" + re.escape(DIAGRAM_KEYWORD) + "|" + re.escape(SENTINEL) + r")\b)"
    r"[A-Za-z0-9_+-]+[ \t]*\n|[ \t]*\n?)"
)
_FENCE_PATTERN = re.compile(_FENCE_OPEN + r"(?P<body>.*?)\n?```$", re.DOTALL)
_OPEN_FENCE_PATTERN = re.compile(_FENCE_OPEN)
_CLOSE_FENCE_PATTERN = re.compile(r"\n?```$")


class GeneratorError(RuntimeError):
    """Raised when the generator endpoint is unreachable or rejects the request."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


TransportError = GeneratorError


@dataclass
class LLMRequest:
    """Represents a single completion request."""

    prompt: str
    model: str
    temperature: float
    base_url: str
    api_key: str
    request_timeout: Optional[float]


def strip_code_fences(text: str) -> str:
    """Remove an enclosing Markdown code fence (with optional language tag) if present."""
    cleaned = text.strip()
    match = _FENCE_PATTERN.match(cleaned)
    if match:
        return match.group("body").strip()
    # Tolerate a fence that was opened or closed but not both.
    cleaned = _OPEN_FENCE_PATTERN.sub("", cleaned, count=1)
    cleaned = _CLOSE_FENCE_PATTERN.sub("", cleaned, count=1)
    return cleaned.strip()


class LLMRunner:
    """Sends prompts to an OpenAI-compatible chat-completion endpoint."""

    TEMPERATURE = 0.0

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        request_timeout: Optional[float] = None,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner

    def run(self, prompt: str) -> str:
        """Send the prompt and return the cleaned completion text."""
        request = LLMRequest(
            prompt=prompt,
            model=self.model,
            temperature=self.TEMPERATURE,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        cleaned = strip_code_fences(self._runner(request))
        if not cleaned:
            raise GeneratorError("Generator returned an empty response")
        return cleaned

    @staticmethod
    def build_payload(request: LLMRequest) -> dict[str, object]:
        return {
            "model": request.model,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": request.prompt}],
        }

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        data = json.dumps(LLMRunner.build_payload(request)).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.api_key}",
        }
        http_request = Request(endpoint, data=data, headers=headers, method="POST")

        try:
            with urlopen(http_request, timeout=request.request_timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if exc.fp is not None else ""
            raise GeneratorError(
                f"Generator API error: {exc.code} {detail.strip()}".rstrip(),
                status=exc.code,
                body=detail,
            ) from exc
        except URLError as exc:
            raise GeneratorError(f"Generator endpoint unreachable: {exc.reason}") from exc

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            preview = raw[:2000].decode("utf-8", errors="replace")
            raise GeneratorError("Generator returned invalid JSON", body=preview) from exc

        content = LLMRunner._extract_content(payload)
        if not content:
            raise GeneratorError("Generator returned an empty response")
        return content

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content.strip()
        return ""


__all__ = ["GeneratorError", "LLMRequest", "LLMRunner", "TransportError", "strip_code_fences"]
