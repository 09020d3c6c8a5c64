"""Summary: Structured-output AI provider abstraction and the extraction client.

Importance: Centralizes LLM access so extraction stays provider-agnostic and auditable.
Alternatives: Call provider SDKs directly in the extraction service.
"""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from inboxsift.config import AppConfig
from inboxsift.errors import ModelError, ModelTimeoutError, SchemaValidationError
from inboxsift.prompts import ExtractionPrompt
from inboxsift.schema import EXTRACTION_SCHEMA, SCHEMA_NAME, validate_payload

logger = logging.getLogger(__name__)

DEFAULT_MODEL_VERSION = "gpt-4o-mini"

# Status codes worth retrying with the same request.
_RETRYABLE_STATUS = {408, 409, 425, 429, 500, 502, 503, 504}


class AiProvider(ABC):
    """Summary: Abstract interface for schema-constrained generation.

    Importance: Allows switching between local and cloud LLMs without refactors.
    Alternatives: Use a single vendor SDK and accept lock-in risk.
    """

    model_version: str

    @abstractmethod
    def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> tuple[str, int]:
        """Summary: Generate a JSON document constrained by a schema.

        Importance: Standardizes raw outputs and latency for the extraction client.
        Alternatives: Return provider-specific response objects directly.
        """


class MockAiProvider(AiProvider):
    """Summary: Deterministic AI provider for local testing.

    Importance: Enables offline workflows and repeatable tests.
    Alternatives: Use a small local LLM for all development tasks.
    """

    model_version = "mock"

    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self._payload = payload if payload is not None else {
            "events": [],
            "reminders": [],
            "tasks": [],
        }

    def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> tuple[str, int]:
        """Summary: Return the canned payload as JSON text."""

        started = time.time()
        response = json.dumps(self._payload)
        latency_ms = int((time.time() - started) * 1000)
        return response, latency_ms


class OpenAiProvider(AiProvider):
    """Summary: AI provider using OpenAI chat completions with JSON schema output.

    Importance: Gives strict, schema-conforming extraction results in the cloud.
    Alternatives: Use JSON mode and rely on local validation only.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL_VERSION,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60,
    ) -> None:
        self._api_key = api_key
        self.model_version = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> tuple[str, int]:
        """Summary: Generate structured output using OpenAI chat completions.

        Importance: Enforces the extraction schema on the provider side.
        Alternatives: Use the responses API or function calling.
        """

        payload = {
            "model": self.model_version,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "strict": True, "schema": schema},
            },
        }
        request = urllib.request.Request(
            url=f"{self._base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            method="POST",
        )
        raw, latency_ms = _post_json(request, self._timeout, "OpenAI")
        try:
            message = raw["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SchemaValidationError("OpenAI response did not contain a message") from exc
        if message.get("refusal"):
            raise SchemaValidationError(f"OpenAI refused the request: {message['refusal']}")
        return message.get("content") or "", latency_ms


class OllamaProvider(AiProvider):
    """Summary: AI provider that targets a local Ollama server.

    Importance: Supports privacy-sensitive workflows on local hardware.
    Alternatives: Use llama.cpp directly with a Python binding.
    """

    def __init__(self, base_url: str, model: str, timeout: float = 60) -> None:
        self._base_url = base_url.rstrip("/")
        self.model_version = model
        self._timeout = timeout

    def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> tuple[str, int]:
        """Summary: Generate structured output using Ollama's format parameter.

        Importance: Enables local inference with schema-constrained decoding.
        Alternatives: Use Ollama's CLI and parse its output.
        """

        payload = {
            "model": self.model_version,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "format": schema,
            "stream": False,
            "options": {"temperature": 0},
        }
        request = urllib.request.Request(
            url=f"{self._base_url}/api/chat",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        raw, latency_ms = _post_json(request, self._timeout, "Ollama")
        message = raw.get("message") if isinstance(raw, dict) else None
        if not isinstance(message, dict):
            raise SchemaValidationError("Ollama response did not contain a message")
        return message.get("content") or "", latency_ms


def _post_json(
    request: urllib.request.Request, timeout: float, provider: str
) -> tuple[Any, int]:
    """Summary: Send a JSON request and map transport failures to typed errors.

    Importance: Lets the job runner distinguish transient from permanent failures.
    Alternatives: Let urllib exceptions propagate unchanged.
    """

    started = time.time()
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read()
    except urllib.error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")[:500]
        raise ModelError(
            f"{provider} request failed with HTTP {exc.code}: {detail}",
            retryable=exc.code in _RETRYABLE_STATUS,
        ) from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, TimeoutError):
            raise ModelTimeoutError(f"{provider} request timed out after {timeout}s") from exc
        raise ModelError(f"{provider} request failed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise ModelTimeoutError(f"{provider} request timed out after {timeout}s") from exc
    except (ConnectionError, http.client.HTTPException) as exc:
        raise ModelError(f"{provider} connection failed: {exc!r}") from exc
    latency_ms = int((time.time() - started) * 1000)
    try:
        return json.loads(body.decode("utf-8")), latency_ms
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ModelError(f"{provider} returned a non-JSON body", retryable=False) from exc


@dataclass(frozen=True)
class AiProviderFactory:
    """Summary: Factory for selecting AI providers from configuration.

    Importance: Keeps provider selection logic centralized.
    Alternatives: Wire providers manually at the application entrypoint.
    """

    config: AppConfig

    def build(self) -> AiProvider:
        """Summary: Construct the configured AI provider."""

        if self.config.ai_provider == "ollama":
            return OllamaProvider(
                self.config.ollama_url,
                self.config.ollama_model,
                timeout=self.config.ai_timeout_seconds,
            )
        if self.config.ai_provider == "openai":
            if not self.config.openai_api_key:
                raise ValueError("OPENAI_API_KEY is required for openai provider")
            return OpenAiProvider(
                self.config.openai_api_key,
                self.config.openai_model,
                base_url=self.config.openai_base_url,
                timeout=self.config.ai_timeout_seconds,
            )
        return MockAiProvider()


@dataclass(frozen=True)
class ExtractionResult:
    """Summary: A validated extraction payload with its provenance.

    Importance: Carries model and prompt versions into the persisted record.
    Alternatives: Look up versions from configuration at write time.
    """

    payload: dict[str, Any]
    model_version: str
    prompt_version: str
    latency_ms: int


@dataclass(frozen=True)
class ExtractionClient:
    """Summary: Runs one schema-constrained extraction call.

    Importance: Returns either a validated payload or a typed failure, never partial data.
    Alternatives: Validate payloads in the orchestrator after persistence.
    """

    provider: AiProvider

    @property
    def model_version(self) -> str:
        return self.provider.model_version

    def extract(self, prompt: ExtractionPrompt) -> ExtractionResult:
        """Summary: Call the provider and validate its output.

        Importance: Keeps retries out of the client so the job runner owns failure policy.
        Alternatives: Retry inside the client on every failure.
        """

        text, latency_ms = self.provider.generate_structured(
            prompt.system, prompt.user, SCHEMA_NAME, EXTRACTION_SCHEMA
        )
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaValidationError(f"Model output is not valid JSON: {exc.msg}") from exc
        validate_payload(data)
        logger.debug(
            "Extraction call to %s succeeded in %sms.", self.provider.model_version, latency_ms
        )
        return ExtractionResult(
            payload=data,
            model_version=self.provider.model_version,
            prompt_version=prompt.version,
            latency_ms=latency_ms,
        )
