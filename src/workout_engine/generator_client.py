"""Generative-text service client and last-good model cache."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import httpx

from .config import DEFAULT_FALLBACK_MODEL, DEFAULT_GENERATOR_BASE_URL, Config
from .errors import GeneratorError, ModelUnavailableError
from .logging import engine_extra

logger = logging.getLogger(__name__)

# Best to worst; the first one the service offers is used.
PREFERRED_MODELS: tuple[str, ...] = (
    "gemini-2.0-flash-exp",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
    "gemini-1.5-pro",
    "gemini-pro",
)

LIST_API_VERSIONS: tuple[str, ...] = ("v1", "v1beta")
GENERATE_API_VERSION = "v1beta"


class GenerativeTextClient(Protocol):
    async def list_models(self) -> list[str]: ...

    async def generate(self, prompt: str, *, model: str) -> str: ...


def choose_model(available: Sequence[str], preferred: Sequence[str] = PREFERRED_MODELS) -> str | None:
    """First preferred model offered (exact or prefixed match), else the first offered."""
    names = [name for name in available if name]
    for wanted in preferred:
        for name in names:
            if name == wanted or wanted in name:
                return name
    return names[0] if names else None


class ModelCache:
    """Short-lived memo of the last model identifier that worked.

    Owned by the host and injected into the orchestrator; ``invalidate()``
    forces the next ``resolve()`` to ask the service again.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        *,
        fallback_model: str = DEFAULT_FALLBACK_MODEL,
        preferred: Sequence[str] = PREFERRED_MODELS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.fallback_model = fallback_model
        self.preferred = tuple(preferred)
        self._clock = clock
        self._model: str | None = None
        self._stored_at = 0.0

    def get(self) -> str | None:
        if self._model is None:
            return None
        if self._clock() - self._stored_at >= self.ttl_seconds:
            self._model = None
            return None
        return self._model

    def set(self, model: str) -> None:
        self._model = model
        self._stored_at = self._clock()

    def invalidate(self) -> None:
        if self._model is not None:
            logger.info("Invalidating cached model %s", self._model)
        self._model = None
        self._stored_at = 0.0

    async def resolve(self, client: GenerativeTextClient) -> str:
        cached = self.get()
        if cached is not None:
            return cached
        try:
            available = await client.list_models()
        except GeneratorError as exc:
            logger.warning("Could not list models, using fallback %s: %s", self.fallback_model, exc)
            available = []
        model = choose_model(available, self.preferred) or self.fallback_model
        logger.info("Selected model %s", model, extra=engine_extra(model=model))
        self.set(model)
        return model


def _json_body(resp: httpx.Response, source: str) -> dict[str, Any]:
    """Decoded JSON object, or GeneratorError for HTML error pages and other non-JSON bodies."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise GeneratorError(f"{source} returned a non-JSON response: {resp.text[:200]}") from exc
    if not isinstance(data, dict):
        raise GeneratorError(f"{source} returned JSON {type(data).__name__}, expected an object")
    return data


def _response_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))


class GeminiClient:
    """Gemini REST API over ``httpx.AsyncClient``."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_GENERATOR_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
        )

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "GeminiClient":
        return cls(
            config.generator_api_key,
            base_url=config.generator_base_url,
            timeout=config.generator_timeout_seconds,
            **kwargs,
        )

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_models(self) -> list[str]:
        """Models supporting generateContent, trying each API version in turn."""
        for version in LIST_API_VERSIONS:
            try:
                resp = await self._client.get(f"/{version}/models")
            except httpx.HTTPError as exc:
                logger.warning("Error listing models from %s: %s", version, exc)
                continue
            if resp.status_code != 200:
                logger.warning("Failed to list models from %s: HTTP %d", version, resp.status_code)
                continue

            try:
                body = _json_body(resp, f"Model list {version}")
            except GeneratorError as exc:
                logger.warning("Failed to list models from %s: %s", version, exc)
                continue

            names: list[str] = []
            for model in body.get("models") or []:
                if not isinstance(model, dict):
                    continue
                if "generateContent" not in (model.get("supportedGenerationMethods") or []):
                    continue
                name = str(model.get("name") or "")
                name = name.rsplit("/", 1)[-1]
                if name:
                    names.append(name)
            if names:
                logger.debug("Available models from %s: %s", version, ", ".join(names))
                return names
        return []

    async def generate(self, prompt: str, *, model: str) -> str:
        url = f"/{GENERATE_API_VERSION}/models/{model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            resp = await self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise GeneratorError(f"Generator request failed: {exc}") from exc

        if resp.status_code == 404:
            raise ModelUnavailableError(model, resp.text[:200])
        if resp.status_code >= 400:
            raise GeneratorError(f"Generator returned HTTP {resp.status_code}: {resp.text[:200]}")

        text = _response_text(_json_body(resp, "Generator"))
        if not text.strip():
            raise GeneratorError(f"Generator returned an empty response for model {model!r}")
        return text
