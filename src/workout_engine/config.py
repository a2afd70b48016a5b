import os
from dataclasses import dataclass

DEFAULT_GENERATOR_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_FALLBACK_MODEL = "gemini-1.5-pro"


@dataclass(frozen=True)
class Config:
    generator_api_key: str
    generator_base_url: str = DEFAULT_GENERATOR_BASE_URL
    generator_timeout_seconds: float = 60.0
    model_cache_ttl_seconds: float = 300.0
    fallback_model: str = DEFAULT_FALLBACK_MODEL
    log_format: str = "json"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        api_key = os.environ.get("GENERATOR_API_KEY")
        if not api_key:
            raise RuntimeError("GENERATOR_API_KEY must be set")

        return cls(
            generator_api_key=api_key,
            generator_base_url=os.environ.get("ENGINE_GENERATOR_BASE_URL", DEFAULT_GENERATOR_BASE_URL),
            generator_timeout_seconds=float(os.environ.get("ENGINE_GENERATOR_TIMEOUT", "60.0")),
            model_cache_ttl_seconds=float(os.environ.get("ENGINE_MODEL_CACHE_TTL", "300.0")),
            fallback_model=os.environ.get("ENGINE_FALLBACK_MODEL", DEFAULT_FALLBACK_MODEL),
            log_format=os.environ.get("ENGINE_LOG_FORMAT", "json"),
            log_level=os.environ.get("ENGINE_LOG_LEVEL", "INFO"),
        )
