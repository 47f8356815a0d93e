import os
from dataclasses import dataclass

_PROVIDERS = {"openai"}
_DEFAULT_PROVIDER = "openai"
_DEFAULT_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str


def load_ai_config(operation: str) -> AIConfig:
    """Resolve provider/model for an operation from {OPERATION}_PROVIDER / {OPERATION}_MODEL."""
    prefix = operation.upper()

    provider = (os.getenv(f"{prefix}_PROVIDER") or os.getenv("AI_PROVIDER") or "").strip().lower()
    if provider not in _PROVIDERS:
        provider = _DEFAULT_PROVIDER
    model = (os.getenv(f"{prefix}_MODEL") or os.getenv("AI_MODEL") or "").strip() or _DEFAULT_MODEL
    return AIConfig(provider=provider, model=model)
