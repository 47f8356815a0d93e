from career_identity.ai.config import AIConfig
from career_identity.ai.types import AIClient

from career_identity.ai.providers.openai_provider import OpenAIProvider


def get_ai_client(cfg: AIConfig) -> AIClient:
    if cfg.provider == "openai":
        return OpenAIProvider(model=cfg.model)

    raise ValueError(f"Unsupported AI provider '{cfg.provider}' for model '{cfg.model}'")
