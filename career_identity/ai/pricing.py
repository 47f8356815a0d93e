from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# USD per 1M tokens: (input, output)
AI_PRICING: dict[str, dict[str, tuple[float, float]]] = {
    "openai": {
        "gpt-4o-mini": (0.15, 0.6),
        "gpt-4o": (2.5, 10.0),
        "gpt-4.1": (2.0, 8.0),
        "gpt-4.1-mini": (0.4, 1.6),
        "gpt-4.1-nano": (0.1, 0.4),
        "gpt-5-mini": (0.25, 2.0),
        "gpt-5-nano": (0.05, 0.4),
        "gpt-5": (1.25, 10.0),
        "text-embedding-3-small": (0.02, 0.0),
        "text-embedding-3-large": (0.13, 0.0),
    },
}


def calculate_cost_cents(provider: str, model: str, input_tokens: int, output_tokens: int) -> int:
    pricing = AI_PRICING.get(provider, {}).get(model)
    if pricing is None:
        logger.warning("unknown_model_pricing provider=%s model=%s", provider, model)
        return 0

    input_price, output_price = pricing
    input_cost = (input_tokens / 1_000_000) * input_price * 100
    output_cost = (output_tokens / 1_000_000) * output_price * 100
    return round(input_cost + output_cost)
