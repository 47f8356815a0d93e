from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Sequence

from career_identity.ai.config import load_ai_config
from career_identity.ai.factory import get_ai_client
from career_identity.ai.pricing import calculate_cost_cents
from career_identity.ai.types import ChatMessage, CompletionResult
from career_identity.analytics.db import log_ai_usage

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\n?")


class AIGatewayError(RuntimeError):
    def __init__(self, message: str, *, code: str = "llm_unavailable"):
        super().__init__(message)
        self.code = code


def strip_code_fences(content: str) -> str:
    return _CODE_FENCE_RE.sub("", content or "").strip()


def parse_json_content(content: str) -> Any:
    """Parse model output as JSON, tolerating markdown code fences."""
    return json.loads(strip_code_fences(content))


def _log_usage(**entry: Any) -> None:
    try:
        log_ai_usage(**entry)
    except Exception:  # pragma: no cover - usage logging must not break AI responses
        logger.debug("ai_usage_logging_failed", exc_info=True)


async def ai_complete(
    operation: str,
    messages: Sequence[ChatMessage],
    *,
    temperature: float | None = None,
    max_tokens: int | None = None,
    json_mode: bool = False,
    user_id: str | None = None,
    document_id: str | None = None,
    opportunity_id: str | None = None,
) -> CompletionResult:
    cfg = load_ai_config(operation)
    started = time.perf_counter()
    result: CompletionResult | None = None
    error_message: str | None = None

    try:
        client = get_ai_client(cfg)
        result = await client.complete(
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
        )
        return result
    except Exception as exc:
        error_message = str(exc) or exc.__class__.__name__
        logger.warning(
            "ai_complete_failed operation=%s provider=%s model=%s: %s",
            operation,
            cfg.provider,
            cfg.model,
            error_message,
        )
        raise AIGatewayError(f"{operation} failed: {error_message}") from exc
    finally:
        input_tokens = result.input_tokens if result else 0
        output_tokens = result.output_tokens if result else 0
        _log_usage(
            operation=operation,
            provider=cfg.provider,
            model=cfg.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_cents=calculate_cost_cents(cfg.provider, cfg.model, input_tokens, output_tokens),
            latency_ms=int((time.perf_counter() - started) * 1000),
            success=result is not None,
            error_message=error_message,
            user_id=user_id,
            document_id=document_id,
            opportunity_id=opportunity_id,
        )
