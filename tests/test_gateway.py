import os
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from career_identity.ai.config import load_ai_config
from career_identity.ai.gateway import AIGatewayError, ai_complete, parse_json_content
from career_identity.ai.pricing import calculate_cost_cents
from career_identity.ai.types import ChatMessage, CompletionResult

MESSAGES = [ChatMessage(role="user", content="hi")]


class ParseJsonContentTests(unittest.TestCase):
    def test_strips_markdown_fences(self):
        self.assertEqual(parse_json_content('```json\n[{"a": 1}]\n```'), [{"a": 1}])
        self.assertEqual(parse_json_content('{"a": 1}'), {"a": 1})

    def test_invalid_json_raises(self):
        with self.assertRaises(ValueError):
            parse_json_content("not json")


class AIConfigTests(unittest.TestCase):
    def test_operation_overrides_global_model(self):
        env = {"AI_MODEL": "gpt-4o", "SYNTHESIZE_CLAIMS_MODEL": "gpt-4.1-mini", "AI_PROVIDER": "bogus"}
        with patch.dict(os.environ, env):
            self.assertEqual(load_ai_config("synthesize_claims").model, "gpt-4.1-mini")
            self.assertEqual(load_ai_config("extract_evidence").model, "gpt-4o")
            self.assertEqual(load_ai_config("extract_evidence").provider, "openai")


class PricingTests(unittest.TestCase):
    def test_cost_in_cents(self):
        # 1M input at $0.15 plus 1M output at $0.60.
        self.assertEqual(calculate_cost_cents("openai", "gpt-4o-mini", 1_000_000, 1_000_000), 75)
        self.assertEqual(calculate_cost_cents("openai", "unknown-model", 1000, 1000), 0)


class AICompleteTests(unittest.IsolatedAsyncioTestCase):
    async def test_success_logs_usage(self):
        client = MagicMock()
        client.complete = AsyncMock(return_value=CompletionResult(content="ok", input_tokens=10, output_tokens=5))
        with patch("career_identity.ai.gateway.get_ai_client", return_value=client), patch(
            "career_identity.ai.gateway.log_ai_usage"
        ) as log_usage:
            result = await ai_complete(
                "extract_opportunity", MESSAGES, temperature=0, max_tokens=100, user_id="user-1"
            )

        self.assertEqual(result.content, "ok")
        client.complete.assert_awaited_once_with(MESSAGES, temperature=0, max_tokens=100, json_mode=False)
        entry = log_usage.call_args.kwargs
        self.assertTrue(entry["success"])
        self.assertEqual((entry["input_tokens"], entry["output_tokens"]), (10, 5))
        self.assertEqual(entry["operation"], "extract_opportunity")
        self.assertEqual(entry["user_id"], "user-1")

    async def test_failure_is_wrapped_and_logged(self):
        client = MagicMock()
        client.complete = AsyncMock(side_effect=TimeoutError("upstream timeout"))
        with patch("career_identity.ai.gateway.get_ai_client", return_value=client), patch(
            "career_identity.ai.gateway.log_ai_usage"
        ) as log_usage:
            with self.assertRaises(AIGatewayError) as ctx:
                await ai_complete("talking_points", MESSAGES)

        self.assertEqual(ctx.exception.code, "llm_unavailable")
        self.assertIn("upstream timeout", str(ctx.exception))
        entry = log_usage.call_args.kwargs
        self.assertFalse(entry["success"])
        self.assertEqual(entry["error_message"], "upstream timeout")

    async def test_usage_logging_failure_does_not_break_completion(self):
        client = MagicMock()
        client.complete = AsyncMock(return_value=CompletionResult(content="ok"))
        with patch("career_identity.ai.gateway.get_ai_client", return_value=client), patch(
            "career_identity.ai.gateway.log_ai_usage", side_effect=OSError("disk full")
        ):
            result = await ai_complete("extract_opportunity", MESSAGES)
        self.assertEqual(result.content, "ok")


if __name__ == "__main__":
    unittest.main()
