import json
import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

from career_identity.ai.types import CompletionResult
from career_identity.identity.synthesis import (
    build_batch_prompt,
    recalculate_all_confidences,
    recalculate_confidence,
    synthesize_claims_batch,
)
from career_identity.schemas.claims import RelevantClaim
from career_identity.schemas.evidence import EvidenceItem
from career_identity.semantic import generate_embedding

from helpers import make_store

USER = "user-1"


def _completion(decisions) -> CompletionResult:
    return CompletionResult(content="```json\n" + json.dumps(decisions) + "\n```", input_tokens=10, output_tokens=5)


class SynthesizeClaimsBatchTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.store = make_store(self)
        self.document = self.store.create_document(
            user_id=USER, doc_type="story", raw_text="story", content_hash="hash"
        )

    async def _evidence(self, specs):
        texts = [text for text, _ in specs]
        embeddings = [await generate_embedding(text) for text in texts]
        stored = self.store.insert_evidence(
            user_id=USER,
            document_id=self.document["id"],
            items=[
                {"evidence_type": evidence_type, "text": text, "embedding": embedding, "source_type": "story"}
                for (text, evidence_type), embedding in zip(specs, embeddings)
            ],
        )
        return [
            EvidenceItem(
                id=record["id"],
                text=record["text"],
                type=record["evidence_type"],
                embedding=record["embedding"],
                source_type="story",
            )
            for record in stored
        ]

    async def test_creates_new_claims_and_reveals_updates_at_end(self):
        evidence = await self._evidence([("Kafka", "skill_listed"), ("Calm under pressure", "trait_indicator")])
        decisions = [
            {
                "evidence_id": evidence[0].id,
                "match": None,
                "strength": "strong",
                "new_claim": {"type": "skill", "label": "Kafka", "description": "Event streaming"},
            },
            {
                "evidence_id": evidence[1].id,
                "match": None,
                "strength": "medium",
                "new_claim": {"type": "attribute", "label": "Composure", "description": ""},
            },
        ]
        progress, updates = [], []
        with patch(
            "career_identity.identity.synthesis.ai_complete", AsyncMock(return_value=_completion(decisions))
        ) as complete:
            result = await synthesize_claims_batch(
                self.store, USER, evidence, on_progress=progress.append, on_claim_update=updates.append
            )

        self.assertEqual((result.claims_created, result.claims_updated), (2, 0))
        self.assertEqual([(p.current, p.total) for p in progress], [(1, 1)])
        self.assertEqual([(u.action, u.label) for u in updates], [("created", "Kafka"), ("created", "Composure")])
        self.assertEqual(complete.await_args.kwargs["temperature"], 0)
        self.assertEqual(complete.await_args.kwargs["max_tokens"], 2000)

        [kafka] = [claim for claim in self.store.list_claims(USER) if claim["label"] == "Kafka"]
        # strong (1.2) story (0.8) evidence on a single item: 0.5 * 0.96.
        self.assertAlmostEqual(kafka["confidence"], 0.48)
        self.assertEqual(len(self.store.get_claim_evidence(kafka["id"])), 1)

    async def test_matches_existing_claim_by_label(self):
        existing = self.store.insert_claim(
            user_id=USER,
            claim_type="skill",
            label="Python",
            description="Backend development",
            confidence=0.5,
            embedding=await generate_embedding("Python"),
        )
        evidence = await self._evidence([("Python", "skill_listed")])
        decisions = [{"evidence_id": evidence[0].id, "match": "Python", "strength": "medium", "new_claim": None}]
        updates = []
        with patch(
            "career_identity.identity.synthesis.ai_complete", AsyncMock(return_value=_completion(decisions))
        ) as complete:
            result = await synthesize_claims_batch(self.store, USER, evidence, on_claim_update=updates.append)

        self.assertEqual((result.claims_created, result.claims_updated), (0, 1))
        self.assertEqual([(u.action, u.label) for u in updates], [("matched", "Python")])
        prompt = complete.await_args.args[1][1].content
        self.assertIn('"Python" (skill) - Backend development', prompt)
        # Recalculated from the single medium story link.
        self.assertAlmostEqual(self.store.get_claim(existing["id"])["confidence"], 0.4)

    async def test_new_claim_with_existing_label_links_instead_of_duplicating(self):
        self.store.insert_claim(
            user_id=USER, claim_type="skill", label="Go", description=None, confidence=0.5,
            embedding=await generate_embedding("Go"),
        )
        evidence = await self._evidence([("Go", "skill_listed")])
        decisions = [
            {
                "evidence_id": evidence[0].id,
                "match": None,
                "strength": "weak",
                "new_claim": {"type": "skill", "label": "Go", "description": ""},
            }
        ]
        with patch("career_identity.identity.synthesis.ai_complete", AsyncMock(return_value=_completion(decisions))):
            result = await synthesize_claims_batch(self.store, USER, evidence)

        self.assertEqual((result.claims_created, result.claims_updated), (0, 1))
        self.assertEqual(len(self.store.list_claims(USER)), 1)

    async def test_ignores_unknown_evidence_and_invalid_claims(self):
        evidence = await self._evidence([("Rust", "skill_listed"), ("Zig", "skill_listed")])
        decisions = [
            {"evidence_id": "not-in-batch", "match": None, "strength": "strong",
             "new_claim": {"type": "skill", "label": "Ghost", "description": ""}},
            {"evidence_id": evidence[0].id, "match": None, "strength": "strong",
             "new_claim": {"type": "superpower", "label": "Rust", "description": ""}},
            {"evidence_id": evidence[1].id, "match": None, "strength": "strong",
             "new_claim": {"type": "skill", "label": "   ", "description": ""}},
            "not a decision",
        ]
        with patch("career_identity.identity.synthesis.ai_complete", AsyncMock(return_value=_completion(decisions))):
            result = await synthesize_claims_batch(self.store, USER, evidence)

        self.assertEqual((result.claims_created, result.claims_updated), (0, 0))
        self.assertEqual(self.store.list_claims(USER), [])

    async def test_same_new_label_twice_creates_one_claim(self):
        evidence = await self._evidence([("Docker", "skill_listed"), ("Docker Compose", "skill_listed")])
        decisions = [
            {"evidence_id": item.id, "match": None, "strength": "medium",
             "new_claim": {"type": "skill", "label": "Containers", "description": ""}}
            for item in evidence
        ]
        with patch("career_identity.identity.synthesis.ai_complete", AsyncMock(return_value=_completion(decisions))):
            result = await synthesize_claims_batch(self.store, USER, evidence)

        self.assertEqual((result.claims_created, result.claims_updated), (1, 1))
        [claim] = self.store.list_claims(USER)
        self.assertEqual(claim["evidence_count"], 2)

    async def test_failed_and_unparseable_batches_do_not_stop_synthesis(self):
        evidence = await self._evidence([(f"Skill number {i}", "skill_listed") for i in range(21)])
        last = evidence[20]
        responses = [
            RuntimeError("provider down"),
            CompletionResult(content="I cannot help with that"),
            _completion(
                [{"evidence_id": last.id, "match": None, "strength": "medium",
                  "new_claim": {"type": "skill", "label": "Last skill", "description": ""}}]
            ),
        ]
        progress = []
        with patch("career_identity.identity.synthesis.ai_complete", AsyncMock(side_effect=responses)):
            result = await synthesize_claims_batch(self.store, USER, evidence, on_progress=progress.append)

        self.assertEqual([(p.current, p.total) for p in progress], [(1, 3), (2, 3), (3, 3)])
        self.assertEqual(result.claims_created, 1)

    async def test_claims_from_earlier_batches_are_offered_to_later_ones(self):
        evidence = await self._evidence([(f"Evidence {i}", "accomplishment") for i in range(11)])
        first_batch = [
            {"evidence_id": evidence[0].id, "match": None, "strength": "strong",
             "new_claim": {"type": "achievement", "label": "Scaled platform", "description": "Grew usage"}}
        ]
        second_batch = [{"evidence_id": evidence[10].id, "match": "Scaled platform", "strength": "medium", "new_claim": None}]
        complete = AsyncMock(side_effect=[_completion(first_batch), _completion(second_batch)])
        with patch("career_identity.identity.synthesis.ai_complete", complete):
            result = await synthesize_claims_batch(self.store, USER, evidence)

        self.assertEqual((result.claims_created, result.claims_updated), (1, 1))
        second_prompt = complete.await_args_list[1].args[1][1].content
        self.assertIn('"Scaled platform" (achievement)', second_prompt)
        [claim] = self.store.list_claims(USER)
        self.assertEqual(claim["evidence_count"], 2)


class BatchPromptTests(unittest.TestCase):
    def test_prompt_lists_claims_and_type_mapping(self):
        evidence = [EvidenceItem(id="e1", text="Led a team of 8", type="accomplishment")]
        prompt = build_batch_prompt(evidence, [RelevantClaim(id="c1", type="skill", label="Leadership")])
        self.assertIn('1. "Leadership" (skill) - No description', prompt)
        self.assertIn('[ID: e1] "Led a team of 8" (type: accomplishment -> achievement)', prompt)
        self.assertIn("EXACTLY 1 decisions", prompt)

    def test_prompt_without_claims(self):
        prompt = build_batch_prompt([EvidenceItem(id="e1", text="Go", type="skill_listed")], [])
        self.assertIn("No existing claims yet.", prompt)


class RecalculateConfidenceTests(unittest.TestCase):
    def setUp(self):
        self.store = make_store(self)
        document = self.store.create_document(user_id=USER, doc_type="resume", raw_text="r", content_hash="h")
        self.evidence = self.store.insert_evidence(
            user_id=USER,
            document_id=document["id"],
            items=[
                {"evidence_type": "skill_listed", "text": "Perl", "evidence_date": "2017-06-01"},
                {"evidence_type": "skill_listed", "text": "Perl scripting", "evidence_date": None},
            ],
        )
        self.claim = self.store.insert_claim(
            user_id=USER, claim_type="skill", label="Perl", description=None, confidence=0.1, embedding=None
        )

    def test_unknown_claim_or_no_links_is_noop(self):
        self.assertIsNone(recalculate_confidence(self.store, "missing"))
        self.assertIsNone(recalculate_confidence(self.store, self.claim["id"]))
        self.assertEqual(self.store.get_claim(self.claim["id"])["confidence"], 0.1)

    def test_recalculates_with_recency_decay(self):
        for item in self.evidence:
            self.store.link_evidence(self.claim["id"], item["id"], "medium")
        reference = datetime(2025, 6, 1, tzinfo=timezone.utc)
        confidence = recalculate_confidence(self.store, self.claim["id"], reference)
        # Eight years is two skill half-lives: (0.25 + 1.0) / 2 * 0.7.
        self.assertAlmostEqual(confidence, 0.4375, places=3)
        self.assertAlmostEqual(self.store.get_claim(self.claim["id"])["confidence"], confidence)

    def test_recalculate_all_counts_updated_claims(self):
        self.store.link_evidence(self.claim["id"], self.evidence[1]["id"], "strong")
        self.store.insert_claim(
            user_id=USER, claim_type="skill", label="Unlinked", description=None, confidence=0.3, embedding=None
        )
        self.assertEqual(recalculate_all_confidences(self.store, USER), 1)
        self.assertAlmostEqual(self.store.get_claim(self.claim["id"])["confidence"], 0.6)


if __name__ == "__main__":
    unittest.main()
