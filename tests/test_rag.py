import unittest
from unittest.mock import MagicMock

from career_identity.identity.rag import find_relevant_claims_for_batch
from career_identity.schemas.evidence import EvidenceItem


def _row(claim_id, label):
    return {
        "id": claim_id,
        "type": "skill",
        "label": label,
        "description": None,
        "confidence": 0.6,
        "similarity": 0.8,
    }


def _evidence(evidence_id):
    return EvidenceItem(id=evidence_id, text="x", type="skill_listed", embedding=[1.0, 0.0])


class RelevantClaimsTests(unittest.TestCase):
    def test_empty_batch_skips_queries(self):
        store = MagicMock()
        self.assertEqual(find_relevant_claims_for_batch(store, "user-1", []), [])
        store.find_relevant_claims_for_synthesis.assert_not_called()

    def test_results_are_deduplicated_in_first_seen_order(self):
        store = MagicMock()
        store.find_relevant_claims_for_synthesis.side_effect = [
            [_row("c1", "Python"), _row("c2", "Go")],
            [_row("c2", "Go"), _row("c3", "Rust")],
        ]
        claims = find_relevant_claims_for_batch(store, "user-1", [_evidence("e1"), _evidence("e2")])
        self.assertEqual([claim.id for claim in claims], ["c1", "c2", "c3"])

        args = store.find_relevant_claims_for_synthesis.call_args_list[0].args
        self.assertEqual(args, ([1.0, 0.0], "user-1", 0.5, 25))

    def test_failed_query_is_skipped(self):
        store = MagicMock()
        store.find_relevant_claims_for_synthesis.side_effect = [
            RuntimeError("database is locked"),
            [_row("c1", "Python")],
        ]
        claims = find_relevant_claims_for_batch(
            store, "user-1", [_evidence("e1"), _evidence("e2")], similarity_threshold=0.3, max_claims_per_query=5
        )
        self.assertEqual([claim.label for claim in claims], ["Python"])
        args = store.find_relevant_claims_for_synthesis.call_args_list[1].args
        self.assertEqual(args[2:], (0.3, 5))


if __name__ == "__main__":
    unittest.main()
