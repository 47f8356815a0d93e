import unittest
from datetime import date, datetime, timezone

from career_identity.identity.confidence import (
    MAX_CONFIDENCE,
    EvidenceInput,
    calculate_claim_confidence,
    calculate_evidence_weight,
    calculate_recency_decay,
    get_source_weight,
    parse_evidence_date,
)

REFERENCE = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _evidence(strength="medium", source_type="resume", evidence_date=None, claim_type="skill"):
    return EvidenceInput(
        strength=strength,
        source_type=source_type,
        evidence_date=evidence_date,
        claim_type=claim_type,
    )


class RecencyDecayTests(unittest.TestCase):
    def test_missing_date_has_no_penalty(self):
        self.assertEqual(calculate_recency_decay(None, "skill", REFERENCE), 1.0)

    def test_credentials_never_decay(self):
        old = date(1990, 1, 1)
        self.assertEqual(calculate_recency_decay(old, "education", REFERENCE), 1.0)
        self.assertEqual(calculate_recency_decay(old, "certification", REFERENCE), 1.0)

    def test_future_dates_do_not_decay(self):
        self.assertEqual(calculate_recency_decay(date(2030, 1, 1), "skill", REFERENCE), 1.0)

    def test_one_half_life_halves_weight(self):
        four_years = datetime(2021, 6, 1, tzinfo=timezone.utc)
        decay = calculate_recency_decay(four_years, "skill", REFERENCE)
        # 2021-06-01 to 2025-06-01 is 1461 days, exactly four 365.25-day years.
        self.assertAlmostEqual(decay, 0.5, places=6)

    def test_attributes_decay_slower_than_skills(self):
        ten_years = date(2015, 6, 1)
        skill = calculate_recency_decay(ten_years, "skill", REFERENCE)
        achievement = calculate_recency_decay(ten_years, "achievement", REFERENCE)
        attribute = calculate_recency_decay(ten_years, "attribute", REFERENCE)
        self.assertLess(skill, achievement)
        self.assertLess(achievement, attribute)


class SourceWeightTests(unittest.TestCase):
    def test_known_and_unknown_sources(self):
        self.assertEqual(get_source_weight("certification"), 1.5)
        self.assertEqual(get_source_weight("resume"), 1.0)
        self.assertEqual(get_source_weight("story"), 0.8)
        self.assertEqual(get_source_weight("inferred"), 0.6)
        self.assertEqual(get_source_weight("linkedin"), 1.0)
        self.assertEqual(get_source_weight(None), 1.0)

    def test_evidence_weight_combines_factors(self):
        weight = calculate_evidence_weight(_evidence(strength="strong", source_type="story"), REFERENCE)
        self.assertAlmostEqual(weight, 1.2 * 0.8)

    def test_unknown_strength_counts_as_medium(self):
        weight = calculate_evidence_weight(_evidence(strength="overwhelming"), REFERENCE)
        self.assertAlmostEqual(weight, 1.0)


class ClaimConfidenceTests(unittest.TestCase):
    def test_no_evidence_is_zero(self):
        self.assertEqual(calculate_claim_confidence([], REFERENCE), 0.0)

    def test_base_confidence_by_count(self):
        expected = {1: 0.5, 2: 0.7, 3: 0.8, 4: 0.9, 7: 0.9}
        for count, base in expected.items():
            with self.subTest(count=count):
                items = [_evidence() for _ in range(count)]
                self.assertAlmostEqual(calculate_claim_confidence(items, REFERENCE), base)

    def test_confidence_is_capped(self):
        items = [_evidence(strength="strong", source_type="certification", claim_type="certification")] * 5
        self.assertEqual(calculate_claim_confidence(items, REFERENCE), MAX_CONFIDENCE)

    def test_single_weak_story(self):
        confidence = calculate_claim_confidence([_evidence(strength="weak", source_type="story")], REFERENCE)
        self.assertAlmostEqual(confidence, 0.5 * 0.7 * 0.8)

    def test_parse_evidence_date(self):
        self.assertEqual(parse_evidence_date("2020-06-01"), datetime(2020, 6, 1))
        self.assertIsNone(parse_evidence_date(""))
        self.assertIsNone(parse_evidence_date("sometime"))
        self.assertEqual(parse_evidence_date(date(2020, 6, 1)), date(2020, 6, 1))


if __name__ == "__main__":
    unittest.main()
