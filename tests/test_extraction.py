import json
import unittest
from unittest.mock import AsyncMock, patch

from career_identity.ai.types import CompletionResult
from career_identity.identity.extraction import (
    ExtractionError,
    derive_evidence_date,
    extract_evidence,
    extract_story_evidence,
    extract_work_history,
    sort_work_history,
)
from career_identity.schemas.evidence import EvidenceContext, WorkHistoryEntry


def _reply(payload) -> AsyncMock:
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return AsyncMock(return_value=CompletionResult(content=content))


class EvidenceExtractionTests(unittest.IsolatedAsyncioTestCase):
    async def test_filters_invalid_items_and_tags_source(self):
        items = [
            {"text": "Reduced latency by 40%", "type": "accomplishment",
             "context": {"role": "Engineer", "company": "Acme", "dates": "2019-2022"}},
            {"text": "Go", "type": "skill_listed", "context": None},
            {"text": "", "type": "skill_listed"},
            {"text": 42, "type": "skill_listed"},
            {"text": "x" * 5001, "type": "accomplishment"},
            {"text": "Juggling", "type": "hobby"},
            {"text": "BS Computer Science", "type": "education", "context": {"institution": "MIT", "year": 2010}},
        ]
        with patch("career_identity.identity.extraction.ai_complete", _reply(items)) as complete:
            evidence = await extract_evidence("resume text")

        self.assertEqual([item.text for item in evidence], ["Reduced latency by 40%", "Go", "BS Computer Science"])
        self.assertTrue(all(item.source_type == "resume" for item in evidence))
        self.assertEqual(evidence[0].context.company, "Acme")
        self.assertEqual(evidence[2].context.year, "2010")
        self.assertEqual(complete.await_args.args[0], "extract_evidence")

    async def test_story_evidence_uses_story_source(self):
        items = [{"text": "Kafka", "type": "skill_listed", "context": None}]
        with patch("career_identity.identity.extraction.ai_complete", _reply(items)) as complete:
            evidence = await extract_story_evidence("story text")

        self.assertEqual(evidence[0].source_type, "story")
        self.assertEqual(complete.await_args.args[0], "extract_story_evidence")
        self.assertTrue(complete.await_args.args[1][1].content.endswith("story text"))

    async def test_unparseable_or_non_array_output_raises(self):
        for content in ("not json", json.dumps({"items": []}), ""):
            with self.subTest(content=content):
                with patch("career_identity.identity.extraction.ai_complete", _reply(content)):
                    with self.assertRaises(ExtractionError):
                        await extract_evidence("resume text")

    async def test_code_fences_are_tolerated(self):
        content = "```json\n" + json.dumps([{"text": "Go", "type": "skill_listed"}]) + "\n```"
        with patch("career_identity.identity.extraction.ai_complete", _reply(content)):
            evidence = await extract_evidence("resume text")
        self.assertEqual(len(evidence), 1)


class WorkHistoryExtractionTests(unittest.IsolatedAsyncioTestCase):
    async def test_venture_defaults_and_required_fields(self):
        jobs = [
            {"company": "Google", "company_domain": "google.com", "title": "Engineer", "start_date": "2018",
             "end_date": "2021", "location": None, "summary": None, "entry_type": "work"},
            {"company": "Side Project", "title": "", "start_date": "", "entry_type": "venture"},
            {"company": "", "title": "Engineer", "start_date": "2015", "entry_type": "work"},
            {"company": "Acme", "title": "Intern", "start_date": "2012", "entry_type": "internship"},
        ]
        with patch("career_identity.identity.extraction.ai_complete", _reply(jobs)) as complete:
            entries = await extract_work_history("resume text")

        self.assertEqual([entry.company for entry in entries], ["Google", "Side Project", "Acme"])
        self.assertEqual((entries[1].title, entries[1].start_date), ("Founder", "Ongoing"))
        self.assertEqual(entries[2].entry_type, "work")
        self.assertEqual(complete.await_args.kwargs["temperature"], 0)

    async def test_invalid_output_raises(self):
        with patch("career_identity.identity.extraction.ai_complete", _reply("oops")):
            with self.assertRaises(ExtractionError):
                await extract_work_history("resume text")


class WorkHistorySortTests(unittest.TestCase):
    def test_current_roles_first_then_recency(self):
        entries = [
            WorkHistoryEntry(company="Old", title="Dev", start_date="2010", end_date="2012"),
            WorkHistoryEntry(company="Current", title="Lead", start_date="2020", end_date=None),
            WorkHistoryEntry(company="Present", title="Advisor", start_date="2022", end_date="Present"),
            WorkHistoryEntry(company="Recent", title="Dev", start_date="2015", end_date="2020"),
            WorkHistoryEntry(company="Overlap", title="Dev", start_date="2015", end_date="2018"),
        ]
        ordered = [entry.company for entry in sort_work_history(entries)]
        self.assertEqual(ordered, ["Present", "Current", "Recent", "Overlap", "Old"])


class EvidenceDateTests(unittest.TestCase):
    def test_uses_last_year_in_dates(self):
        self.assertEqual(derive_evidence_date(EvidenceContext(dates="2018 - 2020")), "2020-06-01")

    def test_uses_year_only_without_dates(self):
        self.assertEqual(derive_evidence_date(EvidenceContext(year=2021)), "2021-06-01")

    def test_dates_without_a_year_leave_evidence_undated(self):
        self.assertIsNone(derive_evidence_date(EvidenceContext(dates="Present", year="2019")))

    def test_no_date_information(self):
        self.assertIsNone(derive_evidence_date(None))
        self.assertIsNone(derive_evidence_date(EvidenceContext(role="Engineer")))


if __name__ == "__main__":
    unittest.main()
