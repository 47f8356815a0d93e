from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Sequence

from career_identity.core import events
from career_identity.core.config import settings
from career_identity.core.scoring import get_scoring_value
from career_identity.identity.extraction import (
    ExtractionError,
    derive_evidence_date,
    extract_evidence,
    extract_story_evidence,
    extract_work_history,
    sort_work_history,
)
from career_identity.identity.synthesis import synthesize_claims_batch
from career_identity.parsing.parse import DocumentParseError, parse_upload
from career_identity.schemas.claims import ClaimUpdate, SynthesisProgress, SynthesisResult
from career_identity.schemas.documents import ProcessingSummary
from career_identity.schemas.evidence import EvidenceItem, ExtractedEvidence, WorkHistoryEntry
from career_identity.semantic import generate_embeddings
from career_identity.store import IdentityStore, StoreError
from career_identity.utils.sse import SSEStream

logger = logging.getLogger(__name__)

STORY_EXTRACTION_MESSAGES = ("reading your story...", "finding achievements...", "identifying skills...")
RESUME_EXTRACTION_MESSAGES = ("reading your resume...", "finding achievements...", "mapping your career...")
SYNTHESIS_MESSAGES = ("analyzing patterns...", "synthesizing identity...")


class ProcessingError(RuntimeError):
    """A failure that ends the pipeline with a user-facing error event."""


def compute_content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


async def _tick(sse: SSEStream, messages: Sequence[str], interval: float) -> None:
    index = 0
    while True:
        await asyncio.sleep(interval)
        sse.send({"highlight": messages[index % len(messages)]})
        index += 1


@asynccontextmanager
async def highlight_ticker(sse: SSEStream, messages: Sequence[str]) -> AsyncIterator[None]:
    """Keep the client informed with rotating highlights while a slow step runs."""
    task = asyncio.create_task(_tick(sse, messages, settings.ticker_interval_s))
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def _truncate(text: str) -> str:
    max_chars = int(get_scoring_value("documents.highlights.max_chars", 60))
    return text[:max_chars] + ("..." if len(text) > max_chars else "")


def _send_found_highlights(sse: SSEStream, items: Sequence[ExtractedEvidence]) -> None:
    max_items = int(get_scoring_value("documents.highlights.max_items", 5))
    for item in items[:max_items]:
        sse.send({"highlight": f"Found: {_truncate(item.text)}"})


def _check_duplicate(store: IdentityStore, user_id: str, content_hash: str, label: str) -> None:
    existing = store.find_document_by_hash(user_id, content_hash)
    if not existing:
        return
    # Failed uploads leave a document without evidence behind; let the user retry.
    if existing["status"] != "completed" and store.count_evidence(existing["id"]) == 0:
        logger.info("orphaned_document_removed document_id=%s", existing["id"])
        store.delete_document(existing["id"])
        return
    submitted = existing["created_at"][:10]
    raise ProcessingError(f"Duplicate {label} - already submitted on {submitted}")


async def _store_evidence(
    sse: SSEStream,
    store: IdentityStore,
    *,
    user_id: str,
    document_id: str,
    items: Sequence[ExtractedEvidence],
    source_type: str,
) -> list[EvidenceItem]:
    sse.send({"phase": events.EMBEDDINGS})
    try:
        embeddings = await generate_embeddings([item.text for item in items])
    except Exception as exc:
        logger.exception("evidence_embeddings_failed document_id=%s", document_id)
        raise ProcessingError("Failed to generate embeddings") from exc

    stored = store.insert_evidence(
        user_id=user_id,
        document_id=document_id,
        items=[
            {
                "evidence_type": item.type,
                "text": item.text,
                "context": item.context.model_dump(exclude_none=True) if item.context else None,
                "embedding": embedding,
                "source_type": source_type,
                "evidence_date": derive_evidence_date(item.context),
            }
            for item, embedding in zip(items, embeddings)
        ],
    )
    return [
        EvidenceItem(
            id=record["id"],
            text=record["text"],
            type=record["evidence_type"],
            embedding=record["embedding"],
            source_type=record["source_type"],
            evidence_date=date.fromisoformat(record["evidence_date"]) if record["evidence_date"] else None,
        )
        for record in stored
    ]


async def _synthesize(
    sse: SSEStream, store: IdentityStore, user_id: str, evidence: Sequence[EvidenceItem]
) -> SynthesisResult:
    sse.send({"phase": events.SYNTHESIS, "progress": "0/?"})

    def on_progress(progress: SynthesisProgress) -> None:
        sse.send({"phase": events.SYNTHESIS, "progress": f"{progress.current}/{progress.total}"})

    def on_claim_update(update: ClaimUpdate) -> None:
        prefix = "+" if update.action == "created" else "~"
        sse.send({"highlight": f"{prefix} {update.label}"})

    started = time.perf_counter()
    try:
        async with highlight_ticker(sse, SYNTHESIS_MESSAGES):
            result = await synthesize_claims_batch(
                store, user_id, evidence, on_progress=on_progress, on_claim_update=on_claim_update
            )
    except Exception:
        logger.exception("synthesis_failed user_id=%s", user_id)
        sse.send({"warning": "Claim synthesis partially failed"})
        return SynthesisResult()

    logger.info(
        json.dumps(
            {
                "event": "synthesis_complete",
                "evidence": len(evidence),
                "claims_created": result.claims_created,
                "claims_updated": result.claims_updated,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            }
        )
    )
    return result


def _fail(sse: SSEStream, store: IdentityStore, document_id: str | None, message: str) -> None:
    sse.send({"error": message})
    if not document_id:
        return
    try:
        store.update_document_status(document_id, "failed")
    except StoreError:
        logger.exception("document_status_update_failed document_id=%s", document_id)


async def process_story(sse: SSEStream, store: IdentityStore, user_id: str, text: str | None) -> None:
    """Run the story pipeline, reporting progress as SSE events. Always closes the stream."""
    document_id: str | None = None
    try:
        min_chars = int(get_scoring_value("documents.story.min_chars", 200))
        max_chars = int(get_scoring_value("documents.story.max_chars", 10000))
        if not text or not isinstance(text, str):
            raise ProcessingError("No story text provided")
        if len(text) < min_chars:
            raise ProcessingError(f"Story must be at least {min_chars} characters")
        if len(text) > max_chars:
            raise ProcessingError(f"Story must be less than {max_chars:,} characters")

        sse.send({"phase": events.VALIDATING})
        content_hash = compute_content_hash(text)
        _check_duplicate(store, user_id, content_hash, "story")

        sse.send({"phase": events.EXTRACTING})
        try:
            async with highlight_ticker(sse, STORY_EXTRACTION_MESSAGES):
                items = await extract_story_evidence(text, user_id=user_id)
        except Exception as exc:
            logger.exception("story_extraction_failed user_id=%s", user_id)
            raise ProcessingError("Failed to extract evidence from story") from exc
        _send_found_highlights(sse, items)

        document_id = store.create_document(
            user_id=user_id, doc_type="story", raw_text=text, content_hash=content_hash
        )["id"]

        stored: list[EvidenceItem] = []
        synthesis = SynthesisResult()
        if items:
            stored = await _store_evidence(
                sse, store, user_id=user_id, document_id=document_id, items=items, source_type="story"
            )
            synthesis = await _synthesize(sse, store, user_id, stored)

        store.update_document_status(document_id, "completed")
        summary = ProcessingSummary(
            document_id=document_id,
            evidence_count=len(stored),
            work_history_count=0,
            claims_created=synthesis.claims_created,
            claims_updated=synthesis.claims_updated,
        )
        sse.send({"done": True, "summary": summary.to_event()})
    except ProcessingError as exc:
        _fail(sse, store, document_id, str(exc))
    except Exception:
        logger.exception(json.dumps({"event": "story_processing_error", "user_id": user_id}))
        _fail(sse, store, document_id, "An unexpected error occurred")
    finally:
        sse.close()


async def _extract_resume(
    sse: SSEStream, text: str, user_id: str
) -> tuple[list[ExtractedEvidence], list[WorkHistoryEntry]]:
    async with highlight_ticker(sse, RESUME_EXTRACTION_MESSAGES):
        evidence_result, history_result = await asyncio.gather(
            extract_evidence(text, "resume", user_id=user_id),
            extract_work_history(text, user_id=user_id),
            return_exceptions=True,
        )

    if isinstance(evidence_result, BaseException):
        logger.error("resume_extraction_failed user_id=%s: %s", user_id, evidence_result)
        raise ProcessingError("Failed to extract evidence from resume") from evidence_result

    if isinstance(history_result, BaseException):
        # Work history is optional; evidence alone still builds the identity.
        logger.warning("work_history_extraction_failed user_id=%s: %s", user_id, history_result)
        sse.send({"warning": "Could not extract work history"})
        history_result = []
    return evidence_result, sort_work_history(history_result)


async def process_resume(
    sse: SSEStream,
    store: IdentityStore,
    user_id: str,
    filename: str,
    content: bytes,
) -> None:
    """Run the resume pipeline, reporting progress as SSE events. Always closes the stream."""
    document_id: str | None = None
    try:
        if not content:
            raise ProcessingError("No file provided")
        if len(content) > settings.max_upload_bytes:
            raise ProcessingError("File size must be less than 10MB")

        sse.send({"phase": events.VALIDATING})
        sse.send({"phase": events.PARSING})
        try:
            parsed = parse_upload(content, filename)
        except DocumentParseError as exc:
            raise ProcessingError(str(exc)) from exc
        if parsed.is_empty:
            raise ProcessingError("Could not extract text from document")

        content_hash = compute_content_hash(parsed.text)
        _check_duplicate(store, user_id, content_hash, "document")

        document_id = store.create_document(
            user_id=user_id,
            doc_type="resume",
            raw_text=parsed.text,
            content_hash=content_hash,
            filename=filename,
        )["id"]

        sse.send({"phase": events.EXTRACTING})
        items, work_history = await _extract_resume(sse, parsed.text, user_id)
        _send_found_highlights(sse, items)

        stored_history = store.insert_work_history(
            user_id=user_id,
            document_id=document_id,
            entries=[entry.model_dump() for entry in work_history],
        )
        for entry in stored_history[:3]:
            sse.send({"highlight": f"Role: {entry['title']} at {entry['company']}"})

        stored: list[EvidenceItem] = []
        synthesis = SynthesisResult()
        if items:
            stored = await _store_evidence(
                sse, store, user_id=user_id, document_id=document_id, items=items, source_type="resume"
            )
            synthesis = await _synthesize(sse, store, user_id, stored)

        store.update_document_status(document_id, "completed")
        summary = ProcessingSummary(
            document_id=document_id,
            evidence_count=len(stored),
            work_history_count=len(stored_history),
            claims_created=synthesis.claims_created,
            claims_updated=synthesis.claims_updated,
        )
        sse.send({"done": True, "summary": summary.to_event()})
    except ProcessingError as exc:
        _fail(sse, store, document_id, str(exc))
    except Exception:
        logger.exception(json.dumps({"event": "resume_processing_error", "user_id": user_id}))
        _fail(sse, store, document_id, "An unexpected error occurred")
    finally:
        sse.close()
