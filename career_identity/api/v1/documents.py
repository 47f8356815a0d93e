import asyncio
from typing import Coroutine

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status

from career_identity.core.config import settings
from career_identity.core.rate_limit import rate_limit
from career_identity.core.security import require_user_id
from career_identity.schemas.documents import DocumentDetail, DocumentEvidence, StoryRequest
from career_identity.services.processing_service import process_resume, process_story
from career_identity.store import IdentityStore, get_store
from career_identity.utils.sse import SSEStream, create_sse_response

router = APIRouter()

_pipelines: set[asyncio.Task] = set()


def _start_pipeline(coro: Coroutine) -> None:
    task = asyncio.create_task(coro)
    _pipelines.add(task)
    task.add_done_callback(_pipelines.discard)


@router.post("/documents/story")
@rate_limit()
async def upload_story(
    request: Request,
    payload: StoryRequest,
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    _ = request
    sse = SSEStream()
    response = create_sse_response(sse)
    _start_pipeline(process_story(sse, store, user_id, payload.text))
    return response


@router.post("/documents/resume")
@rate_limit()
async def upload_resume(
    request: Request,
    file: UploadFile = File(...),
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    _ = request
    # One byte past the limit is enough to reject oversized uploads.
    content = await file.read(settings.max_upload_bytes + 1)
    sse = SSEStream()
    response = create_sse_response(sse)
    _start_pipeline(process_resume(sse, store, user_id, file.filename or "", content))
    return response


@router.get("/documents/{document_id}", response_model=DocumentDetail)
def get_document(
    document_id: str,
    user_id: str = Depends(require_user_id),
    store: IdentityStore = Depends(get_store),
):
    document = store.get_document(document_id, user_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return DocumentDetail(
        **document,
        evidence=[DocumentEvidence(**row) for row in store.list_document_evidence(document_id)],
    )
