"""
HTTP API routes for transcripts.

Provides endpoints for:
- Running a transcript job with SSE progress (POST /transcript)
- Listing target languages (GET /languages)
- Summarizing a finished transcript (POST /summary)
"""

import logging
from functools import partial

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from ytscribe.api.dependencies import AppServices, get_services
from ytscribe.api.sse import create_sse_response, stream_job
from ytscribe.models.schemas import (
    LanguageInfo,
    SummaryRequest,
    SummaryResponse,
    TranscriptRequest,
)
from ytscribe.services.errors import ErrorKind, classify_error

logger = logging.getLogger(__name__)
router = APIRouter(tags=["transcript"])

HTTP_STATUS_BY_KIND = {
    ErrorKind.TRANSLATION_RATE_LIMITED: 429,
    ErrorKind.PROVIDER_UNAUTHORIZED: 503,
    ErrorKind.INPUT_TOO_LARGE: 413,
    ErrorKind.NETWORK: 502,
    ErrorKind.TIMEOUT: 504,
}


@router.post("/transcript")
async def create_transcript(
    request: TranscriptRequest,
    services: AppServices = Depends(get_services),
) -> StreamingResponse:
    """
    Run a transcript job and stream its progress.

    Events (one "data: {json}" frame each):
    - {"progress": 45, "message": "..."} while the job runs
    - terminal success {"success": true, "original", "translated", ...}
      or terminal error {"error", "errorType", "hint"?, "requiresPayment"?}

    Args:
        request: TranscriptRequest with videoUrl, targetLanguage, sessionId

    Returns:
        text/event-stream response, closed after the terminal event
    """
    logger.info(
        f"Transcript request: {request.video_url} "
        f"lang={request.target_language or '-'} session={'yes' if request.session_id else 'no'}"
    )

    run_job = partial(
        services.pipeline.run,
        request.video_url,
        request.target_language,
        request.session_id,
    )
    return create_sse_response(stream_job(run_job))


@router.get("/languages")
async def list_languages(services: AppServices = Depends(get_services)) -> dict:
    """
    List target languages offered to clients.

    Returns:
        {"success": true, "languages": [{"code", "name"}], "total": n}
    """
    languages = [
        LanguageInfo(code=code, name=name).model_dump()
        for code, name in services.languages.items()
    ]
    return {"success": True, "languages": languages, "total": len(languages)}


@router.post("/summary", response_model=None)
async def create_summary(
    request: SummaryRequest,
    services: AppServices = Depends(get_services),
) -> dict | JSONResponse:
    """
    Summarize transcript text.

    Args:
        request: SummaryRequest with text and summaryLength

    Returns:
        {"success": true, "summary", "summaryLength"}

    Raises:
        4xx/5xx JSON {"error", "errorType", "hint"?} when generation fails
    """
    outcome = await services.summarizer.summarize(request.text, request.summary_length)

    if not outcome.ok:
        classified = classify_error(outcome.error)
        logger.error(f"Summary failed [{classified.kind.value}]: {classified.technical}")
        payload = classified.to_payload().model_dump(by_alias=True, exclude_none=True)
        return JSONResponse(status_code=HTTP_STATUS_BY_KIND.get(classified.kind, 500), content=payload)

    response = SummaryResponse(summary=outcome.value, summary_length=request.summary_length)
    return response.model_dump(by_alias=True)
