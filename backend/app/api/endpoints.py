import logging
from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse, Response
from backend.app.services.errors import StreamServiceError, UpstreamError
from backend.app.services.pipeline import StreamPipeline, stream_pipeline
from typing import Optional

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Range, Content-Type",
}

UNSUPPORTED_METHODS = ["POST", "PUT", "PATCH", "DELETE", "HEAD"]

def get_pipeline() -> StreamPipeline:
    return stream_pipeline

def error_response(error: StreamServiceError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_payload(), headers=CORS_HEADERS)

async def _stream(video_id: Optional[str], range_header: Optional[str], pipeline: StreamPipeline) -> Response:
    try:
        return await pipeline.handle(video_id, range_header)
    except StreamServiceError as e:
        logger.warning("[!] Stream %s failed: %s (%s)", video_id, e.status_code, e.__cause__ or e)
        return error_response(e)
    except Exception:
        logger.exception("[!] Unexpected error while streaming %s", video_id)
        return error_response(UpstreamError())

@router.get("/streams/{video_id}")
async def stream_audio(
    video_id: str,
    range: Optional[str] = Header(None),
    pipeline: StreamPipeline = Depends(get_pipeline),
):
    return await _stream(video_id, range, pipeline)

@router.get("/streams")
async def stream_audio_by_query(
    id: Optional[str] = Query(None),
    range: Optional[str] = Header(None),
    pipeline: StreamPipeline = Depends(get_pipeline),
):
    return await _stream(id, range, pipeline)

@router.options("/streams/{video_id}")
@router.options("/streams")
async def stream_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)

@router.api_route("/streams/{video_id}", methods=UNSUPPORTED_METHODS)
@router.api_route("/streams", methods=UNSUPPORTED_METHODS)
async def stream_method_not_allowed():
    return JSONResponse(status_code=405, content={"error": "Method not allowed"}, headers=CORS_HEADERS)
