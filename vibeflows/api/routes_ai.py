from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from vibeflows.schemas.stream import AiStreamRequest
from vibeflows.services.relay import UpstreamFactory, relay_ai_stream
from vibeflows.services.upstream import UpstreamClient

router = APIRouter(prefix="/api/ai", tags=["ai"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def get_upstream_factory() -> UpstreamFactory:
    """Upstream client builder; resolved lazily so configuration errors surface in-band."""
    return UpstreamClient.from_settings


async def _read_payload(request: Request) -> AiStreamRequest:
    # Parsed by hand so every malformed body is a 400, not FastAPI's 422.
    try:
        body: Any = await request.json()
    except ValueError:
        body = None

    user_query = body.get("user_query") if isinstance(body, dict) else None
    if not isinstance(user_query, str) or not user_query:
        raise HTTPException(status_code=400, detail="user_query is required")

    try:
        return AiStreamRequest.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="chat_id and user_id must be strings") from exc


@router.post("/stream")
async def ai_stream(
    request: Request,
    upstream_factory: UpstreamFactory = Depends(get_upstream_factory),
) -> StreamingResponse:
    """Relay the assistant's event stream for one user query.

    Body: ``{"user_query": str, "chat_id"?: str, "user_id"?: str}``.
    Frames: ``data: {"type":..., "message":..., "final"?:...}\\n\\n``, ending with
    ``data: [DONE]\\n\\n`` on success.
    """
    payload = await _read_payload(request)

    return StreamingResponse(
        relay_ai_stream(payload, upstream_factory),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
