from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from vibeflows.core.errors import PersistenceError
from vibeflows.schemas.chat import (
    ChatMessage,
    LatestMessageResponse,
    MessageCreateRequest,
    MessageListResponse,
)
from vibeflows.services import chat_store

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=MessageListResponse)
def list_messages(
    chat_id: Optional[str] = None,
    limit: int = Query(default=200, ge=1, le=1000),
) -> MessageListResponse:
    messages = chat_store.list_messages(chat_id, limit=limit)
    return MessageListResponse(messages=[ChatMessage(**m) for m in messages])


@router.post("", response_model=ChatMessage, status_code=201)
def create_message(payload: MessageCreateRequest) -> ChatMessage:
    try:
        created = chat_store.insert_message(
            payload.chat_id,
            payload.user_id,
            payload.text,
            payload.role,
            payload.type,
        )
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc
    return ChatMessage(**created)


@router.get("/latest", response_model=LatestMessageResponse)
def latest_message(user_id: Optional[str] = None) -> LatestMessageResponse:
    latest = chat_store.latest_message(user_id=user_id)
    return LatestMessageResponse(latest_message=ChatMessage(**latest) if latest else None)
