from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from vibeflows.schemas.chat import (
    Chat,
    ChatCreateRequest,
    ChatDetailResponse,
    ChatListResponse,
    ChatMessage,
    ChatRenameRequest,
)
from vibeflows.services import chat_store

router = APIRouter(prefix="/api/chats", tags=["chats"])


@router.post("", response_model=Chat)
def create_chat(payload: ChatCreateRequest) -> Chat:
    return Chat(**chat_store.create_chat(title=payload.title, user_id=payload.user_id))


@router.get("", response_model=ChatListResponse)
def list_chats(
    user_id: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
) -> ChatListResponse:
    chats = [Chat(**c) for c in chat_store.list_chats(user_id=user_id, limit=limit)]
    return ChatListResponse(chats=chats)


@router.get("/{chat_id}", response_model=ChatDetailResponse)
def get_chat_detail(chat_id: str, limit: int = Query(default=200, ge=1, le=1000)) -> ChatDetailResponse:
    chat = chat_store.get_chat(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="chat not found")
    messages = chat_store.list_messages(chat_id, limit=limit)
    return ChatDetailResponse(chat=Chat(**chat), messages=[ChatMessage(**m) for m in messages])


@router.patch("/{chat_id}", response_model=Chat)
def rename_chat(chat_id: str, payload: ChatRenameRequest) -> Chat:
    chat = chat_store.rename_chat(chat_id, payload.title)
    if chat is None:
        raise HTTPException(status_code=404, detail="chat not found")
    return Chat(**chat)


@router.delete("/{chat_id}")
def delete_chat(chat_id: str) -> dict[str, bool]:
    if not chat_store.delete_chat(chat_id):
        raise HTTPException(status_code=404, detail="chat not found")
    return {"deleted": True}
