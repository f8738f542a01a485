from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class Chat(BaseModel):
    chat_id: str
    user_id: str | None = None
    title: str | None = None
    created_at: str
    updated_at: str


class ChatMessage(BaseModel):
    id: str
    chat_id: str
    user_id: str | None = None
    text: str
    role: Literal["user", "assistant", "system"]
    type: str = "text"
    created_at: str


class ChatCreateRequest(BaseModel):
    title: str | None = None
    user_id: str | None = None


class ChatRenameRequest(BaseModel):
    title: str = Field(min_length=1)


class ChatListResponse(BaseModel):
    chats: list[Chat] = Field(default_factory=list)


class ChatDetailResponse(BaseModel):
    chat: Chat
    messages: list[ChatMessage] = Field(default_factory=list)


class MessageCreateRequest(BaseModel):
    chat_id: str
    user_id: str | None = None
    text: str
    role: Literal["user", "assistant", "system"]
    type: str = "text"


class MessageListResponse(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)


class LatestMessageResponse(BaseModel):
    latest_message: ChatMessage | None = None
