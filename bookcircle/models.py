from typing import Optional
from pydantic import BaseModel, Field


class Credentials(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AuthResponse(BaseModel):
    success: bool = True
    username: str


class MessageCreate(BaseModel):
    to: str = Field(min_length=1)
    text: str = Field(min_length=1)


class MessageOut(BaseModel):
    message_id: str
    conversation_id: str
    sender: str
    recipient: str
    text: str
    created_at: str
    read: bool = False


class MessageSent(BaseModel):
    success: bool = True
    message: MessageOut


# Field names are part of the public API contract
class ConversationOut(BaseModel):
    userId: str
    username: str
    lastMessage: str
    updatedAt: str


class ChatbotRequest(BaseModel):
    message: str = Field(min_length=1)


class ChatbotReply(BaseModel):
    type: str = "text"
    message: str
    page: Optional[str] = None
