from pydantic import BaseModel
from datetime import datetime


class MessageSendRequest(BaseModel):
    text: str

class MessageEditRequest(BaseModel):
    text: str

class MessageResponse(BaseModel):
    id: int
    text: str
    timestamp: datetime
    sender_login: str
    chat_id: int

class MessagePageResponse(BaseModel):
    messages: list[MessageResponse] = []
    next_cursor: int
    has_more: bool
