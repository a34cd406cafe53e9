from pydantic import BaseModel
from datetime import datetime
from enum import Enum


class ListKind(str, Enum):
    CONTACT = "contact"
    BLOCK = "block"

class ChatType(str, Enum):
    PRIVATE = "private"
    GROUP = "group"

class UserDTO(BaseModel):
    login: str
    phone: str | None = None
    contact_list_id: int
    block_list_id: int

class ChatDTO(BaseModel):
    id: int
    chat_type: ChatType
    init_sender: str
    members: list[str] = []

class MessageDTO(BaseModel):
    id: int
    text: str
    timestamp: datetime
    sender_login: str
    chat_id: int

class PageDTO(BaseModel):
    items: list[MessageDTO]
    next_cursor: int
    has_more: bool
