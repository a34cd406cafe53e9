from pydantic import BaseModel

from social_messenger.core.dto import ChatType


class CreateChatRequest(BaseModel):
    members: list[str]

class ChatMemberRequest(BaseModel):
    login: str

class ChatResponse(BaseModel):
    id: int
    chat_type: ChatType
    init_sender: str
    members: list[str]
