from pydantic import BaseModel

from social_messenger.core.dto import ListKind


class ListMemberRequest(BaseModel):
    login: str

class ListMembersResponse(BaseModel):
    kind: ListKind
    members: list[str]
