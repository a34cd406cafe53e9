from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    login: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=50)
    phone: str | None = Field(default=None, max_length=16)

class UserResponse(BaseModel):
    login: str
    phone: str | None = None
