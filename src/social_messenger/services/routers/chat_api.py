from fastapi import status, Depends, APIRouter, Response
from fastapi.security import HTTPBasicCredentials

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import logging

from social_messenger.core.dto import ChatDTO
from social_messenger.core.gateways import UserGateway, ChatGateway
from ..models.chat_api_models import *
from .auth_api import AuthAPI


def _chat_response(chat: ChatDTO) -> ChatResponse:
    return ChatResponse(
        id=chat.id,
        chat_type=chat.chat_type,
        init_sender=chat.init_sender,
        members=chat.members
    )


class ChatAPI:
    """
    Chat directory endpoints: creation, membership and deletion.

    Only the chat owner (the user who created it) may change membership
    or delete the chat; the gateway enforces this.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        chat_router: FastAPI router containing chat endpoints
    """
    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ):
        self.logger = logger
        self.auth_api = auth_api

        self._chat_router = APIRouter(prefix="/chats", tags=["Chats"])
        self._register_endpoints()

    @property
    def chat_router(self) -> APIRouter:
        return self._chat_router

    def get_router(self) -> APIRouter:
        return self._chat_router

    def _register_endpoints(self):
        @self.chat_router.get("", response_model=list[ChatResponse])
        @inject
        async def list_chats(
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            chats = await chat_gateway.list_chats_for(login)
            return [_chat_response(chat) for chat in chats]

        @self.chat_router.post("", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
        @inject
        async def create_chat(
                request_data: CreateChatRequest,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            """
            Create a chat with the caller as owner.

            One other member makes a private chat, two or more a group chat.
            """
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            chat = await chat_gateway.create_chat(login, set(request_data.members))
            return _chat_response(chat)

        @self.chat_router.delete("/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
        @inject
        async def delete_chat(
                chat_id: int,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            await chat_gateway.delete_chat(login, chat_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        @self.chat_router.post("/{chat_id}/members", status_code=status.HTTP_201_CREATED)
        @inject
        async def add_member(
                chat_id: int,
                request_data: ChatMemberRequest,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            await chat_gateway.add_member(login, chat_id, request_data.login)
            return {"status": "added"}

        @self.chat_router.delete("/{chat_id}/members/{member}", status_code=status.HTTP_204_NO_CONTENT)
        @inject
        async def remove_member(
                chat_id: int,
                member: str,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            await chat_gateway.remove_member(login, chat_id, member)
            return Response(status_code=status.HTTP_204_NO_CONTENT)
