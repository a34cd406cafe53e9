from fastapi import status, Depends, APIRouter, Response, Query
from fastapi.security import HTTPBasicCredentials

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import logging

from social_messenger.config import Config
from social_messenger.core.dto import MessageDTO
from social_messenger.core.exceptions import AuthorizationError
from social_messenger.core.gateways import UserGateway, ChatGateway, MessageGateway
from social_messenger.core.pagination import page
from ..models.message_api_models import *
from .auth_api import AuthAPI


def _message_response(msg: MessageDTO) -> MessageResponse:
    return MessageResponse(
        id=msg.id,
        text=msg.text,
        timestamp=msg.timestamp,
        sender_login=msg.sender_login,
        chat_id=msg.chat_id
    )


class MessageAPI:
    """
    Message ledger endpoints for a single chat.

    History is served oldest first in fixed windows. A cursor returned by
    one call is only valid until the chat's messages change; clients restart
    from cursor 0 after sending, editing or deleting.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        page_size: window length used when the client gives none
        max_page_size: upper bound accepted for page_size
        message_router: FastAPI router containing message endpoints
    """

    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI,
            config: Config
    ):
        self.logger = logger
        self.auth_api = auth_api
        self.page_size = config.chat.page_size
        self.max_page_size = config.chat.max_page_size

        self._message_router = APIRouter(prefix="/chats", tags=["Messages"])
        self._register_endpoints()

    @property
    def message_router(self) -> APIRouter:
        return self._message_router

    def get_router(self) -> APIRouter:
        return self._message_router

    def _register_endpoints(self):
        @self.message_router.get("/{chat_id}/messages", response_model=MessagePageResponse)
        @inject
        async def get_messages(
                chat_id: int,
                user_gateway: FromDishka[UserGateway],
                chat_gateway: FromDishka[ChatGateway],
                message_gateway: FromDishka[MessageGateway],
                cursor: int = Query(0, ge=0),
                page_size: int | None = Query(None, ge=1),
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)

            # raises NotFoundError for an unknown chat before the membership check
            chat = await chat_gateway.get_chat(chat_id)
            if login not in chat.members:
                raise AuthorizationError(f"{login} is not a member of chat {chat_id}")

            size = min(page_size or self.page_size, self.max_page_size)
            messages = await message_gateway.list_ordered(chat_id)
            window = page(messages, cursor, size)

            return MessagePageResponse(
                messages=[_message_response(m) for m in window.items],
                next_cursor=window.next_cursor,
                has_more=window.has_more
            )

        @self.message_router.post("/{chat_id}/messages", response_model=MessageResponse,
                                  status_code=status.HTTP_201_CREATED)
        @inject
        async def send_message(
                chat_id: int,
                message_data: MessageSendRequest,
                user_gateway: FromDishka[UserGateway],
                message_gateway: FromDishka[MessageGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            message = await message_gateway.append(chat_id, login, message_data.text)
            return _message_response(message)

        @self.message_router.put("/{chat_id}/messages/{message_id}", response_model=MessageResponse)
        @inject
        async def edit_message(
                chat_id: int,
                message_id: int,
                message_data: MessageEditRequest,
                user_gateway: FromDishka[UserGateway],
                message_gateway: FromDishka[MessageGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            message = await message_gateway.edit(login, chat_id, message_id, message_data.text)
            return _message_response(message)

        @self.message_router.delete("/{chat_id}/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
        @inject
        async def delete_message(
                chat_id: int,
                message_id: int,
                user_gateway: FromDishka[UserGateway],
                message_gateway: FromDishka[MessageGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            await message_gateway.delete(login, chat_id, message_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)
