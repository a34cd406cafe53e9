from fastapi import status, Depends, APIRouter, Response
from fastapi.security import HTTPBasicCredentials

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import logging

from social_messenger.core.dto import ListKind
from social_messenger.core.gateways import UserGateway, ListGateway
from ..models.contact_api_models import *
from .auth_api import AuthAPI


class ContactAPI:
    """
    Contact and block list endpoints.

    Both list kinds are served by the same routes, selected by the
    ``kind`` path parameter.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        contact_router: FastAPI router containing list endpoints
    """
    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ):
        self.logger = logger
        self.auth_api = auth_api

        self._contact_router = APIRouter(prefix="/lists", tags=["Lists"])

        self._register_endpoints()

    @property
    def contact_router(self) -> APIRouter:
        return self._contact_router

    def get_router(self) -> APIRouter:
        return self._contact_router

    def _register_endpoints(self):
        @self.contact_router.get("/{kind}", response_model=ListMembersResponse)
        @inject
        async def list_members(
                kind: ListKind,
                user_gateway: FromDishka[UserGateway],
                list_gateway: FromDishka[ListGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            members = await list_gateway.list_members(login, kind)
            return ListMembersResponse(kind=kind, members=members)

        @self.contact_router.post("/{kind}", status_code=status.HTTP_201_CREATED)
        @inject
        async def add_member(
                kind: ListKind,
                request_data: ListMemberRequest,
                user_gateway: FromDishka[UserGateway],
                list_gateway: FromDishka[ListGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            """
            Add a user to the caller's contact or block list.

            Raises:
                ValidationError: blank login
                NotFoundError: unknown user
                DuplicateMemberError: user already on the list
            """
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            await list_gateway.add_member(login, kind, request_data.login)
            return {"status": "added"}

        @self.contact_router.delete("/{kind}/{member}", status_code=status.HTTP_204_NO_CONTENT)
        @inject
        async def remove_member(
                kind: ListKind,
                member: str,
                user_gateway: FromDishka[UserGateway],
                list_gateway: FromDishka[ListGateway],
                credentials: HTTPBasicCredentials = Depends(self.auth_api.security)
        ):
            login = await self.auth_api.get_current_user(credentials, user_gateway)
            await list_gateway.remove_member(login, kind, member)
            return Response(status_code=status.HTTP_204_NO_CONTENT)
