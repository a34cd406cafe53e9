from fastapi import status, Depends, APIRouter, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import logging

from social_messenger.core.gateways import UserGateway
from ..models.auth_api_models import *


class AuthAPI:
    """
    Account endpoints and the credential check shared by every other router.

    Credentials travel as HTTP Basic on each request and are compared for
    equality by the user gateway; no token or session is issued.

    Attributes:
        logger: Logger instance for tracking operations
        security: HTTP Basic scheme used as a dependency by all routers
        _auth_router: FastAPI router for account endpoints
    """
    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.security = HTTPBasic()
        self._auth_router = APIRouter(tags=["Authentication"])
        self._register_endpoints()

    @property
    def auth_router(self) -> APIRouter:
        return self._auth_router

    def get_router(self) -> APIRouter:
        return self._auth_router

    async def get_current_user(self, credentials: HTTPBasicCredentials, user_gateway: UserGateway) -> str:
        """
        Resolve the caller's login from Basic credentials.
        Raises:
            InvalidCredentialsError: rendered as 401 by the error handlers
        """
        return await user_gateway.authenticate(credentials.username, credentials.password)

    def _register_endpoints(self):
        @self.auth_router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
        @inject
        async def register(request_data: RegisterRequest, user_gateway: FromDishka[UserGateway]):
            """
            Create an account with empty contact and block lists.
            """
            user = await user_gateway.create_user(
                request_data.login,
                request_data.password,
                request_data.phone
            )
            return UserResponse(login=user.login, phone=user.phone)

        @self.auth_router.get("/users/me", response_model=UserResponse)
        @inject
        async def get_me(
                user_gateway: FromDishka[UserGateway],
                credentials: HTTPBasicCredentials = Depends(self.security)
        ):
            login = await self.get_current_user(credentials, user_gateway)
            user = await user_gateway.get_user(login)
            return UserResponse(login=user.login, phone=user.phone)

        @self.auth_router.delete("/users/me", status_code=status.HTTP_204_NO_CONTENT)
        @inject
        async def delete_me(
                user_gateway: FromDishka[UserGateway],
                credentials: HTTPBasicCredentials = Depends(self.security)
        ):
            """
            Delete own account. Refused while the user is still in a chat.
            """
            login = await self.get_current_user(credentials, user_gateway)
            await user_gateway.delete_user(login)
            self.logger.info("Account %s deleted by its owner", login)
            return Response(status_code=status.HTTP_204_NO_CONTENT)
