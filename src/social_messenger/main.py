import asyncio
import logging
from contextlib import asynccontextmanager

from dishka import make_async_container
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI
import uvicorn

from social_messenger.config import Config, load_config
from social_messenger.providers.dishka_app import AdaptersProvider, GatewaysProvider, ServicesProvider

from social_messenger.services import AuthAPI, ContactAPI, ChatAPI, MessageAPI, register_error_handlers

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.dishka_container.close()

async def create_app(config: Config | None = None) -> FastAPI:
    container = make_async_container(
        AdaptersProvider(config),
        GatewaysProvider(),
        ServicesProvider(),
    )

    app = FastAPI(title="Social Messenger", lifespan=lifespan)
    setup_dishka(container, app)
    register_error_handlers(app)

    auth_api = await container.get(AuthAPI)
    contact_api = await container.get(ContactAPI)
    chat_api = await container.get(ChatAPI)
    message_api = await container.get(MessageAPI)

    app.include_router(auth_api.get_router())
    app.include_router(contact_api.get_router())
    app.include_router(chat_api.get_router())
    app.include_router(message_api.get_router())

    return app

def configure_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

def main():
    config = load_config(".env")
    configure_logging(config.log.level)

    app = asyncio.run(create_app(config))
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level=config.log.level.lower())

if __name__ == "__main__":
    main()
