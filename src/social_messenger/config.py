from dataclasses import dataclass, field
from environs import Env


@dataclass
class DBConfig:
    driver: str = "sqlite"
    echo: bool = False

    """ PostgreSQL """
    host: str | None = None
    port: int | None = None
    name: str | None = None
    user: str | None = None
    password: str | None = None

    """ SQLite """
    path: str | None = "data/messenger.db"

@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000

@dataclass
class LogConfig:
    level: str = "INFO"

@dataclass
class ChatConfig:
    page_size: int = 10
    max_page_size: int = 100

@dataclass
class Config:
    """ Config """
    db: DBConfig
    server: ServerConfig = field(default_factory=ServerConfig)
    log: LogConfig = field(default_factory=LogConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)

def load_config(path: str | None) -> Config:
    env = Env()
    env.read_env(path)

    return Config(
        db=DBConfig(
            driver=env('DB_DRIVER', 'sqlite'),
            echo=env.bool('DB_ECHO', False),
            host=env('DB_HOST', None),
            port=env.int('DB_PORT', None),
            name=env('DB_NAME', None),
            user=env('DB_USER', None),
            password=env('DB_PASSWORD', None),
            path=env('DB_PATH', 'data/messenger.db')
        ),
        server=ServerConfig(
            host=env('SERVER_HOST', '0.0.0.0'),
            port=env.int('SERVER_PORT', 8000)
        ),
        log=LogConfig(
            level=env('LOG_LEVEL', 'INFO')
        ),
        chat=ChatConfig(
            page_size=env.int('CHAT_PAGE_SIZE', 10),
            max_page_size=env.int('CHAT_MAX_PAGE_SIZE', 100)
        )
    )
