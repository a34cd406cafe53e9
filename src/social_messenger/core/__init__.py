from .dto import ListKind, ChatType, UserDTO, ChatDTO, MessageDTO, PageDTO
from .exceptions import (
    MessengerError,
    ValidationError,
    NotFoundError,
    AuthorizationError,
    DuplicateMemberError,
    DuplicateLoginError,
    InvalidCredentialsError,
    MembershipConflictError,
    StorageError,
)
from .db_manager import BaseDatabaseManager, SqliteDatabaseManager, PostgresDatabaseManager, create_db_manager
from .gateways import UserGateway, ListGateway, ChatGateway, MessageGateway
from .pagination import page, DEFAULT_PAGE_SIZE
