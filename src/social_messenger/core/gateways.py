from contextlib import asynccontextmanager
from typing import AsyncGenerator, Iterable
import logging

from sqlalchemy import select, insert, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import (
    User,
    UserList,
    ListMembership,
    Chat,
    ChatMembership,
    Message,
    MAX_LOGIN_LENGTH,
    MAX_PASSWORD_LENGTH,
    MAX_PHONE_LENGTH,
    MAX_MESSAGE_LENGTH,
)
from .interfaces import UserInterface, ListInterface, ChatInterface, MessageInterface
from .dto import UserDTO, ListKind, ChatType, ChatDTO, MessageDTO
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
from .db_manager import BaseDatabaseManager


def _require(value: str | None, what: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{what} must not be blank")
    return value


def _list_kind(kind: ListKind | str) -> ListKind:
    try:
        return ListKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown list kind: {kind}") from None


def _validate_text(text: str | None) -> str:
    if text is None or not text.strip():
        raise ValidationError("Message text must not be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message text exceeds {MAX_MESSAGE_LENGTH} characters")
    return text


def _message_dto(msg: Message) -> MessageDTO:
    return MessageDTO(
        id=msg.msg_id,
        text=msg.msg_text,
        timestamp=msg.msg_timestamp,
        sender_login=msg.sender_login,
        chat_id=msg.chat_id
    )


async def _user_exists(session: AsyncSession, login: str, lock: bool = False) -> bool:
    stmt = select(User.login).where(User.login == login)
    if lock:
        # keeps the user from being deleted before the membership row lands
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def _get_chat(session: AsyncSession, chat_id: int, lock: bool = False) -> Chat:
    stmt = select(Chat).where(Chat.chat_id == chat_id)
    if lock:
        # serializes membership changes, cascade deletes and appends per chat
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    chat = result.scalars().first()
    if chat is None:
        raise NotFoundError(f"Chat {chat_id} not found")
    return chat


async def _is_chat_member(session: AsyncSession, chat_id: int, login: str) -> bool:
    result = await session.execute(
        select(ChatMembership.member_login).where(
            ChatMembership.chat_id == chat_id,
            ChatMembership.member_login == login
        )
    )
    return result.scalar_one_or_none() is not None


async def _chat_members(session: AsyncSession, chat_id: int) -> list[str]:
    result = await session.execute(
        select(ChatMembership.member_login)
        .where(ChatMembership.chat_id == chat_id)
        .order_by(ChatMembership.member_login)
    )
    return list(result.scalars().all())


class _Gateway:
    __slots__ = ("_db_manager", "_logger")

    def __init__(self, db_manager: BaseDatabaseManager, logger: logging.Logger | None = None):
        self._db_manager = db_manager
        self._logger = logger or logging.getLogger(__name__)

    @asynccontextmanager
    async def _transaction(
            self,
            action: str,
            on_conflict: type[MessengerError] | None = None
    ) -> AsyncGenerator[AsyncSession, None]:
        """
        Runs the block as one atomic unit and maps database failures onto the core errors.
        :param action: human readable description used in logs
        :param on_conflict: error raised when a uniqueness constraint is violated
        """
        try:
            async with self._db_manager.session() as session:
                yield session
        except IntegrityError as e:
            if on_conflict is not None:
                raise on_conflict(f"Conflict while {action}") from e
            self._logger.error("Integrity error while %s in database: %s", action, e)
            raise StorageError(f"Integrity error while {action}") from e
        except SQLAlchemyError as e:
            self._logger.error("Error %s in database: %s", action, e)
            raise StorageError(f"Error {action}") from e


class UserGateway(_Gateway, UserInterface):
    __slots__ = ()

    async def create_user(self, login: str, password: str, phone: str | None = None) -> UserDTO:
        _require(login, "Login")
        _require(password, "Password")
        if len(login) > MAX_LOGIN_LENGTH:
            raise ValidationError(f"Login exceeds {MAX_LOGIN_LENGTH} characters")
        if len(password) > MAX_PASSWORD_LENGTH:
            raise ValidationError(f"Password exceeds {MAX_PASSWORD_LENGTH} characters")
        if phone is not None and len(phone) > MAX_PHONE_LENGTH:
            raise ValidationError(f"Phone exceeds {MAX_PHONE_LENGTH} characters")

        async with self._transaction("creating user", on_conflict=DuplicateLoginError) as session:
            if await _user_exists(session, login):
                raise DuplicateLoginError(f"User {login} already exists")

            block_stmt = insert(UserList).values(list_type=ListKind.BLOCK.value).returning(UserList.list_id)
            block_list_id = (await session.execute(block_stmt)).scalar_one()

            contact_stmt = insert(UserList).values(list_type=ListKind.CONTACT.value).returning(UserList.list_id)
            contact_list_id = (await session.execute(contact_stmt)).scalar_one()

            await session.execute(
                insert(User).values(
                    login=login,
                    password=password,
                    phone=phone,
                    contact_list_id=contact_list_id,
                    block_list_id=block_list_id
                )
            )

        self._logger.info("User %s created", login)
        return UserDTO(
            login=login,
            phone=phone,
            contact_list_id=contact_list_id,
            block_list_id=block_list_id
        )

    async def authenticate(self, login: str, password: str) -> str:
        if not login or not password:
            raise InvalidCredentialsError("Invalid login or password")

        async with self._transaction("authenticating user") as session:
            result = await session.execute(
                select(User.login).where(
                    User.login == login,
                    User.password == password
                )
            )
            found = result.scalar_one_or_none()

        if found is None:
            raise InvalidCredentialsError("Invalid login or password")
        return found

    async def exists(self, login: str) -> bool:
        if not login:
            return False
        async with self._transaction("checking user") as session:
            return await _user_exists(session, login)

    async def get_user(self, login: str) -> UserDTO:
        async with self._transaction("getting user") as session:
            result = await session.execute(select(User).where(User.login == login))
            user = result.scalars().first()
            if user is None:
                raise NotFoundError(f"User {login} not found")
            return UserDTO(
                login=user.login,
                phone=user.phone,
                contact_list_id=user.contact_list_id,
                block_list_id=user.block_list_id
            )

    async def delete_user(self, login: str) -> None:
        async with self._transaction("deleting user") as session:
            result = await session.execute(select(User).where(User.login == login).with_for_update())
            user = result.scalars().first()
            if user is None:
                raise NotFoundError(f"User {login} not found")

            in_chat = await session.execute(
                select(ChatMembership.chat_id).where(ChatMembership.member_login == login).limit(1)
            )
            if in_chat.scalar_one_or_none() is not None:
                raise MembershipConflictError(f"User {login} still belongs to a chat")

            list_ids = [user.contact_list_id, user.block_list_id]
            await session.execute(
                delete(ListMembership)
                .where(ListMembership.list_id.in_(list_ids))
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                delete(ListMembership)
                .where(ListMembership.member_login == login)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                delete(User).where(User.login == login).execution_options(synchronize_session=False)
            )
            await session.execute(
                delete(UserList)
                .where(UserList.list_id.in_(list_ids))
                .execution_options(synchronize_session=False)
            )

        self._logger.info("User %s deleted", login)


class ListGateway(_Gateway, ListInterface):
    """Contact and block lists share one list/membership mechanism."""
    __slots__ = ()

    @staticmethod
    async def _resolve_list_id(session: AsyncSession, owner_login: str, kind: ListKind) -> int:
        column = User.contact_list_id if kind is ListKind.CONTACT else User.block_list_id
        result = await session.execute(select(column).where(User.login == owner_login))
        list_id = result.scalar_one_or_none()
        if list_id is None:
            raise NotFoundError(f"User {owner_login} not found")
        return list_id

    async def add_member(self, owner_login: str, kind: ListKind | str, target_login: str) -> None:
        kind = _list_kind(kind)
        _require(target_login, "Target login")

        async with self._transaction(f"adding {kind.value} list member", on_conflict=DuplicateMemberError) as session:
            list_id = await self._resolve_list_id(session, owner_login, kind)
            if not await _user_exists(session, target_login, lock=True):
                raise NotFoundError(f"User {target_login} not found")

            existing = await session.execute(
                select(ListMembership.member_login).where(
                    ListMembership.list_id == list_id,
                    ListMembership.member_login == target_login
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateMemberError(f"{target_login} is already in the {kind.value} list")

            await session.execute(
                insert(ListMembership).values(list_id=list_id, member_login=target_login)
            )

        self._logger.info("%s added %s to %s list", owner_login, target_login, kind.value)

    async def remove_member(self, owner_login: str, kind: ListKind | str, target_login: str) -> None:
        kind = _list_kind(kind)
        _require(target_login, "Target login")

        async with self._transaction(f"removing {kind.value} list member") as session:
            list_id = await self._resolve_list_id(session, owner_login, kind)
            if not await _user_exists(session, target_login):
                raise NotFoundError(f"User {target_login} not found")

            result = await session.execute(
                delete(ListMembership)
                .where(
                    ListMembership.list_id == list_id,
                    ListMembership.member_login == target_login
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"{target_login} is not in the {kind.value} list")

        self._logger.info("%s removed %s from %s list", owner_login, target_login, kind.value)

    async def list_members(self, owner_login: str, kind: ListKind | str) -> list[str]:
        kind = _list_kind(kind)

        async with self._transaction(f"listing {kind.value} list") as session:
            list_id = await self._resolve_list_id(session, owner_login, kind)
            result = await session.execute(
                select(ListMembership.member_login)
                .where(ListMembership.list_id == list_id)
                .order_by(ListMembership.member_login)
            )
            return list(result.scalars().all())


class ChatGateway(_Gateway, ChatInterface):
    __slots__ = ()

    async def create_chat(self, owner_login: str, member_logins: Iterable[str]) -> ChatDTO:
        members = set(member_logins)
        for login in members:
            _require(login, "Member login")
        members.discard(owner_login)

        if not members:
            raise ValidationError("A chat needs at least one member besides its owner")
        chat_type = ChatType.PRIVATE if len(members) == 1 else ChatType.GROUP
        everyone = sorted(members | {owner_login})

        async with self._transaction("creating chat") as session:
            result = await session.execute(select(User.login).where(User.login.in_(everyone)).with_for_update())
            missing = set(everyone) - set(result.scalars().all())
            if missing:
                raise NotFoundError(f"Unknown users: {', '.join(sorted(missing))}")

            # id comes back from the insert itself, never from a follow-up query
            chat_id = (await session.execute(
                insert(Chat).values(
                    chat_type=chat_type.value,
                    init_sender=owner_login
                ).returning(Chat.chat_id)
            )).scalar_one()

            await session.execute(
                insert(ChatMembership),
                [{"chat_id": chat_id, "member_login": login} for login in everyone]
            )

        self._logger.info("%s created %s chat %s", owner_login, chat_type.value, chat_id)
        return ChatDTO(
            id=chat_id,
            chat_type=chat_type,
            init_sender=owner_login,
            members=everyone
        )

    async def get_chat(self, chat_id: int) -> ChatDTO:
        async with self._transaction("getting chat") as session:
            chat = await _get_chat(session, chat_id)
            return ChatDTO(
                id=chat.chat_id,
                chat_type=ChatType(chat.chat_type),
                init_sender=chat.init_sender,
                members=await _chat_members(session, chat_id)
            )

    async def add_member(self, actor_login: str, chat_id: int, target_login: str) -> None:
        _require(target_login, "Target login")

        async with self._transaction("adding chat member", on_conflict=DuplicateMemberError) as session:
            chat = await _get_chat(session, chat_id, lock=True)
            if chat.init_sender != actor_login:
                raise AuthorizationError("Only the chat owner can add members")
            if not await _user_exists(session, target_login, lock=True):
                raise NotFoundError(f"User {target_login} not found")
            if await _is_chat_member(session, chat_id, target_login):
                raise DuplicateMemberError(f"{target_login} is already a member of chat {chat_id}")

            await session.execute(
                insert(ChatMembership).values(chat_id=chat_id, member_login=target_login)
            )

        self._logger.info("%s added %s to chat %s", actor_login, target_login, chat_id)

    async def remove_member(self, actor_login: str, chat_id: int, target_login: str) -> None:
        _require(target_login, "Target login")

        async with self._transaction("removing chat member") as session:
            chat = await _get_chat(session, chat_id, lock=True)
            if chat.init_sender != actor_login:
                raise AuthorizationError("Only the chat owner can remove members")
            if target_login == chat.init_sender:
                raise ValidationError("The chat owner cannot be removed, delete the chat instead")

            result = await session.execute(
                delete(ChatMembership)
                .where(
                    ChatMembership.chat_id == chat_id,
                    ChatMembership.member_login == target_login
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"{target_login} is not a member of chat {chat_id}")

        self._logger.info("%s removed %s from chat %s", actor_login, target_login, chat_id)

    async def delete_chat(self, actor_login: str, chat_id: int) -> None:
        async with self._transaction("deleting chat") as session:
            chat = await _get_chat(session, chat_id, lock=True)
            if chat.init_sender != actor_login:
                raise AuthorizationError("Only the chat owner can delete the chat")

            await session.execute(
                delete(Message)
                .where(Message.chat_id == chat_id)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                delete(ChatMembership)
                .where(ChatMembership.chat_id == chat_id)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                delete(Chat)
                .where(Chat.chat_id == chat_id)
                .execution_options(synchronize_session=False)
            )

        self._logger.info("%s deleted chat %s", actor_login, chat_id)

    async def list_chats_for(self, login: str) -> list[ChatDTO]:
        async with self._transaction("listing chats") as session:
            chat_ids = select(ChatMembership.chat_id).where(ChatMembership.member_login == login)

            chats = (await session.execute(
                select(Chat).where(Chat.chat_id.in_(chat_ids)).order_by(Chat.chat_id)
            )).scalars().all()

            rows = (await session.execute(
                select(ChatMembership.chat_id, ChatMembership.member_login)
                .where(ChatMembership.chat_id.in_(chat_ids))
                .order_by(ChatMembership.chat_id, ChatMembership.member_login)
            )).all()

            members: dict[int, list[str]] = {}
            for chat_id, member_login in rows:
                members.setdefault(chat_id, []).append(member_login)

            return [
                ChatDTO(
                    id=chat.chat_id,
                    chat_type=ChatType(chat.chat_type),
                    init_sender=chat.init_sender,
                    members=members.get(chat.chat_id, [])
                ) for chat in chats
            ]

    async def is_owner(self, login: str, chat_id: int) -> bool:
        async with self._transaction("checking chat owner") as session:
            result = await session.execute(
                select(Chat.chat_id).where(
                    Chat.chat_id == chat_id,
                    Chat.init_sender == login
                )
            )
            return result.scalar_one_or_none() is not None

    async def is_member(self, login: str, chat_id: int) -> bool:
        async with self._transaction("checking chat member") as session:
            return await _is_chat_member(session, chat_id, login)


class MessageGateway(_Gateway, MessageInterface):
    __slots__ = ()

    @staticmethod
    async def _get_message(session: AsyncSession, chat_id: int, message_id: int) -> Message:
        result = await session.execute(
            select(Message).where(
                Message.msg_id == message_id,
                Message.chat_id == chat_id
            )
        )
        msg = result.scalars().first()
        if msg is None:
            raise NotFoundError(f"Message {message_id} not found in chat {chat_id}")
        return msg

    async def _get_own_message(self, session: AsyncSession, actor_login: str, chat_id: int, message_id: int) -> Message:
        await _get_chat(session, chat_id, lock=True)
        msg = await self._get_message(session, chat_id, message_id)
        if msg.sender_login != actor_login:
            raise AuthorizationError("Only the sender can change a message")
        return msg

    async def append(self, chat_id: int, sender_login: str, text: str) -> MessageDTO:
        _validate_text(text)

        async with self._transaction("appending message") as session:
            await _get_chat(session, chat_id, lock=True)
            if not await _is_chat_member(session, chat_id, sender_login):
                raise AuthorizationError(f"{sender_login} is not a member of chat {chat_id}")

            result = await session.execute(
                insert(Message).values(
                    msg_text=text,
                    sender_login=sender_login,
                    chat_id=chat_id
                ).returning(Message)
            )
            msg = _message_dto(result.scalars().first())

        self._logger.info("%s posted message %s to chat %s", sender_login, msg.id, chat_id)
        return msg

    async def edit(self, actor_login: str, chat_id: int, message_id: int, new_text: str) -> MessageDTO:
        _validate_text(new_text)

        async with self._transaction("editing message") as session:
            msg = await self._get_own_message(session, actor_login, chat_id, message_id)
            await session.execute(
                update(Message)
                .where(Message.msg_id == message_id)
                .values(msg_text=new_text)
                .execution_options(synchronize_session=False)
            )
            edited = MessageDTO(
                id=msg.msg_id,
                text=new_text,
                timestamp=msg.msg_timestamp,
                sender_login=msg.sender_login,
                chat_id=msg.chat_id
            )

        self._logger.info("%s edited message %s in chat %s", actor_login, message_id, chat_id)
        return edited

    async def delete(self, actor_login: str, chat_id: int, message_id: int) -> None:
        async with self._transaction("deleting message") as session:
            await self._get_own_message(session, actor_login, chat_id, message_id)
            await session.execute(
                delete(Message)
                .where(Message.msg_id == message_id)
                .execution_options(synchronize_session=False)
            )

        self._logger.info("%s deleted message %s in chat %s", actor_login, message_id, chat_id)

    async def get_message(self, chat_id: int, message_id: int) -> MessageDTO:
        async with self._transaction("getting message") as session:
            return _message_dto(await self._get_message(session, chat_id, message_id))

    async def list_ordered(self, chat_id: int) -> list[MessageDTO]:
        async with self._transaction("listing messages") as session:
            await _get_chat(session, chat_id)
            result = await session.execute(
                select(Message)
                .where(Message.chat_id == chat_id)
                .order_by(Message.msg_timestamp, Message.msg_id)
            )
            return [_message_dto(m) for m in result.scalars().all()]
