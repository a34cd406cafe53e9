from abc import ABC, abstractmethod

from .dto import *


class UserInterface(ABC):
    @abstractmethod
    async def create_user(
            self,
            login: str,
            password: str,
            phone: str | None
    ) -> UserDTO:
        """
        Creates a user together with its empty contact and block lists.
        :param login:
        :param password:
        :param phone:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def authenticate(
            self,
            login: str,
            password: str
    ) -> str:
        """
        Checks credentials and returns the user login.
        :param login:
        :param password:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def exists(
            self,
            login: str
    ) -> bool:
        raise NotImplementedError()

    @abstractmethod
    async def get_user(
            self,
            login: str
    ) -> UserDTO:
        raise NotImplementedError()

    @abstractmethod
    async def delete_user(
            self,
            login: str
    ) -> None:
        """
        Deletes a user that no longer belongs to any chat.
        :param login:
        :return:
        """
        raise NotImplementedError()


class ListInterface(ABC):
    @abstractmethod
    async def add_member(
            self,
            owner_login: str,
            kind: ListKind,
            target_login: str
    ) -> None:
        """
        Adds target_login to the owner's list of the given kind.
        :param owner_login:
        :param kind:
        :param target_login:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def remove_member(
            self,
            owner_login: str,
            kind: ListKind,
            target_login: str
    ) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def list_members(
            self,
            owner_login: str,
            kind: ListKind
    ) -> list[str]:
        raise NotImplementedError()


class ChatInterface(ABC):
    @abstractmethod
    async def create_chat(
            self,
            owner_login: str,
            member_logins: set[str]
    ) -> ChatDTO:
        """
        Creates a private (one other member) or group chat.
        :param owner_login:
        :param member_logins: members besides the owner
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def get_chat(
            self,
            chat_id: int
    ) -> ChatDTO:
        raise NotImplementedError()

    @abstractmethod
    async def add_member(
            self,
            actor_login: str,
            chat_id: int,
            target_login: str
    ) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def remove_member(
            self,
            actor_login: str,
            chat_id: int,
            target_login: str
    ) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def delete_chat(
            self,
            actor_login: str,
            chat_id: int
    ) -> None:
        """
        Deletes messages, memberships and the chat row in one transaction.
        :param actor_login:
        :param chat_id:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def list_chats_for(
            self,
            login: str
    ) -> list[ChatDTO]:
        raise NotImplementedError()

    @abstractmethod
    async def is_owner(
            self,
            login: str,
            chat_id: int
    ) -> bool:
        raise NotImplementedError()

    @abstractmethod
    async def is_member(
            self,
            login: str,
            chat_id: int
    ) -> bool:
        raise NotImplementedError()


class MessageInterface(ABC):
    @abstractmethod
    async def append(
            self,
            chat_id: int,
            sender_login: str,
            text: str
    ) -> MessageDTO:
        """
        Stores a new message sent by a current chat member.
        :param chat_id:
        :param sender_login:
        :param text:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def edit(
            self,
            actor_login: str,
            chat_id: int,
            message_id: int,
            new_text: str
    ) -> MessageDTO:
        raise NotImplementedError()

    @abstractmethod
    async def delete(
            self,
            actor_login: str,
            chat_id: int,
            message_id: int
    ) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_message(
            self,
            chat_id: int,
            message_id: int
    ) -> MessageDTO:
        raise NotImplementedError()

    @abstractmethod
    async def list_ordered(
            self,
            chat_id: int
    ) -> list[MessageDTO]:
        """
        Gets all messages of a chat ordered by (timestamp, id) ascending.
        :param chat_id:
        :return:
        """
        raise NotImplementedError()
