from sqlalchemy import ForeignKey, String, DateTime, Index, CheckConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from datetime import datetime, timezone
from typing import Optional

MAX_LOGIN_LENGTH = 50
MAX_PASSWORD_LENGTH = 50
MAX_PHONE_LENGTH = 16
MAX_MESSAGE_LENGTH = 300


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass

class UserList(Base):
    __tablename__ = "lists"

    list_id: Mapped[int] = mapped_column(primary_key=True)
    list_type: Mapped[str] = mapped_column(String(10))

    __table_args__ = (
        CheckConstraint("list_type IN ('contact', 'block')", name="ck_list_type"),
    )

class User(Base):
    __tablename__ = "users"

    login: Mapped[str] = mapped_column(String(MAX_LOGIN_LENGTH), primary_key=True)
    password: Mapped[str] = mapped_column(String(MAX_PASSWORD_LENGTH), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(MAX_PHONE_LENGTH), nullable=True)
    contact_list_id: Mapped[int] = mapped_column(ForeignKey("lists.list_id"), unique=True)
    block_list_id: Mapped[int] = mapped_column(ForeignKey("lists.list_id"), unique=True)

class ListMembership(Base):
    __tablename__ = "list_memberships"

    list_id: Mapped[int] = mapped_column(ForeignKey("lists.list_id"), primary_key=True)
    member_login: Mapped[str] = mapped_column(ForeignKey("users.login"), primary_key=True)

class Chat(Base):
    __tablename__ = "chats"

    chat_id: Mapped[int] = mapped_column(primary_key=True)
    chat_type: Mapped[str] = mapped_column(String(10))
    init_sender: Mapped[str] = mapped_column(ForeignKey("users.login"), index=True)

    __table_args__ = (
        CheckConstraint("chat_type IN ('private', 'group')", name="ck_chat_type"),
    )

class ChatMembership(Base):
    __tablename__ = "chat_memberships"

    chat_id: Mapped[int] = mapped_column(ForeignKey("chats.chat_id"), primary_key=True)
    member_login: Mapped[str] = mapped_column(ForeignKey("users.login"), primary_key=True, index=True)

class Message(Base):
    __tablename__ = "messages"

    __table_args__ = (
        Index('ix_messages_chat_timestamp', 'chat_id', 'msg_timestamp', 'msg_id'),
        CheckConstraint(f"length(msg_text) <= {MAX_MESSAGE_LENGTH}", name="ck_msg_text_length"),
    )

    msg_id: Mapped[int] = mapped_column(primary_key=True)
    msg_text: Mapped[str] = mapped_column(String(MAX_MESSAGE_LENGTH))
    msg_timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    # plain login, history outlives the author's account
    sender_login: Mapped[str] = mapped_column(String(MAX_LOGIN_LENGTH), index=True)
    chat_id: Mapped[int] = mapped_column(ForeignKey("chats.chat_id"))
