import asyncio

from sqlalchemy import func, select

from social_messenger.core.database import ChatMembership, Message
from social_messenger.core.dto import MessageDTO
from social_messenger.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from tests.db_util import DatabaseTestCase


class MessageGatewayTests(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        await self.make_users("alice", "bob", "carol")
        self.chat = await self.chats.create_chat("alice", {"bob"})

    async def test_private_chat_scenario(self):
        sent = await self.messages.append(self.chat.id, "alice", "hi")

        history = await self.messages.list_ordered(self.chat.id)
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].text, "hi")
        self.assertEqual(history[0].sender_login, "alice")

        with self.assertRaises(AuthorizationError):
            await self.messages.edit("bob", self.chat.id, sent.id, "hijacked")

        await self.messages.edit("alice", self.chat.id, sent.id, "hello")
        history = await self.messages.list_ordered(self.chat.id)
        self.assertEqual([m.text for m in history], ["hello"])

    async def test_text_length_bounds(self):
        text = "é" * 300
        sent = await self.messages.append(self.chat.id, "alice", text)
        self.assertEqual((await self.messages.get_message(self.chat.id, sent.id)).text, text)

        with self.assertRaises(ValidationError):
            await self.messages.append(self.chat.id, "alice", "x" * 301)
        with self.assertRaises(ValidationError):
            await self.messages.append(self.chat.id, "alice", "")
        self.assertEqual(len(await self.messages.list_ordered(self.chat.id)), 1)

    async def test_stored_text_is_unchanged(self):
        text = "  spaced\tout  \n second line "
        sent = await self.messages.append(self.chat.id, "bob", text)
        self.assertEqual(sent.text, text)
        self.assertEqual((await self.messages.list_ordered(self.chat.id))[0].text, text)

    async def test_non_member_cannot_post(self):
        with self.assertRaises(AuthorizationError):
            await self.messages.append(self.chat.id, "carol", "let me in")

        await self.chats.add_member("alice", self.chat.id, "carol")
        await self.messages.append(self.chat.id, "carol", "thanks")

        await self.chats.remove_member("alice", self.chat.id, "carol")
        with self.assertRaises(AuthorizationError):
            await self.messages.append(self.chat.id, "carol", "still here?")

    async def test_append_to_unknown_chat(self):
        with self.assertRaises(NotFoundError):
            await self.messages.append(self.chat.id + 100, "alice", "hi")

    async def test_history_is_ordered(self):
        for i in range(5):
            sender = "alice" if i % 2 == 0 else "bob"
            await self.messages.append(self.chat.id, sender, f"message {i}")

        history = await self.messages.list_ordered(self.chat.id)

        self.assertEqual([m.text for m in history], [f"message {i}" for i in range(5)])
        keys = [(m.timestamp, m.id) for m in history]
        self.assertEqual(keys, sorted(keys))

    async def test_edit_validation(self):
        sent = await self.messages.append(self.chat.id, "alice", "hi")

        with self.assertRaises(ValidationError):
            await self.messages.edit("alice", self.chat.id, sent.id, "")
        with self.assertRaises(ValidationError):
            await self.messages.edit("alice", self.chat.id, sent.id, "x" * 301)
        with self.assertRaises(NotFoundError):
            await self.messages.edit("alice", self.chat.id, sent.id + 100, "hello")
        self.assertEqual((await self.messages.get_message(self.chat.id, sent.id)).text, "hi")

    async def test_message_must_belong_to_chat(self):
        other = await self.chats.create_chat("alice", {"carol"})
        sent = await self.messages.append(other.id, "alice", "elsewhere")

        with self.assertRaises(NotFoundError):
            await self.messages.edit("alice", self.chat.id, sent.id, "moved")
        with self.assertRaises(NotFoundError):
            await self.messages.delete("alice", self.chat.id, sent.id)

    async def test_only_sender_deletes(self):
        sent = await self.messages.append(self.chat.id, "alice", "hi")

        with self.assertRaises(AuthorizationError):
            await self.messages.delete("bob", self.chat.id, sent.id)

        await self.messages.delete("alice", self.chat.id, sent.id)
        self.assertEqual(await self.messages.list_ordered(self.chat.id), [])
        with self.assertRaises(NotFoundError):
            await self.messages.get_message(self.chat.id, sent.id)

    async def test_history_of_unknown_chat(self):
        with self.assertRaises(NotFoundError):
            await self.messages.list_ordered(self.chat.id + 100)

    async def test_delete_chat_racing_appends(self):
        before = [self.messages.append(self.chat.id, "bob", f"early {i}") for i in range(10)]
        after = [self.messages.append(self.chat.id, "bob", f"late {i}") for i in range(10)]

        results = await asyncio.gather(
            *before,
            self.chats.delete_chat("alice", self.chat.id),
            *after,
            return_exceptions=True
        )

        self.assertIsNone(results[10])
        for result in results[:10] + results[11:]:
            if isinstance(result, BaseException):
                self.assertIsInstance(result, NotFoundError)
            else:
                self.assertIsInstance(result, MessageDTO)

        async with self.db_manager.session() as session:
            messages = (await session.execute(
                select(func.count()).select_from(Message).where(Message.chat_id == self.chat.id)
            )).scalar_one()
            memberships = (await session.execute(
                select(func.count()).select_from(ChatMembership).where(ChatMembership.chat_id == self.chat.id)
            )).scalar_one()
        self.assertEqual(messages, 0)
        self.assertEqual(memberships, 0)
