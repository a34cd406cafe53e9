import asyncio

from sqlalchemy import func, select

from social_messenger.core.database import ChatMembership, Message
from social_messenger.core.dto import ChatType
from social_messenger.core.exceptions import (
    AuthorizationError,
    DuplicateMemberError,
    NotFoundError,
    ValidationError,
)
from tests.db_util import DatabaseTestCase


class ChatGatewayTests(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        await self.make_users("alice", "bob", "carol", "dave")

    async def test_one_member_makes_private_chat(self):
        chat = await self.chats.create_chat("alice", {"bob"})

        self.assertEqual(chat.chat_type, ChatType.PRIVATE)
        self.assertEqual(chat.init_sender, "alice")
        self.assertEqual(chat.members, ["alice", "bob"])

    async def test_two_members_make_group_chat(self):
        chat = await self.chats.create_chat("alice", {"bob", "carol"})

        stored = await self.chats.get_chat(chat.id)
        self.assertEqual(stored.chat_type, ChatType.GROUP)
        self.assertEqual(stored.members, ["alice", "bob", "carol"])

    async def test_no_members_rejected(self):
        with self.assertRaises(ValidationError):
            await self.chats.create_chat("alice", set())
        with self.assertRaises(ValidationError):
            await self.chats.create_chat("alice", {"alice"})
        self.assertEqual(await self.chats.list_chats_for("alice"), [])

    async def test_unknown_member_rejected(self):
        with self.assertRaises(NotFoundError):
            await self.chats.create_chat("alice", {"bob", "ghost"})
        self.assertEqual(await self.chats.list_chats_for("bob"), [])

    async def test_each_chat_gets_its_own_id(self):
        first = await self.chats.create_chat("alice", {"bob"})
        second = await self.chats.create_chat("carol", {"dave"})

        self.assertNotEqual(first.id, second.id)
        self.assertEqual((await self.chats.get_chat(second.id)).init_sender, "carol")

    async def test_type_is_fixed_after_membership_changes(self):
        chat = await self.chats.create_chat("alice", {"bob"})
        await self.chats.add_member("alice", chat.id, "carol")

        stored = await self.chats.get_chat(chat.id)
        self.assertEqual(stored.chat_type, ChatType.PRIVATE)
        self.assertEqual(stored.members, ["alice", "bob", "carol"])

    async def test_owner_adds_and_removes_members(self):
        chat = await self.chats.create_chat("alice", {"bob", "carol"})

        await self.chats.add_member("alice", chat.id, "dave")
        self.assertTrue(await self.chats.is_member("dave", chat.id))

        await self.chats.remove_member("alice", chat.id, "bob")
        self.assertFalse(await self.chats.is_member("bob", chat.id))

    async def test_add_member_errors(self):
        chat = await self.chats.create_chat("alice", {"bob"})

        with self.assertRaises(NotFoundError):
            await self.chats.add_member("alice", chat.id, "ghost")
        with self.assertRaises(DuplicateMemberError):
            await self.chats.add_member("alice", chat.id, "bob")
        with self.assertRaises(NotFoundError):
            await self.chats.add_member("alice", chat.id + 100, "carol")

    async def test_remove_non_member(self):
        chat = await self.chats.create_chat("alice", {"bob"})
        with self.assertRaises(NotFoundError):
            await self.chats.remove_member("alice", chat.id, "carol")

    async def test_owner_cannot_be_removed(self):
        chat = await self.chats.create_chat("alice", {"bob"})
        with self.assertRaises(ValidationError):
            await self.chats.remove_member("alice", chat.id, "alice")
        self.assertTrue(await self.chats.is_member("alice", chat.id))

    async def test_only_owner_mutates_chat(self):
        chat = await self.chats.create_chat("alice", {"bob", "carol"})

        with self.assertRaises(AuthorizationError):
            await self.chats.remove_member("carol", chat.id, "bob")
        with self.assertRaises(AuthorizationError):
            await self.chats.add_member("bob", chat.id, "dave")
        with self.assertRaises(AuthorizationError):
            await self.chats.delete_chat("bob", chat.id)

        stored = await self.chats.get_chat(chat.id)
        self.assertEqual(stored.members, ["alice", "bob", "carol"])

    async def test_is_owner(self):
        chat = await self.chats.create_chat("alice", {"bob"})

        self.assertTrue(await self.chats.is_owner("alice", chat.id))
        self.assertFalse(await self.chats.is_owner("bob", chat.id))
        self.assertFalse(await self.chats.is_owner("alice", chat.id + 100))

    async def test_list_chats_for(self):
        private = await self.chats.create_chat("alice", {"bob"})
        group = await self.chats.create_chat("carol", {"alice", "dave"})
        await self.chats.create_chat("carol", {"dave"})

        chats = await self.chats.list_chats_for("alice")

        self.assertEqual([c.id for c in chats], [private.id, group.id])
        self.assertEqual(chats[1].members, ["alice", "carol", "dave"])
        self.assertEqual(await self.chats.list_chats_for("nobody"), [])

    async def test_delete_chat_cascades(self):
        chat = await self.chats.create_chat("alice", {"bob", "carol"})
        await self.messages.append(chat.id, "alice", "hi")
        await self.messages.append(chat.id, "bob", "hey")

        await self.chats.delete_chat("alice", chat.id)

        async with self.db_manager.session() as session:
            messages = (await session.execute(
                select(func.count()).select_from(Message).where(Message.chat_id == chat.id)
            )).scalar_one()
            memberships = (await session.execute(
                select(func.count()).select_from(ChatMembership).where(ChatMembership.chat_id == chat.id)
            )).scalar_one()
        self.assertEqual(messages, 0)
        self.assertEqual(memberships, 0)

        for login in ("alice", "bob", "carol"):
            self.assertEqual(await self.chats.list_chats_for(login), [])
        with self.assertRaises(NotFoundError):
            await self.chats.get_chat(chat.id)

    async def test_concurrent_creations_get_distinct_ids(self):
        owners = [f"owner{i}" for i in range(8)]
        await self.make_users(*owners)

        created = await asyncio.gather(*(self.chats.create_chat(owner, {"bob"}) for owner in owners))

        self.assertEqual(len({chat.id for chat in created}), len(owners))
        for owner, chat in zip(owners, created):
            stored = await self.chats.get_chat(chat.id)
            self.assertEqual(stored.init_sender, owner)
            self.assertEqual(stored.members, sorted([owner, "bob"]))
