import unittest
from datetime import datetime, timedelta

from social_messenger.core.dto import MessageDTO
from social_messenger.core.exceptions import ValidationError
from social_messenger.core.pagination import page
from tests.db_util import DatabaseTestCase


def _messages(count: int) -> list[MessageDTO]:
    start = datetime(2024, 1, 1, 12, 0, 0)
    return [
        MessageDTO(
            id=i + 1,
            text=f"message {i + 1}",
            timestamp=start + timedelta(seconds=i),
            sender_login="alice",
            chat_id=1
        ) for i in range(count)
    ]


class PageTests(unittest.TestCase):
    def test_first_window_of_twenty_five(self):
        result = page(_messages(25), 0, 10)

        self.assertEqual([m.id for m in result.items], list(range(1, 11)))
        self.assertEqual(result.next_cursor, 10)
        self.assertTrue(result.has_more)

    def test_last_window_of_twenty_five(self):
        result = page(_messages(25), 20, 10)

        self.assertEqual([m.id for m in result.items], list(range(21, 26)))
        self.assertEqual(result.next_cursor, 25)
        self.assertFalse(result.has_more)

    def test_following_cursors_visits_every_message_once(self):
        messages = _messages(25)
        seen, cursor, has_more = [], 0, True
        while has_more:
            result = page(messages, cursor)
            seen.extend(m.id for m in result.items)
            cursor, has_more = result.next_cursor, result.has_more

        self.assertEqual(seen, [m.id for m in messages])

    def test_exact_multiple_has_no_trailing_page(self):
        result = page(_messages(20), 10, 10)
        self.assertEqual(len(result.items), 10)
        self.assertFalse(result.has_more)

    def test_empty_and_past_the_end(self):
        empty = page([], 0)
        self.assertEqual(empty.items, [])
        self.assertFalse(empty.has_more)

        beyond = page(_messages(3), 7)
        self.assertEqual(beyond.items, [])
        self.assertEqual(beyond.next_cursor, 7)
        self.assertFalse(beyond.has_more)

    def test_default_page_size_is_ten(self):
        self.assertEqual(len(page(_messages(15)).items), 10)

    def test_invalid_arguments(self):
        with self.assertRaises(ValidationError):
            page(_messages(3), -1)
        with self.assertRaises(ValidationError):
            page(_messages(3), 0, 0)


class PagedHistoryTests(DatabaseTestCase):
    async def test_pages_over_stored_history(self):
        await self.make_users("alice", "bob")
        chat = await self.chats.create_chat("alice", {"bob"})
        for i in range(25):
            await self.messages.append(chat.id, "alice", f"message {i}")

        history = await self.messages.list_ordered(chat.id)
        first = page(history, 0, 10)
        last = page(history, 20, 10)

        self.assertEqual([m.text for m in first.items], [f"message {i}" for i in range(10)])
        self.assertTrue(first.has_more)
        self.assertEqual([m.text for m in last.items], [f"message {i}" for i in range(20, 25)])
        self.assertFalse(last.has_more)
