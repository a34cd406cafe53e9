from typing import Sequence

from .dto import MessageDTO, PageDTO
from .exceptions import ValidationError

DEFAULT_PAGE_SIZE = 10


def page(messages: Sequence[MessageDTO], cursor: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> PageDTO:
    """
    Cuts a fixed window out of an oldest-first message sequence.

    The cursor is an offset into the sequence returned by
    MessageGateway.list_ordered. Any append, edit or delete in the chat
    invalidates it: re-fetch the history and restart from 0.
    :param messages: messages ordered by (timestamp, id) ascending
    :param cursor: offset of the first message of the window
    :param page_size: window length
    :return: the window, the cursor of the next window and whether one exists
    """
    if cursor < 0:
        raise ValidationError("Cursor must not be negative")
    if page_size < 1:
        raise ValidationError("Page size must be positive")

    total = len(messages)
    end = min(cursor + page_size, total)
    items = list(messages[cursor:end])
    next_cursor = end if cursor < total else cursor

    return PageDTO(
        items=items,
        next_cursor=next_cursor,
        has_more=next_cursor < total
    )
