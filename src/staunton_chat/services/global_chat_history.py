from __future__ import annotations

from uuid import UUID

from staunton_chat.application.uow import UoWFactory
from staunton_chat.domain.entities.global_message import GlobalMessage
from staunton_chat.services import global_chat_service


class GlobalChatHistory:
    """Client-side window over the global chat.

    Loads the latest page, pages backwards using the oldest loaded timestamp
    as cursor, and appends live messages. Messages are de-duplicated by id
    because live delivery is at-least-once.
    """

    def __init__(
        self,
        uow_factory: UoWFactory,
        *,
        page_size: int = 100,
        older_page_size: int = 50,
    ) -> None:
        self._uow_factory = uow_factory
        self._page_size = page_size
        self._older_page_size = older_page_size
        self._messages: list[GlobalMessage] = []
        self._ids: set[UUID] = set()
        self.has_more = True

    @property
    def messages(self) -> list[GlobalMessage]:
        return list(self._messages)

    async def load_latest(self) -> list[GlobalMessage]:
        async with self._uow_factory() as uow:
            page = await global_chat_service.get_global_messages(uow, limit=self._page_size)
        self._messages = []
        self._ids = set()
        self.has_more = True
        self._messages.extend(self._unseen(page))
        return self.messages

    async def load_older(self) -> list[GlobalMessage]:
        """Prepend the next older page. Returns the messages that were added."""
        if not self.has_more or not self._messages:
            return []

        cursor = self._messages[0].created_at
        async with self._uow_factory() as uow:
            page = await global_chat_service.get_older_global_messages(
                cursor, uow, limit=self._older_page_size,
            )
        if not page:
            self.has_more = False
            return []

        fresh = self._unseen(page)
        self._messages[:0] = fresh
        return fresh

    def append_live(self, message: GlobalMessage) -> bool:
        """Append a pushed message unless it is already shown."""
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        self._messages.append(message)
        return True

    def _unseen(self, page: list[GlobalMessage]) -> list[GlobalMessage]:
        fresh = [m for m in page if m.id not in self._ids]
        self._ids.update(m.id for m in fresh)
        return fresh
