from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from staunton_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from staunton_chat.application.repositories.global_message import (
    GlobalMessageReader,
    GlobalMessageWriter,
)
from staunton_chat.application.repositories.message import MessageReader, MessageWriter
from staunton_chat.application.repositories.outbox import OutboxWriter
from staunton_chat.application.repositories.profile import ProfileReader


class UnitOfWork(Protocol):
    profiles: ProfileReader
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter
    global_messages: GlobalMessageReader
    global_messages_w: GlobalMessageWriter
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
