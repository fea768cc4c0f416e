"""Shared test fixtures."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator
from uuid import UUID

import pytest

from staunton_chat.application.dto.conversation import ConversationSummary
from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.dto.principal import Principal
from staunton_chat.application.repositories.outbox import OutboxRecord
from staunton_chat.domain.entities.conversation import Conversation, normalize_pair
from staunton_chat.domain.entities.global_message import GlobalMessage
from staunton_chat.domain.entities.message import Message
from staunton_chat.domain.entities.profile import Profile, SenderProfile

T0 = datetime(2024, 12, 1, 9, 0, tzinfo=timezone.utc)

ALICE = UUID("00000000-0000-4000-8000-00000000000a")
BOB = UUID("00000000-0000-4000-8000-00000000000b")
CAROL = UUID("00000000-0000-4000-8000-00000000000c")


class FixedClock:
    def __init__(self, now: datetime = T0) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def alice_principal() -> Principal:
    return Principal(user_id=ALICE, roles=[])


def make_profile(user_id: UUID, name: str = "Trader", company: str | None = None) -> Profile:
    return Profile(
        id=user_id,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        full_name=name,
        company_name=company,
        role=["trader"],
        verification_status="verified",
        created_at=T0,
        updated_at=T0,
    )


def make_conversation(
    a: UUID = ALICE,
    b: UUID = BOB,
    *,
    conversation_id: UUID | None = None,
    last_message_at: datetime = T0,
) -> Conversation:
    p1, p2 = normalize_pair(a, b)
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        participant_1=p1,
        participant_2=p2,
        last_message_at=last_message_at,
        created_at=T0,
    )


def make_message(
    conversation_id: UUID,
    sender_id: UUID = ALICE,
    content: str = "hello",
    *,
    read: bool = False,
    created_at: datetime = T0,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        read=read,
        created_at=created_at,
    )


def make_global_message(
    sender_id: UUID = ALICE,
    content: str = "hello",
    *,
    created_at: datetime = T0,
) -> GlobalMessage:
    return GlobalMessage(
        id=uuid.uuid4(),
        sender_id=sender_id,
        content=content,
        created_at=created_at,
    )


def _sort_key(item: Message | GlobalMessage) -> tuple[datetime, str]:
    return item.created_at, str(item.id)


@dataclass
class FakeProfileReader:
    _store: dict[UUID, Profile] = field(default_factory=dict)

    def add(self, *profiles: Profile) -> None:
        for p in profiles:
            self._store[p.id] = p

    async def get_by_id(self, user_id: UUID) -> Profile | None:
        return self._store.get(user_id)

    async def search(
        self, query: str, *, limit: int = 20, exclude: UUID | None = None,
    ) -> list[Profile]:
        q = query.lower()
        return [
            p for p in sorted(self._store.values(), key=lambda p: p.full_name or "")
            if p.id != exclude
            and (q in (p.full_name or "").lower() or q in (p.company_name or "").lower())
        ][:limit]


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)
    _conversations: dict[UUID, Conversation] = field(default_factory=dict)

    async def list_recent(self, conversation_id: UUID, *, limit: int = 50) -> list[Message]:
        rows = sorted((m for m in self._messages if m.conversation_id == conversation_id), key=_sort_key)
        return rows[-limit:] if limit else []

    async def count_unread_for_user(self, user_id: UUID) -> int:
        return sum(
            1
            for m in self._messages
            if not m.read
            and m.sender_id != user_id
            and m.conversation_id in self._conversations
            and self._conversations[m.conversation_id].has_participant(user_id)
        )


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create(self, message: Message) -> Message:
        self._reader._messages.append(message)
        return message

    async def mark_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        changed = 0
        for i, m in enumerate(self._reader._messages):
            if m.conversation_id == conversation_id and m.sender_id != reader_id and not m.read:
                self._reader._messages[i] = replace(m, read=True)
                changed += 1
        return changed


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)
    _messages: FakeMessageReader | None = None
    _profiles: FakeProfileReader | None = None

    def add(self, *conversations: Conversation) -> None:
        for c in conversations:
            self._store[c.id] = c

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def get_by_pair(self, a: UUID, b: UUID) -> Conversation | None:
        pair = normalize_pair(a, b)
        for c in self._store.values():
            if (c.participant_1, c.participant_2) == pair:
                return c
        return None

    async def list_summaries_for_user(self, user_id: UUID) -> list[ConversationSummary]:
        assert self._messages is not None and self._profiles is not None
        convs = sorted(
            (c for c in self._store.values() if c.has_participant(user_id)),
            key=lambda c: c.last_message_at,
            reverse=True,
        )
        summaries = []
        for c in convs:
            msgs = sorted((m for m in self._messages._messages if m.conversation_id == c.id), key=_sort_key)
            summaries.append(
                ConversationSummary(
                    conversation=c,
                    other_user=self._profiles._store.get(c.other_participant(user_id)),
                    unread_count=sum(1 for m in msgs if not m.read and m.sender_id != user_id),
                    last_message=msgs[-1] if msgs else None,
                )
            )
        return summaries


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader

    async def create_if_absent(self, a: UUID, b: UUID, ts: datetime) -> Conversation:
        existing = await self._reader.get_by_pair(a, b)
        if existing is not None:
            return existing
        conversation = make_conversation(a, b, last_message_at=ts)
        conversation = replace(conversation, created_at=ts)
        self._reader._store[conversation.id] = conversation
        return conversation

    async def touch_last_message_at(self, conversation_id: UUID, ts: datetime) -> None:
        conv = self._reader._store[conversation_id]
        self._reader._store[conversation_id] = replace(conv, last_message_at=ts)


@dataclass
class FakeGlobalMessageReader:
    _messages: list[GlobalMessage] = field(default_factory=list)
    _profiles: FakeProfileReader | None = None

    def _with_sender(self, m: GlobalMessage) -> GlobalMessage:
        profile = self._profiles._store.get(m.sender_id) if self._profiles else None
        if profile is None:
            return m
        return replace(
            m,
            sender=SenderProfile(
                id=profile.id,
                full_name=profile.full_name,
                company_name=profile.company_name,
                avatar_url=profile.avatar_url,
                role=list(profile.role),
                verification_status=profile.verification_status,
            ),
        )

    async def get_with_sender(self, message_id: UUID) -> GlobalMessage | None:
        for m in self._messages:
            if m.id == message_id:
                return self._with_sender(m)
        return None

    async def list_recent(self, *, limit: int = 100) -> list[GlobalMessage]:
        rows = sorted(self._messages, key=_sort_key)
        return [self._with_sender(m) for m in rows[-limit:]]

    async def list_before(self, before: datetime, *, limit: int = 50) -> list[GlobalMessage]:
        rows = sorted((m for m in self._messages if m.created_at < before), key=_sort_key)
        return [self._with_sender(m) for m in rows[-limit:]]

    async def count_since(self, since: datetime | None = None) -> int:
        return sum(1 for m in self._messages if since is None or m.created_at >= since)

    async def count_distinct_senders_since(self, since: datetime) -> int:
        return len({m.sender_id for m in self._messages if m.created_at >= since})


@dataclass
class FakeGlobalMessageWriter:
    _reader: FakeGlobalMessageReader

    async def create(self, message: GlobalMessage) -> GlobalMessage:
        self._reader._messages.append(message)
        return self._reader._with_sender(message)

    async def delete_own(self, message_id: UUID, sender_id: UUID) -> bool:
        for m in self._reader._messages:
            if m.id == message_id and m.sender_id == sender_id:
                self._reader._messages.remove(m)
                return True
        return False


@dataclass
class FakeOutboxWriter:
    _records: list[ChangeNotification] = field(default_factory=list)
    _pending: list[OutboxRecord] = field(default_factory=list)
    _sent: list[int] = field(default_factory=list)
    _failed: list[tuple[int, datetime]] = field(default_factory=list)

    async def add(self, notification: ChangeNotification) -> None:
        self._records.append(notification)

    async def fetch_pending(self, batch_size: int, now: datetime, max_attempts: int) -> list[OutboxRecord]:
        return [r for r in self._pending if r.attempts < max_attempts][:batch_size]

    async def mark_sent(self, ids: list[int]) -> None:
        self._sent.extend(ids)

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        self._failed.append((record_id, next_retry_at))


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    profiles: FakeProfileReader = field(default_factory=FakeProfileReader)
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    global_messages: FakeGlobalMessageReader = field(default_factory=FakeGlobalMessageReader)
    global_messages_w: FakeGlobalMessageWriter | None = None
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    _committed: bool = False
    _rolled_back: bool = False

    def __post_init__(self) -> None:
        self.conversations._messages = self.messages
        self.conversations._profiles = self.profiles
        self.messages._conversations = self.conversations._store
        self.global_messages._profiles = self.profiles
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.global_messages_w is None:
            self.global_messages_w = FakeGlobalMessageWriter(self.global_messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._rolled_back = True

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, *exc: object) -> None:
        pass


def uow_factory_for(uow: FakeUoW):
    """A UoW factory that always hands out the same in-memory UoW."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        yield uow

    return _factory


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    uow.profiles.add(
        make_profile(ALICE, "Alice Buyer", "Northsea Fuels"),
        make_profile(BOB, "Bob Seller", "Gulf Refining"),
        make_profile(CAROL, "Carol Broker", "Baltic Brokers"),
    )
    return uow
