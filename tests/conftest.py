"""Shared fixtures for HabitLens tests.

Provides an in-memory store, fake text-generation transports and a recording
messaging channel so nothing touches the network.
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from habitlens.config import NotificationConfig
from habitlens.core.database import HabitDatabase
from habitlens.services.notifications import DeliveryReceipt, MessagingChannel, NotificationDispatcher

TODAY = date(2024, 1, 5)


def days_back(count: int, start: date = TODAY):
    """Dates from start going back one day at a time."""
    return [start - timedelta(days=i) for i in range(count)]


# ===== OpenAI =====


class FakeCompletions:
    def __init__(self, owner):
        self.owner = owner

    async def create(self, **kwargs):
        self.owner.calls.append(kwargs)
        if self.owner.delay:
            await asyncio.sleep(self.owner.delay)
        if self.owner.error is not None:
            raise self.owner.error
        message = SimpleNamespace(content=self.owner.text)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAIClient:
    """Stands in for openai.AsyncOpenAI."""

    def __init__(self, text: str = "", error: Exception | None = None, delay: float = 0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = []
        self.closed = False
        self.chat = SimpleNamespace(completions=FakeCompletions(self))

    async def close(self):
        self.closed = True


# ===== aiohttp =====


class FakeResponse:
    def __init__(self, status: int, payload: dict | None = None, text: str = ""):
        self.status = status
        self._payload = payload or {}
        self._text = text

    async def json(self):
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, factory):
        self.factory = factory

    def post(self, url, **kwargs):
        self.factory.requests.append({"url": url, **kwargs})
        if self.factory.error is not None:
            raise self.factory.error
        return FakeResponse(self.factory.status, self.factory.payload, self.factory.text)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSessionFactory:
    """Callable replacement for aiohttp.ClientSession that records requests."""

    def __init__(self, status: int = 200, payload: dict | None = None, text: str = "",
                 error: Exception | None = None):
        self.status = status
        self.payload = payload or {}
        self.text = text
        self.error = error
        self.requests = []

    def __call__(self):
        return FakeSession(self)


# ===== Messaging =====


class RecordingChannel(MessagingChannel):
    """Channel that keeps every message and can fail for chosen addresses."""

    name = "recording"

    def __init__(self, fail_for=(), delay: float = 0.0):
        self.sent = []
        self.fail_for = set(fail_for)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    def normalize_address(self, address: str) -> str:
        return address.strip()

    async def send(self, address: str, body: str) -> DeliveryReceipt:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if address in self.fail_for:
                raise ConnectionError(f"cannot reach {address}")
            self.sent.append((address, body))
            return DeliveryReceipt(channel=self.name, address=address, message_id=str(len(self.sent)))
        finally:
            self.in_flight -= 1


# ===== Fixtures =====


@pytest.fixture
def db():
    return HabitDatabase()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def dispatcher(channel, db):
    return NotificationDispatcher(channel, db, send_timeout=1.0)


@pytest.fixture
def notification_config():
    return NotificationConfig(max_workers=3)


@pytest.fixture
def session_factory():
    return FakeSessionFactory()
