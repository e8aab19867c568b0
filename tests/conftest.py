"""Shared test fixtures."""

from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from availchat.chat.context import ConversationContext
from availchat.chat.storage import LocalStorage
from availchat.integrations.availability_api import AvailabilityApi
from availchat.tools.availability_tools import build_catalog
from availchat.tools.registry import ToolRegistry

CHICAGO = ZoneInfo("America/Chicago")

# Monday
NOW = datetime(2024, 1, 15, 9, 0, tzinfo=CHICAGO)


def _slot(
    slot_id: str,
    day: str,
    start: str,
    end: str,
    *,
    booked: bool = False,
    duration: int | None = None,
) -> dict:
    """Backend-shaped slot dict in the America/Chicago winter offset."""
    slot = {
        "id": slot_id,
        "startTime": f"{day}T{start}:00-06:00",
        "endTime": f"{day}T{end}:00-06:00",
        "isBooked": booked,
    }
    if duration is not None:
        slot["duration"] = duration
    return slot


@pytest.fixture
def make_slot():
    return _slot


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def context() -> ConversationContext:
    return ConversationContext(user_id="provider-1", now=NOW)


@pytest.fixture
def api() -> AsyncMock:
    """Availability backend double; every call succeeds with an empty body."""
    fake = AsyncMock(spec=AvailabilityApi)
    fake.list_slots.return_value = []
    fake.get_slot.return_value = {}
    fake.create_slot.return_value = {"id": "new-slot"}
    fake.create_bulk.return_value = {"slots": []}
    fake.update_slot.return_value = {}
    fake.delete_slot.return_value = {}
    return fake


@pytest.fixture
def registry(api: AsyncMock) -> ToolRegistry:
    return build_catalog(api)


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(root=tmp_path / "storage")
