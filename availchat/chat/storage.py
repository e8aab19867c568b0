"""Local key/value storage for chat history and chat-window state.

Each key is one JSON file under ``settings.storage_dir``. Unreadable or
corrupt files are logged and treated as empty.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from availchat.chat.session import Message
from availchat.config import settings

logger = logging.getLogger(__name__)

CHAT_HISTORY_KEY = "chat_history"
WINDOW_STATE_KEY = "floating_chat_state"

MIN_WIDTH, MAX_WIDTH = 300, 800
MIN_HEIGHT, MAX_HEIGHT = 400, 800


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WindowPosition(_CamelModel):
    x: int = 0
    y: int = 0


class WindowSize(_CamelModel):
    width: int = Field(default=400, ge=MIN_WIDTH, le=MAX_WIDTH)
    height: int = Field(default=580, ge=MIN_HEIGHT, le=MAX_HEIGHT)


class ChatWindowState(_CamelModel):
    """Open/minimized flags plus geometry of the floating chat window."""

    is_open: bool = False
    is_minimized: bool = False
    position: WindowPosition = Field(default_factory=WindowPosition)
    size: WindowSize = Field(default_factory=WindowSize)

    def toggle_open(self) -> None:
        self.is_open = not self.is_open
        if self.is_open:
            self.is_minimized = False

    def toggle_minimized(self) -> None:
        self.is_minimized = not self.is_minimized

    def close(self) -> None:
        self.is_open = False
        self.is_minimized = False

    def resize(self, width: int, height: int) -> None:
        self.size = WindowSize(
            width=max(MIN_WIDTH, min(MAX_WIDTH, width)),
            height=max(MIN_HEIGHT, min(MAX_HEIGHT, height)),
        )

    def fit_within(self, viewport_width: int, viewport_height: int) -> None:
        """Pull the window back inside a viewport of the given size."""
        self.position = WindowPosition(
            x=max(0, min(self.position.x, viewport_width - self.size.width)),
            y=max(0, min(self.position.y, viewport_height - self.size.height)),
        )


class LocalStorage:
    """JSON files keyed by name, one directory per client."""

    def __init__(self, root: Path | None = None) -> None:
        self._root = Path(root) if root is not None else settings.storage_dir

    def _path(self, key: str) -> Path:
        return self._root / f"{key}.json"

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable storage key '%s': %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(value, indent=2), encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    # -- Chat history ----------------------------------------------------------

    def load_history(self) -> list[Message]:
        raw = self.get(CHAT_HISTORY_KEY)
        if not isinstance(raw, list):
            return []
        try:
            return [Message.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding corrupt chat history: %s", exc)
            return []

    def save_history(self, messages: list[Message]) -> None:
        self.set(CHAT_HISTORY_KEY, [m.to_dict() for m in messages])

    def clear_history(self) -> None:
        self.remove(CHAT_HISTORY_KEY)

    # -- Window state ----------------------------------------------------------

    def load_window_state(self) -> ChatWindowState:
        raw = self.get(WINDOW_STATE_KEY)
        if raw is None:
            return ChatWindowState()
        try:
            return ChatWindowState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding invalid chat window state: %s", exc)
            return ChatWindowState()

    def save_window_state(self, state: ChatWindowState) -> None:
        self.set(WINDOW_STATE_KEY, state.model_dump(by_alias=True))
