"""Tests for chat sessions and message history."""

from availchat.chat.session import Message, MessageMetadata, Session, SessionManager, ToolCallRecord


def test_session_add_and_retrieve() -> None:
    """Messages should be stored and retrievable."""
    session = Session()
    session.add(Message(role="user", content="hello"))
    session.add(Message(role="assistant", content="hi there"))

    msgs = session.to_api_messages()
    assert msgs == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "hi there"},
    ]


def test_session_recent_window() -> None:
    session = Session()
    for i in range(5):
        session.add(Message(role="user", content=f"msg {i}"))

    assert [m["content"] for m in session.to_api_messages(3)] == ["msg 2", "msg 3", "msg 4"]
    assert session.recent(0) == []


def test_session_clear() -> None:
    """Clear should remove all messages and return count."""
    session = Session()
    session.add(Message(role="user", content="hello"))
    session.add(Message(role="assistant", content="hi"))

    assert session.clear() == 2
    assert session.to_api_messages() == []


def test_message_ids_are_unique() -> None:
    assert Message(role="user", content="a").id != Message(role="user", content="a").id


def test_message_serialization() -> None:
    call = ToolCallRecord("get_availability_data", {"start_date": "2024-01-16"}, {"success": True})
    message = Message(
        role="assistant",
        content="Found it",
        metadata=MessageMetadata(tool_calls=(call,), context_snapshot={"userId": "provider-1"}),
    )

    payload = message.to_dict()
    assert payload["metadata"]["toolCalls"][0]["toolName"] == "get_availability_data"
    assert payload["metadata"]["contextSnapshot"] == {"userId": "provider-1"}

    restored = Message.from_dict(payload)
    assert restored == message
    assert restored.tool_calls == (call,)


def test_message_without_metadata() -> None:
    message = Message(role="user", content="hi")
    assert "metadata" not in message.to_dict()
    assert message.tool_calls == ()


# -- SessionManager --------------------------------------------------------------


def test_manager_attaches_metadata() -> None:
    manager = SessionManager(user_id="provider-1")
    plain = manager.add_message("user", "hello")
    rich = manager.add_message("assistant", "done", tool_calls=[], context_snapshot={"userId": "provider-1"})

    assert plain.metadata is None
    assert rich.metadata.context_snapshot == {"userId": "provider-1"}
    assert len(manager.messages) == 2
    assert manager.recent_messages(1) == [rich]


def test_manager_persists_history(storage) -> None:
    manager = SessionManager(user_id="provider-1", storage=storage)
    manager.add_message("user", "hello")
    manager.add_message("assistant", "hi")

    restored = SessionManager(user_id="provider-1", storage=storage)
    assert [m.content for m in restored.messages] == ["hello", "hi"]
    assert restored.session.id != manager.session.id


def test_clear_chat_starts_new_session(storage) -> None:
    manager = SessionManager(user_id="provider-1", storage=storage)
    manager.add_message("user", "hello")
    old = manager.session

    manager.clear_chat()

    assert manager.messages == []
    assert manager.session is not old
    assert manager.session.user_id == "provider-1"
    assert not old.is_active
    assert SessionManager(storage=storage).messages == []
