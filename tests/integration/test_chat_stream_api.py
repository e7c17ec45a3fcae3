"""Integration tests for streaming chat and the stop/reset controls.

This module tests the SSE streaming chat endpoint including:
- Content deltas grouped by generation
- Tool calls executed while streaming
- Error events and rollback of failed turns
- Stopping a turn in progress and resetting a session
"""

import asyncio

import pytest
from httpx import AsyncClient
from ollama_stream import parse_sse, text_chunks, tool_call_chunks


def of_type(events: list[dict], event_type: str) -> list[dict]:
    return [e for e in events if e["event"] == event_type]


@pytest.mark.asyncio
async def test_stream_chat_basic(
    async_client: AsyncClient, create_session, script_chat
):
    """Test basic streaming chat response."""
    session_id = await create_session()
    script_chat(text_chunks("Hello", " there", "!"))

    response = await async_client.post(
        f"/api/v1/chat/{session_id}/stream", json={"message": "Hi!"}
    )

    assert response.status_code == 200
    events = parse_sse(response.text)
    assert [e["event"] for e in events] == [
        "content_delta",
        "content_delta",
        "content_delta",
        "message_complete",
        "done",
    ]

    deltas = of_type(events, "content_delta")
    assert [d["data"]["content"] for d in deltas] == ["Hello", " there", "!"]
    assert [d["data"]["index"] for d in deltas] == [0, 1, 2]
    generation_ids = {d["data"]["generation_id"] for d in deltas}
    assert len(generation_ids) == 1
    assert generation_ids != {""}

    complete = of_type(events, "message_complete")[0]["data"]
    assert complete["session_id"] == session_id
    assert complete["output"] == "Hello there!"
    assert complete["entries"][0]["metrics"]["completion_tokens"] == 3

    assert of_type(events, "done")[0]["data"] == {"session_id": session_id}

    messages = await async_client.get(f"/api/v1/sessions/{session_id}/messages")
    assert [m["role"] for m in messages.json()["messages"]] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_stream_chat_with_tool_calls(
    async_client: AsyncClient, create_session, script_chat
):
    """Test tools run mid-stream and each completion gets its own generation."""
    session_id = await create_session(tools=["get_weather"])
    first_generation = tool_call_chunks("get_weather", city="Lima")
    first_generation.insert(
        0, {"message": {"role": "assistant", "content": "Checking."}, "done": False}
    )
    script_chat(first_generation, text_chunks("Sunny", " in Lima."))

    response = await async_client.post(
        f"/api/v1/chat/{session_id}/stream", json={"message": "Lima?"}
    )

    events = parse_sse(response.text)
    deltas = of_type(events, "content_delta")
    assert [d["data"]["content"] for d in deltas] == ["Checking.", "Sunny", " in Lima."]
    assert [d["data"]["index"] for d in deltas] == [0, 0, 1]
    assert deltas[0]["data"]["generation_id"] != deltas[1]["data"]["generation_id"]
    assert deltas[1]["data"]["generation_id"] == deltas[2]["data"]["generation_id"]

    complete = of_type(events, "message_complete")[0]["data"]
    assert complete["output"] == "Sunny in Lima."
    assert [e["role"] for e in complete["entries"]] == ["assistant", "tool", "assistant"]
    assert complete["entries"][1]["content"] == "Sunny and 21 degrees in Lima"


@pytest.mark.asyncio
async def test_stream_chat_session_not_found(async_client: AsyncClient):
    """Test streaming with a non-existent session."""
    response = await async_client.post(
        "/api/v1/chat/nonexistent/stream", json={"message": "Hello"}
    )

    assert response.status_code == 404
    assert response.json()["detail"]["error"]["code"] == "session_not_found"


@pytest.mark.asyncio
async def test_stream_chat_ollama_error(
    async_client: AsyncClient, create_session, mock_ollama_client
):
    """Test a backend failure produces an error event and no done event."""
    session_id = await create_session()

    async def failing_stream(**kwargs):
        yield {"message": {"role": "assistant", "content": "Par"}, "done": False}
        raise ConnectionError("Ollama connection lost")

    mock_ollama_client.chat_stream = failing_stream

    response = await async_client.post(
        f"/api/v1/chat/{session_id}/stream", json={"message": "Hello"}
    )

    assert response.status_code == 200
    events = parse_sse(response.text)
    assert [e["event"] for e in events] == ["content_delta", "error"]
    error = events[-1]["data"]
    assert error["code"] == "ollama_error"
    assert "Ollama connection lost" in error["message"]
    assert error["details"]["session_id"] == session_id

    messages = await async_client.get(f"/api/v1/sessions/{session_id}/messages")
    assert messages.json()["messages"] == []


@pytest.mark.asyncio
async def test_stream_chat_tool_failure(
    async_client: AsyncClient, create_session, script_chat
):
    """Test a failing tool produces a function_call_error event."""
    session_id = await create_session(tools=["explode"])
    script_chat(tool_call_chunks("explode", city="Nowhere"))

    response = await async_client.post(
        f"/api/v1/chat/{session_id}/stream", json={"message": "Go"}
    )

    events = parse_sse(response.text)
    assert [e["event"] for e in events] == ["error"]
    assert events[0]["data"]["code"] == "function_call_error"
    assert events[0]["data"]["details"]["failures"][0]["name"] == "explode"


@pytest.mark.asyncio
async def test_stop_idle_session(async_client: AsyncClient, create_session):
    """Test stopping a session with nothing in flight is a no-op."""
    session_id = await create_session()

    response = await async_client.post(f"/api/v1/chat/{session_id}/stop")

    assert response.status_code == 200
    assert response.json() == {
        "session_id": session_id,
        "state": "idle",
        "message_count": 0,
    }


@pytest.mark.asyncio
async def test_stop_during_stream(
    async_client: AsyncClient, create_session, mock_ollama_client
):
    """Test stopping a streaming turn cancels it and rolls it back."""
    session_id = await create_session()
    gate = asyncio.Event()

    async def slow_stream(**kwargs):
        yield {"message": {"role": "assistant", "content": "Once"}, "done": False}
        await gate.wait()
        yield {"message": {"role": "assistant", "content": ""}, "done": True}

    mock_ollama_client.chat_stream = slow_stream

    stream_task = asyncio.create_task(
        async_client.post(
            f"/api/v1/chat/{session_id}/stream", json={"message": "Tell a story"}
        )
    )
    for _ in range(200):
        session = await async_client.get(f"/api/v1/sessions/{session_id}")
        if session.json()["state"] == "responding":
            break
        await asyncio.sleep(0.01)
    else:
        pytest.fail("turn never started")

    busy = await async_client.post(
        f"/api/v1/chat/{session_id}", json={"message": "Interrupt"}
    )
    assert busy.status_code == 409
    assert busy.json()["detail"]["error"]["code"] == "already_responding"

    stop = await async_client.post(f"/api/v1/chat/{session_id}/stop")
    assert stop.status_code == 200
    assert stop.json()["state"] == "idle"
    assert stop.json()["message_count"] == 0

    response = await asyncio.wait_for(stream_task, timeout=5)
    events = parse_sse(response.text)
    assert events[-1]["event"] == "error"
    assert events[-1]["data"]["code"] == "cancelled"
    assert not of_type(events, "done")


@pytest.mark.asyncio
async def test_reset_session(async_client: AsyncClient, create_session, script_chat):
    """Test reset clears the transcript and ids keep increasing."""
    session_id = await create_session()
    script_chat(text_chunks("First"), text_chunks("Second"))
    await async_client.post(f"/api/v1/chat/{session_id}", json={"message": "One"})

    response = await async_client.post(f"/api/v1/chat/{session_id}/reset")

    assert response.status_code == 200
    assert response.json()["message_count"] == 0
    assert response.json()["state"] == "idle"

    await async_client.post(f"/api/v1/chat/{session_id}", json={"message": "Two"})
    messages = await async_client.get(f"/api/v1/sessions/{session_id}/messages")
    assert [(m["id"], m["content"]) for m in messages.json()["messages"]] == [
        (3, "Two"),
        (4, "Second"),
    ]


@pytest.mark.asyncio
async def test_control_endpoints_session_not_found(async_client: AsyncClient):
    """Test stop and reset on a non-existent session."""
    for action in ("stop", "reset"):
        response = await async_client.post(f"/api/v1/chat/nonexistent/{action}")
        assert response.status_code == 404
