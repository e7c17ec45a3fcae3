"""Integration tests for the session and tools API endpoints."""

import pytest
from httpx import AsyncClient
from ollama_stream import text_chunks


@pytest.mark.asyncio
async def test_tools_are_discovered(async_client: AsyncClient):
    """Test tools in the tools directory are listed with their schemas."""
    response = await async_client.get("/api/v1/tools")

    assert response.status_code == 200
    tools = response.json()["tools"]
    assert [t["name"] for t in tools] == ["explode", "get_weather"]
    weather = tools[1]
    assert weather["description"] == "Get the current weather for a city."
    assert weather["parameters"]["properties"]["city"]["type"] == "string"
    assert weather["parameters"]["required"] == ["city"]


@pytest.mark.asyncio
async def test_health_counts(async_client: AsyncClient, create_session):
    """Test the health endpoint reports tool and session counts."""
    await create_session()

    data = (await async_client.get("/api/v1/health")).json()

    assert data["ollama_connected"] is True
    assert data["tool_count"] == 2
    assert data["session_count"] == 1


@pytest.mark.asyncio
async def test_create_session(async_client: AsyncClient):
    """Test creating a new session."""
    response = await async_client.post(
        "/api/v1/sessions",
        json={
            "model": "llama3.2:latest",
            "system_prompt": "You are a weather assistant.",
            "tools": ["get_weather"],
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert len(data["session_id"]) == 10
    assert data["model"] == "llama3.2:latest"
    assert data["system_prompt"] == "You are a weather assistant."
    assert data["tools"] == ["get_weather"]
    assert data["parallel_tool_calls"] is True
    assert data["message_count"] == 0
    assert data["state"] == "idle"


@pytest.mark.asyncio
async def test_create_session_unknown_model(
    async_client: AsyncClient, mock_ollama_client
):
    """Test creating a session with a model that isn't installed."""
    mock_ollama_client.get_model_info.return_value = None

    response = await async_client.post(
        "/api/v1/sessions", json={"model": "nonexistent:latest"}
    )

    assert response.status_code == 400
    error = response.json()["detail"]["error"]
    assert error["code"] == "model_not_found"
    assert error["details"] == {"model": "nonexistent:latest"}


@pytest.mark.asyncio
async def test_create_session_unknown_tool(async_client: AsyncClient):
    """Test creating a session with a tool that isn't registered."""
    response = await async_client.post(
        "/api/v1/sessions",
        json={"model": "llama3.2:latest", "tools": ["get_weather", "launch_rocket"]},
    )

    assert response.status_code == 400
    error = response.json()["detail"]["error"]
    assert error["code"] == "tool_not_found"
    assert error["details"] == {"tools": ["launch_rocket"]}


@pytest.mark.asyncio
async def test_create_session_ollama_unreachable(
    async_client: AsyncClient, mock_ollama_client
):
    """Test session creation surfaces Ollama failures as 502."""
    mock_ollama_client.get_model_info.side_effect = ConnectionError("refused")

    response = await async_client.post(
        "/api/v1/sessions", json={"model": "llama3.2:latest"}
    )

    assert response.status_code == 502
    assert response.json()["detail"]["error"]["code"] == "ollama_error"


@pytest.mark.asyncio
async def test_create_session_missing_model_field(async_client: AsyncClient):
    """Test request validation rejects a body without a model."""
    response = await async_client.post("/api/v1/sessions", json={})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_sessions(async_client: AsyncClient, create_session):
    """Test listing sessions."""
    assert (await async_client.get("/api/v1/sessions")).json() == {"sessions": []}

    first = await create_session()
    second = await create_session(tools=["explode"])

    response = await async_client.get("/api/v1/sessions")

    assert response.status_code == 200
    ids = {s["session_id"] for s in response.json()["sessions"]}
    assert ids == {first, second}


@pytest.mark.asyncio
async def test_get_session_with_messages(
    async_client: AsyncClient, create_session, script_chat
):
    """Test session details include the transcript after a turn."""
    session_id = await create_session(system_prompt="Be brief.")
    script_chat(text_chunks("Hi", " there"))
    await async_client.post(f"/api/v1/chat/{session_id}", json={"message": "Hello"})

    response = await async_client.get(f"/api/v1/sessions/{session_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["message_count"] == 3
    assert [(m["role"], m["content"]) for m in data["messages"]] == [
        ("system", "Be brief."),
        ("user", "Hello"),
        ("assistant", "Hi there"),
    ]
    assert [m["id"] for m in data["messages"]] == [1, 2, 3]
    assert data["messages"][2]["metrics"]["prompt_tokens"] == 20
    assert data["messages"][1]["metrics"] is None


@pytest.mark.asyncio
async def test_get_session_not_found(async_client: AsyncClient):
    """Test getting a non-existent session."""
    response = await async_client.get("/api/v1/sessions/nonexistent")

    assert response.status_code == 404
    error = response.json()["detail"]["error"]
    assert error["code"] == "session_not_found"
    assert error["details"] == {"session_id": "nonexistent"}


@pytest.mark.asyncio
async def test_get_messages(async_client: AsyncClient, create_session):
    """Test getting the messages of a fresh session."""
    session_id = await create_session()

    response = await async_client.get(f"/api/v1/sessions/{session_id}/messages")

    assert response.status_code == 200
    assert response.json() == {"messages": []}


@pytest.mark.asyncio
async def test_get_messages_not_found(async_client: AsyncClient):
    response = await async_client.get("/api/v1/sessions/nonexistent/messages")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_session(async_client: AsyncClient, create_session):
    """Test deleting a session."""
    session_id = await create_session()

    response = await async_client.delete(f"/api/v1/sessions/{session_id}")

    assert response.status_code == 204
    get_response = await async_client.get(f"/api/v1/sessions/{session_id}")
    assert get_response.status_code == 404


@pytest.mark.asyncio
async def test_delete_session_not_found(async_client: AsyncClient):
    """Test deleting a non-existent session."""
    response = await async_client.delete("/api/v1/sessions/nonexistent")

    assert response.status_code == 404
    assert response.json()["detail"]["error"]["code"] == "session_not_found"
