"""Fixtures for agent unit tests: scripted models and sample tools."""

import asyncio
from typing import Any, Callable

import pytest
from pydantic import BaseModel
from scripted_model import ScriptedModel

from toolchat_server.agent import AgentFunction, agent_function


class TopicArgs(BaseModel):
    topic: str


class DelayArgs(BaseModel):
    label: str
    delay: float = 0.0


@pytest.fixture
def make_model() -> Callable[..., ScriptedModel]:
    def factory(*script: Any, gate: asyncio.Event | None = None) -> ScriptedModel:
        return ScriptedModel(script=list(script), gate=gate)

    return factory


@pytest.fixture
def get_fact() -> AgentFunction:
    """A tool whose latency depends on the topic: "volcano" is slower than "otter"."""

    @agent_function()
    async def get_fact(args: TopicArgs) -> str:
        """Return a fact about a topic."""
        await asyncio.sleep(0.05 if args.topic == "volcano" else 0.0)
        return f"fact about {args.topic}"

    return get_fact


@pytest.fixture
def failing_tool() -> AgentFunction:
    @agent_function(name="explode")
    def explode(args: TopicArgs) -> str:
        """Always fails."""
        raise RuntimeError(f"cannot handle {args.topic}")

    return explode


@pytest.fixture
def delayed_echo() -> AgentFunction:
    @agent_function(name="echo")
    async def echo(args: DelayArgs) -> dict:
        """Echo a label after a delay."""
        await asyncio.sleep(args.delay)
        return {"label": args.label}

    return echo
