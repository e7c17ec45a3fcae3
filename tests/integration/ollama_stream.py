"""Builders for the chunk dicts yielded by ``OllamaClient.chat_stream``."""

import json


def text_chunks(*parts: str, prompt_tokens: int = 20) -> list[dict]:
    """Build a chat stream that emits ``parts`` and finishes."""
    chunks = [
        {"message": {"role": "assistant", "content": part}, "done": False}
        for part in parts
    ]
    chunks.append(
        {
            "message": {"role": "assistant", "content": ""},
            "done": True,
            "prompt_eval_count": prompt_tokens,
            "eval_count": len(parts),
        }
    )
    return chunks


def tool_call_chunks(name: str, **arguments) -> list[dict]:
    """Build a chat stream whose only output is one tool call."""
    return [
        {
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [
                    {"function": {"name": name, "arguments": json.dumps(arguments)}}
                ],
            },
            "done": True,
            "prompt_eval_count": 30,
            "eval_count": 8,
        }
    ]


def parse_sse(text: str) -> list[dict]:
    """Split an SSE response body into ``{"event", "data"}`` dicts."""
    events = []
    for block in text.replace("\r\n", "\n").strip().split("\n\n"):
        event_type = None
        event_data = None
        for line in block.split("\n"):
            if line.startswith("event:"):
                event_type = line.split(":", 1)[1].strip()
            elif line.startswith("data:"):
                event_data = line.split(":", 1)[1].strip()
        if event_type and event_data:
            events.append({"event": event_type, "data": json.loads(event_data)})
    return events
