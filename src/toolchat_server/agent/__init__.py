"""Agent sessions: transcript, tool-call loop, parallel execution, streaming.

This package is independent of the HTTP layer. An AgentSession drives any
LanguageModel implementation; the Ollama backend lives in
``toolchat_server.ollama``.
"""

from toolchat_server.agent.errors import (
    AgentSessionError,
    AggregatedFunctionCallError,
    AlreadyRespondingError,
    InvalidSystemContentError,
    InvalidUserContentError,
    MissingFunctionError,
    SessionCancelledError,
    ToolIterationLimitError,
)
from toolchat_server.agent.executor import (
    FunctionCallDelegate,
    ParallelFunctionCallDelegate,
    SequentialFunctionCallDelegate,
    execute_parallel_function_calls,
    execute_sequential_function_calls,
)
from toolchat_server.agent.functions import (
    AgentFunction,
    FunctionDefinition,
    agent_function,
)
from toolchat_server.agent.model import (
    LanguageModel,
    ModelCompletion,
    StreamedToken,
)
from toolchat_server.agent.session import AgentSession
from toolchat_server.agent.stream import StreamHandle
from toolchat_server.agent.transcript import Transcript
from toolchat_server.agent.types import (
    CompletionEntry,
    CompletionMetrics,
    FunctionCall,
    FunctionReturn,
    FunctionThrow,
    ImagePart,
    InferenceOptions,
    Message,
    MessageRole,
    RawFunctionCall,
    ResolvedCompletion,
    SessionState,
    TextPart,
    TranscriptEntry,
    UserMessage,
)

__all__ = [
    # Core classes
    "AgentSession",
    "StreamHandle",
    "Transcript",
    # Functions
    "AgentFunction",
    "FunctionDefinition",
    "agent_function",
    "FunctionCallDelegate",
    "ParallelFunctionCallDelegate",
    "SequentialFunctionCallDelegate",
    "execute_parallel_function_calls",
    "execute_sequential_function_calls",
    # Model contract
    "LanguageModel",
    "ModelCompletion",
    "StreamedToken",
    # Data types
    "CompletionEntry",
    "CompletionMetrics",
    "FunctionCall",
    "FunctionReturn",
    "FunctionThrow",
    "ImagePart",
    "InferenceOptions",
    "Message",
    "MessageRole",
    "RawFunctionCall",
    "ResolvedCompletion",
    "SessionState",
    "TextPart",
    "TranscriptEntry",
    "UserMessage",
    # Errors
    "AgentSessionError",
    "AggregatedFunctionCallError",
    "AlreadyRespondingError",
    "InvalidSystemContentError",
    "InvalidUserContentError",
    "MissingFunctionError",
    "SessionCancelledError",
    "ToolIterationLimitError",
]
