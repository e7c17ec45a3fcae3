"""Functions (tools) that can be exposed to a language model.

An AgentFunction pairs a name and description with a pydantic model that
describes its arguments. The pydantic model provides both the JSON schema sent
to the model and the validation applied before the handler is invoked.
"""

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel

logger = logging.getLogger(__name__)

FunctionHandler = Callable[[Any], Any] | Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class FunctionDefinition:
    """The definition of a function as advertised to the model."""

    name: str
    description: str
    parameters: dict[str, Any]

    def to_ollama_tool(self) -> dict[str, Any]:
        """Convert to the Ollama/OpenAI tool schema format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def serialize_output(output: Any) -> str:
    """Serialize a function's return value for a tool message.

    Strings are passed through, pydantic models are dumped to JSON, and
    anything else is encoded with ``json.dumps``.
    """
    if isinstance(output, str):
        return output
    if isinstance(output, BaseModel):
        return output.model_dump_json()
    return json.dumps(output, ensure_ascii=False, default=str)


class AgentFunction:
    """A function the model may call.

    Attributes:
        name: Unique function name exposed to the model
        description: Short description of what the function does
        parameters: Pydantic model describing the accepted arguments
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: type[BaseModel],
        handler: FunctionHandler,
    ) -> None:
        if not name:
            raise ValueError("Function name must not be empty")
        self.name = name
        self.description = description
        self.parameters = parameters
        self._handler = handler

    def __repr__(self) -> str:
        return f"AgentFunction(name={self.name!r})"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema()

    @property
    def definition(self) -> FunctionDefinition:
        return FunctionDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters_schema,
        )

    async def invoke(self, arguments: Mapping[str, Any]) -> str:
        """Validate raw arguments and invoke the handler.

        Args:
            arguments: Raw arguments emitted by the model

        Returns:
            The serialized output of the handler

        Raises:
            pydantic.ValidationError: If the arguments do not match the schema
            Exception: Anything raised by the handler
        """
        validated = self.parameters.model_validate(dict(arguments))
        logger.debug(f"Invoking function {self.name}")
        result = self._handler(validated)
        if inspect.isawaitable(result):
            result = await result
        return serialize_output(result)


def agent_function(
    name: str | None = None,
    description: str | None = None,
) -> Callable[[FunctionHandler], AgentFunction]:
    """Decorator that turns a handler into an AgentFunction.

    The handler must take a single parameter annotated with a pydantic model;
    that model defines the argument schema. The name defaults to the handler's
    name and the description to its docstring.

    Example:
        >>> class FactArgs(BaseModel):
        ...     topic: str
        >>> @agent_function()
        ... async def get_fact(args: FactArgs) -> str:
        ...     '''Return a fact about a topic.'''
        ...     return f"A fact about {args.topic}"
    """

    def decorator(handler: FunctionHandler) -> AgentFunction:
        signature = inspect.signature(handler)
        params = list(signature.parameters.values())
        if len(params) != 1:
            raise TypeError(
                f"Function handler {handler.__name__} must take exactly one argument"
            )
        annotation = params[0].annotation
        if isinstance(annotation, str):
            annotation = inspect.get_annotations(handler, eval_str=True)[params[0].name]
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            raise TypeError(
                f"Argument of {handler.__name__} must be annotated with a pydantic model"
            )
        return AgentFunction(
            name=name or handler.__name__,
            description=description or inspect.getdoc(handler) or "",
            parameters=annotation,
            handler=handler,
        )

    return decorator
