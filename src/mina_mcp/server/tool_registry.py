"""
Tool Registry for the MCP Server

Tools describe their parameters once; the same description produces the
JSON Schema advertised by tools/list and the validation applied to every
tools/call. Invalid arguments are rejected before a handler (and therefore
any upstream request) runs.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from mina_mcp.common.logging import get_logger

logger = get_logger(__name__)


class ToolParameterType(str, Enum):
    """JSON Schema types a tool parameter may have."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"


def _is_integer(value: Any) -> bool:
    # bool is an int subclass but never a valid integer argument
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_CHECKS: Dict[ToolParameterType, Callable[[Any], bool]] = {
    ToolParameterType.STRING: lambda value: isinstance(value, str),
    ToolParameterType.INTEGER: _is_integer,
    ToolParameterType.NUMBER: _is_number,
    ToolParameterType.BOOLEAN: lambda value: isinstance(value, bool),
}


class ToolParameter(BaseModel):
    """One named argument of a tool."""

    name: str
    type: ToolParameterType
    description: str
    required: bool = False
    default: Optional[Any] = None
    enum: Optional[List[Any]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None

    def json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type.value, "description": self.description}
        for key in ("enum", "minimum", "maximum", "default"):
            value = getattr(self, key)
            if value is not None:
                schema[key] = value
        return schema

    def check(self, value: Any) -> Optional[str]:
        """Return why ``value`` is unacceptable, or None when it is fine."""
        # An explicit null on an optional parameter means "use the default"
        if value is None:
            return "is required but got null" if self.required else None

        if not _TYPE_CHECKS[self.type](value):
            return f"expected {self.type.value}, got {type(value).__name__}"

        if self.minimum is not None and value < self.minimum:
            return f"must be >= {self.minimum}"
        if self.maximum is not None and value > self.maximum:
            return f"must be <= {self.maximum}"
        if self.enum is not None and value not in self.enum:
            return f"must be one of {self.enum}, got {value}"

        return None


class Tool(BaseModel):
    """MCP tool definition."""

    name: str
    description: str
    parameters: List[ToolParameter] = Field(default_factory=list)

    def input_schema(self) -> Dict[str, Any]:
        """JSON Schema object advertised as the tool's inputSchema."""
        return {
            "type": "object",
            "properties": {param.name: param.json_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
        }

    def validate_arguments(self, arguments: Dict[str, Any]) -> Optional[str]:
        """Return the first validation error, or None when the arguments are valid."""
        for param in self.parameters:
            if param.required and param.name not in arguments:
                return f"Required parameter '{param.name}' is missing"

        params = {param.name: param for param in self.parameters}
        for name, value in arguments.items():
            if name not in params:
                return f"Unknown parameter '{name}'"
            problem = params[name].check(value)
            if problem:
                return f"Parameter '{name}': {problem}"

        return None


@dataclass
class ToolExecution:
    """Result of tool execution."""

    success: bool
    result: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    execution_time_ms: Optional[float] = None


class ToolHandler(ABC):
    """Abstract base class for tool handlers."""

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Execute the tool with already validated arguments."""

    @abstractmethod
    def get_tool_definition(self) -> Tool:
        """Get the tool definition for this handler."""


class ToolRegistry:
    """Registered tools and their handlers, keyed by tool name."""

    def __init__(self):
        self.tools: Dict[str, Tool] = {}
        self.handlers: Dict[str, ToolHandler] = {}

    def register_tool_handler(self, handler: ToolHandler) -> None:
        """Register a handler under the name of the tool it defines."""
        tool = handler.get_tool_definition()
        self.tools[tool.name] = tool
        self.handlers[tool.name] = handler

        logger.info(
            event="tool_handler_registered",
            tool_name=tool.name,
            parameters_count=len(tool.parameters),
            handler_type=type(handler).__name__,
        )

    def list_tools(self) -> List[Tool]:
        """Registered tools in registration order."""
        return list(self.tools.values())

    async def execute_tool(self, tool_name: str, arguments: Dict[str, Any]) -> ToolExecution:
        """
        Validate arguments and run the tool's handler.

        Args:
            tool_name: Name of the tool to execute
            arguments: Arguments from the tools/call request

        Returns:
            ToolExecution; unknown tools, invalid arguments and handler
            exceptions all come back with ``success=False``
        """
        tool = self.tools.get(tool_name)
        if tool is None:
            return ToolExecution(
                success=False,
                error=f"Tool '{tool_name}' not found. Available tools: {list(self.tools)}",
            )

        validation_error = tool.validate_arguments(arguments)
        if validation_error:
            logger.warning(
                event="tool_arguments_rejected", tool_name=tool_name, error=validation_error
            )
            return ToolExecution(
                success=False, error=f"Argument validation failed: {validation_error}"
            )

        start_time = time.perf_counter()
        try:
            result = await self.handlers[tool_name].execute(arguments)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                event="tool_execution_error",
                tool_name=tool_name,
                error=str(e),
                execution_time_ms=round(elapsed_ms, 2),
            )
            return ToolExecution(success=False, error=str(e), execution_time_ms=elapsed_ms)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            event="tool_executed",
            tool_name=tool_name,
            execution_time_ms=round(elapsed_ms, 2),
        )
        return ToolExecution(success=True, result=result, execution_time_ms=elapsed_ms)
