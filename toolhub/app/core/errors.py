"""Tool error taxonomy."""
from typing import Any


class ToolError(Exception):
    """Base class for every error raised while resolving or invoking a tool."""

    code = "TOOL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        return type(self).__name__


class ToolNotFound(ToolError):
    """The name is unknown to the definition store, the local registry or the endpoint table."""

    code = "TOOL_NOT_FOUND"

    def __init__(self, tool_name: str, reason: str = "undefined", message: str | None = None) -> None:
        self.tool_name = tool_name
        self.reason = reason
        if message is None:
            if reason == "not_registered":
                message = f"Tool is not registered in the local registry: {tool_name}"
            elif reason == "endpoint_missing":
                message = f"Remote tool has no live endpoint: {tool_name}"
            else:
                message = f"Tool does not exist: {tool_name}"
        super().__init__(message)


class ToolDisabled(ToolError):
    code = "TOOL_DISABLED"

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool is disabled: {tool_name}")


class MissingRequiredParameter(ToolError):
    code = "MISSING_PARAMETER"

    def __init__(self, param_name: str, position: int) -> None:
        self.param_name = param_name
        self.position = position
        super().__init__(f"Missing required parameter: {param_name} (position: {position})")


class TypeCoercionFailure(ToolError):
    code = "TYPE_COERCION_FAILED"

    def __init__(self, param_name: str, target_type: type, value: Any) -> None:
        self.param_name = param_name
        self.target_type = target_type
        self.value = value
        super().__init__(
            f"Cannot convert {value!r} to {getattr(target_type, '__name__', target_type)} "
            f"for parameter {param_name}"
        )


class UnsupportedTransport(ToolError):
    code = "UNSUPPORTED_TRANSPORT"

    def __init__(self, transport: str, known: bool = False) -> None:
        self.transport = transport
        if known:
            super().__init__(f"Transport type {transport} is recognized but not supported")
        else:
            super().__init__(f"Unsupported transport type: {transport}")


class RemoteUnavailable(ToolError):
    code = "REMOTE_UNAVAILABLE"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RemoteProtocolError(ToolError):
    code = "REMOTE_PROTOCOL_ERROR"


class RegistrationFailure(ToolError):
    code = "REGISTRATION_FAILED"
