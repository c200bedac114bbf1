from .errors import (
    MissingRequiredParameter,
    RegistrationFailure,
    RemoteProtocolError,
    RemoteUnavailable,
    ToolDisabled,
    ToolError,
    ToolNotFound,
    TypeCoercionFailure,
    UnsupportedTransport,
)
from .logging import request_id_var, setup_logging

__all__ = [
    "MissingRequiredParameter",
    "RegistrationFailure",
    "RemoteProtocolError",
    "RemoteUnavailable",
    "ToolDisabled",
    "ToolError",
    "ToolNotFound",
    "TypeCoercionFailure",
    "UnsupportedTransport",
    "request_id_var",
    "setup_logging",
]
