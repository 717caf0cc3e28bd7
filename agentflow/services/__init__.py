from .reasoning import (
    ReasoningClient,
    OpenAIReasoningClient,
    ReasoningError,
    ReasoningTimeoutError,
    ReasoningResponseError,
    create_reasoning_client,
)
from .http_request import HttpCallResult, execute_http_request

__all__ = [
    # Reasoning
    "ReasoningClient",
    "OpenAIReasoningClient",
    "ReasoningError",
    "ReasoningTimeoutError",
    "ReasoningResponseError",
    "create_reasoning_client",

    # HTTP
    "HttpCallResult",
    "execute_http_request",
]
