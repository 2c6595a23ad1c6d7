"""SiliconFlow integration helpers."""

from __future__ import annotations


from .client import (
    API_KEY_ENV_VAR,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    EndpointError,
    SiliconFlowClient,
    SiliconFlowClientError,
    TransportError,
    Usage,
)


__all__ = [
    "API_KEY_ENV_VAR",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "EndpointError",
    "SiliconFlowClient",
    "SiliconFlowClientError",
    "TransportError",
    "Usage",
]
