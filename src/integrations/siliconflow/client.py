"""SiliconFlow chat-completion client (OpenAI-compatible endpoint)."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import requests

API_KEY_ENV_VAR = "SILICONFLOW_API_KEY"


@dataclass(frozen=True)
class ChatMessage:
    """A message in a conversation."""

    role: str  # "system", "user" or "assistant"
    content: str


@dataclass(frozen=True)
class ChatCompletionResponse:
    """Response from a chat completion API call."""

    id: str
    model: str
    choices: tuple[Choice, ...]
    usage: Usage | None = None

    @property
    def content(self) -> str | None:
        """Content of the first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].message.content


@dataclass(frozen=True)
class Choice:
    """A single response choice."""

    index: int
    message: ChatMessage
    finish_reason: str | None = None


@dataclass(frozen=True)
class Usage:
    """Token usage information."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class SiliconFlowClientError(Exception):
    """Error communicating with the chat-completion endpoint."""


class TransportError(SiliconFlowClientError):
    """The request never produced an HTTP response (DNS, connection, timeout)."""


class EndpointError(SiliconFlowClientError):
    """The endpoint answered with a non-success status or an unreadable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SiliconFlowClient:
    """Client for the SiliconFlow chat-completion API.

    Any endpoint that implements the OpenAI ``/chat/completions`` contract can
    be targeted by passing ``api_url``.
    """

    DEFAULT_API_URL = "https://api.siliconflow.cn/v1"
    DEFAULT_MODEL = "Qwen/Qwen2.5-32B-Instruct"
    DEFAULT_TEMPERATURE = 0.1

    def __init__(
        self,
        *,
        api_key: str | None = None,
        api_url: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        timeout: int = 120,
        session: requests.Session | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Bearer credential. Defaults to the SILICONFLOW_API_KEY env var.
            api_url: Base URL for the API. Defaults to the SiliconFlow endpoint.
            model: Default model identifier.
            temperature: Default sampling temperature.
            timeout: Request timeout in seconds.
            session: Optional ``requests.Session`` reused across calls.
        """
        self.api_key = api_key or os.environ.get(API_KEY_ENV_VAR)
        if not self.api_key:
            raise SiliconFlowClientError(
                f"API key required. Set {API_KEY_ENV_VAR} or pass api_key parameter."
            )

        self.api_url = (api_url or self.DEFAULT_API_URL).rstrip("/")
        self.model = model or self.DEFAULT_MODEL
        self.temperature = self.DEFAULT_TEMPERATURE if temperature is None else temperature
        self.timeout = timeout
        self._session = session

    def chat_completion(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        response_format: Mapping[str, Any] | None = None,
    ) -> ChatCompletionResponse:
        """Create a chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model to use (overrides default).
            temperature: Sampling temperature (overrides default).
            response_format: Output constraint, e.g. ``{"type": "json_object"}``.

        Returns:
            ChatCompletionResponse with the model's response.

        Raises:
            TransportError: If no HTTP response was received.
            EndpointError: If the endpoint rejected the request.
        """
        url = f"{self.api_url}/chat/completions"

        payload: dict[str, Any] = {
            "model": model or self.model,
            "messages": list(messages),
            "temperature": self.temperature if temperature is None else temperature,
        }
        if response_format:
            payload["response_format"] = dict(response_format)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        post = self._session.post if self._session is not None else requests.post
        try:
            response = post(
                url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Chat completion request failed: {exc}") from exc

        if not response.ok:
            raise EndpointError(
                _describe_http_error(response),
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise EndpointError(
                f"Invalid JSON response: {exc}",
                status_code=response.status_code,
            ) from exc

        if not isinstance(data, Mapping):
            raise EndpointError(
                "Chat completion response must be a JSON object",
                status_code=response.status_code,
            )

        return self._parse_response(data)

    def _parse_response(self, data: Mapping[str, Any]) -> ChatCompletionResponse:
        """Parse API response into structured objects.

        Raises:
            EndpointError: If the body does not follow the chat-completion shape.
        """
        raw_choices = data.get("choices") or []
        if not isinstance(raw_choices, list):
            raise EndpointError("Chat completion 'choices' must be a list")

        choices = []
        for choice_data in raw_choices:
            if not isinstance(choice_data, Mapping):
                raise EndpointError("Chat completion choice must be a JSON object")
            message_data = choice_data.get("message") or {}
            if not isinstance(message_data, Mapping):
                raise EndpointError("Chat completion message must be a JSON object")
            content = message_data.get("content")
            if content is None:
                content = ""
            elif not isinstance(content, str):
                raise EndpointError(
                    f"Chat completion content must be a string, got {type(content).__name__}"
                )
            message = ChatMessage(
                role=message_data.get("role", "assistant"),
                content=content,
            )
            choices.append(
                Choice(
                    index=choice_data.get("index", 0),
                    message=message,
                    finish_reason=choice_data.get("finish_reason"),
                )
            )

        usage = None
        usage_data = data.get("usage")
        if usage_data:
            if not isinstance(usage_data, Mapping):
                raise EndpointError("Chat completion 'usage' must be a JSON object")
            usage = Usage(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0),
            )

        return ChatCompletionResponse(
            id=data.get("id", ""),
            model=data.get("model", ""),
            choices=tuple(choices),
            usage=usage,
        )


def _describe_http_error(response: requests.Response) -> str:
    """Prefer the endpoint's own error message over the bare status code."""
    try:
        error_data = response.json()
    except ValueError:
        error_data = None

    if isinstance(error_data, Mapping):
        error = error_data.get("error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if error_data.get("message"):
            return str(error_data["message"])

    return f"API HTTP {response.status_code}"
