"""Tests for the SiliconFlow chat-completion client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from src.integrations.siliconflow.client import (
    ChatCompletionResponse,
    EndpointError,
    SiliconFlowClient,
    SiliconFlowClientError,
    TransportError,
)


def _ok_response(payload: dict) -> MagicMock:
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = payload
    return response


def _error_response(status: int, payload: object = None) -> MagicMock:
    response = MagicMock()
    response.ok = False
    response.status_code = status
    if payload is None:
        response.json.side_effect = ValueError("no body")
    else:
        response.json.return_value = payload
    return response


def test_client_requires_api_key():
    """SiliconFlowClient raises error if no API key is provided."""
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(SiliconFlowClientError, match="API key required"):
            SiliconFlowClient()


def test_client_uses_env_key():
    with patch.dict("os.environ", {"SILICONFLOW_API_KEY": "env-key"}, clear=True):
        client = SiliconFlowClient()
        assert client.api_key == "env-key"


def test_client_defaults():
    client = SiliconFlowClient(api_key="test")
    assert client.api_url == "https://api.siliconflow.cn/v1"
    assert client.model == "Qwen/Qwen2.5-32B-Instruct"
    assert client.temperature == 0.1
    assert client.timeout == 120


def test_client_keeps_zero_temperature():
    client = SiliconFlowClient(api_key="test", temperature=0.0)
    assert client.temperature == 0.0


def test_chat_completion_sends_openai_compatible_payload():
    mock_payload = {
        "id": "chatcmpl-123",
        "model": "Qwen/Qwen2.5-32B-Instruct",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": '{"data": []}'},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 4, "total_tokens": 14},
    }

    with patch("requests.post") as mock_post:
        mock_post.return_value = _ok_response(mock_payload)

        client = SiliconFlowClient(api_key="secret", api_url="https://example.test/v1/")
        response = client.chat_completion(
            [{"role": "user", "content": "Hello"}],
            temperature=0.0,
            response_format={"type": "json_object"},
        )

    assert isinstance(response, ChatCompletionResponse)
    assert response.content == '{"data": []}'
    assert response.usage is not None
    assert response.usage.total_tokens == 14

    args, kwargs = mock_post.call_args
    assert args[0] == "https://example.test/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["json"] == {
        "model": "Qwen/Qwen2.5-32B-Instruct",
        "messages": [{"role": "user", "content": "Hello"}],
        "temperature": 0.0,
        "response_format": {"type": "json_object"},
    }
    assert kwargs["timeout"] == 120


def test_chat_completion_omits_response_format_by_default():
    with patch("requests.post") as mock_post:
        mock_post.return_value = _ok_response({"choices": []})
        client = SiliconFlowClient(api_key="test")
        response = client.chat_completion([{"role": "user", "content": "Hi"}])

    assert "response_format" not in mock_post.call_args.kwargs["json"]
    assert response.content is None


def test_chat_completion_uses_endpoint_error_message():
    with patch("requests.post") as mock_post:
        mock_post.return_value = _error_response(401, {"error": {"message": "Invalid token"}})
        client = SiliconFlowClient(api_key="bad")

        with pytest.raises(EndpointError, match="Invalid token") as excinfo:
            client.chat_completion([{"role": "user", "content": "Hi"}])

    assert excinfo.value.status_code == 401


def test_chat_completion_falls_back_to_status_code():
    with patch("requests.post") as mock_post:
        mock_post.return_value = _error_response(503)
        client = SiliconFlowClient(api_key="test")

        with pytest.raises(EndpointError, match="API HTTP 503"):
            client.chat_completion([{"role": "user", "content": "Hi"}])


def test_chat_completion_wraps_network_errors():
    with patch("requests.post", side_effect=requests.ConnectionError("refused")):
        client = SiliconFlowClient(api_key="test")

        with pytest.raises(TransportError, match="refused"):
            client.chat_completion([{"role": "user", "content": "Hi"}])


def test_chat_completion_rejects_non_json_body():
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.json.side_effect = ValueError("Expecting value")

    with patch("requests.post", return_value=response):
        client = SiliconFlowClient(api_key="test")
        with pytest.raises(EndpointError, match="Invalid JSON response"):
            client.chat_completion([{"role": "user", "content": "Hi"}])


def test_chat_completion_uses_session_when_given():
    session = MagicMock()
    session.post.return_value = _ok_response({"choices": [{"message": {"content": "{}"}}]})

    client = SiliconFlowClient(api_key="test", session=session)
    response = client.chat_completion([{"role": "user", "content": "Hi"}])

    assert response.content == "{}"
    session.post.assert_called_once()


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"choices": ["oops"]}, "choice must be a JSON object"),
        ({"choices": {"message": {}}}, "'choices' must be a list"),
        ({"choices": [{"message": "text"}]}, "message must be a JSON object"),
        (
            {"choices": [{"message": {"content": [{"type": "text", "text": "{}"}]}}]},
            "content must be a string, got list",
        ),
        ({"choices": [{"message": {"content": 42}}]}, "content must be a string, got int"),
        ({"choices": [], "usage": [1, 2, 3]}, "'usage' must be a JSON object"),
    ],
)
def test_chat_completion_rejects_malformed_success_body(payload, message):
    with patch("requests.post", return_value=_ok_response(payload)):
        client = SiliconFlowClient(api_key="test")

        with pytest.raises(EndpointError, match=message) as excinfo:
            client.chat_completion([{"role": "user", "content": "Hi"}])

    assert excinfo.value.status_code is None


def test_chat_completion_null_content_becomes_empty_string():
    with patch("requests.post", return_value=_ok_response({"choices": [{"message": {"content": None}}]})):
        response = SiliconFlowClient(api_key="test").chat_completion([{"role": "user", "content": "Hi"}])

    assert response.content == ""
