"""LLM-backed extraction of person records from a paragraph batch."""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Protocol, Sequence

from src.integrations.siliconflow import ChatCompletionResponse, SiliconFlowClient, SiliconFlowClientError

from . import ExtractionRecord
from .activity import ActivityLog
from .config import RunConfig
from .prompts import RESPONSE_DATA_FIELD, build_extraction_prompt

logger = logging.getLogger(__name__)

# One initial attempt plus two recovery attempts on unparseable output.
MAX_ATTEMPTS = 3

JSON_RESPONSE_FORMAT = {"type": "json_object"}


class ExtractionError(RuntimeError):
    """Raised when a batch cannot be extracted."""


class MalformedResponseError(ExtractionError):
    """Raised when the model keeps answering with content that is not JSON."""

    def __init__(self, message: str, *, attempts: int, content: str | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.content = content


class ChatCompleter(Protocol):
    def chat_completion(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        response_format: Mapping[str, Any] | None = None,
    ) -> ChatCompletionResponse:
        ...


class ExtractionClient:
    """Turns a batch of paragraphs into person records using a chat model."""

    def __init__(
        self,
        client: ChatCompleter,
        *,
        activity: ActivityLog | None = None,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.activity = activity
        self.max_attempts = max_attempts

    @classmethod
    def from_config(cls, config: RunConfig, *, activity: ActivityLog | None = None) -> "ExtractionClient":
        """Build a client talking to the endpoint named in ``config``."""

        try:
            chat_client = SiliconFlowClient(
                api_key=config.api_key,
                api_url=config.api_url,
                model=config.model,
                temperature=config.temperature,
                timeout=config.timeout,
            )
        except SiliconFlowClientError as exc:
            raise ExtractionError(str(exc)) from exc
        return cls(chat_client, activity=activity)

    def extract(self, paragraphs: Sequence[str], config: RunConfig) -> list[ExtractionRecord]:
        """Extract person records from ``paragraphs``.

        Unparseable model output is retried up to ``max_attempts`` calls in
        total; transport and endpoint failures are not retried.

        Raises:
            ExtractionError: If the endpoint call fails.
            MalformedResponseError: If every attempt returned invalid JSON.
        """
        prompt = build_extraction_prompt(paragraphs, config.extraction_fields, config.examples)
        messages = [{"role": "user", "content": prompt}]

        content: str | None = None
        last_error: json.JSONDecodeError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.client.chat_completion(
                    messages,
                    model=config.model,
                    temperature=config.temperature,
                    response_format=JSON_RESPONSE_FORMAT,
                )
            except SiliconFlowClientError as exc:
                raise ExtractionError(str(exc)) from exc

            content = response.content
            if content is None:
                raise ExtractionError("No response from LLM")
            if not isinstance(content, str):
                raise ExtractionError(f"Model response content is not text: {type(content).__name__}")

            try:
                payload = json.loads(_strip_code_fence(content))
            except json.JSONDecodeError as exc:
                logger.debug("Attempt %d returned invalid JSON: %s", attempt, exc)
                last_error = exc
                if attempt < self.max_attempts:
                    self._warn(
                        f"Malformed JSON in model response, recovery attempt {attempt} "
                        f"of {self.max_attempts - 1}..."
                    )
                continue

            return _records_from_payload(payload, config.extraction_fields)

        raise MalformedResponseError(
            f"Model response is not valid JSON after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            content=content,
        ) from last_error

    def _warn(self, message: str) -> None:
        if self.activity is not None:
            self.activity.warning(message)
        else:
            logger.warning(message)


def _records_from_payload(payload: Any, extraction_fields: Sequence[str]) -> list[ExtractionRecord]:
    if not isinstance(payload, Mapping):
        return []
    items = payload.get(RESPONSE_DATA_FIELD)
    if not isinstance(items, list):
        return []

    records: list[ExtractionRecord] = []
    for item in items:
        if not isinstance(item, Mapping):
            logger.debug("Dropping non-object record: %r", item)
            continue
        records.append(ExtractionRecord.from_payload(item, extraction_fields))
    return records


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


__all__ = [
    "ExtractionClient",
    "ExtractionError",
    "MalformedResponseError",
    "MAX_ATTEMPTS",
]
