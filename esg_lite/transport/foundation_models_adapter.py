import json
from typing import Any

import httpx
import openai

from esg_lite.transport.client_base import BaseAnalysisClient
from esg_lite.transport.exceptions import TransportAnalysisError, TransportAnalysisNetworkError


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a model answer, tolerating a surrounding Markdown code fence."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise TransportAnalysisError(f"Invalid JSON response: {exc}") from exc

    if not isinstance(parsed, dict):
        raise TransportAnalysisError("JSON response must be an object")
    return parsed


class FoundationModelsClientAdapter(BaseAnalysisClient):
    """Client for OpenAI-compatible chat endpoints such as Cloud.ru Foundation Models."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: int,
        temperature: float = 0.1,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self._model = model
        self._temperature = temperature

    def complete_json(
        self,
        *,
        schema_name: str,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> dict[str, Any]:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise TransportAnalysisNetworkError(f"Foundation Models network error: {exc}") from exc
        except openai.APIError as exc:
            raise TransportAnalysisNetworkError(f"Foundation Models API error: {exc}") from exc

        if not response.choices:
            raise TransportAnalysisError("Model returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise TransportAnalysisError("Model returned empty response")
        return parse_json_object(content)
