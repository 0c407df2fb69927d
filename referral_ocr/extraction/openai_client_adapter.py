import json
from typing import Any

import httpx
import openai

from referral_ocr.extraction.client_base import BaseExtractionClient
from referral_ocr.extraction.exceptions import ExtractionError, ExtractionNetworkError
from referral_ocr.logging.logger import Log

SCHEMA_NAME = "referral_extraction"
MAX_COMPLETION_TOKENS = 1024


class OpenAIClientAdapter(BaseExtractionClient):
    """Chat completions client for OpenAI and OpenAI-compatible gateways.

    With ``strict_schema`` off the schema travels inside the system prompt
    and the provider is only asked for a JSON object. Local gateways such as
    Ollama reject the strict ``json_schema`` response format.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
        strict_schema: bool = True,
        max_retries: int = 1,
    ) -> None:
        self._strict_schema = strict_schema
        self._client = openai.OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=max_retries,
        )

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        if self._strict_schema:
            response_format: dict[str, Any] = {
                "type": "json_schema",
                "json_schema": {"name": SCHEMA_NAME, "strict": True, "schema": json_schema},
            }
        else:
            response_format = {"type": "json_object"}
            system_prompt = (
                f"{system_prompt}\n\nReply with one JSON object matching this schema:\n"
                f"{json.dumps(json_schema)}"
            )

        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=MAX_COMPLETION_TOKENS,
                response_format=response_format,  # type: ignore[arg-type]
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(f"Extraction backend unreachable: {exc}") from exc
        except openai.APIError as exc:
            raise ExtractionNetworkError(f"Extraction backend rejected the request: {exc}") from exc

        if not response.choices:
            raise ExtractionError("Extraction backend returned no choices")
        choice = response.choices[0]
        if choice.finish_reason == "length":
            Log.warning(f"Extraction response from {model} hit the token limit")
        content = choice.message.content
        if content is None or not content.strip():
            raise ExtractionError("Extraction backend returned an empty response")
        return content
