"""AI-assisted structured field extractor."""

import json
from pathlib import Path

from referral_ocr.extraction.base import BaseFieldExtractor
from referral_ocr.extraction.client_base import BaseExtractionClient
from referral_ocr.extraction.exceptions import ExtractionError
from referral_ocr.extraction.models import ExtractionOutcome
from referral_ocr.extraction.prompt_loader import load_json_schema, load_prompt_template
from referral_ocr.extraction.validator import validate_and_build
from referral_ocr.logging.logger import Log

DEFAULT_SYSTEM_PROMPT = (
    "You extract structured data from OCR text of medical referral letters. "
    "Answer with JSON only."
)


class FieldExtractor(BaseFieldExtractor):
    """Extracts patient and referral fields from OCR text using an AI provider.

    ``client=None`` means no backend is configured; every call then degrades
    with ``disabled_reason`` in the analysis string.
    """

    def __init__(
        self,
        *,
        client: BaseExtractionClient | None,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        disabled_reason: str = "no extraction backend configured",
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._disabled_reason = disabled_reason
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def extract(self, text: str) -> ExtractionOutcome:
        if self._client is None:
            Log.warning(f"Structured extraction disabled: {self._disabled_reason}")
            return ExtractionOutcome.degraded_result(
                f"Structured extraction disabled: {self._disabled_reason}"
            )
        if not text.strip():
            return ExtractionOutcome.degraded_result("Structured extraction skipped: no text")

        prompt = self._build_prompt(text)
        Log.debug(f"Extraction prompt:\n{prompt}")

        try:
            raw_response = self._call_ai(self._client, prompt)
        except ExtractionError as exc:
            Log.warning(f"Extraction backend unavailable: {exc}")
            return ExtractionOutcome.degraded_result(f"Extraction backend unavailable: {exc}")
        except Exception as exc:
            Log.exception(f"Unexpected extraction backend failure: {exc}")
            return ExtractionOutcome.degraded_result(f"Extraction backend unavailable: {exc}")
        Log.debug(f"AI raw response:\n{raw_response}")

        try:
            data = validate_and_build(self._parse_json(raw_response), raw_response=raw_response)
        except ExtractionError as exc:
            Log.warning(f"Unparseable extraction response: {exc}")
            return ExtractionOutcome.degraded_result(f"Unparseable extraction response: {exc}")

        Log.info(
            f"Extraction complete: {len(data.non_null_fields())} fields, "
            f"confidence {data.confidence:.2f}"
        )
        return ExtractionOutcome(data=data)

    def _build_prompt(self, text: str) -> str:
        return self._prompt_template.format(
            ocr_text=text,
            json_schema=self._json_schema,
        )

    def _call_ai(self, client: BaseExtractionClient, prompt: str) -> str:
        return client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            # Prose around the object: fall back to the outermost braces.
            start, end = cleaned.find("{"), cleaned.rfind("}")
            if start == -1 or end <= start:
                raise ExtractionError(f"Invalid JSON response: {exc}") from exc
            try:
                parsed = json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                raise ExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExtractionError("JSON response must be an object")
        return parsed
