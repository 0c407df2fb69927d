"""Tests for the AI-assisted FieldExtractor."""

import json
from unittest.mock import MagicMock

import pytest

from referral_ocr.database.models import FieldName
from referral_ocr.extraction.exceptions import ExtractionError, ExtractionNetworkError
from referral_ocr.extraction.extractor import FieldExtractor


def _make_extractor(client: MagicMock | None = None, **kwargs: object) -> FieldExtractor:
    if client is None:
        client = MagicMock()
    return FieldExtractor(client=client, model="test-model", **kwargs)


def _valid_json_response(**overrides: object) -> str:
    payload: dict[str, object] = {
        "patient": {
            "firstName": None,
            "lastName": None,
            "dateOfBirth": "1980-01-01",
            "phone": None,
            "gender": None,
        },
        "referral": {
            "referringPhysician": None,
            "referringFacility": None,
            "reasonForReferral": None,
        },
        "confidence": 0.6,
    }
    payload.update(overrides)
    return json.dumps(payload)


class TestExtractSuccess:
    def test_returns_fields_and_confidence(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = _valid_json_response()

        outcome = _make_extractor(client).extract("patient DOB 1980-01-01")

        assert outcome.degraded is False
        assert outcome.method == "ai"
        assert outcome.data.patient.date_of_birth == "1980-01-01"
        assert outcome.data.patient.last_name is None
        assert outcome.data.confidence == pytest.approx(0.6)
        assert outcome.data.non_null_fields() == [(FieldName.DATE_OF_BIRTH, "1980-01-01")]

    def test_keeps_raw_response_for_audit(self) -> None:
        client = MagicMock()
        raw = _valid_json_response()
        client.create_chat_completion.return_value = raw

        outcome = _make_extractor(client).extract("text")

        assert outcome.data.raw_analysis == raw

    def test_strips_code_fences(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = f"```json\n{_valid_json_response()}\n```"

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is False
        assert outcome.data.patient.date_of_birth == "1980-01-01"

    def test_finds_object_inside_prose(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = (
            f"Here is the data: {_valid_json_response()} Hope this helps."
        )

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is False

    def test_passes_text_into_prompt(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = _valid_json_response()

        _make_extractor(client).extract("Dear Dr. Smith")

        user_prompt = client.create_chat_completion.call_args.kwargs["user_prompt"]
        assert "Dear Dr. Smith" in user_prompt
        assert '"patient"' in user_prompt

    def test_calls_ai_with_model_and_schema(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = _valid_json_response()

        _make_extractor(client).extract("text")

        kwargs = client.create_chat_completion.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["json_schema"]["type"] == "object"

    def test_temperature_clamped_to_low_range(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = _valid_json_response()

        _make_extractor(client, temperature=0.9).extract("text")

        assert client.create_chat_completion.call_args.kwargs["temperature"] == 0.2


class TestExtractDegrades:
    def test_disabled_backend(self) -> None:
        extractor = FieldExtractor(client=None, model="", disabled_reason="no API key")

        outcome = extractor.extract("some text")

        assert extractor.enabled is False
        assert outcome.degraded is True
        assert outcome.data.confidence == 0.0
        assert outcome.data.non_null_fields() == []
        assert "no API key" in outcome.data.raw_analysis

    def test_network_error(self) -> None:
        client = MagicMock()
        client.create_chat_completion.side_effect = ExtractionNetworkError(
            "Extraction backend unreachable: refused"
        )

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is True
        assert outcome.data.confidence == 0.0
        assert outcome.data.raw_analysis.startswith("Extraction backend unavailable")

    def test_unexpected_client_error(self) -> None:
        client = MagicMock()
        client.create_chat_completion.side_effect = RuntimeError("socket closed")

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is True
        assert "socket closed" in outcome.data.raw_analysis

    def test_empty_response(self) -> None:
        client = MagicMock()
        client.create_chat_completion.side_effect = ExtractionError("Extraction backend returned an empty response")

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is True

    def test_invalid_json(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = "not json at all"

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is True
        assert outcome.data.raw_analysis.startswith("Unparseable extraction response")

    def test_json_array_is_unparseable(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = "[1, 2, 3]"

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is True

    def test_wrong_shape(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = json.dumps({"patient": "Jane"})

        outcome = _make_extractor(client).extract("text")

        assert outcome.degraded is True
        assert outcome.data.non_null_fields() == []

    def test_blank_text_skips_backend(self) -> None:
        client = MagicMock()

        outcome = _make_extractor(client).extract("   \n ")

        assert outcome.degraded is True
        client.create_chat_completion.assert_not_called()
