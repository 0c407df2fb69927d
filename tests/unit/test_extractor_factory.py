from unittest.mock import patch

import pytest

from referral_ocr.config.settings import Settings
from referral_ocr.extraction.example_client_adapter import ExampleClientAdapter
from referral_ocr.extraction.extractor import FieldExtractor
from referral_ocr.extraction.factory import ExtractorFactory


def _settings(**overrides: object) -> Settings:
    return Settings(**overrides)  # type: ignore[arg-type]


class TestExtractorFactory:
    def test_disabled_provider(self) -> None:
        extractor = ExtractorFactory.create(_settings(extraction_provider="disabled"))

        assert isinstance(extractor, FieldExtractor)
        assert extractor.enabled is False

    def test_example_provider_is_offline(self) -> None:
        extractor = ExtractorFactory.create(_settings(extraction_provider="example"))

        assert isinstance(extractor, FieldExtractor)
        assert isinstance(extractor._client, ExampleClientAdapter)

    def test_openai_without_key_is_disabled(self) -> None:
        extractor = ExtractorFactory.create(
            _settings(extraction_provider="openai", extraction_openai_api_key="")
        )

        outcome = extractor.extract("Dear Dr. Smith")

        assert outcome.degraded is True
        assert "no API key configured for provider 'openai'" in outcome.data.raw_analysis

    def test_openai_with_key(self) -> None:
        with patch("referral_ocr.extraction.factory.OpenAIClientAdapter") as mock_adapter:
            extractor = ExtractorFactory.create(
                _settings(extraction_provider="openai", extraction_openai_api_key="sk-test")
            )

        assert isinstance(extractor, FieldExtractor)
        assert extractor.enabled is True
        assert mock_adapter.call_args.kwargs["base_url"] is None
        assert mock_adapter.call_args.kwargs["api_key"] == "sk-test"

    def test_groq_uses_known_base_url(self) -> None:
        with patch("referral_ocr.extraction.factory.OpenAIClientAdapter") as mock_adapter:
            ExtractorFactory.create(
                _settings(
                    extraction_provider="groq",
                    extraction_groq_api_key="gsk",
                    extraction_groq_model_name="llama-3.1-8b-instant",
                )
            )

        assert mock_adapter.call_args.kwargs["base_url"] == "https://api.groq.com/openai/v1"

    def test_provider_without_model_is_disabled(self) -> None:
        extractor = ExtractorFactory.create(
            _settings(extraction_provider="deepseek", extraction_deepseek_api_key="k")
        )

        assert isinstance(extractor, FieldExtractor)
        assert extractor.enabled is False

    def test_openai_compatible_requires_base_url(self) -> None:
        with pytest.raises(ValueError, match="base_url is required"):
            ExtractorFactory.create(_settings(extraction_provider="openai_compatible"))

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown extraction provider"):
            ExtractorFactory.create(_settings(extraction_provider="watson"))

    def test_ollama_uses_json_object_mode(self) -> None:
        with patch("referral_ocr.extraction.factory.OpenAIClientAdapter") as mock_adapter:
            ExtractorFactory.create(
                _settings(extraction_provider="ollama", extraction_ollama_model_name="llama3.1")
            )

        assert mock_adapter.call_args.kwargs["strict_schema"] is False
        assert mock_adapter.call_args.kwargs["base_url"] == "http://localhost:11434/v1"
