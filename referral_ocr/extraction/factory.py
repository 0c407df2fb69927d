from typing import ClassVar

from referral_ocr.config.settings import Settings
from referral_ocr.extraction.base import BaseFieldExtractor
from referral_ocr.extraction.example_client_adapter import ExampleClientAdapter
from referral_ocr.extraction.extractor import FieldExtractor
from referral_ocr.extraction.openai_client_adapter import OpenAIClientAdapter


class ExtractorFactory:
    """Creates the configured structured field extractor.

    A provider without an API key or model name yields a disabled extractor,
    which degrades every call instead of failing at startup.
    """

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    DISABLED_PROVIDERS: ClassVar[frozenset[str]] = frozenset({"", "none", "disabled"})

    # Gateways that accept json_object but not a strict json_schema.
    JSON_OBJECT_PROVIDERS: ClassVar[frozenset[str]] = frozenset({"ollama", "deepseek"})

    @classmethod
    def create(cls, settings: Settings) -> BaseFieldExtractor:
        provider = settings.extraction_provider.strip().lower()
        if provider in cls.DISABLED_PROVIDERS:
            return FieldExtractor(
                client=None,
                model="",
                disabled_reason="extraction provider is disabled",
            )
        if provider == "example":
            return FieldExtractor(client=ExampleClientAdapter(), model="example")

        base_url = cls._resolve_base_url(provider, settings)
        api_key = cls._resolve_api_key(provider, settings)
        model = cls._resolve_model_name(provider, settings)
        if not api_key:
            return FieldExtractor(
                client=None,
                model=model,
                disabled_reason=f"no API key configured for provider '{provider}'",
            )
        if not model:
            return FieldExtractor(
                client=None,
                model=model,
                disabled_reason=f"no model configured for provider '{provider}'",
            )

        client = OpenAIClientAdapter(
            api_key=api_key,
            timeout_seconds=cls._resolve_timeout_seconds(provider, settings),
            base_url=base_url,
            strict_schema=provider not in cls.JSON_OBJECT_PROVIDERS,
        )
        return FieldExtractor(
            client=client,
            model=model,
            temperature=settings.extraction_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = settings.extraction_openai_compatible_base_url.strip()
            if not url:
                raise ValueError(
                    "extraction_openai_compatible_base_url is required for "
                    "extraction_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "disabled",
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.extraction_openai_api_key,
            "openai_compatible": settings.extraction_openai_compatible_api_key,
            "openrouter": settings.extraction_openrouter_api_key,
            "groq": settings.extraction_groq_api_key,
            "together": settings.extraction_together_api_key,
            "deepseek": settings.extraction_deepseek_api_key,
            "ollama": settings.extraction_ollama_api_key,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.extraction_openai_model_name,
            "openai_compatible": settings.extraction_openai_compatible_model_name,
            "openrouter": settings.extraction_openrouter_model_name,
            "groq": settings.extraction_groq_model_name,
            "together": settings.extraction_together_model_name,
            "deepseek": settings.extraction_deepseek_model_name,
            "ollama": settings.extraction_ollama_model_name,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_timeout_seconds(cls, provider: str, settings: Settings) -> int:
        if provider == "openai_compatible":
            return settings.extraction_openai_compatible_timeout_seconds or 30
        return settings.extraction_openai_timeout_seconds or 30
