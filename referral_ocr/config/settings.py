from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "referrals"
    db_username: str = "referrals"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    files_root: Path = Path("/app/uploads/referrals")

    pdf_engine: str = "pymupdf"
    pdf_render_scale: float = 2.0

    ocr_language: str = "eng"
    tesseract_cmd: str = ""

    max_concurrent_scans: int = 4
    scan_poll_interval_seconds: int = 5
    scan_stale_after_seconds: int = 900

    extraction_provider: str = "openai"
    extraction_temperature: float = 0.0
    heuristic_fallback_enabled: bool = False

    extraction_openai_api_key: str = ""
    extraction_openai_model_name: str = "gpt-4o-mini"
    extraction_openai_timeout_seconds: int = 30

    extraction_openai_compatible_base_url: str = ""
    extraction_openai_compatible_api_key: str = ""
    extraction_openai_compatible_model_name: str = ""
    extraction_openai_compatible_timeout_seconds: int = 30

    extraction_openrouter_api_key: str = ""
    extraction_openrouter_model_name: str = ""
    extraction_groq_api_key: str = ""
    extraction_groq_model_name: str = ""
    extraction_together_api_key: str = ""
    extraction_together_model_name: str = ""
    extraction_deepseek_api_key: str = ""
    extraction_deepseek_model_name: str = ""
    extraction_ollama_api_key: str = "ollama"
    extraction_ollama_model_name: str = ""

    @field_validator("pdf_render_scale")
    @classmethod
    def _check_render_scale(cls, value: float) -> float:
        if value < 2.0:
            raise ValueError("pdf_render_scale must be at least 2.0")
        return value

    @field_validator("max_concurrent_scans")
    @classmethod
    def _check_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_concurrent_scans must be positive")
        return value

    @field_validator("scan_stale_after_seconds")
    @classmethod
    def _check_stale_after(cls, value: int) -> int:
        if value < 60:
            raise ValueError("scan_stale_after_seconds must be at least 60")
        return value
