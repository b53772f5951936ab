"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    db_path: Path = Field(
        default=Path("state/learnfeed.sqlite"), validation_alias="LEARNFEED_DB_PATH"
    )
    engine_config_path: Path | None = Field(
        default=None, validation_alias="LEARNFEED_ENGINE_CONFIG"
    )
    redis_url: str | None = Field(default=None, validation_alias="REDIS_URL")
    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    llm_provider: Literal["auto", "gemini", "openai"] = Field(
        default="auto", validation_alias="LLM_PROVIDER"
    )
    llm_openai_split: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.0, validation_alias="LLM_OPENAI_SPLIT"
    )
    llm_selection_seed: int | None = Field(
        default=None, validation_alias="LLM_SELECTION_SEED"
    )
    enrichment_timeout_seconds: Annotated[float, Field(gt=0.0)] | None = Field(
        default=None, validation_alias="ENRICHMENT_TIMEOUT_SECONDS"
    )

    def llm_api_keys(self) -> dict[str, str]:
        """Return configured summarization provider keys by provider name."""
        keys = {
            "gemini": self.gemini_api_key,
            "openai": self.openai_api_key,
        }
        return {name: key for name, key in keys.items() if key}


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
