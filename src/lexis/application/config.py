from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lexis.domain.constants import INACTIVITY_THRESHOLD_SECONDS

CONFIG_FILES = [
    Path.home() / ".config/lexis/config.toml",
    Path.home() / ".lexis.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for lexis.
    Supports loading from:
    1. Environment variables (LEXIS_*)
    2. Config file (~/.config/lexis/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXIS_",
        extra="ignore",
    )

    # Storage
    store_backend: Literal["json", "http", "memory"] = "json"
    data_file: Path = Field(default_factory=lambda: Path.home() / ".config/lexis/vocab.json")
    store_url: str = "http://127.0.0.1:8080/kv"
    store_token: str | None = None

    # Review behaviour
    scheduler: Literal["basic", "adaptive"] = "adaptive"
    retry_on_mistake: bool = True
    retry_on_skip: bool = False
    inactivity_threshold_seconds: float = INACTIVITY_THRESHOLD_SECONDS
    session_limit: int | None = None

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_file", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("inactivity_threshold_seconds")
    @classmethod
    def positive_threshold(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("inactivity_threshold_seconds must be positive")
        return v

    @field_validator("session_limit")
    @classmethod
    def positive_limit(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("session_limit must be positive")
        return v


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lexis/config.toml (if exists)
    3. Environment variables (LEXIS_*)
    4. cli_overrides (passed from Typer); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
