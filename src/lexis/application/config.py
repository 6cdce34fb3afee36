from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lexis.domain.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_KEY_DEBOUNCE_MS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    REQUEST_TIMEOUT,
)

CONFIG_FILES = [
    Path(".config/lexis/config.toml"),
    Path(".lexis.toml"),
]


class AppConfig(BaseSettings):
    """
    Configuration model for lexis.
    Supports loading from:
    1. Environment variables (LEXIS_*)
    2. Config file (~/.config/lexis/config.toml or ~/.lexis.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXIS_",
        extra="ignore",
    )

    # Catalog
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = REQUEST_TIMEOUT

    # Listing
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    # Review
    key_debounce_ms: int = Field(default=DEFAULT_KEY_DEBOUNCE_MS, ge=0)
    track_response_time: bool = False

    # Server
    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = DEFAULT_SERVER_PORT

    # Logging
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/lexis/logs")
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

        toml_file = find_config_file()
        # Earlier sources win: CLI overrides > env > file.
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("api_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> str:
        return str(v).rstrip("/")

    @field_validator("log_dir", mode="before")
    @classmethod
    def resolve_log_dir(cls, v: Any) -> Path:
        return Path(v).expanduser()

    @property
    def key_debounce(self) -> float:
        return self.key_debounce_ms / 1000.0


def find_config_file() -> Path | None:
    """Return the first existing config file under the user's home directory."""
    for rel in CONFIG_FILES:
        candidate = Path.home() / rel
        if candidate.exists():
            return candidate
    return None


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
