"""Centralized configuration: Pydantic BaseSettings with env + TOML sources.

Every host-environment default davy needs (image tag, Dockerfile, socket
path, auth volume name, SSH key file) is read once into :class:`Settings`
and passed explicitly into the resolver, planner and composer.

Priority (highest wins): init args > env vars > ~/.config/davy/config.toml

Usage::

    from davy.config import get_settings

    s = get_settings()
    print(s.image)
    print(s.claude_auth_volume_name)
"""

from __future__ import annotations

import os
from functools import cached_property
from pathlib import Path

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from davy.errors import ConfigurationError
from davy.volume import default_volume_name

DEFAULT_IMAGE = "davy-sandbox:latest"
DEFAULT_RUNTIME = "docker"
CONFIG_DIR = Path.home() / ".config" / "davy"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DAVY_",
        toml_file=CONFIG_DIR / "config.toml",
        extra="ignore",
        populate_by_name=True,
    )

    image: str = DEFAULT_IMAGE
    dockerfile: Path | None = None
    docker_sock: Path | None = None
    claude_auth_volume: str | None = None  # None → davy-claude-auth-<uid>-v1
    ssh_authorized_keys_file: Path | None = None  # None → ~/.ssh discovery
    runtime: str = DEFAULT_RUNTIME  # container CLI binary, e.g. "podman"
    # Docker's own variable, not DAVY_-prefixed
    docker_host: str | None = Field(default=None, validation_alias="DOCKER_HOST")

    @field_validator(
        "dockerfile",
        "docker_sock",
        "claude_auth_volume",
        "ssh_authorized_keys_file",
        "docker_host",
        mode="before",
    )
    @classmethod
    def empty_as_unset(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("image", "runtime")
    @classmethod
    def require_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init > env vars > config.toml > file secrets."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    # --- Computed properties ---

    @cached_property
    def home_dir(self) -> Path:
        return Path.home()

    @cached_property
    def config_dir(self) -> Path:
        """Where the default rocky/debian Dockerfiles live."""
        return self.home_dir / ".config" / "davy"

    @cached_property
    def host_uid(self) -> int:
        return os.getuid()

    @cached_property
    def host_gid(self) -> int:
        return os.getgid()

    @cached_property
    def claude_auth_volume_name(self) -> str:
        if self.claude_auth_volume:
            return self.claude_auth_volume
        return default_volume_name(self.host_uid)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Settings | None = None


def get_settings() -> Settings:
    """Lazy cached singleton."""
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except PydanticValidationError as exc:
            raise ConfigurationError(f"invalid configuration:\n{exc}") from exc
    return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for tests)."""
    global _settings
    _settings = None
