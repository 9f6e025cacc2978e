from __future__ import annotations

import json
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import model_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from genie_console.exceptions import ConfigurationError

_INSTRUCTIONS_DIR = Path(__file__).parent / "instructions"

# Key names used by appsettings.json files of the .NET console.
LEGACY_KEYS = {
    "SpaceId": "space_id",
    "AuthToken": "auth_token",
    "BaseAddress": "base_address",
    "PollingDelayMilliseconds": "polling_delay_milliseconds",
    "AgenModelName": "agent_model_name",
    "AgentName": "agent_name",
}


def get_config() -> Config:
    return Config()


class Config(BaseSettings):
    space_id: str | None = None
    auth_token: str | None = None
    base_address: str | None = None

    polling_delay_milliseconds: int = 5000
    polling_max_attempts: int | None = 120
    polling_timeout_seconds: float | None = 600.0
    polling_max_unknown_statuses: int = 3
    http_timeout_seconds: float = 30.0

    agent_model_name: str | None = None
    agent_name: str = "myAgent"
    agent_endpoint: str | None = None
    agent_api_key: str | None = None
    agent_api_version: str | None = None

    agent_instructions_path: str = (_INSTRUCTIONS_DIR / "agent_instructions.txt").as_posix()
    tool_instructions_path: str = (_INSTRUCTIONS_DIR / "ask_genie_instructions.txt").as_posix()

    image_dir: str = Path.cwd().expanduser().resolve().absolute().as_posix()
    image_pattern: str = "*.png"

    model_config = SettingsConfigDict(
        env_prefix="genie_console_",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        json_file="appsettings.json",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls),
            dotenv_settings,
            file_secret_settings,
        )

    @model_validator(mode="before")
    @classmethod
    def rename_legacy_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for legacy, name in LEGACY_KEYS.items():
            if legacy in data:
                value = data.pop(legacy)
                data.setdefault(name, value)
        return data

    @classmethod
    def from_json(cls, config_path: PathLike | str) -> Config:
        return cls(**json.loads(Path(config_path).read_text()))

    @property
    def polling_interval(self) -> float:
        return self.polling_delay_milliseconds / 1000

    def require(self, *names: str) -> None:
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ConfigurationError(missing)
