"""Configuration loader for server settings."""
import json
import logging
import os
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads and provides access to server configuration."""

    _instance = None
    _config_dir = "config"

    def __new__(cls):
        """Singleton pattern to ensure only one config loader."""
        if cls._instance is None:
            cls._instance = super(ConfigLoader, cls).__new__(cls)
            cls._instance._load_all_configs()
        return cls._instance

    @classmethod
    def reload(cls, config_dir: Optional[str] = None) -> "ConfigLoader":
        """Drop the cached instance and load again, optionally from a new directory."""
        if config_dir is not None:
            cls._config_dir = config_dir
        cls._instance = None
        return cls()

    def _load_all_configs(self):
        """Load all configuration files."""
        self.server_settings = self._load_json("server_settings.json")

    def _load_json(self, filename: str) -> Dict[str, Any]:
        """Load a JSON configuration file."""
        filepath = os.path.join(self._config_dir, filename)
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            logger.warning(f"Config file {filename} not found. Using defaults.")
            return {}
        except json.JSONDecodeError as e:
            logger.warning(f"Error parsing {filename}: {e}. Using defaults.")
            return {}

    def get(self, *keys, default=None):
        """Get a nested configuration value."""
        value = self.server_settings
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value


# Where each setting lives in server_settings.json
SETTING_PATHS: Dict[str, Tuple[str, ...]] = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "log_level": ("server", "log_level"),
    "outbound_queue_size": ("server", "outbound_queue_size"),
    "extended_commands": ("server", "extended_commands"),
    "initial_shot_clock_seconds": ("clock", "initial_seconds"),
    "keepalive_interval_seconds": ("clock", "keepalive_interval_seconds"),
}


class JsonFileSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by server_settings.json through ConfigLoader."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        value = ConfigLoader().get(*SETTING_PATHS[field_name], default=None)
        return value, field_name, False

    def __call__(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(field, field_name)
            if value is not None:
                data[key] = value
        return data


class ServerSettings(BaseSettings):
    """Resolved server settings.

    Precedence, lowest first: defaults, server_settings.json, ``SHOTCLOCK_*``
    environment variables, explicit init arguments (CLI flags). A value that
    fails validation is logged and replaced by the field default.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHOTCLOCK_",
        env_ignore_empty=True,
        case_sensitive=False,
    )

    host: str = Field(default="0.0.0.0", min_length=1)
    port: int = Field(default=8080, ge=1, le=65535)
    initial_shot_clock_seconds: float = Field(default=30.0, ge=0, allow_inf_nan=False)
    keepalive_interval_seconds: float = Field(default=60.0, gt=0, allow_inf_nan=False)
    outbound_queue_size: int = Field(default=64, gt=0)
    extended_commands: bool = False
    log_level: str = Field(default="INFO", min_length=1)

    @field_validator("*", mode="wrap")
    @classmethod
    def keep_default_when_invalid(cls, value: Any, handler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].default
            logger.warning(f"Invalid value {value!r} for setting {info.field_name}. Using {default!r}.")
            return default

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, JsonFileSettingsSource(settings_cls)

    @classmethod
    def load(cls, **overrides) -> "ServerSettings":
        """Build settings from config file, environment and overrides.

        Overrides that are None are ignored, so argparse defaults can be
        passed straight through.
        """
        return cls(**{name: value for name, value in overrides.items() if value is not None})
