"""
Configuration management for the admission webhook using Pydantic.

Values resolve in this order: keyword arguments, ``ADMISSION_*`` environment
variables, ``.env``, then the optional JSON config file.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import Field, field_validator, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


ENV_PREFIX = "ADMISSION_"
DEFAULT_CONFIG_FILE = "/etc/admitd/config.json"


class JsonFileSettingsSource(PydanticBaseSettingsSource):
    """Reads settings from a JSON file named by ``config_file``."""

    def __init__(self, settings_cls: Type[BaseSettings], init_kwargs: Dict[str, Any]):
        super().__init__(settings_cls)
        config_file = (
            init_kwargs.get("config_file")
            or os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")
            or DEFAULT_CONFIG_FILE
        )
        self.file_config: Dict[str, Any] = {}
        if config_file and Path(config_file).is_file():
            with open(config_file, "r") as f:
                self.file_config = json.load(f)

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self.file_config.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {
            name: value
            for name, value in self.file_config.items()
            if name in self.settings_cls.model_fields
        }


class ServerConfig(BaseSettings):
    """Settings shared by every web server."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    bind_address: str = "127.0.0.1"
    port: int = Field(default=8443, ge=1, le=65535)
    uds_path: Optional[str] = None

    tls_cert_path: Optional[Path] = None
    tls_key_path: Optional[Path] = None

    debug: bool = False

    @field_validator("tls_cert_path", "tls_key_path")
    @classmethod
    def validate_paths(cls, v):
        """Validate that TLS files exist if specified."""
        if v is not None and not Path(v).exists():
            raise ValueError(f"Path does not exist: {v}")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonFileSettingsSource(settings_cls, init_settings.init_kwargs),
            file_secret_settings,
        )

    def export_json(self) -> str:
        """Export configuration as JSON."""
        return self.model_dump_json(indent=2)


class AdmissionConfig(ServerConfig):
    """Admission webhook configuration."""

    validation_path: str = "/k8s/admission/validation"
    mutation_path: str = "/k8s/admission/mutation"

    # Upper bound on a single call; the API server's ?timeout= may shorten it
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    config_file: Optional[Path] = None

    @field_validator("validation_path", "mutation_path")
    @classmethod
    def validate_route(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Route must start with '/': {v}")
        return v

    @model_validator(mode="after")
    def validate_distinct_routes(self):
        if self.validation_path == self.mutation_path:
            raise ValueError("validation_path and mutation_path must differ")
        return self


def load_config(**kwargs) -> AdmissionConfig:
    """Load configuration with environment variables and optional overrides."""
    return AdmissionConfig(**kwargs)
