"""Configuration."""

from __future__ import annotations

import os
import platform
from typing import Any
from typing import get_args as get_type_args

import keyring
import keyring.errors
import yaml
from pydantic import GetCoreSchemaHandler
from pydantic.fields import FieldInfo
from pydantic_core import core_schema
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from storagewire.constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_OPERATION_RETRY_TIME,
    DEFAULT_MAX_UPLOAD_RETRY_TIME,
    DEFAULT_PROTOCOL,
    RESUMABLE_UPLOAD_CHUNK_SIZE,
)

APP_NAME = "storagewire"


def supports_keyring() -> bool:
    """Check if the system has a usable keyring backend."""
    try:
        keyring.get_password("test_service", "test_user")
        return True
    except keyring.errors.NoKeyringError:
        return False
    except keyring.errors.KeyringError as e:
        return "No backend found" not in str(e)
    except Exception:
        return False


KEYRING_SUPPORTED = supports_keyring()


def get_config_yaml_fpath() -> str:
    return os.getenv(
        "STORAGEWIRE_CONFIG_FILE",
        os.path.join(os.path.expanduser("~"), ".storagewire", "config.yaml"),
    )


def set_secret(key: str, value: str) -> None:
    """Sets a secret using keyring, handling byte conversion for Linux."""
    if platform.system() == "Linux":
        keyring.set_password(APP_NAME, key, value.encode("utf-8"))
    else:
        keyring.set_password(APP_NAME, key, value)


def get_secret(key: str) -> str | None:
    password = keyring.get_password(APP_NAME, key)
    if isinstance(password, bytes):
        return password.decode("utf-8")
    return password


def delete_secret(key: str) -> None:
    keyring.delete_password(APP_NAME, key)


class KeyringOptionalSecret(str):
    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_before_validator_function(
            cls._convert, core_schema.str_schema()
        )

    @classmethod
    def _convert(cls, value: Any) -> KeyringOptionalSecret:
        if not isinstance(value, str):
            raise TypeError("Expected a string")
        return cls(value)


class KeyringSecretsSource(PydanticBaseSettingsSource):
    """A settings source that loads ``KeyringOptionalSecret`` values from the
    system keyring.
    """

    def get_field_value(self, field: FieldInfo, field_name: str):
        return (get_secret(field_name), field_name, False)

    def __call__(self) -> dict[str, Any]:
        if not KEYRING_SUPPORTED:
            return {}
        secrets = {}
        for field_name, field in self.settings_cls.model_fields.items():
            if KeyringOptionalSecret in get_type_args(field.annotation):
                value = self.get_field_value(field, field_name)[0]
                if value is not None:
                    secrets[field_name] = value
        return secrets


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        yaml_file=get_config_yaml_fpath(),
        extra="ignore",
        env_prefix="STORAGEWIRE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
    host: str = DEFAULT_HOST
    protocol: str = DEFAULT_PROTOCOL
    bucket: str | None = None
    token: KeyringOptionalSecret | None = None
    chunk_size: int = RESUMABLE_UPLOAD_CHUNK_SIZE
    max_operation_retry_time: float = DEFAULT_MAX_OPERATION_RETRY_TIME
    max_upload_retry_time: float = DEFAULT_MAX_UPLOAD_RETRY_TIME

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
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            KeyringSecretsSource(settings_cls),
        )

    def write(self) -> None:
        fpath = self.model_config["yaml_file"]
        os.makedirs(os.path.dirname(fpath), exist_ok=True)
        cfg = self.model_dump(mode="json")
        # Secrets go to the keyring rather than the YAML file when possible
        if KEYRING_SUPPORTED:
            for key, value in Settings.model_fields.items():
                if (
                    KeyringOptionalSecret in get_type_args(value.annotation)
                ) and key in cfg:
                    secret_val = cfg.pop(key)
                    if secret_val is not None:
                        set_secret(key, secret_val)
                    else:
                        try:
                            delete_secret(key)
                        except keyring.errors.KeyringError:
                            pass
        with open(fpath, "w") as f:
            yaml.safe_dump(cfg, f)


def read() -> Settings:
    """Read the config."""
    # The file path can be overridden by env var after import
    Settings.model_config["yaml_file"] = get_config_yaml_fpath()
    return Settings()
