"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (VAULTGRAPH__SECTION__KEY)
3. Vault config (<vault>/.vaultgraph/config.yaml)
4. Global config (~/.config/vaultgraph/config.yaml)
5. Built-in defaults (lowest priority)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from vaultgraph.config.constants import DB_FILE_NAME, STATE_DIR_NAME
from vaultgraph.config.models import (
    DatabaseConfig,
    EmbeddingConfig,
    IndexConfig,
    LimitsConfig,
    LoggingConfig,
    VaultGraphConfig,
    WatcherConfig,
)
from vaultgraph.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/vaultgraph/config.yaml").expanduser()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top-level value must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class VaultGraphSettings(BaseSettings):
        """Root config. Env vars: VAULTGRAPH__LOGGING__LEVEL, VAULTGRAPH__EMBEDDING__URL, etc."""

        model_config = SettingsConfigDict(
            env_prefix="VAULTGRAPH__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        embedding: EmbeddingConfig = EmbeddingConfig()
        index: IndexConfig = IndexConfig()
        watcher: WatcherConfig = WatcherConfig()
        limits: LimitsConfig = LimitsConfig()
        database: DatabaseConfig = DatabaseConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return VaultGraphSettings


def load_config(vault_root: Path | None = None, **kwargs: Any) -> VaultGraphConfig:
    """Load config: defaults < global yaml < vault yaml < env vars < kwargs.

    Args:
        vault_root: Vault to load config from. Defaults to the current directory.
        **kwargs: Override values (highest precedence).

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    vault_root = vault_root or Path.cwd()

    yaml_config = _deep_merge(
        _load_yaml(GLOBAL_CONFIG_PATH),
        _load_yaml(vault_root / STATE_DIR_NAME / "config.yaml"),
    )

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return VaultGraphConfig.model_validate(settings.model_dump())


def get_index_paths(vault_root: Path, config: VaultGraphConfig | None = None) -> tuple[Path, Path]:
    """Get (index_dir, db_path) for a vault, respecting config.index.index_path."""
    config = config or load_config(vault_root)
    if config.index.index_path:
        index_dir = Path(config.index.index_path).expanduser()
    else:
        index_dir = vault_root / STATE_DIR_NAME
    return index_dir, index_dir / DB_FILE_NAME
