"""
Configuration loader for CES.

This module provides configuration management with:
- Multiple configuration sources (JSON, YAML, TOML and .env files, dicts)
- CES_* environment variables
- Schema validation through pydantic
- Configuration merging by source priority
"""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any, List, Union

import toml
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator, ValidationError, ConfigDict

from .logging import get_logger
from .errors import ConfigurationError


logger = get_logger("ces.config")

ENV_PREFIX = "CES_"
ENV_NESTING = "__"


def _expand(value: Optional[Path]) -> Optional[Path]:
    if value is None:
        return None
    return Path(value).expanduser().absolute()


class ConfigSource(BaseModel):
    """Configuration source definition."""
    path: Optional[Path] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    source_type: str = "dict"

    model_config = ConfigDict(arbitrary_types_allowed=True)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "json"
    console_level: str = "WARNING"
    directory: Path = Field(default_factory=lambda: Path.home() / ".ces" / "logs")
    max_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    @field_validator('level', 'console_level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v not in ("json", "simple"):
            raise ValueError(f"Invalid log format: {v}")
        return v

    @field_validator('directory')
    @classmethod
    def expand_directory(cls, v):
        return _expand(v)


class SessionConfig(BaseModel):
    """Session lifecycle configuration."""
    closing_message: str = "Session closing"
    git_timeout: float = 10.0

    @field_validator('git_timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("git_timeout must be positive")
        return v


class HooksConfig(BaseModel):
    """Startup hook configuration."""
    startup_hook: Optional[Path] = None
    timeout: float = 30.0
    enabled: bool = True

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("hook timeout must be positive")
        return v


class CesConfig(BaseModel):
    """Main CES configuration."""
    app_name: str = "ces"
    version: str = "2.7.0"
    debug: bool = False

    # Integration: "standalone" runs against the CES checkout itself,
    # "integrated" against a host project that vendors CES
    mode: str = "standalone"
    project_root: Path = Field(default_factory=Path.cwd)
    claude_dir: Optional[Path] = None

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    hooks: HooksConfig = Field(default_factory=HooksConfig)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True
    )

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, v):
        if v not in ("standalone", "integrated"):
            raise ValueError(f"Invalid operation mode: {v}")
        return v

    @field_validator('project_root', 'claude_dir')
    @classmethod
    def expand_paths(cls, v):
        return _expand(v)

    @model_validator(mode='after')
    def default_claude_dir(self):
        if self.claude_dir is None:
            # Bypass validate_assignment to avoid re-entering this validator
            object.__setattr__(self, 'claude_dir', self.project_root / ".claude")
        return self

    @property
    def operation_root(self) -> Path:
        """Directory external commands (git, hooks) run in."""
        return self.project_root

    @property
    def sessions_dir(self) -> Path:
        return self.claude_dir / "sessions"

    @property
    def backup_dir(self) -> Path:
        return self.claude_dir / "backup"

    @property
    def startup_hook_path(self) -> Path:
        if self.hooks.startup_hook is not None:
            return self.hooks.startup_hook
        return self.claude_dir / "startup-hook.cjs"


class ConfigLoader:
    """Configuration loader with multiple source support."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        """Initialize configuration loader."""
        self._sources: List[ConfigSource] = []
        self._environ = environ if environ is not None else os.environ
        self._config: Optional[CesConfig] = None

    def add_source(
        self,
        source: Union[str, Path, Dict[str, Any]],
        priority: int = 0,
        source_type: Optional[str] = None
    ) -> None:
        """
        Add configuration source.

        Args:
            source: Configuration source (file path or dict)
            priority: Source priority (higher wins)
            source_type: Source type (auto-detected if None)
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not source_type:
                source_type = self._detect_source_type(path)

            self._sources.append(ConfigSource(
                path=path,
                priority=priority,
                source_type=source_type
            ))
        else:
            self._sources.append(ConfigSource(
                data=source,
                priority=priority,
                source_type="dict"
            ))

        self._sources.sort(key=lambda s: s.priority)

    def _detect_source_type(self, path: Path) -> str:
        """Detect configuration file type."""
        suffix = path.suffix.lower()
        if suffix == ".json":
            return "json"
        elif suffix in (".yaml", ".yml"):
            return "yaml"
        elif suffix == ".toml":
            return "toml"
        elif suffix == ".env" or path.name.startswith(".env"):
            return "env"
        else:
            raise ConfigurationError(f"Unknown config file type: {suffix}")

    def load(self) -> CesConfig:
        """
        Load configuration from all sources.

        Sources are merged lowest priority first so higher priorities win;
        CES_* environment variables are applied last.

        Returns:
            Merged configuration
        """
        merged_data: Dict[str, Any] = {}

        for source in self._sources:
            data = self._load_source(source)
            merged_data = self._deep_merge(merged_data, data)

        env_data = self._load_env_vars(self._environ)
        merged_data = self._deep_merge(merged_data, env_data)

        try:
            self._config = CesConfig(**merged_data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                errors.append(f"{field}: {error['msg']}")

            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                cause=e
            ) from e

        logger.info(
            "configuration_loaded",
            sources=len(self._sources),
            mode=self._config.mode,
            project_root=str(self._config.project_root),
        )
        return self._config

    def _load_source(self, source: ConfigSource) -> Dict[str, Any]:
        """Load data from a configuration source."""
        if source.path is None:
            return source.data

        if not source.path.exists():
            logger.warning("config_file_not_found", path=str(source.path))
            return {}

        try:
            content = source.path.read_text(encoding="utf-8")

            if source.source_type == "json":
                return json.loads(content)
            elif source.source_type == "yaml":
                return yaml.safe_load(content) or {}
            elif source.source_type == "toml":
                return toml.loads(content)
            elif source.source_type == "env":
                return self._load_env_vars(self._parse_env_file(content))
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to read configuration file {source.path}: {e}",
                cause=e
            ) from e

        raise ConfigurationError(f"Unknown source type: {source.source_type}")

    def _parse_env_file(self, content: str) -> Dict[str, str]:
        """Parse .env file format into a flat variable mapping."""
        result = {}

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export "):]

            if "=" in line:
                key, value = line.split("=", 1)
                result[key.strip()] = value.strip().strip('"').strip("'")

        return result

    def _load_env_vars(self, environ: Dict[str, str]) -> Dict[str, Any]:
        """Turn CES_* variables into nested configuration data.

        CES_LOGGING__LEVEL=DEBUG becomes {"logging": {"level": "DEBUG"}}.
        """
        result: Dict[str, Any] = {}

        for key, value in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING)
            current = result
            for part in parts[:-1]:
                current = current.setdefault(part, {})
                if not isinstance(current, dict):
                    raise ConfigurationError(f"Conflicting environment variable: {key}")
            current[parts[-1]] = value

        return result

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> CesConfig:
        """Get the last loaded configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._config


def load_config(
    config_paths: Optional[List[Union[str, Path]]] = None,
    extra_config: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> CesConfig:
    """
    Load configuration from standard locations.

    Args:
        config_paths: Additional configuration paths
        extra_config: Extra configuration to merge (highest file priority)
        environ: Environment mapping, defaults to os.environ

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader(environ=environ)

    default_paths = [
        Path.home() / ".ces" / "config.yaml",
        Path("./ces.yaml"),
        Path("./ces.json"),
        Path("./.env"),
        Path("./.env.local"),
    ]

    for i, path in enumerate(default_paths):
        if path.exists():
            loader.add_source(path, priority=10 + i)

    if config_paths:
        for i, path in enumerate(config_paths):
            loader.add_source(path, priority=20 + i)

    if extra_config:
        loader.add_source(extra_config, priority=100)

    return loader.load()


__all__ = [
    'CesConfig',
    'LoggingConfig',
    'SessionConfig',
    'HooksConfig',
    'ConfigLoader',
    'load_config',
]
