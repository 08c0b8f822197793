"""Configuration management using Pydantic.

Provides:
- Typed configuration models with validation
- YAML file loading with defaults
- Environment variable overrides for individual paths
"""

import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from fwctl.core.exceptions import ConfigurationError


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/fwctl/config.yaml")
DEFAULT_RULES_DIR = Path("/etc/iptables")
DEFAULT_UNIT_DIR = Path("/etc/systemd/system")
DEFAULT_STATE_DIR = Path("/var/lib/fwctl")
STATE_FILE_NAME = "state.yaml"


# Managed paths end up unquoted inside ExecStart= shell commands, where
# whitespace, quotes and systemd "%" specifiers would change their meaning.
SAFE_PATH_RE = re.compile(r"^/[A-Za-z0-9._+@/-]*$")


def _require_safe_path(v: Path) -> Path:
    if not v.is_absolute():
        raise ValueError(f"path must be absolute: {v}")
    if not SAFE_PATH_RE.match(str(v)):
        raise ValueError(
            f"path may only contain letters, digits and . _ + @ - /: {v}"
        )
    return v


class PathsConfig(BaseModel):
    """Filesystem locations managed by fwctl."""

    rules_dir: Path = DEFAULT_RULES_DIR
    unit_dir: Path = DEFAULT_UNIT_DIR
    state_dir: Path = DEFAULT_STATE_DIR

    @field_validator("rules_dir", "unit_dir", "state_dir")
    @classmethod
    def validate_path(cls, v: Path) -> Path:
        return _require_safe_path(v)


class UnitsConfig(BaseModel):
    """Systemd unit names, one per address family."""

    ipv4: str = "iptables.service"
    ipv6: str = "ip6tables.service"

    @field_validator("ipv4", "ipv6")
    @classmethod
    def validate_unit_name(cls, v: str) -> str:
        if not v.endswith(".service") or "/" in v:
            raise ValueError("unit name must be a bare name ending in .service")
        return v


class FirewallConfig(BaseModel):
    """Root configuration model, loaded from /etc/fwctl/config.yaml."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    units: UnitsConfig = Field(default_factory=UnitsConfig)

    @classmethod
    def load(cls, path: Path) -> "FirewallConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded configuration

        Raises:
            ConfigurationError: If file not found or invalid
        """
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                step="config",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}",
                step="config",
                details=[str(e)],
            ) from e
        except PermissionError:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                step="config",
                hint="Check file permissions or run with sudo",
            )

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(
                f"Invalid configuration: {path}",
                step="config",
                details=[str(e)],
            ) from e

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "FirewallConfig":
        """Load configuration, falling back to defaults if file doesn't exist."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if path.exists():
            return cls.load(path)
        return cls()

    def to_yaml(self) -> str:
        """Convert configuration to YAML string."""
        data = self.model_dump(mode="json")
        return yaml.dump(data, default_flow_style=False, sort_keys=False)


class EnvironmentOverrides(BaseSettings):
    """Per-path overrides read from the environment.

    These win over the config file.
    """

    rules_dir: Optional[Path] = Field(None, alias="FWCTL_RULES_DIR")
    unit_dir: Optional[Path] = Field(None, alias="FWCTL_UNIT_DIR")
    state_dir: Optional[Path] = Field(None, alias="FWCTL_STATE_DIR")

    class Config:
        extra = "ignore"


class AppConfig:
    """Application configuration combining config file and environment.

    This is the main interface for accessing configuration throughout the app.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[FirewallConfig] = None,
        overrides: Optional[EnvironmentOverrides] = None,
    ) -> None:
        """Initialize application configuration.

        Args:
            config_path: Path to config file (uses default if None)
            config: Pre-loaded config (skips file loading if provided)
            overrides: Pre-loaded overrides (reads environment if None)
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = config or FirewallConfig.load_or_default(self.config_path)
        self._overrides = overrides if overrides is not None else EnvironmentOverrides()

        for name in ("rules_dir", "unit_dir", "state_dir"):
            value = getattr(self._overrides, name)
            if value is None:
                continue
            try:
                _require_safe_path(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid environment override for {name}: {e}",
                    step="config",
                    hint=f"Fix FWCTL_{name.upper()}",
                ) from e

    @property
    def config(self) -> FirewallConfig:
        """Get the loaded configuration."""
        return self._config

    @property
    def rules_dir(self) -> Path:
        """Shared directory holding the ruleset snapshots."""
        return self._overrides.rules_dir or self._config.paths.rules_dir

    @property
    def unit_dir(self) -> Path:
        """Directory holding the generated systemd units."""
        return self._overrides.unit_dir or self._config.paths.unit_dir

    @property
    def state_dir(self) -> Path:
        """Directory holding the fwctl state marker."""
        return self._overrides.state_dir or self._config.paths.state_dir

    @property
    def state_file(self) -> Path:
        """Marker recording whether rules_dir pre-existed."""
        return self.state_dir / STATE_FILE_NAME

    def unit_name(self, version: str) -> str:
        """Unit name for an address family version ("4" or "6")."""
        return self._config.units.ipv4 if version == "4" else self._config.units.ipv6


def get_example_config() -> str:
    """Generate example configuration file content."""
    return """# fwctl configuration
# Every key is optional; defaults are shown.

paths:
  rules_dir: /etc/iptables          # empty.v4/6 and rules.v4/6
  unit_dir: /etc/systemd/system     # generated units
  state_dir: /var/lib/fwctl         # directory-state marker

units:
  ipv4: iptables.service
  ipv6: ip6tables.service

# Environment overrides: FWCTL_RULES_DIR, FWCTL_UNIT_DIR, FWCTL_STATE_DIR
"""
