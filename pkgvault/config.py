"""Load vault pipeline config from TOML (e.g. nixvault.toml).

Config file is looked up in order:
  1. Path given explicitly (the CLI's --config option)
  2. Path in NIXVAULT_CONFIG env var (if set)
  3. nixvault.toml in the current working directory

If no file is found, built-in defaults are used. Settings live in a
``[vault]`` table::

    [vault]
    outdir = "nixpkgs-vault"
    threads = 8
    limit = 0

Command-line flags override file values through `VaultConfig.with_overrides`.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from pkgvault.errors import ConfigError

CONFIG_ENV_VAR = "NIXVAULT_CONFIG"
CONFIG_FILENAME = "nixvault.toml"

DEFAULT_OUTDIR = "nixpkgs-vault"
DEFAULT_REVISION = "nixos-unstable"
DEFAULT_GIT_URL = "https://github.com/NixOS/nixpkgs.git"
DEFAULT_MAX_IDENTIFIER_LENGTH = 96


class VaultConfig(BaseModel, frozen=True):
    """Settings for one pipeline run."""

    outdir: Path = Field(default=Path(DEFAULT_OUTDIR), description="Vault output directory.")
    revision: str = Field(default=DEFAULT_REVISION, description="Source revision the records come from.")
    git_url: str = Field(default=DEFAULT_GIT_URL, description="Repository the records come from.")
    threads: int = Field(default=0, ge=0, description="Render workers, 0 selects the CPU count.")
    limit: int = Field(default=0, ge=0, description="Maximum packages to render, 0 for all.")
    max_identifier_length: int = Field(default=DEFAULT_MAX_IDENTIFIER_LENGTH, ge=24, le=200)
    diagnostics: bool = Field(default=False, description="Log unresolved dependencies.")
    progress_interval: float = Field(default=10.0, gt=0, description="Seconds between progress reports.")

    def with_overrides(self, **overrides: Any) -> VaultConfig:
        """Return a validated copy; None values leave the current setting alone."""
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return VaultConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @property
    def repository_url(self) -> str:
        """Browsable repository URL (git URL without the .git suffix)."""
        url = self.git_url.rstrip("/")
        if url.endswith(".git"):
            url = url[: -len(".git")]
        return url


def _default_config_paths() -> list[Path]:
    """Return paths to check for nixvault.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get(CONFIG_ENV_VAR):
        paths.append(Path(os.environ[CONFIG_ENV_VAR]))
    paths.append(Path.cwd() / CONFIG_FILENAME)
    return paths


def load_config(path: Path | None = None) -> VaultConfig:
    """Load the vault config from a TOML file.

    Args:
        path: Explicit config file. It must exist; the default lookup
            locations are only consulted when no path is given.

    Returns:
        The validated configuration, or defaults when no file is found.

    Raises:
        ConfigError: If the file cannot be read, is not valid TOML, or holds
            invalid values.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file does not exist: {path}")
        candidates = [path]
    else:
        candidates = [p for p in _default_config_paths() if p.is_file()]
    if not candidates:
        return VaultConfig()

    config_file = candidates[0]
    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read {config_file}: {e}") from e

    section = data.get("vault", {})
    if not isinstance(section, dict):
        raise ConfigError(f"{config_file}: [vault] must be a table")
    try:
        return VaultConfig.model_validate(section)
    except ValidationError as e:
        raise ConfigError(f"{config_file}: invalid configuration: {e}") from e
