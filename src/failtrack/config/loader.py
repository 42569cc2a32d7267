"""
Configuration Loader.

Loads and validates configuration from YAML files with environment
variable substitution.

Precedence, highest first:
1. Explicit overrides (CLI flags, pytest options)
2. FAILTRACK_* environment variables
3. The YAML configuration file
4. Model defaults
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from failtrack.config.environment import ensure_dotenv_loaded
from failtrack.config.models import FailtrackConfig

# Default configuration file locations
DEFAULT_CONFIG_PATHS = [
    "failtrack.yaml",
    "failtrack.yml",
    ".failtrack.yaml",
    ".failtrack.yml",
]

# Environment variable for config path
CONFIG_ENV_VAR = "FAILTRACK_CONFIG"

# Environment variable overrides for configuration settings
# Maps env var name to config path (dot-separated)
ENV_VAR_OVERRIDES = {
    # Lifecycle flags
    "FAILTRACK_GENERATE_ISSUES": "lifecycle.generate_issues",
    "FAILTRACK_TRACK_ISSUES": "lifecycle.track_issues",
    "FAILTRACK_REOPEN_GATE": "lifecycle.reopen_gate",
    # Storage
    "FAILTRACK_DATABASE_PATH": "storage.database_path",
    # Tracker
    "FAILTRACK_TRACKER": "tracker.type",
    "FAILTRACK_GITHUB_REPO": "tracker.repo",
    "FAILTRACK_ISSUES_DIR": "tracker.issues_dir",
    # Templates
    "FAILTRACK_TEMPLATE_DIR": "templates.template_dir",
    # Logging
    "FAILTRACK_LOG_LEVEL": "logging.level",
    "FAILTRACK_LOG_FILE": "logging.file",
}

# Settings that must stay strings even if they look numeric or boolean
STRING_SETTINGS = {
    "storage.database_path",
    "tracker.repo",
    "tracker.issues_dir",
    "templates.template_dir",
    "logging.file",
}


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        errors: list[dict] | None = None,
        path: Path | None = None,
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Error message
            errors: List of validation errors (from Pydantic)
            path: Path to the config file that caused the error
        """
        super().__init__(message)
        self.errors = errors or []
        self.path = path

    def __str__(self) -> str:
        """Format error message with details."""
        msg = super().__str__()
        if self.path:
            msg = f"{msg} (file: {self.path})"
        if self.errors:
            error_details = []
            for err in self.errors[:5]:
                loc = ".".join(str(x) for x in err.get("loc", []))
                error_msg = err.get("msg", "Unknown error")
                error_details.append(f"  - {loc}: {error_msg}")
            if len(self.errors) > 5:
                error_details.append(f"  ... and {len(self.errors) - 5} more errors")
            msg = f"{msg}\n" + "\n".join(error_details)
        return msg


class ConfigLoader:
    """Loads configuration from YAML files.

    Supports:
    - YAML configuration files, discovered or explicit
    - Environment variable substitution (${VAR} and ${VAR:-default} syntax)
    - FAILTRACK_* environment overrides
    - Explicit overrides in dot notation
    - Validation via Pydantic

    Usage:
        loader = ConfigLoader("failtrack.yaml")
        config = loader.load(overrides={"lifecycle.generate_issues": True})

        # Discover from FAILTRACK_CONFIG or default locations
        config = ConfigLoader().load_from_env()
    """

    # Matches ${VAR_NAME}, ${VAR_NAME:-default} or ${VAR_NAME:default}
    ENV_PATTERN = re.compile(r"\$\{(\w+)(?::-?([^}]*))?\}")

    def __init__(
        self,
        config_path: str | Path | None = None,
        env_file: str = ".env",
    ) -> None:
        """Initialize the config loader.

        Args:
            config_path: Path to YAML config file (optional).
                If not provided, use load_from_env() to auto-discover.
            env_file: Path to .env file for environment loading
        """
        self._config_path = Path(config_path) if config_path else None
        self._env_file = env_file
        self._config: FailtrackConfig | None = None
        self._loaded_from_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        """Get config file path."""
        return self._config_path

    @property
    def loaded_from_path(self) -> Path | None:
        """Get the path the config was actually loaded from."""
        return self._loaded_from_path

    @property
    def config(self) -> FailtrackConfig | None:
        """Get loaded configuration, or None if not loaded yet."""
        return self._config

    def load(self, overrides: dict[str, Any] | None = None) -> FailtrackConfig:
        """Load and validate configuration.

        Args:
            overrides: Explicit values in dot notation
                (e.g. {"tracker.type": "file"}); None values are ignored

        Returns:
            Validated FailtrackConfig

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        ensure_dotenv_loaded(self._env_file)

        if self._config_path:
            raw = self._load_yaml()
            self._loaded_from_path = self._config_path
        else:
            raw = {}
            self._loaded_from_path = None

        processed = self._substitute_env_vars(raw)
        processed = self._apply_env_overrides(processed)
        for key, value in (overrides or {}).items():
            if value is not None:
                self._set_nested_value(processed, key, value)

        # YAML parses empty sections as None; drop them so defaults apply
        processed = self._clean_none_values(processed)

        try:
            self._config = FailtrackConfig(**processed)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e.error_count()} errors",
                errors=e.errors(),
                path=self._loaded_from_path,
            ) from e
        except TypeError as e:
            raise ConfigurationError(
                f"Configuration must be a mapping: {e}",
                path=self._loaded_from_path,
            ) from e

        return self._config

    def load_from_env(self, overrides: dict[str, Any] | None = None) -> FailtrackConfig:
        """Discover the configuration file, then load it.

        Searches, in order:
        1. FAILTRACK_CONFIG environment variable (if set)
        2. failtrack.yaml, failtrack.yml, .failtrack.yaml, .failtrack.yml

        Defaults are used when no file is found.

        Raises:
            ConfigurationError: If FAILTRACK_CONFIG points nowhere or the
                config is invalid
        """
        ensure_dotenv_loaded(self._env_file)

        env_config_path = os.environ.get(CONFIG_ENV_VAR)
        if env_config_path:
            self._config_path = Path(env_config_path)
            return self.load(overrides)

        for default_path in DEFAULT_CONFIG_PATHS:
            path = Path(default_path)
            if path.is_file():
                self._config_path = path
                return self.load(overrides)

        self._config_path = None
        return self.load(overrides)

    def _load_yaml(self) -> dict[str, Any]:
        """Load the YAML configuration file.

        Raises:
            ConfigurationError: If the file is missing or the YAML is invalid
        """
        if not self._config_path.is_file():
            raise ConfigurationError(
                "Config file not found",
                path=self._config_path,
            )

        try:
            with open(self._config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", path=self._config_path) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                path=self._config_path,
            )
        return data

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively substitute ${VAR} references in config values."""
        if isinstance(data, dict):
            return {k: self._substitute_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]
        elif isinstance(data, str):
            return self._substitute_string(data)
        return data

    def _clean_none_values(self, data: Any) -> Any:
        """Recursively remove None values from nested dicts."""
        if isinstance(data, dict):
            return {k: self._clean_none_values(v) for k, v in data.items() if v is not None}
        elif isinstance(data, list):
            return [self._clean_none_values(item) for item in data]
        return data

    def _substitute_string(self, value: str) -> Any:
        """Substitute environment variables in a string.

        A string that is exactly one reference is type-coerced; embedded
        references are substituted textually.
        """
        full_match = self.ENV_PATTERN.fullmatch(value)
        if full_match:
            env_value = os.environ.get(full_match.group(1))
            resolved = env_value if env_value is not None else full_match.group(2)
            if resolved is not None:
                return self._coerce_type(resolved)
            return value

        def replace(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            if match.group(2) is not None:
                return match.group(2)
            return match.group(0)

        return self.ENV_PATTERN.sub(replace, value)

    @staticmethod
    def _coerce_type(value: str) -> Any:
        """Coerce a string value to bool, int, None or leave it as is."""
        if value == "":
            return None

        lower_value = value.lower()
        if lower_value in ("true", "yes", "on", "1"):
            return True
        if lower_value in ("false", "no", "off", "0"):
            return False

        try:
            return int(value)
        except ValueError:
            return value

    def _apply_env_overrides(self, config_dict: dict[str, Any]) -> dict[str, Any]:
        """Apply FAILTRACK_* environment variables over file values."""
        for env_var, config_path in ENV_VAR_OVERRIDES.items():
            env_value = os.environ.get(env_var)
            if env_value is None:
                continue
            if config_path in STRING_SETTINGS:
                value: Any = env_value or None
            else:
                value = self._coerce_type(env_value)
            self._set_nested_value(config_dict, config_path, value)
        return config_dict

    @staticmethod
    def _set_nested_value(config_dict: dict[str, Any], path: str, value: Any) -> None:
        """Set a nested value using dot notation (e.g. "tracker.type")."""
        parts = path.split(".")
        current = config_dict
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    env_file: str = ".env",
) -> FailtrackConfig:
    """Load configuration.

    Args:
        config_path: Explicit YAML file; discovered when None
        overrides: Explicit values in dot notation
        env_file: Path to .env file

    Returns:
        Validated FailtrackConfig

    Raises:
        ConfigurationError: If configuration is invalid
    """
    loader = ConfigLoader(config_path, env_file)
    if config_path:
        return loader.load(overrides)
    return loader.load_from_env(overrides)
