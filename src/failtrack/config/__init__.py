"""
Configuration for failtrack.

- Pydantic models for every configuration section
- YAML loading with ${VAR} substitution and FAILTRACK_* overrides
- .env handling for tracker secrets
"""

from failtrack.config.environment import (
    EnvironmentConfig,
    ensure_dotenv_loaded,
    get_github_token,
    load_environment,
    reset_environment,
)
from failtrack.config.loader import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATHS,
    ConfigLoader,
    ConfigurationError,
    load_config,
)
from failtrack.config.models import (
    FailtrackConfig,
    FiltersConfig,
    LifecycleConfig,
    LoggingConfig,
    LogLevel,
    ReopenGate,
    StorageConfig,
    TemplatesConfig,
    TrackerConfig,
    TrackerType,
)

__all__ = [
    # Environment
    "EnvironmentConfig",
    "ensure_dotenv_loaded",
    "get_github_token",
    "load_environment",
    "reset_environment",
    # Loader
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATHS",
    "ConfigLoader",
    "ConfigurationError",
    "load_config",
    # Models
    "FailtrackConfig",
    "FiltersConfig",
    "LifecycleConfig",
    "LoggingConfig",
    "LogLevel",
    "ReopenGate",
    "StorageConfig",
    "TemplatesConfig",
    "TrackerConfig",
    "TrackerType",
]
