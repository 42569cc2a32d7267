"""
Environment Variable Handling.

Manages environment variables and secrets using python-dotenv.

Call ensure_dotenv_loaded() before reading configuration so values from
.env are visible to the loader and the tracker factory.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

# Track whether dotenv has been loaded
_dotenv_loaded: bool = False


def ensure_dotenv_loaded(env_file: str = ".env") -> bool:
    """Ensure the .env file is loaded into os.environ.

    Existing environment variables win over values in the file.

    Args:
        env_file: Path to .env file (relative or absolute)

    Returns:
        True if a .env file was loaded, False otherwise
    """
    global _dotenv_loaded

    if _dotenv_loaded:
        return True

    env_path = Path(env_file)
    _dotenv_loaded = True
    if env_path.is_file():
        load_dotenv(env_path, override=False)
        return True
    return False


class EnvironmentConfig(BaseModel):
    """Secrets read from the environment.

    Attributes:
        github_token: Token for the GitHub REST tracker
        token_env: Variable the token was read from
    """

    github_token: SecretStr | None = Field(default=None)
    token_env: str = Field(default="GITHUB_TOKEN")

    @property
    def has_github_token(self) -> bool:
        """Check if a GitHub token is configured."""
        return self.github_token is not None and bool(self.github_token.get_secret_value())


def load_environment(token_env: str = "GITHUB_TOKEN", env_file: str = ".env") -> EnvironmentConfig:
    """Load secrets from the environment.

    Args:
        token_env: Name of the variable holding the GitHub token
        env_file: Path to .env file

    Returns:
        EnvironmentConfig with values from the environment
    """
    ensure_dotenv_loaded(env_file)
    token = os.environ.get(token_env)
    return EnvironmentConfig(
        github_token=SecretStr(token) if token else None,
        token_env=token_env,
    )


def get_github_token(token_env: str = "GITHUB_TOKEN") -> str | None:
    """Get the GitHub token from the named environment variable."""
    config = load_environment(token_env)
    return config.github_token.get_secret_value() if config.has_github_token else None


def reset_environment() -> None:
    """Forget that .env was loaded.

    Useful for testing or reloading after .env changes.
    """
    global _dotenv_loaded
    _dotenv_loaded = False
