"""
Tracker factory.

Builds the tracker client selected by configuration.
"""

import logging

from failtrack.config.environment import get_github_token
from failtrack.config.models import TrackerConfig, TrackerType
from failtrack.tracker.base import TrackerClient
from failtrack.tracker.cli_client import GitHubCliTracker
from failtrack.tracker.file_client import FileTracker
from failtrack.tracker.rest_client import GitHubRestTracker

logger = logging.getLogger(__name__)


def create_tracker(config: TrackerConfig) -> TrackerClient:
    """Create a tracker client.

    Args:
        config: Tracker configuration

    Returns:
        TrackerClient for the configured backend

    Raises:
        ValueError: If the tracker type is unknown
    """
    if config.type == TrackerType.GITHUB_CLI:
        return GitHubCliTracker(
            repo=config.repo,
            timeout_seconds=config.timeout_seconds,
        )
    if config.type == TrackerType.GITHUB_REST:
        token = get_github_token(config.token_env)
        if token is None:
            logger.debug(f"{config.token_env} is not set; GitHub REST tracker will be unavailable")
        return GitHubRestTracker(
            repo=config.repo,
            token=token,
            api_url=config.api_url,
            timeout_seconds=config.timeout_seconds,
            max_retries=config.max_retries,
        )
    if config.type == TrackerType.FILE:
        return FileTracker(issues_dir=config.issues_dir)
    raise ValueError(f"Unknown tracker type: {config.type}")
