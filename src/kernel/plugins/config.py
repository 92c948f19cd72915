"""Loading of the repository plugin configuration."""

import logging

import yaml
from pydantic import ValidationError

from src.kernel.github.client import GitHubClient
from src.kernel.plugins.models import KernelConfig


logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = ".github/kernel-config.yml"


def parse_config(text: str) -> KernelConfig:
    """Parse the YAML configuration file.

    Raises:
        ValueError: If the text is not valid YAML or not a valid config.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {CONFIG_FILE_PATH}: {e}") from e

    if data is None:
        return KernelConfig()
    if not isinstance(data, dict):
        raise ValueError(f"{CONFIG_FILE_PATH} must contain a mapping")

    try:
        return KernelConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {CONFIG_FILE_PATH}: {e}") from e


async def get_config(client: GitHubClient, owner: str, repo: str) -> KernelConfig:
    """Fetch and parse a repository's plugin configuration.

    A missing or invalid file yields an empty configuration so that the
    event is acknowledged without running any plugin.
    """
    text = await client.get_file_contents(owner, repo, CONFIG_FILE_PATH)
    if text is None:
        logger.info(
            "No plugin configuration found",
            extra={"owner": owner, "repo": repo},
        )
        return KernelConfig()

    try:
        return parse_config(text)
    except ValueError as e:
        logger.error(
            "Ignoring invalid plugin configuration",
            extra={"owner": owner, "repo": repo, "error": str(e)},
        )
        return KernelConfig()
