"""Configuration loading and management."""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from mention_digest.models.config import (
    PROJECT_ROOT,
    AppConfig,
    AzureOpenAIConfig,
    DatabaseConfig,
    DigestConfig,
    SlackConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_DIGEST_CONFIG_PATH = PROJECT_ROOT / "config" / "digest.yaml"


def load_env_config(env_path: Optional[str] = None) -> None:
    """Load environment variables from .env file.

    Args:
        env_path: Optional path to .env file. If None, searches in default locations.
    """
    if env_path and not os.path.exists(env_path):
        logger.warning(f"Specified .env file not found at {env_path}")
        return

    load_dotenv(env_path)
    logger.debug("Loaded environment variables")


def load_digest_overrides(config_path: str) -> Dict[str, Any]:
    """Load digest settings from a YAML file.

    Args:
        config_path: Path to the digest configuration YAML file.

    Returns:
        Mapping of DigestConfig field overrides (empty if the file is missing
        or cannot be read).
    """
    if not os.path.exists(config_path):
        logger.info(f"Digest configuration file not found at {config_path}, using defaults")
        return {}

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading digest configuration: {str(e)}")
        return {}

    overrides = config_data.get("digest", {})
    if not isinstance(overrides, dict):
        logger.error(f"Ignoring digest configuration in {config_path}: 'digest' must be a mapping")
        return {}
    return overrides


def _optional_env(key: str) -> Optional[str]:
    value = os.getenv(key)
    return value if value else None


def load_app_config(
    env_path: Optional[str] = None,
    digest_config_path: Optional[str] = None
) -> AppConfig:
    """Load complete application configuration.

    Args:
        env_path: Optional path to .env file.
        digest_config_path: Optional path to the digest YAML file. Defaults to
            config/digest.yaml in the project root.

    Returns:
        Complete application configuration.
    """
    load_env_config(env_path)

    slack_config = SlackConfig(
        user_token=os.getenv('SLACK_USER_TOKEN', ''),
        bot_token=_optional_env('SLACK_BOT_TOKEN'),
    )

    azure_openai_config = AzureOpenAIConfig(
        api_key=os.getenv('AZURE_OPENAI_API_KEY', ''),
        endpoint=os.getenv('AZURE_OPENAI_ENDPOINT', ''),
        llm_deployment=os.getenv('AZURE_OPENAI_LLM_DEPLOYMENT', ''),
        llm_model=os.getenv('AZURE_OPENAI_LLM_MODEL', 'gpt-4o'),
        llm_api_version=os.getenv('AZURE_LLM_API_VERSION', '2024-02-01'),
    )

    database_config = DatabaseConfig(
        url=os.getenv('DATABASE_URL', DatabaseConfig().url),
        token_encryption_key=_optional_env('TOKEN_ENCRYPTION_KEY'),
    )

    overrides = load_digest_overrides(str(digest_config_path or DEFAULT_DIGEST_CONFIG_PATH))
    try:
        digest_config = DigestConfig(**overrides)
    except ValidationError as e:
        logger.error(f"Invalid digest configuration, using defaults: {e}")
        digest_config = DigestConfig()

    config = AppConfig(
        slack=slack_config,
        azure_openai=azure_openai_config,
        digest=digest_config,
        database=database_config,
    )

    logger.debug("Loaded complete application configuration")
    return config
