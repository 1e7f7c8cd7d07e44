"""
Main entry point for the Slack mention digest.
"""

import argparse
import logging
import sys
from typing import List, Optional

from mention_digest.client.slack_client import SlackClient
from mention_digest.digest.digest_service import DigestService
from mention_digest.exceptions import ConfigurationError, MentionDigestError
from mention_digest.llm.azure_integration import AzureTextGenerator
from mention_digest.models.config import AppConfig
from mention_digest.publisher.slack_publisher import SlackPublisher, format_digest
from mention_digest.storage.user_store import UserStore
from mention_digest.utils.config import load_app_config
from mention_digest.utils.crypto import TokenCipher
from mention_digest.utils.logger import setup_logger

logger = logging.getLogger(__name__)


def create_user_store(config: AppConfig) -> UserStore:
    """Open the installed users store."""
    cipher = TokenCipher(config.database.token_encryption_key or "")
    return UserStore(config.database.url, cipher)


def create_digest_service(config: AppConfig) -> DigestService:
    """Wire the shared clients into a DigestService."""
    azure = config.azure_openai
    if not (azure.api_key and azure.endpoint and azure.llm_deployment):
        raise ConfigurationError(
            "AZURE_OPENAI_API_KEY, AZURE_OPENAI_ENDPOINT and "
            "AZURE_OPENAI_LLM_DEPLOYMENT must be set"
        )

    generator = AzureTextGenerator(azure, timeout=config.digest.call_timeout)

    publisher = None
    if config.slack.bot_token:
        publisher = SlackPublisher(SlackClient(config.slack.bot_token, timeout=config.digest.call_timeout))

    return DigestService(
        generator=generator,
        model_id=config.model_id,
        config=config.digest,
        publisher=publisher,
    )


def resolve_token(config: AppConfig, user_id: str, token: Optional[str]) -> str:
    """Pick the token for a single-user run: flag, user store, then environment."""
    if token:
        return token
    if config.database.token_encryption_key:
        try:
            return create_user_store(config).get_token(user_id)
        except KeyError:
            logger.debug(f"User {user_id} not found in user store")
    if config.slack.user_token:
        return config.slack.user_token
    raise ConfigurationError(f"No Slack token available for {user_id}")


def run_single(config: AppConfig, user_id: str, token: Optional[str], dry_run: bool) -> int:
    service = create_digest_service(config)
    digest = service.run_for_user(user_id, resolve_token(config, user_id, token), dry_run=dry_run)
    if dry_run:
        print(format_digest(digest) or "No mentions to summarize.")
    return 0


def run_all(config: AppConfig, dry_run: bool) -> int:
    """Digest every installed user; one user's failure does not stop the rest."""
    service = create_digest_service(config)
    users = create_user_store(config).get_installed_users()
    logger.info(f"Processing {len(users)} installed user(s)")

    failures = 0
    for user in users:
        try:
            service.run_for_user(user.user_id, user.access_token, dry_run=dry_run)
        except MentionDigestError as e:
            failures += 1
            logger.error(f"Digest failed for {user.user_id}: {str(e)}")
        except Exception as e:
            failures += 1
            logger.error(f"Unexpected error in digest for {user.user_id}: {str(e)}", exc_info=True)

    logger.info(f"Processed {len(users) - failures}/{len(users)} user(s)")
    return 1 if failures else 0


def register(config: AppConfig, user_id: str, token: str) -> int:
    added = create_user_store(config).save_user(user_id, token)
    print("Registered." if added else "Already registered.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarize a user's recent Slack mentions into a priority ordered digest."
    )
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--config", help="Path to the digest YAML configuration")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Build and send the digest for one user")
    run_parser.add_argument("--user-id", required=True, help="Slack user ID")
    run_parser.add_argument("--token", help="Slack user token (defaults to user store or SLACK_USER_TOKEN)")
    run_parser.add_argument("--dry-run", action="store_true", help="Print the digest instead of sending it")

    run_all_parser = subparsers.add_parser("run-all", help="Build and send digests for all installed users")
    run_all_parser.add_argument("--dry-run", action="store_true", help="Build digests without sending them")

    register_parser = subparsers.add_parser("register", help="Store a user's Slack token")
    register_parser.add_argument("--user-id", required=True, help="Slack user ID")
    register_parser.add_argument("--token", required=True, help="Slack user token")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI interface."""
    args = build_parser().parse_args(argv)
    setup_logger("mention_digest", args.log_level)

    config = load_app_config(env_path=args.env_file, digest_config_path=args.config)

    try:
        if args.command == "run":
            return run_single(config, args.user_id, args.token, args.dry_run)
        if args.command == "run-all":
            return run_all(config, args.dry_run)
        return register(config, args.user_id, args.token)
    except MentionDigestError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
