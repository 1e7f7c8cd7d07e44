"""
Per-user mention digest: search, deduplicate, fetch, summarize, sort, deliver.
"""
import logging
import threading
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from slack_sdk.errors import SlackApiError

from mention_digest.client.slack_client import SlackClient
from mention_digest.exceptions import SearchError
from mention_digest.models.config import DigestConfig
from mention_digest.models.summary import Digest
from mention_digest.processor.conversation_fetcher import ConversationFetcher
from mention_digest.processor.deduplicator import MentionDeduplicator
from mention_digest.processor.orchestrator import PipelineOrchestrator
from mention_digest.processor.priority import sort_by_priority
from mention_digest.processor.summarizer import Summarizer, TextGenerator, load_prompt_template
from mention_digest.publisher.slack_publisher import SlackPublisher

logger = logging.getLogger(__name__)


def build_mention_query(user_id: str, lookback_days: int, today: Optional[date] = None) -> str:
    """
    Build the search query for mentions of a user in the recent window.

    Slack's ``before:`` is exclusive, so the window ends yesterday.
    """
    today = today or date.today()
    after = today - timedelta(days=lookback_days)
    return f"<@{user_id}> after:{after.isoformat()} before:{today.isoformat()}"


class DigestService:
    """
    Builds and delivers the mention digest of one user at a time.

    The generator (and the publisher, when a bot token is configured) are
    created once and shared; a Slack client is created per user because
    searches run with that user's own token.
    """

    def __init__(
        self,
        generator: TextGenerator,
        model_id: str,
        config: Optional[DigestConfig] = None,
        publisher: Optional[SlackPublisher] = None,
        slack_client_factory: Callable[..., Any] = SlackClient,
    ):
        """
        Initialize the digest service.

        Args:
            generator: Generative-text client shared by all runs
            model_id: Model used for every summary
            config: Digest settings
            publisher: Publisher for delivery; if None each digest is sent
                with the user's own Slack client
            slack_client_factory: Builds a Slack client from (token, timeout)
        """
        self.generator = generator
        self.model_id = model_id
        self.config = config or DigestConfig()
        self.publisher = publisher
        self.slack_client_factory = slack_client_factory
        self.deduplicator = MentionDeduplicator(self.config.excluded_usernames)
        self.instructions = load_prompt_template(self.config.prompt_path)

    def search_mentions(self, slack_client, user_id: str, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        Search recent messages mentioning the user.

        Raises:
            SearchError: If the search call fails
        """
        query = build_mention_query(user_id, self.config.lookback_days, today)
        logger.info(f"Searching mentions for {user_id}: {query}")
        try:
            matches = slack_client.search_messages(
                query,
                sort="timestamp",
                sort_dir="desc",
                count=self.config.max_results
            )
        except (SlackApiError, OSError) as e:
            raise SearchError(f"Mention search failed for {user_id}: {str(e)}") from e
        logger.info(f"Search returned {len(matches)} match(es) for {user_id}")
        return matches

    def build_digest(self, slack_client, user_id: str, today: Optional[date] = None) -> Digest:
        """
        Produce the ordered digest for a user without delivering it.

        Args:
            slack_client: Client authorized as the user
            user_id: User whose mentions are digested
            today: Reference date for the search window

        Returns:
            Digest of successfully summarized threads
        """
        matches = self.search_mentions(slack_client, user_id, today)
        mentions = self.deduplicator.filter(matches, user_id)

        cancel_event = threading.Event()
        orchestrator = PipelineOrchestrator(
            fetcher=ConversationFetcher(
                slack_client,
                thread_limit=self.config.thread_limit,
                cancel_event=cancel_event
            ),
            summarizer=Summarizer(
                self.generator,
                self.model_id,
                instructions=self.instructions,
                cancel_event=cancel_event
            ),
            max_workers=self.config.max_workers,
            stage_timeout=self.config.stage_timeout,
            cancel_event=cancel_event,
        )
        results = sort_by_priority(orchestrator.run(mentions))

        succeeded = [result for result in results if not result.is_failure]
        failed_count = len(results) - len(succeeded)
        if failed_count:
            logger.warning(f"{failed_count} of {len(results)} thread(s) failed for {user_id}")

        return Digest(user_id=user_id, items=succeeded, failed_count=failed_count)

    def run_for_user(
        self,
        user_id: str,
        token: str,
        dry_run: bool = False,
        today: Optional[date] = None
    ) -> Digest:
        """
        Build the digest for one user and deliver it.

        Raises:
            SearchError: If the mention search fails
            DeliveryError: If the digest cannot be delivered
        """
        slack_client = self.slack_client_factory(token, timeout=self.config.call_timeout)
        digest = self.build_digest(slack_client, user_id, today)

        if dry_run:
            logger.info(f"Dry run: digest for {user_id} not sent")
            return digest

        publisher = self.publisher or SlackPublisher(slack_client)
        publisher.send(digest)
        return digest
