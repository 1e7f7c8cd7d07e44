"""
Fetch the thread behind each mention.
"""
import logging
import threading
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import parse_qs, urlparse

from mention_digest.models.conversation import ConversationEntry, ThreadMessage
from mention_digest.models.mention import UniqueMention

logger = logging.getLogger(__name__)


class ThreadRepliesSource(Protocol):
    def get_conversation_replies(self, channel: str, ts: str, limit: int = 200) -> List[Dict[str, Any]]:
        ...


def resolve_thread_root(permalink: str, mention_ts: str) -> str:
    """
    Return the root timestamp of the thread a message belongs to.

    Replies carry their root in the permalink's ``thread_ts`` query parameter;
    without it the message is its own root.

    Raises:
        ValueError: If the permalink cannot be parsed
    """
    query = urlparse(permalink).query
    thread_ts = parse_qs(query).get("thread_ts", [""])[0]
    return thread_ts or mention_ts


class ConversationFetcher:
    """
    Retrieves the messages of the thread behind a mention.
    """

    def __init__(
        self,
        slack_client: ThreadRepliesSource,
        thread_limit: int = 200,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Args:
            slack_client: Client exposing get_conversation_replies
            thread_limit: Maximum number of messages fetched per thread
            cancel_event: Shared cancellation signal checked before each fetch
        """
        self.slack_client = slack_client
        self.thread_limit = thread_limit
        self.cancel_event = cancel_event or threading.Event()

    def fetch(self, mention: UniqueMention) -> ConversationEntry:
        """
        Fetch the conversation for one mention.

        Never raises: any failure yields an entry tagged with the error.

        Args:
            mention: Deduplicated mention

        Returns:
            ConversationEntry with the thread messages in the order Slack
            returned them
        """
        try:
            root_ts = resolve_thread_root(mention.permalink, mention.timestamp)
        except ValueError as e:
            logger.error(f"Error parsing permalink {mention.permalink!r}: {str(e)}")
            return ConversationEntry.failed(mention, f"invalid permalink: {e}")

        if self.cancel_event.is_set():
            logger.warning(f"Fetch cancelled for {mention.permalink}")
            return ConversationEntry.failed(mention, "cancelled")

        try:
            replies = self.slack_client.get_conversation_replies(
                channel=mention.channel_id,
                ts=root_ts,
                limit=self.thread_limit
            )
        except Exception as e:
            logger.error(f"Error fetching thread {mention.channel_id}/{root_ts}: {str(e)}")
            return ConversationEntry.failed(mention, f"fetch failed: {e}")

        messages = [
            ThreadMessage(text=reply.get("text", ""), timestamp=reply.get("ts", ""))
            for reply in replies
        ]
        logger.debug(f"Fetched {len(messages)} message(s) for thread {mention.channel_id}/{root_ts}")

        return ConversationEntry(
            mention_permalink=mention.permalink,
            mention_text=mention.text,
            mention_channel_id=mention.channel_id,
            mention_timestamp=mention.timestamp,
            messages=messages,
        )
