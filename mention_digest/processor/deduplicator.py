"""
Reduce raw search matches to one mention per thread.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import ValidationError

from mention_digest.models.mention import RawMention, ThreadKey, UniqueMention

logger = logging.getLogger(__name__)

PLAIN_MESSAGE_TYPE = "message"


def mentions_user(blocks: List[Dict[str, Any]], user_id: str) -> bool:
    """
    Check whether rich text blocks contain a user element for user_id.

    Only ``rich_text`` blocks and their ``rich_text_section`` elements are
    inspected; a plain ``<@U123>`` string in the text does not count.
    """
    for block in blocks or []:
        if not isinstance(block, dict) or block.get("type") != "rich_text":
            continue
        for section in block.get("elements") or []:
            if not isinstance(section, dict) or section.get("type") != "rich_text_section":
                continue
            for element in section.get("elements") or []:
                if (
                    isinstance(element, dict)
                    and element.get("type") == "user"
                    and element.get("user_id") == user_id
                ):
                    return True
    return False


class MentionDeduplicator:
    """
    Filters search matches down to genuine mentions, one per thread.
    """

    def __init__(self, excluded_usernames: Optional[Iterable[str]] = None):
        """
        Args:
            excluded_usernames: Usernames of integrations whose messages are
                never counted as mentions
        """
        if excluded_usernames is None:
            excluded_usernames = ["devrev"]
        self.excluded_usernames = set(excluded_usernames)

    def is_mention(self, mention: RawMention, target_user_id: str) -> bool:
        """Apply the inclusion rule to a single match."""
        if mention.type != PLAIN_MESSAGE_TYPE:
            return False
        if mention.channel.is_private:
            return False
        if mention.username in self.excluded_usernames:
            return False
        return mentions_user(mention.blocks, target_user_id)

    def filter(
        self,
        raw_mentions: Iterable[Any],
        target_user_id: str
    ) -> List[UniqueMention]:
        """
        Select the first qualifying match for every (channel, timestamp) key.

        Args:
            raw_mentions: RawMention objects or raw Slack search match dicts
            target_user_id: User whose mentions are collected

        Returns:
            Unique mentions in input order
        """
        threads_taken: Set[ThreadKey] = set()
        unique_mentions: List[UniqueMention] = []

        for raw in raw_mentions:
            try:
                mention = raw if isinstance(raw, RawMention) else RawMention.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed search match: {e.error_count()} validation error(s)")
                continue

            if not self.is_mention(mention, target_user_id):
                continue

            key = mention.thread_key
            if key in threads_taken:
                logger.debug(f"Dropping duplicate mention for thread {key.channel_id}/{key.ts}")
                continue

            threads_taken.add(key)
            unique_mentions.append(UniqueMention.from_raw(mention))

        logger.info(f"Kept {len(unique_mentions)} unique mention(s) for user {target_user_id}")
        return unique_mentions
