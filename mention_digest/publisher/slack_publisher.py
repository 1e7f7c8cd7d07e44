"""
Format a digest and deliver it as a Slack direct message.
"""
import logging
from typing import List

from slack_sdk.errors import SlackApiError

from mention_digest.client.slack_client import SlackClient
from mention_digest.exceptions import DeliveryError
from mention_digest.models.summary import Digest, SummaryResult

logger = logging.getLogger(__name__)

DIVIDER = "\n━━━━━━━━━━━━━━━━━━━━━━━━━━━━\n\n"


def priority_emoji(priority: str) -> str:
    """Emoji shown next to a priority label."""
    label = (priority or "").upper()
    if label in ("P0", "P1"):
        return "🚨"
    if label == "P2":
        return "⚠️"
    if label == "P3":
        return "🔵"
    return "⚪"


def format_summary(result: SummaryResult) -> str:
    """Render one summary as Slack mrkdwn."""
    lines: List[str] = [f"🔗 *Mention Link:* <{result.mention_permalink}|Click Here> |"]

    action_emoji = "➖" if result.actionable.lower() == "no" else "✅"
    lines.append(
        f"{action_emoji} *Actionable:* {result.actionable}.     "
        f"{priority_emoji(result.priority)} *Priority:* `{result.priority}`"
    )

    lines.append("")
    lines.append("📝 *Summary*")
    lines.extend(f"  {i}. {point}" for i, point in enumerate(result.summary, 1))

    if result.action_required:
        lines.append("")
        lines.append("🛠️ *Action Required*")
        lines.extend(f"  • {action}" for action in result.action_required)

    return "\n".join(lines) + "\n"


def format_digest(digest: Digest) -> str:
    """Render a whole digest, highest priority first."""
    text = DIVIDER.join(format_summary(result) for result in digest.items)
    if digest.failed_count:
        text += (
            f"\n_{digest.failed_count} of {digest.total_count} mentioned "
            f"thread(s) could not be summarized._\n"
        )
    return text


class SlackPublisher:
    """
    Sends digests to users over Slack direct messages.
    """

    def __init__(self, slack_client: SlackClient):
        self.slack_client = slack_client

    def send(self, digest: Digest) -> bool:
        """
        Deliver a digest to its user.

        Args:
            digest: Digest to deliver

        Returns:
            True if a message was sent, False if there was nothing to send

        Raises:
            DeliveryError: If Slack rejects the message
        """
        if digest.is_empty:
            logger.info(
                f"Nothing to send to {digest.user_id} "
                f"({digest.failed_count} thread(s) failed to summarize)"
            )
            return False

        try:
            self.slack_client.post_direct_message(digest.user_id, format_digest(digest))
        except (SlackApiError, OSError) as e:
            raise DeliveryError(f"Failed to send digest to {digest.user_id}: {str(e)}") from e

        logger.info(f"Sent digest with {len(digest.items)} item(s) to {digest.user_id}")
        return True
