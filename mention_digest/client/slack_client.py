"""
Slack API client used by the mention digest pipeline.
"""
from typing import Dict, Any, List
import logging

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)


class SlackClient:
    """
    A wrapper around the Slack Web API client.

    One instance is shared read-only by every worker of a run; calls are
    single-shot and are not retried.
    """

    def __init__(self, token: str, timeout: float = 60.0):
        """
        Initialize the Slack client.

        Args:
            token: Slack API token
            timeout: Timeout in seconds for each API request
        """
        self.client = WebClient(token=token, timeout=int(timeout))
        self.token = token

    def make_api_call(
        self,
        method_name: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make a Slack API call.

        Args:
            method_name: Name of the Slack API method to call
            **kwargs: Arguments to pass to the API method

        Returns:
            The API response

        Raises:
            SlackApiError: If the API reports an error
        """
        method = getattr(self.client, method_name)
        try:
            response = method(**kwargs)
        except SlackApiError as e:
            logger.error(f"Slack API call {method_name} failed: {e.response.get('error', str(e))}")
            raise

        if not response["ok"]:
            error = response.get("error", "unknown_error")
            logger.error(f"Slack API call {method_name} returned error: {error}")
            raise SlackApiError(f"Slack API returned error: {error}", response)

        return response

    def search_messages(
        self,
        query: str,
        sort: str = "timestamp",
        sort_dir: str = "desc",
        count: int = 40
    ) -> List[Dict[str, Any]]:
        """
        Search messages visible to the token's user.

        Args:
            query: Slack search query
            sort: Sort field ("timestamp" or "score")
            sort_dir: Sort direction ("asc" or "desc")
            count: Maximum number of matches to return

        Returns:
            List of raw search match objects
        """
        result = self.make_api_call(
            "search_messages",
            query=query,
            sort=sort,
            sort_dir=sort_dir,
            count=count
        )
        return result.get("messages", {}).get("matches", [])

    def get_conversation_replies(
        self,
        channel: str,
        ts: str,
        limit: int = 200
    ) -> List[Dict[str, Any]]:
        """
        Get the messages of a conversation thread, oldest first.

        Args:
            channel: Channel ID
            ts: Timestamp of the thread's root message
            limit: Maximum number of messages to return

        Returns:
            List of message objects
        """
        result = self.make_api_call(
            "conversations_replies",
            channel=channel,
            ts=ts,
            limit=limit
        )
        return result.get("messages", [])

    def post_direct_message(self, user_id: str, text: str) -> Dict[str, Any]:
        """
        Send a direct message with link previews disabled.

        Args:
            user_id: Recipient user ID
            text: Message text (mrkdwn)

        Returns:
            The API response
        """
        return self.make_api_call(
            "chat_postMessage",
            channel=user_id,
            text=text,
            unfurl_links=False,
            unfurl_media=False
        )
