"""
Models for conversation data passed between pipeline stages.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from mention_digest.models.mention import UniqueMention


class ThreadMessage(BaseModel):
    """One message of a thread, in the order Slack returned it."""
    text: str = Field(default="", description="Message text")
    timestamp: str = Field(default="", description="Message timestamp")


class ConversationEntry(BaseModel):
    """A mention together with the thread it belongs to."""
    mention_permalink: str = Field(default="", description="Permalink of the mentioning message")
    mention_text: str = Field(default="", description="Text of the mentioning message")
    mention_channel_id: str = Field(default="", description="Channel ID of the mention")
    mention_timestamp: str = Field(default="", description="Timestamp of the mentioning message")
    messages: List[ThreadMessage] = Field(default_factory=list, description="Thread messages, oldest first")
    error: Optional[str] = Field(default=None, description="Why the thread could not be fetched")

    @classmethod
    def failed(cls, mention: UniqueMention, error: str) -> "ConversationEntry":
        """Empty entry standing in for a mention whose thread could not be fetched."""
        return cls(
            mention_permalink=mention.permalink,
            mention_channel_id=mention.channel_id,
            mention_timestamp=mention.timestamp,
            error=error,
        )

    @property
    def is_failure(self) -> bool:
        return self.error is not None
