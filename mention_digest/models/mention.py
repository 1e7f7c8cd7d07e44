"""
Models for search matches that mention a user.
"""
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


class ThreadKey(NamedTuple):
    """Identifies one discussion thread: (channel id, thread timestamp)."""
    channel_id: str
    ts: str


class SearchChannel(BaseModel):
    """Channel information attached to a search match."""
    id: str = Field(description="Channel ID")
    name: Optional[str] = Field(default=None, description="Channel name")
    is_private: bool = Field(default=False, description="Whether the channel is private")


class RawMention(BaseModel):
    """A single message matched by the mention search."""
    type: str = Field(default="", description="Message kind, 'message' for plain messages")
    channel: SearchChannel = Field(description="Channel where the message was posted")
    ts: str = Field(description="Message timestamp")
    permalink: str = Field(default="", description="Permalink to the message")
    text: str = Field(default="", description="Message text")
    user: Optional[str] = Field(default=None, description="Author user ID")
    username: Optional[str] = Field(default=None, description="Author username")
    blocks: List[Dict[str, Any]] = Field(default_factory=list, description="Rich content blocks")

    @property
    def thread_key(self) -> ThreadKey:
        return ThreadKey(self.channel.id, self.ts)


class UniqueMention(BaseModel):
    """The representative mention selected for one thread."""
    model_config = ConfigDict(frozen=True)

    channel_id: str = Field(description="Channel ID where the mention was posted")
    timestamp: str = Field(description="Timestamp of the mentioning message")
    permalink: str = Field(default="", description="Permalink to the mentioning message")
    text: str = Field(default="", description="Text of the mentioning message")
    user: Optional[str] = Field(default=None, description="Author user ID")

    @classmethod
    def from_raw(cls, raw: RawMention) -> "UniqueMention":
        return cls(
            channel_id=raw.channel.id,
            timestamp=raw.ts,
            permalink=raw.permalink,
            text=raw.text,
            user=raw.user,
        )

    @property
    def thread_key(self) -> ThreadKey:
        return ThreadKey(self.channel_id, self.timestamp)
