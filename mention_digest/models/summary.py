"""
Models for generated summaries and the digest delivered to a user.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, StrictStr, field_validator


class Candidate(BaseModel):
    """One completion returned by the generative-text service."""
    parts: List[str] = Field(default_factory=list, description="Text parts of the completion")


class GenerationResponse(BaseModel):
    """Raw response of the generative-text service."""
    candidates: List[Candidate] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    """JSON document the model is instructed to answer with."""
    summary: List[StrictStr] = Field(default_factory=list)
    actionable: StrictStr
    action_required: List[StrictStr] = Field(default_factory=list)
    priority: StrictStr

    @field_validator("summary", "action_required", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return [] if value is None else value


class SummaryResult(BaseModel):
    """Summary of one mentioned thread.

    A result with ``error`` set is the failure sentinel for its thread: its
    content fields are left empty and must not be read as a summary.
    """
    mention_permalink: str = Field(default="", description="Permalink of the summarized mention")
    summary: List[str] = Field(default_factory=list, description="Summary bullet points")
    actionable: str = Field(default="", description="Whether the user needs to act ('yes'/'no')")
    action_required: List[str] = Field(default_factory=list, description="Actions the user should take")
    priority: str = Field(default="", description="Priority label such as P0, P1 or P2")
    error: Optional[str] = Field(default=None, description="Why the thread could not be summarized")

    @classmethod
    def failed(cls, mention_permalink: str, error: str) -> "SummaryResult":
        return cls(mention_permalink=mention_permalink, error=error)

    @property
    def is_failure(self) -> bool:
        return self.error is not None


class Digest(BaseModel):
    """Priority ordered summaries for one user."""
    user_id: str
    items: List[SummaryResult] = Field(default_factory=list, description="Successful summaries, highest priority first")
    failed_count: int = Field(default=0, description="Threads that could not be summarized")

    @property
    def total_count(self) -> int:
        return len(self.items) + self.failed_count

    @property
    def is_empty(self) -> bool:
        return not self.items
