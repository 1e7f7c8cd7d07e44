"""Shared fixtures for the mention digest tests."""

from typing import Any, Dict, List, Optional

import pytest

from mention_digest.models.summary import Candidate, GenerationResponse

TARGET_USER = "U_TARGET"


def _match(
    channel_id: str = "C1",
    ts: str = "100.000",
    mentioned: Optional[List[str]] = None,
    msg_type: str = "message",
    is_private: bool = False,
    username: str = "alice",
    permalink: Optional[str] = None,
    text: str = "hey <@U_TARGET> can you look?",
) -> Dict[str, Any]:
    if mentioned is None:
        mentioned = [TARGET_USER]
    elements: List[Dict[str, Any]] = [{"type": "text", "text": "hey "}]
    elements += [{"type": "user", "user_id": user_id} for user_id in mentioned]
    return {
        "type": msg_type,
        "channel": {"id": channel_id, "name": "general", "is_private": is_private},
        "ts": ts,
        "permalink": permalink or f"https://acme.slack.com/archives/{channel_id}/p{ts.replace('.', '')}",
        "text": text,
        "user": "U_AUTHOR",
        "username": username,
        "blocks": [
            {
                "type": "rich_text",
                "block_id": "b1",
                "elements": [{"type": "rich_text_section", "elements": elements}],
            }
        ],
    }


@pytest.fixture
def target_user() -> str:
    return TARGET_USER


@pytest.fixture
def make_match():
    """Factory for raw Slack search matches."""
    return _match


class FakeGenerator:
    """Generative-text stand-in returning canned text per call."""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls = []

    def generate(self, model_id: str, prompt: str) -> GenerationResponse:
        self.calls.append((model_id, prompt))
        if self.error:
            raise self.error
        if not self.text:
            return GenerationResponse(candidates=[])
        return GenerationResponse(candidates=[Candidate(parts=[self.text])])


@pytest.fixture
def fake_generator():
    """Factory for FakeGenerator instances."""
    return FakeGenerator
