"""
Summarize and classify mentioned threads with a generative-text model.
"""
import logging
import threading
from pathlib import Path
from typing import Optional, Protocol, Union

from pydantic import ValidationError

from mention_digest.models.conversation import ConversationEntry
from mention_digest.models.summary import GenerationResponse, SummaryResponse, SummaryResult

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "summary_prompt.txt"


class TextGenerator(Protocol):
    def generate(self, model_id: str, prompt: str) -> GenerationResponse:
        ...


def load_prompt_template(path: Optional[Union[str, Path]] = None) -> str:
    """Read the instructions appended to every prompt."""
    prompt_path = Path(path) if path else DEFAULT_PROMPT_PATH
    with open(prompt_path, "r", encoding="utf-8") as f:
        return f.read()


def build_prompt(entry: ConversationEntry, instructions: str) -> str:
    """
    Render a conversation into the prompt sent to the model.

    Layout::

        Mention:
        {
            Text: "...",
            Timestamp: "..."
        },
        ThreadMessages: [
            {
                Text: "...",
                Timestamp: "..."
            },
            ...
        ]
        <instructions>
    """
    prompt = (
        "Mention:\n{\n"
        f"\tText: \"{entry.mention_text}\",\n"
        f"\tTimestamp: \"{entry.mention_timestamp}\"\n"
        "},\nThreadMessages: [\n"
    )

    rendered = [
        f"\t{{\n\t\tText: \"{msg.text}\",\n\t\tTimestamp: \"{msg.timestamp}\"\n\t}}"
        for msg in entry.messages
    ]
    if rendered:
        prompt += ",\n".join(rendered) + "\n"
    prompt += "]\n"

    return prompt + instructions


def clean_json(text: str) -> str:
    """Strip surrounding whitespace and markdown code fences."""
    text = text.strip()
    text = text.removeprefix("```json")
    text = text.removeprefix("```")
    text = text.removesuffix("```")
    return text.strip()


def parse_response(response: GenerationResponse, mention_permalink: str) -> SummaryResult:
    """
    Turn a model response into a SummaryResult.

    The first candidate with content is used; its text parts are joined
    before parsing. ``actionable`` and ``priority`` must be strings,
    ``summary`` and ``action_required`` default to empty lists.

    Returns:
        The parsed result, or a failed result if there is nothing usable
    """
    candidate = next((c for c in response.candidates if c.parts), None)
    if candidate is None:
        logger.warning(f"No candidates in response for {mention_permalink}")
        return SummaryResult.failed(mention_permalink, "no candidates in response")

    cleaned = clean_json("".join(candidate.parts))
    try:
        parsed = SummaryResponse.model_validate_json(cleaned)
    except ValidationError as e:
        logger.error(f"Error parsing summary for {mention_permalink}: {e.errors(include_url=False)}")
        logger.debug(f"Unparseable response: {cleaned[:500]}")
        return SummaryResult.failed(mention_permalink, f"invalid response: {e.error_count()} error(s)")

    return SummaryResult(
        mention_permalink=mention_permalink,
        summary=list(parsed.summary),
        actionable=parsed.actionable,
        action_required=list(parsed.action_required),
        priority=parsed.priority,
    )


class Summarizer:
    """
    Produces one SummaryResult per conversation; each call is independent.
    """

    def __init__(
        self,
        generator: TextGenerator,
        model_id: str,
        instructions: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Args:
            generator: Generative-text client
            model_id: Model used for every call
            instructions: Prompt suffix; the bundled prompt file if None
            cancel_event: Shared cancellation signal checked before each call
        """
        self.generator = generator
        self.model_id = model_id
        self.instructions = instructions if instructions is not None else load_prompt_template()
        self.cancel_event = cancel_event or threading.Event()

    def summarize(self, entry: ConversationEntry) -> SummaryResult:
        """
        Summarize one conversation. Never raises.

        A conversation that failed to fetch is passed through as a failed
        result without calling the model.
        """
        if entry.is_failure:
            return SummaryResult.failed(entry.mention_permalink, entry.error)

        if self.cancel_event.is_set():
            logger.warning(f"Summary cancelled for {entry.mention_permalink}")
            return SummaryResult.failed(entry.mention_permalink, "cancelled")

        prompt = build_prompt(entry, self.instructions)
        logger.debug(f"Prompt for {entry.mention_permalink}: {len(prompt)} chars, {len(entry.messages)} message(s)")

        try:
            response = self.generator.generate(self.model_id, prompt)
        except Exception as e:
            logger.error(f"Error getting summary for {entry.mention_permalink}: {str(e)}")
            return SummaryResult.failed(entry.mention_permalink, f"generation failed: {e}")

        return parse_response(response, entry.mention_permalink)
