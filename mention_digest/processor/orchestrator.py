"""
Concurrent fetch and summarize stages over a set of unique mentions.

Each stage fans out one task per item on a thread pool and fans back in once
every task has produced a value. Tasks never raise into the orchestrator: a
failed item is carried forward as a tagged failure so the number of results
always equals the number of mentions dispatched.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, as_completed
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from mention_digest.models.conversation import ConversationEntry
from mention_digest.models.mention import UniqueMention
from mention_digest.models.summary import SummaryResult
from mention_digest.processor.conversation_fetcher import ConversationFetcher
from mention_digest.processor.summarizer import Summarizer

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


class PipelineOrchestrator:
    """
    Runs ConversationFetcher then Summarizer over all mentions of one run.
    """

    def __init__(
        self,
        fetcher: ConversationFetcher,
        summarizer: Summarizer,
        max_workers: Optional[int] = None,
        stage_timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Args:
            fetcher: Conversation fetcher for stage one
            summarizer: Summarizer for stage two
            max_workers: Worker cap per stage; None runs one worker per item
            stage_timeout: Seconds a stage may take before its unfinished
                items are recorded as failures; the next stage still runs
            cancel_event: Cancellation signal shared with fetcher and summarizer
        """
        self.fetcher = fetcher
        self.summarizer = summarizer
        self.max_workers = max_workers
        self.stage_timeout = stage_timeout
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Ask running and pending tasks to stop before their next external call."""
        self.cancel_event.set()

    def _run_stage(
        self,
        name: str,
        fn: Callable[[T], R],
        items: Sequence[T],
        on_failure: Callable[[T, str], R]
    ) -> List[R]:
        """
        Run fn over items concurrently and collect exactly one value per item.

        Values are returned in completion order.
        """
        if not items:
            return []

        workers = self.max_workers or len(items)
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"digest-{name}")
        futures: Dict[Future, T] = {executor.submit(fn, item): item for item in items}
        results: List[R] = []
        collected = set()
        timed_out = False

        def collect(future: Future) -> None:
            collected.add(future)
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(f"Unexpected error in {name} task: {str(e)}")
                results.append(on_failure(futures[future], f"{name} task failed: {e}"))

        try:
            for future in as_completed(futures, timeout=self.stage_timeout):
                collect(future)
        except FuturesTimeoutError:
            timed_out = True
            for future in [f for f in futures if f not in collected]:
                if future.cancel() or not future.done():
                    results.append(on_failure(futures[future], f"{name} timed out"))
                else:
                    collect(future)
            unfinished = sum(1 for f in futures if f not in collected)
            logger.error(f"{name} stage timed out after {self.stage_timeout}s with {unfinished} task(s) unfinished")
        finally:
            # A timed out stage must not wait on hung calls
            executor.shutdown(wait=not timed_out, cancel_futures=timed_out)

        return results

    def fetch_all(self, mentions: Sequence[UniqueMention]) -> List[ConversationEntry]:
        """Stage one: fetch the thread of every mention."""
        return self._run_stage(
            "fetch",
            self.fetcher.fetch,
            mentions,
            lambda mention, error: ConversationEntry.failed(mention, error),
        )

    def summarize_all(self, conversations: Sequence[ConversationEntry]) -> List[SummaryResult]:
        """Stage two: summarize every fetched conversation."""
        return self._run_stage(
            "summarize",
            self.summarizer.summarize,
            conversations,
            lambda entry, error: SummaryResult.failed(entry.mention_permalink, error),
        )

    def run(self, mentions: Sequence[UniqueMention]) -> List[SummaryResult]:
        """
        Fetch and summarize all mentions.

        Args:
            mentions: Deduplicated mentions

        Returns:
            One SummaryResult per mention, in completion order; failed items
            are tagged results with empty content
        """
        logger.info(f"Dispatching {len(mentions)} mention(s)")

        conversations = self.fetch_all(mentions)
        fetch_failures = sum(1 for entry in conversations if entry.is_failure)
        logger.info(f"Fetched {len(conversations) - fetch_failures}/{len(conversations)} conversation(s)")

        results = self.summarize_all(conversations)
        failures = sum(1 for result in results if result.is_failure)
        logger.info(f"Summarized {len(results) - failures}/{len(results)} conversation(s)")

        return results
