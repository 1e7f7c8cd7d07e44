"""
Tests for the concurrent fetch/summarize pipeline.
"""

import threading
import time
from concurrent.futures import TimeoutError as FuturesTimeoutError, wait
from unittest.mock import patch

from mention_digest.models.conversation import ConversationEntry, ThreadMessage
from mention_digest.models.mention import UniqueMention
from mention_digest.models.summary import SummaryResult
from mention_digest.processor.conversation_fetcher import ConversationFetcher
from mention_digest.processor.orchestrator import PipelineOrchestrator
from mention_digest.processor.summarizer import Summarizer


def make_mentions(count: int):
    return [
        UniqueMention(channel_id="C1", timestamp=str(i), permalink=f"https://x/p{i}", text=f"m{i}")
        for i in range(count)
    ]


class StubFetcher:
    """Fetcher returning a one-message conversation, optionally failing some permalinks."""

    def __init__(self, fail=(), raise_on=(), hook=None):
        self.fail = set(fail)
        self.raise_on = set(raise_on)
        self.hook = hook

    def fetch(self, mention: UniqueMention) -> ConversationEntry:
        if self.hook:
            self.hook(mention)
        if mention.permalink in self.raise_on:
            raise RuntimeError("unexpected")
        if mention.permalink in self.fail:
            return ConversationEntry.failed(mention, "fetch failed: boom")
        return ConversationEntry(
            mention_permalink=mention.permalink,
            mention_text=mention.text,
            mention_channel_id=mention.channel_id,
            mention_timestamp=mention.timestamp,
            messages=[ThreadMessage(text=mention.text, timestamp=mention.timestamp)],
        )


class StubSummarizer:
    """Summarizer echoing the permalink, optionally failing some permalinks."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.seen = []
        self._lock = threading.Lock()

    def summarize(self, entry: ConversationEntry) -> SummaryResult:
        with self._lock:
            self.seen.append(entry.mention_permalink)
        if entry.is_failure:
            return SummaryResult.failed(entry.mention_permalink, entry.error)
        if entry.mention_permalink in self.fail:
            return SummaryResult.failed(entry.mention_permalink, "invalid response")
        return SummaryResult(
            mention_permalink=entry.mention_permalink,
            summary=[entry.mention_text],
            actionable="yes",
            priority="P1",
        )


class TestPipelineOrchestrator:
    """Test fan-out/fan-in behaviour."""

    def test_all_succeed(self):
        mentions = make_mentions(5)
        results = PipelineOrchestrator(StubFetcher(), StubSummarizer()).run(mentions)

        assert len(results) == 5
        assert not any(r.is_failure for r in results)
        assert sorted(r.mention_permalink for r in results) == sorted(m.permalink for m in mentions)

    def test_failures_keep_count(self):
        """K failed fetches/summaries still give N results, K of them failures."""
        mentions = make_mentions(6)
        fetcher = StubFetcher(fail={"https://x/p1"}, raise_on={"https://x/p2"})
        summarizer = StubSummarizer(fail={"https://x/p4"})

        results = PipelineOrchestrator(fetcher, summarizer).run(mentions)

        assert len(results) == 6
        failed = {r.mention_permalink for r in results if r.is_failure}
        assert failed == {"https://x/p1", "https://x/p2", "https://x/p4"}
        for result in results:
            if result.is_failure:
                assert result.summary == []
                assert result.priority == ""

    def test_every_conversation_reaches_summarizer_once(self):
        summarizer = StubSummarizer()
        PipelineOrchestrator(StubFetcher(fail={"https://x/p0"}), summarizer).run(make_mentions(4))
        assert sorted(summarizer.seen) == [f"https://x/p{i}" for i in range(4)]

    def test_empty_input(self):
        assert PipelineOrchestrator(StubFetcher(), StubSummarizer()).run([]) == []

    def test_unbounded_runs_all_items_concurrently(self):
        """With no cap every fetch runs at the same time."""
        barrier = threading.Barrier(4, timeout=5)
        fetcher = StubFetcher(hook=lambda mention: barrier.wait())

        results = PipelineOrchestrator(fetcher, StubSummarizer()).run(make_mentions(4))

        assert not any(r.is_failure for r in results)

    def test_bounded_pool_caps_concurrency(self):
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        def hook(mention):
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
            time.sleep(0.02)
            with lock:
                state["running"] -= 1

        results = PipelineOrchestrator(
            StubFetcher(hook=hook), StubSummarizer(), max_workers=2
        ).run(make_mentions(8))

        assert len(results) == 8
        assert state["peak"] <= 2

    def test_stage_timeout_records_hung_item_as_failure(self):
        """A hung fetch does not hold back the others and still yields a result."""
        release = threading.Event()

        def hook(mention):
            if mention.permalink == "https://x/p0":
                release.wait(5)

        orchestrator = PipelineOrchestrator(StubFetcher(hook=hook), StubSummarizer(), stage_timeout=0.3)
        try:
            results = orchestrator.run(make_mentions(3))
        finally:
            release.set()

        assert len(results) == 3
        by_link = {r.mention_permalink: r for r in results}
        assert by_link["https://x/p0"].is_failure
        assert "timed out" in by_link["https://x/p0"].error
        assert not by_link["https://x/p1"].is_failure
        assert not orchestrator.cancel_event.is_set()

    def test_cancel_signal_reaches_real_components(self, fake_generator):
        """Cancelled runs produce one failure per mention without external calls."""
        event = threading.Event()
        client_calls = []

        class Client:
            def get_conversation_replies(self, channel, ts, limit=200):
                client_calls.append(ts)
                return []

        generator = fake_generator('{"actionable":"yes","priority":"P0"}')
        orchestrator = PipelineOrchestrator(
            ConversationFetcher(Client(), cancel_event=event),
            Summarizer(generator, "m", instructions="", cancel_event=event),
            cancel_event=event,
        )
        orchestrator.cancel()

        results = orchestrator.run(make_mentions(3))

        assert len(results) == 3
        assert all(r.error == "cancelled" for r in results)
        assert client_calls == []
        assert generator.calls == []

    def test_stage_timeout_leaves_summarize_stage_running(self, fake_generator):
        """A fetch deadline fails only the hung item; finished fetches are still summarized."""
        event = threading.Event()
        release = threading.Event()

        class Client:
            def get_conversation_replies(self, channel, ts, limit=200):
                if ts == "0":
                    release.wait(5)
                return [{"text": f"thread {ts}", "ts": ts}]

        generator = fake_generator('{"actionable":"yes","priority":"P1","summary":["look"]}')
        orchestrator = PipelineOrchestrator(
            ConversationFetcher(Client(), cancel_event=event),
            Summarizer(generator, "m", instructions="", cancel_event=event),
            stage_timeout=0.3,
            cancel_event=event,
        )
        try:
            results = orchestrator.run(make_mentions(3))
        finally:
            release.set()

        assert len(results) == 3
        by_link = {r.mention_permalink: r for r in results}
        assert by_link["https://x/p0"].error == "fetch timed out"
        for link in ("https://x/p1", "https://x/p2"):
            assert not by_link[link].is_failure
            assert by_link[link].summary == ["look"]
        assert len(generator.calls) == 2
        assert not event.is_set()

    def test_item_finished_at_deadline_keeps_its_result(self):
        """Futures already done when the deadline fires are collected, not marked timed out."""
        def expire_after_all_done(futures, timeout=None):
            wait(futures)
            raise FuturesTimeoutError()
            yield  # pragma: no cover

        orchestrator = PipelineOrchestrator(StubFetcher(), StubSummarizer(), stage_timeout=1)
        with patch("mention_digest.processor.orchestrator.as_completed", expire_after_all_done):
            results = orchestrator.run(make_mentions(3))

        assert len(results) == 3
        assert not any(r.is_failure for r in results)
