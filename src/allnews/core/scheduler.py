"""
Collection scheduler for feed sources.

Uses APScheduler to run one job per configured source. Every source is
fetched immediately on start; in continuous mode it is then re-fetched every
``refresh_period`` until the shared cancel event is set. Sources never wait
on each other and a failure only ends the cycle it happened in.
"""

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from allnews.config import get_config
from allnews.core.fetcher import FeedFetcher, extract
from allnews.exceptions import AllnewsError
from allnews.logger import get_logger
from allnews.models import SourceConfig
from allnews.storage.sink import ArticleSink

logger = get_logger(__name__)

# How often a blocked run() re-checks its events
_POLL_INTERVAL_SECONDS = 0.2

SourceGroups = dict[str, list[SourceConfig]]


def group_sources(
    sources: Iterable[SourceConfig], names: Optional[Iterable[str]] = None
) -> SourceGroups:
    """Group sources by name, keeping configuration order.

    Args:
        sources: Configured sources
        names: If non-empty, only sources with one of these names are kept

    Returns:
        Mapping of source name to its configured entries
    """
    wanted = set(names or [])
    groups: SourceGroups = {}
    for source in sources:
        if wanted and source.name not in wanted:
            continue
        groups.setdefault(source.name, []).append(source)
    return groups


@dataclass
class CycleResult:
    """Result of one fetch-extract-save cycle for a source."""

    source: str
    url: str
    success: bool
    articles_count: int = 0
    error: Optional[str] = None

    def __post_init__(self):
        """Validate cycle result."""
        if self.success and self.error:
            raise ValueError("Successful cycle cannot have an error")
        if not self.success and not self.error:
            self.error = "Unknown error"


@dataclass
class CollectionStats:
    """Counters for collection cycles, safe to update from worker threads."""

    total_cycles: int = 0
    successful_cycles: int = 0
    failed_cycles: int = 0
    total_articles: int = 0
    cycles_by_source: dict = field(default_factory=dict)
    errors_by_type: dict = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_result(self, result: CycleResult) -> None:
        """Add a cycle result to statistics."""
        with self._lock:
            self.total_cycles += 1
            self.cycles_by_source[result.source] = self.cycles_by_source.get(result.source, 0) + 1

            if result.success:
                self.successful_cycles += 1
                self.total_articles += result.articles_count
            else:
                self.failed_cycles += 1
                error_type = result.error.split(":")[0] if result.error else "unknown"
                self.errors_by_type[error_type] = self.errors_by_type.get(error_type, 0) + 1

    def cycles_for(self, source: str) -> int:
        """Number of finished cycles for a source name."""
        with self._lock:
            return self.cycles_by_source.get(source, 0)


class CollectionScheduler:
    """Runs one independent polling loop per feed source."""

    def __init__(
        self,
        sink: ArticleSink,
        fetcher: Optional[FeedFetcher] = None,
        max_workers: Optional[int] = None,
        timezone: Optional[str] = None,
    ):
        """Initialize collection scheduler.

        Args:
            sink: Where extracted articles are saved
            fetcher: Feed fetcher (default: configured FeedFetcher)
            max_workers: Worker threads (default: one per source)
            timezone: Scheduler timezone (default from config)
        """
        config = get_config().scheduler

        self.sink = sink
        self.fetcher = fetcher or FeedFetcher()
        self.max_workers = max_workers or config.max_workers or None
        self.timezone = timezone or config.timezone
        self.misfire_grace_time = config.misfire_grace_time
        self.coalesce = config.coalesce

        self.stats = CollectionStats()

    def collect_source(self, source: SourceConfig) -> CycleResult:
        """Run one fetch-extract-save cycle for a source.

        Collection errors are logged and end only this cycle.

        Args:
            source: Source to collect

        Returns:
            CycleResult
        """
        log = get_logger(__name__, source=source.name)
        log.info(f"Getting {source.url}")

        try:
            parsed = self.fetcher.fetch(source.url, source.timeout)
            articles = extract(parsed, source.name)
            self.sink.save(articles)
        except AllnewsError as e:
            log.error(f"Error collecting {source.url}: {type(e).__name__}: {e}")
            result = CycleResult(
                source=source.name,
                url=source.url,
                success=False,
                error=f"{type(e).__name__}: {e}",
            )
        else:
            log.info(f"Collected {len(articles)} articles from {source.url}")
            result = CycleResult(
                source=source.name,
                url=source.url,
                success=True,
                articles_count=len(articles),
            )

        self.stats.add_result(result)
        return result

    def run(
        self,
        groups: SourceGroups,
        continuous: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> CollectionStats:
        """Collect every source and block until all loops have exited.

        In one-shot mode every source is fetched once. In continuous mode
        every source is fetched immediately and then every refresh period
        until ``cancel_event`` is set; fetches in flight at that point are
        allowed to finish.

        Args:
            groups: Sources grouped by name (see group_sources)
            continuous: Keep re-fetching until cancelled
            cancel_event: Shared cancellation signal

        Returns:
            Collection statistics
        """
        cancel_event = cancel_event or threading.Event()
        sources = [source for name in groups for source in groups[name]]

        if not sources:
            logger.warning("No feed sources to collect")
            return self.stats

        for name, entries in groups.items():
            logger.info(f"Processing feed group `{name}` ({len(entries)} sources)")

        finished = threading.Event()
        remaining = [len(sources)]
        remaining_lock = threading.Lock()

        def on_job_finished(event: JobExecutionEvent) -> None:
            if continuous:
                return
            with remaining_lock:
                remaining[0] -= 1
                if remaining[0] <= 0:
                    finished.set()

        scheduler = self._build_scheduler(len(sources))
        scheduler.add_listener(
            on_job_finished, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED
        )

        now = datetime.now(timezone.utc)
        for index, source in enumerate(sources):
            job_id = f"{source.name}#{index}"
            if continuous:
                scheduler.add_job(
                    func=self.collect_source,
                    trigger=IntervalTrigger(
                        seconds=source.refresh_period.total_seconds(), timezone=self.timezone
                    ),
                    next_run_time=now,
                    id=job_id,
                    name=f"Collect {source.name} ({source.url})",
                    args=[source],
                )
            else:
                scheduler.add_job(
                    func=self.collect_source,
                    trigger="date",
                    run_date=now,
                    id=job_id,
                    name=f"Collect {source.name} ({source.url})",
                    args=[source],
                )

        scheduler.start()
        logger.info(
            f"Collecting {len(sources)} sources"
            + (" continuously" if continuous else " once")
        )

        try:
            while not cancel_event.is_set():
                if not continuous and finished.is_set():
                    break
                cancel_event.wait(_POLL_INTERVAL_SECONDS)
        finally:
            # Stops triggering new cycles and waits for in-flight ones
            scheduler.shutdown(wait=True)

        if continuous:
            for source in sources:
                logger.info(f"{source.name} collect loop terminating")

        logger.info(
            f"Collection finished: {self.stats.successful_cycles} succeeded, "
            f"{self.stats.failed_cycles} failed, {self.stats.total_articles} articles"
        )
        return self.stats

    def _build_scheduler(self, sources_count: int) -> BackgroundScheduler:
        """Create a scheduler with enough workers for every source."""
        workers = self.max_workers or max(1, sources_count)

        scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=workers)},
            job_defaults={
                "max_instances": 1,
                "coalesce": self.coalesce,
                "misfire_grace_time": self.misfire_grace_time,
            },
            timezone=self.timezone,
        )
        scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        scheduler.add_listener(self._on_job_skipped, EVENT_JOB_MAX_INSTANCES)
        return scheduler

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        """Report exceptions that escaped a collection cycle."""
        exception = event.exception
        error_msg = f"{type(exception).__name__}: {exception}"
        logger.error(f"Job {event.job_id} failed: {error_msg}")

        source = event.job_id.rsplit("#", 1)[0]
        self.stats.add_result(CycleResult(source=source, url="", success=False, error=error_msg))

    def _on_job_skipped(self, event) -> None:
        """A firing arrived while the previous fetch was still running."""
        logger.debug(f"Job {event.job_id} still running, skipping this run")

