"""
Ledger Store

Owns exactly one live subscription per user session and exposes a
read-only, always-consistent snapshot plus its aggregates.

DESIGN DECISION: replace-then-recompute.
Every feed delivery rebuilds the whole snapshot from the delivered document
set, re-sorts it, recomputes the summary and only then publishes. Observers
never see totals that disagree with the entries they were handed.

CONCURRENCY:
- Feed callbacks may arrive on a foreign thread (Firestore watch thread).
  A re-entrant lock makes each delivery run to completion before the next.
- Every ``start``/``stop`` bumps a generation counter. Deliveries carry the
  generation they were subscribed under; anything older is discarded, so a
  late event for a previous user can never touch the snapshot.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from functools import partial
from typing import Callable, Hashable, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from bill_tracker.ledger.aggregation import LedgerView, build_view, sort_entries, summarize
from bill_tracker.ledger.normalize import normalize_records
from bill_tracker.logging_setup import get_logger
from bill_tracker.models.audit import AuditEvent, AuditEventBuilder
from bill_tracker.models.entry import (
    LedgerEntry,
    LedgerSummary,
    LedgerWindow,
    utc_now,
)
from bill_tracker.services.storage.interface import (
    LedgerRecord,
    LedgerSourceInterface,
    StorageError,
)


logger = get_logger(__name__)


class LedgerUpdate(BaseModel):
    """One published (snapshot, aggregates) pair."""
    model_config = ConfigDict(frozen=True)

    version: int = Field(ge=0)
    user_id: Optional[str] = None
    entries: tuple[LedgerEntry, ...] = ()
    summary: LedgerSummary = Field(default_factory=LedgerSummary)
    published_at: datetime = Field(default_factory=utc_now)


class FeedNotice(BaseModel):
    """A non-fatal problem with the live feed. The snapshot is left as is."""
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str]
    message: str
    error_type: str
    occurred_at: datetime = Field(default_factory=utc_now)


UpdateObserver = Callable[[LedgerUpdate], None]
NoticeObserver = Callable[[FeedNotice], None]


class LedgerStore:
    """
    Live, ordered view of one user's ledger.

    Usage:
        store = LedgerStore(FirestoreLedgerSource(client))
        remove = store.add_observer(render)
        with store.subscription(user_id):
            ...
            store.view(LedgerWindow.MONTHLY)
    """

    def __init__(
        self,
        source: LedgerSourceInterface,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            source: The remote ledger feed (a process-wide handle owned
                by the caller)
            clock: Source of "now" for defaulting undated records
        """
        self._source = source
        self._clock = clock
        self._lock = threading.RLock()

        self._generation = 0
        self._handle: Optional[Hashable] = None
        self._user_id: Optional[str] = None

        self._current = LedgerUpdate(version=0)
        self._last_notice: Optional[FeedNotice] = None

        self._observers: list[UpdateObserver] = []
        self._notice_observers: list[NoticeObserver] = []

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, user_id: Optional[str]) -> None:
        """
        Subscribe to ``user_id``'s ledger.

        Any active subscription is stopped first. Without a user id the
        ledger is simply left empty; gating on authentication is the
        caller's job.
        """
        with self._lock:
            self.stop()

            user_id = user_id.strip() if isinstance(user_id, str) else None
            if not user_id:
                logger.info("ledger_start_skipped", reason="no user id")
                return

            self._generation += 1
            generation = self._generation
            self._user_id = user_id
            self._last_notice = None

            try:
                handle = self._source.subscribe(
                    user_id,
                    on_records=partial(self._on_records, generation),
                    on_error=partial(self._on_error, generation),
                )
            except StorageError as e:
                self._user_id = None
                self._generation += 1
                self._audit(AuditEventBuilder.feed_error(user_id, type(e).__name__, str(e)))
                self._notify_notice(FeedNotice(
                    user_id=user_id,
                    message=str(e),
                    error_type=type(e).__name__,
                ))
                return

            self._handle = handle
            self._audit(AuditEventBuilder.subscription_started(user_id))

    def stop(self) -> None:
        """
        Release the active subscription and clear the snapshot.

        Idempotent: without an active subscription this does nothing.
        """
        with self._lock:
            if self._user_id is None and self._handle is None:
                return

            user_id = self._user_id
            handle = self._handle
            self._generation += 1
            self._user_id = None
            self._handle = None

            if handle is not None:
                try:
                    self._source.unsubscribe(handle)
                except Exception as e:
                    logger.warning("ledger_unsubscribe_failed", user_id=user_id, error=str(e))

            self._audit(AuditEventBuilder.subscription_stopped(user_id))
            self._publish(None, [])

    @contextmanager
    def subscription(self, user_id: Optional[str]) -> Iterator["LedgerStore"]:
        """Keep ``user_id`` subscribed for the duration of the block."""
        self.start(user_id)
        try:
            yield self
        finally:
            self.stop()

    def __enter__(self) -> "LedgerStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def add_observer(
        self,
        observer: UpdateObserver,
        replay: bool = True,
    ) -> Callable[[], None]:
        """
        Register ``observer`` for every published update.

        With ``replay`` the current update is delivered immediately.
        Returns a callable that removes the observer.
        """
        with self._lock:
            self._observers.append(observer)
            if replay:
                self._call(observer, self._current)
        return partial(self._remove, self._observers, observer)

    def add_notice_observer(self, observer: NoticeObserver) -> Callable[[], None]:
        with self._lock:
            self._notice_observers.append(observer)
        return partial(self._remove, self._notice_observers, observer)

    def _remove(self, observers: list, observer) -> None:
        with self._lock:
            if observer in observers:
                observers.remove(observer)

    # -------------------------------------------------------------------------
    # Read API
    # -------------------------------------------------------------------------

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_active(self) -> bool:
        return self._user_id is not None

    @property
    def current(self) -> LedgerUpdate:
        """The latest published update."""
        return self._current

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        return self._current.entries

    @property
    def summary(self) -> LedgerSummary:
        return self._current.summary

    @property
    def version(self) -> int:
        return self._current.version

    @property
    def last_notice(self) -> Optional[FeedNotice]:
        return self._last_notice

    def view(
        self,
        window: Union[LedgerWindow, str] = LedgerWindow.ALL,
        now: Optional[datetime] = None,
    ) -> LedgerView:
        """Filter the current snapshot by ``window``, evaluated at call time."""
        return build_view(self._current.entries, window, now)

    def get_entry(self, entry_id: str) -> Optional[LedgerEntry]:
        for entry in self._current.entries:
            if entry.id == entry_id:
                return entry
        return None

    def recent(self, limit: int = 5) -> tuple[LedgerEntry, ...]:
        """The newest ``limit`` entries."""
        return self._current.entries[:max(limit, 0)]

    # -------------------------------------------------------------------------
    # Feed handling
    # -------------------------------------------------------------------------

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation or self._user_id is None

    def _on_records(self, generation: int, records: list[LedgerRecord]) -> None:
        with self._lock:
            if self._is_stale(generation):
                logger.info(
                    "late_delivery_discarded",
                    generation=generation,
                    current_generation=self._generation,
                    record_count=len(records),
                )
                return

            batch = normalize_records(records, now=self._clock())
            for entry_id, fields in batch.normalized.items():
                self._audit(AuditEventBuilder.record_normalized(entry_id, fields, self._user_id))
            for dropped in batch.dropped:
                self._audit(AuditEventBuilder.record_dropped(
                    dropped.entry_id, dropped.reason, self._user_id
                ))

            self._publish(self._user_id, sort_entries(batch.entries))

    def _on_error(self, generation: int, error: Exception) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            self._audit(AuditEventBuilder.feed_error(
                self._user_id, type(error).__name__, str(error)
            ))
            self._notify_notice(FeedNotice(
                user_id=self._user_id,
                message=str(error),
                error_type=type(error).__name__,
            ))

    def _publish(self, user_id: Optional[str], entries: list[LedgerEntry]) -> None:
        update = LedgerUpdate(
            version=self._current.version + 1,
            user_id=user_id,
            entries=tuple(entries),
            summary=summarize(entries),
            published_at=self._clock(),
        )
        self._current = update
        logger.debug(
            "ledger_snapshot_published",
            user_id=user_id,
            version=update.version,
            entry_count=len(entries),
        )
        for observer in list(self._observers):
            self._call(observer, update)

    def _notify_notice(self, notice: FeedNotice) -> None:
        self._last_notice = notice
        for observer in list(self._notice_observers):
            self._call(observer, notice)

    @staticmethod
    def _call(observer, payload) -> None:
        try:
            observer(payload)
        except Exception:
            logger.exception("ledger_observer_failed", observer=repr(observer))

    @staticmethod
    def _audit(event: AuditEvent) -> None:
        log_dict = event.to_log_dict()
        if event.severity.value == "warning":
            logger.warning("audit_event", **log_dict)
        else:
            logger.info("audit_event", **log_dict)
