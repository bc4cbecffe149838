"""
In-Memory Ledger Backend

Implements both the live source and the write collaborator on top of a
dict of per-user documents. Used by the tests and for offline work.

Delivery is synchronous: every change pushes the full ordered document set
to each active subscriber of that user before the call returns.
"""

from datetime import datetime, timezone
from itertools import count
from typing import Hashable, Optional
from uuid import uuid4

from bill_tracker.services.storage.interface import (
    ErrorCallback,
    LedgerRecord,
    LedgerSourceInterface,
    LedgerWriterInterface,
    RecordsCallback,
    SubmissionError,
    SubscriptionError,
)


def _sort_key(record: LedgerRecord) -> datetime:
    value = record.get("date")
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    # Undated records sort last, like a missing orderBy field
    return datetime.min.replace(tzinfo=timezone.utc)


class InMemoryLedgerBackend(LedgerSourceInterface, LedgerWriterInterface):
    """
    Ordered document store kept in process memory.

    Besides the collaborator contracts it exposes a few hooks to
    simulate remote behaviour: ``put_raw`` (write a document as-is),
    ``remove`` (remote deletion), ``fail`` (feed error) and
    ``reject_writes`` (failing write collaborator).
    """

    def __init__(self):
        self._documents: dict[str, list[LedgerRecord]] = {}
        self._subscribers: dict[int, tuple[str, RecordsCallback, ErrorCallback]] = {}
        self._handles = count(1)
        self.denied_users: set[str] = set()
        self.reject_writes: Optional[str] = None
        self.submitted: list[tuple[str, LedgerRecord]] = []
        self.unsubscribe_calls: list[Hashable] = []

    # -- source ---------------------------------------------------------------

    def subscribe(
        self,
        user_id: str,
        on_records: RecordsCallback,
        on_error: ErrorCallback,
    ) -> Hashable:
        if user_id in self.denied_users:
            raise SubscriptionError(f"Access denied for user {user_id}")
        handle = next(self._handles)
        self._subscribers[handle] = (user_id, on_records, on_error)
        on_records(self.documents(user_id))
        return handle

    def unsubscribe(self, handle: Hashable) -> None:
        self.unsubscribe_calls.append(handle)
        self._subscribers.pop(handle, None)

    @property
    def active_subscriptions(self) -> list[str]:
        return [user_id for user_id, _, _ in self._subscribers.values()]

    # -- writer ---------------------------------------------------------------

    async def submit(self, user_id: str, record: LedgerRecord) -> str:
        if self.reject_writes:
            raise SubmissionError(self.reject_writes)
        entry_id = uuid4().hex
        stored = dict(record, id=entry_id)
        self.submitted.append((user_id, stored))
        self.put_raw(user_id, stored)
        return entry_id

    # -- simulation hooks -----------------------------------------------------

    def documents(self, user_id: str) -> list[LedgerRecord]:
        """Full document set for ``user_id``, ordered by date descending."""
        docs = [dict(doc) for doc in self._documents.get(user_id, [])]
        return sorted(docs, key=_sort_key, reverse=True)

    def put_raw(self, user_id: str, record: LedgerRecord) -> None:
        """Store ``record`` without any validation and notify subscribers."""
        record = dict(record)
        record.setdefault("id", uuid4().hex)
        self._documents.setdefault(user_id, []).append(record)
        self._notify(user_id)

    def remove(self, user_id: str, entry_id: str) -> None:
        docs = self._documents.get(user_id, [])
        self._documents[user_id] = [d for d in docs if d.get("id") != entry_id]
        self._notify(user_id)

    def fail(self, user_id: str, error: Exception) -> None:
        """Report ``error`` to every subscriber of ``user_id``."""
        for owner, _, on_error in list(self._subscribers.values()):
            if owner == user_id:
                on_error(error)

    def _notify(self, user_id: str) -> None:
        for owner, on_records, _ in list(self._subscribers.values()):
            if owner == user_id:
                on_records(self.documents(user_id))
