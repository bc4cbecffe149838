"""
Firestore Ledger Backend

DESIGN DECISION: Firestore is the remote ordered-document store because:
1. ``on_snapshot`` gives a push feed of the full query result
2. Ordering by date is done server-side
3. Per-user sub-collections scope data by subscription key

Ledger documents live at ``{users}/{user_id}/{bills}/{entry_id}``.
Ownership is enforced by the path, never by document content.

The Firebase Admin app is a process-wide handle. It is created explicitly
through :class:`FirestoreClient` and passed into the source and writer,
so tests can substitute doubles without touching globals.
"""

import threading
from typing import Any, Hashable, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gexc
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bill_tracker.config import get_settings
from bill_tracker.logging_setup import get_logger
from bill_tracker.services.storage.interface import (
    ConnectionError,
    ErrorCallback,
    LedgerRecord,
    LedgerSourceInterface,
    LedgerWriterInterface,
    RecordsCallback,
    SubmissionError,
    SubscriptionError,
)


_TRANSIENT_ERRORS = (
    gexc.Aborted,
    gexc.DeadlineExceeded,
    gexc.InternalServerError,
    gexc.ResourceExhausted,
    gexc.ServiceUnavailable,
    gexc.TooManyRequests,
)

_APP_NAME = "bill-tracker"

logger = get_logger(__name__)


class FirestoreClient:
    """
    Owns the Firebase Admin app and the Firestore client.

    ``init()`` and ``close()`` bracket the client's lifetime.
    """

    _lock = threading.Lock()

    def __init__(self):
        self._settings = get_settings().firebase
        self._app: Optional[firebase_admin.App] = None
        self._db = None

    def init(self):
        """Initialize the Firebase app once and return the Firestore client."""
        if self._db is not None:
            return self._db

        with self._lock:
            if self._db is not None:
                return self._db
            try:
                if self._settings.credentials_path:
                    cred = credentials.Certificate(self._settings.credentials_path)
                else:
                    cred = credentials.ApplicationDefault()
                options = {}
                if self._settings.project_id:
                    options["projectId"] = self._settings.project_id
                try:
                    self._app = firebase_admin.get_app(_APP_NAME)
                except ValueError:
                    self._app = firebase_admin.initialize_app(
                        cred, options, name=_APP_NAME
                    )
                self._db = firestore.client(app=self._app)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Firebase credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Firestore: {e}")
        return self._db

    def close(self) -> None:
        """Release the Firebase app. Safe to call more than once."""
        with self._lock:
            if self._app is not None:
                firebase_admin.delete_app(self._app)
            self._app = None
            self._db = None

    def bills_collection(self, user_id: str):
        """The per-user ledger collection."""
        db = self.init()
        return (
            db.collection(self._settings.users_collection)
            .document(user_id)
            .collection(self._settings.bills_collection)
        )


def document_to_record(snapshot) -> LedgerRecord:
    """Flatten a Firestore document snapshot into a raw ledger record."""
    data: dict[str, Any] = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class FirestoreLedgerSource(LedgerSourceInterface):
    """
    Live ledger feed built on ``Query.on_snapshot``.

    Firestore invokes the callback on its own watch thread; the ledger store
    serializes deliveries, so no locking is needed here.
    """

    def __init__(self, client: FirestoreClient):
        self._client = client
        self._watches: dict[int, Any] = {}
        self._next_handle = 0

    def subscribe(
        self,
        user_id: str,
        on_records: RecordsCallback,
        on_error: ErrorCallback,
    ) -> Hashable:
        def on_snapshot(doc_snapshots, changes, read_time):
            try:
                records = [document_to_record(doc) for doc in doc_snapshots]
            except Exception as e:
                on_error(SubscriptionError(f"Unreadable feed delivery: {e}"))
                return
            on_records(records)

        try:
            query = self._client.bills_collection(user_id).order_by(
                "date", direction=firestore.Query.DESCENDING
            )
            watch = query.on_snapshot(on_snapshot)
        except gexc.PermissionDenied as e:
            raise SubscriptionError(f"Access denied for user {user_id}: {e}")
        except ConnectionError:
            raise
        except Exception as e:
            raise SubscriptionError(f"Failed to subscribe to ledger: {e}")

        self._next_handle += 1
        self._watches[self._next_handle] = watch
        logger.info("firestore_watch_started", user_id=user_id, handle=self._next_handle)
        return self._next_handle

    def unsubscribe(self, handle: Hashable) -> None:
        watch = self._watches.pop(handle, None)
        if watch is None:
            return
        try:
            watch.unsubscribe()
        except Exception as e:
            # The watch is already detached from our handle table; a failing
            # close only means the stream died first.
            logger.warning("firestore_watch_close_failed", handle=handle, error=str(e))


class FirestoreLedgerWriter(LedgerWriterInterface):
    """Appends new ledger documents; Firestore assigns the id."""

    def __init__(self, client: FirestoreClient):
        self._client = client

    @retry(
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _add(self, user_id: str, record: LedgerRecord) -> str:
        _, doc_ref = self._client.bills_collection(user_id).add(record)
        return doc_ref.id

    async def submit(self, user_id: str, record: LedgerRecord) -> str:
        payload = {k: v for k, v in record.items() if k != "id"}
        try:
            return self._add(user_id, payload)
        except ConnectionError as e:
            raise SubmissionError(str(e))
        except Exception as e:
            raise SubmissionError(f"Failed to save entry: {e}")
