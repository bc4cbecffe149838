"""
Remote record normalization.

Turns raw feed documents into ``LedgerEntry`` objects. The policy is
availability first: a record with a missing or unreadable ``date`` is kept
and stamped with the delivery time, so one bad record cannot blank the
ledger. This is a known tolerance, not an integrity guarantee; every
normalized record is reported.

Records whose amount or type cannot be recovered would corrupt the totals,
so they are dropped from the snapshot (and reported) instead.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

from pydantic import ValidationError

from bill_tracker.models.entry import (
    CENT,
    EntryType,
    LedgerEntry,
    to_utc,
    utc_now,
)
from bill_tracker.services.storage.interface import LedgerRecord


# Epoch values above this are taken as milliseconds
_MS_THRESHOLD = 10 ** 11


class DroppedRecord(NamedTuple):
    entry_id: Optional[str]
    reason: str


class NormalizedBatch(NamedTuple):
    entries: list[LedgerEntry]
    normalized: dict[str, list[str]]
    dropped: list[DroppedRecord]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Read a store-native timestamp.

    Accepts datetimes (Firestore returns ``DatetimeWithNanoseconds``), dates,
    ISO-8601 strings, epoch seconds or milliseconds, and objects exposing
    ``to_datetime()`` / ``ToDatetime()``. Returns None when unreadable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > _MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    for method in ("to_datetime", "ToDatetime"):
        converter = getattr(value, method, None)
        if callable(converter):
            try:
                return parse_timestamp(converter())
            except Exception:
                return None
    return None


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    A finite Decimal that can be held at cent precision, or None.

    The value is returned unrounded so callers can tell sub-cent input apart.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            return None
        amount.quantize(CENT)
    except (InvalidOperation, ValueError):
        return None
    return amount


def parse_entry_type(value: Any) -> Optional[EntryType]:
    if isinstance(value, EntryType):
        return value
    if not isinstance(value, str):
        return None
    try:
        return EntryType(value.strip().lower())
    except ValueError:
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_record(
    record: LedgerRecord,
    now: datetime,
) -> tuple[Optional[LedgerEntry], list[str], Optional[str]]:
    """
    Normalize one remote document.

    Returns:
        (entry, defaulted_fields, drop_reason). ``entry`` is None exactly
        when ``drop_reason`` is set.
    """
    entry_id = _text(record.get("id")).strip()
    if not entry_id:
        return None, [], "missing id"

    amount = parse_amount(record.get("amount"))
    if amount is None or amount.quantize(CENT) <= 0:
        return None, [], f"invalid amount: {record.get('amount')!r}"

    entry_type = parse_entry_type(record.get("type"))
    if entry_type is None:
        return None, [], f"invalid type: {record.get('type')!r}"

    defaulted: list[str] = []
    timestamp = parse_timestamp(record.get("date"))
    if timestamp is None:
        timestamp = now
        defaulted.append("date")

    attachment_url = record.get("attachmentURL", record.get("attachment_url"))
    if attachment_url is not None and not isinstance(attachment_url, str):
        attachment_url = None
        defaulted.append("attachmentURL")

    try:
        entry = LedgerEntry(
            id=entry_id,
            title=_text(record.get("title"))[:200],
            amount=amount,
            type=entry_type,
            note=_text(record.get("note")),
            date=timestamp,
            attachment_url=attachment_url or None,
        )
    except ValidationError as e:
        return None, [], f"unreadable record: {e.error_count()} errors"

    return entry, defaulted, None


def normalize_records(
    records: list[LedgerRecord],
    now: Optional[datetime] = None,
) -> NormalizedBatch:
    """
    Normalize a full feed delivery.

    Arrival order is preserved. When two documents share an id, the first
    one wins and the rest are dropped.
    """
    now = now or utc_now()
    entries: list[LedgerEntry] = []
    normalized: dict[str, list[str]] = {}
    dropped: list[DroppedRecord] = []
    seen: set[str] = set()

    for record in records:
        if not isinstance(record, dict):
            dropped.append(DroppedRecord(None, "not a document"))
            continue

        entry, defaulted, reason = normalize_record(record, now)
        if entry is None:
            dropped.append(DroppedRecord(_text(record.get("id")) or None, reason))
            continue
        if entry.id in seen:
            dropped.append(DroppedRecord(entry.id, "duplicate id"))
            continue

        seen.add(entry.id)
        entries.append(entry)
        if defaulted:
            normalized[entry.id] = defaulted

    return NormalizedBatch(entries=entries, normalized=normalized, dropped=dropped)
