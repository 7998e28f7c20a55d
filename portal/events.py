"""
Event Classifier
================

Splits an entity's events into the "past" and "upcoming" buckets by comparing
each event's calendar date with today. The backend stores the two buckets as
separate collections, so a record changing bucket has to be deleted from one
collection and created in the other.

Timezone policy: event dates are calendar days with no timezone. "Today" is
the calendar date in the configured IANA timezone, or the client's local
date when none is configured.

Classification is only re-run when asked (dashboard load, event create or
edit); nothing re-checks buckets on a timer.
"""

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from portal.schemas import EventRecord

DateLike = Union[dt.date, dt.datetime]


class Bucket(str, Enum):
    PAST = "past"
    UPCOMING = "upcoming"

    @property
    def other(self) -> "Bucket":
        return Bucket.UPCOMING if self is Bucket.PAST else Bucket.PAST


def today(timezone: Optional[str] = None) -> dt.date:
    """Current calendar date under the portal's timezone policy"""
    if timezone:
        return dt.datetime.now(ZoneInfo(timezone)).date()
    return dt.date.today()


def _calendar_day(value: DateLike) -> dt.date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def classify(event_date: DateLike, reference_now: DateLike) -> Bucket:
    """PAST if the event's day is strictly before the reference day, else UPCOMING"""
    if _calendar_day(event_date) < _calendar_day(reference_now):
        return Bucket.PAST
    return Bucket.UPCOMING


@dataclass
class Partition:
    """Corrected bucket contents after a reclassification pass"""
    past: List[EventRecord]
    upcoming: List[EventRecord]
    moved_to_past: List[EventRecord] = field(default_factory=list)
    moved_to_upcoming: List[EventRecord] = field(default_factory=list)

    @property
    def moved(self) -> int:
        return len(self.moved_to_past) + len(self.moved_to_upcoming)


def reclassify_all(
    past: Sequence[EventRecord],
    upcoming: Sequence[EventRecord],
    reference_now: DateLike,
) -> Optional[Partition]:
    """
    Re-check every record against `reference_now`.

    Expired upcoming events move to the end of the past list; past events
    whose date is today or later (a corrected date) move to the end of the
    upcoming list. Records without a date stay where they are.

    Returns None when nothing moved, so callers know no write is needed.
    The input sequences are not modified.
    """
    still_upcoming: List[EventRecord] = []
    moved_to_past: List[EventRecord] = []
    for record in upcoming:
        if record.date is not None and classify(record.date, reference_now) is Bucket.PAST:
            moved_to_past.append(record)
        else:
            still_upcoming.append(record)

    still_past: List[EventRecord] = []
    moved_to_upcoming: List[EventRecord] = []
    for record in past:
        if record.date is not None and classify(record.date, reference_now) is Bucket.UPCOMING:
            moved_to_upcoming.append(record)
        else:
            still_past.append(record)

    if not moved_to_past and not moved_to_upcoming:
        return None

    return Partition(
        past=still_past + moved_to_past,
        upcoming=still_upcoming + moved_to_upcoming,
        moved_to_past=moved_to_past,
        moved_to_upcoming=moved_to_upcoming,
    )


def place_on_create(record: EventRecord, now: Optional[DateLike] = None) -> Bucket:
    """Bucket a newly created record goes into"""
    if record.date is None:
        raise ValueError("Cannot place an event without a date")
    return classify(record.date, now if now is not None else today())


@dataclass
class Placement:
    """Where an edited record belongs and whether it changed collection"""
    bucket: Bucket
    record: EventRecord
    moved: bool


def place_on_edit(
    existing: EventRecord,
    updated_fields: Dict[str, Any],
    previous_bucket: Bucket,
    now: Optional[DateLike] = None,
) -> Placement:
    """
    Apply `updated_fields` to `existing` and re-classify.

    When `moved` is set the caller must remove the record from the previous
    bucket's collection and create it in the new one; relabelling is not
    enough because the backend partitions by collection.
    """
    record = existing.merged(updated_fields)
    bucket = place_on_create(record, now)
    return Placement(bucket=bucket, record=record, moved=bucket is not previous_bucket)
