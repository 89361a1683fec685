"""Calendar views built from stored availability rules.

Every view calls occurrences() once per visible slot and merges by date.
Nothing is cached: a view always reflects the current rule edits.
"""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Dict, Iterable, List, Optional

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from plantogether.auth.visibility import (
    AccessDenied,
    circle_member_ids,
    visible_owner_ids,
)
from plantogether.database.availability_repository import AvailabilityRepository
from plantogether.models.availability import AvailabilitySlot, OccurrenceEntry, TimeWindow
from plantogether.models.constants import DEFAULT_MAX_RANGE_DAYS
from plantogether.models.recurrence import AvailabilityStatus
from plantogether.recurrence.expand import daterange, occurrences

load_dotenv()

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = int(os.getenv("AVAILABILITY_MAX_RANGE_DAYS", str(DEFAULT_MAX_RANGE_DAYS)))


def check_range(range_start: date, range_end: date, *, max_days: Optional[int] = None) -> None:
    """Reject inverted ranges and ranges wider than a calendar view."""
    limit = MAX_RANGE_DAYS if max_days is None else max_days
    if range_end < range_start:
        raise ValueError("range_end must be >= range_start")
    span = (range_end - range_start).days + 1
    if span > limit:
        raise ValueError(f"date range spans {span} days; at most {limit} allowed")


def merge_occurrences(
    slots: Iterable[AvailabilitySlot],
    range_start: date,
    range_end: date,
) -> Dict[date, List[OccurrenceEntry]]:
    """Expand each slot over the range and group the results by date.

    Dates come out ascending; entries within a date are ordered by start time,
    then owner, then slot id.
    """
    merged: Dict[date, List[OccurrenceEntry]] = {}
    for slot in slots:
        rule = slot.rule
        for day in occurrences(rule, range_start, range_end):
            merged.setdefault(day, []).append(
                OccurrenceEntry(
                    day=day,
                    slot_id=slot.id,
                    user_id=slot.user_id,
                    start_time=rule.start_time,
                    end_time=rule.end_time,
                    status=rule.status,
                    notes=rule.notes,
                )
            )
    return {
        day: sorted(merged[day], key=lambda e: (e.start_time, e.user_id, e.slot_id))
        for day in sorted(merged)
    }


def availability_in_range(
    db: Session,
    *,
    viewer_id: str,
    owner_ids: Iterable[str],
    range_start: date,
    range_end: date,
    statuses: Optional[Iterable[AvailabilityStatus]] = None,
) -> Dict[date, List[OccurrenceEntry]]:
    """Availability of the given owners as seen by viewer_id, keyed by date.

    Owners the viewer may not see are skipped (and logged), not reported.
    """
    check_range(range_start, range_end)
    requested = list(dict.fromkeys(owner_ids))
    visible = visible_owner_ids(db, viewer_id, requested)
    hidden = [o for o in requested if o not in visible]
    if hidden:
        logger.warning(f"Skipping availability of {len(hidden)} user(s) not visible to {viewer_id}")

    slots = AvailabilityRepository(db).list_for_users(visible, statuses=statuses)
    return merge_occurrences(slots, range_start, range_end)


def circle_availability_in_range(
    db: Session,
    *,
    viewer_id: str,
    circle_id: str,
    range_start: date,
    range_end: date,
    statuses: Optional[Iterable[AvailabilityStatus]] = None,
) -> Dict[date, List[OccurrenceEntry]]:
    """Availability of everyone in a circle the viewer created or belongs to."""
    members = circle_member_ids(db, viewer_id, circle_id)
    return availability_in_range(
        db,
        viewer_id=viewer_id,
        owner_ids=members,
        range_start=range_start,
        range_end=range_end,
        statuses=statuses,
    )


def union_windows(windows: Iterable[TimeWindow]) -> List[TimeWindow]:
    """Merge overlapping or touching windows into a sorted, disjoint list."""
    out: List[TimeWindow] = []
    for w in sorted(windows, key=lambda w: (w.start, w.end)):
        if out and w.start <= out[-1].end:
            if w.end > out[-1].end:
                out[-1] = TimeWindow(start=out[-1].start, end=w.end)
            continue
        out.append(w)
    return out


def intersect_windows(a: List[TimeWindow], b: List[TimeWindow]) -> List[TimeWindow]:
    """Intersection of two sorted, disjoint window lists."""
    out: List[TimeWindow] = []
    i = j = 0
    while i < len(a) and j < len(b):
        start = max(a[i].start, b[j].start)
        end = min(a[i].end, b[j].end)
        if start < end:
            out.append(TimeWindow(start=start, end=end))
        if a[i].end < b[j].end:
            i += 1
        else:
            j += 1
    return out


def common_free_time(
    db: Session,
    *,
    viewer_id: str,
    user_ids: Iterable[str],
    range_start: date,
    range_end: date,
) -> Dict[date, List[TimeWindow]]:
    """Windows on each date in which the viewer and every listed user are free.

    Raises:
        AccessDenied: if any listed user is not visible to the viewer
    """
    check_range(range_start, range_end)
    everyone = list(dict.fromkeys([viewer_id, *user_ids]))
    visible = set(visible_owner_ids(db, viewer_id, everyone))
    hidden = [u for u in everyone if u not in visible]
    if hidden:
        raise AccessDenied(f"Can only compare availability with friends ({len(hidden)} not visible)")

    slots = AvailabilityRepository(db).list_for_users(everyone, statuses=[AvailabilityStatus.FREE])
    by_date = merge_occurrences(slots, range_start, range_end)

    result: Dict[date, List[TimeWindow]] = {}
    for day in daterange(range_start, range_end):
        entries = by_date.get(day, [])
        common: Optional[List[TimeWindow]] = None
        for user_id in everyone:
            mine = union_windows(
                TimeWindow(start=e.start_time, end=e.end_time) for e in entries if e.user_id == user_id
            )
            common = mine if common is None else intersect_windows(common, mine)
            if not common:
                break
        if common:
            result[day] = common
    logger.debug(f"Common free time for {len(everyone)} user(s): {len(result)} day(s)")
    return result
