"""
Availability classification and availability-grid selection helpers.
"""

from typing import Iterable, Mapping, Optional

from constants import ASSIGNABLE_STATUSES, STATUS_LABELS, STATUS_LABEL_NOT_SET
from models import AvailabilityBuckets, AvailabilityMark, AvailabilitySummary, LineupPlayer, PaintMode


def latest_statuses(marks: Iterable[AvailabilityMark]) -> dict[str, str]:
    """Member id -> status. Duplicate marks for a member are not rejected; the last one wins."""
    return {mark.roster_member_id: mark.status for mark in marks}


def bucket_players(players: Iterable[LineupPlayer]) -> AvailabilityBuckets:
    """
    Split players for the lineup builder's side lists.

    ``maybe`` and ``late`` count as available so they can still be picked.
    ``last_resort`` players get their own list instead of vanishing from all three.
    """
    buckets = AvailabilityBuckets()
    for player in players:
        status = player.availability
        if status is None:
            buckets.not_set.append(player)
        elif status in ASSIGNABLE_STATUSES:
            buckets.available.append(player)
        elif status == "unavailable":
            buckets.unavailable.append(player)
        else:
            buckets.last_resort.append(player)
    return buckets


def summarize(statuses: Mapping[str, str], roster_ids: Iterable[str]) -> AvailabilitySummary:
    """Per-status counts across a roster; members without a mark count as not set."""
    counts = {"available": 0, "unavailable": 0, "maybe": 0, "late": 0, "last_resort": 0, "not_set": 0}
    total = 0
    for member_id in roster_ids:
        total += 1
        counts[statuses.get(member_id) or "not_set"] += 1
    return AvailabilitySummary(total=total, **counts)


def status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status, STATUS_LABEL_NOT_SET)


# ============ DRAG-TO-PAINT SELECTION ============

def toggle_slot(selected: Iterable[str], time: str) -> list[str]:
    current = list(selected)
    if time in current:
        return [slot for slot in current if slot != time]
    return sorted(current + [time])


def paint_mode(selected: Iterable[str], time: str) -> PaintMode:
    """A drag that starts on a selected slot clears slots, otherwise it fills them."""
    return "deselect" if time in selected else "select"


def paint(selected: Iterable[str], time: str, mode: PaintMode) -> list[str]:
    current = list(selected)
    is_selected = time in current
    if (mode == "select" and not is_selected) or (mode == "deselect" and is_selected):
        return toggle_slot(current, time)
    return sorted(current)


def toggle_weekly_slot(weekly: Mapping[str, list[str]], day: str, time: str) -> dict[str, list[str]]:
    updated = {key: list(slots) for key, slots in weekly.items()}
    updated[day] = toggle_slot(weekly.get(day, []), time)
    return updated


def paint_weekly(weekly: Mapping[str, list[str]], day: str, time: str, mode: PaintMode) -> dict[str, list[str]]:
    updated = {key: list(slots) for key, slots in weekly.items()}
    updated[day] = paint(weekly.get(day, []), time, mode)
    return updated


def paint_drag(
    weekly: Mapping[str, list[str]], day: str, times: Iterable[str], mode: Optional[PaintMode] = None
) -> tuple[dict[str, list[str]], PaintMode]:
    """
    Apply one drag across a day's column. ``times`` are the slots in the order
    the pointer entered them; when no mode is given the first slot picks it.
    """
    times = list(times)
    if mode is None:
        mode = paint_mode(weekly.get(day, []), times[0])
    updated = {key: list(slots) for key, slots in weekly.items()}
    for time in times:
        updated = paint_weekly(updated, day, time, mode)
    return updated, mode


def weekly_template(weekly: Optional[Mapping[str, list[str]]], days: Iterable[str]) -> dict[str, list[str]]:
    """Every day present, in ``days`` order, with sorted slots. Unknown days are dropped."""
    weekly = weekly or {}
    return {day: sorted(weekly.get(day, [])) for day in days}
