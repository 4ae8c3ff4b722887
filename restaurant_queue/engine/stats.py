"""Reporting over archived bookings: wait-time charts, customer log, archive search."""

import calendar
import csv
import io
from collections.abc import Iterable
from datetime import datetime
from zoneinfo import ZoneInfo

from restaurant_queue.engine.transitions import round_half_up
from restaurant_queue.models.booking import Booking
from restaurant_queue.models.enums import BookingStatus
from restaurant_queue.models.mobile import format_mobile_for_display
from restaurant_queue.models.stats import CustomerVisit, WaitTimeBucket

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
CSV_HEADER = ["Name", "Mobile", "VisitCount"]
ARCHIVE_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})


def _in_branch(booking: Booking, branch_id: str) -> bool:
    return branch_id == "all" or booking.branch_id == branch_id


def _in_period(moment: datetime, year: int | str, month: int | str) -> bool:
    if year != "all" and moment.year != year:
        return False
    return month == "all" or moment.month == month


def get_wait_time_stats(
    bookings: Iterable[Booking],
    year: int,
    month: int | str = "all",
    branch_id: str = "all",
    timezone: str = "Asia/Riyadh",
) -> list[WaitTimeBucket]:
    """Average estimated wait of completed bookings, bucketed for charting.

    Args:
        bookings: All bookings to consider.
        year: Calendar year of ``completed_at``.
        month: 1-12 for one bucket per day of that month, or ``"all"`` for
            twelve monthly buckets.
        branch_id: Branch filter or ``"all"``.
        timezone: Zone used to place ``completed_at`` on the calendar.

    Returns:
        Every bucket of the period in order, 0 where there is no data.
    """
    tz = ZoneInfo(timezone)
    totals: dict[int, list[int]] = {}
    for booking in bookings:
        if booking.status != BookingStatus.COMPLETED or booking.completed_at is None:
            continue
        if not booking.estimated_wait_time or booking.estimated_wait_time <= 0:
            continue
        if not _in_branch(booking, branch_id):
            continue
        local = booking.completed_at.astimezone(tz)
        if not _in_period(local, year, month):
            continue
        key = local.month if month == "all" else local.day
        totals.setdefault(key, []).append(booking.estimated_wait_time)

    if month == "all":
        keys = range(1, 13)
        labels = MONTH_LABELS
    else:
        days = calendar.monthrange(year, int(month))[1]
        keys = range(1, days + 1)
        labels = [str(day) for day in keys]

    buckets = []
    for key, label in zip(keys, labels, strict=True):
        values = totals.get(key)
        value = round_half_up(sum(values) / len(values)) if values else 0
        buckets.append(WaitTimeBucket(label=label, value=value))
    return buckets


def _filter_created(
    bookings: Iterable[Booking],
    year: int | str,
    month: int | str,
    branch_id: str,
    tz: ZoneInfo,
) -> list[Booking]:
    return [
        b
        for b in bookings
        if _in_branch(b, branch_id) and _in_period(b.created_at.astimezone(tz), year, month)
    ]


def build_customer_log(
    bookings: Iterable[Booking],
    year: int | str = "all",
    month: int | str = "all",
    branch_id: str = "all",
    timezone: str = "Asia/Riyadh",
) -> list[CustomerVisit]:
    """Completed visits per mobile number, most frequent first.

    The name kept for a customer is the one on their earliest booking.
    """
    tz = ZoneInfo(timezone)
    visits: dict[str, CustomerVisit] = {}
    for booking in _filter_created(bookings, year, month, branch_id, tz):
        if booking.status != BookingStatus.COMPLETED:
            continue
        entry = visits.get(booking.mobile)
        if entry is None:
            visits[booking.mobile] = CustomerVisit(
                name=booking.name, mobile=booking.mobile, visit_count=1
            )
        else:
            entry.visit_count += 1
    return sorted(visits.values(), key=lambda v: v.visit_count, reverse=True)


def export_customer_log_csv(entries: Iterable[CustomerVisit]) -> str:
    """Render the customer log as CSV with local ``05...`` mobile numbers."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for entry in entries:
        writer.writerow([entry.name, format_mobile_for_display(entry.mobile), entry.visit_count])
    return buffer.getvalue()


def search_archive(
    bookings: Iterable[Booking],
    search_term: str = "",
    year: int | str = "all",
    month: int | str = "all",
    branch_id: str = "all",
    timezone: str = "Asia/Riyadh",
) -> list[Booking]:
    """Completed and cancelled bookings matching a name or mobile fragment, newest first."""
    tz = ZoneInfo(timezone)
    term = search_term.strip().lower()
    matches = [
        b
        for b in _filter_created(bookings, year, month, branch_id, tz)
        if b.status in ARCHIVE_STATUSES
        and (
            not term
            or term in b.name.lower()
            or term in b.mobile
            or term in format_mobile_for_display(b.mobile)
        )
    ]
    return sorted(matches, key=lambda b: b.created_at, reverse=True)
