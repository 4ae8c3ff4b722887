from datetime import UTC, datetime

from restaurant_queue.engine.stats import (
    build_customer_log,
    export_customer_log_csv,
    get_wait_time_stats,
    search_archive,
)
from restaurant_queue.models.enums import BookingStatus
from restaurant_queue.models.stats import CustomerVisit
from tests.factories import make_booking


def _done(completed_at: datetime, wait: int | None, **overrides: object):
    defaults: dict = {
        "status": BookingStatus.COMPLETED,
        "completed_at": completed_at,
        "created_at": completed_at,
        "estimated_wait_time": wait,
    }
    defaults.update(overrides)
    return make_booking(**defaults)


class TestWaitTimeStats:
    def test_twelve_monthly_buckets(self):
        bookings = [
            _done(datetime(2025, 1, 5, 12, tzinfo=UTC), 10),
            _done(datetime(2025, 1, 20, 12, tzinfo=UTC), 15, id="002"),
            _done(datetime(2025, 3, 1, 12, tzinfo=UTC), 30, id="003"),
        ]
        buckets = get_wait_time_stats(bookings, 2025)
        assert [b.label for b in buckets] == [
            "Jan", "Feb", "Mar", "Apr", "May", "Jun",
            "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
        ]
        values = {b.label: b.value for b in buckets}
        assert values["Jan"] == 13  # 12.5 rounds up
        assert values["Mar"] == 30
        assert values["Feb"] == 0

    def test_empty_data_gives_zeroed_buckets(self):
        buckets = get_wait_time_stats([], 2025)
        assert len(buckets) == 12
        assert all(b.value == 0 for b in buckets)

    def test_daily_buckets_cover_month(self):
        buckets = get_wait_time_stats([], 2024, 2)
        assert [b.label for b in buckets] == [str(d) for d in range(1, 30)]

    def test_daily_values(self):
        bookings = [_done(datetime(2025, 4, 3, 12, tzinfo=UTC), 20)]
        buckets = get_wait_time_stats(bookings, 2025, 4)
        assert len(buckets) == 30
        assert buckets[2].value == 20

    def test_filters(self):
        bookings = [
            _done(datetime(2025, 5, 1, 12, tzinfo=UTC), 0),
            _done(datetime(2025, 5, 1, 12, tzinfo=UTC), None, id="002"),
            _done(datetime(2025, 5, 1, 12, tzinfo=UTC), 50, id="003", branch_id="branch2"),
            _done(datetime(2024, 5, 1, 12, tzinfo=UTC), 50, id="004"),
            make_booking(id="005", status=BookingStatus.CANCELLED, estimated_wait_time=50),
            _done(datetime(2025, 5, 1, 12, tzinfo=UTC), 20, id="006"),
        ]
        values = {b.label: b.value for b in get_wait_time_stats(bookings, 2025, "all", "branch1")}
        assert values["May"] == 20

    def test_uses_restaurant_timezone(self):
        # 22:30 UTC on Jan 31 is Feb 1 in Riyadh
        bookings = [_done(datetime(2025, 1, 31, 22, 30, tzinfo=UTC), 40)]
        values = {b.label: b.value for b in get_wait_time_stats(bookings, 2025)}
        assert values["Jan"] == 0
        assert values["Feb"] == 40


class TestCustomerLog:
    def test_counts_completed_visits_per_mobile(self):
        when = datetime(2025, 6, 1, 12, tzinfo=UTC)
        bookings = [
            _done(when, 10, id="001", mobile="+966500000001", name="Ali"),
            _done(when, 10, id="002", mobile="+966500000001", name="Ali"),
            _done(when, 10, id="003", mobile="+966500000002", name="Huda"),
            make_booking(id="004", mobile="+966500000002", status=BookingStatus.CANCELLED),
        ]
        log = build_customer_log(bookings)
        assert [(c.name, c.visit_count) for c in log] == [("Ali", 2), ("Huda", 1)]

    def test_period_filter_on_creation(self):
        bookings = [
            _done(datetime(2025, 6, 1, 12, tzinfo=UTC), 10),
            _done(datetime(2025, 7, 1, 12, tzinfo=UTC), 10, id="002"),
        ]
        assert build_customer_log(bookings, 2025, 7)[0].visit_count == 1
        assert build_customer_log(bookings, 2024) == []

    def test_csv_export(self):
        entries = [
            CustomerVisit(name="Ali", mobile="+966500000001", visit_count=2),
            CustomerVisit(name="Huda, Jr", mobile="+966500000002", visit_count=1),
        ]
        assert export_customer_log_csv(entries) == (
            "Name,Mobile,VisitCount\n"
            "Ali,0500000001,2\n"
            '"Huda, Jr",0500000002,1\n'
        )

    def test_csv_header_only(self):
        assert export_customer_log_csv([]) == "Name,Mobile,VisitCount\n"


class TestSearchArchive:
    def _bookings(self):
        return [
            _done(datetime(2025, 6, 1, 12, tzinfo=UTC), 10, id="001", name="Ali"),
            make_booking(
                id="002",
                name="Huda",
                mobile="+966500000002",
                status=BookingStatus.CANCELLED,
                created_at=datetime(2025, 6, 2, 12, tzinfo=UTC),
            ),
            make_booking(id="003", name="Alia", status=BookingStatus.WAITING),
        ]

    def test_archived_newest_first(self):
        assert [b.id for b in search_archive(self._bookings())] == ["002", "001"]

    def test_name_search_case_insensitive(self):
        assert [b.id for b in search_archive(self._bookings(), "ALI")] == ["001"]

    def test_local_mobile_search(self):
        assert [b.id for b in search_archive(self._bookings(), "0500000002")] == ["002"]
