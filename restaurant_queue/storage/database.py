import json
import logging
from collections.abc import Iterable
from pathlib import Path

import aiosqlite

from restaurant_queue.models.booking import Booking
from restaurant_queue.models.branch import AppointmentSettings, Branch, User
from restaurant_queue.models.enums import BookingStatus, BookingType, Role
from restaurant_queue.models.settings import RestaurantSettings

logger = logging.getLogger(__name__)


def _iso(value: object) -> str | None:
    return value.isoformat() if value is not None else None  # type: ignore[attr-defined]


class DatabaseManager:
    """Async SQLite database manager with typed repository methods.

    All SQL in the application lives in this class. Other layers
    call typed methods that accept and return Pydantic models.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = str(db_path)
        self.connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL mode and foreign keys, execute schema."""
        self.connection = await aiosqlite.connect(self.db_path)
        self.connection.row_factory = aiosqlite.Row
        schema_path = Path(__file__).parent / "schema.sql"
        schema_sql = schema_path.read_text()
        await self.connection.executescript(schema_sql)
        await self.connection.execute("PRAGMA journal_mode=WAL")
        await self.connection.execute("PRAGMA foreign_keys=ON")
        await self.connection.commit()
        logger.info(f"Database initialized at {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    async def __aenter__(self) -> "DatabaseManager":
        await self.initialize()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        await self.close()

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        """Execute a single SQL statement and commit."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        await self.connection.commit()
        return cursor

    async def fetch_one(self, sql: str, params: tuple = ()) -> dict | None:
        """Execute a query and return a single row as a dict, or None."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def fetch_all(self, sql: str, params: tuple = ()) -> list[dict]:
        """Execute a query and return all rows as list of dicts."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    # ── Sequences ─────────────────────────────────────────────────────────

    async def next_sequence(self, name: str) -> int:
        """Increment and return the counter *name* (first value is 1)."""
        await self.execute(
            """INSERT INTO sequences (name, value) VALUES (?, 1)
               ON CONFLICT(name) DO UPDATE SET value = value + 1""",
            (name,),
        )
        row = await self.fetch_one("SELECT value FROM sequences WHERE name = ?", (name,))
        assert row is not None
        return row["value"]

    # ── Bookings ──────────────────────────────────────────────────────────

    def _row_to_booking(self, row: dict) -> Booking:
        """Convert a database row dict to a Booking model."""
        return Booking(
            id=row["id"],
            created_at=row["created_at"],
            status=BookingStatus(row["status"]),
            branch_id=row["branch_id"],
            booking_type=BookingType(row["booking_type"]),
            name=row["name"],
            mobile=row["mobile"],
            guests=row["guests"],
            seating_area=row["seating_area"],
            agreed_to_notifications=bool(row["agreed_to_notifications"]),
            appointment_date=row["appointment_date"],
            appointment_time=row["appointment_time"],
            estimated_wait_time=row["estimated_wait_time"],
            reminder_sent=bool(row["reminder_sent"]),
            seated_at=row["seated_at"],
            completed_at=row["completed_at"],
            visit_duration_minutes=row["visit_duration_minutes"],
        )

    async def save_booking(self, booking: Booking) -> None:
        """Insert a booking, or update the lifecycle fields of an existing one.

        The row keeps its rowid on update, which breaks ties between bookings
        created in the same instant.
        """
        await self.execute(
            """INSERT INTO bookings
               (id, created_at, status, branch_id, booking_type, name, mobile,
                guests, seating_area, agreed_to_notifications, appointment_date,
                appointment_time, estimated_wait_time, reminder_sent, seated_at,
                completed_at, visit_duration_minutes)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   status = excluded.status,
                   estimated_wait_time = excluded.estimated_wait_time,
                   reminder_sent = excluded.reminder_sent,
                   seated_at = excluded.seated_at,
                   completed_at = excluded.completed_at,
                   visit_duration_minutes = excluded.visit_duration_minutes""",
            (
                booking.id,
                booking.created_at.isoformat(),
                booking.status.value,
                booking.branch_id,
                booking.booking_type.value,
                booking.name,
                booking.mobile,
                booking.guests,
                booking.seating_area.value,
                booking.agreed_to_notifications,
                _iso(booking.appointment_date),
                booking.appointment_time,
                booking.estimated_wait_time,
                booking.reminder_sent,
                _iso(booking.seated_at),
                _iso(booking.completed_at),
                booking.visit_duration_minutes,
            ),
        )

    async def get_booking(self, booking_id: str) -> Booking | None:
        row = await self.fetch_one("SELECT * FROM bookings WHERE id = ?", (booking_id,))
        if not row:
            return None
        return self._row_to_booking(row)

    async def get_bookings(
        self,
        branch_id: str | None = None,
        statuses: Iterable[BookingStatus] | None = None,
        booking_type: BookingType | None = None,
        mobile: str | None = None,
    ) -> list[Booking]:
        """Bookings matching all given filters, oldest first."""
        clauses: list[str] = []
        params: list[object] = []
        if branch_id is not None:
            clauses.append("branch_id = ?")
            params.append(branch_id)
        if statuses is not None:
            status_values = [s.value for s in statuses]
            if not status_values:
                return []
            clauses.append(f"status IN ({', '.join('?' for _ in status_values)})")
            params.extend(status_values)
        if booking_type is not None:
            clauses.append("booking_type = ?")
            params.append(booking_type.value)
        if mobile is not None:
            clauses.append("mobile = ?")
            params.append(mobile)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await self.fetch_all(
            f"SELECT * FROM bookings{where} ORDER BY created_at, rowid",
            tuple(params),
        )
        return [self._row_to_booking(r) for r in rows]

    async def get_average_visit_duration(self, branch_id: str) -> float | None:
        """Mean visit duration of completed bookings, None if there are none."""
        row = await self.fetch_one(
            """SELECT AVG(visit_duration_minutes) AS avg_minutes FROM bookings
               WHERE branch_id = ? AND status = 'COMPLETED'
                 AND visit_duration_minutes IS NOT NULL""",
            (branch_id,),
        )
        if not row or row["avg_minutes"] is None:
            return None
        return float(row["avg_minutes"])

    # ── Currently Serving ─────────────────────────────────────────────────

    async def set_serving(self, branch_id: str, booking_id: str) -> None:
        await self.execute(
            """INSERT INTO serving (branch_id, booking_id, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(branch_id) DO UPDATE SET
                   booking_id = excluded.booking_id,
                   updated_at = CURRENT_TIMESTAMP""",
            (branch_id, booking_id),
        )

    async def get_serving(self, branch_id: str) -> str | None:
        row = await self.fetch_one(
            "SELECT booking_id FROM serving WHERE branch_id = ?", (branch_id,)
        )
        return row["booking_id"] if row else None

    # ── Branches ──────────────────────────────────────────────────────────

    def _row_to_branch(self, row: dict) -> Branch:
        """Convert a database row dict to a Branch model."""
        return Branch(
            id=row["id"],
            name=row["name"],
            location=row["location"],
            image_url=row["image_url"],
            google_maps_url=row["google_maps_url"],
            review_url=row["review_url"],
            is_waitlist_enabled=bool(row["is_waitlist_enabled"]),
            waitlist_opening_time=row["waitlist_opening_time"],
            waitlist_closing_time=row["waitlist_closing_time"],
            is_appointment_enabled=bool(row["is_appointment_enabled"]),
            appointment_settings=AppointmentSettings.model_validate_json(
                row["appointment_settings"]
            ),
        )

    async def save_branch(self, branch: Branch) -> None:
        await self.execute(
            """INSERT INTO branches
               (id, name, location, image_url, google_maps_url, review_url,
                is_waitlist_enabled, waitlist_opening_time, waitlist_closing_time,
                is_appointment_enabled, appointment_settings)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name,
                   location = excluded.location,
                   image_url = excluded.image_url,
                   google_maps_url = excluded.google_maps_url,
                   review_url = excluded.review_url,
                   is_waitlist_enabled = excluded.is_waitlist_enabled,
                   waitlist_opening_time = excluded.waitlist_opening_time,
                   waitlist_closing_time = excluded.waitlist_closing_time,
                   is_appointment_enabled = excluded.is_appointment_enabled,
                   appointment_settings = excluded.appointment_settings""",
            (
                branch.id,
                branch.name,
                branch.location,
                branch.image_url,
                branch.google_maps_url,
                branch.review_url,
                branch.is_waitlist_enabled,
                branch.waitlist_opening_time,
                branch.waitlist_closing_time,
                branch.is_appointment_enabled,
                branch.appointment_settings.model_dump_json(),
            ),
        )

    async def get_branch(self, branch_id: str) -> Branch | None:
        row = await self.fetch_one("SELECT * FROM branches WHERE id = ?", (branch_id,))
        if not row:
            return None
        return self._row_to_branch(row)

    async def get_branches(self) -> list[Branch]:
        rows = await self.fetch_all("SELECT * FROM branches ORDER BY rowid")
        return [self._row_to_branch(r) for r in rows]

    async def delete_branch(self, branch_id: str) -> None:
        await self.execute("DELETE FROM branches WHERE id = ?", (branch_id,))

    # ── Users ─────────────────────────────────────────────────────────────

    async def save_user(self, user: User) -> None:
        await self.execute(
            """INSERT OR REPLACE INTO users (id, name, mobile, role, branch_id)
               VALUES (?, ?, ?, ?, ?)""",
            (user.id, user.name, user.mobile, user.role.value, user.branch_id),
        )

    async def get_users(self, branch_id: str | None = None) -> list[User]:
        if branch_id is None:
            rows = await self.fetch_all("SELECT * FROM users ORDER BY rowid")
        else:
            rows = await self.fetch_all(
                "SELECT * FROM users WHERE branch_id = ? ORDER BY rowid", (branch_id,)
            )
        return [
            User(
                id=r["id"],
                name=r["name"],
                mobile=r["mobile"],
                role=Role(r["role"]),
                branch_id=r["branch_id"],
            )
            for r in rows
        ]

    async def delete_user(self, user_id: str) -> None:
        await self.execute("DELETE FROM users WHERE id = ?", (user_id,))

    # ── Restaurant Settings ───────────────────────────────────────────────

    async def get_restaurant_settings(self) -> RestaurantSettings | None:
        row = await self.fetch_one("SELECT data FROM restaurant_settings WHERE id = 1")
        if not row:
            return None
        return RestaurantSettings.model_validate(json.loads(row["data"]))

    async def save_restaurant_settings(self, settings: RestaurantSettings) -> None:
        await self.execute(
            """INSERT INTO restaurant_settings (id, data, updated_at)
               VALUES (1, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(id) DO UPDATE SET
                   data = excluded.data,
                   updated_at = CURRENT_TIMESTAMP""",
            (settings.model_dump_json(),),
        )
