import logging

from fastmcp import FastMCP

from restaurant_queue.engine.stats import (
    build_customer_log,
    export_customer_log_csv,
    get_wait_time_stats,
    search_archive,
)
from restaurant_queue.models.mobile import format_mobile_for_display
from restaurant_queue.server import get_store
from restaurant_queue.tools.error_messages import safe_tool_wrapper

logger = logging.getLogger(__name__)


def _period(value: int | str | None) -> int | str:
    if value is None or value == "all":
        return "all"
    return int(value)


def register_report_tools(mcp: FastMCP) -> None:
    """Register archive and reporting tools on the MCP server."""

    @mcp.tool
    async def wait_time_stats(
        year: int,
        month: int | None = None,
        branch_id: str = "all",
    ) -> str:
        """Average estimated wait of completed bookings, per month or per day.

        Args:
            year: Calendar year, e.g. 2025.
            month: 1-12 for daily values in that month; omit for the twelve
                months of the year.
            branch_id: Branch id or "all".

        Returns:
            One "label: minutes" line per bucket.
        """
        store = get_store()

        async def _stats() -> str:
            if month is not None and not 1 <= month <= 12:
                raise ValueError("Month must be between 1 and 12.")
            bookings = await store.list_bookings(branch_id=branch_id)
            buckets = get_wait_time_stats(
                bookings,
                year,
                _period(month),
                branch_id,
                timezone=store.tz.key,
            )
            period = f"{year}-{month:02d}" if month else str(year)
            lines = [f"Average estimated wait ({period}, {branch_id}):"]
            lines.extend(f"{b.label}: {b.value}" for b in buckets)
            return "\n".join(lines)

        return await safe_tool_wrapper(_stats)

    @mcp.tool
    async def export_customer_log(
        year: int | None = None,
        month: int | None = None,
        branch_id: str = "all",
    ) -> str:
        """Export completed visits per customer as CSV (Name,Mobile,VisitCount).

        Args:
            year: Only bookings created in this year; omit for all years.
            month: Only bookings created in this month (1-12).
            branch_id: Branch id or "all".

        Returns:
            CSV text, most frequent customers first.
        """
        store = get_store()
        bookings = await store.list_bookings(branch_id=branch_id)
        entries = build_customer_log(
            bookings, _period(year), _period(month), branch_id, timezone=store.tz.key
        )
        if not entries:
            return "No completed visits to export."
        return export_customer_log_csv(entries)

    @mcp.tool
    async def search_archived_bookings(
        search: str = "",
        year: int | None = None,
        month: int | None = None,
        branch_id: str = "all",
        limit: int = 50,
    ) -> str:
        """Search completed and cancelled bookings by name or mobile.

        Args:
            search: Part of a name (any case) or mobile number.
            year: Only bookings created in this year.
            month: Only bookings created in this month (1-12).
            branch_id: Branch id or "all".
            limit: Maximum rows returned.

        Returns:
            Matching bookings, newest first.
        """
        store = get_store()
        bookings = await store.list_bookings(branch_id=branch_id)
        matches = search_archive(
            bookings, search, _period(year), _period(month), branch_id, timezone=store.tz.key
        )
        if not matches:
            return "No archived bookings match."
        lines = [
            f"- #{b.id} {b.name} ({format_mobile_for_display(b.mobile)}) "
            f"{b.status.value} {b.created_at.astimezone(store.tz):%Y-%m-%d %H:%M} @ {b.branch_id}"
            for b in matches[:limit]
        ]
        if len(matches) > limit:
            lines.append(f"... and {len(matches) - limit} more")
        return "\n".join(lines)
