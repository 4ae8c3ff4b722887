import logging

from fastmcp import FastMCP

from restaurant_queue.engine.validation import DAY_NAMES
from restaurant_queue.models.branch import AppointmentSettings, Branch, User
from restaurant_queue.models.mobile import format_mobile_for_display, normalize_mobile
from restaurant_queue.server import get_db, get_store
from restaurant_queue.tools.error_messages import safe_tool_wrapper

logger = logging.getLogger(__name__)


def _describe_branch(branch: Branch) -> str:
    parts = [f"- {branch.id}: {branch.name}"]
    if branch.location:
        parts.append(f"({branch.location})")
    if branch.is_waitlist_enabled:
        parts.append(
            f"waitlist {branch.waitlist_opening_time or 'always'}"
            f"-{branch.waitlist_closing_time or 'open'}"
        )
    else:
        parts.append("waitlist off")
    appt = branch.appointment_settings
    if branch.is_appointment_enabled:
        days = ", ".join(DAY_NAMES[d] for d in sorted(appt.available_days) if 0 <= d <= 6)
        slots = ", ".join(f"{s.time} x{s.capacity}" for s in appt.available_slots)
        parts.append(f"appointments [{slots or 'no slots'}] on [{days or 'no days'}]")
    return " ".join(parts)


def register_branch_tools(mcp: FastMCP) -> None:  # noqa: C901
    """Register branch and staff user administration tools on the MCP server."""

    @mcp.tool
    async def save_branch(
        name: str,
        branch_id: str | None = None,
        location: str = "",
        review_url: str | None = None,
        google_maps_url: str | None = None,
        image_url: str = "",
        is_waitlist_enabled: bool = True,
        waitlist_opening_time: str | None = "01:00 PM",
        waitlist_closing_time: str | None = "11:00 PM",
        is_appointment_enabled: bool = False,
        appointment_slots: list[dict] | None = None,
        appointment_days: list[int] | None = None,
    ) -> str:
        """Create a branch, or update one when branch_id is given.

        Args:
            name: Branch display name.
            branch_id: Existing branch to update; omit to create a new one.
            location: Free-text address.
            review_url: Link sent in the post-visit feedback message.
            google_maps_url: Map link shown to customers.
            image_url: Branch picture.
            is_waitlist_enabled: Whether customers can join the waitlist.
            waitlist_opening_time: "hh:mm AM/PM"; null with the closing time
                for an always-open waitlist.
            waitlist_closing_time: "hh:mm AM/PM"; may be after midnight.
            is_appointment_enabled: Whether appointments can be booked.
            appointment_slots: e.g. [{"time": "07:00 PM", "capacity": 4}].
            appointment_days: Weekdays with Sunday = 0 ... Saturday = 6.

        Returns:
            The saved branch.
        """
        db = get_db()

        async def _save() -> str:
            if branch_id is not None:
                if await db.get_branch(branch_id) is None:
                    return f"Branch '{branch_id}' does not exist."
                new_id = branch_id
            else:
                new_id = f"branch{await db.next_sequence('branch')}"
                while await db.get_branch(new_id) is not None:
                    new_id = f"branch{await db.next_sequence('branch')}"
            branch = Branch(
                id=new_id,
                name=name,
                location=location,
                image_url=image_url,
                google_maps_url=google_maps_url,
                review_url=review_url,
                is_waitlist_enabled=is_waitlist_enabled,
                waitlist_opening_time=waitlist_opening_time,
                waitlist_closing_time=waitlist_closing_time,
                is_appointment_enabled=is_appointment_enabled,
                appointment_settings=AppointmentSettings(
                    available_slots=appointment_slots or [],
                    available_days=appointment_days or [],
                ),
            )
            await db.save_branch(branch)
            logger.info("Saved branch %s", branch.id)
            return f"Saved branch:\n{_describe_branch(branch)}"

        return await safe_tool_wrapper(_save)

    @mcp.tool
    async def delete_branch(branch_id: str) -> str:
        """Delete a branch. Refused while it has active bookings.

        Args:
            branch_id: Branch to delete.

        Returns:
            Confirmation, or why the branch was kept.
        """
        store = get_store()

        async def _delete() -> str:
            deleted = await store.delete_branch(branch_id)
            if not deleted:
                return f"Branch '{branch_id}' does not exist."
            return f"Deleted branch '{branch_id}'."

        return await safe_tool_wrapper(_delete)

    @mcp.tool
    async def list_branches() -> str:
        """List all branches with their waitlist and appointment setup.

        Returns:
            One line per branch.
        """
        db = get_db()
        branches = await db.get_branches()
        if not branches:
            return "No branches configured yet. Use save_branch to add one."
        return "\n".join(_describe_branch(b) for b in branches)

    @mcp.tool
    async def save_user(
        name: str,
        mobile: str,
        role: str = "STAFF",
        branch_id: str = "all",
        user_id: str | None = None,
    ) -> str:
        """Add a staff or admin user, or update one when user_id is given.

        Args:
            name: User's name.
            mobile: Saudi mobile number.
            role: "ADMIN" or "STAFF".
            branch_id: Branch the user works at, or "all".
            user_id: Existing user to update; omit to create.

        Returns:
            Confirmation of the saved user.
        """
        db = get_db()

        async def _save() -> str:
            if branch_id != "all" and await db.get_branch(branch_id) is None:
                return f"Branch '{branch_id}' does not exist."
            new_id = user_id or f"user{await db.next_sequence('user')}"
            user = User(
                id=new_id,
                name=name,
                mobile=normalize_mobile(mobile),
                role=role.upper(),
                branch_id=branch_id,
            )
            await db.save_user(user)
            return f"Saved {user.role.value.lower()} '{user.name}' ({user.id}) for {user.branch_id}."

        return await safe_tool_wrapper(_save)

    @mcp.tool
    async def delete_user(user_id: str) -> str:
        """Remove a staff or admin user.

        Args:
            user_id: User to remove.
        """
        db = get_db()
        if not any(u.id == user_id for u in await db.get_users()):
            return f"No user '{user_id}' found."
        await db.delete_user(user_id)
        return f"Removed user '{user_id}'."

    @mcp.tool
    async def list_users(branch_id: str | None = None) -> str:
        """List staff and admin users.

        Args:
            branch_id: Only users assigned to this branch.
        """
        db = get_db()
        users = await db.get_users(branch_id=branch_id)
        if not users:
            return "No users found."
        return "\n".join(
            f"- {u.id}: {u.name} ({format_mobile_for_display(u.mobile)}) "
            f"{u.role.value} @ {u.branch_id}"
            for u in users
        )
