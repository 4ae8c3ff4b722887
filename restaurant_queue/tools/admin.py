"""MCP tools for restaurant-wide settings, gateway configuration and templates."""

import logging

from fastmcp import FastMCP

from restaurant_queue.models.enums import NotificationChannel, TemplateKey
from restaurant_queue.models.settings import (
    CHANNEL_SECRETS,
    NotificationTemplates,
    RestaurantSettings,
)
from restaurant_queue.server import get_store, save_restaurant_settings
from restaurant_queue.tools.error_messages import safe_tool_wrapper

logger = logging.getLogger(__name__)

# TemplateKey value → NotificationTemplates field
_TEMPLATE_FIELDS: dict[TemplateKey, str] = {
    TemplateKey.BOOKING_CONFIRMATION: "booking_confirmation",
    TemplateKey.TURN_REMINDER: "turn_reminder",
    TemplateKey.BOOKING_SEATED: "booking_seated",
    TemplateKey.BOOKING_CANCELLED: "booking_cancelled",
    TemplateKey.CUSTOMER_CALL: "customer_call",
    TemplateKey.POST_VISIT_FEEDBACK: "post_visit_feedback",
}


def _mask(value: str) -> str:
    if not value:
        return "(not set)"
    return "****" + value[-4:] if len(value) > 4 else "****"


def describe_settings(settings: RestaurantSettings) -> str:
    """Readable settings summary with credentials masked."""
    ui = settings.customer_ui
    notifications = settings.notifications
    lines = [
        f"Restaurant: {settings.restaurant_name}",
        f"WhatsApp: {settings.whatsapp_number or '(not set)'}",
        f"Online booking: {'on' if ui.booking_enabled else 'off'}, max {ui.max_guests} guests",
        f"Turn reminder at queue position {notifications.remind_when_queue_position_is}",
    ]
    for channel, fields in CHANNEL_SECRETS.items():
        config = getattr(notifications, channel.value)
        creds = ", ".join(f"{f}={_mask(getattr(config, f))}" for f in fields)
        state = "enabled" if config.enabled else "disabled"
        lines.append(f"{channel.value}: {state} ({creds})")
    return "\n".join(lines)


def _channel(name: str) -> NotificationChannel:
    try:
        return NotificationChannel(name.lower())
    except ValueError:
        options = ", ".join(c.value for c in NotificationChannel)
        raise ValueError(f"Unknown channel '{name}'. Use one of: {options}.") from None


def register_admin_tools(mcp: FastMCP) -> None:
    """Register settings and template administration tools on the MCP server."""

    @mcp.tool
    async def get_restaurant_settings() -> str:
        """Show the restaurant settings. Credentials are masked.

        Returns:
            Settings summary.
        """
        return describe_settings(get_store().settings)

    @mcp.tool
    async def update_restaurant_settings(
        restaurant_name: str | None = None,
        logo_url: str | None = None,
        whatsapp_number: str | None = None,
        welcome_message: str | None = None,
        max_guests: int | None = None,
        booking_enabled: bool | None = None,
        show_seating_area: bool | None = None,
        remind_when_queue_position_is: int | None = None,
    ) -> str:
        """Change restaurant-wide settings. Omitted fields stay as they are.

        Args:
            restaurant_name: Name used in messages.
            logo_url: Logo shown to customers.
            whatsapp_number: Number used for the {whatsappLink} placeholder.
            welcome_message: Text on the customer booking page.
            max_guests: Largest party a customer can book for.
            booking_enabled: Master switch for new customer bookings.
            show_seating_area: Whether customers pick indoor/outdoor.
            remind_when_queue_position_is: Queue position that triggers the
                "your turn is near" message.

        Returns:
            The updated settings summary.
        """
        store = get_store()

        async def _update() -> str:
            data = store.settings.model_dump()
            top = {
                "restaurant_name": restaurant_name,
                "logo_url": logo_url,
                "whatsapp_number": whatsapp_number,
            }
            ui = {
                "welcome_message": welcome_message,
                "max_guests": max_guests,
                "booking_enabled": booking_enabled,
                "show_seating_area": show_seating_area,
            }
            data.update({k: v for k, v in top.items() if v is not None})
            data["customer_ui"].update({k: v for k, v in ui.items() if v is not None})
            if remind_when_queue_position_is is not None:
                data["notifications"]["remind_when_queue_position_is"] = remind_when_queue_position_is
            settings = await save_restaurant_settings(RestaurantSettings.model_validate(data))
            return describe_settings(settings)

        return await safe_tool_wrapper(_update)

    @mcp.tool
    async def configure_notification_channel(
        channel: str,
        enabled: bool | None = None,
        user_name: str | None = None,
        api_key: str | None = None,
        user_sender: str | None = None,
        appkey: str | None = None,
        authkey: str | None = None,
    ) -> str:
        """Enable or disable an SMS/WhatsApp gateway and set its credentials.

        Args:
            channel: "msegat" (SMS) or "karzoun" (WhatsApp).
            enabled: Turn the channel on or off.
            user_name: Msegat account user name.
            api_key: Msegat API key.
            user_sender: Msegat approved sender name.
            appkey: Karzoun app key.
            authkey: Karzoun auth key.

        Returns:
            The updated settings summary.
        """
        store = get_store()

        async def _configure() -> str:
            target = _channel(channel)
            settings = store.settings.model_copy(deep=True)
            config = getattr(settings.notifications, target.value)
            given = {
                "user_name": user_name,
                "api_key": api_key,
                "user_sender": user_sender,
                "appkey": appkey,
                "authkey": authkey,
            }
            for field in CHANNEL_SECRETS[target]:
                if given[field] is not None:
                    setattr(config, field, given[field])
            if enabled is not None:
                config.enabled = enabled
            settings = await save_restaurant_settings(settings)
            return describe_settings(settings)

        return await safe_tool_wrapper(_configure)

    @mcp.tool
    async def get_message_templates(channel: str = "msegat") -> str:
        """Show a channel's six message templates.

        Args:
            channel: "msegat" or "karzoun".
        """
        store = get_store()

        async def _get() -> str:
            target = _channel(channel)
            templates = getattr(store.settings.notifications, target.value).templates
            return "\n\n".join(
                f"[{key.value}]\n{templates.for_key(key)}" for key in TemplateKey
            )

        return await safe_tool_wrapper(_get)

    @mcp.tool
    async def update_message_template(
        channel: str,
        template_key: str,
        text: str | None = None,
    ) -> str:
        """Change one message template, or restore its default.

        Placeholders: {customerName}, {bookingId}, {branchName},
        {restaurantName}, {queuePosition}, {waitTime}, {reviewLink},
        {whatsappLink}.

        Args:
            channel: "msegat" or "karzoun".
            template_key: bookingConfirmation, turnReminder, bookingSeated,
                bookingCancelled, customerCall or postVisitFeedback.
            text: New template text; omit to restore the default.

        Returns:
            The template now in effect.
        """
        store = get_store()

        async def _update() -> str:
            target = _channel(channel)
            key = TemplateKey(template_key)
            settings = store.settings.model_copy(deep=True)
            templates = getattr(settings.notifications, target.value).templates
            field = _TEMPLATE_FIELDS[key]
            value = text if text is not None else getattr(NotificationTemplates(), field)
            setattr(templates, field, value)
            await save_restaurant_settings(settings)
            logger.info("Template %s for %s updated", key, target)
            return f"[{key.value}] for {target.value}:\n{value}"

        return await safe_tool_wrapper(_update)
