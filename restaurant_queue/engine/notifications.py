"""Template rendering and multi-channel notification dispatch."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from restaurant_queue.engine.reminders import queue_position
from restaurant_queue.models.booking import Booking
from restaurant_queue.models.branch import Branch
from restaurant_queue.models.enums import NotificationChannel, TemplateKey
from restaurant_queue.models.settings import (
    KarzounConfig,
    MsegatConfig,
    RestaurantSettings,
)

logger = logging.getLogger(__name__)

PLACEHOLDERS = (
    "{customerName}",
    "{bookingId}",
    "{branchName}",
    "{restaurantName}",
    "{queuePosition}",
    "{waitTime}",
    "{reviewLink}",
    "{whatsappLink}",
)


class NotificationSender(Protocol):
    async def send(self, config, mobile: str, message: str) -> bool: ...  # type: ignore[no-untyped-def]


@dataclass(frozen=True)
class OutgoingMessage:
    channel: NotificationChannel
    config: MsegatConfig | KarzounConfig
    booking_id: str
    mobile: str
    template_key: TemplateKey
    text: str


def whatsapp_link(number: str) -> str:
    if not number:
        return ""
    return f"https://wa.me/{number.replace('+', '', 1)}"


def build_replacements(
    booking: Booking,
    branch: Branch,
    settings: RestaurantSettings,
    bookings: Iterable[Booking],
) -> dict[str, str]:
    """Placeholder → value map for *booking* against the *bookings* snapshot."""
    position = queue_position(bookings, booking)
    wait = booking.estimated_wait_time
    return {
        "{customerName}": booking.name,
        "{bookingId}": booking.id,
        "{branchName}": branch.name,
        "{restaurantName}": settings.restaurant_name,
        "{queuePosition}": str(position) if position else "-",
        "{waitTime}": str(wait) if wait else "...",
        "{reviewLink}": branch.review_url or "",
        "{whatsappLink}": whatsapp_link(settings.whatsapp_number),
    }


def render_template(template: str, replacements: dict[str, str]) -> str:
    """Replace every occurrence of each placeholder token."""
    for token, value in replacements.items():
        template = template.replace(token, value)
    return template


class NotificationDispatcher:
    """Renders templates per enabled channel and hands them to the senders.

    Args:
        senders: Channel → sender. Defaults to the Msegat and Karzoun clients.
    """

    def __init__(
        self, senders: dict[NotificationChannel, NotificationSender] | None = None
    ) -> None:
        if senders is None:
            from restaurant_queue.clients.karzoun import KarzounClient
            from restaurant_queue.clients.msegat import MsegatClient

            senders = {
                NotificationChannel.MSEGAT: MsegatClient(),
                NotificationChannel.KARZOUN: KarzounClient(),
            }
        self.senders = senders

    def prepare(
        self,
        booking: Booking,
        template_key: TemplateKey,
        branch: Branch | None,
        settings: RestaurantSettings,
        bookings: Iterable[Booking],
        override_message: str | None = None,
    ) -> list[OutgoingMessage]:
        """Render the outgoing messages for *booking*; empty when nothing is sent."""
        notifications = settings.notifications
        if not notifications.any_enabled or not booking.agreed_to_notifications:
            return []
        if branch is None:
            logger.warning("No branch %s for booking %s; notification skipped", booking.branch_id, booking.id)
            return []

        replacements = build_replacements(booking, branch, settings, bookings)
        channels: list[tuple[NotificationChannel, MsegatConfig | KarzounConfig]] = [
            (NotificationChannel.MSEGAT, notifications.msegat),
            (NotificationChannel.KARZOUN, notifications.karzoun),
        ]
        messages = []
        for channel, config in channels:
            if not config.enabled:
                continue
            template = override_message if override_message is not None else config.templates.for_key(template_key)
            messages.append(
                OutgoingMessage(
                    channel=channel,
                    config=config,
                    booking_id=booking.id,
                    mobile=booking.mobile,
                    template_key=template_key,
                    text=render_template(template, replacements),
                )
            )
        return messages

    async def deliver(self, messages: list[OutgoingMessage]) -> dict[NotificationChannel, bool]:
        """Send each message. Failures are logged, never raised."""
        results: dict[NotificationChannel, bool] = {}
        for message in messages:
            sender = self.senders.get(message.channel)
            if sender is None:
                logger.warning("No sender registered for channel %s", message.channel)
                results[message.channel] = False
                continue
            try:
                ok = await sender.send(message.config, message.mobile, message.text)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "%s delivery of %s for booking %s failed",
                    message.channel, message.template_key, message.booking_id,
                )
                ok = False
            if not ok:
                logger.error(
                    "%s notification %s for booking %s was not delivered",
                    message.channel, message.template_key, message.booking_id,
                )
            results[message.channel] = ok
        return results

