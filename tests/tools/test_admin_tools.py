"""Tests for restaurant_queue.tools.admin: settings, channels and templates."""

import pytest
from fastmcp import Client, FastMCP

import restaurant_queue.server as server_module
from restaurant_queue.models.settings import DEFAULT_TEMPLATES
from restaurant_queue.models.enums import TemplateKey
from restaurant_queue.tools.admin import describe_settings, register_admin_tools
from tests.factories import make_settings


@pytest.fixture
def admin_mcp(db, store, monkeypatch):
    """Admin tools wired to the fixture store through the server module."""
    monkeypatch.setattr(server_module, "_db", db)
    monkeypatch.setattr(server_module, "_store", store)
    monkeypatch.setattr(server_module, "_config_store", None)
    test_mcp = FastMCP("test")
    register_admin_tools(test_mcp)
    return test_mcp


async def _call(mcp: FastMCP, name: str, args: dict) -> str:
    async with Client(mcp) as client:
        result = await client.call_tool(name, args)
    return str(result)


class TestDescribeSettings:
    def test_masks_credentials(self):
        text = describe_settings(make_settings(notifications_enabled=True))
        assert "Restaurant: Najd House" in text
        assert "api_key=****-key" in text
        assert "sms-key" not in text
        assert "msegat: enabled" in text

    def test_unset_credentials(self):
        text = describe_settings(make_settings())
        assert "karzoun: disabled (appkey=(not set), authkey=(not set))" in text


class TestRestaurantSettings:
    async def test_get(self, admin_mcp):
        text = await _call(admin_mcp, "get_restaurant_settings", {})
        assert "Restaurant: Najd House" in text

    async def test_partial_update(self, admin_mcp, store, db):
        text = await _call(
            admin_mcp,
            "update_restaurant_settings",
            {"max_guests": 6, "remind_when_queue_position_is": 3},
        )
        assert "max 6 guests" in text
        assert store.settings.customer_ui.max_guests == 6
        assert store.settings.notifications.remind_when_queue_position_is == 3
        assert store.settings.restaurant_name == "Najd House"
        saved = await db.get_restaurant_settings()
        assert saved is not None
        assert saved.customer_ui.max_guests == 6

    async def test_invalid_value(self, admin_mcp, store):
        text = await _call(admin_mcp, "update_restaurant_settings", {"max_guests": 0})
        assert "Invalid input" in text
        assert store.settings.customer_ui.max_guests == 10


class TestConfigureChannel:
    async def test_disable_channel(self, admin_mcp, store):
        text = await _call(
            admin_mcp, "configure_notification_channel", {"channel": "karzoun", "enabled": False}
        )
        assert "karzoun: disabled" in text
        assert store.settings.notifications.karzoun.enabled is False
        assert store.settings.notifications.karzoun.appkey == "app-key"

    async def test_set_credentials(self, admin_mcp, store):
        await _call(
            admin_mcp,
            "configure_notification_channel",
            {"channel": "MSEGAT", "api_key": "new-sms-key", "appkey": "ignored"},
        )
        assert store.settings.notifications.msegat.api_key == "new-sms-key"
        assert store.settings.notifications.karzoun.appkey == "app-key"

    async def test_unknown_channel(self, admin_mcp):
        text = await _call(admin_mcp, "configure_notification_channel", {"channel": "telegram"})
        assert "Unknown channel 'telegram'" in text


class TestTemplates:
    async def test_get_templates(self, admin_mcp):
        text = await _call(admin_mcp, "get_message_templates", {"channel": "karzoun"})
        for key in TemplateKey:
            assert f"[{key.value}]" in text

    async def test_update_and_restore(self, admin_mcp, store):
        text = await _call(
            admin_mcp,
            "update_message_template",
            {"channel": "msegat", "template_key": "turnReminder", "text": "Almost there, {customerName}"},
        )
        assert "Almost there" in text
        assert store.settings.notifications.msegat.templates.turn_reminder == (
            "Almost there, {customerName}"
        )
        assert store.settings.notifications.karzoun.templates.turn_reminder == (
            DEFAULT_TEMPLATES[TemplateKey.TURN_REMINDER]
        )

        await _call(
            admin_mcp,
            "update_message_template",
            {"channel": "msegat", "template_key": "turnReminder"},
        )
        assert store.settings.notifications.msegat.templates.turn_reminder == (
            DEFAULT_TEMPLATES[TemplateKey.TURN_REMINDER]
        )

    async def test_unknown_key(self, admin_mcp):
        text = await _call(
            admin_mcp,
            "update_message_template",
            {"channel": "msegat", "template_key": "birthday", "text": "hi"},
        )
        assert "birthday" in text
