"""Interactive setup CLI: ``python -m restaurant_queue.setup``

Prompts for the SMS/WhatsApp gateway and Gemini credentials, encrypts them
into the SQLite database, and prints the MCP client config snippet.
"""

import asyncio
import base64
import getpass
import json
import os
from pathlib import Path

import aiosqlite

from restaurant_queue.models.enums import NotificationChannel
from restaurant_queue.storage.config_store import ConfigStore, secret_key


def _prompt(label: str, *, secret: bool = False, required: bool = True) -> str:
    """Prompt the user for input (optionally hidden)."""
    suffix = "" if required else " (optional, press Enter to skip)"
    prompt_text = f"{label}{suffix}: "
    while True:
        value = getpass.getpass(prompt_text) if secret else input(prompt_text)
        value = value.strip()
        if value or not required:
            return value
        print(f"  {label} is required.")


def _generate_master_key() -> str:
    """Generate a random 32-byte master key, base64-encoded."""
    return base64.urlsafe_b64encode(os.urandom(32)).decode()


def _collect_credentials() -> dict[str, str]:
    values: dict[str, str] = {}

    print("Msegat (SMS)")
    user_name = _prompt("  Msegat user name", required=False)
    if user_name:
        values[secret_key(NotificationChannel.MSEGAT, "user_name")] = user_name
        values[secret_key(NotificationChannel.MSEGAT, "api_key")] = _prompt(
            "  Msegat API key", secret=True
        )
        values[secret_key(NotificationChannel.MSEGAT, "user_sender")] = _prompt(
            "  Msegat sender name"
        )

    print()
    print("Karzoun (WhatsApp)")
    appkey = _prompt("  Karzoun app key", secret=True, required=False)
    if appkey:
        values[secret_key(NotificationChannel.KARZOUN, "appkey")] = appkey
        values[secret_key(NotificationChannel.KARZOUN, "authkey")] = _prompt(
            "  Karzoun auth key", secret=True
        )

    print()
    gemini_key = _prompt("Gemini API key (wait-time estimates)", secret=True, required=False)
    if gemini_key:
        values["gemini_api_key"] = gemini_key
    return values


async def _run_setup(data_dir: Path) -> None:
    """Core async setup logic."""
    print()
    print("Restaurant Queue Setup")
    print("=" * 40)
    print()

    values = _collect_credentials()
    master_key = _generate_master_key()

    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "restaurant_queue.db"

    schema_path = Path(__file__).parent / "storage" / "schema.sql"
    schema_sql = schema_path.read_text()

    async with aiosqlite.connect(str(db_path)) as conn:
        await conn.executescript(schema_sql)
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.commit()

        store = ConfigStore(conn, master_key)
        for key, value in values.items():
            await store.set(key, value)

    print()
    print(f"{len(values)} credential(s) encrypted and stored in", db_path)
    print("Enable the channels with the configure_notification_channel tool.")
    print()

    project_dir = Path(__file__).resolve().parent.parent
    venv_python = project_dir / ".venv" / "bin" / "python"

    config = {
        "mcpServers": {
            "restaurant-queue": {
                "command": str(venv_python),
                "args": ["-m", "restaurant_queue"],
                "cwd": str(project_dir),
                "env": {
                    "RESTAURANT_QUEUE_KEY": master_key,
                },
            }
        }
    }

    print("Add this to your MCP client config:")
    print()
    print(json.dumps(config, indent=2))
    print()


def main() -> None:
    """Entry point for ``python -m restaurant_queue.setup``."""
    data_dir = Path(os.environ.get("DATA_DIR", "./data"))
    asyncio.run(_run_setup(data_dir))


if __name__ == "__main__":  # pragma: no cover
    main()
