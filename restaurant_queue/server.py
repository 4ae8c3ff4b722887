import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastmcp import FastMCP

from restaurant_queue.clients.cache import EstimationCache
from restaurant_queue.clients.estimation import GeminiEstimationProvider, WaitTimeEstimator
from restaurant_queue.engine.booking_store import BookingStore
from restaurant_queue.engine.notifications import NotificationDispatcher
from restaurant_queue.engine.sweeper import AutoDepartureSweeper
from restaurant_queue.models.settings import CHANNEL_SECRETS, RestaurantSettings
from restaurant_queue.storage.config_store import ConfigStore, secret_key
from restaurant_queue.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

_db: DatabaseManager | None = None
_config_store: ConfigStore | None = None
_store: BookingStore | None = None
_sweeper: AutoDepartureSweeper | None = None


def get_db() -> DatabaseManager:
    """Get the current DatabaseManager instance. Raises if not initialized."""
    if _db is None:
        raise RuntimeError("Database not initialized. Server lifespan has not started.")
    return _db


def get_store() -> BookingStore:
    """Get the BookingStore owning all booking state. Raises if not initialized."""
    if _store is None:
        raise RuntimeError("Booking store not initialized. Server lifespan has not started.")
    return _store


def get_config_store() -> ConfigStore | None:
    """Return the ConfigStore if running in master-key mode, else ``None``."""
    return _config_store


def _reset_db() -> None:
    """Clear the module-level DB reference. Used in tests."""
    global _db  # noqa: PLW0603
    _db = None


def _reset_config_store() -> None:
    """Clear the module-level ConfigStore reference. Used in tests."""
    global _config_store  # noqa: PLW0603
    _config_store = None


def _reset_store() -> None:
    """Clear the module-level store and sweeper references. Used in tests."""
    global _store, _sweeper  # noqa: PLW0603
    _store = None
    _sweeper = None


async def resolve_credential(key: str) -> str | None:
    """Look up a credential from ConfigStore (master-key mode), falling back to Settings."""
    if _config_store is not None:
        value = await _config_store.get(key)
        if value:
            return value

    from restaurant_queue.config import get_settings

    return getattr(get_settings(), key, None)


async def load_restaurant_settings(db: DatabaseManager) -> RestaurantSettings:
    """Stored restaurant settings with gateway credentials filled in.

    Credentials left blank in the stored settings are resolved from the
    encrypted store or the environment.
    """
    settings = await db.get_restaurant_settings() or RestaurantSettings()
    for channel, fields in CHANNEL_SECRETS.items():
        config = getattr(settings.notifications, channel.value)
        for field in fields:
            if getattr(config, field):
                continue
            value = await resolve_credential(secret_key(channel, field))
            if value:
                setattr(config, field, value)
    return settings


async def save_restaurant_settings(settings: RestaurantSettings) -> RestaurantSettings:
    """Persist *settings* and hand them to the live store.

    In master-key mode the credentials go to the encrypted store and the
    JSON row keeps them blank.
    """
    db = get_db()
    to_persist = settings
    if _config_store is not None:
        to_persist = await _config_store.save_channel_secrets(settings)
    await db.save_restaurant_settings(to_persist)
    if _store is not None:
        _store.update_settings(settings)
    return settings


async def build_estimator() -> WaitTimeEstimator:
    from restaurant_queue.config import get_settings

    settings = get_settings()
    provider = None
    api_key = await resolve_credential("gemini_api_key")
    if api_key:
        provider = GeminiEstimationProvider(
            api_key, model=settings.gemini_model, timezone=settings.timezone
        )
    else:
        logger.info("No Gemini API key configured; wait times use the fallback formula")
    return WaitTimeEstimator(
        provider=provider,
        cache=EstimationCache(ttl_seconds=settings.estimation_cache_ttl_seconds),
        fallback_minutes_per_group=settings.fallback_minutes_per_group,
        min_minutes=settings.min_estimated_wait_minutes,
    )


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Manage the database, booking store and sweeper for the server lifecycle."""
    global _db, _config_store, _store, _sweeper  # noqa: PLW0603
    from restaurant_queue.config import get_settings

    settings = get_settings()
    _db = DatabaseManager(settings.db_path)
    await _db.initialize()
    logger.info("Database initialized")

    # Master-key mode: gateway credentials live encrypted in app_config
    if settings.uses_master_key and _db.connection is not None:
        _config_store = ConfigStore(_db.connection, settings.restaurant_queue_key)  # type: ignore[arg-type]
        logger.info("ConfigStore initialized (master-key mode)")

    _store = BookingStore(
        _db,
        settings=await load_restaurant_settings(_db),
        dispatcher=NotificationDispatcher(),
        estimator=await build_estimator(),
        timezone=settings.timezone,
        default_visit_duration=settings.default_visit_duration_minutes,
    )
    _sweeper = AutoDepartureSweeper(
        _store,
        interval_seconds=settings.sweep_interval_seconds,
        threshold_minutes=settings.auto_depart_after_minutes,
    )
    _sweeper.start()

    try:
        yield {"db": _db, "store": _store}
    finally:
        await _sweeper.stop()
        await _store.drain_notifications()
        _sweeper = None
        _store = None
        _config_store = None
        await _db.close()
        _db = None
        logger.info("Database closed")


mcp = FastMCP("restaurant-queue", lifespan=app_lifespan)


def setup_logging(log_level: str, data_dir: Path) -> None:
    """Configure logging with file rotation and console output.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        data_dir: Base data directory; logs go to data_dir/logs/server.log.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Exact type check so FileHandler subclasses don't count as console
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    log_dir = data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "server.log"

    if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def initialize() -> FastMCP:
    """Set up directories, logging, and register tools. Returns the MCP server."""
    from restaurant_queue.config import get_settings

    settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / "logs").mkdir(exist_ok=True)

    setup_logging(settings.log_level, settings.data_dir)

    from restaurant_queue.tools.admin import register_admin_tools
    from restaurant_queue.tools.bookings import register_booking_tools
    from restaurant_queue.tools.branches import register_branch_tools
    from restaurant_queue.tools.reports import register_report_tools

    register_booking_tools(mcp)
    register_branch_tools(mcp)
    register_admin_tools(mcp)
    register_report_tools(mcp)

    logger.info("Restaurant queue MCP server initialized")
    return mcp
