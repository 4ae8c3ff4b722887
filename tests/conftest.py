import pytest

from restaurant_queue.clients.estimation import WaitTimeEstimator
from restaurant_queue.clients.resilience import gemini_breaker, karzoun_breaker, msegat_breaker
from restaurant_queue.config import reset_settings
from restaurant_queue.engine.booking_store import BookingStore
from restaurant_queue.engine.notifications import NotificationDispatcher
from restaurant_queue.models.enums import NotificationChannel
from restaurant_queue.storage.database import DatabaseManager
from tests.factories import FakeClock, RecordingSender, make_branch, make_settings

_ENV_KEYS = (
    "RESTAURANT_QUEUE_KEY",
    "GEMINI_API_KEY",
    "MSEGAT_USER_NAME",
    "MSEGAT_API_KEY",
    "MSEGAT_USER_SENDER",
    "KARZOUN_APPKEY",
    "KARZOUN_AUTHKEY",
)


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch):
    """Keep real credentials and tripped breakers out of every test."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    for breaker in (msegat_breaker, karzoun_breaker, gemini_breaker):
        breaker.reset()
    yield
    reset_settings()


@pytest.fixture
def tmp_data_dir(tmp_path):
    """Provide a temporary data directory for tests that touch the filesystem."""
    return tmp_path / "data"


@pytest.fixture
async def db():
    """In-memory SQLite database with schema applied."""
    manager = DatabaseManager(":memory:")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
async def branch(db):
    """Default branch saved to the database."""
    saved = make_branch()
    await db.save_branch(saved)
    return saved


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sms():
    return RecordingSender()


@pytest.fixture
def whatsapp():
    return RecordingSender()


@pytest.fixture
async def store(db, branch, clock, sms, whatsapp):
    """BookingStore with both channels enabled and recording senders."""
    dispatcher = NotificationDispatcher(
        {NotificationChannel.MSEGAT: sms, NotificationChannel.KARZOUN: whatsapp}
    )
    booking_store = BookingStore(
        db,
        settings=make_settings(notifications_enabled=True),
        dispatcher=dispatcher,
        estimator=WaitTimeEstimator(),
        clock=clock,
    )
    yield booking_store
    await booking_store.drain_notifications()
