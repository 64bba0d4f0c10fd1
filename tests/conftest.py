"""
Pytest configuration and shared fixtures
"""
import sys
import pytest
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Wednesday mid-morning; every repository test runs on this clock
FIXED_NOW = datetime(2025, 6, 11, 10, 0, 0)


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    """Fixture providing a frozen clock for date rules"""
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    """Fixture providing a fresh in-memory store with all tables"""
    from database.store import Store
    store = Store.from_url('sqlite://')
    store.create_all()
    yield store
    store.dispose()


@pytest.fixture
def file_store(tmp_path):
    """Fixture providing a file-backed SQLite store (for multi-threaded tests)"""
    from database.store import Store
    store = Store.from_url(f"sqlite:///{tmp_path / 'solarops.db'}")
    store.create_all()
    yield store
    store.dispose()


@pytest.fixture
def users(store, app_config, clock):
    """Fixture providing the users repository"""
    from services.users_repository import UsersRepository
    return UsersRepository(store, config=app_config, clock=clock)


def _make_user(users, email, name):
    return users.create_user({
        'email': email,
        'full_name': name,
        'company_name': f"{name} Solar",
        'password': 'secret123',
    })


@pytest.fixture
def alice(users):
    return _make_user(users, 'alice@example.com', 'Alice Owner')


@pytest.fixture
def bob(users):
    return _make_user(users, 'bob@example.com', 'Bob Owner')


@pytest.fixture
def alice_ctx(store, alice, clock, app_config):
    """Fixture providing a ServiceContext acting as alice"""
    from services.context import ServiceContext
    return ServiceContext(store, alice, clock=clock, config=app_config)


@pytest.fixture
def bob_ctx(store, bob, clock, app_config):
    """Fixture providing a ServiceContext acting as bob"""
    from services.context import ServiceContext
    return ServiceContext(store, bob, clock=clock, config=app_config)


@pytest.fixture
def job_data():
    """Fixture providing valid job fields"""
    return {
        'customer_name': 'Jane Homeowner',
        'address': '123 Main St, Springfield',
        'system_size': 7.5,
        'estimated_revenue': 21000,
        'notes': 'South-facing roof',
    }


@pytest.fixture
def customer_data():
    """Fixture providing valid customer fields"""
    return {
        'name': 'Jane Homeowner',
        'email': 'jane@example.com',
        'phone': '(555) 123-4567',
        'address': '123 Main St, Springfield',
    }


@pytest.fixture
def equipment_data():
    """Fixture providing valid equipment fields"""
    return {
        'name': 'Panel 400W',
        'category': 'solar_panels',
        'brand': 'SunPower',
        'model': 'MAX3-400',
        'quantity': 20,
        'unit_price': 300.0,
        'low_stock_threshold': 5,
    }


@pytest.fixture
def installation_date(now):
    """A valid installation date (tomorrow at 8am)"""
    return datetime(now.year, now.month, now.day, 8, 0) + timedelta(days=1)


class TickingClock:
    """Clock that moves forward one second on every reading"""

    def __init__(self, start=FIXED_NOW):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def ticking_ctx(store, alice, app_config):
    """Fixture providing alice's ServiceContext on a clock that advances per call"""
    from services.context import ServiceContext
    return ServiceContext(store, alice, clock=TickingClock(), config=app_config)
