import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.db.session import Database
from app.main import create_app
from app.schemas.booking import BookingCreate
from app.services.file_lock import FileLock


@pytest.fixture()
def database():
    database = Database("sqlite://").init(create_all=True)
    yield database
    database.dispose()


@pytest.fixture()
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture()
def locks(tmp_path):
    return FileLock(str(tmp_path / "locks"), timeout_ms=2000, poll_interval_ms=10)


@pytest.fixture()
def client(database, locks):
    return TestClient(create_app(db=database, locks=locks))


@pytest.fixture()
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token('owner@studio.test', role='admin')}"}


@pytest.fixture()
def staff_headers():
    return {"Authorization": f"Bearer {create_access_token('desk@studio.test', role='staff')}"}


def make_draft(**overrides) -> BookingCreate:
    payload = {
        "customerName": "Dewi Lestari",
        "customerWhatsapp": "081234567890",
        "category": "Indoor Studio",
        "bookingDate": "2026-11-01T10:00",
        "totalPrice": 1_000_000,
    }
    payload.update(overrides)
    return BookingCreate(**payload)


@pytest.fixture()
def draft():
    return make_draft
