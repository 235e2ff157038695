"""
Shared fixtures: one app per test on a private in-memory SQLite database,
with the calendar and SMTP collaborators replaced by mocks.
"""

from datetime import time, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from carehome.core.config import Settings
from carehome.core.identity import CurrentUser, UserRole
from carehome.main import create_app
from carehome.models.audit_log import AuditLog
from carehome.models.care_receiver import CareReceiver
from carehome.models.caregiver import Caregiver
from carehome.models.location import Location
from carehome.models.room_bed import RoomBed
from carehome.models.roster import RosterEntry, RosterStatus, ShiftType
from carehome.routers.auth import create_access_token
from carehome.services.calendar import CalendarClient
from carehome.services.notifications import Notifier

SECRET = "test-secret"


class Seed:
    """Inserts rows directly, bypassing services and their side effects."""

    def __init__(self, db):
        self.db = db

    def _add(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def location(self, name="Rosewood House", tz="UTC"):
        return self._add(Location(name=name, address="1 Garden Lane", timezone=tz))

    def caregiver(self, location, first_name="Ada", last_name="Okafor", email=None):
        return self._add(
            Caregiver(
                location_id=location.id,
                first_name=first_name,
                last_name=last_name,
                email=email or f"{uuid4().hex[:8]}@example.com",
            )
        )

    def bed(self, location, room="101", bed="A"):
        return self._add(RoomBed(location_id=location.id, room_number=room, bed_number=bed))

    def care_receiver(self, location, first_name="Edith", last_name="Crane"):
        return self._add(CareReceiver(location_id=location.id, first_name=first_name, last_name=last_name))

    def roster(self, caregiver, shift_date, start=time(8, 0), end=time(16, 0), status=RosterStatus.PUBLISHED):
        return self._add(
            RosterEntry(
                location_id=caregiver.location_id,
                caregiver_id=caregiver.id,
                shift_date=shift_date,
                shift_type=ShiftType.MORNING,
                start_time=start,
                end_time=end,
                status=status,
            )
        )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        jwt_secret_key=SECRET,
        timezone="UTC",
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def calendar():
    cal = MagicMock(spec=CalendarClient)
    cal.create_event.return_value = "evt-1"
    return cal


@pytest.fixture
def notifier():
    return MagicMock(spec=Notifier)


@pytest.fixture
def app(settings, calendar, notifier):
    return create_app(settings, calendar=calendar, notifier=notifier)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def failing_audit_writes(db, monkeypatch):
    """Every commit that carries an AuditLog row fails as if the connection dropped."""
    real_commit = db.commit

    def commit():
        if any(isinstance(obj, AuditLog) for obj in db.new):
            raise OperationalError("INSERT INTO audit_logs", {}, Exception("connection lost"))
        real_commit()

    monkeypatch.setattr(db, "commit", commit)


@pytest.fixture
def seed(db):
    return Seed(db)


@pytest.fixture
def admin():
    return CurrentUser(id=uuid4(), role=UserRole.ADMIN)


@pytest.fixture
def auth_headers():
    def _headers(user_id, role: UserRole, location_id=None) -> dict:
        claims = {"sub": str(user_id), "role": role.value}
        if location_id:
            claims["location_id"] = str(location_id)
        # long-lived so tests that freeze the clock years ahead still pass expiry checks
        token = create_access_token(claims, SECRET, expires_delta=timedelta(days=365 * 10))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
