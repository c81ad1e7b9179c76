"""
Shared fixtures for the visa API tests.

Services are exercised against a mocked AsyncSession with their repository
modules patched, so no database is needed.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio

from visa_api.core import notifier
from visa_api.core.auth import CurrentUser
from visa_api.core.database import _import_models
from visa_api.modules.applications.models import ApplicationStatus, VisaApplication
from visa_api.modules.users.models import OFFICER_DEFAULT_PERMISSIONS, User, UserRole
from visa_api.modules.visa_types.models import VisaType

# Register every mapper so ORM objects built by services (audit entries,
# notifications) can be instantiated.
_import_models()


@pytest_asyncio.fixture(autouse=True)
async def drain_notifications():
    """Let background notification tasks finish inside the test's loop."""
    yield
    await notifier.drain(timeout=1.0)


def _savepoint():
    """Async context manager standing in for a SAVEPOINT; never swallows errors."""
    nested = AsyncMock()
    nested.__aexit__.return_value = False
    return nested


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.begin_nested = MagicMock(side_effect=_savepoint)
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def applicant():
    return CurrentUser(
        id=uuid4(),
        email="applicant@test.com",
        role=UserRole.APPLICANT,
        name="Ama Mensah",
    )


@pytest.fixture
def other_applicant():
    return CurrentUser(id=uuid4(), email="other@test.com", role=UserRole.APPLICANT)


@pytest.fixture
def officer():
    return CurrentUser(
        id=uuid4(),
        email="officer@test.com",
        role=UserRole.OFFICER,
        permissions=frozenset(OFFICER_DEFAULT_PERMISSIONS),
        name="Kofi Boateng",
    )


@pytest.fixture
def admin():
    return CurrentUser(id=uuid4(), email="admin@test.com", role=UserRole.ADMIN)


def _make_user(user_id=None, role=UserRole.APPLICANT, email="user@test.com", name="Test User"):
    user = MagicMock(spec=User)
    user.id = user_id or uuid4()
    user.email = email
    user.role = role
    user.is_active = True
    user.full_name = name
    first, _, last = name.partition(" ")
    user.first_name = first
    user.last_name = last
    return user


@pytest.fixture
def make_user():
    """Factory for mocked User rows."""
    return _make_user


@pytest.fixture
def visa_type():
    vt = MagicMock(spec=VisaType)
    vt.id = uuid4()
    vt.name = "Tourist Visa"
    vt.slug = "tourist"
    vt.fee = Decimal("80.00")
    vt.currency = "usd"
    vt.is_active = True
    return vt


@pytest.fixture
def application(applicant, visa_type):
    """A PENDING application owned by `applicant` with both sections filled."""
    app = MagicMock(spec=VisaApplication)
    app.id = uuid4()
    app.application_number = "VISA-2026-12345"
    app.user_id = applicant.id
    app.visa_type_id = visa_type.id
    app.visa_type = visa_type
    app.officer_id = None
    app.status = ApplicationStatus.PENDING
    app.submission_date = None
    app.rejection_reason = None
    app.expiry_date = None
    app.personal_info = MagicMock()
    app.travel_info = MagicMock()
    app.applicant = _make_user(applicant.id, email=applicant.email, name="Ama Mensah")
    return app
