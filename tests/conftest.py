"""Shared order-domain fixtures: auth switching and staff users."""

import pytest
import pytest_asyncio
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser, Role
from services.order_service.app.main import app
from tests.factories import UserFactory, persist


@pytest.fixture
def login():
    """
    Switch the authenticated caller for subsequent requests.

        login(user_id)                 # customer
        login(admin_id, Role.ADMIN)
    """

    def _login(user_id: int, role: Role = Role.CUSTOMER) -> AuthUser:
        user = AuthUser(user_id=user_id, email=None, role=role)

        async def _current_user():
            return user

        app.dependency_overrides[get_current_user] = _current_user
        return user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)


@pytest_asyncio.fixture
async def staff_ids(db_session):
    """Persisted vendor and admin users, as ids."""
    vendor, admin = await persist(
        db_session,
        UserFactory.create(role="vendor", first_name="Vera"),
        UserFactory.create(role="admin", first_name="Ada"),
    )
    return {"vendor": vendor.id, "admin": admin.id}
