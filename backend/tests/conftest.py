"""
Pytest fixtures for AssetMan backend tests.

Provides test database setup, per-location users, categories, assets and a
test client with login helpers.
"""

from datetime import date, timedelta
from itertools import count

import pytest

from assetman import create_app
from assetman.extensions import db
from assetman.models import (
    Asset,
    AssetState,
    Assignment,
    AssignmentState,
    Category,
    Gender,
    Location,
    User,
    UserType,
)
from assetman.services.auth_service import hash_password
from assetman.services.session_service import CallerContext
from assetman.time_utils import today, utcnow


DEFAULT_PASSWORD = "Password123!"

_staff_numbers = count(1)
_asset_numbers = count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_user(db_session):
    """Create a user directly (bypasses generation rules). Password: Password123!"""
    def _make(
        username: str,
        *,
        location: Location = Location.HCM,
        user_type: UserType = UserType.STAFF,
        first_name: str = "Test",
        last_name: str = "User",
        is_active: bool = True,
        is_password_updated: bool = True,
    ) -> User:
        user = User(
            staff_code=f"SD{next(_staff_numbers) % 10000:04d}",
            first_name=first_name,
            last_name=last_name,
            username=username,
            password_hash=hash_password(DEFAULT_PASSWORD),
            is_password_updated=is_password_updated,
            date_of_birth=date(1995, 1, 15),
            joined_date=date(2020, 6, 1),
            type=user_type,
            location=location,
            gender=Gender.MALE,
            is_active=is_active,
        )
        user.mark_created(None, utcnow())
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_category(db_session):
    def _make(name: str, prefix: str) -> Category:
        category = Category(name=name, prefix=prefix)
        category.mark_created(None, utcnow())
        db_session.add(category)
        db_session.commit()
        return category
    return _make


@pytest.fixture
def make_asset(db_session, laptop_category):
    """Create an asset with an explicit code; the generator is tested separately."""
    def _make(
        name: str = "Laptop",
        *,
        location: Location = Location.HCM,
        state: AssetState = AssetState.AVAILABLE,
        category: Category | None = None,
        code: str | None = None,
        installed_date: date | None = None,
    ) -> Asset:
        category = category or laptop_category
        asset = Asset(
            code=code or f"{category.prefix}{next(_asset_numbers):06d}",
            name=name,
            specification="Core i5, 8GB RAM",
            state=state,
            installed_date=installed_date or date(2023, 1, 10),
            location=location,
            category_id=category.id,
        )
        asset.mark_created(None, utcnow())
        db_session.add(asset)
        db_session.commit()
        return asset
    return _make


@pytest.fixture
def make_assignment(db_session):
    """Insert an assignment in any state without going through the service."""
    def _make(
        asset: Asset,
        assignee: User,
        assignor: User,
        *,
        state: AssignmentState = AssignmentState.WAITING_FOR_ACCEPTANCE,
        assigned_date: date | None = None,
    ) -> Assignment:
        assignment = Assignment(
            asset_id=asset.id,
            assignee_id=assignee.id,
            assignor_id=assignor.id,
            assigned_date=assigned_date or today(),
            state=state,
        )
        assignment.mark_created(assignor.id, utcnow())
        db_session.add(assignment)
        db_session.commit()
        return assignment
    return _make


# =============================================================================
# USERS
# =============================================================================

@pytest.fixture
def admin_hcm(make_user):
    return make_user("adminhcm", user_type=UserType.ADMIN, first_name="Admin", last_name="Ho Chi Minh")


@pytest.fixture
def staff_hcm(make_user):
    return make_user("binhnv", first_name="Binh", last_name="Nguyen Van")


@pytest.fixture
def staff_hcm_2(make_user):
    return make_user("anlt", first_name="An", last_name="Le Thi")


@pytest.fixture
def admin_hn(make_user):
    return make_user("adminhn", location=Location.HN, user_type=UserType.ADMIN, first_name="Admin", last_name="Ha Noi")


@pytest.fixture
def staff_hn(make_user):
    return make_user("hoatt", location=Location.HN, first_name="Hoa", last_name="Tran Thi")


def caller_for(user: User) -> CallerContext:
    return CallerContext.from_user(user)


@pytest.fixture
def admin_caller(admin_hcm):
    return caller_for(admin_hcm)


@pytest.fixture
def staff_caller(staff_hcm):
    return caller_for(staff_hcm)


# =============================================================================
# INVENTORY
# =============================================================================

@pytest.fixture
def laptop_category(make_category):
    return make_category("Laptop", "LA")


@pytest.fixture
def monitor_category(make_category):
    return make_category("Monitor", "MO")


@pytest.fixture
def laptop(make_asset):
    return make_asset("Laptop HP Probook 450 G1")


@pytest.fixture
def tomorrow():
    return today() + timedelta(days=1)


# =============================================================================
# HTTP HELPERS
# =============================================================================

def get_auth_token(client, username: str, password: str = DEFAULT_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['accessToken']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def login(client):
    """login(user) -> Authorization headers for that user."""
    def _login(user: User) -> dict:
        token = get_auth_token(client, user.username)
        assert token, f"login failed for {user.username}"
        return auth_headers(token)
    return _login


@pytest.fixture
def token_for(client):
    """token_for(username, password=...) -> bearer token, or None when login fails."""
    def _token(username: str, password: str = DEFAULT_PASSWORD):
        return get_auth_token(client, username, password)
    return _token


@pytest.fixture
def admin_headers(login, admin_hcm):
    return login(admin_hcm)


@pytest.fixture
def staff_headers(login, staff_hcm):
    return login(staff_hcm)
