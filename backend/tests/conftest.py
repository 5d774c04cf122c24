import os

# Keep the app's own engine off the filesystem; tests use their own engine below
os.environ.setdefault("DATABASE_PATH", ":memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from main import app
from database import Base, get_db
from models import Friend, User
from auth import get_password_hash, create_access_token

# Import rate limiters to override them
from utils.rate_limiter import auth_rate_limiter, reminder_rate_limiter

# Setup in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def client(db_session):
    """Create a FastAPI TestClient with overridden database dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)

def make_user(db_session, email, full_name):
    user = User(
        email=email,
        hashed_password=get_password_hash("password123"),
        full_name=full_name,
        is_active=True
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user

def headers_for(user):
    access_token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {access_token}"}

def make_friend(db_session, owner, name, email=None, linked_user=None):
    friend = Friend(
        user_id=owner.id,
        name=name,
        email=email or (linked_user.email if linked_user else None),
        linked_user_id=linked_user.id if linked_user else None
    )
    db_session.add(friend)
    db_session.commit()
    db_session.refresh(friend)
    return friend

@pytest.fixture
def test_user(db_session):
    """Create a test user and return the user object."""
    return make_user(db_session, "test@example.com", "Test User")

@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers for the test user."""
    return headers_for(test_user)

@pytest.fixture
def other_user(db_session):
    """A second registered account, for linked-contact scenarios."""
    return make_user(db_session, "other@example.com", "Other User")

@pytest.fixture
def other_headers(other_user):
    return headers_for(other_user)

@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Disable all rate limits during testing using dependency overrides."""
    async def mock_rate_limit():
        return True

    limiters = [auth_rate_limiter, reminder_rate_limiter]
    for limiter in limiters:
        app.dependency_overrides[limiter] = mock_rate_limit

    yield

    for limiter in limiters:
        app.dependency_overrides.pop(limiter, None)
