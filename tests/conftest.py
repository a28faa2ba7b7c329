import os

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CHAT_AUTH_MODE"] = "local"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from models import Base, User, Role
from main import app
from database import get_db, SQLALCHEMY_DATABASE_URL
from auth import auth_service

@pytest.fixture(scope="session")
def test_db_url():
    return SQLALCHEMY_DATABASE_URL

@pytest.fixture(scope="session")
def engine(test_db_url):
    return create_engine(test_db_url, connect_args={"check_same_thread": False})

@pytest.fixture(scope="session")
def TestingSessionLocal(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session")
def setup_db(engine):
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def session(engine, setup_db, TestingSessionLocal):
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="function")
def client(session):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture
def make_user(session):
    def _make_user(email, password="shortpassword", role=Role.client, name=None):
        user = User(
            email=email,
            name=name or email.split("@")[0],
            password=auth_service.get_password_hash(password) if password else None,
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make_user

@pytest.fixture
def test_user(make_user):
    return make_user("test@example.com", name="Test User")

@pytest.fixture
def other_user(make_user):
    return make_user("other@example.com")

@pytest.fixture
def employee_user(make_user):
    return make_user("employee@example.com", role=Role.employee)

@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com", password="adminpassword", role=Role.admin)

@pytest.fixture
def login_as(client, session):
    """Видає сесію користувачу і підставляє її cookie в клієнт."""
    def _login_as(user):
        token = auth_service.create_session(session, user.id)
        client.cookies.clear()
        client.cookies.set("auth_token", token)
        return token
    return _login_as
